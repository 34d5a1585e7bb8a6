from racebet.api.routes import auth, bets, cron, races, users

__all__ = ["auth", "bets", "cron", "races", "users"]
