"""Settings のテスト"""

import pytest

from racebet.config import Settings
from racebet.constants import DEFAULT_SOLANA_RPC_HOST


class TestSettingsFromEnv:
    def test_環境変数から読み込む(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp/x.db")
        monkeypatch.setenv("IRACING_CLIENT_ID", "id")
        monkeypatch.setenv("IRACING_CLIENT_SECRET", "secret")
        monkeypatch.setenv("IRACING_REDIRECT_URI", "https://app/callback")
        monkeypatch.setenv("CRON_SECRET", "cron")
        monkeypatch.setenv("PAYOUT_CONFIRM_TIMEOUT", "30")
        monkeypatch.setenv("PAYOUT_MAX_RETRIES", "5")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("MAX_BET_ODDS", "25")

        settings = Settings.from_env()

        assert settings.database_url == "sqlite:///tmp/x.db"
        assert settings.is_iracing_configured is True
        assert settings.cron_secret == "cron"
        assert settings.payout_confirm_timeout == 30.0
        assert settings.payout_max_retries == 5
        assert settings.log_level == "DEBUG"
        assert settings.max_bet_odds == 25.0

    def test_既定値(self, monkeypatch):
        for name in (
            "DATABASE_URL", "SOLANA_RPC_HOST", "IRACING_CLIENT_ID", "HOUSE_WALLET_ADDRESS",
            "HOUSE_WALLET_SECRET_KEY", "PAYOUT_MAX_RETRIES", "ACCESS_TOKEN_EXPIRE_MINUTES",
            "MAX_BET_ODDS", "SECRET_KEY",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.database_url == "sqlite:///data/racebet.db"
        assert settings.solana_rpc_host == DEFAULT_SOLANA_RPC_HOST
        assert settings.is_iracing_configured is False
        assert settings.is_payout_configured is False
        assert settings.payout_max_retries == 3
        assert settings.access_token_expire_minutes == 120
        assert settings.max_bet_odds == 10.0
        assert settings.has_secure_secret_key is False


class TestSettingsProperties:
    @pytest.mark.parametrize(
        "address, secret, expected",
        [("house", "key", True), ("house", "", False), ("", "key", False)],
    )
    def test_払い戻し設定(self, address, secret, expected):
        settings = Settings(house_wallet_address=address, house_wallet_secret_key=secret)

        assert settings.is_payout_configured is expected

    @pytest.mark.parametrize(
        "secret_key, expected",
        [("change-me", False), ("", False), ("a-real-secret", True)],
    )
    def test_署名鍵が既定値のままなら安全でない(self, secret_key, expected):
        assert Settings(secret_key=secret_key).has_secure_secret_key is expected
