"""racebet - iRacingのレースにSolanaで賭けるアプリケーション"""

__version__ = "0.1.0"
