"""設定読み込みモジュール

環境変数から設定を読み込む。作業ディレクトリに ``.env`` があれば先に読み込む。
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from racebet.constants import (
    DEFAULT_MAX_BET_ODDS,
    DEFAULT_SECRET_KEY,
    DEFAULT_SOLANA_RPC_HOST,
)


@dataclass(frozen=True)
class Settings:
    """アプリケーション設定

    Attributes:
        database_url: SQLAlchemyのデータベースURL
        iracing_client_id: iRacing APIのOAuth2クライアントID
        iracing_client_secret: iRacing APIのOAuth2クライアントシークレット
        iracing_redirect_uri: iRacingに登録したリダイレクトURI
        iracing_refresh_token: 精算ジョブ用のリフレッシュトークン（任意）
        solana_rpc_host: Solana JSON-RPCエンドポイント
        house_wallet_address: 賭け金を受け取り払い戻すハウスウォレットの公開鍵
        house_wallet_secret_key: ハウスウォレットの秘密鍵（払い戻しの署名に必要）
        cron_secret: 精算エンドポイントの共有シークレット
        secret_key: セッショントークンの署名鍵
        access_token_expire_minutes: セッショントークンの有効期間（分）
        max_bet_odds: 受け付けるオッズの上限
        payout_confirm_timeout: 払い戻し確認の待ち時間（秒）
        payout_max_retries: 払い戻し送信の試行回数
        log_level: ルートロガーのレベル名
    """

    database_url: str = "sqlite:///data/racebet.db"
    iracing_client_id: str = ""
    iracing_client_secret: str = ""
    iracing_redirect_uri: str = ""
    iracing_refresh_token: str = ""
    solana_rpc_host: str = DEFAULT_SOLANA_RPC_HOST
    house_wallet_address: str = ""
    house_wallet_secret_key: str = ""
    cron_secret: str = ""
    secret_key: str = DEFAULT_SECRET_KEY
    access_token_expire_minutes: int = 120
    max_bet_odds: float = DEFAULT_MAX_BET_ODDS
    payout_confirm_timeout: float = 60.0
    payout_max_retries: int = 3
    log_level: str = "INFO"

    @property
    def is_iracing_configured(self) -> bool:
        return bool(
            self.iracing_client_id
            and self.iracing_client_secret
            and self.iracing_redirect_uri
        )

    @property
    def is_payout_configured(self) -> bool:
        return bool(self.house_wallet_address and self.house_wallet_secret_key)

    @property
    def has_secure_secret_key(self) -> bool:
        return bool(self.secret_key) and self.secret_key != DEFAULT_SECRET_KEY

    @classmethod
    def from_env(cls) -> "Settings":
        """環境変数から設定を読み込む

        対象の環境変数:
            DATABASE_URL, IRACING_CLIENT_ID, IRACING_CLIENT_SECRET,
            IRACING_REDIRECT_URI, IRACING_REFRESH_TOKEN, SOLANA_RPC_HOST,
            HOUSE_WALLET_ADDRESS, HOUSE_WALLET_SECRET_KEY, CRON_SECRET,
            SECRET_KEY, ACCESS_TOKEN_EXPIRE_MINUTES, MAX_BET_ODDS,
            PAYOUT_CONFIRM_TIMEOUT, PAYOUT_MAX_RETRIES, LOG_LEVEL
        """
        load_dotenv()

        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            iracing_client_id=os.getenv("IRACING_CLIENT_ID", ""),
            iracing_client_secret=os.getenv("IRACING_CLIENT_SECRET", ""),
            iracing_redirect_uri=os.getenv("IRACING_REDIRECT_URI", ""),
            iracing_refresh_token=os.getenv("IRACING_REFRESH_TOKEN", ""),
            solana_rpc_host=os.getenv("SOLANA_RPC_HOST", DEFAULT_SOLANA_RPC_HOST),
            house_wallet_address=os.getenv("HOUSE_WALLET_ADDRESS", ""),
            house_wallet_secret_key=os.getenv("HOUSE_WALLET_SECRET_KEY", ""),
            cron_secret=os.getenv("CRON_SECRET", ""),
            secret_key=os.getenv("SECRET_KEY", cls.secret_key),
            access_token_expire_minutes=int(
                os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", cls.access_token_expire_minutes)
            ),
            max_bet_odds=float(os.getenv("MAX_BET_ODDS", cls.max_bet_odds)),
            payout_confirm_timeout=float(
                os.getenv("PAYOUT_CONFIRM_TIMEOUT", cls.payout_confirm_timeout)
            ),
            payout_max_retries=int(
                os.getenv("PAYOUT_MAX_RETRIES", cls.payout_max_retries)
            ),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
