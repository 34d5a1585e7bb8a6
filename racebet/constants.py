"""Constants for the racebet betting system."""

from enum import Enum


class RaceStatus(str, Enum):
    UPCOMING = "UPCOMING"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class DriverStatus(str, Enum):
    REGISTERED = "REGISTERED"
    RACING = "RACING"
    FINISHED = "FINISHED"
    DNF = "DNF"
    DSQ = "DSQ"


class BetStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    WON = "WON"
    LOST = "LOST"
    PAID_OUT = "PAID_OUT"


# ポーリング対象外のレース状態
FINAL_RACE_STATUSES: tuple[RaceStatus, ...] = (
    RaceStatus.COMPLETED,
    RaceStatus.CANCELLED,
)

# 結果に着順がない（未完走）ドライバーの順位
NO_FINISH_POSITION = -1

LAMPORTS_PER_SOL = 1_000_000_000

MEMO_PROGRAM_ID = "Memo1UhkJRfHyvLMcVucJwxXeuD728EqVDDwQDxFMNo"

DEFAULT_SOLANA_RPC_HOST = "https://api.devnet.solana.com"

IRACING_OAUTH_BASE_URL = "https://oauth.iracing.com/oauth2"
IRACING_DATA_BASE_URL = "https://data.iracing.com/data"

# トークンの有効期限から差し引く秒数
TOKEN_EXPIRY_MARGIN_SECONDS = 300

# 受け付けるオッズの範囲（倍率）
MIN_BET_ODDS = 1.0
DEFAULT_MAX_BET_ODDS = 10.0

# 未設定のまま起動させない署名鍵の既定値
DEFAULT_SECRET_KEY = "change-me"
