"""レースデータのDTO

iRacingデータAPIが返すメンバープロフィール、OAuthトークン、
サブセッション結果をイミュータブルなデータクラスで表す。
"""

from dataclasses import dataclass
from datetime import datetime, timezone


def parse_api_datetime(value: str | None) -> datetime | None:
    """APIのISO-8601形式の時刻をnaiveなUTCのdatetimeに変換する

    Args:
        value: "2024-05-01T18:30:00Z" のような時刻文字列（Noneはそのまま返す）

    Returns:
        UTCのnaiveなdatetime、またはNone
    """
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


@dataclass(frozen=True)
class IRacingProfile:
    """iRacingメンバーのプロフィール

    Attributes:
        cust_id: iRacingのメンバーID
        email: メールアドレス
        display_name: 表示名
    """

    cust_id: int
    email: str
    display_name: str

    @classmethod
    def from_api(cls, data: dict) -> "IRacingProfile":
        return cls(
            cust_id=int(data["cust_id"]),
            email=data.get("email", ""),
            display_name=data.get("display_name", ""),
        )


@dataclass(frozen=True)
class AuthTokens:
    """OAuth2トークンのレスポンス"""

    access_token: str
    refresh_token: str | None
    expires_in: int
    token_type: str = "Bearer"

    @classmethod
    def from_api(cls, data: dict) -> "AuthTokens":
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=int(data.get("expires_in", 0)),
            token_type=data.get("token_type", "Bearer"),
        )


@dataclass(frozen=True)
class ResultRow:
    """サブセッション結果の1ドライバー分

    Attributes:
        cust_id: ドライバーのiRacingメンバーID
        display_name: 表示名
        finish_position: 0始まりの着順（着順なしは-1）
        laps_completed: 完了周回数
        car_number: カーナンバー
        team_name: チーム名（任意）
    """

    cust_id: int
    display_name: str
    finish_position: int
    laps_completed: int
    car_number: str = ""
    team_name: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "ResultRow":
        return cls(
            cust_id=int(data["cust_id"]),
            display_name=data.get("display_name", ""),
            finish_position=int(data.get("finish_position", -1)),
            laps_completed=int(data.get("laps_complete", data.get("laps_completed", 0))),
            car_number=str(data.get("car_number") or (data.get("livery") or {}).get("car_number", "")),
            team_name=data.get("team_name"),
        )


@dataclass(frozen=True)
class RaceResults:
    """1サブセッションの結果

    Attributes:
        subsession_id: iRacingのサブセッションID
        name: セッション名またはシリーズ名
        track_name: コース名
        session_start_time: セッション開始時刻（naive UTC）
        session_end_time: セッション終了時刻（naive UTC）
        results: 結果行（イミュータブルなタプル）
    """

    subsession_id: int
    name: str
    track_name: str
    session_start_time: datetime | None
    session_end_time: datetime | None
    results: tuple[ResultRow, ...]

    @classmethod
    def from_api(cls, data: dict) -> "RaceResults":
        """iRacingの ``results/get`` のペイロードから結果を作る

        フラットな ``results`` と、シムセッションごとの ``session_results``
        の両方に対応する。後者はレースのシムセッションを使う。
        """
        rows = data.get("results")
        if rows is None:
            rows = _race_session_rows(data.get("session_results") or [])

        track = data.get("track") or {}
        return cls(
            subsession_id=int(data["subsession_id"]),
            name=data.get("name") or data.get("series_name", ""),
            track_name=track.get("track_name", ""),
            session_start_time=parse_api_datetime(data.get("start_time") or data.get("session_start_time")),
            session_end_time=parse_api_datetime(data.get("end_time") or data.get("session_end_time")),
            results=tuple(ResultRow.from_api(row) for row in rows),
        )


def _race_session_rows(session_results: list[dict]) -> list[dict]:
    """レースのシムセッションの結果行を返す（なければ最後のセッション）"""
    if not session_results:
        return []
    for session in session_results:
        if str(session.get("simsession_name", "")).upper() == "RACE":
            return session.get("results", [])
    return session_results[-1].get("results", [])
