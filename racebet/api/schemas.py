"""リクエストとレスポンスのボディ

Python側のフィールド名は snake_case、JSONでは camelCase。リクエストでは
どちらの表記も受け付ける。
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from racebet.constants import BetStatus, DriverStatus, RaceStatus


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class DriverCreate(ApiModel):
    iracing_id: int
    name: str
    car_number: str
    team_name: str | None = None
    status: DriverStatus = DriverStatus.REGISTERED


class DriverResponse(ApiModel):
    id: int
    race_id: int
    iracing_id: int
    name: str
    car_number: str
    team_name: str | None
    status: DriverStatus
    finish_position: int | None


class RaceCreate(ApiModel):
    subsession_id: int
    name: str
    track: str
    category: str
    start_time: datetime
    participants: list[DriverCreate] = Field(default_factory=list)

    @field_validator("start_time")
    @classmethod
    def _to_naive_utc(cls, value: datetime) -> datetime:
        # DBにはnaive UTCで保存する
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class RaceResponse(ApiModel):
    id: int
    subsession_id: int
    name: str
    track: str
    category: str
    start_time: datetime
    end_time: datetime | None
    status: RaceStatus
    participants: list[DriverResponse] = Field(default_factory=list)


class RaceListItem(RaceResponse):
    bet_count: int = 0


class UserSummary(ApiModel):
    id: int
    name: str | None
    email: str


class UserResponse(UserSummary):
    iracing_id: int | None
    wallet_address: str | None


class BetCreate(ApiModel):
    user_id: int
    race_id: int
    driver_id: int
    amount: float = Field(gt=0)
    odds: float = Field(ge=1.0)


class BetResponse(ApiModel):
    id: int
    user_id: int
    race_id: int
    driver_id: int
    amount: float
    odds: float
    status: BetStatus
    tx_signature: str | None
    payout_tx_signature: str | None
    created_at: datetime


class BetDetail(BetResponse):
    driver: DriverResponse | None = None
    user: UserSummary | None = None


class CreateTransactionRequest(ApiModel):
    wallet_address: str
    race_id: int
    driver_id: int
    amount: float = Field(gt=0)


class CreateTransactionResponse(ApiModel):
    transaction: str


class ConfirmTransactionRequest(ApiModel):
    signed_transaction: str | list[int]
    race_id: int
    driver_id: int
    amount: float = Field(gt=0)
    odds: float | None = Field(default=None, ge=1.0)


class ConfirmTransactionResponse(ApiModel):
    bet: BetResponse
    tx_signature: str


class WalletUpdate(ApiModel):
    wallet_address: str


class BalanceResponse(ApiModel):
    wallet_address: str
    balance: float


class AuthorizeResponse(ApiModel):
    authorization_url: str


class CallbackRequest(ApiModel):
    code: str


class TokenResponse(ApiModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class SettlementResponse(ApiModel):
    success: bool = True
    message: str = "Race statuses updated"
    races_checked: int
    races_completed: int
    races_failed: int
    bets_won: int
    bets_lost: int
    payouts_sent: int
    payouts_pending: int
