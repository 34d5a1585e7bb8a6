"""ベット受付サービス（賭け金トランザクションとベットの記録）"""

import json
import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from racebet.constants import (
    DEFAULT_MAX_BET_ODDS,
    FINAL_RACE_STATUSES,
    MIN_BET_ODDS,
    BetStatus,
)
from racebet.errors import NotFoundError, TransferError, ValidationError
from racebet.models import Bet, Driver, Race, User
from racebet.models.base import utcnow
from racebet.repositories.bet_store import SQLAlchemyBetStore
from racebet.wallet.transfer import SolanaTransferService, sol_to_lamports

logger = logging.getLogger(__name__)

DEFAULT_ODDS = MIN_BET_ODDS


def _validate_selection(
    session: Session,
    race_id: int,
    driver_id: int,
    amount: float,
    odds: float,
    max_odds: float = DEFAULT_MAX_BET_ODDS,
) -> tuple[Race, Driver]:
    """レースがベットを受け付けていて、ドライバーが出走していることを確認

    Raises:
        NotFoundError: レースまたはドライバーが存在しない場合
        ValidationError: 選択、賭け金、オッズが不正な場合
    """
    if amount is None or amount <= 0:
        raise ValidationError("Bet amount must be positive")
    if odds is None or odds < MIN_BET_ODDS:
        raise ValidationError(f"Odds must be at least {MIN_BET_ODDS}")
    if odds > max_odds:
        raise ValidationError(f"Odds must not exceed {max_odds}")

    store = SQLAlchemyBetStore(session)
    race = store.get_race(race_id)
    if race is None:
        raise NotFoundError(f"Race {race_id} not found")
    if race.status in FINAL_RACE_STATUSES:
        raise ValidationError(f"Race {race_id} is {race.status.value} and no longer accepts bets")

    driver = store.get_driver(driver_id)
    if driver is None:
        raise NotFoundError(f"Driver {driver_id} not found")
    if driver.race_id != race.id:
        raise ValidationError(f"Driver {driver_id} is not entered in race {race_id}")

    return race, driver


def create_bet(
    session: Session,
    user_id: int,
    race_id: int,
    driver_id: int,
    amount: float,
    odds: float,
    max_odds: float = DEFAULT_MAX_BET_ODDS,
) -> Bet:
    """PENDING のベットを記録する（賭け金はまだオンチェーンで確認していない）

    Raises:
        NotFoundError: ユーザー、レース、ドライバーが存在しない場合
        ValidationError: 賭け金やオッズが範囲外の場合
    """
    if session.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found")
    _validate_selection(session, race_id, driver_id, amount, odds, max_odds)

    bet = Bet(
        user_id=user_id,
        race_id=race_id,
        driver_id=driver_id,
        amount=float(amount),
        odds=float(odds),
        status=BetStatus.PENDING,
    )
    return SQLAlchemyBetStore(session).add_bet(bet)


def list_bets(session: Session, user_id: int | None = None) -> list[Bet]:
    return SQLAlchemyBetStore(session).list_bets(user_id)


def create_stake_transaction(
    session: Session,
    transfer: SolanaTransferService,
    user: User,
    wallet_address: str,
    house_wallet: str | None,
    race_id: int,
    driver_id: int,
    amount: float,
    now: datetime | None = None,
) -> str:
    """ベッターのウォレットが署名する未署名の賭け金送金を作成する

    Args:
        session: DBセッション
        transfer: Solana送金アダプター
        user: 認証済みのベッター
        wallet_address: ベッターのウォレット（送金元、手数料支払者）
        house_wallet: 賭け金を受け取るハウスウォレット
        race_id: レースID
        driver_id: ドライバーID
        amount: 賭け金（SOL）
        now: メモに書き込む時刻

    Returns:
        Base64でシリアライズした未署名トランザクション

    Raises:
        TransferError: ハウスウォレットが未設定の場合
    """
    if not house_wallet:
        raise TransferError("House wallet not configured")
    _validate_selection(session, race_id, driver_id, amount, DEFAULT_ODDS)

    memo = json.dumps(
        {
            "type": "bet",
            "userId": user.id,
            "raceId": race_id,
            "driverId": driver_id,
            "timestamp": (now or utcnow()).isoformat() + "Z",
        }
    )
    transaction = transfer.build_bet_transaction(wallet_address, house_wallet, amount, memo)
    return transfer.serialize_transaction(transaction)


def confirm_stake_transaction(
    session: Session,
    transfer: SolanaTransferService,
    user: User,
    signed_transaction: str | list[int],
    house_wallet: str | None,
    race_id: int,
    driver_id: int,
    amount: float,
    odds: float | None = None,
    confirm_timeout: float = 60.0,
    max_odds: float = DEFAULT_MAX_BET_ODDS,
) -> tuple[Bet, str]:
    """ベッターが署名した賭け金送金を送信し、CONFIRMED のベットを記録する

    送金はハウスウォレット宛てに ``amount`` SOL でなければならない。同じ
    署名済みトランザクションを二度確認すると、最初に記録したベットを返す。
    ウォレット未登録のベッターには、送金元を払い戻し先として登録する。

    Returns:
        (ベット, 賭け金トランザクションの署名)

    Raises:
        ValidationError: トランザクションがベットと一致しない、またはオッズが範囲外の場合
        TransferError: 送信または確認に失敗した場合
    """
    if not house_wallet:
        raise TransferError("House wallet not configured")
    odds = DEFAULT_ODDS if odds is None else odds
    _validate_selection(session, race_id, driver_id, amount, odds, max_odds)

    transaction = transfer.deserialize_transaction(signed_transaction)
    sender, recipient, lamports = transfer.decode_transfer(transaction)
    if recipient != house_wallet:
        raise ValidationError("Stake transfer is not addressed to the house wallet")
    if lamports != sol_to_lamports(amount):
        raise ValidationError("Stake transfer amount does not match the bet amount")

    existing = session.execute(
        select(Bet).where(Bet.tx_signature == str(transaction.signatures[0]))
    ).scalars().first()
    if existing is not None:
        return existing, existing.tx_signature

    signature = transfer.submit_transaction(transaction)
    if not transfer.confirm_transaction(signature, timeout=confirm_timeout):
        raise TransferError(f"Stake transaction {signature} not confirmed in time")

    if not user.wallet_address:
        user.wallet_address = sender

    bet = Bet(
        user_id=user.id,
        race_id=race_id,
        driver_id=driver_id,
        amount=float(amount),
        odds=float(odds),
        status=BetStatus.CONFIRMED,
        tx_signature=signature,
    )
    SQLAlchemyBetStore(session).add_bet(bet)
    logger.info("Bet %s confirmed for user %s (%s)", bet.id, user.id, signature)
    return bet, signature
