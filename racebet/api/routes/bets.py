"""ベットのエンドポイント（オンチェーンの賭け金フローを含む）"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from racebet.api.dependencies import get_context, get_current_user, get_db
from racebet.api.schemas import (
    BetCreate,
    BetDetail,
    BetResponse,
    ConfirmTransactionRequest,
    ConfirmTransactionResponse,
    CreateTransactionRequest,
    CreateTransactionResponse,
)
from racebet.container import AppContext
from racebet.models import User
from racebet.services import betting_service

router = APIRouter(prefix="/bets", tags=["bets"])


@router.get("", response_model=list[BetDetail])
def list_bets(
    user_id: int | None = Query(default=None, alias="userId"),
    db: Session = Depends(get_db),
):
    return [BetDetail.model_validate(bet) for bet in betting_service.list_bets(db, user_id)]


@router.post("", response_model=BetResponse, status_code=201)
def create_bet(
    body: BetCreate,
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    bet = betting_service.create_bet(
        db,
        user_id=body.user_id,
        race_id=body.race_id,
        driver_id=body.driver_id,
        amount=body.amount,
        odds=body.odds,
        max_odds=context.settings.max_bet_odds,
    )
    return BetResponse.model_validate(bet)


@router.post("/create-transaction", response_model=CreateTransactionResponse)
def create_transaction(
    body: CreateTransactionRequest,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    transaction = betting_service.create_stake_transaction(
        db,
        context.transfer_service,
        user,
        wallet_address=body.wallet_address,
        house_wallet=context.settings.house_wallet_address,
        race_id=body.race_id,
        driver_id=body.driver_id,
        amount=body.amount,
    )
    return CreateTransactionResponse(transaction=transaction)


@router.post("/confirm-transaction", response_model=ConfirmTransactionResponse)
def confirm_transaction(
    body: ConfirmTransactionRequest,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    bet, signature = betting_service.confirm_stake_transaction(
        db,
        context.transfer_service,
        user,
        signed_transaction=body.signed_transaction,
        house_wallet=context.settings.house_wallet_address,
        race_id=body.race_id,
        driver_id=body.driver_id,
        amount=body.amount,
        odds=body.odds,
        confirm_timeout=context.settings.payout_confirm_timeout,
        max_odds=context.settings.max_bet_odds,
    )
    return ConfirmTransactionResponse(bet=BetResponse.model_validate(bet), tx_signature=signature)
