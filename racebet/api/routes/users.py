"""サインイン済みユーザーのエンドポイント"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from racebet.api.dependencies import get_context, get_current_user, get_db
from racebet.api.schemas import BalanceResponse, UserResponse, WalletUpdate
from racebet.container import AppContext
from racebet.errors import ValidationError
from racebet.models import User
from racebet.wallet.transfer import parse_pubkey

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return UserResponse.model_validate(user)


@router.put("/me/wallet", response_model=UserResponse)
def update_wallet(
    body: WalletUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user.wallet_address = str(parse_pubkey(body.wallet_address))
    db.flush()
    return UserResponse.model_validate(user)


@router.get("/me/balance", response_model=BalanceResponse)
def balance(
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    if not user.wallet_address:
        raise ValidationError("No wallet address on file")
    return BalanceResponse(
        wallet_address=user.wallet_address,
        balance=context.transfer_service.get_balance(user.wallet_address),
    )
