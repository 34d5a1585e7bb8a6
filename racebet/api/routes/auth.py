"""iRacingでのサインイン"""

import secrets

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from racebet.api.dependencies import get_context, get_db, get_identity_provider
from racebet.api.schemas import AuthorizeResponse, CallbackRequest, TokenResponse, UserResponse
from racebet.container import AppContext
from racebet.services.auth_service import create_access_token, sign_in_with_iracing

router = APIRouter(prefix="/auth/iracing", tags=["auth"])


@router.get("/authorize", response_model=AuthorizeResponse)
def authorize(provider=Depends(get_identity_provider)):
    url = provider.get_authorization_url(state=secrets.token_urlsafe(16))
    return AuthorizeResponse(authorization_url=url)


@router.post("/callback", response_model=TokenResponse)
def callback(
    body: CallbackRequest,
    provider=Depends(get_identity_provider),
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    user = sign_in_with_iracing(db, provider, body.code)
    token = create_access_token(
        user.id,
        context.settings.secret_key,
        expires_minutes=context.settings.access_token_expire_minutes,
    )
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))
