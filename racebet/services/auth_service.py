"""iRacingでのサインインとセッショントークン"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Protocol

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from racebet.errors import AuthorizationError
from racebet.models import User
from racebet.models.results import AuthTokens, IRacingProfile

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class IdentityProvider(Protocol):
    """認可コードからプロフィールを得るOAuth2プロバイダー"""

    def exchange_code_for_tokens(self, code: str) -> AuthTokens: ...

    def get_profile(self) -> IRacingProfile: ...


def upsert_user(session: Session, profile: IRacingProfile) -> User:
    """iRacingのプロフィールに対応するユーザーを取得し、なければ作成、あれば更新する

    同じメールアドレスで登録済みのユーザーはiRacingアカウントに紐づける。
    """
    user = session.execute(
        select(User).where(User.iracing_id == profile.cust_id)
    ).scalars().first()
    if user is None and profile.email:
        user = session.execute(
            select(User).where(User.email == profile.email)
        ).scalars().first()

    if user is None:
        user = User(email=profile.email, name=profile.display_name, iracing_id=profile.cust_id)
        session.add(user)
        session.flush()
        logger.info("Created user %s for iRacing member %s", user.id, profile.cust_id)
        return user

    if user.iracing_id is None:
        user.iracing_id = profile.cust_id
    if user.name != profile.display_name or user.email != profile.email:
        user.name = profile.display_name
        user.email = profile.email
        logger.info("Updated profile of user %s", user.id)
    return user


def sign_in_with_iracing(session: Session, provider: IdentityProvider, code: str) -> User:
    """iRacingの認可コードを交換し、サインインしたユーザーを返す

    Raises:
        AuthorizationError: コードがない、または拒否された場合
    """
    if not code:
        raise AuthorizationError("Missing authorization code")
    provider.exchange_code_for_tokens(code)
    return upsert_user(session, provider.get_profile())


def create_access_token(
    user_id: int,
    secret_key: str,
    expires_minutes: int = 120,
    now: datetime | None = None,
) -> str:
    """``user_id`` の署名付きセッショントークンを発行する"""
    now = now or datetime.now(timezone.utc)
    payload = {"sub": str(user_id), "iat": now, "exp": now + timedelta(minutes=expires_minutes)}
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, secret_key: str) -> int:
    """セッショントークンのユーザーIDを返す

    Raises:
        AuthorizationError: トークンが不正または期限切れの場合
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
        return int(payload["sub"])
    except (JWTError, KeyError, ValueError) as e:
        raise AuthorizationError("Invalid token") from e
