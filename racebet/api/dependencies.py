"""FastAPIの依存関係（コンテキスト、DBセッション、ログインユーザー、cronシークレット）"""

import hmac
from typing import Generator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from racebet.clients import IRacingClient
from racebet.container import AppContext
from racebet.db import get_session
from racebet.errors import AuthorizationError
from racebet.models import User
from racebet.services.auth_service import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_db(context: AppContext = Depends(get_context)) -> Generator[Session, None, None]:
    with get_session(context.engine) as session:
        yield session


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise AuthorizationError("Missing bearer token")

    user_id = decode_access_token(credentials.credentials, context.settings.secret_key)
    user = db.get(User, user_id)
    if user is None:
        raise AuthorizationError("User not found")
    return user


def verify_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    context: AppContext = Depends(get_context),
) -> None:
    """``Bearer <CRON_SECRET>`` がなければ拒否する

    シークレットが未設定なら常に拒否する。
    """
    expected = context.settings.cron_secret
    if not expected or credentials is None:
        raise AuthorizationError("Missing cron secret")
    if not hmac.compare_digest(credentials.credentials.encode(), expected.encode()):
        raise AuthorizationError("Invalid cron secret")


def get_identity_provider(context: AppContext = Depends(get_context)):
    """対話的なサインイン用のOAuthプロバイダー

    サインインごとに別のクライアントを作るので、会員のトークンが精算ジョブの
    トークンを置き換えることはない。iRacingの認証情報が未設定ならサインイン
    自体を拒否する。

    Raises:
        AuthorizationError: iRacingの認証情報が未設定の場合
    """
    settings = context.settings
    if not settings.is_iracing_configured:
        raise AuthorizationError("iRacing sign-in is not configured")
    return IRacingClient(
        client_id=settings.iracing_client_id,
        client_secret=settings.iracing_client_secret,
        redirect_uri=settings.iracing_redirect_uri,
    )
