"""HTTP API

``create_app`` は ``AppContext`` を中心にFastAPIアプリケーションを組み立てる。
テストはフェイクの協調オブジェクトを持つコンテキストを渡す。
"""

from fastapi import FastAPI

from racebet import __version__
from racebet.api.errors import register_error_handlers
from racebet.api.routes import auth, bets, cron, races, users
from racebet.config import Settings
from racebet.container import AppContext, build_context
from racebet.errors import ConfigurationError
from racebet.logging_config import configure_logging


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """FastAPIアプリケーションを作成する

    Args:
        settings: 設定（省略時は環境変数から読み込む）
        context: 構築済みのコンテキスト（省略時は ``settings`` から構築する）

    Raises:
        ConfigurationError: SECRET_KEY が未設定または既定値のままの場合
    """
    if context is not None:
        settings = context.settings
    else:
        settings = settings or Settings.from_env()
    if not settings.has_secure_secret_key:
        raise ConfigurationError("SECRET_KEY must be set to a non-default value")

    if context is None:
        configure_logging(settings.log_level)
        context = build_context(settings)

    app = FastAPI(title="racebet", version=__version__)
    app.state.context = context
    register_error_handlers(app)

    for module in (races, bets, cron, auth, users):
        app.include_router(module.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


__all__ = ["create_app"]
