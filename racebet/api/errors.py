"""サービスの例外をHTTPレスポンスに変換する"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from racebet.errors import (
    AuthorizationError,
    NotFoundError,
    TransferError,
    UpstreamUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def register_error_handlers(app: FastAPI) -> None:
    """``app`` に例外ハンドラーを登録する"""

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error(400, "Missing required fields", details=jsonable_encoder(exc.errors()))

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return _error(400, str(exc))

    @app.exception_handler(AuthorizationError)
    async def authorization_handler(request: Request, exc: AuthorizationError):
        return _error(401, "Unauthorized")

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error(404, str(exc))

    @app.exception_handler(UpstreamUnavailableError)
    async def upstream_handler(request: Request, exc: UpstreamUnavailableError):
        logger.error("Upstream unavailable on %s: %s", request.url.path, exc)
        return _error(502, "Upstream service unavailable")

    @app.exception_handler(TransferError)
    async def transfer_handler(request: Request, exc: TransferError):
        logger.error("Transfer failed on %s: %s", request.url.path, exc)
        return _error(500, "Failed to process Solana transaction")

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return _error(500, "Internal server error")
