# src/altar_api/app.py
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api_response import APIError, APIResponse
from .auth.router import router as auth_router
from .decks.router import cards_router, router as decks_router, spreads_router
from .readings.router import router as readings_router
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

# HTTP-статус -> код ошибки в конверте; остальные статусы идут как http_error
_HTTP_ERROR_CODES = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


def _envelope(
    status_code: int,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = APIResponse(ok=False, error=APIError(code=code, message=message, details=details))
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


# ----------------------------------------------------
# Глобальные обработчики ошибок
# ----------------------------------------------------
async def _on_unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _envelope(500, "internal_error", "Internal server error")


async def _on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    if exc.status_code == 404:
        # неизвестный маршрут: detail от Starlette ничего не говорит клиенту
        return _envelope(404, code, "Resource not found", {"path": request.url.path})
    return _envelope(
        exc.status_code,
        code,
        str(exc.detail),
        {"status_code": exc.status_code},
        headers=getattr(exc, "headers", None),
    )


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    logger.warning("Invalid request to %s: %s", request.url.path, errors)
    return _envelope(422, "validation_error", "Request validation error", {"errors": errors})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Собрать приложение: CORS, health-check, обработчики ошибок, роутеры."""
    settings = settings or get_settings()

    application = FastAPI(
        title="Altar API",
        version=__version__,
        description="HTTP API авторских колод Таро и виртуального гадания",
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(Exception, _on_unhandled)
    application.add_exception_handler(StarletteHTTPException, _on_http_error)
    application.add_exception_handler(RequestValidationError, _on_validation_error)

    @application.get("/health", response_model=APIResponse)
    async def health_check() -> APIResponse:
        return APIResponse(ok=True, data={"status": "ok", "version": __version__})

    # prefix указан внутри каждого роутера
    for router in (auth_router, decks_router, cards_router, spreads_router, readings_router):
        application.include_router(router)

    logger.info("Altar API %s ready (db_backend=%s)", __version__, settings.db_backend)
    return application


app = create_app()

# uvicorn altar_api.app:app --reload
