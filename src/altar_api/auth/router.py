# src/altar_api/auth/router.py

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ..api_response import APIResponse
from ..settings import Settings, get_settings

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

UserDict = Dict[str, Any]

SESSION_COOKIE = "altar_session"
SESSION_MAX_AGE = 24 * 60 * 60

DEV_USER: UserDict = {
    "id": "dev-user-123",
    "email": "dev@example.com",
    "first_name": "Dev",
    "last_name": "User",
    "profile_image_url": None,
}

# Cookie-сессии живут только в памяти процесса (как memorystore в dev):
# token -> {"user": ..., "expires_at": datetime}
_SESSIONS: Dict[str, Dict[str, Any]] = {}


def _prune_sessions(now: datetime) -> None:
    expired = [t for t, s in _SESSIONS.items() if s["expires_at"] <= now]
    for token in expired:
        del _SESSIONS[token]
    if expired:
        logger.info("Pruned %d expired login sessions", len(expired))


def _user_from_proxy_headers(request: Request) -> Optional[UserDict]:
    """
    PROD-режим: пользователя удостоверяет внешний auth-прокси
    (oauth2-proxy и т.п.), мы только читаем его заголовки.
    """
    user_id = request.headers.get("X-Auth-Request-User")
    if not user_id:
        return None
    return {
        "id": user_id,
        "email": request.headers.get("X-Auth-Request-Email"),
        "first_name": None,
        "last_name": None,
        "profile_image_url": None,
    }


async def get_current_user(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> UserDict:
    # 1) cookie-сессия, выданная /auth/login
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        _prune_sessions(datetime.now(timezone.utc))
        if token in _SESSIONS:
            return _SESSIONS[token]["user"]

    # 2) DEV режим (ALTAR_DEV_MODE=1)
    if settings.dev_mode:
        dev_user_id = request.headers.get("X-Dev-User-Id")
        if dev_user_id:
            return {**DEV_USER, "id": dev_user_id, "email": f"{dev_user_id}@example.com"}
        return dict(DEV_USER)

    # 3) PROD - заголовки auth-прокси
    user = _user_from_proxy_headers(request)
    if user is not None:
        return user

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")


@router.get("/login", response_model=APIResponse, summary="Dev-логин под тестовым пользователем")
async def login(
    response: Response,
    settings: Settings = Depends(get_settings),
) -> APIResponse:
    if not settings.dev_mode:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    logger.info("Dev login: auto-authenticating mock user %s", DEV_USER["email"])

    now = datetime.now(timezone.utc)
    _prune_sessions(now)

    token = secrets.token_urlsafe(32)
    user = {**DEV_USER, "logged_in_at": now.isoformat()}
    _SESSIONS[token] = {
        "user": user,
        "expires_at": now + timedelta(seconds=SESSION_MAX_AGE),
    }

    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        samesite="lax",
    )
    return APIResponse(ok=True, data=user, error=None)


@router.get("/user", response_model=APIResponse)
async def current_user(user: UserDict = Depends(get_current_user)) -> APIResponse:
    return APIResponse(ok=True, data=user, error=None)


@router.get("/logout", response_model=APIResponse)
async def logout(request: Request, response: Response) -> APIResponse:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        _SESSIONS.pop(token, None)
    response.delete_cookie(SESSION_COOKIE)
    return APIResponse(ok=True, data={"logged_out": True}, error=None)
