from typing import Any, Optional

from fastapi import Response
from pydantic import BaseModel


class APIError(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class APIResponse(BaseModel):
    ok: bool
    data: Optional[Any] = None
    error: Optional[APIError] = None


def error_response(
    response: Response,
    http_status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> APIResponse:
    """Единая форма ошибки для роутеров: статус пишем прямо в Response."""
    response.status_code = http_status
    return APIResponse(
        ok=False,
        data=None,
        error=APIError(
            code=code,
            message=message,
            details=details or {},
        ),
    )


# ValueError из сервисов → HTTP-статус
_VALUE_ERROR_STATUS: dict[str, tuple[int, str]] = {
    "duplicate_card_number": (409, "conflict"),
}


def value_error_response(response: Response, exc: ValueError) -> APIResponse:
    """
    Сервисы сигналят бизнес-ошибки через ValueError("<code>").
    *_not_found → 404, известные конфликты → 409, остальное → 400.
    """
    code = str(exc)
    if code in _VALUE_ERROR_STATUS:
        http_status, kind = _VALUE_ERROR_STATUS[code]
        return error_response(response, http_status, kind, code)
    if code.endswith("_not_found"):
        return error_response(response, 404, "not_found", code)
    return error_response(response, 400, "bad_request", code)
