# src/altar_api/readings/router.py

from fastapi import APIRouter, Depends, Response, status

from ..api_response import APIResponse, error_response, value_error_response
from ..auth.router import get_current_user
from .engine import InvalidDrawState
from .models import ReadingSelectSpreadIn, ReadingStartIn
from .service import ReadingService, get_reading_service

router = APIRouter(prefix="/readings", tags=["readings"])

# Что предложить пользователю на пустом экране вместо расклада
_DRAW_HINTS = {
    "no_cards": "add_cards",
    "no_spread": "create_spread",
    "empty_spread": "create_spread",
}


def _invalid_draw_response(response: Response, exc: InvalidDrawState) -> APIResponse:
    return error_response(
        response=response,
        http_status=status.HTTP_409_CONFLICT,
        code="invalid_draw_state",
        message=str(exc),
        details={"reason": exc.reason, "hint": _DRAW_HINTS.get(exc.reason)},
    )


# 1. POST /readings — открыть гадание по колоде
@router.post("", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
def start_reading(
    body: ReadingStartIn,
    response: Response,
    user: dict = Depends(get_current_user),
    service: ReadingService = Depends(get_reading_service),
):
    try:
        reading = service.start_reading(user["id"], body.deck_id, body.spread_id)
        return APIResponse(ok=True, data=reading, error=None)
    except ValueError as e:
        return value_error_response(response, e)


# 2. GET /readings/{session_id} — текущее состояние
@router.get("/{session_id}", response_model=APIResponse)
def get_reading(
    session_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: ReadingService = Depends(get_reading_service),
):
    try:
        return APIResponse(ok=True, data=service.get_reading(user["id"], session_id), error=None)
    except ValueError as e:
        return value_error_response(response, e)


# 3. POST /readings/{session_id}/spread — выбрать другой расклад
@router.post("/{session_id}/spread", response_model=APIResponse)
def select_spread(
    session_id: str,
    body: ReadingSelectSpreadIn,
    response: Response,
    user: dict = Depends(get_current_user),
    service: ReadingService = Depends(get_reading_service),
):
    try:
        reading = service.select_spread(user["id"], session_id, body.spread_id)
        return APIResponse(ok=True, data=reading, error=None)
    except ValueError as e:
        return value_error_response(response, e)


# 4. POST /readings/{session_id}/draw — перемешать и выложить карты
@router.post("/{session_id}/draw", response_model=APIResponse)
def draw(
    session_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: ReadingService = Depends(get_reading_service),
):
    try:
        return APIResponse(ok=True, data=service.draw(user["id"], session_id), error=None)
    except InvalidDrawState as e:
        return _invalid_draw_response(response, e)
    except ValueError as e:
        return value_error_response(response, e)


# 5. POST /readings/{session_id}/cards/{drawn_id}/toggle — открыть/закрыть карту
@router.post("/{session_id}/cards/{drawn_id}/toggle", response_model=APIResponse)
def toggle_reveal(
    session_id: str,
    drawn_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: ReadingService = Depends(get_reading_service),
):
    try:
        result = service.toggle_reveal(user["id"], session_id, drawn_id)
        return APIResponse(ok=True, data=result, error=None)
    except ValueError as e:
        return value_error_response(response, e)


# 6. POST /readings/{session_id}/reveal-all
@router.post("/{session_id}/reveal-all", response_model=APIResponse)
def reveal_all(
    session_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: ReadingService = Depends(get_reading_service),
):
    try:
        return APIResponse(ok=True, data=service.reveal_all(user["id"], session_id), error=None)
    except ValueError as e:
        return value_error_response(response, e)


# 7. POST /readings/{session_id}/reset — убрать карты, расклад остаётся выбранным
@router.post("/{session_id}/reset", response_model=APIResponse)
def reset_reading(
    session_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: ReadingService = Depends(get_reading_service),
):
    try:
        return APIResponse(ok=True, data=service.reset_reading(user["id"], session_id), error=None)
    except ValueError as e:
        return value_error_response(response, e)


# 8. DELETE /readings/{session_id} — пользователь ушёл с экрана гадания
@router.delete("/{session_id}", response_model=APIResponse)
def close_reading(
    session_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: ReadingService = Depends(get_reading_service),
):
    try:
        service.close_reading(user["id"], session_id)
    except ValueError as e:
        return value_error_response(response, e)
    return APIResponse(ok=True, data={"closed": session_id}, error=None)
