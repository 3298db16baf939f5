# src/altar_api/decks/router.py

from fastapi import APIRouter, Depends, Response, status

from ..api_response import APIResponse, value_error_response
from ..auth.router import get_current_user
from . import models
from .service import DeckService, get_deck_service

router = APIRouter(prefix="/decks", tags=["decks"])
cards_router = APIRouter(prefix="/cards", tags=["cards"])
spreads_router = APIRouter(prefix="/spreads", tags=["spreads"])


# ─────────────────────────────────────
# Колоды
# ─────────────────────────────────────

# 1. GET /decks — колоды текущего пользователя
@router.get("", response_model=APIResponse)
def list_decks(
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    return APIResponse(ok=True, data=service.list_decks(user["id"]), error=None)


# 2. GET /decks/{deck_id}
@router.get("/{deck_id}", response_model=APIResponse)
def get_deck(
    deck_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        return APIResponse(ok=True, data=service.get_deck(user["id"], deck_id), error=None)
    except ValueError as e:
        return value_error_response(response, e)


# 3. POST /decks
@router.post("", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
def create_deck(
    body: models.DeckCreateIn,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    deck = service.create_deck(user["id"], body)
    return APIResponse(ok=True, data=deck, error=None)


# 4. PATCH /decks/{deck_id}
@router.patch("/{deck_id}", response_model=APIResponse)
def update_deck(
    deck_id: str,
    body: models.DeckUpdateIn,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        deck = service.update_deck(user["id"], deck_id, body)
        return APIResponse(ok=True, data=deck, error=None)
    except ValueError as e:
        return value_error_response(response, e)


# 5. DELETE /decks/{deck_id} — вместе с картами и раскладами
@router.delete("/{deck_id}", response_model=APIResponse)
def delete_deck(
    deck_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        service.delete_deck(user["id"], deck_id)
    except ValueError as e:
        return value_error_response(response, e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─────────────────────────────────────
# Карты колоды
# ─────────────────────────────────────

@router.get("/{deck_id}/cards", response_model=APIResponse)
def list_cards(
    deck_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        return APIResponse(ok=True, data=service.list_cards(user["id"], deck_id), error=None)
    except ValueError as e:
        return value_error_response(response, e)


@router.post("/{deck_id}/cards", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
def create_card(
    deck_id: str,
    body: models.CardCreateIn,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        card = service.create_card(user["id"], deck_id, body)
        return APIResponse(ok=True, data=card, error=None)
    except ValueError as e:
        return value_error_response(response, e)


@cards_router.get("/{card_id}", response_model=APIResponse)
def get_card(
    card_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        return APIResponse(ok=True, data=service.get_card(user["id"], card_id), error=None)
    except ValueError as e:
        return value_error_response(response, e)


@cards_router.patch("/{card_id}", response_model=APIResponse)
def update_card(
    card_id: str,
    body: models.CardUpdateIn,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        card = service.update_card(user["id"], card_id, body)
        return APIResponse(ok=True, data=card, error=None)
    except ValueError as e:
        return value_error_response(response, e)


@cards_router.delete("/{card_id}", response_model=APIResponse)
def delete_card(
    card_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        service.delete_card(user["id"], card_id)
    except ValueError as e:
        return value_error_response(response, e)
    return APIResponse(ok=True, data={"deleted": card_id}, error=None)


# ─────────────────────────────────────
# Расклады колоды
# ─────────────────────────────────────

@router.get("/{deck_id}/spreads", response_model=APIResponse)
def list_spreads(
    deck_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        return APIResponse(ok=True, data=service.list_spreads(user["id"], deck_id), error=None)
    except ValueError as e:
        return value_error_response(response, e)


@router.post("/{deck_id}/spreads", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
def create_spread(
    deck_id: str,
    body: models.SpreadCreateIn,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        spread = service.create_spread(user["id"], deck_id, body)
        return APIResponse(ok=True, data=spread, error=None)
    except ValueError as e:
        return value_error_response(response, e)


@spreads_router.get("/{spread_id}", response_model=APIResponse)
def get_spread(
    spread_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        return APIResponse(ok=True, data=service.get_spread(user["id"], spread_id), error=None)
    except ValueError as e:
        return value_error_response(response, e)


@spreads_router.patch("/{spread_id}", response_model=APIResponse)
def update_spread(
    spread_id: str,
    body: models.SpreadUpdateIn,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        spread = service.update_spread(user["id"], spread_id, body)
        return APIResponse(ok=True, data=spread, error=None)
    except ValueError as e:
        return value_error_response(response, e)


@spreads_router.delete("/{spread_id}", response_model=APIResponse)
def delete_spread(
    spread_id: str,
    response: Response,
    user: dict = Depends(get_current_user),
    service: DeckService = Depends(get_deck_service),
):
    try:
        service.delete_spread(user["id"], spread_id)
    except ValueError as e:
        return value_error_response(response, e)
    return APIResponse(ok=True, data={"deleted": spread_id}, error=None)
