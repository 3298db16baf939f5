from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import Depends

from ..decks.service import DeckService, get_deck_service
from ..settings import get_settings
from .engine import Card, ReadingSession, Spread
from .models import ReadingStateModel, RevealToggleResult

logger = logging.getLogger(__name__)

# Живые сессии гадания - только in-memory, в БД ничего не пишется.
_SESSIONS: Dict[str, "LiveReading"] = {}


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LiveReading:
    session_id: str
    user_id: str
    deck_id: str
    session: ReadingSession
    created_at: datetime = field(default_factory=_now)
    last_active_at: datetime = field(default_factory=_now)

    def touch(self) -> None:
        self.last_active_at = _now()

    def to_model(self) -> ReadingStateModel:
        spread = self.session.spread
        return ReadingStateModel(
            session_id=self.session_id,
            deck_id=self.deck_id,
            state=self.session.state,
            spread=spread.to_dict() if spread is not None else None,
            cards=self.session.render(),
            revealed=[d.drawn_id for d in self.session.drawn if d.drawn_id in self.session.revealed],
            draw_count=self.session.draw_count,
            created_at=self.created_at.isoformat(),
            last_active_at=self.last_active_at.isoformat(),
        )


class ReadingService:
    """
    Экран гадания поверх Reading Engine.

    Колоды/карты/расклады берём из DeckService (он же проверяет владельца),
    а сама сессия принадлежит создавшему её пользователю: чужой session_id
    для него «не найден».
    """

    def __init__(
        self,
        decks: DeckService,
        sessions: Dict[str, LiveReading] | None = None,
        rng: Any | None = None,
        ttl_minutes: int | None = None,
    ) -> None:
        self._decks = decks
        self._sessions = _SESSIONS if sessions is None else sessions
        self._rng = rng
        if ttl_minutes is None:
            ttl_minutes = get_settings().session_ttl_minutes
        self._ttl = timedelta(minutes=ttl_minutes)

    # ---- internal helpers ----

    def _purge_expired(self) -> None:
        if self._ttl.total_seconds() <= 0:
            return
        deadline = _now() - self._ttl
        expired = [sid for sid, r in self._sessions.items() if r.last_active_at < deadline]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("Purged %d idle reading sessions", len(expired))

    def _get_live(self, user_id: str, session_id: str) -> LiveReading:
        self._purge_expired()
        live = self._sessions.get(session_id)
        if live is None or live.user_id != user_id:
            raise ValueError("reading_not_found")
        live.touch()
        return live

    def _deck_spreads(self, user_id: str, deck_id: str) -> List[Spread]:
        return [
            Spread.from_dict(s.model_dump())
            for s in self._decks.list_spreads(user_id, deck_id)
        ]

    def _deck_cards(self, user_id: str, deck_id: str) -> List[Card]:
        return [
            Card.from_dict(c.model_dump())
            for c in self._decks.list_cards(user_id, deck_id)
        ]

    @staticmethod
    def _find_spread(spreads: List[Spread], spread_id: str) -> Spread:
        for spread in spreads:
            if spread.id == spread_id:
                return spread
        raise ValueError("spread_not_found")

    # ---- public API ----

    def start_reading(
        self,
        user_id: str,
        deck_id: str,
        spread_id: Optional[str] = None,
    ) -> ReadingStateModel:
        spreads = self._deck_spreads(user_id, deck_id)

        session = ReadingSession() if self._rng is None else ReadingSession(rng=self._rng)
        if spread_id:
            session.select_spread(self._find_spread(spreads, spread_id))
        elif spreads:
            # как и экран гадания: по умолчанию первый расклад колоды
            session.select_spread(spreads[0])

        self._purge_expired()
        live = LiveReading(
            session_id=str(uuid4()),
            user_id=user_id,
            deck_id=deck_id,
            session=session,
        )
        self._sessions[live.session_id] = live

        logger.info(
            "Started reading: user_id=%s session_id=%s deck_id=%s spread_id=%s",
            user_id,
            live.session_id,
            deck_id,
            session.spread.id if session.spread else None,
        )
        return live.to_model()

    def get_reading(self, user_id: str, session_id: str) -> ReadingStateModel:
        return self._get_live(user_id, session_id).to_model()

    def select_spread(self, user_id: str, session_id: str, spread_id: str) -> ReadingStateModel:
        live = self._get_live(user_id, session_id)
        spread = self._find_spread(self._deck_spreads(user_id, live.deck_id), spread_id)
        live.session.select_spread(spread)
        return live.to_model()

    def draw(self, user_id: str, session_id: str) -> ReadingStateModel:
        """
        Перемешать и выложить карты. InvalidDrawState пробрасывается наверх:
        роутер превращает его в пустое состояние с подсказкой.
        """
        live = self._get_live(user_id, session_id)

        if live.session.spread is None:
            spreads = self._deck_spreads(user_id, live.deck_id)
            if spreads:
                live.session.select_spread(spreads[0])

        cards = self._deck_cards(user_id, live.deck_id)
        drawn = live.session.draw(cards)

        logger.info(
            "Drew cards: session_id=%s spread_id=%s drawn=%d reversed=%d",
            session_id,
            live.session.spread.id,
            len(drawn),
            sum(1 for d in drawn if d.is_reversed),
        )
        return live.to_model()

    def toggle_reveal(self, user_id: str, session_id: str, drawn_id: str) -> RevealToggleResult:
        live = self._get_live(user_id, session_id)
        revealed = live.session.toggle_reveal(drawn_id)
        return RevealToggleResult(drawn_id=drawn_id, revealed=revealed, reading=live.to_model())

    def reveal_all(self, user_id: str, session_id: str) -> ReadingStateModel:
        live = self._get_live(user_id, session_id)
        live.session.reveal_all()
        return live.to_model()

    def reset_reading(self, user_id: str, session_id: str) -> ReadingStateModel:
        live = self._get_live(user_id, session_id)
        live.session.reset_reading()
        return live.to_model()

    def close_reading(self, user_id: str, session_id: str) -> None:
        self._get_live(user_id, session_id)
        del self._sessions[session_id]
        logger.info("Closed reading: user_id=%s session_id=%s", user_id, session_id)


def get_reading_service(decks: DeckService = Depends(get_deck_service)) -> ReadingService:
    return ReadingService(decks)
