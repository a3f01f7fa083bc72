"""Game lobby presence: who is checked into an event's venue."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from db import atomic
from errors import NotFound
from models import Event, GameLobby, LobbyPresence, User
from schemas import PresenceResult

logger = logging.getLogger(__name__)


def lobby_for_event(db: Session, event_id: int) -> GameLobby | None:
    return db.query(GameLobby).filter(GameLobby.event_id == event_id).first()


def is_checked_in(db: Session, lobby: GameLobby, user_id: int) -> bool:
    presence = (
        db.query(LobbyPresence)
        .filter(LobbyPresence.lobby_id == lobby.id, LobbyPresence.user_id == user_id)
        .first()
    )
    return bool(presence and presence.is_active)


def fan_counts(db: Session, event_ids: Iterable[int]) -> dict[int, int]:
    ids = list(set(event_ids))
    if not ids:
        return {}
    rows = (
        db.query(GameLobby.event_id, GameLobby.fan_count)
        .filter(GameLobby.event_id.in_(ids))
        .all()
    )
    return {event_id: fan_count for event_id, fan_count in rows}


def _refresh_fan_count(db: Session, lobby: GameLobby) -> int:
    db.flush()
    active = (
        db.query(func.count(LobbyPresence.id))
        .filter(LobbyPresence.lobby_id == lobby.id, LobbyPresence.is_active.is_(True))
        .scalar()
    )
    lobby.fan_count = active
    return active


def check_in(db: Session, event_id: int, user_id: int) -> PresenceResult:
    with atomic(db):
        if db.get(Event, event_id) is None:
            raise NotFound("Event not found")
        if db.get(User, user_id) is None:
            raise NotFound("User not found")

        lobby = lobby_for_event(db, event_id)
        if lobby is None:
            lobby = GameLobby(event_id=event_id)
            db.add(lobby)
            db.flush()

        presence = (
            db.query(LobbyPresence)
            .filter(LobbyPresence.lobby_id == lobby.id, LobbyPresence.user_id == user_id)
            .first()
        )
        if presence is None:
            db.add(LobbyPresence(lobby_id=lobby.id, user_id=user_id, is_active=True))
        else:
            presence.is_active = True
            presence.checked_in_at = datetime.now(timezone.utc)

        count = _refresh_fan_count(db, lobby)

    logger.info("Fan checked in", extra={"event_id": event_id, "user_id": user_id, "fan_count": count})
    return PresenceResult(event_id=event_id, user_id=user_id, is_checked_in=True, fan_count=count)


def check_out(db: Session, event_id: int, user_id: int) -> PresenceResult:
    with atomic(db):
        lobby = lobby_for_event(db, event_id)
        if lobby is None:
            raise NotFound("Lobby not found")

        presence = (
            db.query(LobbyPresence)
            .filter(LobbyPresence.lobby_id == lobby.id, LobbyPresence.user_id == user_id)
            .first()
        )
        if presence is not None:
            presence.is_active = False

        count = _refresh_fan_count(db, lobby)

    logger.info("Fan checked out", extra={"event_id": event_id, "user_id": user_id, "fan_count": count})
    return PresenceResult(event_id=event_id, user_id=user_id, is_checked_in=False, fan_count=count)
