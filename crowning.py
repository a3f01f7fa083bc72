"""Crowning the Moment of the Game for an event."""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

import scoring
from db import atomic
from errors import InvalidState, NotFound
from ledger import MOMENT_OF_GAME_ACTIVATION, award_points
from models import Capture, Event
from schemas import CrownResult

logger = logging.getLogger(__name__)


def select_winner(db: Session, event_id: int) -> Capture | None:
    """Most-rallied visible capture; ties go to the one posted first."""
    return (
        db.query(Capture)
        .filter(Capture.event_id == event_id, Capture.is_reported.is_(False))
        .order_by(Capture.rally_count.desc(), Capture.created_at.asc(), Capture.id.asc())
        .first()
    )


def crown_moment_of_game(db: Session, event_id: int) -> CrownResult:
    """Mark the event's top capture as Moment of the Game and pay its author.

    Only one capture per event carries the crown. Re-running with an unchanged
    winner leaves the crown in place and pays nothing.
    """
    with atomic(db):
        event = db.query(Event).filter(Event.id == event_id).with_for_update().first()
        if event is None:
            raise NotFound("Event not found")

        winner = select_winner(db, event_id)
        if winner is None or winner.rally_count == 0:
            raise InvalidState("No captures with rallies to crown")

        previous = (
            db.query(Capture)
            .filter(Capture.event_id == event_id, Capture.is_moment_of_game.is_(True))
            .order_by(Capture.id.asc())
            .all()
        )
        previous_ids = [c.id for c in previous]
        changed = previous_ids != [winner.id]

        db.execute(
            update(Capture)
            .where(Capture.event_id == event_id, Capture.id != winner.id, Capture.is_moment_of_game.is_(True))
            .values(is_moment_of_game=False)
        )
        winner.is_moment_of_game = True

        bonus = 0
        if winner.id not in previous_ids:
            bonus = scoring.moment_of_game_bonus(event.significance)
            award_points(db, winner.user_id, event, MOMENT_OF_GAME_ACTIVATION, bonus)

    previous_capture_id = next((i for i in previous_ids if i != winner.id), None)
    logger.info(
        "Moment of the Game crowned",
        extra={
            "event_id": event_id,
            "capture_id": winner.id,
            "bonus": bonus,
            "changed": changed,
            "previous_capture_id": previous_capture_id,
        },
    )
    return CrownResult(
        capture_id=winner.id,
        user_id=winner.user_id,
        rally_count=winner.rally_count,
        bonus_points_awarded=bonus,
        changed=changed,
        previous_capture_id=previous_capture_id,
    )
