"""Append-only points ledger and the balance that mirrors it."""

from __future__ import annotations

import logging

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from errors import NotFound
from models import Event, PointsEntry, User

logger = logging.getLogger(__name__)

CAPTURE_ACTIVATION = "Rally Capture"
VOTE_ACTIVATION = "Rally Vote"
MOMENT_OF_GAME_ACTIVATION = "Moment of the Game"


def award_points(db: Session, user_id: int, event: Event, activation_name: str, points: int) -> PointsEntry:
    """Append a ledger entry and move the user's balance by the same amount.

    Runs inside the caller's transaction and never commits.
    """
    result = db.execute(
        update(User).where(User.id == user_id).values(points=User.points + points)
    )
    if result.rowcount == 0:
        raise NotFound("User not found")

    entry = PointsEntry(
        user_id=user_id,
        event_id=event.id,
        school_id=event.home_school_id,
        activation_name=activation_name,
        points=points,
    )
    db.add(entry)
    db.flush()

    logger.debug(
        "Points awarded",
        extra={"user_id": user_id, "event_id": event.id, "activation": activation_name, "points": points},
    )
    return entry


def ledger_total(db: Session, user_id: int) -> int:
    total = (
        db.query(func.coalesce(func.sum(PointsEntry.points), 0))
        .filter(PointsEntry.user_id == user_id)
        .scalar()
    )
    return int(total)
