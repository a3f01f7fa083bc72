"""Casting rallies (up-votes) on captures within a per-game budget."""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import scoring
from captures import rallies_given
from db import atomic
from errors import Conflict, InvalidState, NotFound
from ledger import VOTE_ACTIVATION, award_points
from models import Capture, Event, Rally, User
from schemas import RallyResult

logger = logging.getLogger(__name__)

DUPLICATE_RALLY = "You already rallied this capture"


def cast_rally(db: Session, capture_id: int, voter_id: int) -> RallyResult:
    """Record one rally from ``voter_id`` on ``capture_id`` and rescore the capture.

    The rally row, the capture's new count and score, and the voter's reward
    are committed together or not at all. Checks run in this order:

    1. the capture exists (NotFound)
    2. its event is not completed (InvalidState)
    3. the voter is not the author (InvalidState)
    4. the voter has rallies left for this event (InvalidState)
    5. the voter has not rallied this capture yet (Conflict)

    The (capture, voter) unique constraint is the final word on duplicates: a
    concurrent duplicate that slips past step 5 fails the insert and is
    reported as Conflict as well.
    """
    try:
        with atomic(db):
            capture = db.get(Capture, capture_id)
            if capture is None:
                raise NotFound("Capture not found")

            event = db.get(Event, capture.event_id)
            if event.status == scoring.EventStatus.COMPLETED.value:
                raise InvalidState("This game's feed is locked")
            if capture.user_id == voter_id:
                raise InvalidState("You cannot rally your own capture")

            # Serialises this voter's rallies so two requests cannot both spend the last one
            voter = db.query(User).filter(User.id == voter_id).with_for_update().first()
            if voter is None:
                raise NotFound("User not found")

            given = rallies_given(db, voter_id, capture.event_id)
            if given >= scoring.RALLIES_PER_GAME:
                raise InvalidState(f"You've used all {scoring.RALLIES_PER_GAME} rallies for this game")

            existing = (
                db.query(Rally.id)
                .filter(Rally.capture_id == capture_id, Rally.voter_id == voter_id)
                .first()
            )
            if existing is not None:
                raise Conflict(DUPLICATE_RALLY)

            db.add(Rally(capture_id=capture_id, voter_id=voter_id))
            db.flush()

            new_count = db.execute(
                update(Capture)
                .where(Capture.id == capture_id)
                .values(rally_count=Capture.rally_count + 1)
                .returning(Capture.rally_count)
            ).scalar_one()
            db.execute(
                update(Capture)
                .where(Capture.id == capture_id)
                .values(total_points=scoring.total_points(new_count, event.significance, capture.moment_type))
            )

            award_points(db, voter_id, event, VOTE_ACTIVATION, scoring.RALLY_VOTER_POINTS)
    except IntegrityError as exc:
        logger.info(
            "Duplicate rally rejected by constraint",
            extra={"capture_id": capture_id, "voter_id": voter_id},
        )
        raise Conflict(DUPLICATE_RALLY) from exc

    logger.info(
        "Rally cast",
        extra={"capture_id": capture_id, "voter_id": voter_id, "rally_count": new_count},
    )
    return RallyResult(
        new_rally_count=new_count,
        rallies_remaining=scoring.RALLIES_PER_GAME - (given + 1),
        voter_points_awarded=scoring.RALLY_VOTER_POINTS,
    )
