"""Posting captures during a live game and reading an event's moment feed."""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

import scoring
from db import atomic
from errors import Forbidden, InvalidState, NotFound
from ledger import CAPTURE_ACTIVATION, award_points
from models import Capture, Event, Rally
from presence import is_checked_in, lobby_for_event
from schemas import (
    CaptureView,
    EventLeaderboardRow,
    EventLeaderboardView,
    FeedItem,
    FeedView,
    PostCaptureResult,
)

logger = logging.getLogger(__name__)

FEED_LIMIT = 100
EVENT_LEADERBOARD_LIMIT = 25


def rallies_given(db: Session, voter_id: int, event_id: int) -> int:
    """Number of rallies ``voter_id`` has cast on captures of ``event_id``."""
    return (
        db.query(func.count(Rally.id))
        .join(Capture, Capture.id == Rally.capture_id)
        .filter(Rally.voter_id == voter_id, Capture.event_id == event_id)
        .scalar()
    )


def post_capture(
    db: Session,
    event_id: int,
    user_id: int,
    image_url: str,
    caption: str | None = None,
    moment_type: str | None = None,
    is_in_stadium: bool | None = None,
) -> PostCaptureResult:
    with atomic(db):
        if not image_url:
            raise InvalidState("image_url is required")

        event = db.get(Event, event_id)
        if event is None:
            raise NotFound("Event not found")
        if event.status != scoring.EventStatus.LIVE.value:
            raise InvalidState("Captures only allowed during live events")

        lobby = lobby_for_event(db, event_id)
        if lobby is not None and not is_checked_in(db, lobby, user_id):
            raise Forbidden("You must be checked into this game to post captures")

        moment = scoring.parse_moment_type(moment_type)
        points = scoring.base_points(event.significance, moment)

        capture = Capture(
            event_id=event_id,
            user_id=user_id,
            image_url=str(image_url),
            caption=str(caption) if caption else None,
            moment_type=moment.value,
            is_in_stadium=is_in_stadium is not False,
            base_points=points,
            rally_count=0,
            total_points=points,
            is_moment_of_game=False,
            is_reported=False,
        )
        db.add(capture)
        db.flush()

        award_points(db, user_id, event, CAPTURE_ACTIVATION, points)

    logger.info(
        "Capture posted",
        extra={"capture_id": capture.id, "event_id": event_id, "user_id": user_id, "points": points},
    )
    return PostCaptureResult(capture=CaptureView.model_validate(capture), points_awarded=points)


def get_feed(db: Session, event_id: int, voter_id: int | None = None, sort: str = "latest") -> FeedView:
    sort = "top" if sort == "top" else "latest"

    with atomic(db):
        event = db.get(Event, event_id)
        if event is None:
            raise NotFound("Event not found")

        query = db.query(Capture).filter(Capture.event_id == event_id, Capture.is_reported.is_(False))
        if sort == "top":
            query = query.order_by(Capture.rally_count.desc(), Capture.created_at.asc(), Capture.id.asc())
        else:
            query = query.order_by(Capture.created_at.desc(), Capture.id.desc())
        captures = query.limit(FEED_LIMIT).all()

        rallied: set[int] = set()
        given = 0
        if voter_id is not None:
            capture_ids = [c.id for c in captures]
            if capture_ids:
                rallied = {
                    capture_id
                    for (capture_id,) in db.query(Rally.capture_id)
                    .filter(Rally.voter_id == voter_id, Rally.capture_id.in_(capture_ids))
                    .all()
                }
            given = rallies_given(db, voter_id, event_id)

        crowned = (
            db.query(Capture)
            .filter(
                Capture.event_id == event_id,
                Capture.is_moment_of_game.is_(True),
                Capture.is_reported.is_(False),
            )
            .first()
        )

    feed = [
        FeedItem.model_validate(c).model_copy(update={"has_rallied": c.id in rallied})
        for c in captures
    ]
    return FeedView(
        event_id=event.id,
        event_title=event.title,
        is_locked=event.status == scoring.EventStatus.COMPLETED.value,
        sort=sort,
        total_captures=len(feed),
        rallies_remaining=max(0, scoring.RALLIES_PER_GAME - given),
        rallies_per_game=scoring.RALLIES_PER_GAME,
        moment_of_game=CaptureView.model_validate(crowned) if crowned else None,
        feed=feed,
    )


def report_capture(db: Session, capture_id: int) -> CaptureView:
    """Hide a capture from feeds, leaderboards and crowning. It is never deleted."""
    with atomic(db):
        capture = db.get(Capture, capture_id)
        if capture is None:
            raise NotFound("Capture not found")
        capture.is_reported = True

    logger.info("Capture reported", extra={"capture_id": capture_id, "event_id": capture.event_id})
    return CaptureView.model_validate(capture)


def get_event_leaderboard(db: Session, event_id: int, limit: int = EVENT_LEADERBOARD_LIMIT) -> EventLeaderboardView:
    with atomic(db):
        if db.get(Event, event_id) is None:
            raise NotFound("Event not found")
        captures = (
            db.query(Capture)
            .filter(Capture.event_id == event_id, Capture.is_reported.is_(False))
            .order_by(Capture.rally_count.desc(), Capture.created_at.asc(), Capture.id.asc())
            .limit(limit)
            .all()
        )

    return EventLeaderboardView(
        event_id=event_id,
        leaderboard=[
            EventLeaderboardRow(rank=i + 1, capture=CaptureView.model_validate(c))
            for i, c in enumerate(captures)
        ],
    )
