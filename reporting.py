"""Season leaderboard and sponsor attribution rollups.

Both are computed on demand from the capture table; nothing is materialised.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from db import atomic
from models import Capture, Event, User
from presence import fan_counts
from schemas import (
    AttributionView,
    EventAttribution,
    LeaderboardView,
    MomentTypeShare,
    OverallAttribution,
    SeasonLeaderboardRow,
    SponsoredAttribution,
    UserSummary,
)
from scoring import MomentType, round_points

SEASON_LEADERBOARD_LIMIT = 50
DEFAULT_WINDOW_DAYS = 30
MAX_WINDOW_DAYS = 365


def get_season_leaderboard(db: Session, limit: int = SEASON_LEADERBOARD_LIMIT) -> LeaderboardView:
    total_rallies = func.coalesce(func.sum(Capture.rally_count), 0)
    crowns = func.coalesce(func.sum(case((Capture.is_moment_of_game.is_(True), 1), else_=0)), 0)

    with atomic(db):
        rows = (
            db.query(
                Capture.user_id,
                total_rallies.label("total_rallies"),
                func.count(Capture.id).label("capture_count"),
                crowns.label("moment_of_game_count"),
            )
            .filter(Capture.is_reported.is_(False))
            .group_by(Capture.user_id)
            .order_by(total_rallies.desc(), Capture.user_id.asc())
            .limit(limit)
            .all()
        )
        user_ids = [row.user_id for row in rows]
        users = {u.id: u for u in db.query(User).filter(User.id.in_(user_ids)).all()} if user_ids else {}

    leaderboard = []
    for i, row in enumerate(rows):
        user = users.get(row.user_id)
        summary = (
            UserSummary.model_validate(user)
            if user is not None
            else UserSummary(id=row.user_id, name="Unknown", handle="@unknown")
        )
        leaderboard.append(
            SeasonLeaderboardRow(
                rank=i + 1,
                user=summary,
                total_rallies=int(row.total_rallies),
                capture_count=int(row.capture_count),
                moment_of_game_count=int(row.moment_of_game_count),
            )
        )
    return LeaderboardView(leaderboard=leaderboard)


def _window_days(window_days: int | None) -> int:
    if not window_days or window_days <= 0:
        return DEFAULT_WINDOW_DAYS
    return min(window_days, MAX_WINDOW_DAYS)


def get_attribution(db: Session, window_days: int | None = DEFAULT_WINDOW_DAYS, now: datetime | None = None) -> AttributionView:
    """Engagement with sponsored captures over the trailing window.

    ``engagement_rate`` is rallies per checked-in fan as a whole percentage.
    """
    days = _window_days(window_days)
    since = (now or datetime.now(timezone.utc)) - timedelta(days=days)
    in_window = (Capture.created_at >= since, Capture.is_reported.is_(False))

    with atomic(db):
        sponsored = (
            db.query(Capture, Event)
            .join(Event, Event.id == Capture.event_id)
            .filter(*in_window, Capture.moment_type == MomentType.SPONSORED.value)
            .all()
        )
        fans_by_event = fan_counts(db, [capture.event_id for capture, _ in sponsored])

        overall_captures, overall_rallies = (
            db.query(func.count(Capture.id), func.coalesce(func.sum(Capture.rally_count), 0))
            .filter(*in_window)
            .one()
        )
        distribution = (
            db.query(Capture.moment_type, func.count(Capture.id), func.coalesce(func.sum(Capture.rally_count), 0))
            .filter(*in_window)
            .group_by(Capture.moment_type)
            .order_by(Capture.moment_type.asc())
            .all()
        )

    total_captures = len(sponsored)
    total_rallies = sum(capture.rally_count for capture, _ in sponsored)
    total_fans = sum(fans_by_event.values())

    breakdown: dict[int, EventAttribution] = {}
    for capture, event in sponsored:
        row = breakdown.get(event.id)
        if row is None:
            row = breakdown[event.id] = EventAttribution(
                event_id=event.id,
                title=event.title,
                sport=event.sport or "",
                captures=0,
                rallies=0,
                fan_count=fans_by_event.get(event.id, 0),
            )
        row.captures += 1
        row.rallies += capture.rally_count

    return AttributionView(
        period=f"{days}d",
        sponsored=SponsoredAttribution(
            total_captures=total_captures,
            total_rallies=total_rallies,
            total_checked_in_fans=total_fans,
            engagement_rate=round_points(Decimal(total_rallies * 100) / total_fans) if total_fans else 0,
            avg_rallies_per_capture=round_points(Decimal(total_rallies) / total_captures) if total_captures else 0,
            event_breakdown=sorted(breakdown.values(), key=lambda r: (-r.rallies, r.event_id)),
        ),
        overall=OverallAttribution(
            total_captures=int(overall_captures),
            total_rallies=int(overall_rallies),
            moment_distribution=[
                MomentTypeShare(type=moment_type, captures=int(count), rallies=int(rallies))
                for moment_type, count, rallies in distribution
            ],
        ),
    )
