"""Request bodies and response views for the capture service."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class CaptureCreate(BaseModel):
    user_id: int
    image_url: str
    caption: str | None = None
    moment_type: str | None = None
    is_in_stadium: bool | None = None


class RallyCreate(BaseModel):
    voter_id: int


class PresenceUpdate(BaseModel):
    user_id: int


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    handle: str | None = None


class CaptureView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    user_id: int
    image_url: str
    caption: str | None = None
    moment_type: str
    is_in_stadium: bool
    base_points: int
    rally_count: int
    total_points: int
    is_moment_of_game: bool
    created_at: datetime | None = None


class PostCaptureResult(BaseModel):
    capture: CaptureView
    points_awarded: int


class FeedItem(CaptureView):
    has_rallied: bool = False


class FeedView(BaseModel):
    event_id: int
    event_title: str
    is_locked: bool
    sort: str
    total_captures: int
    rallies_remaining: int
    rallies_per_game: int
    moment_of_game: CaptureView | None = None
    feed: list[FeedItem]


class RallyResult(BaseModel):
    new_rally_count: int
    rallies_remaining: int
    voter_points_awarded: int


class CrownResult(BaseModel):
    capture_id: int
    user_id: int
    rally_count: int
    bonus_points_awarded: int
    changed: bool
    previous_capture_id: int | None = None


class EventLeaderboardRow(BaseModel):
    rank: int
    capture: CaptureView


class EventLeaderboardView(BaseModel):
    event_id: int
    leaderboard: list[EventLeaderboardRow]


class SeasonLeaderboardRow(BaseModel):
    rank: int
    user: UserSummary
    total_rallies: int
    capture_count: int
    moment_of_game_count: int


class LeaderboardView(BaseModel):
    leaderboard: list[SeasonLeaderboardRow]


class EventAttribution(BaseModel):
    event_id: int
    title: str
    sport: str
    captures: int
    rallies: int
    fan_count: int


class MomentTypeShare(BaseModel):
    type: str
    captures: int
    rallies: int


class SponsoredAttribution(BaseModel):
    total_captures: int
    total_rallies: int
    total_checked_in_fans: int
    engagement_rate: int
    avg_rallies_per_capture: int
    event_breakdown: list[EventAttribution]


class OverallAttribution(BaseModel):
    total_captures: int
    total_rallies: int
    moment_distribution: list[MomentTypeShare]


class AttributionView(BaseModel):
    period: str
    sponsored: SponsoredAttribution
    overall: OverallAttribution


class PresenceResult(BaseModel):
    event_id: int
    user_id: int
    is_checked_in: bool
    fan_count: int
