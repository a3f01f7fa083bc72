from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint, Boolean, ForeignKey, Index

from db import Base
from scoring import EventStatus, MomentType, Significance


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    handle = Column(String, nullable=True)

    # Running balance; only ever moved together with a PointsEntry row
    points = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    sport = Column(String, nullable=True)
    home_school_id = Column(String, nullable=True)

    significance = Column(String, nullable=False, default=Significance.REGULAR.value)
    status = Column(String, nullable=False, default=EventStatus.UPCOMING.value)
    starts_at = Column(DateTime(timezone=True), nullable=True)


class GameLobby(Base):
    __tablename__ = "game_lobbies"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    fan_count = Column(Integer, nullable=False, default=0)


class LobbyPresence(Base):
    __tablename__ = "lobby_presences"

    id = Column(Integer, primary_key=True, index=True)
    lobby_id = Column(Integer, ForeignKey("game_lobbies.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    checked_in_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("lobby_id", "user_id", name="uq_lobby_presences_lobby_user"),
    )


class Capture(Base):
    __tablename__ = "captures"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    image_url = Column(String, nullable=False)
    caption = Column(String, nullable=True)
    moment_type = Column(String, nullable=False, default=MomentType.STANDARD.value)
    is_in_stadium = Column(Boolean, nullable=False, default=True)

    # Scoring
    base_points = Column(Integer, nullable=False)
    rally_count = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False)

    is_moment_of_game = Column(Boolean, nullable=False, default=False)
    is_reported = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)


class Rally(Base):
    __tablename__ = "rallies"

    id = Column(Integer, primary_key=True, index=True)
    capture_id = Column(Integer, ForeignKey("captures.id"), nullable=False)
    voter_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("capture_id", "voter_id", name="uq_rallies_capture_voter"),
    )


class PointsEntry(Base):
    __tablename__ = "points_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True)
    school_id = Column(String, nullable=True)

    activation_name = Column(String, nullable=False)
    points = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("ix_points_entries_user_event", "user_id", "event_id"),
    )
