"""pytest configuration and fixtures."""

import os
import tempfile

# Point the app's default engine at a throwaway database before any imports
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault(
    "DATABASE_URL", "sqlite:///" + os.path.join(tempfile.mkdtemp(prefix="rally-"), "app.db")
)

import pytest  # noqa: E402

from db import Base, make_engine, make_sessionmaker  # noqa: E402
from models import Capture, Event, GameLobby, LobbyPresence, User  # noqa: E402
from scoring import EventStatus, Significance  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'rally.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


class Seeder:
    """Inserts fixture rows and commits each one."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def _add(self, obj):
        with self._session_factory() as session:
            session.add(obj)
            session.commit()
        return obj

    def user(self, name="Fan", points=0):
        return self._add(User(name=name, handle=f"@{name.lower()}", points=points))

    def event(self, status=EventStatus.LIVE, significance=Significance.REGULAR, title="Rivals vs Rivals"):
        return self._add(
            Event(
                title=title,
                sport="football",
                home_school_id="school-1",
                significance=significance.value,
                status=status.value,
            )
        )

    def lobby(self, event, checked_in=(), checked_out=()):
        lobby = self._add(GameLobby(event_id=event.id, fan_count=len(checked_in)))
        for user in checked_in:
            self._add(LobbyPresence(lobby_id=lobby.id, user_id=user.id, is_active=True))
        for user in checked_out:
            self._add(LobbyPresence(lobby_id=lobby.id, user_id=user.id, is_active=False))
        return lobby

    def capture(self, event, user, rally_count=0, moment_type="STANDARD", **kwargs):
        return self._add(
            Capture(
                event_id=event.id,
                user_id=user.id,
                image_url=kwargs.pop("image_url", "https://cdn.example.com/c.jpg"),
                moment_type=moment_type,
                base_points=10,
                rally_count=rally_count,
                total_points=10,
                **kwargs,
            )
        )

    def set_status(self, event, status):
        with self._session_factory() as session:
            session.get(Event, event.id).status = status.value
            session.commit()


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)
