"""Tests for lobby check-in and check-out."""

import pytest

from errors import NotFound
from models import GameLobby
from presence import check_in, check_out, fan_counts


def test_check_in_creates_lobby_and_counts_fans(db, seed):
    a, b = seed.user("A"), seed.user("B")
    event = seed.event()

    assert check_in(db, event.id, a.id).fan_count == 1
    assert check_in(db, event.id, b.id).fan_count == 2
    assert check_in(db, event.id, b.id).fan_count == 2

    result = check_out(db, event.id, a.id)
    assert result.is_checked_in is False
    assert result.fan_count == 1
    assert fan_counts(db, [event.id, event.id]) == {event.id: 1}
    assert db.query(GameLobby).count() == 1


def test_check_in_unknown_event(db, seed):
    fan = seed.user()
    with pytest.raises(NotFound):
        check_in(db, 55, fan.id)


def test_check_out_without_lobby(db, seed):
    fan = seed.user()
    event = seed.event()
    with pytest.raises(NotFound):
        check_out(db, event.id, fan.id)


def test_fan_counts_empty(db):
    assert fan_counts(db, []) == {}
