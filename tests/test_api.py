"""HTTP-level tests: routing, status codes and the admin key."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from db import get_db
from main import app
from scoring import EventStatus, Significance


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def open_admin():
    with patch("main.settings") as mock_settings:
        mock_settings.admin_api_key = None
        yield mock_settings


def test_home(client):
    assert client.get("/").json()["status"] == "ok"


def test_capture_rally_crown_flow(client, seed, open_admin):
    author, voter = seed.user("Author"), seed.user("Voter")
    event = seed.event(significance=Significance.RIVALRY)

    posted = client.post(
        f"/events/{event.id}/captures",
        json={"user_id": author.id, "image_url": "https://cdn/1.jpg", "moment_type": "EMOTIONAL"},
    )
    assert posted.status_code == 200
    capture_id = posted.json()["capture"]["id"]
    assert posted.json()["points_awarded"] == 40

    rallied = client.post(f"/captures/{capture_id}/rally", json={"voter_id": voter.id})
    assert rallied.json() == {"new_rally_count": 1, "rallies_remaining": 11, "voter_points_awarded": 2}

    feed = client.get(f"/events/{event.id}/feed", params={"voter_id": voter.id, "sort": "top"}).json()
    assert feed["feed"][0]["has_rallied"] is True
    assert feed["feed"][0]["total_points"] == 60

    crowned = client.post(f"/events/{event.id}/crown")
    assert crowned.status_code == 200
    assert crowned.json()["bonus_points_awarded"] == 200

    season = client.get("/leaderboard/season").json()
    assert season["leaderboard"][0]["moment_of_game_count"] == 1


def test_error_taxonomy_maps_to_status_codes(client, seed):
    author, voter = seed.user("Author"), seed.user("Voter")
    live = seed.event()
    upcoming = seed.event(status=EventStatus.UPCOMING)
    lobby_event = seed.event()
    seed.lobby(lobby_event)
    capture = seed.capture(live, author)

    assert client.post("/events/999/captures", json={"user_id": author.id, "image_url": "x"}).status_code == 404
    resp = client.post(f"/events/{upcoming.id}/captures", json={"user_id": author.id, "image_url": "x"})
    assert resp.status_code == 400
    assert resp.json() == {"detail": "Captures only allowed during live events"}
    assert client.post(f"/events/{lobby_event.id}/captures", json={"user_id": author.id, "image_url": "x"}).status_code == 403
    assert client.post(f"/captures/{capture.id}/rally", json={"voter_id": author.id}).status_code == 400

    assert client.post(f"/captures/{capture.id}/rally", json={"voter_id": voter.id}).status_code == 200
    duplicate = client.post(f"/captures/{capture.id}/rally", json={"voter_id": voter.id})
    assert duplicate.status_code == 409
    assert duplicate.json() == {"detail": "You already rallied this capture"}


def test_crown_requires_admin_key(client, seed):
    author = seed.user()
    event = seed.event()
    seed.capture(event, author, rally_count=2)

    with patch("main.settings") as mock_settings:
        mock_settings.admin_api_key = "k" * 32
        assert client.post(f"/events/{event.id}/crown").status_code == 403
        assert client.post(f"/events/{event.id}/crown", headers={"X-Admin-Key": "nope"}).status_code == 403
        assert client.post(f"/events/{event.id}/crown", headers={"X-Admin-Key": "k" * 32}).status_code == 200


def test_report_and_checkin_routes(client, seed, open_admin):
    author = seed.user()
    event = seed.event()
    capture = seed.capture(event, author)

    assert client.post(f"/events/{event.id}/checkin", json={"user_id": author.id}).json()["fan_count"] == 1
    assert client.post(f"/events/{event.id}/checkout", json={"user_id": author.id}).json()["fan_count"] == 0
    assert client.post(f"/captures/{capture.id}/report").json()["id"] == capture.id
    assert client.get(f"/events/{event.id}/leaderboard").json()["leaderboard"] == []
    assert client.get("/attribution", params={"days": 7}).json()["period"] == "7d"
