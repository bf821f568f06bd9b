"""Common pytest fixtures for the API tests.

Fixtures:
    - ``mongo``: in-memory mongomock database patched in as ``database.db``.
    - ``client``: FastAPI ``TestClient`` bound to the app.
    - ``make_*``: payload builders with valid defaults for each resource.
"""

from __future__ import annotations

from typing import Any, Callable, Dict

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app

Payload = Dict[str, Any]


@pytest.fixture
def mongo(monkeypatch: pytest.MonkeyPatch) -> Any:
    """Patch a fresh mongomock database in place of the real one."""
    mock_db = mongomock.MongoClient()["axe_test"]
    monkeypatch.setattr(database, "db", mock_db)
    database.ensure_indexes()
    return mock_db


@pytest.fixture
def client(mongo: Any) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_user() -> Callable[..., Payload]:
    def _make(**overrides: Any) -> Payload:
        data = {"firstName": "Ada", "lastName": "Axe", "email": "ada@example.com"}
        data.update(overrides)
        return data
    return _make


@pytest.fixture
def make_game() -> Callable[..., Payload]:
    def _make(**overrides: Any) -> Payload:
        data = {
            "gameId": 1,
            "player1Id": 10,
            "player2Id": 20,
            "leagueGame": True,
            "gameType": "standard",
            "ruleType": "WATL",
            "rounds": 10,
            "winningScore": 45,
            "player1Score": 45,
            "player2Score": 38,
            "player1Sticks": 9,
            "player2Sticks": 8,
            "player1Drops": 0,
            "player2Drops": 1,
            "seasonName": "Fall 2023",
            "seasonId": 3,
        }
        data.update(overrides)
        return data
    return _make


@pytest.fixture
def make_league() -> Callable[..., Payload]:
    def _make(**overrides: Any) -> Payload:
        data = {
            "league_id": 1,
            "league_name": "Tuesday Hatchets",
            "league_type": "STANDARD",
            "rule_type": "WATL",
            "game_type": "hatchet",
            "number_of_matches": 8,
            "killshot_average": 1.5,
            "throw_average": 3.2,
            "score_average": 48.0,
        }
        data.update(overrides)
        return data
    return _make


@pytest.fixture
def make_league_member() -> Callable[..., Payload]:
    def _make(**overrides: Any) -> Payload:
        data = {
            "league_member_id": 1,
            "league_id": 1,
            "league_member_first_name": "Brock",
            "league_member_last_name": "Lumber",
            "league_member_nickname": "Chopper",
        }
        data.update(overrides)
        return data
    return _make


@pytest.fixture
def make_team() -> Callable[..., Payload]:
    def _make(**overrides: Any) -> Payload:
        data = {"teamName": "Split Decision"}
        data.update(overrides)
        return data
    return _make


@pytest.fixture
def make_season() -> Callable[..., Payload]:
    def _make(**overrides: Any) -> Payload:
        data = {
            "seasonId": 1,
            "seasonName": "Spring 2024",
            "startDate": "2024-03-01T00:00:00",
            "endDate": "2024-05-31T00:00:00",
        }
        data.update(overrides)
        return data
    return _make
