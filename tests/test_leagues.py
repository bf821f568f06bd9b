"""League endpoints: enum validation on league and rule type."""

from __future__ import annotations

from typing import Any, Callable, Dict

import pytest
from fastapi.testclient import TestClient


@pytest.mark.parametrize("field,value", [("league_type", "TRIO"), ("rule_type", "NATF")])
def test_unknown_enum_value_is_rejected(client: TestClient, make_league: Callable[..., Dict[str, Any]], field: str, value: str) -> None:
    response = client.post("/leagues", json=make_league(**{field: value}))
    assert response.status_code == 400
    assert client.get("/leagues").json() == []


def test_patch_enum_value(client: TestClient, make_league: Callable[..., Dict[str, Any]]) -> None:
    league = client.post("/leagues", json=make_league()).json()

    assert client.patch(f"/leagues/{league['id']}", json={"league_type": "DUO"}).json()["league_type"] == "DUO"
    assert client.patch(f"/leagues/{league['id']}", json={"rule_type": "BOGUS"}).status_code == 400
    assert client.get(f"/leagues/{league['id']}").json()["rule_type"] == "WATL"


def test_patch_to_taken_league_id_is_rejected(client: TestClient, make_league: Callable[..., Dict[str, Any]]) -> None:
    client.post("/leagues", json=make_league(league_id=1))
    second = client.post("/leagues", json=make_league(league_id=2)).json()

    response = client.patch(f"/leagues/{second['id']}", json={"league_id": 1})
    assert response.status_code == 400
