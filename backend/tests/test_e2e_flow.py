"""End-to-end flow over the public map layer API.

This module drives the application the way a client would: create layers,
read them back, and search for points, all against the in-memory
repository. It checks that create-then-fetch round-trips name and geometry
unchanged and that spatial search reflects what has been stored.
"""

from __future__ import annotations

from fastapi import testclient

from app import main
from app.db import database

BASE = "/api/v1/map-layers"


def test_create_fetch_and_search_flow() -> None:
    """Create two layers, fetch one back, and search around them."""
    client = testclient.TestClient(
        main.create_app(database.InMemoryMapLayerRepository())
    )

    square = {"name": "Test Layer", "geom": "POLYGON((0 0, 0 10, 10 10, 10 0, 0 0))"}
    far = {
        "name": "Far Layer",
        "geom": "POLYGON((100 40, 100 50, 110 50, 110 40, 100 40))",
    }

    created = client.post(BASE, json=square)
    assert created.status_code == 201
    layer_id = created.json()["id"]
    assert client.post(BASE, json=far).status_code == 201

    fetched = client.get(f"{BASE}/{layer_id}")
    assert fetched.status_code == 200
    assert fetched.json()["name"] == square["name"]
    assert fetched.json()["geom"] == square["geom"]

    listed = client.get(BASE).json()
    assert [layer["name"] for layer in listed] == ["Test Layer", "Far Layer"]

    inside = client.get(f"{BASE}/search", params={"latitude": 5, "longitude": 5})
    assert [r["name"] for r in inside.json()["results"]] == ["Test Layer"]

    # latitude 45, longitude 105 is inside "Far Layer"; swapped it is not.
    far_hit = client.get(
        f"{BASE}/search",
        params={"latitude": 45, "longitude": 105},
    )
    assert far_hit.json()["count"] == 1
    assert far_hit.json()["results"][0]["name"] == "Far Layer"

    swapped = client.get(
        f"{BASE}/search",
        params={"latitude": 105, "longitude": 45},
    )
    assert swapped.status_code == 400

    nowhere = client.get(
        f"{BASE}/search",
        params={"latitude": -45, "longitude": -60},
    )
    assert nowhere.json() == {
        "query": {"latitude": -45.0, "longitude": -60.0},
        "results": [],
        "count": 0,
    }
