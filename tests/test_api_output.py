"""Tests for API output formatting and input validation."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from turbo_loader.api import app, build_placements_render
from turbo_loader.models import Placement

client = TestClient(app)


@pytest.fixture(autouse=True)
def node_budget_env(monkeypatch):
    monkeypatch.setenv("TURBO_WALL_TIME_LIMIT", "none")
    monkeypatch.setenv("TURBO_CONTAINERS_FILE", "")


def test_health() -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_containers_lists_presets() -> None:
    response = client.get("/containers")

    assert response.status_code == 200
    ids = [c["id"] for c in response.json()["containers"]]
    assert ids == ["K20", "K40", "K40HC", "K45HC"]


def test_containers_from_json_catalog(monkeypatch, tmp_path) -> None:
    path = tmp_path / "containers.json"
    path.write_text(json.dumps({
        "containers": [{"id": "T1", "name": "Test", "length": 2000, "width": 1000, "height": 1000, "maxLoad": 500}]
    }))
    monkeypatch.setenv("TURBO_CONTAINERS_FILE", str(path))

    response = client.get("/containers")

    assert [c["id"] for c in response.json()["containers"]] == ["T1"]


def test_success_response_has_guaranteed_fields() -> None:
    """Test that success responses always have guaranteed fields."""
    request = {
        "box": {"length": 120, "width": 100, "height": 100, "weight": 50},
        "container_id": "K20",
    }

    response = client.post("/pack", json=request)

    assert response.status_code == 200
    data = response.json()
    assert data["container"]["id"] == "K20"
    assert data["box_mm"] == [1200, 1000, 1000]
    assert data["total_boxes"] == len(data["placements"])
    assert data["total_boxes"] >= 4
    assert data["loadable_boxes"] == data["total_boxes"]
    assert data["weight_restricted"] is False
    assert 0 < data["fill_rate"] <= 1
    assert data["container_volume_m3"] == pytest.approx(5.9 * 2.34 * 2.39)
    assert "placements_render" not in data


def test_render_data_in_meters() -> None:
    request = {
        "box": {"length": 1000, "width": 1000, "height": 1000, "unit": "mm"},
        "container": {"length": 2000, "width": 1000, "height": 1000},
    }

    response = client.post("/pack?render=1", json=request)

    assert response.status_code == 200
    data = response.json()
    assert data["total_boxes"] == 2
    assert data["container_render"] == {"L": 2.0, "W": 1.0, "H": 1.0}
    assert len(data["placements_render"]) == 2
    for item in data["placements_render"]:
        assert item["dims"] == [1.0, 1.0, 1.0]
        assert item["y"] == 0.0


def test_build_placements_render() -> None:
    render = build_placements_render([Placement(x=1500, y=0, z=250, rotation=(600, 300, 400))])

    assert render == [{"x": 1.5, "y": 0.0, "z": 0.25, "dims": [0.6, 0.3, 0.4]}]


def test_invalid_box_returns_friendly_422() -> None:
    """Test that a non-positive dimension returns a friendly 422 error."""
    request = {"box": {"length": -1, "width": 40, "height": 30}, "container_id": "K20"}

    response = client.post("/pack", json=request)

    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "INVALID_INPUT"
    assert any(d.startswith("box.length") for d in data["details"])


def test_missing_input_returns_friendly_422() -> None:
    """Test that missing input returns friendly 422 error."""
    response = client.post("/pack", json={})

    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "INVALID_INPUT"
    assert len(data["details"]) == 2


def test_unknown_container_returns_404() -> None:
    request = {"box": {"length": 60, "width": 40, "height": 30}, "container_id": "K99"}

    response = client.post("/pack", json=request)

    assert response.status_code == 404
    detail = response.json()["detail"]
    assert detail["error"] == "UNKNOWN_CONTAINER"
    assert "K40HC" in detail["details"]


def test_box_too_large_packs_nothing() -> None:
    request = {"box": {"length": 1300, "width": 300, "height": 300}, "container_id": "K20"}

    response = client.post("/pack", json=request)

    assert response.status_code == 200
    assert response.json()["total_boxes"] == 0


def test_infinite_dimension_returns_422() -> None:
    body = '{"box": {"length": Infinity, "width": 40, "height": 30}, "container_id": "K20"}'

    response = client.post("/pack", content=body, headers={"content-type": "application/json"})

    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "INVALID_INPUT"
    assert any(d.startswith("box.length") for d in data["details"])


def test_infinite_custom_container_returns_422() -> None:
    body = (
        '{"box": {"length": 60, "width": 40, "height": 30},'
        ' "container": {"length": 1e999, "width": 2340, "height": 2390}}'
    )

    response = client.post("/pack", content=body, headers={"content-type": "application/json"})

    assert response.status_code == 422
    assert response.json()["error"] == "INVALID_INPUT"
