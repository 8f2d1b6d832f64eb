import sys
import pathlib
import pytest
from fastapi.testclient import TestClient

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from backend import app


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Tip Pot API"}


def test_defaults(client):
    data = client.get("/defaults").json()
    assert data["baseline_staff_pct"] == 0.8
    assert data["baseline_helper_pct"] == 0.2
    assert data["helper_cap_ratio"] == 0.5


def test_calculate(client):
    response = client.post("/calculate", json={
        "total": 1000,
        "staff": [
            {"id": "max", "name": "Max", "share": 1.0},
            {"id": "eva", "name": "Eva", "share": 0.8},
            {"id": "tom", "name": "Tom", "share": 0.5},
        ],
        "helpers": [
            {"id": "anna", "name": "Anna", "hours": 20},
            {"id": "ben", "name": "Ben", "hours": 12},
            {"id": "cem", "name": "Cem", "hours": 8},
        ],
    })
    assert response.status_code == 200
    data = response.json()
    assert data["applied_staff_pct"] == 0.8
    assert data["staff_pot"] == 800.0
    assert data["helper_pot"] == 200.0
    assert [r["id"] for r in data["staff_rows"]] == ["max", "eva", "tom"]
    assert sum(r["cents"] for r in data["staff_rows"]) == 80000
    assert [r["amount"] for r in data["helper_rows"]] == [100.0, 60.0, 40.0]
    assert data["rationale"]["adjusted"] is False
    assert data["explanation"]


def test_missing_ids_are_generated(client):
    data = client.post("/calculate", json={
        "total": 90,
        "staff": [{"name": "A", "share": 1}, {"name": "B", "share": 1}],
    }).json()
    ids = [r["id"] for r in data["staff_rows"]]
    assert len(set(ids)) == 2
    assert all(ids)
    assert [r["amount"] for r in data["staff_rows"]] == [45.0, 45.0]


def test_zero_total_is_not_an_error(client):
    response = client.post("/calculate", json={"total": 0, "staff": [{"share": 1}], "helpers": [{"hours": 3}]})
    assert response.status_code == 200
    data = response.json()
    assert data["staff_rows"] == [] and data["helper_rows"] == []
    assert data["applied_staff_pct"] == 0.8


def test_adjusted_split_reports_violators(client):
    data = client.post("/calculate", json={
        "total": 1000,
        "staff": [{"id": "s", "name": "Sam", "share": 3}],
        "helpers": [{"id": "h", "name": "Hana", "hours": 10}],
    }).json()
    assert data["rationale"]["adjusted"] is True
    assert data["applied_staff_pct"] == pytest.approx(6 / 7)
    assert [v["id"] for v in data["rationale"]["violators"]] == ["h"]
    assert "Hana" in data["explanation"]
    assert data["staff_pot"] + data["helper_pot"] == pytest.approx(1000.0)


def test_duplicate_ids_rejected(client):
    response = client.post("/calculate", json={
        "total": 100,
        "helpers": [{"id": "x", "hours": 1}, {"id": "x", "hours": 2}],
    })
    assert response.status_code == 400
    assert "Duplicate helper id" in response.json()["detail"]


def test_malformed_body(client):
    response = client.post("/calculate", json={"staff": []})
    assert response.status_code == 422


def test_large_pot_is_answered(client):
    response = client.post("/calculate", json={
        "total": 1e22,
        "staff": [{"id": "a", "share": 1}, {"id": "b", "share": 2}, {"id": "c", "share": 4}],
        "helpers": [{"id": "h", "hours": 8}],
    })
    assert response.status_code == 200
    data = response.json()
    cents = sum(r["cents"] for r in data["staff_rows"] + data["helper_rows"])
    assert cents == int(1e24)
