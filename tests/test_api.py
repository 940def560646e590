"""
API tests with FastAPI's TestClient.
The lifespan (scheduler) is not started; tables come from the db_session fixture.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from btb.main import app
from btb.services.ev_pipeline import annotate_games
from btb.services.snapshots import save_api_usage, save_snapshot

ADMIN = {"X-API-Key": "test-admin-key"}
USER = {"X-API-Key": "test-user-key"}


@pytest.fixture
def client(db_session):
    return TestClient(app)


@pytest.fixture
def stored_nba(db_session, nba_game):
    return save_snapshot(db_session, "basketball_nba", annotate_games([nba_game]),
                         last_updated=1760875200000)


def test_root_is_public(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "operational"


def test_health_reports_stopped_scheduler(client):
    body = client.get("/health").json()
    assert body["database"] == "connected"
    assert body["scheduler"] == "stopped"
    assert body["status"] == "degraded"


class TestAuth:

    def test_missing_key(self, client):
        assert client.get("/api/sports").status_code == 401

    def test_invalid_key(self, client):
        assert client.get("/api/sports", headers={"X-API-Key": "nope"}).status_code == 401

    def test_non_admin_forbidden(self, client):
        assert client.post("/admin/refresh", headers=USER).status_code == 403
        assert client.get("/admin/scheduler/status", headers=USER).status_code == 403


def test_list_sports(client):
    resp = client.get("/api/sports", headers=USER)
    assert resp.status_code == 200
    assert {"sport_key": "basketball_nba", "label": "NBA"} in resp.json()


class TestOdds:

    def test_snapshot_returned(self, client, stored_nba):
        resp = client.get("/api/odds/basketball_nba", headers=USER)
        assert resp.status_code == 200
        body = resp.json()
        assert body["lastUpdated"] == 1760875200000
        assert body["data"] == stored_nba["data"]
        assert body["freshness"]["tier"] in {"Tier 1", "Tier 2", "Tier 3"}

    def test_no_data_yet(self, client):
        assert client.get("/api/odds/icehockey_nhl", headers=USER).status_code == 404

    def test_unsupported_sport(self, client):
        resp = client.get("/api/odds/cricket_ipl", headers=USER)
        assert resp.status_code == 404
        assert "Unsupported" in resp.json()["detail"]


class TestEVs:

    def test_listing(self, client, stored_nba):
        body = client.get("/api/evs/basketball_nba", headers=USER).json()
        assert body["total"] == 6
        evs = [b["ev_percent"] for b in body["bets"]]
        assert evs == sorted(evs, reverse=True)

    def test_filters(self, client, stored_nba):
        body = client.get(
            "/api/evs/basketball_nba",
            params={"min_ev": 0, "bookmakers": "fanduel"},
            headers=USER,
        ).json()
        assert body["total"] >= 1
        assert all(b["bookmaker"] == "fanduel" and b["expected_value"] >= 0 for b in body["bets"])

    def test_bad_sort_field(self, client, stored_nba):
        resp = client.get("/api/evs/basketball_nba", params={"sort_by": "width"}, headers=USER)
        assert resp.status_code == 422


class TestUsage:

    def test_not_recorded(self, client):
        assert client.get("/api/usage", headers=USER).status_code == 404

    def test_recorded(self, client, db_session):
        save_api_usage(db_session, "480", "20", last_updated=7)
        assert client.get("/api/usage", headers=USER).json() == {
            "remainingRequests": "480", "usedRequests": "20", "lastUpdated": 7,
        }


class TestAdminRefresh:

    SUMMARY = {
        "status": "partial",
        "games_stored": 3,
        "duration_seconds": 1.2,
        "sports": [
            {"sport": "basketball_nba", "status": "ok", "games": 3},
            {"sport": "icehockey_nhl", "status": "fetch_failed", "games": 0, "error": "HTTP 500"},
        ],
    }

    def test_refresh_all(self, client):
        with patch("btb.main.run_refresh", return_value=self.SUMMARY) as mock_run:
            resp = client.post("/admin/refresh", headers=ADMIN)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Odds refresh completed with errors"
        mock_run.assert_called_once_with(sports=None, trigger="manual")

    def test_refresh_one_sport(self, client):
        summary = dict(self.SUMMARY, status="ok", sports=self.SUMMARY["sports"][:1])
        with patch("btb.main.run_refresh", return_value=summary) as mock_run:
            resp = client.post("/admin/refresh", params={"sport": "basketball_nba"}, headers=ADMIN)
        assert resp.json()["status"] == "ok"
        mock_run.assert_called_once_with(sports=["basketball_nba"], trigger="manual")

    def test_unsupported_sport(self, client):
        with patch("btb.main.run_refresh") as mock_run:
            resp = client.post("/admin/refresh", params={"sport": "cricket_ipl"}, headers=ADMIN)
        assert resp.status_code == 404
        mock_run.assert_not_called()

    def test_scheduler_status(self, client):
        body = client.get("/admin/scheduler/status", headers=ADMIN).json()
        assert body["running"] is False
