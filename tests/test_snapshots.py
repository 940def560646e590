"""Tests for the snapshot store (in-memory SQLite)."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from btb.models import DataFetch, OddsSnapshot
from btb.services.snapshots import (
    get_api_usage,
    get_snapshot,
    now_ms,
    record_fetch,
    save_api_usage,
    save_snapshot,
)


def test_missing_snapshot_is_none(db_session):
    assert get_snapshot(db_session, "basketball_nba") is None


def test_save_and_read(db_session, nba_game):
    stored = save_snapshot(db_session, "basketball_nba", [nba_game], last_updated=1760875200000)
    assert stored == {"data": [nba_game], "lastUpdated": 1760875200000}
    assert get_snapshot(db_session, "basketball_nba") == stored


def test_overwrite_keeps_one_row(db_session, nba_game):
    save_snapshot(db_session, "basketball_nba", [nba_game], last_updated=1)
    save_snapshot(db_session, "basketball_nba", [], last_updated=2)

    assert db_session.query(OddsSnapshot).count() == 1
    assert get_snapshot(db_session, "basketball_nba") == {"data": [], "lastUpdated": 2}


def test_sports_are_independent(db_session, nba_game):
    save_snapshot(db_session, "basketball_nba", [nba_game], last_updated=1)
    save_snapshot(db_session, "icehockey_nhl", [], last_updated=2)
    assert get_snapshot(db_session, "basketball_nba")["data"] == [nba_game]
    assert get_snapshot(db_session, "icehockey_nhl")["data"] == []


def test_default_timestamp_is_now(db_session):
    before = now_ms()
    stored = save_snapshot(db_session, "baseball_mlb", [])
    assert before <= stored["lastUpdated"] <= now_ms()


def test_failed_commit_keeps_previous(db_session, nba_game):
    save_snapshot(db_session, "basketball_nba", [nba_game], last_updated=1)

    with patch.object(db_session, "commit", side_effect=SQLAlchemyError("disk full")):
        with pytest.raises(SQLAlchemyError):
            save_snapshot(db_session, "basketball_nba", [], last_updated=2)

    assert get_snapshot(db_session, "basketball_nba") == {"data": [nba_game], "lastUpdated": 1}


class TestApiUsage:

    def test_none_before_first_save(self, db_session):
        assert get_api_usage(db_session) is None

    def test_save_overwrites(self, db_session):
        save_api_usage(db_session, "480", "20", last_updated=1)
        save_api_usage(db_session, "479", "21", last_updated=2)
        assert get_api_usage(db_session) == {
            "remainingRequests": "479", "usedRequests": "21", "lastUpdated": 2,
        }

    def test_missing_headers_become_unknown(self, db_session):
        usage = save_api_usage(db_session, None, None, last_updated=5)
        assert usage["remainingRequests"] == "unknown"
        assert usage["usedRequests"] == "unknown"


class TestRecordFetch:

    def test_row_written(self, db_session):
        record_fetch(db_session, "basketball_nba", success=True, trigger="manual",
                     records_fetched=12, response_time_ms=340)
        row = db_session.query(DataFetch).one()
        assert row.data_source == "odds_api"
        assert row.success is True
        assert row.records_fetched == 12
        assert row.trigger == "manual"

    def test_errors_are_swallowed(self, db_session):
        with patch.object(db_session, "commit", side_effect=SQLAlchemyError("locked")):
            record_fetch(db_session, "basketball_nba", success=False, trigger="scheduled")
        assert db_session.query(DataFetch).count() == 0
