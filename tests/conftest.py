"""
Shared fixtures.

Environment is set at import time, before any ``btb`` module reads it:
``btb.auth`` loads API keys and ``btb.models`` builds the engine on import.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_KEY_USER1"] = "test-admin-key"
os.environ["API_KEY_USER2"] = "test-user-key"
os.environ["THE_ODDS_API_KEY"] = "test-odds-key"
os.environ.pop("SUPPORTED_SPORTS", None)
os.environ.pop("REFERENCE_BOOKMAKERS", None)
os.environ.pop("EV_FORMULA", None)
os.environ.pop("EV_TARGET_VIG", None)
os.environ.pop("API_KEYS", None)
os.environ.pop("ADMIN_USERS", None)

import pytest


def make_outcome(name, price, point=None):
    outcome = {"name": name, "price": price}
    if point is not None:
        outcome["point"] = point
    return outcome


def make_bookmaker(key, markets, title=None):
    return {
        "key": key,
        "title": title or key.title(),
        "last_update": "2026-10-19T12:00:00Z",
        "markets": [
            {"key": market_key, "outcomes": outcomes}
            for market_key, outcomes in markets.items()
        ],
    }


def make_game(bookmakers, game_id="g1", home="Los Angeles Lakers", away="Boston Celtics"):
    return {
        "id": game_id,
        "sport_key": "basketball_nba",
        "sport_title": "NBA",
        "commence_time": "2026-10-20T23:30:00Z",
        "home_team": home,
        "away_team": away,
        "bookmakers": bookmakers,
    }


@pytest.fixture
def nba_game():
    """Pinnacle reference plus two soft books across all three markets."""
    return make_game([
        make_bookmaker("pinnacle", {
            "h2h": [
                make_outcome("Los Angeles Lakers", -150),
                make_outcome("Boston Celtics", 130),
            ],
            "spreads": [
                make_outcome("Los Angeles Lakers", -110, -3.5),
                make_outcome("Boston Celtics", -110, 3.5),
            ],
            "totals": [
                make_outcome("Over", -105, 224.5),
                make_outcome("Under", -115, 224.5),
            ],
        }),
        make_bookmaker("draftkings", {
            "h2h": [
                make_outcome("Los Angeles Lakers", -140),
                make_outcome("Boston Celtics", 120),
            ],
            "spreads": [
                make_outcome("Los Angeles Lakers", -110, -4.0),
                make_outcome("Boston Celtics", -110, 4.0),
            ],
            "totals": [
                make_outcome("Over", 100, 224.5),
                make_outcome("Under", -120, 224.5),
            ],
        }, title="DraftKings"),
        make_bookmaker("fanduel", {
            "h2h": [
                make_outcome("Los Angeles Lakers", -155),
                make_outcome("Boston Celtics", 135),
            ],
        }, title="FanDuel"),
    ])


@pytest.fixture
def db_session():
    """Fresh tables in the shared in-memory SQLite database."""
    from btb.models import Base, SessionLocal, engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
