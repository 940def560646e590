"""
Flatten annotated snapshots into EV rows for listing and filtering.

Rows are read straight from the fields written by
:mod:`btb.services.ev_pipeline`.  Nothing here recomputes EV; an outcome
without ``expected_value`` simply does not produce a row.
"""

import logging
from typing import Dict, Iterable, List, Optional

from btb.core.bookmakers import normalize_bookmaker_key
from btb.core.sport_config import get_sport

logger = logging.getLogger(__name__)

SORT_FIELDS = ("ev_percent", "odds", "commence_time")


def flatten_ev_bets(
    games: Iterable[Dict],
    bookmakers: Optional[Iterable[str]] = None,
) -> List[Dict]:
    """
    One row per annotated outcome.

    Args:
        games:      Annotated games (a snapshot's ``data``).
        bookmakers: Optional allowlist of bookmaker keys.  Compared after
                    key normalization; ``None`` or empty keeps every book.
    """
    allow = None
    if bookmakers:
        allow = {normalize_bookmaker_key(b) for b in bookmakers if b}

    rows: List[Dict] = []
    for game in games:
        sport_key = game.get("sport_key")
        sport = get_sport(sport_key) if sport_key else None
        for bookmaker in game.get("bookmakers") or []:
            book_key = bookmaker.get("key")
            if allow is not None and normalize_bookmaker_key(book_key) not in allow:
                continue
            for market in bookmaker.get("markets") or []:
                market_key = market.get("key")
                for outcome in market.get("outcomes") or []:
                    ev = outcome.get("expected_value")
                    if ev is None:
                        continue
                    rows.append({
                        "id": f"{game.get('id')}-{market_key}-{outcome.get('name')}-{book_key}",
                        "game_id": game.get("id"),
                        "sport": sport_key,
                        "league": sport.label if sport else sport_key,
                        "home_team": game.get("home_team"),
                        "away_team": game.get("away_team"),
                        "commence_time": game.get("commence_time"),
                        "market": market_key,
                        "outcome": outcome.get("name"),
                        "point": outcome.get("point"),
                        "bookmaker": book_key,
                        "bookmaker_title": bookmaker.get("title"),
                        "odds": outcome.get("price"),
                        "reference_odds": outcome.get("btb_price"),
                        "reference_point": outcome.get("btb_point"),
                        "book_no_vig": outcome.get("book_no_vig"),
                        "reference_no_vig": outcome.get("reference_no_vig"),
                        "book_earnings": outcome.get("book_earnings"),
                        "reference_earnings": outcome.get("reference_earnings"),
                        "reference_counter_odds": outcome.get("reference_counter_odds"),
                        "expected_value": ev,
                        "ev_percent": ev * 100.0,
                        "width": outcome.get("width"),
                        "is_positive_ev": ev > 0,
                    })
    return rows


def filter_ev_bets(
    rows: Iterable[Dict],
    min_ev: Optional[float] = None,
    max_width: Optional[float] = None,
    sort_by: str = "ev_percent",
    descending: bool = True,
) -> List[Dict]:
    """
    Filter and sort EV rows.

    Args:
        min_ev:     Minimum expected value as a decimal (0.02 = 2 %).
        max_width:  Maximum reference width.  Rows whose width is unavailable
                    are always kept.
        sort_by:    One of :data:`SORT_FIELDS`.
        descending: Sort direction.

    Raises:
        ValueError: On an unknown ``sort_by``.
    """
    if sort_by not in SORT_FIELDS:
        raise ValueError(f"sort_by must be one of {SORT_FIELDS}, got {sort_by!r}")

    kept = []
    for row in rows:
        if min_ev is not None and row["expected_value"] < min_ev:
            continue
        width = row.get("width")
        if max_width is not None and width is not None and width > max_width:
            continue
        kept.append(row)

    # Rows missing the sort key go last regardless of direction.
    present = [r for r in kept if r.get(sort_by) is not None]
    missing = [r for r in kept if r.get(sort_by) is None]
    present.sort(key=lambda r: r[sort_by], reverse=descending)
    return present + missing
