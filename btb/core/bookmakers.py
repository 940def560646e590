"""Bookmaker and market vocabulary.

The Odds API identifies books by slug (``"pinnacle"``, ``"williamhill_us"``)
but other sources (bet trackers, older snapshots) have used variant spellings
such as ``"lowvig.ag"``.  Every key comparison in the codebase goes through
:func:`normalize_bookmaker_key`; never compare raw keys.
"""

from __future__ import annotations

from enum import Enum
from typing import Final, Iterable, Optional

#: Variant spelling → canonical slug.  Applied after lowercasing.
BOOKMAKER_KEY_ALIASES: Final[dict[str, str]] = {
    "lowvig.ag": "lowvig",
    "betway.ag": "betway",
    "pinnacle_us": "pinnacle",
    "pinnaclesports": "pinnacle",
}

#: Reference ("sharp") books in priority order.
DEFAULT_REFERENCE_PRIORITY: Final[tuple[str, ...]] = (
    "pinnacle",
    "lowvig",
    "williamhill_us",
    "fanduel",
)

#: Books requested from the provider on every fetch.
DEFAULT_BOOKMAKERS: Final[tuple[str, ...]] = (
    "pinnacle", "fanduel", "draftkings", "betmgm", "bovada", "williamhill_us",
    "barstool", "pointsbet", "bet365", "unibet", "betrivers", "twinspires",
    "betus", "wynnbet", "betonlineag", "lowvig", "mybookieag", "betfred",
    "superbook", "circasports", "betway", "fanatics", "caesars", "foxbet",
    "si_sportsbook", "betfair", "tipico", "station", "hard_rock", "playup",
)


def normalize_bookmaker_key(key: Optional[str]) -> str:
    """Canonical form of a bookmaker key (``""`` for a missing key).

    Examples::

        normalize_bookmaker_key("LowVig.ag")  → "lowvig"
        normalize_bookmaker_key("fanduel")    → "fanduel"
    """
    if not key:
        return ""
    lowered = key.strip().lower()
    return BOOKMAKER_KEY_ALIASES.get(lowered, lowered)


def normalize_bookmaker_keys(keys: Iterable[str]) -> tuple[str, ...]:
    """Normalize a list of keys, dropping blanks and duplicates, keeping order."""
    seen: dict[str, None] = {}
    for key in keys:
        canonical = normalize_bookmaker_key(key)
        if canonical:
            seen.setdefault(canonical, None)
    return tuple(seen)


class MarketType(str, Enum):
    """Bet types the pipeline understands."""

    MONEYLINE = "moneyline"
    SPREAD = "spread"
    TOTAL = "total"

    @property
    def requires_point(self) -> bool:
        """Spread and total outcomes only compare on an identical line."""
        return self is not MarketType.MONEYLINE


#: Provider market key → :class:`MarketType`.
MARKET_KEYS: Final[dict[str, MarketType]] = {
    "h2h": MarketType.MONEYLINE,
    "spreads": MarketType.SPREAD,
    "totals": MarketType.TOTAL,
}


def market_type(market_key: Optional[str]) -> Optional[MarketType]:
    """Map a provider market key to :class:`MarketType`, or ``None`` if unknown."""
    if market_key is None:
        return None
    return MARKET_KEYS.get(market_key)
