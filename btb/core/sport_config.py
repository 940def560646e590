"""Sport-level configuration: the registry of supported leagues.

Every place that needs a sport key or its display label reads it from here.
Sport keys are The Odds API ``sport_key`` values and double as the storage
key of each odds snapshot.

Typical usage::

    from btb.core.sport_config import SportConfig, get_sport

    nba = get_sport("basketball_nba")
    nba.label   # "NBA"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Iterable, Optional


@dataclass(frozen=True)
class SportConfig:
    """Immutable description of one supported sport.

    Attributes:
        sport_key: The Odds API sport key (``"basketball_nba"``).
        label: Short display name (``"NBA"``).
        markets: Comma-joined market keys requested for the sport.
    """

    sport_key: str
    label: str
    markets: str = "spreads,totals,h2h"


SPORTS: Final[dict[str, SportConfig]] = {
    cfg.sport_key: cfg
    for cfg in (
        SportConfig("basketball_nba", "NBA"),
        SportConfig("americanfootball_nfl", "NFL"),
        SportConfig("icehockey_nhl", "NHL"),
        SportConfig("baseball_mlb", "MLB"),
    )
}

DEFAULT_SPORT_KEYS: Final[tuple[str, ...]] = tuple(SPORTS)


def get_sport(sport_key: str) -> Optional[SportConfig]:
    """Return the registered :class:`SportConfig`, or ``None`` if unsupported."""
    return SPORTS.get(sport_key)


def resolve_sports(sport_keys: Optional[Iterable[str]] = None) -> list[SportConfig]:
    """Turn a list of sport keys into configs, preserving order.

    ``None`` means every registered sport.  Unknown keys are kept with the
    key itself as the label so an operator can try a new league without a
    code change.
    """
    if sport_keys is None:
        return list(SPORTS.values())
    resolved = []
    for key in sport_keys:
        key = key.strip()
        if not key:
            continue
        resolved.append(SPORTS.get(key) or SportConfig(sport_key=key, label=key))
    return resolved
