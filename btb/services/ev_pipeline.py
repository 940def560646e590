"""
Expected-value annotation of an odds snapshot.

This is the one place where bookmaker outcomes are compared against the
reference ("sharp") line.  The scheduled refresh, the admin refresh endpoint,
the manual-fetch script and the EV listing all call into this module; none of
them recompute EV on their own.

Per game:

    1. Pick the reference bookmaker: the first key of
       ``EVConfig.reference_priority`` that the game carries (keys compared
       after :func:`normalize_bookmaker_key`).
    2. Build a ``(market_key, outcome_name) -> ReferenceLine`` map from it.
    3. For every other bookmaker / market / outcome with a matching reference
       entry (and, for spreads and totals, the exact same point) write the
       derived fields listed in :data:`ANNOTATION_FIELDS`.

Games without a reference bookmaker, and outcomes without a match, pass
through untouched.  A malformed price skips only the outcome it belongs to.

Reruns are idempotent: every run strips the derived fields first and
recomputes them, so an already-annotated snapshot can be fed back in.
"""

import copy
import logging
import os
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from btb.core.bookmakers import market_type, normalize_bookmaker_key
from btb.core.ev_config import EVConfig
from btb.core.odds_math import (
    InvalidOddsError,
    counter_odds,
    earnings_per_100,
    expected_value,
    implied_prob,
    market_width,
)

logger = logging.getLogger(__name__)

#: Fields this module owns on an outcome dict.
ANNOTATION_FIELDS: Tuple[str, ...] = (
    "btb_price",
    "btb_point",
    "reference_no_vig",
    "book_no_vig",
    "reference_earnings",
    "book_earnings",
    "reference_counter_odds",
    "expected_value",
    "width",
)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReferenceLine:
    """Reference bookmaker's quote for one outcome."""

    price: object
    point: Optional[float] = None


ReferenceMap = Dict[Tuple[str, str], ReferenceLine]


@dataclass
class PipelineStats:
    """Counters for one pipeline run, used for logging and admin responses."""

    games: int = 0
    games_with_reference: int = 0
    outcomes_annotated: int = 0
    point_mismatches: int = 0
    invalid_prices: int = 0

    @property
    def games_without_reference(self) -> int:
        return self.games - self.games_with_reference

    def as_dict(self) -> Dict:
        out = asdict(self)
        out["games_without_reference"] = self.games_without_reference
        return out


def load_ev_config() -> EVConfig:
    """Build an :class:`EVConfig` from environment variables.

    ``REFERENCE_BOOKMAKERS`` (comma-separated), ``EV_FORMULA`` and
    ``EV_TARGET_VIG`` override the defaults when set.
    """
    kwargs: Dict = {}
    priority = os.getenv("REFERENCE_BOOKMAKERS")
    if priority:
        kwargs["reference_priority"] = tuple(priority.split(","))
    formula = os.getenv("EV_FORMULA")
    if formula:
        kwargs["ev_formula"] = formula.strip().lower()
    target_vig = os.getenv("EV_TARGET_VIG")
    if target_vig:
        kwargs["target_vig"] = float(target_vig)
    return EVConfig(**kwargs)


# ---------------------------------------------------------------------------
# Reference resolution
# ---------------------------------------------------------------------------

def find_reference_bookmaker(
    bookmakers: Iterable[Dict],
    priority: Iterable[str],
) -> Optional[Dict]:
    """
    Return the highest-priority bookmaker present in ``bookmakers``.

    Priority wins over list order: with books ``[lowvig, fanduel]`` and
    priority ``[pinnacle, lowvig, williamhill_us, fanduel]`` the result is
    ``lowvig``.
    """
    by_key: Dict[str, Dict] = {}
    for bookmaker in bookmakers:
        by_key.setdefault(normalize_bookmaker_key(bookmaker.get("key")), bookmaker)

    for candidate in priority:
        found = by_key.get(normalize_bookmaker_key(candidate))
        if found is not None:
            return found
    return None


def build_reference_map(reference: Dict) -> ReferenceMap:
    """Index a reference bookmaker's outcomes by ``(market_key, outcome_name)``.

    When a market repeats an outcome name (alternate lines) the first entry
    is kept.
    """
    reference_map: ReferenceMap = {}
    for market in reference.get("markets") or []:
        market_key = market.get("key")
        for outcome in market.get("outcomes") or []:
            reference_map.setdefault(
                (market_key, outcome.get("name")),
                ReferenceLine(price=outcome.get("price"), point=outcome.get("point")),
            )
    return reference_map


def resolve_reference(
    bookmakers: Iterable[Dict],
    priority: Iterable[str],
) -> Optional[Tuple[Dict, ReferenceMap]]:
    """Reference bookmaker plus its lookup map, or ``None`` if none qualifies."""
    reference = find_reference_bookmaker(bookmakers, priority)
    if reference is None:
        return None
    return reference, build_reference_map(reference)


# ---------------------------------------------------------------------------
# Per-outcome calculation
# ---------------------------------------------------------------------------

def compute_annotation(
    book_price: object,
    reference: ReferenceLine,
    config: EVConfig,
) -> Dict:
    """
    Derived fields for one book price against its reference line.

    Raises:
        InvalidOddsError: If either price is unusable.
    """
    reference_no_vig = implied_prob(reference.price)
    book_no_vig = implied_prob(book_price)
    reference_counter = counter_odds(reference.price, config.target_vig)

    return {
        "btb_price": reference.price,
        "btb_point": reference.point,
        "reference_no_vig": reference_no_vig,
        "book_no_vig": book_no_vig,
        "reference_earnings": earnings_per_100(reference.price),
        "book_earnings": earnings_per_100(book_price),
        "reference_counter_odds": reference_counter,
        "expected_value": expected_value(
            book_price, reference.price, config.ev_formula
        ),
        "width": market_width(reference.price, reference_counter),
    }


def strip_annotations(outcome: Dict) -> None:
    """Remove any previously written derived fields from ``outcome``."""
    for name in ANNOTATION_FIELDS:
        outcome.pop(name, None)


def annotate_outcome(
    outcome: Dict,
    market_key: str,
    reference_map: ReferenceMap,
    config: EVConfig,
    stats: Optional[PipelineStats] = None,
) -> bool:
    """
    Write EV fields onto ``outcome`` in place.

    Returns True if the outcome was annotated, False if it was left alone
    (no reference entry, point disagreement, or malformed price).
    """
    stats = stats if stats is not None else PipelineStats()
    strip_annotations(outcome)

    reference = reference_map.get((market_key, outcome.get("name")))
    if reference is None:
        return False

    mtype = market_type(market_key)
    if mtype is not None and mtype.requires_point and reference.point != outcome.get("point"):
        stats.point_mismatches += 1
        return False

    try:
        fields = compute_annotation(outcome.get("price"), reference, config)
    except InvalidOddsError as exc:
        stats.invalid_prices += 1
        logger.warning(
            "Skipping %s/%s: %s (book price=%r, reference price=%r)",
            market_key, outcome.get("name"), exc,
            outcome.get("price"), reference.price,
        )
        return False

    outcome.update(fields)
    stats.outcomes_annotated += 1
    return True


# ---------------------------------------------------------------------------
# Batch pipeline
# ---------------------------------------------------------------------------

def annotate_game(
    game: Dict,
    config: Optional[EVConfig] = None,
    stats: Optional[PipelineStats] = None,
) -> Dict:
    """
    Annotate every non-reference outcome of ``game`` in place and return it.

    The reference bookmaker's prices and points are never modified; only
    stale derived fields are cleared from them.
    """
    config = config or EVConfig()
    stats = stats if stats is not None else PipelineStats()
    stats.games += 1

    bookmakers = game.get("bookmakers") or []
    for bookmaker in bookmakers:
        for market in bookmaker.get("markets") or []:
            for outcome in market.get("outcomes") or []:
                strip_annotations(outcome)

    resolved = resolve_reference(bookmakers, config.reference_priority)
    if resolved is None:
        logger.debug(
            "No reference bookmaker for game %s (%s @ %s); books: %s",
            game.get("id"), game.get("away_team"), game.get("home_team"),
            ", ".join(str(b.get("key")) for b in bookmakers) or "none",
        )
        return game

    reference, reference_map = resolved
    reference_key = normalize_bookmaker_key(reference.get("key"))
    stats.games_with_reference += 1

    for bookmaker in bookmakers:
        if normalize_bookmaker_key(bookmaker.get("key")) == reference_key:
            continue
        for market in bookmaker.get("markets") or []:
            market_key = market.get("key")
            for outcome in market.get("outcomes") or []:
                annotate_outcome(outcome, market_key, reference_map, config, stats)

    return game


def annotate_games_with_stats(
    games: Iterable[Dict],
    config: Optional[EVConfig] = None,
) -> Tuple[List[Dict], PipelineStats]:
    """
    Annotate a whole snapshot.

    Works on a deep copy: the caller's ``games`` are not modified.  Order,
    length and every non-derived field are preserved.
    """
    config = config or EVConfig()
    stats = PipelineStats()
    annotated = [annotate_game(game, config, stats) for game in copy.deepcopy(list(games))]

    logger.info(
        "EV pipeline: %d games (%d with reference), %d outcomes annotated, "
        "%d point mismatches, %d invalid prices",
        stats.games, stats.games_with_reference, stats.outcomes_annotated,
        stats.point_mismatches, stats.invalid_prices,
    )
    return annotated, stats


def annotate_games(
    games: Iterable[Dict],
    config: Optional[EVConfig] = None,
) -> List[Dict]:
    """Annotated copy of ``games``; see :func:`annotate_games_with_stats`."""
    annotated, _ = annotate_games_with_stats(games, config)
    return annotated
