"""Fundamental odds mathematics: the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services, scripts or
API handlers.

The four pillars exposed are:

1. **Normalization**: American odds → implied probability and
   earnings per 100-unit stake.
2. **Counter odds**: a synthetic price for the other side of a two-way
   reference market, assuming a fixed target vig.
3. **Expected value**: per-outcome EV of a book price measured against the
   reference line, in two formula variants.
4. **Width**: the distance between a reference price and its counter price.

Design decisions
----------------
* Prices are American odds as The Odds API returns them with
  ``oddsFormat=american``: signed, non-zero numbers.  ``0`` is not an
  American price (there is no "pick'em" encoding in the feed), so it is
  rejected with :class:`InvalidOddsError` rather than mapped to 50 %.
* The "no-vig" probability is the plain odds→probability conversion of a
  single price.  It is *not* a two-sided devig; the reference book is
  assumed sharp enough that its own margin is ignored.
* No rounding happens here.  Formatting for display belongs to the caller.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from enum import Enum
from numbers import Real
from typing import Final, Optional

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: Stake unit used by every "per 100" figure in this module.
STAKE_UNIT: Final[float] = 100.0

#: Vig assumed on the reference market when synthesising the counter side.
#: Override per run through :class:`~btb.core.ev_config.EVConfig`.
DEFAULT_TARGET_VIG: Final[float] = 0.04


class InvalidOddsError(ValueError):
    """Raised when a value cannot be interpreted as an American price."""


class EVFormula(str, Enum):
    """Expected-value formula variants.

    ``EARNINGS`` is the canonical formula used for stored snapshots.
    ``NO_VIG_DIFFERENCE`` is the relative-probability variant some earlier
    tools used; it is kept so results from those tools can be reproduced.
    """

    EARNINGS = "earnings"
    NO_VIG_DIFFERENCE = "no_vig_difference"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_american(price: object) -> float:
    """Return ``price`` as a float if it is a usable American price.

    Args:
        price: Candidate price straight from the feed.

    Returns:
        The price as ``float``.

    Raises:
        InvalidOddsError: If ``price`` is missing, boolean, non-numeric,
            non-finite or zero.
    """
    if price is None:
        raise InvalidOddsError("American odds are missing")
    # bool is a Real subclass; True/False are never prices.
    if isinstance(price, bool) or not isinstance(price, Real):
        raise InvalidOddsError(f"American odds {price!r} are not numeric")
    value = float(price)
    if not math.isfinite(value):
        raise InvalidOddsError(f"American odds {price!r} are not finite")
    if value == 0:
        raise InvalidOddsError(
            "American odds of 0 are undefined; even money is +100 / -100"
        )
    return value


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def implied_prob(price: int | float) -> float:
    """Implied probability of an American price (vig-inclusive).

    Examples::

        implied_prob(-110) → 0.5238
        implied_prob(+150) → 0.4000

    Raises:
        InvalidOddsError: See :func:`validate_american`.
    """
    value = validate_american(price)
    if value < 0:
        return abs(value) / (abs(value) + STAKE_UNIT)
    return STAKE_UNIT / (STAKE_UNIT + value)


def earnings_per_100(price: int | float) -> float:
    """Profit on a 100-unit stake at ``price`` (stake not included).

    Examples::

        earnings_per_100(-110) → 90.909
        earnings_per_100(+150) → 150.0
    """
    value = validate_american(price)
    if value < 0:
        return STAKE_UNIT / (abs(value) / STAKE_UNIT)
    return value


# ---------------------------------------------------------------------------
# Counter odds
# ---------------------------------------------------------------------------


def counter_odds(
    reference_price: int | float,
    target_vig: float = DEFAULT_TARGET_VIG,
) -> Optional[float]:
    """Synthetic American price for the opposite side of the reference market.

    With ``p`` the reference implied probability and ``q = 1 + target_vig - p``
    the probability left for the other side once the target vig is added
    back::

        reference_price < 0  →  100 / q - 100            (underdog counter)
        reference_price > 0  →  -(100 · q) / (1 - q)     (favourite counter)

    Returns:
        The counter price, or ``None`` when the favourite branch degenerates
        (``q == 1``, i.e. ``p == target_vig``).
    """
    value = validate_american(reference_price)
    remaining = 1.0 + target_vig - implied_prob(value)
    if value < 0:
        return STAKE_UNIT / remaining - STAKE_UNIT
    denominator = 1.0 - remaining
    if denominator == 0:
        return None
    return -(STAKE_UNIT * remaining) / denominator


# ---------------------------------------------------------------------------
# Expected value
# ---------------------------------------------------------------------------


def expected_value(
    book_price: int | float,
    reference_price: int | float,
    formula: EVFormula = EVFormula.EARNINGS,
) -> float:
    """Expected value of betting ``book_price`` if the reference is the truth.

    ``EARNINGS``::

        (earnings(book) · p_ref − 100 · (1 − p_ref)) / 100

    i.e. expected profit per 100 staked, expressed as a fraction of the
    stake (``0.05`` = +5 %).

    ``NO_VIG_DIFFERENCE``::

        (p_ref − p_book) / p_book

    Args:
        book_price: Price offered by the soft book.
        reference_price: Price for the same outcome at the reference book.
        formula: Which variant to apply.

    Raises:
        InvalidOddsError: If either price is invalid.
    """
    reference_prob = implied_prob(reference_price)
    formula = EVFormula(formula)
    if formula is EVFormula.NO_VIG_DIFFERENCE:
        book_prob = implied_prob(book_price)
        return (reference_prob - book_prob) / book_prob
    book_earnings = earnings_per_100(book_price)
    return (
        book_earnings * reference_prob - STAKE_UNIT * (1.0 - reference_prob)
    ) / STAKE_UNIT


# ---------------------------------------------------------------------------
# Width
# ---------------------------------------------------------------------------


def market_width(
    reference_price: Optional[float],
    counter_price: Optional[float],
) -> Optional[float]:
    """Distance between a reference price and its counter price.

    Sign cases::

        both negative   →  |min(R, X)| − |max(R, X)|
        R < 0 < X       →  |R| − |X|
        X < 0 < R       →  |X| − |R|
        both positive   →  | |R| − |X| |

    The absolute value is returned in every case.  A missing or non-finite
    input yields ``None`` so callers can tell "unavailable" from a true
    zero-width market.

    Examples::

        market_width(-150, 130)  → 20.0
        market_width(120, -140)  → 20.0
        market_width(None, -140) → None
    """
    if reference_price is None or counter_price is None:
        return None
    r = float(reference_price)
    x = float(counter_price)
    if not (math.isfinite(r) and math.isfinite(x)):
        return None

    if r < 0 and x < 0:
        width = abs(min(r, x)) - abs(max(r, x))
    elif r < 0 < x:
        width = abs(r) - abs(x)
    elif x < 0 < r:
        width = abs(x) - abs(r)
    else:
        width = abs(abs(r) - abs(x))
    return abs(width)
