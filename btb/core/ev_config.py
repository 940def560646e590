"""Parameters of the EV pipeline.

:class:`EVConfig` is a frozen dataclass so one instance can be shared by
concurrent pipeline runs.  Override single fields with
:func:`dataclasses.replace`::

    from dataclasses import replace
    from btb.core.ev_config import EVConfig
    from btb.core.odds_math import EVFormula

    cfg = replace(EVConfig(), ev_formula=EVFormula.NO_VIG_DIFFERENCE)
"""

from __future__ import annotations

from dataclasses import dataclass, field

from btb.core.bookmakers import DEFAULT_REFERENCE_PRIORITY, normalize_bookmaker_keys
from btb.core.odds_math import DEFAULT_TARGET_VIG, EVFormula


@dataclass(frozen=True)
class EVConfig:
    """Configuration bundle for :func:`btb.services.ev_pipeline.annotate_games`.

    Attributes:
        reference_priority: Candidate reference books, most trusted first.
            Stored normalized.
        ev_formula: Expected-value variant; see :class:`EVFormula`.
        target_vig: Vig added back when synthesising reference counter odds.
    """

    reference_priority: tuple[str, ...] = field(
        default=DEFAULT_REFERENCE_PRIORITY
    )
    ev_formula: EVFormula = EVFormula.EARNINGS
    target_vig: float = DEFAULT_TARGET_VIG

    def __post_init__(self) -> None:
        priority = normalize_bookmaker_keys(self.reference_priority)
        if not priority:
            raise ValueError("reference_priority must name at least one bookmaker")
        if not 0.0 <= self.target_vig < 1.0:
            raise ValueError(f"target_vig={self.target_vig!r} must be in [0, 1)")
        # frozen: assign through object.__setattr__
        object.__setattr__(self, "reference_priority", priority)
        object.__setattr__(self, "ev_formula", EVFormula(self.ev_formula))
