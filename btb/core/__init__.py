"""Core mathematics and configuration for the Beat the Books EV service.

This package contains pure building blocks:

- ``odds_math``     odds normalization, counter odds, EV, width
- ``bookmakers``    bookmaker key normalization and market vocabulary
- ``ev_config``     parameters of the EV pipeline
- ``sport_config``  registry of supported sports

Nothing in this package imports from ``btb.services`` or ``btb.models``.
All modules are side-effect-free and unit-testable in isolation.
"""
