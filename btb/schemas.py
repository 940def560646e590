"""
Pydantic response schemas for the Beat the Books EV API.

Snapshot payloads are passed through as plain dicts: their game/bookmaker
shape belongs to the odds provider and is stored verbatim.  Schemas here
cover the fields this service owns.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Sports and snapshots
# ---------------------------------------------------------------------------

class SportResponse(BaseModel):
    sport_key: str
    label: str


class SnapshotResponse(BaseModel):
    """Latest stored snapshot for one sport."""

    data: list[dict[str, Any]]
    lastUpdated: int = Field(..., description="Epoch milliseconds of the refresh")
    freshness: Optional[dict[str, Any]] = None


class ApiUsageResponse(BaseModel):
    remainingRequests: str
    usedRequests: str
    lastUpdated: int


# ---------------------------------------------------------------------------
# EV listing
# ---------------------------------------------------------------------------

class EVBetResponse(BaseModel):
    """One annotated outcome at a non-reference bookmaker."""

    id: str
    game_id: Optional[str]
    sport: Optional[str]
    league: Optional[str]
    home_team: Optional[str]
    away_team: Optional[str]
    commence_time: Optional[str]
    market: Optional[str]
    outcome: Optional[str]
    point: Optional[float] = None
    bookmaker: Optional[str]
    bookmaker_title: Optional[str] = None
    odds: float
    reference_odds: float
    reference_point: Optional[float] = None
    book_no_vig: float
    reference_no_vig: float
    book_earnings: float
    reference_earnings: float
    reference_counter_odds: Optional[float] = None
    expected_value: float
    ev_percent: float
    width: Optional[float] = None
    is_positive_ev: bool


class EVListResponse(BaseModel):
    sport: str
    lastUpdated: int
    total: int
    bets: list[EVBetResponse]


# ---------------------------------------------------------------------------
# Refresh trigger
# ---------------------------------------------------------------------------

class SportRefreshResult(BaseModel):
    sport: str
    status: Literal["ok", "fetch_failed", "store_failed", "error"]
    games: int
    error: Optional[str] = None
    pipeline: Optional[dict[str, int]] = None
    requests_remaining: Optional[str] = None


class RefreshTriggerResponse(BaseModel):
    """Response from /admin/refresh."""

    message: str
    status: Literal["ok", "partial", "failed", "busy"]
    games_stored: int
    duration_seconds: float
    sports: list[SportRefreshResult]
