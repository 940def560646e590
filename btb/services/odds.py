"""
The Odds API integration.
https://the-odds-api.com/

One request per sport returns every game with quotes from the requested
bookmakers.  The ``eu`` region is included so Pinnacle, the preferred
reference book, is present in the response.

Unlike a best-effort poller, the refresh job must be able to tell "no games
today" from "the request failed" (an empty list would overwrite a good
snapshot), so failures raise :class:`OddsAPIError` instead of returning ``[]``.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import requests
from dotenv import load_dotenv

from btb.core.bookmakers import DEFAULT_BOOKMAKERS

load_dotenv()

logger = logging.getLogger(__name__)

API_KEY = os.getenv("THE_ODDS_API_KEY")
BASE_URL = os.getenv("ODDS_API_BASE_URL", "https://api.the-odds-api.com/v4")
REQUEST_TIMEOUT_SEC = float(os.getenv("ODDS_API_TIMEOUT_SEC", "10"))


class OddsAPIError(RuntimeError):
    """Raised when the provider request fails or returns an unusable body."""


@dataclass
class OddsFetchResult:
    """Games for one sport plus the quota headers of the response."""

    sport: str
    games: List[Dict]
    requests_remaining: Optional[str] = None
    requests_used: Optional[str] = None
    fetched_at: datetime = field(default_factory=datetime.utcnow)


class OddsAPIClient:
    """Client for The Odds API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        bookmakers: Optional[Iterable[str]] = None,
    ):
        self.api_key = api_key or API_KEY
        if not self.api_key:
            raise ValueError("THE_ODDS_API_KEY not set in environment")
        self._session = session or requests.Session()

        env_books = os.getenv("ODDS_API_BOOKMAKERS")
        if bookmakers is not None:
            self.bookmakers = list(bookmakers)
        elif env_books:
            self.bookmakers = [b.strip() for b in env_books.split(",") if b.strip()]
        else:
            self.bookmakers = list(DEFAULT_BOOKMAKERS)

    def get_sport_odds(
        self,
        sport: str,
        markets: str = "spreads,totals,h2h",
        regions: Optional[str] = None,
        odds_format: str = "american",
    ) -> OddsFetchResult:
        """
        Fetch current odds for one sport.

        Raises:
            OddsAPIError: On any transport error, non-2xx status, or a body
                that is not a JSON list.
        """
        url = f"{BASE_URL}/sports/{sport}/odds"

        params = {
            "apiKey": self.api_key,
            "regions": regions or os.getenv("ODDS_API_REGIONS", "us,eu"),
            "markets": markets,
            "oddsFormat": odds_format,
            "bookmakers": ",".join(self.bookmakers),
        }

        try:
            response = self._session.get(url, params=params, timeout=REQUEST_TIMEOUT_SEC)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise OddsAPIError(f"Odds API request for {sport} failed: {e}") from e
        except ValueError as e:
            raise OddsAPIError(f"Odds API returned invalid JSON for {sport}: {e}") from e

        if not isinstance(data, list):
            raise OddsAPIError(
                f"Odds API returned {type(data).__name__} for {sport}, expected a list"
            )

        remaining = response.headers.get("x-requests-remaining")
        used = response.headers.get("x-requests-used")
        logger.info(
            "Odds API: %d %s games fetched. Quota: %s used, %s remaining",
            len(data), sport, used, remaining,
        )

        return OddsFetchResult(
            sport=sport,
            games=data,
            requests_remaining=remaining,
            requests_used=used,
        )


def get_data_freshness(last_updated_ms: int, now: Optional[datetime] = None) -> Dict:
    """Age of a stored snapshot, bucketed into freshness tiers."""
    now = now or datetime.utcnow()
    fetched_at = datetime.utcfromtimestamp(last_updated_ms / 1000.0)
    age_minutes = (now - fetched_at).total_seconds() / 60
    age_hours = age_minutes / 60

    if age_hours < 2:
        tier = "Tier 1"
    elif age_hours < 6:
        tier = "Tier 2"
    else:
        tier = "Tier 3"

    return {
        "fetched_at": fetched_at.isoformat(),
        "age_minutes": age_minutes,
        "age_hours": age_hours,
        "tier": tier,
    }
