"""
Snapshot store: the latest annotated odds per sport.

Each sport has exactly one row holding ``{data, lastUpdated}``.  A refresh
replaces it wholesale inside a single transaction, so a failed write rolls
back and readers keep seeing the previous snapshot.
"""

import logging
import time
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from btb.models import ApiUsage, DataFetch, OddsSnapshot

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def save_snapshot(
    db: Session,
    sport_key: str,
    games: List[Dict],
    last_updated: Optional[int] = None,
) -> Dict:
    """
    Overwrite the snapshot for ``sport_key`` and commit.

    Returns the stored ``{data, lastUpdated}`` payload.

    Raises:
        Any SQLAlchemy error after rolling the session back.
    """
    last_updated = last_updated if last_updated is not None else now_ms()
    try:
        row = db.query(OddsSnapshot).filter(OddsSnapshot.sport_key == sport_key).first()
        if row is None:
            row = OddsSnapshot(sport_key=sport_key)
            db.add(row)
        row.data = games
        row.last_updated = last_updated
        row.games_count = len(games)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Stored %d games for %s", len(games), sport_key)
    return {"data": games, "lastUpdated": last_updated}


def get_snapshot(db: Session, sport_key: str) -> Optional[Dict]:
    """Latest ``{data, lastUpdated}`` for ``sport_key``, or None if never stored."""
    row = db.query(OddsSnapshot).filter(OddsSnapshot.sport_key == sport_key).first()
    if row is None:
        return None
    return {"data": row.data, "lastUpdated": row.last_updated}


def save_api_usage(
    db: Session,
    remaining: Optional[str],
    used: Optional[str],
    last_updated: Optional[int] = None,
) -> Dict:
    """Overwrite the single API-usage row and commit."""
    payload = {
        "remainingRequests": remaining or "unknown",
        "usedRequests": used or "unknown",
        "lastUpdated": last_updated if last_updated is not None else now_ms(),
    }
    try:
        row = db.query(ApiUsage).first()
        if row is None:
            row = ApiUsage()
            db.add(row)
        row.remaining_requests = payload["remainingRequests"]
        row.used_requests = payload["usedRequests"]
        row.last_updated = payload["lastUpdated"]
        db.commit()
    except Exception:
        db.rollback()
        raise
    return payload


def get_api_usage(db: Session) -> Optional[Dict]:
    row = db.query(ApiUsage).first()
    if row is None:
        return None
    return {
        "remainingRequests": row.remaining_requests,
        "usedRequests": row.used_requests,
        "lastUpdated": row.last_updated,
    }


def record_fetch(
    db: Session,
    sport_key: str,
    success: bool,
    trigger: str,
    records_fetched: Optional[int] = None,
    error_message: Optional[str] = None,
    response_time_ms: Optional[int] = None,
) -> None:
    """Append a provider-health row.  Failures here are logged, never raised."""
    try:
        db.add(DataFetch(
            data_source="odds_api",
            sport_key=sport_key,
            trigger=trigger,
            success=success,
            records_fetched=records_fetched,
            error_message=error_message,
            response_time_ms=response_time_ms,
        ))
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error("Could not record fetch for %s: %s", sport_key, exc)
