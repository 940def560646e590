"""
Odds refresh job: fetch → annotate → store, one sport at a time.

Called by the APScheduler interval/cron jobs, by ``POST /admin/refresh`` and
by ``scripts/manual_fetch.py``.  Sports are processed sequentially with a
fixed pause between provider requests to stay under the rate limit.

Failure isolation:
    - A provider error for one sport is logged and recorded in
      ``data_fetches``; the previous snapshot for that sport is kept and the
      loop moves on.
    - A storage error rolls back that sport's write only.
    - A refresh already in progress makes a second call return
      ``status="busy"`` instead of running twice in parallel.
"""

import logging
import os
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional

from btb.core.ev_config import EVConfig
from btb.core.sport_config import SportConfig, resolve_sports
from btb.models import SessionLocal
from btb.services.ev_pipeline import annotate_games_with_stats, load_ev_config
from btb.services.odds import OddsAPIClient, OddsAPIError
from btb.services.snapshots import record_fetch, save_api_usage, save_snapshot

logger = logging.getLogger(__name__)

REQUEST_DELAY_SEC = float(os.getenv("ODDS_REQUEST_DELAY_SEC", "1.0"))

_refresh_lock = threading.Lock()


def configured_sports() -> List[SportConfig]:
    """Sports from ``SUPPORTED_SPORTS`` (comma-separated), else the registry."""
    raw = os.getenv("SUPPORTED_SPORTS")
    return resolve_sports(raw.split(",") if raw else None)


def refresh_sport(
    db,
    client: OddsAPIClient,
    sport: SportConfig,
    config: EVConfig,
    trigger: str = "scheduled",
) -> Dict:
    """
    Refresh a single sport.

    Returns a result dict with ``status`` one of ``ok``, ``fetch_failed`` or
    ``store_failed``.  Never raises for provider or storage errors.
    """
    result: Dict = {"sport": sport.sport_key, "status": "ok", "games": 0}

    started = time.time()
    try:
        fetched = client.get_sport_odds(sport.sport_key, markets=sport.markets)
    except OddsAPIError as exc:
        elapsed_ms = int((time.time() - started) * 1000)
        logger.error("Error fetching odds for %s: %s", sport.sport_key, exc)
        record_fetch(
            db, sport.sport_key, success=False, trigger=trigger,
            error_message=str(exc), response_time_ms=elapsed_ms,
        )
        result.update(status="fetch_failed", error=str(exc))
        return result
    elapsed_ms = int((time.time() - started) * 1000)

    annotated, stats = annotate_games_with_stats(fetched.games, config)
    result["games"] = len(annotated)
    result["pipeline"] = stats.as_dict()

    try:
        save_snapshot(db, sport.sport_key, annotated)
    except Exception as exc:
        logger.error("Storing %s snapshot failed: %s", sport.sport_key, exc, exc_info=True)
        record_fetch(
            db, sport.sport_key, success=False, trigger=trigger,
            records_fetched=len(annotated), error_message=f"store: {exc}",
            response_time_ms=elapsed_ms,
        )
        result.update(status="store_failed", error=str(exc))
        return result

    record_fetch(
        db, sport.sport_key, success=True, trigger=trigger,
        records_fetched=len(annotated), response_time_ms=elapsed_ms,
    )

    try:
        save_api_usage(db, fetched.requests_remaining, fetched.requests_used)
    except Exception as exc:
        logger.warning("API usage not stored: %s", exc)

    result["requests_remaining"] = fetched.requests_remaining
    return result


def run_refresh(
    sports: Optional[Iterable[str]] = None,
    trigger: str = "scheduled",
    client: Optional[OddsAPIClient] = None,
    session_factory: Callable = SessionLocal,
    config: Optional[EVConfig] = None,
    delay_sec: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict:
    """
    Refresh every configured sport (or ``sports`` when given).

    Returns a summary dict::

        {"status": "ok" | "partial" | "failed" | "busy",
         "sports": [<refresh_sport result>, ...],
         "games_stored": int, "duration_seconds": float}
    """
    if not _refresh_lock.acquire(blocking=False):
        logger.warning("Odds refresh already running, %s trigger skipped", trigger)
        return {"status": "busy", "sports": [], "games_stored": 0, "duration_seconds": 0.0}

    start = time.time()
    try:
        sport_cfgs = resolve_sports(sports) if sports is not None else configured_sports()
        client = client or OddsAPIClient()
        config = config or load_ev_config()
        delay = REQUEST_DELAY_SEC if delay_sec is None else delay_sec

        logger.info(
            "Starting odds refresh (%s) for %s",
            trigger, ", ".join(s.sport_key for s in sport_cfgs),
        )

        results: List[Dict] = []
        db = session_factory()
        try:
            for i, sport in enumerate(sport_cfgs):
                try:
                    results.append(refresh_sport(db, client, sport, config, trigger))
                except Exception as exc:
                    logger.error(
                        "Odds refresh for %s failed: %s", sport.sport_key, exc, exc_info=True
                    )
                    results.append({
                        "sport": sport.sport_key, "status": "error",
                        "games": 0, "error": str(exc),
                    })
                if i < len(sport_cfgs) - 1 and delay > 0:
                    sleep(delay)
        finally:
            db.close()
    finally:
        _refresh_lock.release()

    ok = sum(1 for r in results if r["status"] == "ok")
    if ok == len(results):
        status = "ok"
    elif ok == 0:
        status = "failed"
    else:
        status = "partial"

    summary = {
        "status": status,
        "sports": results,
        "games_stored": sum(r["games"] for r in results if r["status"] == "ok"),
        "duration_seconds": round(time.time() - start, 2),
    }
    logger.info(
        "Odds refresh (%s) complete: %s, %d/%d sports ok, %d games stored in %.1fs",
        trigger, status, ok, len(results), summary["games_stored"],
        summary["duration_seconds"],
    )
    return summary
