"""
FastAPI application for the Beat the Books EV service
Serves stored odds snapshots and EV listings, and schedules odds refreshes
"""

from fastapi import FastAPI, Depends, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional
import logging
import os

from btb.models import get_db, init_db
from btb.auth import verify_api_key, verify_admin_api_key
from btb.core.sport_config import get_sport
from btb.services.ev_bets import SORT_FIELDS, filter_ev_bets, flatten_ev_bets
from btb.services.odds import get_data_freshness
from btb.services.refresh import configured_sports, run_refresh
from btb.services.snapshots import get_api_usage, get_snapshot
from btb.schemas import (
    ApiUsageResponse,
    EVListResponse,
    RefreshTriggerResponse,
    SnapshotResponse,
    SportResponse,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Scheduler instance
scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting Beat the Books EV service")
    init_db()

    refresh_hours = int(os.getenv("REFRESH_INTERVAL_HOURS", "2"))
    timezone = os.getenv("REFRESH_TIMEZONE", "America/New_York")

    scheduler.add_job(
        _scheduled_refresh_job,
        IntervalTrigger(hours=refresh_hours),
        id="odds_refresh",
        name="Odds Refresh + EV Annotation",
        replace_existing=True,
    )

    # Morning refresh so the board is fresh before the day's slate
    daily_enabled = os.getenv("DAILY_REFRESH_ENABLED", "true").lower() == "true"
    daily_hour = int(os.getenv("DAILY_REFRESH_HOUR", "8"))
    if daily_enabled:
        scheduler.add_job(
            _scheduled_refresh_job,
            CronTrigger(hour=daily_hour, minute=0, timezone=timezone),
            id="daily_odds_refresh",
            name="Daily Odds Refresh",
            replace_existing=True,
        )

    scheduler.start()
    logger.info(
        "Scheduler started: refresh every %dh%s",
        refresh_hours,
        f", daily@{daily_hour:02d}:00 {timezone}" if daily_enabled else "",
    )

    yield

    logger.info("Shutting down Beat the Books EV service")
    scheduler.shutdown()


app = FastAPI(
    title="Beat the Books EV",
    description="Odds aggregation with no-vig expected value against a sharp reference line",
    version="1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:3000").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# SCHEDULED JOB
# ============================================================================

def _scheduled_refresh_job():
    """Fetch, annotate and store every supported sport."""
    try:
        summary = run_refresh(trigger="scheduled")
        logger.info("Scheduled refresh: %s", summary["status"])
    except Exception as exc:
        logger.error("Scheduled refresh job failed: %s", exc, exc_info=True)


def _require_sport(sport: str) -> str:
    supported = {s.sport_key for s in configured_sports()}
    if sport not in supported:
        raise HTTPException(status_code=404, detail=f"Unsupported sport: {sport}")
    return sport


def _require_snapshot(db: Session, sport: str) -> dict:
    snapshot = get_snapshot(db, sport)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"No odds data available for {sport}")
    return snapshot


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """Health check"""
    return {
        "app": "Beat the Books EV",
        "version": "1.0",
        "status": "operational",
        "timestamp": datetime.utcnow().isoformat(),
    }


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint"""
    health = {"status": "healthy", "database": "connected", "scheduler": "running"}

    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Health check database error: %s", e)
        health["status"] = "degraded"
        health["database"] = f"error: {str(e)}"

    if not scheduler.running:
        health["status"] = "degraded"
        health["scheduler"] = "stopped"

    return health


# ============================================================================
# AUTHENTICATED ENDPOINTS
# ============================================================================

@app.get("/api/sports", response_model=List[SportResponse])
async def list_sports(user: str = Depends(verify_api_key)):
    """Sports refreshed by this deployment."""
    return [SportResponse(sport_key=s.sport_key, label=s.label) for s in configured_sports()]


@app.get("/api/odds/{sport}", response_model=SnapshotResponse)
async def get_sport_odds(
    sport: str,
    user: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    """Latest annotated snapshot for a sport."""
    _require_sport(sport)
    snapshot = _require_snapshot(db, sport)
    return SnapshotResponse(
        data=snapshot["data"],
        lastUpdated=snapshot["lastUpdated"],
        freshness=get_data_freshness(snapshot["lastUpdated"]),
    )


@app.get("/api/evs/{sport}", response_model=EVListResponse)
async def get_sport_evs(
    sport: str,
    min_ev: Optional[float] = Query(None, description="Minimum EV as a decimal (0.02 = 2%)"),
    max_width: Optional[float] = Query(None, ge=0),
    bookmakers: Optional[str] = Query(None, description="Comma-separated bookmaker keys"),
    sort_by: str = Query("ev_percent"),
    descending: bool = Query(True),
    user: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    """EV rows for a sport, filtered and sorted."""
    _require_sport(sport)
    if sort_by not in SORT_FIELDS:
        raise HTTPException(status_code=422, detail=f"sort_by must be one of {list(SORT_FIELDS)}")
    snapshot = _require_snapshot(db, sport)

    books = [b for b in bookmakers.split(",") if b.strip()] if bookmakers else None
    rows = flatten_ev_bets(snapshot["data"], bookmakers=books)
    rows = filter_ev_bets(
        rows, min_ev=min_ev, max_width=max_width, sort_by=sort_by, descending=descending
    )
    return EVListResponse(
        sport=sport,
        lastUpdated=snapshot["lastUpdated"],
        total=len(rows),
        bets=rows,
    )


@app.get("/api/usage", response_model=ApiUsageResponse)
async def get_usage(
    user: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    """Odds API quota reported by the most recent refresh."""
    usage = get_api_usage(db)
    if usage is None:
        raise HTTPException(status_code=404, detail="No API usage recorded yet")
    return usage


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================

@app.post("/admin/refresh", response_model=RefreshTriggerResponse)
def trigger_refresh(
    sport: Optional[str] = None,
    user: str = Depends(verify_admin_api_key),
):
    """Manually refresh odds (admin only). Runs synchronously and returns results."""
    logger.info("Manual refresh triggered by %s (sport=%s)", user, sport or "all")
    if sport is not None:
        _require_sport(sport)
    try:
        summary = run_refresh(sports=[sport] if sport else None, trigger="manual")
    except Exception as exc:
        logger.error("Manual refresh failed: %s", exc, exc_info=True)
        raise HTTPException(status_code=500, detail=str(exc))

    messages = {
        "ok": "Odds refresh complete",
        "partial": "Odds refresh completed with errors",
        "failed": "Odds refresh failed for every sport",
        "busy": "Odds refresh already in progress",
    }
    return RefreshTriggerResponse(message=messages[summary["status"]], **summary)


@app.get("/admin/scheduler/status")
async def get_scheduler_status(user: str = Depends(verify_admin_api_key)):
    """Get scheduler job status"""
    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
        })

    return {
        "running": scheduler.running,
        "jobs": jobs,
    }


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Catch-all exception handler"""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
