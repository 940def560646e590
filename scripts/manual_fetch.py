"""
manual_fetch.py: Fetch, annotate and store odds outside the scheduler.

Runs the same refresh job the server schedules, then prints a sample of the
first stored game so the EV fields can be eyeballed.

Usage
-----
  python scripts/manual_fetch.py                          # all supported sports
  python scripts/manual_fetch.py --sport basketball_nba   # one sport
  python scripts/manual_fetch.py --sport icehockey_nhl --no-sample
"""

import argparse
import logging
import sys
from pathlib import Path

# Ensure the project root (one level up from scripts/) is on sys.path so that
# `from btb.xxx import ...` resolves when the script is run directly.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def print_sample(games: list, reference_keys: tuple) -> None:
    """Print the first moneyline outcome that carries EV fields."""
    if not games:
        print("  (no games stored)")
        return
    game = games[0]
    print(f"\n===== SAMPLE: {game.get('away_team')} @ {game.get('home_team')} =====")
    for bookmaker in game.get("bookmakers", []):
        for market in bookmaker.get("markets", []):
            if market.get("key") != "h2h":
                continue
            for outcome in market.get("outcomes", []):
                if outcome.get("expected_value") is None:
                    continue
                ev = outcome["expected_value"]
                print(f"  Bookmaker:       {bookmaker.get('title')}")
                print(f"  Team:            {outcome.get('name')}")
                print(f"  Price:           {outcome.get('price')}")
                print(f"  Reference price: {outcome.get('btb_price')}")
                print(f"  Expected value:  {ev:.4f} ({ev * 100:.2f}%)")
                return
    print(f"  No annotated moneyline outcome (reference books: {', '.join(reference_keys)})")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Fetch odds, add EV annotations and store the snapshot."
    )
    parser.add_argument(
        "--sport",
        action="append",
        help="Sport key to refresh (repeatable). Defaults to SUPPORTED_SPORTS.",
    )
    parser.add_argument(
        "--no-sample",
        action="store_true",
        help="Skip printing a sample of the stored data.",
    )
    args = parser.parse_args()

    from btb.models import SessionLocal, init_db
    from btb.services.ev_pipeline import load_ev_config
    from btb.services.refresh import run_refresh
    from btb.services.snapshots import get_snapshot

    init_db()
    config = load_ev_config()

    try:
        summary = run_refresh(sports=args.sport, trigger="script", config=config)
    except Exception as exc:
        print(f"ERROR: {type(exc).__name__}: {exc}")
        sys.exit(1)

    for result in summary["sports"]:
        line = f"  {result['sport']:<24} {result['status']:<13} {result['games']} games"
        if result.get("error"):
            line += f"  ({result['error']})"
        print(line)

    if not args.no_sample:
        db = SessionLocal()
        try:
            for result in summary["sports"]:
                if result["status"] != "ok":
                    continue
                snapshot = get_snapshot(db, result["sport"])
                print_sample(snapshot["data"] if snapshot else [], config.reference_priority)
                break
        finally:
            db.close()

    print(f"\nRefresh finished: {summary['status']} in {summary['duration_seconds']}s")
    if summary["status"] in ("failed", "busy"):
        sys.exit(1)


if __name__ == "__main__":
    main()
