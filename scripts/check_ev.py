"""
check_ev.py: Print the stored EV fields for one game of a sport.

Reads the latest snapshot (no provider call) and lists, per bookmaker, each
annotated moneyline and spread outcome next to the reference price.

Usage
-----
  python scripts/check_ev.py                         # basketball_nba, first game
  python scripts/check_ev.py --sport icehockey_nhl --game 2
  python scripts/check_ev.py --books draftkings,fanduel
"""

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def _fmt(value, spec: str) -> str:
    return "N/A" if value is None else format(value, spec)


def print_market(bookmaker: dict, market_key: str, title: str) -> None:
    market = next((m for m in bookmaker.get("markets", []) if m.get("key") == market_key), None)
    if market is None:
        return
    print(f"  ===== {title} =====")
    for outcome in market.get("outcomes", []):
        ev = outcome.get("expected_value")
        point = outcome.get("point")
        label = outcome.get("name") if point is None else f"{outcome.get('name')} {point:+g}"
        print(f"  {label}: {outcome.get('price')}  (reference {outcome.get('btb_price', 'N/A')})")
        print(f"    book no-vig {_fmt(outcome.get('book_no_vig'), '.4f')}"
              f" | reference no-vig {_fmt(outcome.get('reference_no_vig'), '.4f')}"
              f" | counter {_fmt(outcome.get('reference_counter_odds'), '.2f')}"
              f" | width {_fmt(outcome.get('width'), '.2f')}")
        if ev is None:
            print("    no EV (unmatched or reference book)")
        else:
            marker = "POSITIVE" if ev > 0 else "negative"
            print(f"    EV {ev:.4f} ({ev * 100:.2f}%) {marker}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect stored EV calculations.")
    parser.add_argument("--sport", default="basketball_nba")
    parser.add_argument("--game", type=int, default=1, help="1-based game index")
    parser.add_argument("--books", help="Comma-separated bookmaker keys to show")
    args = parser.parse_args()

    from btb.core.bookmakers import normalize_bookmaker_key
    from btb.models import SessionLocal
    from btb.services.snapshots import get_snapshot

    db = SessionLocal()
    try:
        snapshot = get_snapshot(db, args.sport)
    except Exception as exc:
        root = exc.__cause__ or exc
        print(f"ERROR: {type(root).__name__}: {root}")
        sys.exit(1)
    finally:
        db.close()

    if not snapshot or not snapshot["data"]:
        print(f"No data stored for {args.sport}. Run scripts/manual_fetch.py first.")
        sys.exit(1)

    games = snapshot["data"]
    if not 1 <= args.game <= len(games):
        print(f"--game must be between 1 and {len(games)}")
        sys.exit(1)
    game = games[args.game - 1]

    allow = None
    if args.books:
        allow = {normalize_bookmaker_key(b) for b in args.books.split(",") if b.strip()}

    print(f"Game: {game.get('away_team')} @ {game.get('home_team')}")
    print(f"ID: {game.get('id')}   Commence: {game.get('commence_time')}")

    for bookmaker in game.get("bookmakers", []):
        if allow is not None and normalize_bookmaker_key(bookmaker.get("key")) not in allow:
            continue
        print(f"\n{bookmaker.get('title')} ({bookmaker.get('key')})")
        print_market(bookmaker, "h2h", "MONEYLINE")
        print_market(bookmaker, "spreads", "SPREADS")

    updated = datetime.fromtimestamp(snapshot["lastUpdated"] / 1000, tz=timezone.utc)
    print(f"\nLast updated: {updated.strftime('%Y-%m-%d %H:%M:%S')} UTC")


if __name__ == "__main__":
    main()
