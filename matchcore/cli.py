from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from config import LOG_LEVEL
from matchcore.core import MatchCore
from matchcore.errors import MatchCoreError
from matchcore.models import SwipeAction
from matchcore.services import InMemoryMatchEventPublisher, InMemoryProfileStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run candidate recommendations and swipes against a JSON fixture of profiles."
    )
    parser.add_argument("--data", type=Path, required=True, help="Path to JSON fixture with profiles and preferences")
    parser.add_argument("--log-level", default=LOG_LEVEL, help=f"Logging level (default: {LOG_LEVEL})")
    sub = parser.add_subparsers(dest="command", required=True)

    candidates = sub.add_parser("candidates", help="Print ranked candidates for a user")
    candidates.add_argument("user_id")
    candidates.add_argument("--page-size", type=int, default=None, help="Number of candidates (default: 10)")
    candidates.add_argument("--offset", type=int, default=0, help="Ranked candidates to skip (default: 0)")
    candidates.add_argument("--explain", action="store_true", help="Include per-factor scores")

    swipe = sub.add_parser("swipe", help="Record a swipe (swipes in the fixture are replayed first)")
    swipe.add_argument("actor_id")
    swipe.add_argument("target_id")
    swipe.add_argument("action", choices=[a.name.lower() for a in SwipeAction])
    return parser.parse_args(argv)


def load_core(path: Path) -> tuple[MatchCore, InMemoryMatchEventPublisher]:
    """Build an in-memory core from a fixture and replay its recorded swipes."""
    data = json.loads(path.read_text(encoding="utf-8"))
    publisher = InMemoryMatchEventPublisher()
    core = MatchCore.create(InMemoryProfileStore.from_dict(data), publisher=publisher)
    for item in data.get("swipes", []):
        core.swipe(item["actor_id"], item["target_id"], item["action"])
    return core, publisher


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s %(message)s")

    try:
        core, publisher = load_core(args.data)
        replayed = len(publisher.events)

        if args.command == "candidates":
            for c in core.get_candidates(args.user_id, args.page_size, args.offset):
                line = f"{c.position:>3}. {c.candidate_id:<20} score={c.score:6.2f} raw={c.raw_score:6.2f}"
                if c.boost.value != "none":
                    line += f" boost={c.boost.value}"
                if args.explain:
                    line += " " + json.dumps(c.factors.to_dict())
                print(line)
        else:
            result = core.swipe(args.actor_id, args.target_id, args.action)
            if result.is_match:
                new = "new" if len(publisher.events) > replayed else "existing"
                print(f"It's a match! ({new}) match_id={result.match_id}")
            else:
                print("Swipe recorded.")
    except MatchCoreError as e:
        raise SystemExit(f"error: {e}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
