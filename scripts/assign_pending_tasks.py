#!/usr/bin/env python3
"""
DesignDesk Pending Task Sweep

Finds PENDING tasks that never got a freelancer (e.g. created while no
approved artist existed) and runs them through ranking + selection.
Without --confirm only the planned assignments are printed.
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.models import SessionLocal  # noqa: E402
from src.assignment import assign_pending_tasks  # noqa: E402


def main():
    parser = argparse.ArgumentParser(
        description="Assign PENDING tasks that have no freelancer"
    )
    parser.add_argument(
        "--confirm",
        action="store_true",
        help="Apply assignments (default: dry run)"
    )
    parser.add_argument(
        "--limit", "-l",
        type=int,
        default=None,
        help="Maximum number of tasks to examine"
    )
    args = parser.parse_args()

    db = SessionLocal()
    try:
        result = assign_pending_tasks(db, limit=args.limit, dry_run=not args.confirm)
    finally:
        db.close()

    print(f"Examined: {result['examined']}")
    if not args.confirm:
        print("-" * 60)
        for plan in result["planned"]:
            marker = " (fallback)" if plan["is_fallback"] else ""
            print(f"  {plan['task_id']} -> {plan['freelancer_id']} score={plan['match_score']}{marker}")
        print("-" * 60)
        print(f"Would assign {len(result['planned'])} task(s). Run with --confirm to apply changes")
    else:
        print(f"Assigned:   {result['assigned']} (fallback: {result['fallback']})")
        print(f"Unassigned: {result['unassigned']}")
        print(f"Errors:     {result['errors']}")

    sys.exit(1 if result["errors"] else 0)


if __name__ == "__main__":
    main()
