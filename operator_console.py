#!/usr/bin/env python3
"""
CivicAI - Municipal Operator Console
Live, filtered view of reported issues with status management.
"""
import argparse
import asyncio
import sys

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from civicai.core.constants import FILTER_ALL
from civicai.core.errors import CivicAIError, describe_error
from civicai.core.logging import get_logger, setup_logging
from civicai.dashboard import DashboardSnapshot, FilterState, LifecycleController, SyncEngine
from civicai.issues.models import IssueStatus
from civicai.store import create_stores

logger = get_logger("civicai.operator_console")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage civic issues")
    parser.add_argument("--status", default=FILTER_ALL)
    parser.add_argument("--category", default=FILTER_ALL)
    parser.add_argument("--priority", default=FILTER_ALL)
    parser.add_argument("--once", action="store_true", help="Print the current view and exit")
    parser.add_argument("--set-status", nargs=2, metavar=("ISSUE_ID", "STATUS"),
                        help="Change an issue's status: " + ", ".join(s.value for s in IssueStatus))
    parser.add_argument("--assignee", help="Worker to assign with --set-status")
    return parser.parse_args(argv)


def render(snapshot: DashboardSnapshot) -> None:
    stats = snapshot.statistics
    print("\n" + "-" * 60)
    print(f"Total: {stats.total}  |  " + "  ".join(
        f"{status}: {count}" for status, count in stats.by_status.items()
    ) + f"  |  high priority: {stats.high_priority}")
    if not snapshot.live:
        print("(live updates inactive)")
    if snapshot.error:
        print(f"WARNING: {snapshot.error}")

    if not snapshot.visible:
        print("No issues found. Try adjusting your filters to see more results.")
        return

    for issue in snapshot.visible:
        print(
            f"{issue.id[:8]}  {issue.status.value:<11} {issue.priority.value:<6} "
            f"{issue.category:<12} {issue.department:<18} "
            f"{issue.created_at:%Y-%m-%d}  {issue.title}"
        )


async def run(args: argparse.Namespace) -> int:
    issue_store, blob_store = create_stores()

    try:
        if args.set_status:
            issue_id, status = args.set_status
            controller = LifecycleController(issue_store)
            issue = await controller.set_status(issue_id, status, assignee=args.assignee)
            print(f"Issue {issue.id} is now {issue.status.value} (updated {issue.updated_at:%Y-%m-%d %H:%M:%S})")
            return 0

        filter_state = FilterState(status=args.status, category=args.category, priority=args.priority)
        async with SyncEngine(issue_store, filter_state) as engine:
            render(engine.snapshot())
            if args.once:
                return 0
            engine.add_listener(render)
            print("\nWatching for changes (Ctrl+C to stop)...")
            await asyncio.Event().wait()

    except (CivicAIError, ValueError) as e:
        logger.error(f"Console command failed: {e}")
        print(f"\nERROR: {describe_error(e) if isinstance(e, CivicAIError) else e}")
        return 1
    finally:
        await issue_store.close()
        await blob_store.close()
    return 0


def main():
    args = parse_args()
    setup_logging()

    print("=" * 60)
    print("CivicAI - Municipal Dashboard")
    print("=" * 60)

    try:
        exit_code = asyncio.run(run(args))
    except KeyboardInterrupt:
        exit_code = 0
    print("=" * 60)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
