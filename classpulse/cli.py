"""
Performance Sync Runner

Recomputes student_performance rows for one teacher (or one student)
from the command line.

Usage:
    # Hosted store (uses SUPABASE_URL / SUPABASE_ANON_KEY):
    classpulse-sync <teacher_id>

    # One student only:
    classpulse-sync <teacher_id> --student <student_id>

    # Local SQL store (DATABASE_URL or SQLite fallback):
    classpulse-sync <teacher_id> --local
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from classpulse.performance.sync import PerformanceSync, SyncReport
from classpulse.store.base import DataStore
from classpulse.store.exceptions import StoreError
from classpulse.store.sql import SqlStore
from classpulse.store.supabase import SupabaseStore
from classpulse.utils.config import get_settings
from classpulse.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_store(local: bool = False, access_token: Optional[str] = None) -> DataStore:
    """Pick the hosted store when configured, the SQL store otherwise."""
    settings = get_settings()
    if local or not settings.supabase_configured:
        if not local:
            logger.warning("Supabase not configured, falling back to the local SQL store")
        return SqlStore.from_settings(settings)
    return SupabaseStore.from_settings(settings, access_token=access_token)


async def run_sync(store: DataStore, teacher_id: str, student_id: Optional[str] = None) -> SyncReport:
    """Sync one student or the whole roster and return the batch report."""
    sync = PerformanceSync(store)

    if student_id is None:
        return await sync.update_all(teacher_id)

    report = SyncReport(owner_id=teacher_id)
    try:
        await sync.update_one(student_id)
        report.updated.append(student_id)
    except Exception as e:
        logger.error(f"Failed to calculate performance for student {student_id}: {e}")
        report.failed[student_id] = str(e)
    return report


def print_report(report: SyncReport) -> None:
    print(f"\n{'=' * 60}")
    print(f"Performance sync for {report.owner_id}")
    print(f"{'=' * 60}")
    print(f"Updated: {len(report.updated)}")
    print(f"Failed:  {len(report.failed)}")
    for student_id, error in report.failed.items():
        print(f"  - {student_id}: {error}")
    print(f"Duration: {report.duration_ms:.0f}ms")


async def _main(args: argparse.Namespace) -> int:
    store = build_store(local=args.local, access_token=args.token)
    async with store:
        try:
            report = await run_sync(store, args.teacher_id, student_id=args.student)
        except StoreError as e:
            logger.error(f"Could not list students for {args.teacher_id}: {e}")
            return 2

    print_report(report)
    return 0 if report.success else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Recompute student performance summaries")
    parser.add_argument("teacher_id", help="Teacher whose students are synced")
    parser.add_argument("--student", help="Only sync this student")
    parser.add_argument("--local", action="store_true", help="Use the local SQL store")
    parser.add_argument("--token", help="User access token for row level security")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    args = parser.parse_args(argv)

    load_dotenv()
    configure_logging(args.log_level)

    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
