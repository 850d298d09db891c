"""
Performance Sync

Recomputes student_performance rows from raw responses:
- update_one: fetch responses -> aggregate -> upsert -> purge cached summary
- update_all: every student of a teacher, best effort; one student's
  failure is logged and recorded, the rest of the batch still runs

Students with no responses still get the canonical empty record, so
reads never need a "missing record" branch.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import ValidationError

from classpulse.cache.invalidation import CacheInvalidator, MutationKind
from classpulse.cache.keys import EntityType
from classpulse.performance.aggregator import aggregate_detailed
from classpulse.performance.models import PerformanceRecord, ResponseRecord
from classpulse.store.base import DataStore

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Outcome of a batch performance sync."""
    owner_id: str
    updated: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    duration_ms: float = 0.0

    @property
    def total(self) -> int:
        return len(self.updated) + len(self.failed)

    @property
    def success(self) -> bool:
        return not self.failed


class PerformanceSync:
    """Writes aggregated performance summaries back to the data store."""

    def __init__(
        self,
        store: DataStore,
        invalidator: Optional[CacheInvalidator] = None,
    ):
        self._store = store
        self._invalidator = invalidator

    async def update_one(self, student_id: str) -> PerformanceRecord:
        """
        Recompute and upsert one student's performance record.

        Raises:
            StoreError: If fetching responses or the upsert fails
        """
        rows = await self._store.fetch_collection(EntityType.RESPONSES, student_id)

        # Unparseable rows are excluded like any other malformed response
        responses = []
        unparseable = 0
        for row in rows:
            try:
                responses.append(ResponseRecord.from_row(row))
            except (ValidationError, KeyError) as e:
                unparseable += 1
                logger.warning(
                    f"Excluding unparseable response {row.get('id')} "
                    f"for student {student_id}: {e}"
                )

        result = aggregate_detailed(responses, student_id=student_id)
        record = result.record
        excluded = result.excluded + unparseable

        if excluded or result.duplicates:
            logger.info(
                f"Student {student_id}: {excluded} responses excluded, "
                f"{result.duplicates} duplicates ignored"
            )

        await self._store.upsert(EntityType.PERFORMANCE, student_id, record.to_row())

        if self._invalidator is not None:
            self._invalidator.handle(MutationKind.PERFORMANCE_RECALCULATED, student_id=student_id)

        logger.debug(
            f"Performance updated for student {student_id}: "
            f"{record.assessment_count} assessments, average {record.average_score}"
        )
        return record

    async def update_all(self, owner_id: str) -> SyncReport:
        """
        Recompute performance for every student of ``owner_id``.

        Per-student failures never abort the batch. Failing to list the
        students at all propagates.
        """
        start_time = time.perf_counter()
        report = SyncReport(owner_id=owner_id)

        students = await self._store.fetch_collection(EntityType.STUDENTS, owner_id)
        logger.info(f"Starting performance calculation for {len(students)} students of {owner_id}")

        for student in students:
            student_id = str(student["id"])
            try:
                await self.update_one(student_id)
                report.updated.append(student_id)
            except Exception as e:
                logger.error(f"Failed to calculate performance for student {student_id}: {e}")
                report.failed[student_id] = str(e)

        report.duration_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            f"Performance calculation completed for {owner_id}: "
            f"{len(report.updated)} updated, {len(report.failed)} failed, "
            f"duration: {report.duration_ms:.2f}ms"
        )
        return report
