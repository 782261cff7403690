"""Bounded-concurrency batch imports."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from app.archive import ArchiveItem
from app.core.logging import get_logger
from app.db.models import ImportFailureReason
from app.services.importer import ImportExecutor
from app.services.outcomes import BatchResult, Failed, ImportOptions, ImportOutcome

logger = get_logger(__name__)


class BatchCoordinator:
    """Runs many single imports with a process-wide concurrency cap.

    One coordinator is shared by the HTTP batch endpoint and every collection
    job, so the semaphore bounds all in-flight imports together.
    """

    def __init__(self, executor: ImportExecutor, concurrency: int):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.executor = executor
        self.concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)

    async def import_batch(
        self,
        source_ids: Sequence[str],
        options: ImportOptions | None = None,
        *,
        items: dict[str, ArchiveItem] | None = None,
    ) -> BatchResult:
        """Import every identifier and partition the outcomes.

        Every input produces exactly one outcome. Outcomes are listed in
        completion order, not input order.

        Args:
            source_ids: Archive identifiers to import.
            options: Options applied to every item.
            items: Descriptors the caller already holds, keyed by identifier.
        """
        result = BatchResult()
        if not source_ids:
            return result

        known = items or {}

        async def run_one(source_id: str) -> None:
            async with self._semaphore:
                outcome = await self._import_guarded(source_id, options, known.get(source_id))
            result.add(outcome)

        await asyncio.gather(*(run_one(source_id) for source_id in source_ids))

        logger.info(
            "batch_import_completed",
            requested=len(source_ids),
            imported=len(result.imported),
            skipped=len(result.skipped),
            failed=len(result.failed),
        )
        return result

    async def _import_guarded(
        self,
        source_id: str,
        options: ImportOptions | None,
        item: ArchiveItem | None,
    ) -> ImportOutcome:
        try:
            return await self.executor.import_one(source_id, options, item=item)
        except Exception as e:
            logger.error(
                "import_crashed",
                source_id=source_id,
                error=str(e),
                exc_info=True,
            )
            return Failed(
                source_id=source_id,
                reason=ImportFailureReason.INTERNAL_ERROR,
                message=str(e) or type(e).__name__,
            )
