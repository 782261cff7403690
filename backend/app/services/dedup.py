"""Duplicate detection for imports."""

from __future__ import annotations

import enum

from app.services.catalog import VideoCatalog


class DedupDecision(str, enum.Enum):
    """Whether an item should be imported."""

    IMPORT = "IMPORT"
    SKIP = "SKIP"


class Deduplicator:
    """Decides whether a source item needs importing.

    This is a pre-check only. Two concurrent imports of the same item can
    both be told IMPORT; the catalog's unique index settles the race and the
    loser fails with a duplicate key.
    """

    def __init__(self, catalog: VideoCatalog):
        self.catalog = catalog

    async def decide(self, source_id: str, skip_existing: bool = True) -> DedupDecision:
        """Decide IMPORT or SKIP for a source item.

        With ``skip_existing`` False an existing item is still sent to IMPORT
        and the insert reports the duplicate.
        """
        if not skip_existing:
            return DedupDecision.IMPORT
        if await self.catalog.exists(source_id):
            return DedupDecision.SKIP
        return DedupDecision.IMPORT
