"""Per-item import outcomes and batch aggregation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from app.db.models import ImportFailureReason, Video

ALREADY_IMPORTED = "already imported"


@dataclass(frozen=True)
class ImportOptions:
    """Caller options shared by single, batch and collection imports."""

    skip_existing: bool = True
    sync_subtitles: bool = False


@dataclass(frozen=True)
class Imported:
    """The item was written to the catalog."""

    video: Video

    @property
    def source_id(self) -> str:
        return self.video.source_id


@dataclass(frozen=True)
class Skipped:
    """The item was already in the catalog and the caller asked to skip it."""

    source_id: str
    reason: str = ALREADY_IMPORTED


@dataclass(frozen=True)
class Failed:
    """The item could not be imported. Siblings are unaffected."""

    source_id: str
    reason: ImportFailureReason
    message: str


ImportOutcome = Union[Imported, Skipped, Failed]


@dataclass
class BatchResult:
    """Outcomes of a batch, partitioned by kind in completion order."""

    imported: list[Imported] = field(default_factory=list)
    skipped: list[Skipped] = field(default_factory=list)
    failed: list[Failed] = field(default_factory=list)

    def add(self, outcome: ImportOutcome) -> None:
        """Record one outcome in its list."""
        if isinstance(outcome, Imported):
            self.imported.append(outcome)
        elif isinstance(outcome, Skipped):
            self.skipped.append(outcome)
        elif isinstance(outcome, Failed):
            self.failed.append(outcome)
        else:
            raise TypeError(f"Unknown import outcome: {outcome!r}")

    @property
    def total(self) -> int:
        return len(self.imported) + len(self.skipped) + len(self.failed)
