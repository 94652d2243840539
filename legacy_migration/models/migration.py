"""Migration run models: immutable phase statistics and the final report."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ReportInvariantError
from .legacy import utcnow
from .record import RecordOutcome, RecordStatus


class MigrationStatus(str, Enum):
    """Status of a migration run."""
    PENDING = "pending"
    BACKING_UP = "backing_up"
    MIGRATING = "migrating"
    REPAIRING = "repairing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class MigrationStats:
    """Counters for one entity type. Instances are never mutated."""
    entity: str
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    errored: int = 0

    def record(self, status: RecordStatus) -> "MigrationStats":
        """Return new stats with one more record in the given terminal state."""
        if status == RecordStatus.MIGRATED:
            return replace(self, total=self.total + 1, migrated=self.migrated + 1)
        if status == RecordStatus.SKIPPED:
            return replace(self, total=self.total + 1, skipped=self.skipped + 1)
        if status == RecordStatus.ERRORED:
            return replace(self, total=self.total + 1, errored=self.errored + 1)
        raise ValueError(f"Record still {status.value}; only terminal states are counted")

    def merge(self, other: "MigrationStats") -> "MigrationStats":
        """Combine two stats for the same entity type."""
        if other.entity != self.entity:
            raise ValueError(f"Cannot merge {other.entity} stats into {self.entity} stats")
        return MigrationStats(
            entity=self.entity,
            total=self.total + other.total,
            migrated=self.migrated + other.migrated,
            skipped=self.skipped + other.skipped,
            errored=self.errored + other.errored,
        )

    @property
    def is_consistent(self) -> bool:
        counts = (self.total, self.migrated, self.skipped, self.errored)
        return all(c >= 0 for c in counts) and self.total == self.migrated + self.skipped + self.errored

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "migrated": self.migrated,
            "skipped": self.skipped,
            "errored": self.errored,
        }


@dataclass(frozen=True)
class PhaseResult:
    """What one entity phase returns to the orchestrator."""
    stats: MigrationStats
    outcomes: Tuple[RecordOutcome, ...] = ()

    @property
    def errors(self) -> List[RecordOutcome]:
        return [o for o in self.outcomes if o.status == RecordStatus.ERRORED]

    @classmethod
    def empty(cls, entity: str) -> "PhaseResult":
        return cls(stats=MigrationStats(entity=entity))


@dataclass
class MigrationReport:
    """A complete migration run."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: MigrationStatus = MigrationStatus.PENDING
    database: Optional[str] = None
    dry_run: bool = False

    # Timing
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Results
    stats: Dict[str, MigrationStats] = field(default_factory=dict)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    backup_files: List[str] = field(default_factory=list)
    admin_created: bool = False
    admin_id: Optional[str] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def add_phase(self, phase: PhaseResult) -> None:
        """Merge a phase's stats and errored records into the report."""
        entity = phase.stats.entity
        if entity in self.stats:
            self.stats[entity] = self.stats[entity].merge(phase.stats)
        else:
            self.stats[entity] = phase.stats

        for outcome in phase.errors:
            self.errors.append({
                "entity": outcome.entity,
                "natural_key": outcome.natural_key,
                "error": outcome.error,
            })

    def check_invariants(self) -> None:
        """
        Verify every entity's counters add up.

        Raises:
            ReportInvariantError: If total != migrated + skipped + errored
        """
        for entity, stats in self.stats.items():
            if not stats.is_consistent:
                raise ReportInvariantError(
                    f"{entity} stats do not add up: total={stats.total}, "
                    f"migrated={stats.migrated}, skipped={stats.skipped}, errored={stats.errored}"
                )

    def finish(self, status: MigrationStatus) -> None:
        self.status = status
        self.completed_at = utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "status": self.status.value,
            "database": self.database,
            "dry_run": self.dry_run,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "stats": {entity: s.to_dict() for entity, s in self.stats.items()},
            "errors": self.errors,
            "backup_files": self.backup_files,
            "admin_created": self.admin_created,
            "admin_id": self.admin_id,
        }

    def format_summary(self) -> str:
        """Render the operator-facing summary table."""
        lines = ["=" * 50, "MIGRATION SUMMARY", "=" * 50]
        for entity, stats in self.stats.items():
            lines.append("")
            lines.append(f"{entity.capitalize()}:")
            lines.append(f"   Total:    {stats.total}")
            lines.append(f"   Migrated: {stats.migrated}")
            lines.append(f"   Skipped:  {stats.skipped}")
            lines.append(f"   Errors:   {stats.errored}")
        if self.errors:
            lines.append("")
            lines.append("Errored records:")
            for error in self.errors:
                lines.append(f"   [{error['entity']}] {error['natural_key']}: {error['error']}")
        lines.append("")
        lines.append("=" * 50)
        return "\n".join(lines)
