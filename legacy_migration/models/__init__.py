"""Data models for the migration engine."""

from .legacy import (
    LegacyRecord,
    LegacyUser,
    LegacyLead,
    parse_legacy_datetime,
    utcnow,
)
from .record import (
    RecordStatus,
    RecordOutcome,
)
from .migration import (
    MigrationStatus,
    MigrationStats,
    PhaseResult,
    MigrationReport,
)

__all__ = [
    "LegacyRecord",
    "LegacyUser",
    "LegacyLead",
    "parse_legacy_datetime",
    "utcnow",
    "RecordStatus",
    "RecordOutcome",
    "MigrationStatus",
    "MigrationStats",
    "PhaseResult",
    "MigrationReport",
]
