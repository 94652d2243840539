"""Service layer for the migration engine."""

from .backup import BackupManager, BackupResult
from .identity import AmbiguityPolicy, IdentityResolver
from .record_migrator import RecordMigrator, UserMigrator, LeadMigrator, LEAD_DEDUP_WINDOW
from .invariants import ensure_admin

__all__ = [
    "BackupManager",
    "BackupResult",
    "AmbiguityPolicy",
    "IdentityResolver",
    "RecordMigrator",
    "UserMigrator",
    "LeadMigrator",
    "LEAD_DEDUP_WINDOW",
    "ensure_admin",
]
