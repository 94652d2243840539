"""Exception hierarchy for the migration engine.

Fatal errors propagate out of the orchestrator and end the run with a
non-zero exit code. Per-record errors are caught by the record migrators
and reported on the record's outcome instead.
"""


class MigrationError(Exception):
    """Base exception for all migration failures."""


class ConfigurationError(MigrationError):
    """Raised for missing or invalid runtime configuration."""


class TargetStoreError(MigrationError):
    """Raised when the target store rejects an operation."""


class TargetStoreUnavailableError(TargetStoreError):
    """Raised when the target store cannot be reached."""


class SourceReadError(MigrationError):
    """Raised when a legacy file exists but cannot be read or parsed."""


class BackupError(MigrationError):
    """Raised when a legacy file cannot be copied into the backup directory."""


class TransformError(MigrationError):
    """Raised when a legacy record cannot be converted to its target shape."""


class DuplicateRecordError(MigrationError):
    """Raised by a target store when an insert violates a uniqueness constraint."""


class ReportInvariantError(MigrationError):
    """Raised when phase statistics do not add up at report time."""


class InvariantRepairError(MigrationError):
    """Raised when a post-migration invariant cannot be restored."""
