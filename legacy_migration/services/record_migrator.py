"""Per-record migration: dedup check, transform, insert, failure isolation."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from ..errors import DuplicateRecordError, TransformError
from ..loaders.base import TargetStore, USERS, LEADS
from ..models.legacy import LegacyRecord, LegacyUser, LegacyLead, utcnow
from ..models.migration import MigrationStats, PhaseResult
from ..models.record import RecordOutcome, RecordStatus
from .identity import IdentityResolver

logger = logging.getLogger(__name__)

# Two leads with the same email this close in createdAt are the same lead
LEAD_DEDUP_WINDOW = timedelta(milliseconds=1000)


def _describe_validation_error(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "record"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class RecordMigrator(ABC):
    """
    Base class for entity migrators.

    Each legacy record goes Pending -> Skipped | Migrated | Errored, with no
    retries. A failing record is logged and counted; it never aborts the batch.
    """

    entity: str = ""
    model: type = LegacyRecord

    def __init__(
        self,
        store: TargetStore,
        dry_run: bool = False,
        clock: Callable[[], datetime] = utcnow
    ):
        """
        Initialize the migrator.

        Args:
            store: Target store receiving the records
            dry_run: If True, run dedup and transform but write nothing
            clock: Source of "now" for defaulted timestamps
        """
        self.store = store
        self.dry_run = dry_run
        self.clock = clock

    def parse(self, raw: Any) -> LegacyRecord:
        """
        Convert a raw legacy record into its typed intermediate.

        Raises:
            TransformError: If the record is not an object or fails validation
        """
        if not isinstance(raw, dict):
            raise TransformError(f"Expected an object, got {type(raw).__name__}")
        try:
            return self.model.model_validate(raw)
        except PydanticValidationError as e:
            raise TransformError(_describe_validation_error(e)) from e

    @abstractmethod
    def dedup_filter(self, record: LegacyRecord) -> Dict[str, Any]:
        """Query matching a target record that makes this one a duplicate."""
        pass

    @abstractmethod
    def write(self, record: LegacyRecord) -> Any:
        """Transform and insert the record, returning the new identifier."""
        pass

    def migrate(self, raw: Any) -> RecordOutcome:
        """Migrate a single legacy record."""
        outcome = RecordOutcome(entity=self.entity, natural_key=self._raw_key(raw))

        try:
            record = self.parse(raw)
            outcome.natural_key = record.natural_key

            if self.store.find_one(self.entity, self.dedup_filter(record)) is not None:
                logger.info(f"Skipping {self.entity} {outcome.natural_key} (already exists)")
                outcome.status = RecordStatus.SKIPPED
                outcome.reason = "already exists"
                return outcome

            if self.dry_run:
                logger.info(f"[dry run] Would migrate {self.entity} {outcome.natural_key}")
                outcome.status = RecordStatus.MIGRATED
                outcome.reason = "dry run"
                return outcome

            outcome.target_id = self.write(record)
            outcome.status = RecordStatus.MIGRATED
            logger.info(f"Migrated {self.entity} {outcome.natural_key}")

        except DuplicateRecordError as e:
            logger.info(f"Skipping {self.entity} {outcome.natural_key} (duplicate key)")
            logger.debug(str(e))
            outcome.status = RecordStatus.SKIPPED
            outcome.reason = "duplicate key"

        except Exception as e:
            logger.error(f"Error migrating {self.entity} {outcome.natural_key}: {e}")
            outcome.status = RecordStatus.ERRORED
            outcome.error = str(e)

        return outcome

    def migrate_all(self, raws: Iterable[Any]) -> PhaseResult:
        """Migrate records one at a time, in order."""
        stats = MigrationStats(entity=self.entity)
        outcomes = []

        for raw in raws:
            outcome = self.migrate(raw)
            stats = stats.record(outcome.status)
            outcomes.append(outcome)

        return PhaseResult(stats=stats, outcomes=tuple(outcomes))

    @staticmethod
    def _raw_key(raw: Any) -> str:
        if isinstance(raw, dict) and raw.get("email"):
            return str(raw["email"])
        return "<unknown>"


class UserMigrator(RecordMigrator):
    """Migrates users, deduplicated by email."""

    entity = USERS
    model = LegacyUser

    def dedup_filter(self, record: LegacyUser) -> Dict[str, Any]:
        return {"email": record.email}

    def write(self, record: LegacyUser) -> Any:
        document = record.to_document(now=self.clock())

        if record.has_password:
            # Legacy passwords are already hashed
            return self.store.trusted_insert(self.entity, document)

        logger.warning(f"{record.email} has no password - will need to reset")
        return self.store.insert(self.entity, document)


class LeadMigrator(RecordMigrator):
    """
    Migrates leads, deduplicated by email and creation time.

    `assignedTo` is remapped through a resolver keyed on user display names;
    `assignedToName` is always kept as given.
    """

    entity = LEADS
    model = LegacyLead

    def __init__(
        self,
        store: TargetStore,
        assignees: Optional[IdentityResolver] = None,
        dry_run: bool = False,
        clock: Callable[[], datetime] = utcnow
    ):
        super().__init__(store, dry_run=dry_run, clock=clock)
        self.assignees = assignees

    def dedup_filter(self, record: LegacyLead) -> Dict[str, Any]:
        if not record.has_timestamp:
            return {"email": record.email}

        return {
            "email": record.email,
            "createdAt": {
                "$gte": record.created_at - LEAD_DEDUP_WINDOW,
                "$lte": record.created_at + LEAD_DEDUP_WINDOW,
            },
        }

    def write(self, record: LegacyLead) -> Any:
        assigned_to = None
        if record.assigned_to_name and self.assignees is not None:
            assigned_to = self.assignees.resolve(record.assigned_to_name)
            if assigned_to is None:
                logger.warning(
                    f"Lead {record.email}: no unique user named {record.assigned_to_name!r}, "
                    "assignedTo left empty"
                )

        document = record.to_document(now=self.clock(), assigned_to=assigned_to)
        return self.store.insert(self.entity, document)
