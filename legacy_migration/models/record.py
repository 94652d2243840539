"""Per-record outcome models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .legacy import utcnow


class RecordStatus(str, Enum):
    """Status of a record during migration. All but PENDING are terminal."""
    PENDING = "pending"
    MIGRATED = "migrated"
    SKIPPED = "skipped"
    ERRORED = "errored"


@dataclass
class RecordOutcome:
    """Result of migrating a single legacy record."""
    entity: str
    natural_key: str
    status: RecordStatus = RecordStatus.PENDING
    target_id: Optional[Any] = None  # ID assigned by the target store
    error: Optional[str] = None
    reason: Optional[str] = None
    processed_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "entity": self.entity,
            "natural_key": self.natural_key,
            "status": self.status.value,
            "target_id": str(self.target_id) if self.target_id is not None else None,
            "error": self.error,
            "reason": self.reason,
            "processed_at": self.processed_at.isoformat(),
        }
