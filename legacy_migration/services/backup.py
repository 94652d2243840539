"""Pre-migration safety copies of the legacy files."""

import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..errors import BackupError
from ..models.legacy import utcnow

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"


@dataclass
class BackupResult:
    """Result of a backup operation."""
    backup_dir: str
    created: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backup_dir": self.backup_dir,
            "created": self.created,
            "missing": self.missing,
        }


class BackupManager:
    """
    Copies legacy files into a backup directory before any write.

    Backups are named `<stem>-<timestamp><suffix>` and are never overwritten.
    A missing source file is only a warning; any other failure is fatal.
    """

    def __init__(self, backup_dir: Union[str, Path]):
        """
        Initialize the backup manager.

        Args:
            backup_dir: Directory receiving the backup copies
        """
        self.backup_dir = Path(backup_dir)

    def backup(
        self,
        sources: Iterable[Union[str, Path]],
        now: Optional[datetime] = None
    ) -> BackupResult:
        """
        Back up each legacy file.

        Args:
            sources: Legacy files to copy
            now: Timestamp for the backup names (defaults to current UTC time)

        Returns:
            BackupResult listing created copies and absent sources

        Raises:
            BackupError: If the directory cannot be created or a copy fails
        """
        timestamp = (now or utcnow()).strftime(TIMESTAMP_FORMAT)
        result = BackupResult(backup_dir=str(self.backup_dir))

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupError(f"Cannot create backup directory {self.backup_dir}: {e}") from e

        for source in sources:
            source = Path(source)
            destination = self._unique_path(source, timestamp)

            try:
                shutil.copy2(source, destination)
            except FileNotFoundError:
                if source.exists():
                    raise BackupError(f"Backup of {source} failed: destination {destination} unavailable")
                logger.warning(f"No {source.name} file to back up")
                result.missing.append(str(source))
                continue
            except OSError as e:
                raise BackupError(f"Backup of {source} failed: {e}") from e

            logger.info(f"Backed up {source} to {destination}")
            result.created.append(str(destination))

        return result

    def _unique_path(self, source: Path, timestamp: str) -> Path:
        """Pick a backup path that does not exist yet."""
        candidate = self.backup_dir / f"{source.stem}-{timestamp}{source.suffix}"
        counter = 1
        while candidate.exists():
            candidate = self.backup_dir / f"{source.stem}-{timestamp}-{counter}{source.suffix}"
            counter += 1
        return candidate
