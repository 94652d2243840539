"""Reader for the legacy JSON flat-file store."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from ..errors import SourceReadError

logger = logging.getLogger(__name__)


class _Absent:
    """Sentinel type for a legacy file that does not exist."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


class SourceReader:
    """
    Loads legacy collection files.

    An absent file is a normal condition and yields ABSENT; a file that
    exists but cannot be read or parsed means the legacy data cannot be
    trusted and raises SourceReadError.
    """

    def __init__(self, encoding: str = "utf-8"):
        """
        Initialize the reader.

        Args:
            encoding: Encoding of the legacy files
        """
        self.encoding = encoding

    def read(self, path: Union[str, Path]) -> Any:
        """
        Read and parse a legacy JSON document.

        Args:
            path: Path to the legacy file

        Returns:
            The parsed JSON value, or ABSENT if the file does not exist

        Raises:
            SourceReadError: On any other I/O, decode or parse failure
        """
        path = Path(path)

        try:
            content = path.read_bytes()
        except FileNotFoundError:
            logger.info(f"Legacy file not found: {path}")
            return ABSENT
        except OSError as e:
            raise SourceReadError(f"Failed to read {path}: {e}") from e

        try:
            return json.loads(content.decode(self.encoding))
        except UnicodeDecodeError as e:
            raise SourceReadError(f"{path} is not valid {self.encoding}: {e}") from e
        except json.JSONDecodeError as e:
            raise SourceReadError(f"Malformed JSON in {path}: {e}") from e

    def read_users(self, path: Union[str, Path]) -> List[Dict[str, Any]]:
        """Read users.json, a plain list of user records. Absent reads as empty."""
        data = self.read(path)
        if data is ABSENT:
            return []

        if not isinstance(data, list):
            raise SourceReadError(
                f"Expected a list of users in {path}, found {type(data).__name__}"
            )

        logger.info(f"Found {len(data)} users in {path}")
        return data

    def read_leads(self, path: Union[str, Path]) -> List[Dict[str, Any]]:
        """Read leads.json, an object wrapping a `leads` list. Absent reads as empty."""
        data = self.read(path)
        if data is ABSENT:
            return []

        if not isinstance(data, dict) or not isinstance(data.get("leads"), list):
            raise SourceReadError(f"Expected an object with a 'leads' list in {path}")

        leads = data["leads"]
        logger.info(f"Found {len(leads)} leads in {path}")
        return leads
