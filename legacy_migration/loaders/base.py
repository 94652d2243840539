"""Base interface for the target document store."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import bcrypt

from ..models.legacy import utcnow

USERS = "users"
LEADS = "leads"

DEFAULT_BCRYPT_ROUNDS = 12


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Hash a plaintext password with bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def check_password(password: str, hashed: str) -> bool:
    """Check a plaintext password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


class TargetStore(ABC):
    """
    Base class for target stores.

    Stores expose two insertion contracts: `insert` (validated-create, which
    applies the normal write-time transformation such as password hashing)
    and `trusted_insert` (writes the record verbatim). Filters use MongoDB
    query syntax.
    """

    def __init__(self, bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS):
        """
        Initialize the store.

        Args:
            bcrypt_rounds: Cost factor for passwords hashed on validated-create
        """
        self.bcrypt_rounds = bcrypt_rounds

    @property
    def name(self) -> str:
        """Name of the underlying database, for reporting."""
        return self.__class__.__name__

    @abstractmethod
    def ping(self) -> None:
        """
        Check the store is reachable.

        Raises:
            TargetStoreUnavailableError: If it is not
        """
        pass

    def ensure_indexes(self) -> None:
        """Create the uniqueness constraints the target model declares. No-op by default."""
        pass

    @abstractmethod
    def find_one(self, entity: str, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Return the first record matching filter, or None."""
        pass

    @abstractmethod
    def find(self, entity: str, filter: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Return all records matching filter, in store order."""
        pass

    @abstractmethod
    def count(self, entity: str, filter: Dict[str, Any]) -> int:
        """Count records matching filter."""
        pass

    @abstractmethod
    def insert(self, entity: str, record: Dict[str, Any]) -> Any:
        """
        Validated-create: apply write hooks, then insert.

        Returns:
            The identifier assigned by the store

        Raises:
            DuplicateRecordError: If a uniqueness constraint is violated
        """
        pass

    @abstractmethod
    def trusted_insert(self, entity: str, record: Dict[str, Any]) -> Any:
        """
        Trusted-import: insert the record exactly as given.

        Returns:
            The identifier assigned by the store

        Raises:
            DuplicateRecordError: If a uniqueness constraint is violated
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the connection."""
        pass

    def prepare_for_create(self, entity: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Apply the validated-create write hooks to a copy of the record."""
        document = dict(record)

        if entity == USERS and document.get("password"):
            document["password"] = hash_password(document["password"], self.bcrypt_rounds)
            document["lastPasswordChange"] = utcnow()

        return document
