"""MongoDB target store."""

import logging
from typing import Any, Dict, List, Optional

from pymongo import MongoClient
from pymongo.errors import DuplicateKeyError, OperationFailure, PyMongoError
from pymongo.errors import ConfigurationError as MongoConfigurationError

from .base import TargetStore, DEFAULT_BCRYPT_ROUNDS, USERS
from ..errors import (
    ConfigurationError,
    DuplicateRecordError,
    TargetStoreError,
    TargetStoreUnavailableError,
)

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "kejamatch"


class MongoTargetStore(TargetStore):
    """
    Target store backed by a MongoDB database.

    Entity types map one-to-one to collection names. The client is created
    once and shared by every phase of a run.
    """

    def __init__(
        self,
        uri: str,
        database: Optional[str] = None,
        timeout_ms: int = 5000,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
        client: Optional[MongoClient] = None
    ):
        """
        Initialize the store.

        Args:
            uri: MongoDB connection string
            database: Database name; defaults to the one in the URI
            timeout_ms: Server selection and socket timeout in milliseconds
            bcrypt_rounds: Cost factor for passwords hashed on validated-create
            client: Pre-built client (mainly for tests)
        """
        super().__init__(bcrypt_rounds=bcrypt_rounds)
        self._closed = False

        try:
            self._client = client or MongoClient(
                uri,
                serverSelectionTimeoutMS=timeout_ms,
                connectTimeoutMS=timeout_ms,
                socketTimeoutMS=timeout_ms,
                retryWrites=True,
                retryReads=True,
            )
        except (MongoConfigurationError, ValueError) as e:
            raise ConfigurationError(f"Invalid MONGODB_URI: {e}") from e

        if database:
            self._db = self._client[database]
        else:
            self._db = self._client.get_default_database(default=DEFAULT_DATABASE)

    @property
    def name(self) -> str:
        return self._db.name

    def ping(self) -> None:
        try:
            self._client.admin.command("ping")
        except PyMongoError as e:
            raise TargetStoreUnavailableError(f"Cannot reach MongoDB: {e}") from e
        logger.info(f"Connected to MongoDB, database: {self.name}")

    def ensure_indexes(self) -> None:
        """Create the unique index on users.email if it is missing."""
        try:
            self._db[USERS].create_index("email", unique=True)
        except OperationFailure as e:
            logger.warning(f"Could not create unique index on {USERS}.email: {e}")
        except PyMongoError as e:
            raise TargetStoreUnavailableError(f"Cannot create indexes: {e}") from e

    def find_one(self, entity: str, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            return self._db[entity].find_one(filter)
        except PyMongoError as e:
            raise TargetStoreUnavailableError(f"Query on {entity} failed: {e}") from e

    def find(self, entity: str, filter: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            return list(self._db[entity].find(filter))
        except PyMongoError as e:
            raise TargetStoreUnavailableError(f"Query on {entity} failed: {e}") from e

    def count(self, entity: str, filter: Dict[str, Any]) -> int:
        try:
            return self._db[entity].count_documents(filter)
        except PyMongoError as e:
            raise TargetStoreUnavailableError(f"Count on {entity} failed: {e}") from e

    def insert(self, entity: str, record: Dict[str, Any]) -> Any:
        return self._insert(entity, self.prepare_for_create(entity, record))

    def trusted_insert(self, entity: str, record: Dict[str, Any]) -> Any:
        return self._insert(entity, dict(record))

    def _insert(self, entity: str, document: Dict[str, Any]) -> Any:
        try:
            result = self._db[entity].insert_one(document)
        except DuplicateKeyError as e:
            raise DuplicateRecordError(f"Duplicate {entity} record: {e}") from e
        except PyMongoError as e:
            raise TargetStoreError(f"Insert into {entity} failed: {e}") from e
        return result.inserted_id

    def close(self) -> None:
        if self._closed:
            return
        self._client.close()
        self._closed = True
        logger.info("Disconnected from MongoDB")
