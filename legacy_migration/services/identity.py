"""Natural key to target identifier lookup for foreign key remapping."""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from ..loaders.base import TargetStore

logger = logging.getLogger(__name__)


class AmbiguityPolicy(str, Enum):
    """What to do when several target records share a natural key."""
    STRICT = "strict"  # resolve to None
    FIRST_MATCH = "first"  # resolve to the first record in store order


class IdentityResolver:
    """
    Maps a natural key (email, display name) to a target identifier.

    Built from the current state of the target store; rebuild it after the
    referenced entity's phase so newly inserted records resolve.
    """

    def __init__(
        self,
        entity: str,
        key_field: str,
        index: Dict[Any, List[Any]],
        policy: AmbiguityPolicy = AmbiguityPolicy.STRICT
    ):
        self.entity = entity
        self.key_field = key_field
        self.policy = policy
        self._index = index

    @classmethod
    def build(
        cls,
        store: TargetStore,
        entity: str,
        key_field: str,
        policy: AmbiguityPolicy = AmbiguityPolicy.STRICT
    ) -> "IdentityResolver":
        """Query every record of `entity` and index `key_field` -> `_id`."""
        index: Dict[Any, List[Any]] = {}
        for record in store.find(entity, {}):
            key = record.get(key_field)
            if key is None or key == "":
                continue
            index.setdefault(key, []).append(record["_id"])

        logger.debug(f"Indexed {len(index)} {entity} by {key_field}")
        return cls(entity, key_field, index, policy)

    def __len__(self) -> int:
        return len(self._index)

    def resolve(self, key: Optional[Any]) -> Optional[Any]:
        """Return the identifier for key, or None if unknown or ambiguous."""
        if key is None or key == "":
            return None

        matches = self._index.get(key, [])
        if not matches:
            return None

        if len(matches) > 1 and self.policy == AmbiguityPolicy.STRICT:
            logger.warning(
                f"{len(matches)} {self.entity} share {self.key_field}={key!r}; leaving unresolved"
            )
            return None

        return matches[0]
