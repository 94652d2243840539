"""Target store clients."""

from .base import TargetStore, USERS, LEADS, hash_password, check_password
from .mongo_loader import MongoTargetStore

__all__ = [
    "TargetStore",
    "USERS",
    "LEADS",
    "hash_password",
    "check_password",
    "MongoTargetStore",
]
