"""Post-migration invariant repair."""

import logging
from typing import Any, Optional

from ..errors import InvariantRepairError
from ..loaders.base import TargetStore, USERS
from ..models.legacy import utcnow

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


def ensure_admin(
    store: TargetStore,
    email: str,
    password: str,
    name: str,
    dry_run: bool = False
) -> Optional[Any]:
    """
    Make sure at least one administrator account exists.

    Creates exactly one default administrator through the validated-create
    path (so the password is hashed) when no user has the admin role.

    Returns:
        The new administrator's identifier, or None if none was created

    Raises:
        InvariantRepairError: If no admin exists and the default admin's
            email already belongs to another user
    """
    admin_count = store.count(USERS, {"role": ADMIN_ROLE})
    if admin_count > 0:
        logger.info(f"Found {admin_count} admin user(s)")
        return None

    email = email.strip().lower()
    existing = store.find_one(USERS, {"email": email})
    if existing is not None:
        raise InvariantRepairError(
            f"No admin user exists and {email} already belongs to a user with role "
            f"{existing.get('role')!r}. Promote that user or set DEFAULT_ADMIN_EMAIL "
            "to an unused address"
        )

    if dry_run:
        logger.info(f"[dry run] No admin found, would create {email}")
        return None

    logger.info("No admin found, creating default admin...")
    now = utcnow()
    admin_id = store.insert(USERS, {
        "email": email,
        "password": password,
        "name": name,
        "role": ADMIN_ROLE,
        "isActive": True,
        "isVerified": True,
        "lastLogin": None,
        "createdAt": now,
        "updatedAt": now,
    })
    logger.warning(f"Default admin created: {email}. Change its password immediately")
    return admin_id
