"""Resolve which properties and tasks a user can see."""

import logging
import re

from src.core.errors import NotFoundError, ValidationError
from src.core.kv_store import KeyValueStore
from src.domain.user import UserAccess, UserRole
from src.modules.tasks.store import property_tasks_key


logger = logging.getLogger(__name__)

# User IDs are email addresses: only characters with meaning in keys or key patterns are refused
_USER_ID_PATTERN = re.compile(r"^[^\s:*?\[\]]+$")


def validate_user_id(user_id: str) -> str:
    """Validate a user ID before it is interpolated into a key."""
    if not user_id or not _USER_ID_PATTERN.match(user_id):
        msg = f"Invalid user ID: {user_id!r}"
        raise ValidationError(msg)
    return user_id


def user_key(user_id: str) -> str:
    """Hash key for a user record."""
    return f"user:{user_id}"


def owner_properties_key(user_id: str) -> str:
    """Set key listing the properties an owner holds."""
    return f"owner:{user_id}:properties"


async def get_user_access(kv: KeyValueStore, user_id: str) -> UserAccess:
    """Load a user's role and accessible property IDs.

    Owners see every property in their ownership set; managers and tenants see
    the single property on their record, if any.

    Raises:
        NotFoundError: If the user record does not exist
    """
    validate_user_id(user_id)
    record = await kv.hgetall(user_key(user_id))
    if not record:
        raise NotFoundError(f"User not found: {user_id}")

    raw_role = record.get("role", UserRole.TENANT.value)
    try:
        role = UserRole(raw_role)
    except ValueError:
        logger.warning("User %s has unknown role %r, treating as tenant", user_id, raw_role)
        role = UserRole.TENANT

    if role == UserRole.OWNER:
        property_ids = sorted(await kv.smembers(owner_properties_key(user_id)))
    else:
        property_ids = [record["property_id"]] if record.get("property_id") else []

    return UserAccess(user_id=user_id, name=record.get("name", ""), role=role, property_ids=property_ids)


async def get_accessible_task_ids(kv: KeyValueStore, property_ids: list[str]) -> set[str]:
    """Union of task IDs across the given properties."""
    task_ids: set[str] = set()
    for property_id in property_ids:
        task_ids |= await kv.smembers(property_tasks_key(property_id))
    return task_ids


async def get_accessible_task_properties(kv: KeyValueStore, property_ids: list[str]) -> dict[str, str]:
    """Map each accessible task ID to the property holding it.

    An ID listed under several properties maps to the first of them in
    ``property_ids`` order.
    """
    task_properties: dict[str, str] = {}
    for property_id in property_ids:
        for task_id in await kv.smembers(property_tasks_key(property_id)):
            task_properties.setdefault(task_id, property_id)
    return task_properties
