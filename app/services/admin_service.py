"""
Admin service for common admin functionality
"""

import logging
from typing import Any, Dict, Iterable

from ..models.admin_action import AdminAction, ActionType
from ..models.user import User

logger = logging.getLogger(__name__)


class AdminService:
    """Service class for common admin operations"""

    @staticmethod
    async def log_admin_action(
        admin: User,
        action_type: ActionType,
        target_collection: str,
        target_id: Any,
        changes: Dict[str, Any],
    ) -> None:
        """
        Centralized admin action logging

        Args:
            admin: The admin performing the action
            action_type: Type of action being performed
            target_collection: Collection being modified
            target_id: ID of the target record
            changes: Dictionary of changes made
        """
        admin_action = AdminAction(
            admin_id=str(admin.id),
            action_type=action_type,
            target_collection=target_collection,
            target_id=str(target_id),
            changes=changes,
        )
        await admin_action.insert()
        logger.info(
            f"Admin {admin.email} {action_type.value} {target_collection}/{target_id}"
        )

    @staticmethod
    def diff(before: Dict[str, Any], after: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
        """``{field: {"old": ..., "new": ...}}`` for every field whose value changed"""
        changes = {}
        for field in fields:
            old, new = before.get(field), after.get(field)
            if old != new:
                changes[field] = {"old": _plain(old), "new": _plain(new)}
        return changes


def _plain(value: Any) -> Any:
    if hasattr(value, "value"):
        return value.value
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)
