"""
Audit logging utilities.

Every commission write is recorded for later review.
"""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.models.audit import AuditAction, AuditLog


def log_action(
    db: AsyncSession,
    action: AuditAction,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action_metadata: Optional[dict[str, Any]] = None,
    user_id: Optional[int] = None,
) -> AuditLog:
    """
    Log an auditable action.

    Args:
        db: Database session
        action: Type of action being performed
        entity_type: Type of entity affected (e.g., "deal", "target")
        entity_id: ID of the affected entity
        action_metadata: Additional context about the action
        user_id: ID of the rep the action concerns, None for system actions

    Returns:
        Created AuditLog entry
    """
    log_entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        action_metadata=action_metadata,
    )
    db.add(log_entry)
    # Note: commit should happen in the calling context
    return log_entry
