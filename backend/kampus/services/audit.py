from __future__ import annotations

from sqlalchemy.orm import Session

from kampus.models.activity_log import ActivityLog


def log_activity(
    db: Session,
    *,
    user_id: str | None,
    action: str,
    entity_type: str,
    entity_id: str,
    details: dict | None = None,
) -> None:
    """Stage an activity-log row in the caller's transaction."""
    db.add(
        ActivityLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
        )
    )
