"""Audit logging service for submission lifecycle events.

This service provides a centralized interface for creating immutable audit log
entries.

Audit Events:
- DRAFT_FINALIZED
- LABEL_REQUESTED, LABEL_DELIVERED
- SUBMISSION_STATUS_CHANGED, SUBMISSION_SHIPPED_OUT, LAB_RESULTS_ATTACHED
- SUBMISSION_DELETED
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.submissions.errors import RepositoryError
from ..domain.submissions.models import Actor
from ..domain.submissions.ports.audit_log_port import AuditLogPort
from ..models.audit_log import AuditLog


def log_audit_event(
    db: Session,
    action: str,
    actor_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[Any] = None,
    metadata: Optional[Dict[str, Any]] = None,
    created_at: Optional[datetime] = None,
) -> AuditLog:
    """Create an audit log entry.

    All parameters are stored as-is. This function does not validate action
    names or entity types.

    Args:
        db: Database session
        action: Event action (e.g., "DRAFT_FINALIZED")
        actor_id: Actor who performed the action (None for system events)
        entity_type: Type of entity affected (e.g., "submission")
        entity_id: ID of affected entity
        metadata: Additional context as JSON
        created_at: Event time (defaults to now)

    Returns:
        AuditLog: The created audit log entry

    Example:
        log_audit_event(
            db=db,
            action="LABEL_REQUESTED",
            actor_id="lab-42",
            entity_type="submission",
            entity_id=17,
            metadata={"label_request_id": 3}
        )
    """
    audit_entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        metadata_json=metadata,
    )
    if created_at is not None:
        audit_entry.created_at = created_at

    db.add(audit_entry)
    db.flush()  # Get ID without committing transaction

    return audit_entry


class SqlAuditLog(AuditLogPort):
    """AuditLogPort backed by the audit_log table.

    `details` may carry `entity_type` and `entity_id`; everything else is
    stored as metadata.
    """

    def __init__(self, db: Session):
        self.db = db

    async def append(
        self,
        action: str,
        actor: Optional[Actor],
        details: Dict[str, Any],
        timestamp: datetime,
    ) -> None:
        details = dict(details)
        entity_type = details.pop("entity_type", "submission")
        entity_id = details.pop("entity_id", None)
        try:
            log_audit_event(
                db=self.db,
                action=action,
                actor_id=actor.id if actor else None,
                entity_type=entity_type,
                entity_id=entity_id,
                metadata=details or None,
                created_at=timestamp,
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to write audit entry {action}: {e}") from e
