"""Label request repository - SQLAlchemy implementation of LabelRequestStorePort"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...domain.submissions.errors import LabelRequestError, LabelRequestNotFoundError
from ...domain.submissions.models import LabelRequestRecord
from ...domain.submissions.ports.label_request_port import LabelRequestStorePort
from ...models.base import utcnow
from ...models.label_request import LabelRequest

logger = logging.getLogger(__name__)


def to_record(row: LabelRequest) -> LabelRequestRecord:
    return LabelRequestRecord(
        id=row.id,
        submission_id=row.submission_id,
        address=dict(row.address or {}),
        status=row.status,
        artifact_url=row.artifact_url,
        requested_by=row.requested_by,
        created_at=row.created_at,
        fulfilled_at=row.fulfilled_at,
    )


class LabelRequestRepository(LabelRequestStorePort):
    """Repository for `label_requests` database operations."""

    def __init__(self, db: Session):
        self.db = db

    async def create(
        self,
        draft_id: int,
        address: Dict[str, Any],
        requested_by: Optional[str] = None,
    ) -> LabelRequestRecord:
        row = LabelRequest(
            submission_id=draft_id,
            address=dict(address),
            status="pending",
            requested_by=requested_by,
        )
        self.db.add(row)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Label request insert failed: submission_id={draft_id}, error={e}", exc_info=True)
            raise LabelRequestError(f"Failed to create label request: {e}") from e

        logger.info(f"Created label request: id={row.id}, submission_id={draft_id}")
        return to_record(row)

    async def list_by_draft(self, draft_id: int) -> List[LabelRequestRecord]:
        rows = (
            self.db.query(LabelRequest)
            .filter(LabelRequest.submission_id == draft_id)
            .order_by(LabelRequest.id)
            .all()
        )
        return [to_record(row) for row in rows]

    async def get(self, request_id: int) -> Optional[LabelRequestRecord]:
        row = self.db.query(LabelRequest).filter(LabelRequest.id == request_id).first()
        return to_record(row) if row else None

    async def mark_fulfilled(self, request_id: int, artifact_url: str) -> LabelRequestRecord:
        row = self.db.query(LabelRequest).filter(LabelRequest.id == request_id).first()
        if row is None:
            raise LabelRequestNotFoundError(request_id)

        row.status = "fulfilled"
        row.artifact_url = artifact_url
        row.fulfilled_at = utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise LabelRequestError(f"Failed to update label request {request_id}: {e}") from e

        return to_record(row)
