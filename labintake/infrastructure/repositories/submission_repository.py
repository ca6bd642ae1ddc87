"""Submission repository - SQLAlchemy implementation of DraftRepositoryPort"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...domain.submissions.errors import (
    CodeCollisionError,
    DraftConflictError,
    DraftNotFoundError,
    RepositoryError,
)
from ...domain.submissions.models import (
    ATTACHMENT_COLUMNS,
    AttachmentGroup,
    DraftRecord,
    SCALAR_FIELDS,
    merge_urls,
)
from ...domain.submissions.ports.draft_repository_port import DraftRepositoryPort
from ...domain.submissions.reference import MAX_DRAFT_ID
from ...domain.submissions.status import SubmissionStatus
from ...models.submission import Submission

logger = logging.getLogger(__name__)

LIFECYCLE_COLUMNS = frozenset({
    "owner_id",
    "draft_key",
    "status",
    "code",
    "requested_at",
    "submitted_at",
    "label_requested",
    "label_url",
    "lab_results_url",
    "shipped_out_at",
    "shipped_out_image_url",
    "created_by",
    "deleted_at",
    "deleted_by",
})

WRITABLE_COLUMNS = SCALAR_FIELDS | ATTACHMENT_COLUMNS | LIFECYCLE_COLUMNS


def to_record(row: Submission) -> DraftRecord:
    """Convert an ORM row into the domain snapshot."""
    return DraftRecord(
        id=row.id,
        owner_id=row.owner_id,
        status=row.status,
        code=row.code,
        draft_key=row.draft_key,
        fields={name: getattr(row, name) for name in sorted(SCALAR_FIELDS)},
        attachments={
            group.value: list(getattr(row, group.column) or [])
            for group in AttachmentGroup
        },
        requested_at=row.requested_at,
        submitted_at=row.submitted_at,
        label_requested=bool(row.label_requested),
        label_url=row.label_url,
        lab_results_url=row.lab_results_url,
        shipped_out_at=row.shipped_out_at,
        shipped_out_image_url=row.shipped_out_image_url,
        created_by=row.created_by,
        deleted_at=row.deleted_at,
    )


class SubmissionRepository(DraftRepositoryPort):
    """Repository for `submissions` database operations.

    Every write commits immediately: each autosave is its own unit of work and
    must be durable before the client's next edit.
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def _live(self):
        return self.db.query(Submission).filter(Submission.deleted_at.is_(None))

    def _check_columns(self, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - WRITABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown submission columns: {sorted(unknown)}")

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Submission write failed: {e}", exc_info=True)
            raise RepositoryError(f"Failed to save submission: {e}") from e

    async def create(self, fields: Dict[str, Any]) -> DraftRecord:
        self._check_columns(fields)
        row = Submission(**fields)
        self.db.add(row)
        self._commit()

        logger.info(f"Created submission draft: id={row.id}, owner_id={row.owner_id}")
        return to_record(row)

    async def create_if_absent(
        self,
        draft_key: str,
        fields: Dict[str, Any],
    ) -> Tuple[DraftRecord, bool]:
        existing = await self.find_by_external_ref(draft_key)
        if existing is not None:
            return existing, False

        self._check_columns(fields)
        row = Submission(**{**fields, "draft_key": draft_key})
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            # Another writer inserted the same key between our read and insert
            self.db.rollback()
            existing = await self.find_by_external_ref(draft_key)
            if existing is not None:
                logger.info(f"Reused concurrently created draft: id={existing.id}, draft_key={draft_key}")
                return existing, False
            raise RepositoryError(f"Draft key {draft_key} is held by a record that cannot be resumed")
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to create draft: {e}") from e

        logger.info(f"Created submission draft: id={row.id}, owner_id={row.owner_id}, draft_key={draft_key}")
        return to_record(row), True

    async def get(self, draft_id: int) -> Optional[DraftRecord]:
        if not 0 < draft_id <= MAX_DRAFT_ID:
            return None
        try:
            row = self._live().filter(Submission.id == draft_id).first()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to load submission {draft_id}: {e}") from e
        return to_record(row) if row else None

    async def patch(
        self,
        draft_id: int,
        fields: Dict[str, Any],
        require_status: Optional[str] = None,
    ) -> DraftRecord:
        self._check_columns(fields)

        row = self._live().filter(Submission.id == draft_id).with_for_update().first()
        if row is None:
            raise DraftNotFoundError(draft_id)

        if require_status is not None and row.status != require_status:
            self.db.rollback()
            raise DraftConflictError(draft_id, require_status, row.status)

        for column, value in fields.items():
            setattr(row, column, list(value) if column in ATTACHMENT_COLUMNS else value)

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if "code" in fields and "code" in str(e.orig).lower():
                raise CodeCollisionError(f"Code {fields['code']} is already in use") from e
            raise RepositoryError(f"Failed to update submission {draft_id}: {e}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Submission patch failed: id={draft_id}, error={e}", exc_info=True)
            raise RepositoryError(f"Failed to update submission {draft_id}: {e}") from e

        return to_record(row)

    async def find_by_external_ref(self, ref: str) -> Optional[DraftRecord]:
        row = self._live().filter(
            and_(
                Submission.draft_key == ref,
                Submission.status == SubmissionStatus.IN_PROGRESS.value,
            )
        ).first()
        return to_record(row) if row else None

    async def find_by_code(self, code: str) -> Optional[DraftRecord]:
        row = self._live().filter(Submission.code == code).first()
        return to_record(row) if row else None

    async def code_exists(self, code: str) -> bool:
        """Check a code against every record, including soft-deleted ones."""
        return self.db.query(Submission.id).filter(Submission.code == code).first() is not None

    async def append_attachments(
        self,
        draft_id: int,
        column: str,
        urls: List[str],
        require_status: Optional[str] = None,
    ) -> List[str]:
        if column not in ATTACHMENT_COLUMNS:
            raise ValueError(f"Unknown attachment column: {column}")

        # Row lock keeps the read-merge-write atomic against other writers
        row = self._live().filter(Submission.id == draft_id).with_for_update().first()
        if row is None:
            raise DraftNotFoundError(draft_id)

        if require_status is not None and row.status != require_status:
            self.db.rollback()
            raise DraftConflictError(draft_id, require_status, row.status)

        merged = merge_urls(list(getattr(row, column) or []), urls)
        setattr(row, column, merged)
        self._commit()
        return merged

    async def list_for_owner(
        self,
        owner_id: str,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[DraftRecord]:
        query = self._live().filter(Submission.owner_id == owner_id)
        if status:
            query = query.filter(Submission.status == status)
        rows = query.order_by(desc(Submission.requested_at)).limit(limit).offset(offset).all()
        return [to_record(row) for row in rows]
