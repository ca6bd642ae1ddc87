"""Submission service - orchestration around the draft lifecycle.

Covers the finalize workflow (finalize, then optionally request a shipping
label) and the post-submission operations: soft delete, admin status changes,
shipped-out marking, label artifact delivery, and lab results upload.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..domain.submissions.codes import DEFAULT_CODE_LENGTH, is_valid_code
from ..domain.submissions.errors import (
    DraftNotFoundError,
    LabelRequestError,
    LabelRequestNotFoundError,
    SubmissionError,
)
from ..domain.submissions.file_validation import (
    build_storage_key,
    guess_content_type,
    validate_file_size,
    validate_filename,
)
from ..domain.submissions.models import Actor, DraftRecord, LabelRequestRecord
from ..domain.submissions.ports.audit_log_port import AuditLogPort
from ..domain.submissions.ports.draft_repository_port import DraftRepositoryPort
from ..domain.submissions.ports.label_request_port import LabelRequestStorePort
from ..domain.submissions.ports.object_storage_port import ObjectStoragePort
from ..domain.submissions.status import (
    FINALIZE_ONLY_TRANSITIONS,
    StateTransitionError,
    SubmissionStatus,
    validate_transition,
)
from ..models.base import utcnow
from .controller import DraftLifecycleController, FinalizeResult
from .label_trigger import LabelRequestTrigger
from .uploads import UploadItem

logger = logging.getLogger(__name__)


@dataclass
class SubmitOutcome:
    """Finalize result plus the label request side effect, if any."""
    result: FinalizeResult
    label_request: Optional[LabelRequestRecord] = None
    label_error: Optional[str] = None


async def submit_draft(
    controller: DraftLifecycleController,
    trigger: Optional[LabelRequestTrigger],
    actor: Actor,
    fields: Optional[Dict[str, Any]] = None,
    attachments: Optional[Dict[str, List[str]]] = None,
    label_address: Optional[Dict[str, Any]] = None,
) -> SubmitOutcome:
    """Finalize the draft, then request a label when one was asked for.

    A label was asked for when `need_label` is true on the submitted record and
    an address was supplied. A label failure never undoes the finalize; it is
    returned in `label_error` and can be retried through the label request
    endpoint.
    """
    result = await controller.finalize(fields, attachments, actor)
    outcome = SubmitOutcome(result=result)

    record = controller.record
    wants_label = bool(record and record.fields.get("need_label"))
    if trigger is None or not wants_label or not label_address:
        return outcome

    try:
        outcome.label_request = await trigger.request_label(result.draft_id, label_address, actor)
    except SubmissionError as e:
        logger.error(
            f"Label request failed after finalize: id={result.draft_id}, error={e}",
            extra={"submission_id": result.draft_id, "actor_id": actor.id},
        )
        outcome.label_error = str(e)

    return outcome


class SubmissionService:
    """Post-submission operations on finalized records."""

    def __init__(
        self,
        repository: DraftRepositoryPort,
        audit_log: AuditLogPort,
        storage: Optional[ObjectStoragePort] = None,
        label_store: Optional[LabelRequestStorePort] = None,
        label_bucket: str = "shipping-labels",
        results_bucket: str = "lab-results",
        max_size: int = 25 * 1024 * 1024,
        code_length: int = DEFAULT_CODE_LENGTH,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.audit_log = audit_log
        self.storage = storage
        self.label_store = label_store
        self.label_bucket = label_bucket
        self.results_bucket = results_bucket
        self.max_size = max_size
        self.code_length = code_length
        self.clock = clock

    async def get(self, submission_id: int) -> DraftRecord:
        record = await self.repository.get(submission_id)
        if record is None:
            raise DraftNotFoundError(submission_id)
        return record

    async def get_by_code(self, code: str) -> DraftRecord:
        """Summary lookup by the human-shareable code.

        Raises:
            DraftNotFoundError: If no live submission holds the code
        """
        if not is_valid_code(code, self.code_length):
            raise DraftNotFoundError(code)

        record = await self.repository.find_by_code(code)
        if record is None:
            raise DraftNotFoundError(code)
        return record

    async def list_for_owner(
        self,
        owner_id: str,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[DraftRecord]:
        return await self.repository.list_for_owner(owner_id, status=status, limit=limit, offset=offset)

    async def soft_delete(self, submission_id: int, actor: Actor) -> DraftRecord:
        """Hide a submission from listings and resume.

        The code stays reserved; deleted records keep their row.
        """
        record = await self.get(submission_id)
        now = self.clock()
        updated = await self.repository.patch(
            record.id,
            {"deleted_at": now, "deleted_by": actor.id, "draft_key": None},
        )
        await self._audit("SUBMISSION_DELETED", actor, record.id, {"status": record.status}, now)
        logger.info(f"Submission soft-deleted: id={record.id}", extra={"actor_id": actor.id})
        return updated

    async def transition_status(
        self,
        submission_id: int,
        new_status: SubmissionStatus,
        actor: Actor,
    ) -> DraftRecord:
        """Admin status change.

        Raises:
            PermissionError: If the actor is not an admin
            StateTransitionError: If the transition is not allowed, or is one
                only finalize may perform
        """
        if not actor.is_admin:
            raise PermissionError("Only admins can change submission status")

        record = await self.get(submission_id)
        return await self._transition(record, SubmissionStatus(new_status), actor)

    async def mark_shipped_out(
        self,
        submission_id: int,
        actor: Actor,
        image: Optional[UploadItem] = None,
    ) -> DraftRecord:
        """Record that the sample left the lab: pending → waiting_to_be_received."""
        record = await self.get(submission_id)
        current = SubmissionStatus(record.status)
        validate_transition(current, SubmissionStatus.WAITING_TO_BE_RECEIVED)

        now = self.clock()
        values: Dict[str, Any] = {
            "status": SubmissionStatus.WAITING_TO_BE_RECEIVED.value,
            "shipped_out_at": now,
        }
        if image is not None:
            values["shipped_out_image_url"] = await self._store(
                self.results_bucket, record, "shipped-out", image, now
            )

        updated = await self.repository.patch(record.id, values, require_status=record.status)
        await self._audit(
            "SUBMISSION_SHIPPED_OUT",
            actor,
            record.id,
            {"image_url": values.get("shipped_out_image_url")},
            now,
        )
        return updated

    async def attach_label_artifact(
        self,
        label_request_id: int,
        item: UploadItem,
        actor: Actor,
    ) -> LabelRequestRecord:
        """Store a delivered shipping label and link it to its submission.

        Raises:
            LabelRequestNotFoundError: If the label request does not exist
        """
        if self.label_store is None:
            raise LabelRequestError("Label requests are not configured")

        request = await self.label_store.get(label_request_id)
        if request is None:
            raise LabelRequestNotFoundError(label_request_id)

        record = await self.get(request.submission_id)
        now = self.clock()
        url = await self._store(self.label_bucket, record, "label", item, now)

        fulfilled = await self.label_store.mark_fulfilled(request.id, url)
        await self.repository.patch(record.id, {"label_url": url})
        await self._audit(
            "LABEL_DELIVERED",
            actor,
            record.id,
            {"label_request_id": request.id, "label_url": url},
            now,
        )
        return fulfilled

    async def attach_lab_results(
        self,
        submission_id: int,
        item: UploadItem,
        actor: Actor,
    ) -> DraftRecord:
        """Store lab results; a submission waiting on them becomes completed."""
        record = await self.get(submission_id)
        if record.is_editable:
            raise StateTransitionError(
                f"Submission {record.id} is still in progress; results need a submitted record"
            )

        now = self.clock()
        url = await self._store(self.results_bucket, record, "results", item, now)

        values: Dict[str, Any] = {"lab_results_url": url}
        if record.status == SubmissionStatus.WAITING_ON_LAB_RESULTS.value:
            values["status"] = SubmissionStatus.COMPLETED.value

        updated = await self.repository.patch(record.id, values)
        await self._audit(
            "LAB_RESULTS_ATTACHED",
            actor,
            record.id,
            {"lab_results_url": url, "status": updated.status},
            now,
        )
        return updated

    async def _transition(
        self,
        record: DraftRecord,
        new_status: SubmissionStatus,
        actor: Actor,
    ) -> DraftRecord:
        current = SubmissionStatus(record.status)
        if (current, new_status) in FINALIZE_ONLY_TRANSITIONS:
            raise StateTransitionError(
                f"Invalid transition: {current.value} -> {new_status.value}. Drafts are submitted through finalize"
            )
        validate_transition(current, new_status)

        updated = await self.repository.patch(
            record.id,
            {"status": new_status.value},
            require_status=current.value,
        )
        await self._audit(
            "SUBMISSION_STATUS_CHANGED",
            actor,
            record.id,
            {"from": current.value, "to": new_status.value},
            self.clock(),
        )
        logger.info(
            f"Submission status changed: id={record.id}, {current.value} -> {new_status.value}",
            extra={"submission_id": record.id, "actor_id": actor.id},
        )
        return updated

    async def _store(
        self,
        bucket: str,
        record: DraftRecord,
        kind: str,
        item: UploadItem,
        now: datetime,
    ) -> str:
        if self.storage is None:
            raise ValueError("Object storage is not configured")

        for is_valid, error in (
            validate_filename(item.filename),
            validate_file_size(len(item.content), self.max_size),
        ):
            if not is_valid:
                raise ValueError(error)

        prefix = record.code or f"draft-{record.id}"
        key = build_storage_key(prefix, kind, 0, item.content, item.filename, now)
        await self.storage.put(bucket, key, item.content, guess_content_type(item.filename, item.content_type))
        return self.storage.public_url(bucket, key)

    async def _audit(
        self,
        action: str,
        actor: Actor,
        submission_id: int,
        details: Dict[str, Any],
        timestamp: datetime,
    ) -> None:
        await self.audit_log.append(action, actor, {"entity_id": submission_id, **details}, timestamp)
