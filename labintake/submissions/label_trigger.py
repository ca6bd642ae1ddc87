"""Downstream shipping label request, fired after finalize.

A label request references the submission id and carries the chosen ship-from
address. Requests are not duplicated: a retry reuses the request already
issued for the submission.
"""

import logging
from typing import Any, Dict, Optional

from ..domain.submissions.errors import DraftNotFoundError, LabelRequestError, SubmissionError
from ..domain.submissions.models import Actor, LabelRequestRecord
from ..domain.submissions.ports.audit_log_port import AuditLogPort
from ..domain.submissions.ports.draft_repository_port import DraftRepositoryPort
from ..domain.submissions.ports.label_request_port import LabelRequestStorePort
from ..domain.submissions.status import StateTransitionError
from ..infrastructure.repositories.delivery_template_repository import DeliveryTemplateRepository
from ..models.base import utcnow
from ..observability.metrics import label_requests_total

logger = logging.getLogger(__name__)


class LabelRequestTrigger:
    """Issues at most one label request per submission."""

    def __init__(
        self,
        label_store: LabelRequestStorePort,
        repository: DraftRepositoryPort,
        audit_log: AuditLogPort,
        templates: Optional[DeliveryTemplateRepository] = None,
    ):
        self.label_store = label_store
        self.repository = repository
        self.audit_log = audit_log
        self.templates = templates

    async def request_label(
        self,
        draft_id: int,
        address: Dict[str, Any],
        actor: Actor,
    ) -> LabelRequestRecord:
        """Issue (or reuse) the label request for a submitted draft.

        Raises:
            DraftNotFoundError: If the submission does not exist
            StateTransitionError: If the submission is still a draft
            LabelRequestError: If the request could not be recorded
        """
        record = await self.repository.get(draft_id)
        if record is None:
            raise DraftNotFoundError(draft_id)
        if record.is_editable:
            raise StateTransitionError(f"Submission {draft_id} has not been finalized")
        if not address or not address.get("address_line1"):
            raise LabelRequestError("A ship-from address with address_line1 is required")

        existing = await self.label_store.list_by_draft(draft_id)
        if existing:
            request = existing[0]
            label_requests_total.labels(status="reused").inc()
            logger.info(f"Reusing label request: id={request.id}, submission_id={draft_id}")
        else:
            try:
                request = await self.label_store.create(draft_id, address, requested_by=actor.id)
            except LabelRequestError:
                label_requests_total.labels(status="error").inc()
                raise
            label_requests_total.labels(status="created").inc()

        if not record.label_requested:
            try:
                await self.repository.patch(draft_id, {"label_requested": True})
            except SubmissionError as e:
                raise LabelRequestError(f"Label request {request.id} recorded but flag not set: {e}") from e

            await self.audit_log.append(
                "LABEL_REQUESTED",
                actor,
                {"entity_id": draft_id, "label_request_id": request.id, "address": dict(address)},
                utcnow(),
            )

        if self.templates is not None:
            # Best effort; the label request above stands either way
            try:
                template, created = await self.templates.save_if_absent(record.owner_id, address)
            except (SubmissionError, ValueError) as e:
                logger.warning(
                    f"Ship-from address not saved as template: id={draft_id}, error={e}",
                    extra={"submission_id": draft_id, "owner_id": record.owner_id},
                )
            else:
                if created:
                    logger.info(f"Saved ship-from address as template: id={template.id}")

        return request
