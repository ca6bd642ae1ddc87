"""Draft lifecycle controller.

Guarantees that exactly one `submissions` record backs an editing session and
mirrors its persisted state in memory.

State Flow:
    UNBOUND → BOUND (in_progress) → FINALIZED

The session-scoped `DraftHandle` carries the client's external reference (the
draft id shown in the address bar). The controller updates it through
`on_change` whenever a draft is bound or finalized.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from ..domain.submissions.codes import (
    DEFAULT_CODE_LENGTH,
    DEFAULT_MAX_ATTEMPTS,
    generate_code,
    generate_unique_code,
)
from ..domain.submissions.errors import (
    CodeCollisionError,
    CodeGenerationError,
    DraftConflictError,
    DraftNotBoundError,
    DraftNotEditableError,
    DraftNotFoundError,
    SubmissionError,
)
from ..domain.submissions.models import Actor, AttachmentGroup, DraftRecord, split_patch
from ..domain.submissions.ports.audit_log_port import AuditLogPort
from ..domain.submissions.ports.draft_repository_port import DraftRepositoryPort
from ..domain.submissions.reference import parse_reference
from ..domain.submissions.status import SubmissionStatus
from ..models.base import utcnow
from ..observability.metrics import (
    code_collisions_total,
    draft_patches_total,
    drafts_created_total,
    finalizations_total,
)

logger = logging.getLogger(__name__)


class ControllerState(str, Enum):
    UNBOUND = "unbound"
    BOUND = "bound"
    FINALIZED = "finalized"


@dataclass
class DraftHandle:
    """Session-scoped holder of the external draft reference.

    Attributes:
        owner_id: Intake context (lab/location) the session was opened under
        reference: Draft id once a draft exists
        draft_key: Optional client token shared by duplicate tabs
        on_change: Called with the new reference (or None) when it changes
    """
    owner_id: str
    reference: Optional[int] = None
    draft_key: Optional[str] = None
    on_change: Optional[Callable[[Optional[int]], None]] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def bind(self, draft_id: int) -> None:
        if self.reference != draft_id:
            self.reference = draft_id
            if self.on_change:
                self.on_change(draft_id)

    def unbind(self) -> None:
        if self.reference is not None:
            self.reference = None
            if self.on_change:
                self.on_change(None)

    def clear(self) -> None:
        self.draft_key = None
        self.unbind()


@dataclass
class FinalizeResult:
    draft_id: int
    code: str
    status: str
    submitted_at: Optional[datetime]
    already_finalized: bool = False


class DraftLifecycleController:
    """Owns the draft behind one editing session.

    Every mutating call takes an explicit `Actor`. Errors from the repository
    surface to the caller unchanged; nothing is retried automatically except
    code generation on collision.
    """

    def __init__(
        self,
        repository: DraftRepositoryPort,
        handle: DraftHandle,
        audit_log: Optional[AuditLogPort] = None,
        code_length: int = DEFAULT_CODE_LENGTH,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
        code_generator: Callable[[int], str] = generate_code,
    ):
        self.repository = repository
        self.handle = handle
        self.audit_log = audit_log
        self.code_length = code_length
        self.max_attempts = max_attempts
        self.clock = clock
        self.code_generator = code_generator

        self._record: Optional[DraftRecord] = None
        self._staged: Dict[str, Any] = {}

    @property
    def state(self) -> ControllerState:
        if self._record is None:
            return ControllerState.UNBOUND
        if self._record.is_editable:
            return ControllerState.BOUND
        return ControllerState.FINALIZED

    @property
    def record(self) -> Optional[DraftRecord]:
        """In-memory mirror of the last persisted state."""
        return self._record

    @property
    def draft_id(self) -> Optional[int]:
        return self._record.id if self._record else None

    @property
    def is_dirty(self) -> bool:
        """True while local edits have not been persisted."""
        return bool(self._staged)

    def stage(self, fields: Dict[str, Any]) -> None:
        """Record local edits without persisting them."""
        self._staged.update(split_patch(fields))

    async def resume(self, external_ref: Union[str, int, None]) -> Optional[DraftRecord]:
        """Bind to the draft named by `external_ref` if it still exists.

        Malformed, unknown, deleted, or foreign references fall through to the
        create path: the controller stays UNBOUND and the handle is cleared.
        """
        draft_id = parse_reference(external_ref)
        if draft_id is None:
            self._unbind()
            return None

        record = await self.repository.get(draft_id)
        if record is None or record.is_deleted:
            logger.info(f"Draft reference does not resolve, starting fresh: reference={draft_id}")
            self._unbind()
            return None

        if record.owner_id != self.handle.owner_id:
            logger.warning(
                f"Draft reference belongs to another owner, starting fresh: reference={draft_id}",
                extra={"owner_id": self.handle.owner_id},
            )
            self._unbind()
            return None

        self._record = record
        self.handle.bind(record.id)
        logger.info(f"Resumed draft: id={record.id}, status={record.status}")
        return record

    async def ensure_draft(self, actor: Actor) -> DraftRecord:
        """Return the bound draft, creating it on first use.

        Concurrent calls sharing a handle resolve to a single record: the lock
        serializes creation and the second caller reuses the bound reference.

        Raises:
            DraftNotEditableError: If the session's draft is already finalized
            RepositoryError: If the record could not be created
        """
        if self.state == ControllerState.FINALIZED:
            raise DraftNotEditableError(self._record.id, self._record.status)

        if self._record is not None and self.handle.reference == self._record.id:
            return self._require_editable()

        async with self.handle.lock:
            if self.handle.reference is not None:
                if self._record is None or self._record.id != self.handle.reference:
                    record = await self.repository.get(self.handle.reference)
                    if record is None:
                        raise DraftNotFoundError(self.handle.reference)
                    self._record = record
                return self._require_editable()

            now = self.clock()
            fields = {
                "owner_id": self.handle.owner_id,
                "status": SubmissionStatus.IN_PROGRESS.value,
                "requested_at": now,
                "created_by": actor.id,
            }
            if self.handle.draft_key:
                record, created = await self.repository.create_if_absent(self.handle.draft_key, fields)
                drafts_created_total.labels(path="draft_key" if created else "reused").inc()
            else:
                record = await self.repository.create(fields)
                drafts_created_total.labels(path="fresh").inc()

            self._record = record
            self.handle.bind(record.id)

        logger.info(
            f"Draft bound: id={record.id}",
            extra={"submission_id": record.id, "owner_id": record.owner_id, "actor_id": actor.id},
        )
        return record

    async def patch(self, fields: Dict[str, Any], actor: Actor) -> DraftRecord:
        """Persist a partial update of scalar fields (last write wins).

        Raises:
            DraftNotBoundError: If no draft is bound
            DraftNotEditableError: If the draft is no longer in progress
            RepositoryError: On persistence failure (local edits stay staged)
        """
        record = self._require_bound()
        self.stage(fields)
        values = dict(self._staged)
        if not values:
            return record

        if not record.is_editable:
            draft_patches_total.labels(status="rejected").inc()
            raise DraftNotEditableError(record.id, record.status)

        try:
            updated = await self.repository.patch(
                record.id,
                values,
                require_status=SubmissionStatus.IN_PROGRESS.value,
            )
        except DraftConflictError as e:
            draft_patches_total.labels(status="rejected").inc()
            raise DraftNotEditableError(record.id, e.actual_status) from e
        except SubmissionError:
            draft_patches_total.labels(status="error").inc()
            raise

        for key, value in values.items():
            if self._staged.get(key) == value:
                del self._staged[key]

        self._record = updated
        draft_patches_total.labels(status="success").inc()
        logger.debug(
            f"Draft patched: id={record.id}, fields={sorted(values)}",
            extra={"submission_id": record.id, "actor_id": actor.id},
        )
        return updated

    async def autosave(self, fields: Dict[str, Any], actor: Actor) -> DraftRecord:
        """Create the draft if needed, then patch it."""
        self.stage(fields)
        await self.ensure_draft(actor)
        return await self.patch({}, actor)

    def refresh_attachments(self, group: AttachmentGroup, urls: List[str]) -> None:
        """Reflect a merged attachment list into the mirror."""
        if self._record is not None:
            self._record.attachments[group.value] = list(urls)

    async def finalize(
        self,
        fields: Optional[Dict[str, Any]],
        attachments: Optional[Dict[str, List[str]]],
        actor: Actor,
    ) -> FinalizeResult:
        """Submit the draft: assign a code and move it to pending.

        The code is reserved on the record before the final write, so a retry
        after a failed write reuses it. Attachment URLs are appended to the
        persisted lists, never replacing them. Finalizing an already finalized
        draft returns its existing code.

        Raises:
            DraftNotBoundError: If no draft is bound
            DraftNotEditableError: If the draft left in_progress without a code
            CodeGenerationError: If no unique code could be found
            RepositoryError: On persistence failure (draft stays in progress)
        """
        record = self._require_bound()
        start = self.clock()

        current = await self.repository.get(record.id)
        if current is None:
            raise DraftNotFoundError(record.id)
        if not current.is_editable:
            return self._already_finalized(current)

        try:
            code = current.code or await self._reserve_code(current.id)

            for group_name, urls in (attachments or {}).items():
                group = AttachmentGroup(group_name)
                if urls:
                    await self.repository.append_attachments(
                        current.id,
                        group.column,
                        list(urls),
                        require_status=SubmissionStatus.IN_PROGRESS.value,
                    )

            values = dict(self._staged)
            values.update(split_patch(fields or {}))
            values.update(
                status=SubmissionStatus.PENDING.value,
                submitted_at=self.clock(),
                draft_key=None,
            )
            updated = await self.repository.patch(
                current.id,
                values,
                require_status=SubmissionStatus.IN_PROGRESS.value,
            )
        except DraftConflictError:
            latest = await self.repository.get(record.id)
            if latest is not None and not latest.is_editable:
                return self._already_finalized(latest)
            finalizations_total.labels(outcome="error").inc()
            raise
        except SubmissionError:
            finalizations_total.labels(outcome="error").inc()
            raise

        self._record = updated
        self._staged.clear()
        self.handle.clear()
        finalizations_total.labels(outcome="submitted").inc()

        if self.audit_log is not None:
            await self.audit_log.append(
                "DRAFT_FINALIZED",
                actor,
                {"entity_id": updated.id, "code": code, "owner_id": updated.owner_id},
                updated.submitted_at or start,
            )

        logger.info(
            f"Draft finalized: id={updated.id}, code={code}",
            extra={"submission_id": updated.id, "actor_id": actor.id},
        )
        return FinalizeResult(
            draft_id=updated.id,
            code=code,
            status=updated.status,
            submitted_at=updated.submitted_at,
        )

    async def _reserve_code(self, draft_id: int) -> str:
        # Every candidate, whether rejected at check or at commit, spends one attempt
        attempts = 0

        async def is_taken(code: str) -> bool:
            nonlocal attempts
            attempts += 1
            return await self.repository.code_exists(code)

        while attempts < self.max_attempts:
            code = await generate_unique_code(
                is_taken,
                length=self.code_length,
                max_attempts=self.max_attempts - attempts,
                generator=self.code_generator,
            )
            try:
                await self.repository.patch(
                    draft_id,
                    {"code": code},
                    require_status=SubmissionStatus.IN_PROGRESS.value,
                )
                return code
            except CodeCollisionError:
                code_collisions_total.inc()
                logger.warning(f"Code taken at commit, regenerating: id={draft_id}, attempt={attempts}")

        raise CodeGenerationError(
            f"Could not reserve a unique code for submission {draft_id} in {self.max_attempts} attempts"
        )

    def _already_finalized(self, record: DraftRecord) -> FinalizeResult:
        if not record.code:
            raise DraftNotEditableError(record.id, record.status)

        self._record = record
        self._staged.clear()
        self.handle.clear()
        finalizations_total.labels(outcome="already_finalized").inc()
        logger.info(f"Finalize on finalized draft is a no-op: id={record.id}, code={record.code}")
        return FinalizeResult(
            draft_id=record.id,
            code=record.code,
            status=record.status,
            submitted_at=record.submitted_at,
            already_finalized=True,
        )

    def _require_bound(self) -> DraftRecord:
        if self._record is None:
            raise DraftNotBoundError("No draft is bound to this session")
        return self._record

    def _require_editable(self) -> DraftRecord:
        record = self._require_bound()
        if not record.is_editable:
            raise DraftNotEditableError(record.id, record.status)
        return record

    def _unbind(self) -> None:
        self._record = None
        self.handle.unbind()
