"""Upload aggregator - per-group file upload merged into the draft.

Each file in a batch is validated and stored on its own; a failing file is
reported and the rest still land. Successful URLs are appended to the latest
persisted list for the group, so overlapping batches never drop each other's
files.
"""

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from ..domain.submissions.errors import DraftConflictError, DraftNotEditableError, StorageError
from ..domain.submissions.file_validation import (
    build_storage_key,
    guess_content_type,
    validate_file_size,
    validate_filename,
)
from ..domain.submissions.models import Actor, AttachmentGroup
from ..domain.submissions.ports.draft_repository_port import DraftRepositoryPort
from ..domain.submissions.ports.object_storage_port import ObjectStoragePort
from ..domain.submissions.status import SubmissionStatus
from ..models.base import utcnow
from ..observability.metrics import attachment_uploads_total, upload_batch_duration_seconds
from .controller import DraftLifecycleController

logger = logging.getLogger(__name__)


@dataclass
class UploadItem:
    filename: str
    content: bytes
    content_type: Optional[str] = None


@dataclass
class UploadedFile:
    index: int
    filename: str
    url: str
    size_bytes: int


@dataclass
class FailedUpload:
    index: int
    filename: str
    error: str


@dataclass
class UploadResult:
    """Outcome of one batch: the merged group list plus per-file results."""
    draft_id: int
    group: AttachmentGroup
    urls: List[str]
    uploaded: List[UploadedFile] = field(default_factory=list)
    failed: List[FailedUpload] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.uploaded) and bool(self.failed)


class UploadAggregator:
    """Uploads attachment batches for the draft owned by a controller."""

    def __init__(
        self,
        controller: DraftLifecycleController,
        repository: DraftRepositoryPort,
        storage: ObjectStoragePort,
        bucket: str,
        max_size: int,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.controller = controller
        self.repository = repository
        self.storage = storage
        self.bucket = bucket
        self.max_size = max_size
        self.clock = clock
        self._locks: Dict[AttachmentGroup, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def upload(
        self,
        group: AttachmentGroup,
        files: Sequence[UploadItem],
        actor: Actor,
    ) -> UploadResult:
        """Store `files` and merge their URLs into the group's list.

        Raises:
            DraftNotEditableError: If the session's draft is already finalized,
                including by a finalize that lands while files are being stored
            RepositoryError: If the draft could not be created or the merge
                could not be persisted
        """
        group = AttachmentGroup(group)
        record = await self.controller.ensure_draft(actor)
        prefix = record.code or f"draft-{record.id}"
        now = self.clock()
        start_time = time.time()

        uploaded: List[UploadedFile] = []
        failed: List[FailedUpload] = []

        for index, item in enumerate(files):
            try:
                url = await self._store(prefix, group, index, item, now)
            except (StorageError, ValueError) as e:
                attachment_uploads_total.labels(group=group.value, status="error").inc()
                logger.warning(
                    f"Attachment upload failed: file={item.filename}, error={e}",
                    extra={"submission_id": record.id, "group": group.value},
                )
                failed.append(FailedUpload(index=index, filename=item.filename, error=str(e)))
                continue

            attachment_uploads_total.labels(group=group.value, status="success").inc()
            uploaded.append(
                UploadedFile(index=index, filename=item.filename, url=url, size_bytes=len(item.content))
            )

        async with self._locks[group]:
            if uploaded:
                try:
                    urls = await self.repository.append_attachments(
                        record.id,
                        group.column,
                        [u.url for u in uploaded],
                        require_status=SubmissionStatus.IN_PROGRESS.value,
                    )
                except DraftConflictError as e:
                    logger.warning(
                        f"Draft finalized during upload, batch not merged: id={record.id}, status={e.actual_status}",
                        extra={"submission_id": record.id, "group": group.value, "actor_id": actor.id},
                    )
                    raise DraftNotEditableError(record.id, e.actual_status) from e
            else:
                latest = await self.repository.get(record.id)
                urls = latest.urls(group) if latest else record.urls(group)

        self.controller.refresh_attachments(group, urls)
        upload_batch_duration_seconds.labels(group=group.value).observe(time.time() - start_time)

        logger.info(
            f"Attachment batch processed: uploaded={len(uploaded)}, failed={len(failed)}, total={len(urls)}",
            extra={"submission_id": record.id, "group": group.value, "actor_id": actor.id},
        )
        return UploadResult(draft_id=record.id, group=group, urls=urls, uploaded=uploaded, failed=failed)

    async def _store(
        self,
        prefix: str,
        group: AttachmentGroup,
        index: int,
        item: UploadItem,
        now: datetime,
    ) -> str:
        is_valid, error = validate_filename(item.filename)
        if not is_valid:
            raise ValueError(error)

        is_valid, error = validate_file_size(len(item.content), self.max_size)
        if not is_valid:
            raise ValueError(error)

        key = build_storage_key(prefix, group.value, index, item.content, item.filename, now)
        await self.storage.put(
            self.bucket,
            key,
            item.content,
            guess_content_type(item.filename, item.content_type),
        )
        return self.storage.public_url(self.bucket, key)
