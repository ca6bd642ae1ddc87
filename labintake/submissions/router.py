"""Submissions API endpoints.

Draft lifecycle (open/resume, autosave, attachment upload, finalize) plus the
post-submission operations. Domain errors are translated to HTTP responses by
the exception handlers registered in `labintake.main`.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from ..audit.service import SqlAuditLog
from ..config import Settings
from ..dependencies import (
    get_app_settings,
    get_audit_log,
    get_label_store,
    get_storage,
    get_submission_repository,
    get_template_repository,
    require_actor,
    require_admin,
)
from ..domain.submissions.errors import DraftNotFoundError
from ..domain.submissions.models import Actor, AttachmentGroup
from ..domain.submissions.ports.object_storage_port import ObjectStoragePort
from ..domain.submissions.status import SubmissionStatus
from ..infrastructure.repositories.delivery_template_repository import DeliveryTemplateRepository
from ..infrastructure.repositories.label_request_repository import LabelRequestRepository
from ..infrastructure.repositories.submission_repository import SubmissionRepository
from .controller import DraftHandle, DraftLifecycleController
from .label_trigger import LabelRequestTrigger
from .schemas import (
    DraftFields,
    DraftOpenRequest,
    DraftOpenResponse,
    DraftResponse,
    FailedUploadResponse,
    FinalizeRequest,
    FinalizeResponse,
    LabelRequestCreate,
    LabelRequestResponse,
    StatusChangeRequest,
    SubmissionListResponse,
    SubmissionSummary,
    UploadedFileResponse,
    UploadResponse,
)
from .service import SubmissionService, submit_draft
from .uploads import UploadAggregator, UploadItem

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["Submissions"])
label_requests_router = APIRouter(prefix="/label-requests", tags=["Label Requests"])


def build_controller(
    repository: SubmissionRepository,
    audit_log: SqlAuditLog,
    settings: Settings,
    handle: DraftHandle,
) -> DraftLifecycleController:
    return DraftLifecycleController(
        repository,
        handle,
        audit_log=audit_log,
        code_length=settings.SUBMISSION_CODE_LENGTH,
        max_attempts=settings.CODE_GENERATION_MAX_ATTEMPTS,
    )


async def open_controller(
    draft_id: int,
    repository: SubmissionRepository,
    audit_log: SqlAuditLog,
    settings: Settings,
) -> DraftLifecycleController:
    """Controller bound to an existing draft.

    Raises:
        DraftNotFoundError: If the id does not resolve to a live record
    """
    record = await repository.get(draft_id)
    if record is None:
        raise DraftNotFoundError(draft_id)

    controller = build_controller(repository, audit_log, settings, DraftHandle(owner_id=record.owner_id))
    await controller.resume(draft_id)
    return controller


def get_submission_service(
    repository: SubmissionRepository = Depends(get_submission_repository),
    audit_log: SqlAuditLog = Depends(get_audit_log),
    storage: ObjectStoragePort = Depends(get_storage),
    label_store: LabelRequestRepository = Depends(get_label_store),
    settings: Settings = Depends(get_app_settings),
) -> SubmissionService:
    return SubmissionService(
        repository,
        audit_log,
        storage=storage,
        label_store=label_store,
        label_bucket=settings.LABEL_BUCKET,
        results_bucket=settings.RESULTS_BUCKET,
        max_size=settings.MAX_UPLOAD_SIZE_BYTES,
        code_length=settings.SUBMISSION_CODE_LENGTH,
    )


def get_label_trigger(
    repository: SubmissionRepository = Depends(get_submission_repository),
    audit_log: SqlAuditLog = Depends(get_audit_log),
    label_store: LabelRequestRepository = Depends(get_label_store),
    templates: DeliveryTemplateRepository = Depends(get_template_repository),
) -> LabelRequestTrigger:
    return LabelRequestTrigger(label_store, repository, audit_log, templates=templates)


async def read_upload(file: UploadFile) -> UploadItem:
    content = await file.read()
    return UploadItem(filename=file.filename or "", content=content, content_type=file.content_type)


# ============================================================================
# Draft lifecycle
# ============================================================================

@router.post("/drafts", response_model=DraftOpenResponse)
async def open_draft(
    body: DraftOpenRequest,
    actor: Actor = Depends(require_actor),
    repository: SubmissionRepository = Depends(get_submission_repository),
    audit_log: SqlAuditLog = Depends(get_audit_log),
    settings: Settings = Depends(get_app_settings),
):
    """Resume the draft named by `reference`, or start a new session.

    A record is only created when initial fields are sent (or `create` is
    set); otherwise the response carries no draft and the first autosave
    creates it.
    """
    handle = DraftHandle(owner_id=body.owner_id, draft_key=body.draft_key)
    controller = build_controller(repository, audit_log, settings, handle)

    record = await controller.resume(body.reference)
    if record is None and body.draft_key:
        existing = await repository.find_by_external_ref(body.draft_key)
        if existing is not None:
            record = await controller.resume(existing.id)
    resumed = record is not None

    changes = body.fields.changes() if body.fields else {}
    if changes:
        await controller.autosave(changes, actor)
    elif body.create:
        await controller.ensure_draft(actor)

    return DraftOpenResponse(
        reference=handle.reference,
        resumed=resumed,
        draft=DraftResponse.from_record(controller.record) if controller.record else None,
    )


@router.get("/drafts/{draft_id}", response_model=DraftResponse)
async def get_draft(
    draft_id: int,
    repository: SubmissionRepository = Depends(get_submission_repository),
):
    """Resume view: every persisted field and attachment URL."""
    record = await repository.get(draft_id)
    if record is None:
        raise DraftNotFoundError(draft_id)
    return DraftResponse.from_record(record)


@router.patch("/drafts/{draft_id}", response_model=DraftResponse)
async def patch_draft(
    draft_id: int,
    body: DraftFields,
    actor: Actor = Depends(require_actor),
    repository: SubmissionRepository = Depends(get_submission_repository),
    audit_log: SqlAuditLog = Depends(get_audit_log),
    settings: Settings = Depends(get_app_settings),
):
    """Autosave: overwrite exactly the fields present in the body."""
    controller = await open_controller(draft_id, repository, audit_log, settings)
    record = await controller.patch(body.changes(), actor)
    return DraftResponse.from_record(record)


@router.post(
    "/drafts/{draft_id}/attachments/{group}",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_attachments(
    draft_id: int,
    group: AttachmentGroup,
    files: List[UploadFile] = File(..., description="Files to attach to the group"),
    actor: Actor = Depends(require_actor),
    repository: SubmissionRepository = Depends(get_submission_repository),
    audit_log: SqlAuditLog = Depends(get_audit_log),
    storage: ObjectStoragePort = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    """Upload files into an attachment group.

    Files succeed or fail individually; the response lists both and carries
    the merged URL list for the group.
    """
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files provided")
    if len(files) > settings.MAX_FILES_PER_UPLOAD:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files (max {settings.MAX_FILES_PER_UPLOAD} per upload)",
        )

    controller = await open_controller(draft_id, repository, audit_log, settings)
    aggregator = UploadAggregator(
        controller,
        repository,
        storage,
        bucket=settings.ATTACHMENT_BUCKET,
        max_size=settings.MAX_UPLOAD_SIZE_BYTES,
    )
    items = [await read_upload(f) for f in files]
    result = await aggregator.upload(group, items, actor)

    return UploadResponse(
        draft_id=result.draft_id,
        group=result.group,
        urls=result.urls,
        uploaded=[UploadedFileResponse(**vars(u)) for u in result.uploaded],
        failed=[FailedUploadResponse(**vars(f)) for f in result.failed],
    )


@router.post("/drafts/{draft_id}/finalize", response_model=FinalizeResponse)
async def finalize_draft(
    draft_id: int,
    body: FinalizeRequest,
    actor: Actor = Depends(require_actor),
    repository: SubmissionRepository = Depends(get_submission_repository),
    audit_log: SqlAuditLog = Depends(get_audit_log),
    trigger: LabelRequestTrigger = Depends(get_label_trigger),
    settings: Settings = Depends(get_app_settings),
):
    """Submit the draft. Safe to retry: a finalized draft returns its code."""
    controller = await open_controller(draft_id, repository, audit_log, settings)
    outcome = await submit_draft(
        controller,
        trigger,
        actor,
        fields=body.fields.changes() if body.fields else None,
        attachments={group.value: urls for group, urls in body.attachments.items()},
        label_address=body.label_address.lines() if body.label_address else None,
    )

    result = outcome.result
    return FinalizeResponse(
        draft_id=result.draft_id,
        code=result.code,
        status=result.status,
        submitted_at=result.submitted_at,
        already_finalized=result.already_finalized,
        label_request=(
            LabelRequestResponse.from_record(outcome.label_request) if outcome.label_request else None
        ),
        label_error=outcome.label_error,
    )


# ============================================================================
# Submitted records
# ============================================================================

@router.get("/by-code/{code}", response_model=DraftResponse)
async def get_submission_by_code(
    code: str,
    service: SubmissionService = Depends(get_submission_service),
):
    record = await service.get_by_code(code)
    return DraftResponse.from_record(record)


@router.get("", response_model=SubmissionListResponse)
async def list_submissions(
    owner_id: str = Query(..., min_length=1),
    status_filter: Optional[SubmissionStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: SubmissionService = Depends(get_submission_service),
):
    """List an owner's submissions, newest first (deleted ones excluded)."""
    records = await service.list_for_owner(
        owner_id,
        status=status_filter.value if status_filter else None,
        limit=limit,
        offset=offset,
    )
    return SubmissionListResponse(
        items=[SubmissionSummary.from_record(r) for r in records],
        limit=limit,
        offset=offset,
    )


@router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_submission(
    submission_id: int,
    actor: Actor = Depends(require_actor),
    service: SubmissionService = Depends(get_submission_service),
):
    await service.soft_delete(submission_id, actor)


@router.post("/{submission_id}/status", response_model=DraftResponse)
async def change_status(
    submission_id: int,
    body: StatusChangeRequest,
    actor: Actor = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
):
    record = await service.transition_status(submission_id, body.status, actor)
    return DraftResponse.from_record(record)


@router.post("/{submission_id}/shipped-out", response_model=DraftResponse)
async def mark_shipped_out(
    submission_id: int,
    image: Optional[UploadFile] = File(None),
    actor: Actor = Depends(require_actor),
    service: SubmissionService = Depends(get_submission_service),
):
    """Mark the sample shipped; an optional photo is stored with the record."""
    item = await read_upload(image) if image is not None else None
    try:
        record = await service.mark_shipped_out(submission_id, actor, image=item)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return DraftResponse.from_record(record)


@router.post("/{submission_id}/lab-results", response_model=DraftResponse)
async def upload_lab_results(
    submission_id: int,
    file: UploadFile = File(...),
    actor: Actor = Depends(require_actor),
    service: SubmissionService = Depends(get_submission_service),
):
    item = await read_upload(file)
    try:
        record = await service.attach_lab_results(submission_id, item, actor)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return DraftResponse.from_record(record)


# ============================================================================
# Label requests
# ============================================================================

@router.get("/{submission_id}/label-requests", response_model=List[LabelRequestResponse])
async def list_label_requests(
    submission_id: int,
    service: SubmissionService = Depends(get_submission_service),
    label_store: LabelRequestRepository = Depends(get_label_store),
):
    record = await service.get(submission_id)
    requests = await label_store.list_by_draft(record.id)
    return [LabelRequestResponse.from_record(r) for r in requests]


@router.post(
    "/{submission_id}/label-requests",
    response_model=LabelRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_label(
    submission_id: int,
    body: LabelRequestCreate,
    actor: Actor = Depends(require_actor),
    trigger: LabelRequestTrigger = Depends(get_label_trigger),
):
    """Issue the shipping label request, or return the one already issued."""
    request = await trigger.request_label(submission_id, body.address.lines(), actor)
    return LabelRequestResponse.from_record(request)


@label_requests_router.post("/{request_id}/artifact", response_model=LabelRequestResponse)
async def deliver_label_artifact(
    request_id: int,
    file: UploadFile = File(...),
    actor: Actor = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
):
    """Attach the delivered label file and mark the request fulfilled."""
    item = await read_upload(file)
    try:
        request = await service.attach_label_artifact(request_id, item, actor)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return LabelRequestResponse.from_record(request)
