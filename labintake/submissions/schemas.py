"""Pydantic schemas for the submissions API"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..domain.submissions.models import AttachmentGroup, DraftRecord, LabelRequestRecord
from ..domain.submissions.status import SubmissionStatus


# ============================================================================
# Draft fields
# ============================================================================

class DraftFields(BaseModel):
    """Scalar form fields; every field optional (patch semantics)."""
    patient_name: Optional[str] = None
    patient_address: Optional[str] = None
    patient_email: Optional[str] = None
    patient_dob: Optional[str] = None

    doctor_name: Optional[str] = None
    doctor_address: Optional[str] = None
    doctor_phone: Optional[str] = None
    doctor_fax: Optional[str] = None
    doctor_email: Optional[str] = None

    insurance_company: Optional[str] = None
    insurance_policy_number: Optional[str] = None

    lab_brand: Optional[str] = None
    lab_id: Optional[str] = None
    blood_collection_time: Optional[str] = None
    stat_test: Optional[bool] = None
    need_label: Optional[bool] = None
    label_ship_from: Optional[str] = None

    model_config = ConfigDict(extra='forbid')

    def changes(self) -> Dict[str, Any]:
        """Only the fields the client actually sent (explicit nulls included)."""
        return self.model_dump(exclude_unset=True)


class ShipFromAddress(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    address_line1: str = Field(..., min_length=1, max_length=500)
    address_line2: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=200)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)

    def lines(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"name"}, exclude_none=True)


# ============================================================================
# Requests
# ============================================================================

class DraftOpenRequest(BaseModel):
    """Open a draft session: resume by reference or create on first edit."""
    owner_id: str = Field(..., min_length=1, max_length=200)
    reference: Optional[Union[int, str]] = Field(
        None, description="Draft id carried in the client's address; junk means 'no draft yet'"
    )
    draft_key: Optional[str] = Field(None, min_length=8, max_length=100)
    fields: Optional[DraftFields] = None
    create: bool = Field(False, description="Create the record now even without initial fields")


class FinalizeRequest(BaseModel):
    fields: Optional[DraftFields] = None
    attachments: Dict[AttachmentGroup, List[str]] = Field(default_factory=dict)
    label_address: Optional[ShipFromAddress] = None

    model_config = ConfigDict(extra='forbid')


class StatusChangeRequest(BaseModel):
    status: SubmissionStatus


class LabelRequestCreate(BaseModel):
    address: ShipFromAddress


# ============================================================================
# Responses
# ============================================================================

class DraftResponse(BaseModel):
    """Full resume view of a submission"""
    id: int
    owner_id: str
    status: str
    code: Optional[str] = None
    fields: Dict[str, Any]
    attachments: Dict[str, List[str]]
    requested_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    label_requested: bool = False
    label_url: Optional[str] = None
    lab_results_url: Optional[str] = None
    shipped_out_at: Optional[datetime] = None
    shipped_out_image_url: Optional[str] = None
    created_by: Optional[str] = None

    @classmethod
    def from_record(cls, record: DraftRecord) -> "DraftResponse":
        return cls(
            id=record.id,
            owner_id=record.owner_id,
            status=record.status,
            code=record.code,
            fields=dict(record.fields),
            attachments={group.value: record.urls(group) for group in AttachmentGroup},
            requested_at=record.requested_at,
            submitted_at=record.submitted_at,
            label_requested=record.label_requested,
            label_url=record.label_url,
            lab_results_url=record.lab_results_url,
            shipped_out_at=record.shipped_out_at,
            shipped_out_image_url=record.shipped_out_image_url,
            created_by=record.created_by,
        )


class DraftOpenResponse(BaseModel):
    """`draft` is None until the first edit creates the record."""
    reference: Optional[int] = None
    resumed: bool = False
    draft: Optional[DraftResponse] = None


class UploadedFileResponse(BaseModel):
    index: int
    filename: str
    url: str
    size_bytes: int


class FailedUploadResponse(BaseModel):
    index: int
    filename: str
    error: str


class UploadResponse(BaseModel):
    """Response for an attachment upload (partial success allowed)"""
    draft_id: int
    group: AttachmentGroup
    urls: List[str]
    uploaded: List[UploadedFileResponse]
    failed: List[FailedUploadResponse]


class LabelRequestResponse(BaseModel):
    id: int
    submission_id: int
    address: Dict[str, Any]
    status: str
    artifact_url: Optional[str] = None
    requested_by: Optional[str] = None
    created_at: Optional[datetime] = None
    fulfilled_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: LabelRequestRecord) -> "LabelRequestResponse":
        return cls(**vars(record))


class FinalizeResponse(BaseModel):
    draft_id: int
    code: str
    status: str
    submitted_at: Optional[datetime] = None
    already_finalized: bool = False
    label_request: Optional[LabelRequestResponse] = None
    label_error: Optional[str] = None


class SubmissionSummary(BaseModel):
    """Row in an owner's submission list"""
    id: int
    code: Optional[str] = None
    status: str
    patient_name: Optional[str] = None
    lab_brand: Optional[str] = None
    requested_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: DraftRecord) -> "SubmissionSummary":
        return cls(
            id=record.id,
            code=record.code,
            status=record.status,
            patient_name=record.fields.get("patient_name"),
            lab_brand=record.fields.get("lab_brand"),
            requested_at=record.requested_at,
            submitted_at=record.submitted_at,
        )


class SubmissionListResponse(BaseModel):
    items: List[SubmissionSummary]
    limit: int
    offset: int
