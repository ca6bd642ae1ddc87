"""Domain value objects for submissions.

DraftRecord is the repository-agnostic snapshot of a `submissions` row that the
controller mirrors in memory. Field and attachment groups are the named
sections of the multi-step intake form.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .status import SubmissionStatus, is_editable


class AttachmentGroup(str, Enum):
    """Attachment groups; each maps to an ordered URL list on the record."""
    SCRIPT = "script"
    INSURANCE_CARD = "insurance_card"
    PATIENT_ID = "patient_id"

    @property
    def column(self) -> str:
        return f"{self.value}_urls"


FIELD_GROUPS: Dict[str, tuple] = {
    "patient": ("patient_name", "patient_address", "patient_email", "patient_dob"),
    "doctor": ("doctor_name", "doctor_address", "doctor_phone", "doctor_fax", "doctor_email"),
    "insurance": ("insurance_company", "insurance_policy_number"),
    "logistics": (
        "lab_brand",
        "lab_id",
        "blood_collection_time",
        "stat_test",
        "need_label",
        "label_ship_from",
    ),
}

SCALAR_FIELDS = frozenset(name for names in FIELD_GROUPS.values() for name in names)

ATTACHMENT_COLUMNS = frozenset(group.column for group in AttachmentGroup)


@dataclass(frozen=True)
class Actor:
    """Caller identity resolved by the authentication layer."""
    id: str
    is_admin: bool = False


@dataclass
class DraftRecord:
    """Snapshot of a persisted submission."""
    id: int
    owner_id: str
    status: str = SubmissionStatus.IN_PROGRESS.value
    code: Optional[str] = None
    draft_key: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)
    attachments: Dict[str, List[str]] = field(default_factory=dict)
    requested_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    label_requested: bool = False
    label_url: Optional[str] = None
    lab_results_url: Optional[str] = None
    shipped_out_at: Optional[datetime] = None
    shipped_out_image_url: Optional[str] = None
    created_by: Optional[str] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_editable(self) -> bool:
        return is_editable(self.status)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def urls(self, group: AttachmentGroup) -> List[str]:
        return list(self.attachments.get(group.value, []))


@dataclass
class LabelRequestRecord:
    """Snapshot of a persisted shipping label request."""
    id: int
    submission_id: int
    address: Dict[str, Any]
    status: str = "pending"
    artifact_url: Optional[str] = None
    requested_by: Optional[str] = None
    created_at: Optional[datetime] = None
    fulfilled_at: Optional[datetime] = None


def split_patch(values: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only keys a draft patch may carry.

    Unknown keys are dropped rather than rejected so that a newer client form
    never breaks autosave against an older backend.
    """
    return {key: value for key, value in values.items() if key in SCALAR_FIELDS}


def merge_urls(persisted: List[str], incoming: List[str]) -> List[str]:
    """Append incoming URLs not already present, preserving persisted order."""
    merged = list(persisted)
    seen = set(merged)
    for url in incoming:
        if url not in seen:
            merged.append(url)
            seen.add(url)
    return merged
