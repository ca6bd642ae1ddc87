"""Submissions domain module - draft lifecycle values, status machine, codes, references"""

from .status import (
    SubmissionStatus,
    StateTransitionError,
    ALLOWED_TRANSITIONS,
    validate_transition,
    is_editable,
)
from .models import (
    Actor,
    AttachmentGroup,
    DraftRecord,
    LabelRequestRecord,
    FIELD_GROUPS,
    SCALAR_FIELDS,
    ATTACHMENT_COLUMNS,
    merge_urls,
    split_patch,
)
from .reference import parse_reference
from .codes import CODE_ALPHABET, generate_code, generate_unique_code, is_valid_code

__all__ = [
    "SubmissionStatus",
    "StateTransitionError",
    "ALLOWED_TRANSITIONS",
    "validate_transition",
    "is_editable",
    "Actor",
    "AttachmentGroup",
    "DraftRecord",
    "LabelRequestRecord",
    "FIELD_GROUPS",
    "SCALAR_FIELDS",
    "ATTACHMENT_COLUMNS",
    "merge_urls",
    "split_patch",
    "parse_reference",
    "CODE_ALPHABET",
    "generate_code",
    "generate_unique_code",
    "is_valid_code",
]
