"""Port interfaces consumed by the submission lifecycle."""

from .audit_log_port import AuditLogPort
from .draft_repository_port import DraftRepositoryPort
from .label_request_port import LabelRequestStorePort
from .object_storage_port import ObjectStoragePort

__all__ = [
    "AuditLogPort",
    "DraftRepositoryPort",
    "LabelRequestStorePort",
    "ObjectStoragePort",
]
