"""SQLAlchemy models. Importing this package registers every table on Base.metadata."""

from .base import Base, PortableJSONB
from .submission import Submission
from .label_request import LabelRequest
from .delivery_template import DeliveryTemplate
from .audit_log import AuditLog

__all__ = [
    "Base",
    "PortableJSONB",
    "Submission",
    "LabelRequest",
    "DeliveryTemplate",
    "AuditLog",
]
