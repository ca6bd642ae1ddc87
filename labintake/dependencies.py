"""FastAPI dependencies shared by the routers.

Actor identity is read from headers set by the authentication layer in front of
this service: `X-Actor-Id` (required for mutations) and `X-Actor-Role`.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .audit.service import SqlAuditLog
from .config import Settings, get_settings
from .database import get_db
from .domain.submissions.models import Actor
from .infrastructure.repositories.delivery_template_repository import DeliveryTemplateRepository
from .infrastructure.repositories.label_request_repository import LabelRequestRepository
from .infrastructure.repositories.submission_repository import SubmissionRepository
from .infrastructure.storage.s3_storage_adapter import S3StorageAdapter
from .infrastructure.storage.storage_config import load_storage_config, validate_storage_config

ADMIN_ROLE = "admin"


@lru_cache()
def get_storage() -> S3StorageAdapter:
    """Process-wide object storage adapter.

    Raises:
        ValueError: If the storage settings are incomplete
    """
    config = load_storage_config()
    validate_storage_config(config)
    return S3StorageAdapter.from_config(config)


def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Optional[Actor]:
    if not x_actor_id:
        return None
    return Actor(id=x_actor_id, is_admin=(x_actor_role or "").lower() == ADMIN_ROLE)


def require_actor(actor: Optional[Actor] = Depends(get_actor)) -> Actor:
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Id header is required",
        )
    return actor


def require_admin(actor: Actor = Depends(require_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return actor


def get_submission_repository(db: Session = Depends(get_db)) -> SubmissionRepository:
    return SubmissionRepository(db)


def get_audit_log(db: Session = Depends(get_db)) -> SqlAuditLog:
    return SqlAuditLog(db)


def get_label_store(db: Session = Depends(get_db)) -> LabelRequestRepository:
    return LabelRequestRepository(db)


def get_template_repository(db: Session = Depends(get_db)) -> DeliveryTemplateRepository:
    return DeliveryTemplateRepository(db)


def get_app_settings() -> Settings:
    return get_settings()
