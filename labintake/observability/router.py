"""Metrics, health and readiness endpoints."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from ..config import Settings
from ..database import get_db
from ..dependencies import get_app_settings, get_storage
from ..domain.submissions.ports.object_storage_port import ObjectStoragePort
from .health import (
    HealthStatus,
    check_database_health,
    check_object_storage_health,
    get_overall_health,
)

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    """Prometheus text exposition of the intake counters and histograms."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Status of the database and object storage; 503 when either is down",
)
async def health_check(
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    components = {
        "database": check_database_health(db),
        "object_storage": await check_object_storage_health(storage),
    }
    overall = get_overall_health(components)

    return JSONResponse(
        status_code=503 if overall == HealthStatus.UNHEALTHY else 200,
        content={
            "status": overall.value,
            "environment": settings.ENVIRONMENT,
            "components": {name: comp.as_dict() for name, comp in components.items()},
        },
    )


@router.get("/ready", summary="Readiness check endpoint")
def readiness_check(db: Session = Depends(get_db)):
    """Ready once the database answers.

    Object storage is left out: drafts can still be opened and autosaved while
    uploads are failing.
    """
    database = check_database_health(db)
    if database.status == HealthStatus.UNHEALTHY:
        return JSONResponse(status_code=503, content={"status": "not_ready", "message": database.message})
    return {"status": "ready"}
