"""Health checks for the database and object storage.

A component that answers but takes longer than SLOW_CHECK_MS is reported as
degraded; the service keeps taking traffic while degraded.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.submissions.ports.object_storage_port import ObjectStoragePort
from .logging_config import get_logger

logger = get_logger(__name__)

SLOW_CHECK_MS = 1000.0


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None

    def as_dict(self) -> Dict[str, object]:
        return {"status": self.status.value, "message": self.message, "latency_ms": self.latency_ms}


def _reachable(name: str, latency_ms: float) -> ComponentHealth:
    latency_ms = round(latency_ms, 2)
    if latency_ms > SLOW_CHECK_MS:
        return ComponentHealth(HealthStatus.DEGRADED, f"{name} slow ({latency_ms} ms)", latency_ms)
    return ComponentHealth(HealthStatus.HEALTHY, f"{name} connection OK", latency_ms)


def check_database_health(db: Session) -> ComponentHealth:
    """Run `SELECT 1` on the request session."""
    start = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(HealthStatus.UNHEALTHY, f"Database error: {e}")
    return _reachable("Database", (time.perf_counter() - start) * 1000)


async def check_object_storage_health(storage: ObjectStoragePort) -> ComponentHealth:
    """Ping object storage through the storage port."""
    start = time.perf_counter()
    if not await storage.ping():
        return ComponentHealth(HealthStatus.UNHEALTHY, "Object storage unreachable")
    return _reachable("Object storage", (time.perf_counter() - start) * 1000)


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Worst component status wins."""
    statuses = {c.status for c in components.values()}
    if HealthStatus.UNHEALTHY in statuses:
        return HealthStatus.UNHEALTHY
    if HealthStatus.DEGRADED in statuses:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY
