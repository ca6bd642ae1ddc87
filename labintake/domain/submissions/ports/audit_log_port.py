"""Audit Log Port - write-only append interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

from ..models import Actor


class AuditLogPort(ABC):
    """Append-only audit trail."""

    @abstractmethod
    async def append(
        self,
        action: str,
        actor: Optional[Actor],
        details: Dict[str, Any],
        timestamp: datetime,
    ) -> None:
        """Record an audit event. Entries are never updated or deleted."""
        pass
