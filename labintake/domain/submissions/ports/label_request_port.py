"""Label Request Store Port - shipping label requests per submission."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models import LabelRequestRecord


class LabelRequestStorePort(ABC):
    """Port interface for label request persistence."""

    @abstractmethod
    async def create(
        self,
        draft_id: int,
        address: Dict[str, Any],
        requested_by: Optional[str] = None,
    ) -> LabelRequestRecord:
        """Create a `pending` label request for a submission."""
        pass

    @abstractmethod
    async def list_by_draft(self, draft_id: int) -> List[LabelRequestRecord]:
        """List label requests for a submission, oldest first."""
        pass

    @abstractmethod
    async def get(self, request_id: int) -> Optional[LabelRequestRecord]:
        """Fetch a label request by id."""
        pass

    @abstractmethod
    async def mark_fulfilled(self, request_id: int, artifact_url: str) -> LabelRequestRecord:
        """Attach the delivered label artifact and mark the request fulfilled."""
        pass
