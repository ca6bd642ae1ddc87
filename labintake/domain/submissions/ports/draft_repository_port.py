"""Draft Repository Port - Domain interface for the `submissions` record store.

Adapters must implement this interface to persist drafts (SQLAlchemy in
production, in-memory fakes in tests).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from ..models import DraftRecord


class DraftRepositoryPort(ABC):
    """Port interface for submission persistence.

    Key Design Principles:
    - Patch semantics: a patch overwrites exactly the keys it carries
    - `create_if_absent` is the server-side "at most one draft per key" primitive
    - `append_attachments` reads the latest persisted list before merging
    """

    @abstractmethod
    async def create(self, fields: Dict[str, Any]) -> DraftRecord:
        """Insert a new submission and return it with its assigned id.

        Raises:
            RepositoryError: If the insert fails
        """
        pass

    @abstractmethod
    async def create_if_absent(
        self,
        draft_key: str,
        fields: Dict[str, Any],
    ) -> Tuple[DraftRecord, bool]:
        """Return the live draft for `draft_key`, creating it if none exists.

        Concurrent callers with the same key must all receive the same record.

        Returns:
            Tuple of (record, created)
        """
        pass

    @abstractmethod
    async def get(self, draft_id: int) -> Optional[DraftRecord]:
        """Fetch a non-deleted submission by id, or None."""
        pass

    @abstractmethod
    async def patch(
        self,
        draft_id: int,
        fields: Dict[str, Any],
        require_status: Optional[str] = None,
    ) -> DraftRecord:
        """Overwrite the given fields and return the updated record.

        Args:
            draft_id: Submission id
            fields: Column values to overwrite (scalar fields, attachment
                lists, status, code, timestamps)
            require_status: If set, the write only applies while the stored
                status equals this value

        Raises:
            DraftNotFoundError: If the record does not exist
            DraftConflictError: If require_status did not match
            CodeCollisionError: If `code` is already used by another record
            RepositoryError: On transient persistence failures
        """
        pass

    @abstractmethod
    async def find_by_external_ref(self, ref: str) -> Optional[DraftRecord]:
        """Fetch the live draft created for a client draft key."""
        pass

    @abstractmethod
    async def find_by_code(self, code: str) -> Optional[DraftRecord]:
        """Fetch a submission by its human-shareable code."""
        pass

    @abstractmethod
    async def code_exists(self, code: str) -> bool:
        """Check whether any record (deleted or not) already holds `code`."""
        pass

    @abstractmethod
    async def list_for_owner(
        self,
        owner_id: str,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[DraftRecord]:
        """List an owner's non-deleted submissions, newest first."""
        pass

    @abstractmethod
    async def append_attachments(
        self,
        draft_id: int,
        column: str,
        urls: List[str],
        require_status: Optional[str] = None,
    ) -> List[str]:
        """Append URLs to an attachment list and return the merged list.

        The persisted list is read immediately before merging; URLs already
        present are not duplicated and existing order is preserved.

        Raises:
            DraftNotFoundError: If the draft does not exist
            DraftConflictError: If `require_status` is given and the persisted
                status differs; nothing is written
        """
        pass
