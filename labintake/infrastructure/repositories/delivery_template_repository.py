"""Delivery template repository - saved ship-from addresses per owner"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...domain.submissions.errors import RepositoryError
from ...models.delivery_template import DeliveryTemplate

logger = logging.getLogger(__name__)


def normalize_address(address: Dict[str, Any]) -> Dict[str, str]:
    """Project an address onto the stored lines; missing lines become ''."""
    return {line: (address.get(line) or "") for line in DeliveryTemplate.ADDRESS_LINES}


class DeliveryTemplateRepository:
    """Repository for `delivery_templates` database operations."""

    def __init__(self, db: Session):
        self.db = db

    async def find_exact(self, owner_id: str, address: Dict[str, Any]) -> Optional[DeliveryTemplate]:
        lines = normalize_address(address)
        conditions = [DeliveryTemplate.owner_id == owner_id]
        conditions += [getattr(DeliveryTemplate, line) == value for line, value in lines.items()]
        return self.db.query(DeliveryTemplate).filter(and_(*conditions)).first()

    async def save_if_absent(
        self,
        owner_id: str,
        address: Dict[str, Any],
        name: Optional[str] = None,
    ) -> Tuple[DeliveryTemplate, bool]:
        """Save an address for an owner unless an identical one exists.

        Returns:
            Tuple of (template, created)

        Raises:
            ValueError: If address_line1 is missing
            RepositoryError: If the insert fails
        """
        lines = normalize_address(address)
        if not lines["address_line1"]:
            raise ValueError("address_line1 is required")

        existing = await self.find_exact(owner_id, lines)
        if existing is not None:
            return existing, False

        template = DeliveryTemplate(owner_id=owner_id, name=name, **lines)
        self.db.add(template)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to save delivery template: {e}") from e

        logger.info(f"Saved delivery template: id={template.id}, owner_id={owner_id}")
        return template, True

    async def list_for_owner(self, owner_id: str) -> List[DeliveryTemplate]:
        return (
            self.db.query(DeliveryTemplate)
            .filter(DeliveryTemplate.owner_id == owner_id)
            .order_by(DeliveryTemplate.id)
            .all()
        )
