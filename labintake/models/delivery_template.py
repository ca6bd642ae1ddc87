"""DeliveryTemplate SQLAlchemy model"""

from sqlalchemy import Column, Index, Integer, Text

from .base import Base, TimestampMixin


class DeliveryTemplate(TimestampMixin, Base):
    """Saved ship-from address for an owner context.

    Deduplicated per owner by exact match on the address lines.
    """
    __tablename__ = "delivery_templates"
    __table_args__ = (
        Index("ix_delivery_templates_owner_id", "owner_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Text, nullable=False)
    name = Column(Text, nullable=True)
    address_line1 = Column(Text, nullable=False)
    address_line2 = Column(Text, nullable=False, default="")
    city = Column(Text, nullable=False, default="")
    state = Column(Text, nullable=False, default="")
    postal_code = Column(Text, nullable=False, default="")

    ADDRESS_LINES = ("address_line1", "address_line2", "city", "state", "postal_code")

    def address(self) -> dict:
        return {line: getattr(self, line) for line in self.ADDRESS_LINES}

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            **self.address(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
