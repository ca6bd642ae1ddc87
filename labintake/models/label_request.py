"""LabelRequest SQLAlchemy model"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow


class LabelRequest(Base):
    """One row per request-a-shipping-label action.

    Starts as `pending`; becomes `fulfilled` once the label artifact has been
    uploaded by the shipping desk.
    """
    __tablename__ = "label_requests"
    __table_args__ = (
        Index("ix_label_requests_submission_id", "submission_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    submission_id = Column(Integer, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False)
    address = Column(PortableJSONB, nullable=False, default=dict)
    status = Column(String(16), nullable=False, default="pending")
    artifact_url = Column(Text, nullable=True)
    requested_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    fulfilled_at = Column(DateTime(timezone=True), nullable=True)

    submission = relationship("Submission", back_populates="label_requests")

    def __repr__(self):
        return f"<LabelRequest(id={self.id}, submission_id={self.submission_id}, status={self.status})>"
