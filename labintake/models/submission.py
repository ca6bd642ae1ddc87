"""Submission model for lab intake

Represents one intake record. It is created as an in-progress draft on the
first field edit or file drop, patched by autosave while the user walks
through the form, and finalized into a pending submission with a code.
"""

from sqlalchemy import (
    Boolean, Column, DateTime, Index, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, TimestampMixin, utcnow


class Submission(TimestampMixin, Base):
    """Intake submission (draft while status is in_progress).

    Lifecycle:
    1. Created on first interaction (status=in_progress, no code)
    2. Patched field-by-field and grown with attachment URLs
    3. Finalized (status=pending, code assigned, submitted_at set)
    4. Shipped out / waiting on lab results / completed (post-submission)

    Soft-deleted rows (deleted_at set) are invisible to every lookup.
    """

    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)

    owner_id = Column(Text, nullable=False, comment="Intake context (lab/location) that opened the draft")
    draft_key = Column(Text, nullable=True, comment="Client-generated token for create-if-absent")
    status = Column(String(32), nullable=False, default="in_progress")
    code = Column(String(16), nullable=True, comment="Human-shareable code, assigned once at finalize")

    # Patient
    patient_name = Column(Text, nullable=True)
    patient_address = Column(Text, nullable=True)
    patient_email = Column(Text, nullable=True)
    patient_dob = Column(Text, nullable=True)

    # Doctor
    doctor_name = Column(Text, nullable=True)
    doctor_address = Column(Text, nullable=True)
    doctor_phone = Column(Text, nullable=True)
    doctor_fax = Column(Text, nullable=True)
    doctor_email = Column(Text, nullable=True)

    # Insurance
    insurance_company = Column(Text, nullable=True)
    insurance_policy_number = Column(Text, nullable=True)

    # Logistics
    lab_brand = Column(Text, nullable=True)
    lab_id = Column(Text, nullable=True)
    blood_collection_time = Column(Text, nullable=True)
    stat_test = Column(Boolean, nullable=True)
    need_label = Column(Boolean, nullable=True)
    label_ship_from = Column(Text, nullable=True)

    # Attachment groups (ordered URL lists, append-only)
    script_urls = Column(PortableJSONB, nullable=False, default=list)
    insurance_card_urls = Column(PortableJSONB, nullable=False, default=list)
    patient_id_urls = Column(PortableJSONB, nullable=False, default=list)

    # Lifecycle timestamps
    requested_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    # Shipping label / results
    label_requested = Column(Boolean, nullable=False, default=False)
    label_url = Column(Text, nullable=True)
    lab_results_url = Column(Text, nullable=True)
    shipped_out_at = Column(DateTime(timezone=True), nullable=True)
    shipped_out_image_url = Column(Text, nullable=True)

    # Actor tracking
    created_by = Column(Text, nullable=True)

    # Soft delete by the owning lab
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(Text, nullable=True)

    label_requests = relationship(
        "LabelRequest",
        back_populates="submission",
        order_by="LabelRequest.id",
    )

    __table_args__ = (
        UniqueConstraint("code", name="uq_submissions_code"),
        UniqueConstraint("draft_key", name="uq_submissions_draft_key"),
        Index("ix_submissions_owner_status", "owner_id", "status"),
    )

    def __repr__(self):
        return f"<Submission(id={self.id}, status={self.status}, code={self.code})>"
