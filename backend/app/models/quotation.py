"""Vendor quotation with a draft/sent/accepted/rejected workflow."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now, utc_today
from backend.app.db.base_class import Base


class Quotation(Base):
    __tablename__ = "quotations"

    id = Column(Integer, primary_key=True, index=True)
    quotation_number = Column(String(20), unique=True, nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True, index=True)
    vendor_name = Column(String(255), nullable=False)
    vendor_email = Column(String(255), nullable=True)
    vendor_phone = Column(String(50), nullable=True)
    vendor_company = Column(String(255), nullable=True)
    vendor_address = Column(Text, nullable=True)
    issue_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)
    terms_and_conditions = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="draft", index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    accepted_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    accepted_notes = Column(Text, nullable=True)
    rejected_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    rejection_notes = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    project = relationship("Project", back_populates="quotations")
    creator = relationship("User", foreign_keys=[created_by])
    acceptor = relationship("User", foreign_keys=[accepted_by])
    rejector = relationship("User", foreign_keys=[rejected_by])
    items = relationship(
        "QuotationItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationItem.position",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in ("accepted", "rejected")

    @property
    def is_expired(self) -> bool:
        return (
            self.status in ("draft", "sent")
            and self.expiry_date is not None
            and self.expiry_date < utc_today()
        )

    @property
    def effective_status(self) -> str:
        return "expired" if self.is_expired else self.status
