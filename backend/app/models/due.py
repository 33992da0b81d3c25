"""Membership due owed by a member and recorded by an administrator."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now, utc_today
from backend.app.db.base_class import Base


class Due(Base):
    __tablename__ = "dues"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    recorded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    type = Column(String(20), nullable=False, default="annual")
    # pending | paid | waived; "overdue" is derived, never stored
    status = Column(String(20), nullable=False, default="pending", index=True)
    due_date = Column(Date, nullable=False, index=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    payment_method = Column(String(50), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="dues", foreign_keys=[user_id])
    recorder = relationship("User", foreign_keys=[recorded_by])

    @property
    def is_overdue(self) -> bool:
        return self.status == "pending" and self.due_date is not None and self.due_date < utc_today()

    @property
    def effective_status(self) -> str:
        return "overdue" if self.is_overdue else self.status
