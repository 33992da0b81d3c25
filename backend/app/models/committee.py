"""Committee model and its membership pivot."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base


class Committee(Base):
    __tablename__ = "committees"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    chairperson_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    meeting_schedule = Column(String(255), nullable=True)
    budget = Column(Numeric(10, 2), nullable=True)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    chairperson = relationship("User", foreign_keys=[chairperson_id])
    member_links = relationship(
        "CommitteeMember",
        back_populates="committee",
        cascade="all, delete-orphan",
        order_by="CommitteeMember.id",
    )
    projects = relationship("Project", back_populates="committee")
    documents = relationship("Document", back_populates="committee")

    @property
    def members(self):
        return list(self.member_links)


class CommitteeMember(Base):
    __tablename__ = "committee_user"

    id = Column(Integer, primary_key=True, index=True)
    committee_id = Column(Integer, ForeignKey("committees.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="member")
    joined_on = Column(Date, nullable=True)
    left_on = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        UniqueConstraint("committee_id", "user_id", name="uq_committee_user"),
    )

    committee = relationship("Committee", back_populates="member_links")
    user = relationship("User", back_populates="committee_links")
