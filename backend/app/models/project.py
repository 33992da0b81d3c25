"""Project model and its membership pivot."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now, utc_today
from backend.app.db.base_class import Base


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    committee_id = Column(Integer, ForeignKey("committees.id"), nullable=True, index=True)
    budget = Column(Numeric(10, 2), nullable=False, default=0)
    amount_spent = Column(Numeric(10, 2), nullable=False, default=0)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="planning")
    progress = Column(Integer, nullable=False, default=0)
    priority = Column(String(10), nullable=False, default="medium")
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    committee = relationship("Committee", back_populates="projects")
    creator = relationship("User", foreign_keys=[created_by])
    member_links = relationship(
        "ProjectMember",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectMember.id",
    )
    documents = relationship("Document", back_populates="project")
    quotations = relationship("Quotation", back_populates="project")

    @property
    def members(self):
        return list(self.member_links)

    @property
    def days_remaining(self) -> int | None:
        if self.end_date is None:
            return None
        return (self.end_date - utc_today()).days

    @property
    def is_overdue(self) -> bool:
        if self.end_date is None:
            return False
        return utc_today() > self.end_date and self.status not in ("completed", "cancelled")

    @property
    def budget_utilization(self) -> float:
        if not self.budget or self.budget <= 0:
            return 0.0
        return min(100.0, round(float(self.amount_spent or 0) / float(self.budget) * 100, 2))


class ProjectMember(Base):
    __tablename__ = "project_user"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="member")
    assigned_on = Column(Date, nullable=True, default=utc_today)
    completed_on = Column(Date, nullable=True)
    responsibilities = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_user"),
    )

    project = relationship("Project", back_populates="member_links")
    user = relationship("User", back_populates="project_links")
