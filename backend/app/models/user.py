from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=True)
    phone = Column(String(20), nullable=True)
    profession = Column(String(100), nullable=True)
    company = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default="member")
    status = Column(String(20), nullable=False, default="active")
    avatar_url = Column(String(512), nullable=True)
    token_version = Column(Integer, nullable=False, default=0)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    committee_links = relationship("CommitteeMember", back_populates="user", cascade="all, delete-orphan")
    project_links = relationship("ProjectMember", back_populates="user", cascade="all, delete-orphan")
    dues = relationship("Due", back_populates="user", foreign_keys="Due.user_id")

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def avatar(self) -> str:
        if self.avatar_url:
            return self.avatar_url
        return f"https://ui-avatars.com/api/?name={self.name.replace(' ', '+')}&color=7F9CF5&background=EBF4FF"
