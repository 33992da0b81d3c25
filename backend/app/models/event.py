"""Club event model with derived schedule flags."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from backend.app.core.time import as_utc, utc_now
from backend.app.db.base_class import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=True)
    type = Column(String(20), nullable=False)
    category = Column(String(30), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False, index=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    all_day = Column(Boolean, nullable=False, default=False)
    location = Column(String(255), nullable=True)
    address = Column(String(512), nullable=True)
    latitude = Column(Numeric(10, 7), nullable=True)
    longitude = Column(Numeric(10, 7), nullable=True)
    max_attendees = Column(Integer, nullable=True)
    registration_fee = Column(Numeric(10, 2), nullable=True)
    registration_deadline = Column(DateTime(timezone=True), nullable=True)
    requires_registration = Column(Boolean, nullable=False, default=False)
    featured_image = Column(String(512), nullable=True)
    status = Column(String(20), nullable=False, default="draft", index=True)
    visibility = Column(String(20), nullable=False, default="public", index=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    tags = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    contact_info = Column(JSON, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    creator = relationship("User", foreign_keys=[created_by])

    def _ends_at(self):
        return as_utc(self.end_date or self.start_date)

    @property
    def is_upcoming(self) -> bool:
        return as_utc(self.start_date) > utc_now()

    @property
    def is_past(self) -> bool:
        return self._ends_at() < utc_now()

    @property
    def is_ongoing(self) -> bool:
        now = utc_now()
        return as_utc(self.start_date) <= now <= self._ends_at()

    @property
    def registration_status(self) -> str:
        if not self.requires_registration:
            return "not_required"
        deadline = as_utc(self.registration_deadline) if self.registration_deadline else as_utc(self.start_date)
        return "open" if utc_now() < deadline else "closed"
