"""Document schemas. Uploads arrive as multipart form fields, not JSON."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.enums import DocumentVisibility
from backend.app.schemas.common import UserSummary


class DocumentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[str] = Field(default=None, max_length=100)
    visibility: Optional[DocumentVisibility] = None
    committee_id: Optional[int] = None
    project_id: Optional[int] = None
    tags: Optional[List[str]] = None


class DocumentRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    file_name: str
    file_size: int
    formatted_size: str
    mime_type: Optional[str] = None
    type: Optional[str] = None
    visibility: DocumentVisibility
    uploaded_by: int
    uploader: Optional[UserSummary] = None
    updated_by: Optional[int] = None
    committee_id: Optional[int] = None
    project_id: Optional[int] = None
    tags: Optional[List[str]] = None
    version: int
    download_count: int
    view_count: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
