"""Document routes: multipart upload, scoped listing and file streaming."""

from typing import List

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from backend.app.core.pagination import ListParams, list_params
from backend.app.core.permissions import authorize, can_view_document, owns_or_admin
from backend.app.core.responses import envelope
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_user
from backend.app.models.enums import DocumentVisibility
from backend.app.models.user import User
from backend.app.schemas.common import Envelope, Page
from backend.app.schemas.document import DocumentRead, DocumentUpdate
from backend.app.services import documents as document_service

router = APIRouter(prefix="/documents", tags=["documents"])

NO_ACCESS = "You do not have permission to access this document"
NOT_OWNER = "Only the uploader or an admin can change this document"


def file_response(db: Session, document_id: int, kind: str) -> FileResponse:
    document, path = document_service.open_document(db, document_id, kind)
    return FileResponse(
        path,
        media_type=document.mime_type or "application/octet-stream",
        filename=document.file_name,
        content_disposition_type="attachment" if kind == "download" else "inline",
    )


def _authorize_view(db: Session, document_id: int, current_user: User | None) -> None:
    document = document_service.get_document(db, document_id)
    authorize(can_view_document(current_user, document), NO_ACCESS)


def _authorize_owner(db: Session, document_id: int, current_user: User) -> None:
    document = document_service.get_document(db, document_id)
    authorize(owns_or_admin(current_user, document, "uploaded_by"), NOT_OWNER)


@router.get("", response_model=Envelope[Page[DocumentRead]])
async def list_documents(
    type: str | None = None,
    visibility: DocumentVisibility | None = None,
    committee_id: int | None = None,
    project_id: int | None = None,
    uploaded_by: int | None = None,
    search: str | None = None,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    page = document_service.list_documents(
        db,
        params,
        current_user,
        type=type,
        visibility=visibility,
        committee_id=committee_id,
        project_id=project_id,
        uploaded_by=uploaded_by,
        search=search,
    )
    return envelope(page, "Documents retrieved successfully")


@router.post("", response_model=Envelope[DocumentRead], status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    title: str = Form(..., min_length=1, max_length=255),
    type: str = Form(..., min_length=1, max_length=100),
    visibility: DocumentVisibility = Form("private"),
    description: str | None = Form(None),
    committee_id: int | None = Form(None),
    project_id: int | None = Form(None),
    tags: List[str] | None = Form(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    data = await file.read()
    document = document_service.upload_document(
        db,
        current_user,
        data=data,
        file_name=file.filename or "upload",
        mime_type=file.content_type,
        title=title,
        type=type,
        visibility=visibility,
        description=description,
        committee_id=committee_id,
        project_id=project_id,
        tags=tags,
    )
    return envelope(document, "Document uploaded successfully")


@router.get("/{document_id}", response_model=Envelope[DocumentRead])
async def get_document(document_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    _authorize_view(db, document_id, current_user)
    return envelope(document_service.get_document(db, document_id), "Document retrieved successfully")


@router.get("/{document_id}/download")
async def download_document(
    document_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    _authorize_view(db, document_id, current_user)
    return file_response(db, document_id, "download")


@router.get("/{document_id}/preview")
async def preview_document(
    document_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    _authorize_view(db, document_id, current_user)
    return file_response(db, document_id, "preview")


@router.put("/{document_id}", response_model=Envelope[DocumentRead])
async def update_document(
    document_id: int,
    payload: DocumentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _authorize_owner(db, document_id, current_user)
    document = document_service.update_document(db, document_id, current_user, payload)
    return envelope(document, "Document updated successfully")


@router.post("/{document_id}/replace", response_model=Envelope[DocumentRead])
async def replace_document_file(
    document_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _authorize_owner(db, document_id, current_user)
    data = await file.read()
    document = document_service.replace_file(
        db, document_id, current_user, data=data, file_name=file.filename or "upload", mime_type=file.content_type
    )
    return envelope(document, "Document file replaced successfully")


@router.delete("/{document_id}", response_model=Envelope)
async def delete_document(
    document_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    _authorize_owner(db, document_id, current_user)
    document_service.delete_document(db, document_id)
    return envelope(None, "Document deleted successfully")
