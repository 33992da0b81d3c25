"""Document uploads, visibility-scoped listing and file access."""

import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, List, Tuple

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.core.pagination import ListParams, apply_sorting, paginate
from backend.app.core.permissions import is_admin
from backend.app.core.settings import get_settings
from backend.app.core.storage import get_storage
from backend.app.db.session import atomic
from backend.app.models.committee import Committee, CommitteeMember
from backend.app.models.document import Document, format_bytes
from backend.app.models.project import Project, ProjectMember
from backend.app.models.user import User
from backend.app.schemas.document import DocumentUpdate
from backend.app.services.common import apply_fields, get_live_or_404, live, soft_delete

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "created_at": Document.created_at,
    "title": Document.title,
    "file_size": Document.file_size,
    "type": Document.type,
    "download_count": Document.download_count,
}


def _check_size(data: bytes) -> None:
    limit = get_settings().max_upload_bytes
    if not data:
        raise ValidationError.for_field("file", "The file field is required.")
    if len(data) > limit:
        raise ValidationError.for_field("file", f"The file may not be greater than {limit // 1024} kilobytes.")


def _ensure_links(db: Session, committee_id: int | None, project_id: int | None) -> None:
    if committee_id is not None and live(db, Committee).filter(Committee.id == committee_id).first() is None:
        raise ValidationError.for_field("committee_id", "The selected committee is invalid.")
    if project_id is not None and live(db, Project).filter(Project.id == project_id).first() is None:
        raise ValidationError.for_field("project_id", "The selected project is invalid.")


def _guess_mime(file_name: str, mime_type: str | None) -> str:
    if mime_type and mime_type != "application/octet-stream":
        return mime_type
    return mimetypes.guess_type(file_name)[0] or "application/octet-stream"


def visible_to(query, viewer: User | None):
    """Restrict a Document query to rows the viewer may see."""
    if viewer is None:
        return query.filter(Document.visibility == "public")
    if is_admin(viewer):
        return query.filter(or_(Document.visibility != "private", Document.uploaded_by == viewer.id))
    committee_ids = [
        row[0] for row in query.session.query(CommitteeMember.committee_id).filter(CommitteeMember.user_id == viewer.id)
    ]
    project_ids = [
        row[0] for row in query.session.query(ProjectMember.project_id).filter(ProjectMember.user_id == viewer.id)
    ]
    return query.filter(
        or_(
            Document.visibility == "public",
            Document.uploaded_by == viewer.id,
            and_(
                Document.visibility == "restricted",
                or_(Document.committee_id.in_(committee_ids), Document.project_id.in_(project_ids)),
            ),
        )
    )


def get_document(db: Session, document_id: int) -> Document:
    return get_live_or_404(db, Document, document_id, "Document")


def list_documents(
    db: Session,
    params: ListParams,
    viewer: User | None,
    *,
    type: str | None = None,
    visibility: str | None = None,
    committee_id: int | None = None,
    project_id: int | None = None,
    uploaded_by: int | None = None,
    search: str | None = None,
) -> Dict[str, Any]:
    query = visible_to(live(db, Document), viewer)
    if type:
        query = query.filter(Document.type == type)
    if visibility:
        query = query.filter(Document.visibility == visibility)
    if committee_id is not None:
        query = query.filter(Document.committee_id == committee_id)
    if project_id is not None:
        query = query.filter(Document.project_id == project_id)
    if uploaded_by is not None:
        query = query.filter(Document.uploaded_by == uploaded_by)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(Document.title.ilike(pattern), Document.description.ilike(pattern), Document.file_name.ilike(pattern))
        )
    query = apply_sorting(query, params, SORT_FIELDS, "created_at", Document.id)
    return paginate(query, params)


def upload_document(
    db: Session,
    actor: User,
    *,
    data: bytes,
    file_name: str,
    mime_type: str | None,
    title: str,
    type: str,
    visibility: str = "private",
    description: str | None = None,
    committee_id: int | None = None,
    project_id: int | None = None,
    tags: List[str] | None = None,
) -> Document:
    _check_size(data)
    _ensure_links(db, committee_id, project_id)

    storage = get_storage()
    key = storage.store(data, file_name)
    try:
        with atomic(db):
            document = Document(
                title=title,
                description=description,
                file_name=file_name,
                file_path=key,
                file_size=len(data),
                mime_type=_guess_mime(file_name, mime_type),
                type=type,
                visibility=visibility,
                uploaded_by=actor.id,
                committee_id=committee_id,
                project_id=project_id,
                tags=tags,
            )
            db.add(document)
    except Exception:
        storage.delete(key)
        raise
    logger.info("Document %s uploaded by user %s (%d bytes)", document.id, actor.id, len(data))
    return document


def update_document(db: Session, document_id: int, actor: User, payload: DocumentUpdate) -> Document:
    document = get_document(db, document_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("title", "visibility"):
        if field in changes and changes[field] is None:
            raise ValidationError.for_field(field, f"The {field} may not be empty.")
    _ensure_links(db, changes.get("committee_id"), changes.get("project_id"))
    with atomic(db):
        apply_fields(document, changes)
        document.updated_by = actor.id
    return document


def replace_file(
    db: Session, document_id: int, actor: User, *, data: bytes, file_name: str, mime_type: str | None
) -> Document:
    document = get_document(db, document_id)
    _check_size(data)
    storage = get_storage()
    old_key = document.file_path
    new_key = storage.store(data, file_name)
    try:
        with atomic(db):
            document.file_name = file_name
            document.file_path = new_key
            document.file_size = len(data)
            document.mime_type = _guess_mime(file_name, mime_type)
            document.version = (document.version or 1) + 1
            document.updated_by = actor.id
    except Exception:
        storage.delete(new_key)
        raise
    storage.delete(old_key)
    logger.info("Document %s replaced, now version %s", document.id, document.version)
    return document


def delete_document(db: Session, document_id: int) -> None:
    document = get_document(db, document_id)
    key = document.file_path
    with atomic(db):
        soft_delete(document)
    get_storage().delete(key)
    logger.info("Document %s deleted", document_id)


def open_document(db: Session, document_id: int, kind: str) -> Tuple[Document, Path]:
    """Count a download or preview and return the file path to stream."""
    document = get_document(db, document_id)
    storage = get_storage()
    if not storage.exists(document.file_path):
        raise NotFoundError("File not found")
    with atomic(db):
        if kind == "download":
            document.download_count = (document.download_count or 0) + 1
        else:
            document.view_count = (document.view_count or 0) + 1
    return document, storage.absolute_path(document.file_path)


def _brief(document: Document) -> Dict[str, Any]:
    return {
        "id": document.id,
        "title": document.title,
        "file_name": document.file_name,
        "file_size": document.file_size,
        "formatted_size": document.formatted_size,
        "uploaded_by": document.uploaded_by,
        "created_at": document.created_at.isoformat() if document.created_at else None,
    }


def document_statistics(db: Session) -> Dict[str, Any]:
    base = live(db, Document)
    total_size = int(base.with_entities(func.coalesce(func.sum(Document.file_size), 0)).scalar() or 0)
    by_type = [
        {"type": doc_type, "count": count, "size": int(size or 0)}
        for doc_type, count, size in base.with_entities(
            Document.type, func.count(Document.id), func.sum(Document.file_size)
        )
        .group_by(Document.type)
        .order_by(Document.type)
        .all()
    ]
    by_visibility = [
        {"visibility": visibility, "count": count}
        for visibility, count in base.with_entities(Document.visibility, func.count(Document.id))
        .group_by(Document.visibility)
        .order_by(Document.visibility)
        .all()
    ]
    recent = base.order_by(Document.created_at.desc(), Document.id.desc()).limit(5).all()
    largest = base.order_by(Document.file_size.desc(), Document.id.desc()).limit(5).all()
    return {
        "total_documents": base.count(),
        "total_size": total_size,
        "formatted_total_size": format_bytes(total_size),
        "documents_by_type": by_type,
        "documents_by_visibility": by_visibility,
        "recent_uploads": [_brief(doc) for doc in recent],
        "largest_documents": [_brief(doc) for doc in largest],
    }
