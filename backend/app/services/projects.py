"""Projects, their member pivots and progress tracking."""

import logging
from typing import Any, Dict, Iterable

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backend.app.core.errors import InvalidStateError, ValidationError
from backend.app.core.pagination import ListParams, apply_sorting, paginate
from backend.app.core.time import utc_today
from backend.app.db.session import atomic
from backend.app.models.committee import Committee
from backend.app.models.document import Document
from backend.app.models.project import Project, ProjectMember
from backend.app.models.quotation import Quotation
from backend.app.models.user import User
from backend.app.schemas.project import ProjectCreate, ProjectUpdate
from backend.app.services.committees import ensure_users_exist
from backend.app.services.common import apply_fields, get_live_or_404, live, money, soft_delete

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "created_at": Project.created_at,
    "name": Project.name,
    "start_date": Project.start_date,
    "end_date": Project.end_date,
    "status": Project.status,
    "priority": Project.priority,
    "progress": Project.progress,
    "budget": Project.budget,
}


def _ensure_dates(start_date, end_date) -> None:
    if end_date < start_date:
        raise ValidationError.for_field("end_date", "The end date must be on or after the start date.")


def _ensure_committee(db: Session, committee_id: int | None) -> None:
    if committee_id is None:
        return
    if live(db, Committee).filter(Committee.id == committee_id).first() is None:
        raise ValidationError.for_field("committee_id", "The selected committee is invalid.")


def _link_for(project: Project, user_id: int) -> ProjectMember | None:
    for link in project.member_links:
        if link.user_id == user_id:
            return link
    return None


def get_project(db: Session, project_id: int) -> Project:
    return get_live_or_404(db, Project, project_id, "Project")


def list_projects(
    db: Session,
    params: ListParams,
    *,
    committee_id: int | None = None,
    status: str | None = None,
    priority: str | None = None,
    created_by: int | None = None,
    member_id: int | None = None,
    search: str | None = None,
) -> Dict[str, Any]:
    query = live(db, Project)
    if committee_id is not None:
        query = query.filter(Project.committee_id == committee_id)
    if status:
        query = query.filter(Project.status == status)
    if priority:
        query = query.filter(Project.priority == priority)
    if created_by is not None:
        query = query.filter(Project.created_by == created_by)
    if member_id is not None:
        query = query.filter(Project.member_links.any(ProjectMember.user_id == member_id))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Project.name.ilike(pattern), Project.description.ilike(pattern)))
    query = apply_sorting(query, params, SORT_FIELDS, "created_at", Project.id)
    return paginate(query, params)


def create_project(db: Session, actor: User, payload: ProjectCreate) -> Project:
    _ensure_dates(payload.start_date, payload.end_date)
    _ensure_committee(db, payload.committee_id)
    member_ids = [uid for uid in dict.fromkeys(payload.member_ids) if uid != actor.id]
    ensure_users_exist(db, member_ids, "member_ids")

    with atomic(db):
        project = Project(
            name=payload.name,
            description=payload.description,
            committee_id=payload.committee_id,
            budget=money(payload.budget),
            amount_spent=money(payload.amount_spent),
            start_date=payload.start_date,
            end_date=payload.end_date,
            status=payload.status,
            progress=payload.progress,
            priority=payload.priority,
            created_by=actor.id,
        )
        project.member_links.append(ProjectMember(user_id=actor.id, role="manager"))
        for user_id in member_ids:
            project.member_links.append(ProjectMember(user_id=user_id, role="member"))
        db.add(project)
    logger.info("Project %s created by user %s", project.id, actor.id)
    return project


def update_project(db: Session, project_id: int, payload: ProjectUpdate) -> Project:
    project = get_project(db, project_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("name", "start_date", "end_date", "status", "priority", "progress", "budget", "amount_spent"):
        if field in changes and changes[field] is None:
            raise ValidationError.for_field(field, f"The {field.replace('_', ' ')} may not be empty.")
    _ensure_dates(changes.get("start_date", project.start_date), changes.get("end_date", project.end_date))
    if "committee_id" in changes:
        _ensure_committee(db, changes["committee_id"])
    for field in ("budget", "amount_spent"):
        if field in changes:
            changes[field] = money(changes[field])

    with atomic(db):
        apply_fields(project, changes)
    return project


def delete_project(db: Session, project_id: int) -> None:
    project = get_project(db, project_id)
    if live(db, Document).filter(Document.project_id == project.id).count():
        raise InvalidStateError("Cannot delete a project that still has documents")
    if live(db, Quotation).filter(Quotation.project_id == project.id).count():
        raise InvalidStateError("Cannot delete a project that still has quotations")
    with atomic(db):
        project.member_links.clear()
        soft_delete(project)
    logger.info("Project %s deleted", project_id)


def add_members(
    db: Session,
    project_id: int,
    user_ids: Iterable[int],
    role: str = "member",
    responsibilities: str | None = None,
) -> Project:
    project = get_project(db, project_id)
    user_ids = list(dict.fromkeys(user_ids))
    ensure_users_exist(db, user_ids, "user_ids")
    with atomic(db):
        for user_id in user_ids:
            link = _link_for(project, user_id)
            if link is None:
                project.member_links.append(
                    ProjectMember(user_id=user_id, role=role, responsibilities=responsibilities)
                )
            else:
                link.role = role
                if responsibilities is not None:
                    link.responsibilities = responsibilities
    return project


def remove_members(db: Session, project_id: int, user_ids: Iterable[int]) -> Project:
    project = get_project(db, project_id)
    user_ids = set(user_ids)
    with atomic(db):
        for link in [link for link in project.member_links if link.user_id in user_ids]:
            project.member_links.remove(link)
    return project


def update_progress(db: Session, project_id: int, progress: int) -> Project:
    """Clamp progress to 0..100; 100 completes the project, less reopens a completed one."""
    project = get_project(db, project_id)
    clamped = max(0, min(100, int(progress)))
    previous = project.status
    with atomic(db):
        project.progress = clamped
        if clamped == 100:
            project.status = "completed"
        elif project.status == "completed":
            project.status = "in_progress"
    if project.status != previous:
        logger.info("Project %s moved %s -> %s at %s%%", project.id, previous, project.status, clamped)
    return project


def complete_project(db: Session, project_id: int) -> Project:
    project = get_project(db, project_id)
    if project.status == "completed":
        raise InvalidStateError("Project is already completed")
    with atomic(db):
        project.status = "completed"
        project.progress = 100
        for link in project.member_links:
            if link.completed_on is None:
                link.completed_on = utc_today()
    logger.info("Project %s completed", project.id)
    return project


def project_statistics(db: Session, project_id: int) -> Dict[str, Any]:
    project = get_project(db, project_id)
    today = utc_today()
    total_duration = (project.end_date - project.start_date).days
    days_elapsed = max(0, (today - project.start_date).days)
    time_elapsed = round(min(100.0, days_elapsed / total_duration * 100), 2) if total_duration > 0 else 0.0
    return {
        "total_members": len(project.member_links),
        "total_documents": live(db, Document).filter(Document.project_id == project.id).count(),
        "total_quotations": live(db, Quotation).filter(Quotation.project_id == project.id).count(),
        "budget": float(project.budget or 0),
        "amount_spent": float(project.amount_spent or 0),
        "budget_utilization": project.budget_utilization,
        "start_date": project.start_date.isoformat(),
        "end_date": project.end_date.isoformat(),
        "days_remaining": project.days_remaining,
        "days_elapsed": days_elapsed,
        "time_elapsed_percentage": time_elapsed,
        "is_on_track": project.progress >= time_elapsed,
    }
