"""Project routes. Anyone signed in may read; the creator or an admin may change."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.core.pagination import ListParams, list_params
from backend.app.core.permissions import authorize, owns_or_admin
from backend.app.core.responses import envelope
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_user
from backend.app.models.enums import ProjectPriority, ProjectStatus
from backend.app.models.user import User
from backend.app.schemas.common import Envelope, Page
from backend.app.schemas.project import (
    ProjectCreate,
    ProjectMembersAdd,
    ProjectMembersRemove,
    ProjectProgressUpdate,
    ProjectRead,
    ProjectUpdate,
)
from backend.app.services import projects as project_service

router = APIRouter(prefix="/projects", tags=["projects"])

NOT_OWNER = "Only the project creator or an admin can change this project"


def _authorize_owner(db: Session, project_id: int, current_user: User) -> None:
    project = project_service.get_project(db, project_id)
    authorize(owns_or_admin(current_user, project, "created_by"), NOT_OWNER)


@router.get("", response_model=Envelope[Page[ProjectRead]])
async def list_projects(
    committee_id: int | None = None,
    status: ProjectStatus | None = None,
    priority: ProjectPriority | None = None,
    created_by: int | None = None,
    member_id: int | None = None,
    search: str | None = None,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    page = project_service.list_projects(
        db,
        params,
        committee_id=committee_id,
        status=status,
        priority=priority,
        created_by=created_by,
        member_id=member_id,
        search=search,
    )
    return envelope(page, "Projects retrieved successfully")


@router.post("", response_model=Envelope[ProjectRead], status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project = project_service.create_project(db, current_user, payload)
    return envelope(project, "Project created successfully")


@router.get("/{project_id}", response_model=Envelope[ProjectRead])
async def get_project(project_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return envelope(project_service.get_project(db, project_id), "Project retrieved successfully")


@router.put("/{project_id}", response_model=Envelope[ProjectRead])
async def update_project(
    project_id: int,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _authorize_owner(db, project_id, current_user)
    project = project_service.update_project(db, project_id, payload)
    return envelope(project, "Project updated successfully")


@router.delete("/{project_id}", response_model=Envelope)
async def delete_project(project_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    _authorize_owner(db, project_id, current_user)
    project_service.delete_project(db, project_id)
    return envelope(None, "Project deleted successfully")


@router.post("/{project_id}/members", response_model=Envelope[ProjectRead])
async def add_project_members(
    project_id: int,
    payload: ProjectMembersAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _authorize_owner(db, project_id, current_user)
    project = project_service.add_members(
        db, project_id, payload.user_ids, payload.role, responsibilities=payload.responsibilities
    )
    return envelope(project, "Members added successfully")


@router.delete("/{project_id}/members", response_model=Envelope[ProjectRead])
async def remove_project_members(
    project_id: int,
    payload: ProjectMembersRemove,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _authorize_owner(db, project_id, current_user)
    project = project_service.remove_members(db, project_id, payload.user_ids)
    return envelope(project, "Members removed successfully")


@router.put("/{project_id}/progress", response_model=Envelope[ProjectRead])
async def update_project_progress(
    project_id: int,
    payload: ProjectProgressUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _authorize_owner(db, project_id, current_user)
    project = project_service.update_progress(db, project_id, payload.progress)
    return envelope(project, "Project progress updated successfully")


@router.post("/{project_id}/complete", response_model=Envelope[ProjectRead])
async def complete_project(
    project_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    _authorize_owner(db, project_id, current_user)
    project = project_service.complete_project(db, project_id)
    return envelope(project, "Project marked as completed")


@router.get("/{project_id}/statistics", response_model=Envelope[dict])
async def project_statistics(
    project_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    stats = project_service.project_statistics(db, project_id)
    return envelope(stats, "Project statistics retrieved successfully")
