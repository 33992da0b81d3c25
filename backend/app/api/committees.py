"""Committee routes. Reads are open to members; writes need ``manage_committees``."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.core.pagination import ListParams, list_params
from backend.app.core.permissions import Capability, require_capability
from backend.app.core.responses import envelope
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_user
from backend.app.models.enums import CommitteeStatus
from backend.app.models.user import User
from backend.app.schemas.committee import (
    CommitteeCreate,
    CommitteeMemberRoleUpdate,
    CommitteeMembersAdd,
    CommitteeMembersRemove,
    CommitteeRead,
    CommitteeUpdate,
)
from backend.app.schemas.common import Envelope, Page
from backend.app.services import committees as committee_service

router = APIRouter(prefix="/committees", tags=["committees"])


@router.get("", response_model=Envelope[Page[CommitteeRead]])
async def list_committees(
    status: CommitteeStatus | None = None,
    search: str | None = None,
    member_id: int | None = None,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    page = committee_service.list_committees(db, params, status=status, search=search, member_id=member_id)
    return envelope(page, "Committees retrieved successfully")


@router.post("", response_model=Envelope[CommitteeRead], status_code=status.HTTP_201_CREATED)
async def create_committee(
    payload: CommitteeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_COMMITTEES)
    committee = committee_service.create_committee(db, payload)
    return envelope(committee, "Committee created successfully")


@router.get("/{committee_id}", response_model=Envelope[CommitteeRead])
async def get_committee(
    committee_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return envelope(committee_service.get_committee(db, committee_id), "Committee retrieved successfully")


@router.put("/{committee_id}", response_model=Envelope[CommitteeRead])
async def update_committee(
    committee_id: int,
    payload: CommitteeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_COMMITTEES)
    committee = committee_service.update_committee(db, committee_id, payload)
    return envelope(committee, "Committee updated successfully")


@router.delete("/{committee_id}", response_model=Envelope)
async def delete_committee(
    committee_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    require_capability(current_user, Capability.MANAGE_COMMITTEES)
    committee_service.delete_committee(db, committee_id)
    return envelope(None, "Committee deleted successfully")


@router.post("/{committee_id}/members", response_model=Envelope[CommitteeRead])
async def add_committee_members(
    committee_id: int,
    payload: CommitteeMembersAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_COMMITTEES)
    committee = committee_service.add_members(
        db, committee_id, payload.user_ids, payload.role, joined_on=payload.joined_on, notes=payload.notes
    )
    return envelope(committee, "Members added successfully")


@router.delete("/{committee_id}/members", response_model=Envelope[CommitteeRead])
async def remove_committee_members(
    committee_id: int,
    payload: CommitteeMembersRemove,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_COMMITTEES)
    committee = committee_service.remove_members(db, committee_id, payload.user_ids)
    return envelope(committee, "Members removed successfully")


@router.put("/{committee_id}/members/{user_id}/role", response_model=Envelope[CommitteeRead])
async def update_committee_member_role(
    committee_id: int,
    user_id: int,
    payload: CommitteeMemberRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_COMMITTEES)
    committee = committee_service.update_member_role(db, committee_id, user_id, payload.role)
    return envelope(committee, "Member role updated successfully")


@router.get("/{committee_id}/statistics", response_model=Envelope[dict])
async def committee_statistics(
    committee_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    stats = committee_service.committee_statistics(db, committee_id)
    return envelope(stats, "Committee statistics retrieved successfully")
