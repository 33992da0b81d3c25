"""Committee membership with a single chairperson.

The chairperson is stored on ``committees.chairperson_id`` and mirrored as the
``chairperson`` role on that user's pivot row. Every change to one updates the
other inside the same transaction.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backend.app.core.errors import InvalidStateError, NotFoundError, ValidationError
from backend.app.core.pagination import ListParams, apply_sorting, paginate
from backend.app.core.storage import get_storage
from backend.app.core.time import utc_today
from backend.app.db.session import atomic
from backend.app.models.committee import Committee, CommitteeMember
from backend.app.models.document import Document
from backend.app.models.project import Project
from backend.app.models.user import User
from backend.app.schemas.committee import CommitteeCreate, CommitteeUpdate
from backend.app.services.common import apply_fields, get_live_or_404, live, money, soft_delete

logger = logging.getLogger(__name__)

CHAIR_ROLE = "chairperson"

SORT_FIELDS = {
    "created_at": Committee.created_at,
    "name": Committee.name,
    "status": Committee.status,
    "budget": Committee.budget,
}


def ensure_users_exist(db: Session, user_ids: Iterable[int], field: str) -> List[User]:
    wanted = list(dict.fromkeys(user_ids))
    if not wanted:
        return []
    found = live(db, User).filter(User.id.in_(wanted)).all()
    if len(found) != len(wanted):
        raise ValidationError.for_field(field, "One or more selected users are invalid.")
    return found


def get_committee(db: Session, committee_id: int) -> Committee:
    return get_live_or_404(db, Committee, committee_id, "Committee")


def _link_for(committee: Committee, user_id: int) -> CommitteeMember | None:
    for link in committee.member_links:
        if link.user_id == user_id:
            return link
    return None


def _reassign(committee: Committee, new_chair_id: int) -> None:
    old_chair_id = committee.chairperson_id
    if old_chair_id == new_chair_id:
        return
    old_link = _link_for(committee, old_chair_id) if old_chair_id is not None else None
    if old_link is not None:
        old_link.role = "member"
    new_link = _link_for(committee, new_chair_id)
    if new_link is None:
        committee.member_links.append(CommitteeMember(user_id=new_chair_id, role=CHAIR_ROLE, joined_on=utc_today()))
    else:
        new_link.role = CHAIR_ROLE
    committee.chairperson_id = new_chair_id


def list_committees(
    db: Session,
    params: ListParams,
    *,
    status: str | None = None,
    search: str | None = None,
    member_id: int | None = None,
) -> Dict[str, Any]:
    query = live(db, Committee)
    if status:
        query = query.filter(Committee.status == status)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Committee.name.ilike(pattern), Committee.description.ilike(pattern)))
    if member_id is not None:
        query = query.filter(Committee.member_links.any(CommitteeMember.user_id == member_id))
    query = apply_sorting(query, params, SORT_FIELDS, "name", Committee.id)
    return paginate(query, params)


def create_committee(db: Session, payload: CommitteeCreate) -> Committee:
    ensure_users_exist(db, [payload.chairperson_id], "chairperson_id")
    member_ids = [uid for uid in dict.fromkeys(payload.member_ids) if uid != payload.chairperson_id]
    ensure_users_exist(db, member_ids, "member_ids")

    today = utc_today()
    with atomic(db):
        committee = Committee(
            name=payload.name,
            description=payload.description,
            chairperson_id=payload.chairperson_id,
            meeting_schedule=payload.meeting_schedule,
            budget=money(payload.budget) if payload.budget is not None else None,
            status=payload.status,
        )
        committee.member_links.append(
            CommitteeMember(user_id=payload.chairperson_id, role=CHAIR_ROLE, joined_on=today)
        )
        for user_id in member_ids:
            committee.member_links.append(CommitteeMember(user_id=user_id, role="member", joined_on=today))
        db.add(committee)
    logger.info("Committee %s created with chairperson %s", committee.id, committee.chairperson_id)
    return committee


def update_committee(db: Session, committee_id: int, payload: CommitteeUpdate) -> Committee:
    committee = get_committee(db, committee_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("name", "chairperson_id", "status"):
        if field in changes and changes[field] is None:
            raise ValidationError.for_field(field, f"The {field.replace('_', ' ')} may not be empty.")
    new_chair_id = changes.pop("chairperson_id", None)
    if new_chair_id is not None:
        ensure_users_exist(db, [new_chair_id], "chairperson_id")
    if changes.get("budget") is not None:
        changes["budget"] = money(changes["budget"])

    with atomic(db):
        apply_fields(committee, changes)
        if new_chair_id is not None and new_chair_id != committee.chairperson_id:
            logger.info(
                "Committee %s chairperson %s -> %s", committee.id, committee.chairperson_id, new_chair_id
            )
            _reassign(committee, new_chair_id)
    return committee


def delete_committee(db: Session, committee_id: int) -> None:
    committee = get_committee(db, committee_id)
    live_projects = live(db, Project).filter(Project.committee_id == committee.id).count()
    if live_projects:
        raise InvalidStateError("Cannot delete a committee that still has projects")

    documents = live(db, Document).filter(Document.committee_id == committee.id).all()
    stored_files = [doc.file_path for doc in documents]
    with atomic(db):
        for document in documents:
            soft_delete(document)
        committee.member_links.clear()
        soft_delete(committee)

    storage = get_storage()
    for key in stored_files:
        storage.delete(key)
    logger.info("Committee %s deleted with %d documents", committee_id, len(documents))


def add_members(
    db: Session,
    committee_id: int,
    user_ids: Iterable[int],
    role: str = "member",
    joined_on: date | None = None,
    notes: str | None = None,
) -> Committee:
    committee = get_committee(db, committee_id)
    user_ids = list(dict.fromkeys(user_ids))
    if role == CHAIR_ROLE:
        raise ValidationError.for_field("role", "Use chairperson reassignment to change the chairperson.")
    if committee.chairperson_id in user_ids:
        raise ValidationError.for_field("user_ids", "The chairperson is already a member of this committee.")
    ensure_users_exist(db, user_ids, "user_ids")

    with atomic(db):
        for user_id in user_ids:
            link = _link_for(committee, user_id)
            if link is None:
                committee.member_links.append(
                    CommitteeMember(user_id=user_id, role=role, joined_on=joined_on or utc_today(), notes=notes)
                )
            else:
                link.role = role
                if joined_on is not None:
                    link.joined_on = joined_on
                if notes is not None:
                    link.notes = notes
    return committee


def remove_members(db: Session, committee_id: int, user_ids: Iterable[int]) -> Committee:
    committee = get_committee(db, committee_id)
    user_ids = set(user_ids)
    if committee.chairperson_id in user_ids:
        raise InvalidStateError("The chairperson cannot be removed; assign a new chairperson first")
    with atomic(db):
        for link in [link for link in committee.member_links if link.user_id in user_ids]:
            committee.member_links.remove(link)
    return committee


def update_member_role(db: Session, committee_id: int, user_id: int, role: str) -> Committee:
    committee = get_committee(db, committee_id)
    link = _link_for(committee, user_id)
    if link is None:
        raise NotFoundError("User is not a member of this committee")
    if role == CHAIR_ROLE:
        with atomic(db):
            _reassign(committee, user_id)
        logger.info("Committee %s chairperson reassigned to %s", committee.id, user_id)
        return committee
    if user_id == committee.chairperson_id:
        raise InvalidStateError("Assign a new chairperson before changing the chairperson's role")
    with atomic(db):
        link.role = role
    return committee


def reassign_chairperson(db: Session, committee_id: int, user_id: int) -> Committee:
    committee = get_committee(db, committee_id)
    ensure_users_exist(db, [user_id], "chairperson_id")
    with atomic(db):
        _reassign(committee, user_id)
    return committee


def committee_statistics(db: Session, committee_id: int) -> Dict[str, Any]:
    committee = get_committee(db, committee_id)
    projects = live(db, Project).filter(Project.committee_id == committee.id)
    total_budget, total_spent = projects.with_entities(
        func.coalesce(func.sum(Project.budget), 0), func.coalesce(func.sum(Project.amount_spent), 0)
    ).one()
    total_budget = float(total_budget or 0)
    total_spent = float(total_spent or 0)
    return {
        "total_members": len(committee.member_links),
        "total_projects": projects.count(),
        "active_projects": projects.filter(Project.status == "in_progress").count(),
        "completed_projects": projects.filter(Project.status == "completed").count(),
        "total_documents": live(db, Document).filter(Document.committee_id == committee.id).count(),
        "total_budget": total_budget,
        "total_spent": total_spent,
        "budget_utilization": round(total_spent / total_budget * 100, 2) if total_budget > 0 else 0.0,
    }
