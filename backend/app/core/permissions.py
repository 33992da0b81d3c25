"""Role capabilities and authorization predicates.

Predicates are pure functions of (actor, resource). Controllers call
``authorize`` before touching storage so a denied request never writes.
"""

from enum import Enum
from typing import Any, FrozenSet, Mapping

from backend.app.core.errors import PermissionDeniedError


class Capability(str, Enum):
    MANAGE_USERS = "manage_users"
    MANAGE_COMMITTEES = "manage_committees"
    MANAGE_DUES = "manage_dues"
    APPROVE_QUOTATIONS = "approve_quotations"
    MANAGE_BLOGS = "manage_blogs"
    MANAGE_EVENTS = "manage_events"
    VIEW_STATISTICS = "view_statistics"


ROLE_CAPABILITIES: Mapping[str, FrozenSet[Capability]] = {
    "admin": frozenset(Capability),
    "blog_manager": frozenset({Capability.MANAGE_BLOGS}),
    "member": frozenset(),
}


def has_capability(actor: Any, capability: Capability) -> bool:
    if actor is None:
        return False
    return capability in ROLE_CAPABILITIES.get(getattr(actor, "role", None), frozenset())


def is_admin(actor: Any) -> bool:
    return actor is not None and getattr(actor, "role", None) == "admin"


def can_manage_blogs(actor: Any) -> bool:
    return has_capability(actor, Capability.MANAGE_BLOGS)


def owns_or_admin(actor: Any, resource: Any, owner_field: str) -> bool:
    if actor is None:
        return False
    return getattr(resource, owner_field, None) == actor.id or is_admin(actor)


def can_view_document(actor: Any, document: Any) -> bool:
    visibility = document.visibility
    if visibility == "public":
        return True
    if actor is None:
        return False
    if visibility == "private":
        return document.uploaded_by == actor.id
    if visibility == "restricted":
        if document.uploaded_by == actor.id:
            return True
        committee = document.committee
        if committee is not None and any(link.user_id == actor.id for link in committee.member_links):
            return True
        project = document.project
        if project is not None and any(link.user_id == actor.id for link in project.member_links):
            return True
        return is_admin(actor)
    return False


def authorize(allowed: bool, message: str | None = None) -> None:
    if not allowed:
        raise PermissionDeniedError(message)


def require_capability(actor: Any, capability: Capability, message: str | None = None) -> None:
    authorize(has_capability(actor, capability), message)
