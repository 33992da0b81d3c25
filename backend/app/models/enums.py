"""Closed value sets shared by models, schemas and services."""

from typing import Literal, get_args

UserRole = Literal["admin", "member", "blog_manager"]
UserStatus = Literal["active", "inactive", "pending"]

CommitteeStatus = Literal["active", "inactive"]
CommitteeRole = Literal["chairperson", "member", "secretary", "treasurer", "vice_chair"]
# Roles a caller may assign directly; chairperson only moves through reassignment.
AssignableCommitteeRole = Literal["member", "secretary", "treasurer", "vice_chair"]

ProjectStatus = Literal["planning", "in_progress", "on_hold", "completed", "cancelled"]
ProjectPriority = Literal["low", "medium", "high"]
ProjectRole = Literal["manager", "member", "contributor"]

DueType = Literal["annual", "monthly", "special", "other"]
DueStatus = Literal["pending", "paid", "overdue", "waived"]
StoredDueStatus = Literal["pending", "paid", "waived"]

DocumentVisibility = Literal["public", "private", "restricted"]

QuotationStatus = Literal["draft", "sent", "accepted", "rejected", "expired"]

BlogCategory = Literal[
    "Community Service",
    "International Projects",
    "Youth Programs",
    "Member Spotlight",
    "Education",
    "Club News",
    "Events",
]

EventType = Literal["meeting", "service", "fundraiser", "social", "training", "conference"]
EventCategory = Literal["club_service", "community_service", "international_service", "vocational_service"]
EventStatus = Literal["draft", "published", "cancelled", "completed"]
EventVisibility = Literal["public", "members_only", "private"]


def values(literal_type) -> tuple:
    return get_args(literal_type)
