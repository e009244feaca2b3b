from dataclasses import dataclass, field
from typing import Optional

from studyhub.errors import ConfirmationRequired
from studyhub.models.groups import Group, Membership
from studyhub.services.membership import (
    GroupDetails, GroupPage, LeaveOutcome, MemberRoster, UserGroup,
)
from studyhub.views.base import BaseView


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(slots=True)
class GroupView(BaseView):
    """Study group as returned to clients."""
    id: str
    name: str
    description: Optional[str]
    subject: Optional[str]
    max_members: int
    visibility: str
    allow_join_requests: bool
    creator_id: str
    meeting_type: Optional[str]
    meeting_location: Optional[str]
    meeting_link: Optional[str]
    frequency: Optional[str]
    day_of_week: Optional[str]
    start_time: Optional[str]
    duration: Optional[str]
    created_at: str
    updated_at: Optional[str] = None

    @classmethod
    def from_group(cls, group: Group) -> "GroupView":
        return cls(**group.model_dump(mode="json"))


@dataclass(slots=True)
class MembershipView(BaseView):
    id: str
    group_id: str
    user_id: str
    role: str
    status: str
    requested_at: str
    decided_at: Optional[str] = None

    @classmethod
    def from_membership(cls, membership: Membership) -> "MembershipView":
        return cls(**membership.model_dump(mode="json"))


@dataclass(slots=True)
class MemberRosterView(BaseView):
    """Members split into approved participants and waiting requests."""
    active: list[MembershipView] = field(default_factory=list)
    pending: list[MembershipView] = field(default_factory=list)
    active_count: int = 0
    pending_count: int = 0

    @classmethod
    def from_roster(cls, roster: MemberRoster) -> "MemberRosterView":
        return cls(
            active=[MembershipView.from_membership(m) for m in roster.active],
            pending=[MembershipView.from_membership(m) for m in roster.pending],
            active_count=len(roster.active),
            pending_count=len(roster.pending),
        )


@dataclass(slots=True)
class GroupDetailsView(BaseView):
    group: GroupView
    active_member_count: int
    is_full: bool
    membership: Optional[MembershipView] = None

    @classmethod
    def from_details(cls, details: GroupDetails) -> "GroupDetailsView":
        membership = details.viewer_membership
        return cls(
            group=GroupView.from_group(details.group),
            active_member_count=details.active_member_count,
            is_full=details.is_full,
            membership=MembershipView.from_membership(membership) if membership else None,
        )


@dataclass(slots=True)
class UserGroupView(BaseView):
    group: GroupView
    role: str
    status: str
    requested_at: str

    @classmethod
    def from_user_group(cls, item: UserGroup) -> "UserGroupView":
        return cls(
            group=GroupView.from_group(item.group),
            role=item.membership.role.value,
            status=item.membership.status.value,
            requested_at=_iso(item.membership.requested_at),
        )


@dataclass(slots=True)
class GroupPageView(BaseView):
    items: list[GroupView]
    total: int
    page: int
    page_size: int
    has_next: bool
    has_prev: bool

    @classmethod
    def from_page(cls, page: GroupPage) -> "GroupPageView":
        return cls(
            items=[GroupView.from_group(g) for g in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            has_next=page.page * page.page_size < page.total,
            has_prev=page.page > 1,
        )


@dataclass(slots=True)
class LeaveView(BaseView):
    outcome: str
    group_id: str

    @classmethod
    def from_outcome(cls, outcome: LeaveOutcome, group_id: str) -> "LeaveView":
        return cls(outcome=outcome.value, group_id=group_id)


@dataclass(slots=True)
class ConfirmationChoice(BaseView):
    label: str
    confirm: bool
    destructive: bool = False


@dataclass(slots=True)
class LeaveConfirmationView(BaseView):
    """Two-choice prompt a client must show before a leader leaves."""
    title: str
    message: str
    choices: list[ConfirmationChoice]

    @classmethod
    def for_leader(cls) -> "LeaveConfirmationView":
        return cls(
            title="Delete group?",
            message=ConfirmationRequired.default_message,
            choices=[
                ConfirmationChoice(label="Cancel", confirm=False),
                ConfirmationChoice(label="Delete group", confirm=True, destructive=True),
            ],
        )
