from dataclasses import dataclass
from enum import Enum
from typing import Optional

from studyhub.errors import (
    AlreadyRequested, JoinRequestsClosed, NotAuthorized, NotFound, StoreUnavailable,
)
from studyhub.models.groups import (
    Group, GroupCreate, GroupUpdate, Membership,
    MembershipRole, MembershipStatus, GroupVisibility,
)
from studyhub.services.base import BaseService
from studyhub.store import ConstraintViolation, StoreAdapter, Tables
from studyhub.utils.logs import ErrorLogger


class LeaveOutcome(str, Enum):
    MEMBER_LEFT = "member_left"
    GROUP_DELETED = "group_deleted"


@dataclass(slots=True)
class MemberRoster:
    """Group memberships split for display."""
    active: list[Membership]
    pending: list[Membership]


@dataclass(slots=True)
class GroupDetails:
    """A group as seen by one viewer."""
    group: Group
    active_member_count: int
    viewer_membership: Optional[Membership] = None

    @property
    def is_full(self) -> bool:
        # Advisory only; approvals are not blocked at capacity.
        return self.active_member_count >= self.group.max_members


@dataclass(slots=True)
class UserGroup:
    """A group the user belongs to, with that user's membership."""
    group: Group
    membership: Membership


@dataclass(slots=True)
class GroupPage:
    items: list[Group]
    total: int
    page: int
    page_size: int


class MembershipManager(BaseService):
    """
    Owns the per-user, per-group membership state machine.

        (none) --request_join--> pending --approve--> active
        (none) --create_group--> active(leader)
        pending --decline--> (none)
        member --leave--> (none)
        leader --leave--> (none), and the group with all its rows is destroyed

    No in-process locking: the store's (group_id, user_id) uniqueness
    constraint and the conditional ``status = pending`` writes decide races.
    """

    def __init__(self, store: StoreAdapter, logger: Optional[ErrorLogger] = None):
        super().__init__(store, logger)

    # Groups

    async def create_group(self, creator_id: str, data: GroupCreate) -> Group:
        """Create a group and its leader membership."""
        row = data.model_dump(mode="json")
        row["creator_id"] = creator_id
        group = Group.model_validate(await self.store.insert(Tables.GROUPS, row))

        try:
            await self.store.insert(Tables.MEMBERSHIPS, {
                "group_id": group.id,
                "user_id": creator_id,
                "role": MembershipRole.LEADER,
                "status": MembershipStatus.ACTIVE,
                "decided_at": self.now(),
            })
        except (ConstraintViolation, StoreUnavailable) as e:
            # A group must never outlive a failed leader insert.
            await self._discard_group(group.id)
            if isinstance(e, StoreUnavailable):
                raise
            raise StoreUnavailable("Could not create the group leader membership") from e

        await self.log_info("Group created", group_id=group.id, creator_id=creator_id)
        return group

    async def _discard_group(self, group_id: str) -> None:
        try:
            await self.store.delete(Tables.GROUPS, {"id": group_id})
        except StoreUnavailable:
            await self.log_error("Failed to discard leaderless group", group_id=group_id)

    async def get_group(self, group_id: str) -> Group:
        row = await self.store.select_one(Tables.GROUPS, {"id": group_id})
        if row is None:
            raise NotFound("Group not found", group_id=group_id)
        return Group.model_validate(row)

    async def update_group(self, group_id: str, acting_user_id: str, patch: GroupUpdate) -> Group:
        """Leader-only edit of the group's mutable fields."""
        group = await self.get_group(group_id)
        await self._require_leader(group_id, acting_user_id)

        changes = patch.changes()
        if not changes:
            return group
        changes["updated_at"] = self.now()

        if await self.store.update(Tables.GROUPS, {"id": group_id}, changes) == 0:
            raise NotFound("Group not found", group_id=group_id)
        return await self.get_group(group_id)

    async def group_details(self, group_id: str, viewer_id: Optional[str] = None) -> GroupDetails:
        group = await self.get_group(group_id)
        active_count = await self.store.count(
            Tables.MEMBERSHIPS,
            {"group_id": group_id, "status": MembershipStatus.ACTIVE},
        )
        viewer_membership = None
        if viewer_id:
            viewer_membership = await self.get_membership(group_id, viewer_id)
        return GroupDetails(
            group=group,
            active_member_count=active_count,
            viewer_membership=viewer_membership,
        )

    async def my_groups(self, user_id: str) -> list[UserGroup]:
        """Groups the user holds any membership in, newest first."""
        rows = await self.store.select(Tables.MEMBERSHIPS, {"user_id": user_id})
        result = []
        for row in rows:
            membership = Membership.model_validate(row)
            group_row = await self.store.select_one(Tables.GROUPS, {"id": membership.group_id})
            if group_row is None:
                continue
            result.append(UserGroup(group=Group.model_validate(group_row), membership=membership))
        result.sort(key=lambda item: item.group.created_at, reverse=True)
        return result

    async def discover_groups(
        self,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> GroupPage:
        """Public groups, newest first, filtered by a search term."""
        rows = await self.store.select(
            Tables.GROUPS,
            {"visibility": GroupVisibility.PUBLIC},
            order_by="created_at",
            descending=True,
        )
        groups = [Group.model_validate(row) for row in rows]
        if search:
            groups = [group for group in groups if group.matches(search)]

        page = max(page, 1)
        start = (page - 1) * page_size
        return GroupPage(
            items=groups[start:start + page_size],
            total=len(groups),
            page=page,
            page_size=page_size,
        )

    # Memberships

    async def get_membership(self, group_id: str, user_id: str) -> Optional[Membership]:
        row = await self.store.select_one(
            Tables.MEMBERSHIPS, {"group_id": group_id, "user_id": user_id}
        )
        return Membership.model_validate(row) if row else None

    async def _get_membership_by_id(self, membership_id: str) -> Membership:
        row = await self.store.select_one(Tables.MEMBERSHIPS, {"id": membership_id})
        if row is None:
            raise NotFound("Membership not found", membership_id=membership_id)
        return Membership.model_validate(row)

    async def _require_leader(self, group_id: str, user_id: str) -> Membership:
        membership = await self.get_membership(group_id, user_id)
        if membership is None or not membership.is_leader:
            raise NotAuthorized("Only the group leader can do this", group_id=group_id)
        return membership

    async def request_join(self, group_id: str, user_id: str) -> Membership:
        """Ask to join a group; the request waits for the leader as pending."""
        group = await self.get_group(group_id)
        if not group.allow_join_requests:
            raise JoinRequestsClosed(group_id=group_id)

        existing = await self.get_membership(group_id, user_id)
        if existing is not None:
            raise AlreadyRequested(group_id=group_id, status=existing.status.value)

        try:
            row = await self.store.insert(Tables.MEMBERSHIPS, {
                "group_id": group_id,
                "user_id": user_id,
                "role": MembershipRole.MEMBER,
                "status": MembershipStatus.PENDING,
            })
        except ConstraintViolation as e:
            if e.constraint and e.constraint.endswith("_fkey"):
                raise NotFound("Group not found", group_id=group_id) from e
            raise AlreadyRequested(group_id=group_id) from e

        await self.log_info("Join requested", group_id=group_id, user_id=user_id)
        return Membership.model_validate(row)

    async def approve(self, membership_id: str, acting_user_id: str) -> Membership:
        """Leader moves a pending request to active."""
        membership = await self._get_membership_by_id(membership_id)
        await self._require_leader(membership.group_id, acting_user_id)
        if not membership.is_pending:
            raise NotFound("No pending request to approve", membership_id=membership_id)

        decided_at = self.now()
        updated = await self.store.update(
            Tables.MEMBERSHIPS,
            {"id": membership_id, "status": MembershipStatus.PENDING},
            {"status": MembershipStatus.ACTIVE, "decided_at": decided_at},
        )
        if updated == 0:
            raise NotFound("No pending request to approve", membership_id=membership_id)

        await self.log_info(
            "Join request approved",
            group_id=membership.group_id,
            user_id=membership.user_id,
        )
        await self._warn_if_over_capacity(membership.group_id)
        return membership.model_copy(
            update={"status": MembershipStatus.ACTIVE, "decided_at": decided_at}
        )

    async def _warn_if_over_capacity(self, group_id: str) -> None:
        # Capacity is reported, not enforced.
        row = await self.store.select_one(Tables.GROUPS, {"id": group_id})
        if row is None:
            return
        active = await self.store.count(
            Tables.MEMBERSHIPS, {"group_id": group_id, "status": MembershipStatus.ACTIVE}
        )
        if active > row["max_members"]:
            await self.log_warning(
                "Group is over capacity",
                group_id=group_id,
                active_members=active,
                max_members=row["max_members"],
            )

    async def decline(self, membership_id: str, acting_user_id: str) -> Membership:
        """Leader rejects a pending request; the row is removed outright."""
        membership = await self._get_membership_by_id(membership_id)
        await self._require_leader(membership.group_id, acting_user_id)
        if not membership.is_pending:
            raise NotFound("No pending request to decline", membership_id=membership_id)

        deleted = await self.store.delete(
            Tables.MEMBERSHIPS,
            {"id": membership_id, "status": MembershipStatus.PENDING},
        )
        if deleted == 0:
            raise NotFound("No pending request to decline", membership_id=membership_id)

        await self.log_info(
            "Join request declined",
            group_id=membership.group_id,
            user_id=membership.user_id,
        )
        return membership

    async def leave(self, group_id: str, acting_user_id: str) -> LeaveOutcome:
        """
        Remove the actor from the group.

        A member (active or still pending) loses only their own row. The
        leader leaving destroys the group with every membership and message;
        callers must have confirmed that with the user beforehand.
        """
        membership = await self.get_membership(group_id, acting_user_id)
        if membership is None:
            raise NotFound("You are not part of this group", group_id=group_id)

        if not membership.is_leader:
            if await self.store.delete(Tables.MEMBERSHIPS, {"id": membership.id}) == 0:
                raise NotFound("You are not part of this group", group_id=group_id)
            await self.log_info("Member left group", group_id=group_id, user_id=acting_user_id)
            return LeaveOutcome.MEMBER_LEFT

        await self._delete_group(group_id, acting_user_id)
        return LeaveOutcome.GROUP_DELETED

    async def _delete_group(self, group_id: str, leader_id: str) -> None:
        memberships = await self.store.count(Tables.MEMBERSHIPS, {"group_id": group_id})
        messages = await self.store.count(Tables.MESSAGES, {"group_id": group_id})

        # The group goes first so no new rows can reference it; the child
        # deletes are no-ops where the store already cascades.
        await self.store.delete(Tables.GROUPS, {"id": group_id})
        await self.store.delete(Tables.MEMBERSHIPS, {"group_id": group_id})
        await self.store.delete(Tables.MESSAGES, {"group_id": group_id})
        await self.log_info(
            "Group deleted by leader",
            group_id=group_id,
            leader_id=leader_id,
            memberships_removed=memberships,
            messages_removed=messages,
        )

    async def list_members(self, group_id: str) -> MemberRoster:
        rows = await self.store.select(
            Tables.MEMBERSHIPS, {"group_id": group_id}, order_by="requested_at"
        )
        memberships = [Membership.model_validate(row) for row in rows]
        return MemberRoster(
            active=[m for m in memberships if m.is_active],
            pending=[m for m in memberships if m.is_pending],
        )

    async def is_active_member(self, group_id: str, user_id: str) -> bool:
        membership = await self.get_membership(group_id, user_id)
        return membership is not None and membership.is_active
