import asyncio

import pytest

from studyhub.errors import (
    AlreadyRequested, JoinRequestsClosed, NotAuthorized, NotFound, StoreUnavailable,
)
from studyhub.models.groups import (
    GroupCreate, GroupUpdate, GroupVisibility, MembershipRole, MembershipStatus,
)
from studyhub.services.membership import LeaveOutcome, MembershipManager
from studyhub.store import MemoryStore, Tables
from tests.conftest import LEADER, OTHER, STUDENT


class TestCreateGroup:
    async def test_creator_becomes_active_leader(self, manager, group):
        membership = await manager.get_membership(group.id, LEADER)

        assert membership.role == MembershipRole.LEADER
        assert membership.status == MembershipStatus.ACTIVE
        assert membership.decided_at is not None

    async def test_subject_is_normalized(self, group):
        assert group.subject == "computer_science"

    async def test_failed_leader_insert_leaves_no_group(self, store, logger):
        class FailingMemberships(MemoryStore):
            async def insert(self, table, row):
                if table == Tables.MEMBERSHIPS:
                    raise StoreUnavailable()
                return await super().insert(table, row)

        failing = FailingMemberships()
        manager = MembershipManager(failing, logger)

        with pytest.raises(StoreUnavailable):
            await manager.create_group(LEADER, GroupCreate(name="Physics"))

        assert await failing.count(Tables.GROUPS) == 0


class TestRequestJoin:
    async def test_creates_pending_member(self, manager, group):
        membership = await manager.request_join(group.id, STUDENT)

        assert membership.status == MembershipStatus.PENDING
        assert membership.role == MembershipRole.MEMBER

    async def test_second_request_is_rejected(self, manager, store, group):
        await manager.request_join(group.id, STUDENT)

        with pytest.raises(AlreadyRequested):
            await manager.request_join(group.id, STUDENT)

        assert await store.count(Tables.MEMBERSHIPS, {"group_id": group.id, "user_id": STUDENT}) == 1

    async def test_concurrent_requests_leave_one_row(self, manager, store, group):
        results = await asyncio.gather(
            manager.request_join(group.id, STUDENT),
            manager.request_join(group.id, STUDENT),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], AlreadyRequested)
        assert await store.count(Tables.MEMBERSHIPS, {"group_id": group.id, "user_id": STUDENT}) == 1

    async def test_uniqueness_race_maps_to_already_requested(self, logger, group, store):
        class StalePrecheck(MembershipManager):
            async def get_membership(self, group_id, user_id):
                return None

        manager = StalePrecheck(store, logger)
        await manager.request_join(group.id, STUDENT)

        with pytest.raises(AlreadyRequested):
            await manager.request_join(group.id, STUDENT)

    async def test_active_member_cannot_request_again(self, manager, group, active_student):
        with pytest.raises(AlreadyRequested):
            await manager.request_join(group.id, STUDENT)

    async def test_missing_group(self, manager):
        with pytest.raises(NotFound):
            await manager.request_join("00000000-0000-0000-0000-000000000000", STUDENT)

    async def test_closed_group(self, manager, group):
        await manager.update_group(group.id, LEADER, GroupUpdate(allow_join_requests=False))

        with pytest.raises(JoinRequestsClosed) as exc_info:
            await manager.request_join(group.id, STUDENT)

        assert isinstance(exc_info.value, NotAuthorized)

    async def test_pending_request_does_not_count_as_member(self, manager, group):
        await manager.request_join(group.id, STUDENT)

        details = await manager.group_details(group.id)

        assert details.active_member_count == 1


class TestApproveDecline:
    async def test_leader_approves(self, manager, group):
        request = await manager.request_join(group.id, STUDENT)

        approved = await manager.approve(request.id, LEADER)

        assert approved.status == MembershipStatus.ACTIVE
        assert approved.decided_at is not None
        assert await manager.is_active_member(group.id, STUDENT)

    async def test_non_leader_cannot_approve(self, manager, group, active_student):
        request = await manager.request_join(group.id, OTHER)

        with pytest.raises(NotAuthorized):
            await manager.approve(request.id, STUDENT)

        unchanged = await manager.get_membership(group.id, OTHER)
        assert unchanged.status == MembershipStatus.PENDING

    async def test_approve_unknown_membership(self, manager, group):
        with pytest.raises(NotFound):
            await manager.approve("missing", LEADER)

    async def test_approve_twice(self, manager, group):
        request = await manager.request_join(group.id, STUDENT)
        await manager.approve(request.id, LEADER)

        with pytest.raises(NotFound):
            await manager.approve(request.id, LEADER)

    async def test_decline_removes_request(self, manager, store, group):
        request = await manager.request_join(group.id, STUDENT)

        await manager.decline(request.id, LEADER)

        assert await manager.get_membership(group.id, STUDENT) is None
        # A declined user may ask again.
        again = await manager.request_join(group.id, STUDENT)
        assert again.status == MembershipStatus.PENDING

    async def test_non_leader_cannot_decline(self, manager, group):
        request = await manager.request_join(group.id, STUDENT)

        with pytest.raises(NotAuthorized):
            await manager.decline(request.id, OTHER)

    async def test_approve_and_decline_race_has_one_winner(self, manager, store, group):
        request = await manager.request_join(group.id, STUDENT)

        results = await asyncio.gather(
            manager.approve(request.id, LEADER),
            manager.decline(request.id, LEADER),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], NotFound)
        assert await store.count(Tables.MEMBERSHIPS, {"id": request.id}) in (0, 1)

    async def test_over_capacity_is_logged_not_blocked(self, manager, logger):
        group = await manager.create_group(LEADER, GroupCreate(name="Tiny", max_members=1))
        request = await manager.request_join(group.id, STUDENT)

        approved = await manager.approve(request.id, LEADER)

        assert approved.is_active
        assert "Group is over capacity" in logger.messages("warning")
        details = await manager.group_details(group.id)
        assert details.is_full


class TestLeave:
    async def test_member_leave_is_isolated(self, manager, store, channel, group, active_student):
        await channel.send_text(group.id, STUDENT, "hello")

        outcome = await manager.leave(group.id, STUDENT)

        assert outcome == LeaveOutcome.MEMBER_LEFT
        assert await manager.get_membership(group.id, STUDENT) is None
        assert await manager.get_membership(group.id, LEADER) is not None
        assert await store.count(Tables.MESSAGES, {"group_id": group.id}) == 1

    async def test_pending_member_withdraws(self, manager, group):
        await manager.request_join(group.id, STUDENT)

        assert await manager.leave(group.id, STUDENT) == LeaveOutcome.MEMBER_LEFT
        assert await manager.get_membership(group.id, STUDENT) is None

    async def test_leader_leave_deletes_everything(self, manager, store, channel, group, active_student, logger):
        await manager.request_join(group.id, OTHER)
        await channel.send_text(group.id, LEADER, "welcome")
        await channel.send_text(group.id, STUDENT, "thanks")

        outcome = await manager.leave(group.id, LEADER)

        assert outcome == LeaveOutcome.GROUP_DELETED
        assert await store.count(Tables.GROUPS, {"id": group.id}) == 0
        assert await store.count(Tables.MEMBERSHIPS, {"group_id": group.id}) == 0
        assert await store.count(Tables.MESSAGES, {"group_id": group.id}) == 0
        deleted = [kw for lvl, msg, kw in logger.records if msg == "Group deleted by leader"]
        assert deleted[0]["memberships_removed"] == 3
        assert deleted[0]["messages_removed"] == 2

    async def test_stranger_cannot_leave(self, manager, group):
        with pytest.raises(NotFound):
            await manager.leave(group.id, OTHER)


class TestGroupReads:
    async def test_list_members_partitions_by_status(self, manager, group, active_student):
        await manager.request_join(group.id, OTHER)

        roster = await manager.list_members(group.id)

        assert [m.user_id for m in roster.active] == [LEADER, STUDENT]
        assert [m.user_id for m in roster.pending] == [OTHER]

    async def test_list_members_of_deleted_group_is_empty(self, manager, group):
        await manager.leave(group.id, LEADER)

        roster = await manager.list_members(group.id)

        assert roster.active == [] and roster.pending == []

    async def test_details_include_viewer_membership(self, manager, group, active_student):
        details = await manager.group_details(group.id, STUDENT)

        assert details.active_member_count == 2
        assert details.viewer_membership.user_id == STUDENT
        assert not details.is_full

    async def test_my_groups_newest_first(self, manager, group):
        newer = await manager.create_group(LEADER, GroupCreate(name="Databases"))

        groups = await manager.my_groups(LEADER)

        assert [item.group.id for item in groups] == [newer.id, group.id]
        assert all(item.membership.is_leader for item in groups)

    async def test_discover_only_public_and_searchable(self, manager, group):
        await manager.create_group(
            LEADER, GroupCreate(name="Secret club", visibility=GroupVisibility.PRIVATE)
        )
        await manager.create_group(OTHER, GroupCreate(name="Organic Chemistry", subject="chemistry"))

        everything = await manager.discover_groups()
        by_subject = await manager.discover_groups(search="COMPUTER")

        assert everything.total == 2
        assert [g.name for g in everything.items] == ["Organic Chemistry", "Algorithms"]
        assert [g.id for g in by_subject.items] == [group.id]

    async def test_discover_pagination(self, manager):
        for i in range(5):
            await manager.create_group(LEADER, GroupCreate(name=f"Group {i}"))

        page = await manager.discover_groups(page=2, page_size=2)

        assert page.total == 5
        assert [g.name for g in page.items] == ["Group 2", "Group 1"]


class TestUpdateGroup:
    async def test_leader_edits(self, manager, group):
        updated = await manager.update_group(
            group.id, LEADER, GroupUpdate(name="Advanced Algorithms", subject="Math Theory")
        )

        assert updated.name == "Advanced Algorithms"
        assert updated.subject == "math_theory"
        assert updated.updated_at is not None

    async def test_member_cannot_edit(self, manager, group, active_student):
        with pytest.raises(NotAuthorized):
            await manager.update_group(group.id, STUDENT, GroupUpdate(name="Mine now"))

    async def test_null_for_required_column_is_ignored(self, manager, group):
        updated = await manager.update_group(
            group.id, LEADER, GroupUpdate(name=None, description=None)
        )

        assert updated.name == "Algorithms"
        assert updated.description is None

    async def test_missing_group(self, manager):
        with pytest.raises(NotFound):
            await manager.update_group("missing", LEADER, GroupUpdate(name="x"))
