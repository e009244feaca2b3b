from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from studyhub.controllers.base import BaseController
from studyhub.dependencies.database import get_store
from studyhub.errors import ConfirmationRequired, NotFound
from studyhub.models.groups import GroupCreate, GroupUpdate
from studyhub.services.membership import MembershipManager
from studyhub.store import StoreAdapter, Tables
from studyhub.utils.jwts import SessionContext, get_session, require_session
from studyhub.utils.logs import ErrorLogger, ErrorLoggerDep
from studyhub.views.groups import (
    GroupDetailsView,
    GroupPageView,
    GroupView,
    LeaveConfirmationView,
    LeaveView,
    MemberRosterView,
    MembershipView,
    UserGroupView,
)
from studyhub.views.responses import APIResponse


class GroupController(BaseController):
    """Controller for study group and membership operations."""

    def __init__(self, store: StoreAdapter, logger: Optional[ErrorLogger] = None):
        super().__init__(store, logger)
        self._manager = MembershipManager(store, logger)

    async def create_group(self, creator_id: str, data: GroupCreate) -> GroupView:
        group = await self._manager.create_group(creator_id, data)
        return GroupView.from_group(group)

    async def get_details(self, group_id: str, viewer_id: Optional[str]) -> GroupDetailsView:
        details = await self._manager.group_details(group_id, viewer_id)
        return GroupDetailsView.from_details(details)

    async def update_group(self, group_id: str, user_id: str, patch: GroupUpdate) -> GroupView:
        group = await self._manager.update_group(group_id, user_id, patch)
        return GroupView.from_group(group)

    async def my_groups(self, user_id: str) -> list[UserGroupView]:
        return [UserGroupView.from_user_group(item) for item in await self._manager.my_groups(user_id)]

    async def discover(self, search: Optional[str], page: int, page_size: int) -> GroupPageView:
        result = await self._manager.discover_groups(search=search, page=page, page_size=page_size)
        return GroupPageView.from_page(result)

    async def request_join(self, group_id: str, user_id: str) -> MembershipView:
        membership = await self._manager.request_join(group_id, user_id)
        return MembershipView.from_membership(membership)

    async def list_members(self, group_id: str) -> MemberRosterView:
        await self._manager.get_group(group_id)
        return MemberRosterView.from_roster(await self._manager.list_members(group_id))

    async def _require_in_group(self, group_id: str, membership_id: str) -> None:
        row = await self.store.select_one(
            Tables.MEMBERSHIPS, {"id": membership_id, "group_id": group_id}
        )
        if row is None:
            raise NotFound("Membership not found", membership_id=membership_id)

    async def approve(self, group_id: str, membership_id: str, user_id: str) -> MembershipView:
        await self._require_in_group(group_id, membership_id)
        membership = await self._manager.approve(membership_id, user_id)
        return MembershipView.from_membership(membership)

    async def decline(self, group_id: str, membership_id: str, user_id: str) -> MembershipView:
        await self._require_in_group(group_id, membership_id)
        membership = await self._manager.decline(membership_id, user_id)
        return MembershipView.from_membership(membership)

    async def leave(self, group_id: str, user_id: str, confirm: bool) -> LeaveView:
        """
        Leave a group. A leader leaving deletes the group, so that branch
        only runs once the client has sent ``confirm=true``.
        """
        membership = await self._manager.get_membership(group_id, user_id)
        if membership is not None and membership.is_leader and not confirm:
            raise ConfirmationRequired(
                group_id=group_id,
                confirmation=LeaveConfirmationView.for_leader().to_dict(),
            )
        outcome = await self._manager.leave(group_id, user_id)
        return LeaveView.from_outcome(outcome, group_id)


router = APIRouter(prefix="/api/v1/groups", tags=["Groups"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create group",
    description="Create a study group. The creator becomes its leader."
)
async def create_group(
    request: GroupCreate,
    store: Annotated[StoreAdapter, Depends(get_store)],
    session: Annotated[SessionContext, Depends(require_session)],
    logger: ErrorLoggerDep,
):
    controller = GroupController(store, logger)
    result = await controller.create_group(session.user_id, request)
    return APIResponse(data=result, message="Group created")


@router.get(
    "/my",
    summary="Get my groups",
    description="Groups the current user leads, belongs to or has asked to join."
)
async def get_my_groups(
    store: Annotated[StoreAdapter, Depends(get_store)],
    session: Annotated[SessionContext, Depends(require_session)],
    logger: ErrorLoggerDep,
):
    controller = GroupController(store, logger)
    return APIResponse(data=await controller.my_groups(session.user_id))


@router.get(
    "/discover",
    summary="Discover groups",
    description="Public groups, newest first, filtered by name, description or subject."
)
async def discover_groups(
    store: Annotated[StoreAdapter, Depends(get_store)],
    logger: ErrorLoggerDep,
    search: Optional[str] = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=50),
):
    """
    Browse public study groups.

    - **search**: case-insensitive match on name, description or subject
    - **page** / **page_size**: pagination, 1-based
    """
    controller = GroupController(store, logger)
    return APIResponse(data=await controller.discover(search, page, page_size))


@router.get(
    "/{group_id}",
    summary="Get group details",
    description="Group details, active member count and the caller's own membership."
)
async def get_group(
    group_id: UUID,
    store: Annotated[StoreAdapter, Depends(get_store)],
    session: Annotated[SessionContext, Depends(get_session)],
    logger: ErrorLoggerDep,
):
    controller = GroupController(store, logger)
    return APIResponse(data=await controller.get_details(str(group_id), session.current_user_id()))


@router.patch(
    "/{group_id}",
    summary="Edit group",
    description="Leader-only edit of the group's details."
)
async def update_group(
    group_id: UUID,
    request: GroupUpdate,
    store: Annotated[StoreAdapter, Depends(get_store)],
    session: Annotated[SessionContext, Depends(require_session)],
    logger: ErrorLoggerDep,
):
    controller = GroupController(store, logger)
    result = await controller.update_group(str(group_id), session.user_id, request)
    return APIResponse(data=result, message="Group updated")


@router.post(
    "/{group_id}/join",
    status_code=status.HTTP_201_CREATED,
    summary="Request to join",
    description="Ask to join a group. The request stays pending until the leader decides."
)
async def request_join(
    group_id: UUID,
    store: Annotated[StoreAdapter, Depends(get_store)],
    session: Annotated[SessionContext, Depends(require_session)],
    logger: ErrorLoggerDep,
):
    controller = GroupController(store, logger)
    result = await controller.request_join(str(group_id), session.user_id)
    return APIResponse(data=result, message="Join request sent")


@router.get(
    "/{group_id}/members",
    summary="Get group members",
    description="Active members and pending join requests of a group."
)
async def get_group_members(
    group_id: UUID,
    store: Annotated[StoreAdapter, Depends(get_store)],
    session: Annotated[SessionContext, Depends(require_session)],
    logger: ErrorLoggerDep,
):
    controller = GroupController(store, logger)
    return APIResponse(data=await controller.list_members(str(group_id)))


@router.post(
    "/{group_id}/members/{membership_id}/approve",
    summary="Approve join request",
    description="Leader approves a pending join request."
)
async def approve_member(
    group_id: UUID,
    membership_id: UUID,
    store: Annotated[StoreAdapter, Depends(get_store)],
    session: Annotated[SessionContext, Depends(require_session)],
    logger: ErrorLoggerDep,
):
    controller = GroupController(store, logger)
    result = await controller.approve(str(group_id), str(membership_id), session.user_id)
    return APIResponse(data=result, message="Member approved")


@router.delete(
    "/{group_id}/members/{membership_id}",
    summary="Decline join request",
    description="Leader declines a pending join request. The request is removed."
)
async def decline_member(
    group_id: UUID,
    membership_id: UUID,
    store: Annotated[StoreAdapter, Depends(get_store)],
    session: Annotated[SessionContext, Depends(require_session)],
    logger: ErrorLoggerDep,
):
    controller = GroupController(store, logger)
    result = await controller.decline(str(group_id), str(membership_id), session.user_id)
    return APIResponse(data=result, message="Request declined")


@router.post(
    "/{group_id}/leave",
    summary="Leave group",
    description="Leave a group. For the leader this deletes the group and requires confirm=true."
)
async def leave_group(
    group_id: UUID,
    store: Annotated[StoreAdapter, Depends(get_store)],
    session: Annotated[SessionContext, Depends(require_session)],
    logger: ErrorLoggerDep,
    confirm: bool = Query(default=False, description="Confirm deleting the group when leaving as leader"),
):
    """
    Leave a group.

    - Members (active or pending) are removed from the group.
    - The leader leaving deletes the group, its members and its messages.
      Without **confirm=true** nothing happens and a 409
      `CONFIRMATION_REQUIRED` error describes the choice to offer.
    """
    controller = GroupController(store, logger)
    result = await controller.leave(str(group_id), session.user_id, confirm)
    return APIResponse(data=result, message="Left group")
