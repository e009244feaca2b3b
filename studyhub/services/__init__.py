from studyhub.services.base import BaseService
from studyhub.services.membership import (
    MembershipManager, MemberRoster, GroupDetails, UserGroup, GroupPage, LeaveOutcome,
)
from studyhub.services.messaging import MessagingChannel, Subscription, GroupChatView
from studyhub.services.timeline import MessageTimeline

__all__ = [
    "BaseService",
    "MembershipManager",
    "MemberRoster",
    "GroupDetails",
    "UserGroup",
    "GroupPage",
    "LeaveOutcome",
    "MessagingChannel",
    "Subscription",
    "GroupChatView",
    "MessageTimeline",
]
