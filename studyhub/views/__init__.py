from studyhub.views.base import BaseView
from studyhub.views.responses import (
    OrjsonResponse, APIResponse, PaginatedResponse, PaginationMeta,
    ErrorResponse, ErrorBody, ErrorDetail,
)
from studyhub.views.groups import (
    GroupView,
    MembershipView,
    MemberRosterView,
    GroupDetailsView,
    UserGroupView,
    GroupPageView,
    LeaveView,
    LeaveConfirmationView,
)
from studyhub.views.messaging import (
    MessageView,
    MessageListView,
    ClientFrame,
    ServerHistory,
    ServerNewMessage,
    ServerError,
    ServerPong,
)

__all__ = [
    "BaseView",
    "OrjsonResponse",
    "APIResponse",
    "PaginatedResponse",
    "PaginationMeta",
    "ErrorResponse",
    "ErrorBody",
    "ErrorDetail",
    "GroupView",
    "MembershipView",
    "MemberRosterView",
    "GroupDetailsView",
    "UserGroupView",
    "GroupPageView",
    "LeaveView",
    "LeaveConfirmationView",
    "MessageView",
    "MessageListView",
    "ClientFrame",
    "ServerHistory",
    "ServerNewMessage",
    "ServerError",
    "ServerPong",
]
