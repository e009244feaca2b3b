from studyhub.models.base import (
    BaseModelSchema, BaseCreateSchema, BaseUpdateSchema, BaseRecordSchema
)
from studyhub.models.groups import (
    GroupVisibility, MembershipRole, MembershipStatus,
    Group, GroupCreate, GroupUpdate,
    Membership,
)
from studyhub.models.messaging import (
    MessageKind, GroupMessage, GroupMessageCreate,
)

__all__ = [
    "BaseModelSchema",
    "BaseCreateSchema",
    "BaseUpdateSchema",
    "BaseRecordSchema",
    "GroupVisibility",
    "MembershipRole",
    "MembershipStatus",
    "Group",
    "GroupCreate",
    "GroupUpdate",
    "Membership",
    "MessageKind",
    "GroupMessage",
    "GroupMessageCreate",
]
