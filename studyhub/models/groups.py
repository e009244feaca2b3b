from enum import Enum
from typing import ClassVar, Optional
from datetime import datetime

from pydantic import Field, field_validator

from studyhub.models.base import (
    BaseCreateSchema, BaseUpdateSchema, BaseRecordSchema
)


class GroupVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class MembershipRole(str, Enum):
    LEADER = "leader"
    MEMBER = "member"


class MembershipStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"


def _normalize_subject(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip().lower().replace(" ", "_") or None


# Group Models

class GroupCreate(BaseCreateSchema):
    """Schema for creating a study group."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    subject: Optional[str] = Field(default=None, max_length=100)
    max_members: int = Field(default=5, ge=1, le=500)
    visibility: GroupVisibility = GroupVisibility.PUBLIC
    allow_join_requests: bool = True
    meeting_type: str = Field(default="in_person", max_length=20)
    meeting_location: Optional[str] = Field(default=None, max_length=255)
    meeting_link: Optional[str] = Field(default=None, max_length=500)
    frequency: Optional[str] = Field(default=None, max_length=50)
    day_of_week: Optional[str] = Field(default=None, max_length=20)
    start_time: Optional[str] = Field(default=None, max_length=20)
    duration: Optional[str] = Field(default=None, max_length=50)

    @field_validator("subject")
    @classmethod
    def normalize_subject(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_subject(value)


class GroupUpdate(BaseUpdateSchema):
    """Leader edit of a study group; only the fields sent are changed."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    subject: Optional[str] = Field(default=None, max_length=100)
    max_members: Optional[int] = Field(default=None, ge=1, le=500)
    visibility: Optional[GroupVisibility] = None
    allow_join_requests: Optional[bool] = None
    meeting_type: Optional[str] = Field(default=None, max_length=20)
    meeting_location: Optional[str] = Field(default=None, max_length=255)
    meeting_link: Optional[str] = Field(default=None, max_length=500)
    frequency: Optional[str] = Field(default=None, max_length=50)
    day_of_week: Optional[str] = Field(default=None, max_length=20)
    start_time: Optional[str] = Field(default=None, max_length=20)
    duration: Optional[str] = Field(default=None, max_length=50)

    NOT_NULL: ClassVar[tuple[str, ...]] = (
        "name", "max_members", "visibility", "allow_join_requests", "meeting_type",
    )

    @field_validator("subject")
    @classmethod
    def normalize_subject(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_subject(value)

    def changes(self) -> dict:
        """Sent fields, minus explicit nulls for columns that cannot be null."""
        return {
            key: value for key, value in super().changes().items()
            if value is not None or key not in self.NOT_NULL
        }


class Group(BaseRecordSchema):
    """Persisted study group."""
    id: str
    name: str
    description: Optional[str] = None
    subject: Optional[str] = None
    max_members: int
    visibility: GroupVisibility = GroupVisibility.PUBLIC
    allow_join_requests: bool = True
    creator_id: str
    meeting_type: Optional[str] = None
    meeting_location: Optional[str] = None
    meeting_link: Optional[str] = None
    frequency: Optional[str] = None
    day_of_week: Optional[str] = None
    start_time: Optional[str] = None
    duration: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @property
    def is_public(self) -> bool:
        return self.visibility == GroupVisibility.PUBLIC

    def matches(self, search: str) -> bool:
        """Case-insensitive substring match on name, description and subject."""
        needle = search.strip().lower()
        if not needle:
            return True
        haystack = (self.name, self.description or "", self.subject or "")
        return any(needle in field.lower() for field in haystack)


# Membership Models

class Membership(BaseRecordSchema):
    """One user's (role, status) relationship with one group."""
    id: str
    group_id: str
    user_id: str
    role: MembershipRole = MembershipRole.MEMBER
    status: MembershipStatus = MembershipStatus.PENDING
    requested_at: datetime
    decided_at: Optional[datetime] = None

    @property
    def is_leader(self) -> bool:
        return self.role == MembershipRole.LEADER

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE

    @property
    def is_pending(self) -> bool:
        return self.status == MembershipStatus.PENDING
