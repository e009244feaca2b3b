"""
Typed error kinds surfaced by the membership and messaging services.

Every error carries a stable ``code`` that clients switch on and the HTTP
status the API layer answers with. ``AlreadyRequested`` and
``NotAuthorized`` deliberately use different codes and statuses: the first
means "wait for the leader", the second "you lack permission".
"""
from typing import Optional

from fastapi import status


class StudyHubError(Exception):
    """Base class for every error returned to callers of the core."""

    code: str = "STUDYHUB_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be completed"

    def __init__(self, message: Optional[str] = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class AlreadyRequested(StudyHubError):
    code = "ALREADY_REQUESTED"
    status_code = status.HTTP_409_CONFLICT
    default_message = "You have already requested to join this group"


class NotAuthorized(StudyHubError):
    code = "NOT_AUTHORIZED"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action"


class JoinRequestsClosed(NotAuthorized):
    code = "JOIN_REQUESTS_CLOSED"
    default_message = "This group is not accepting join requests"


class NotFound(StudyHubError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class UploadFailed(StudyHubError):
    code = "UPLOAD_FAILED"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "File upload failed"


class StoreUnavailable(StudyHubError):
    code = "STORE_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "The data store is temporarily unavailable"


class EmptyMessage(StudyHubError):
    code = "EMPTY_MESSAGE"
    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT
    default_message = "Message content cannot be empty"


class ConfirmationRequired(StudyHubError):
    code = "CONFIRMATION_REQUIRED"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Leaving will delete this group for everyone."
