import pytest
from fastapi import HTTPException

from studyhub.utils.jwts import (
    ANONYMOUS, VerifyToken, create_jwt_token, extract_bearer_token, require_session,
)
from studyhub.utils.logs import ErrorLogger
from tests.conftest import make_token


@pytest.fixture
def verify() -> VerifyToken:
    return VerifyToken(ErrorLogger("test"))


def test_valid_token_yields_user_id(verify):
    session = verify(make_token("user-42"))

    assert session.current_user_id() == "user-42"
    assert session.is_authenticated


def test_expired_token(verify):
    with pytest.raises(HTTPException) as exc_info:
        verify(make_token("user-42", expires_in=-60))

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Token has expired"


def test_wrong_secret(verify):
    token = create_jwt_token({"sub": "user-42"}, secret_key="another-secret-that-is-long-enough-000000")

    with pytest.raises(HTTPException) as exc_info:
        verify(token)

    assert exc_info.value.detail == "Invalid token signature"


def test_garbage_token(verify):
    with pytest.raises(HTTPException) as exc_info:
        verify("not-a-jwt")

    assert exc_info.value.status_code == 401


def test_missing_sub(verify):
    with pytest.raises(HTTPException) as exc_info:
        verify(create_jwt_token({"email": "a@example.com"}))

    assert "sub" in exc_info.value.detail


def test_bearer_header_parsing():
    assert extract_bearer_token(None) is None
    assert extract_bearer_token("Bearer abc.def") == "abc.def"

    with pytest.raises(HTTPException):
        extract_bearer_token("Token abc")


async def test_require_session_rejects_anonymous():
    assert ANONYMOUS.current_user_id() is None

    with pytest.raises(HTTPException) as exc_info:
        await require_session(ANONYMOUS)

    assert exc_info.value.status_code == 401
