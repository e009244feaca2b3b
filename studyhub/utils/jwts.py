from typing import NamedTuple, Optional

import jwt
from fastapi import Depends, HTTPException, Request, WebSocket, status

from .config import JWT_SECRET
from .logs import ErrorLogger, get_error_logger_dependency


class SessionContext(NamedTuple):
    """Identity of the acting user, taken from a verified access token."""
    user_id: Optional[str]
    email: Optional[str] = None
    exp: Optional[int] = None
    iat: Optional[int] = None

    def current_user_id(self) -> Optional[str]:
        return self.user_id

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


ANONYMOUS = SessionContext(user_id=None)


def create_jwt_token(payload: dict, secret_key: str = JWT_SECRET) -> str:
    return jwt.encode(payload, secret_key, algorithm="HS256")


class VerifyToken:
    def __init__(self, logger: ErrorLogger, secret_key: str = JWT_SECRET):
        self.logger = logger
        self.secret_key = secret_key

    def __call__(self, token: str) -> SessionContext:
        """
        Verify an HS256 access token and return the session it describes.
        The ``sub`` claim carries the user id.
        """
        try:
            payload = jwt.decode(
                jwt=token,
                key=self.secret_key,
                algorithms=["HS256"],
                options={"verify_exp": True, "verify_aud": False},
            )
        except jwt.ExpiredSignatureError:
            self.logger.warning(f"Expired token: {token[:10]}...")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired"
            )
        except jwt.InvalidSignatureError:
            self.logger.warning(f"Invalid signature: {token[:10]}...")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token signature"
            )
        except jwt.DecodeError:
            self.logger.warning(f"Decode error: {token[:10]}...")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token format"
            )
        except jwt.InvalidTokenError:
            self.logger.warning(f"Invalid token: {token[:10]}...")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token"
            )

        user_id: Optional[str] = payload.get("sub")
        if not user_id:
            self.logger.warning(f"Token missing 'sub' for token: {token[:10]}...")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token missing required 'sub' field"
            )

        return SessionContext(
            user_id=str(user_id),
            email=payload.get("email"),
            exp=payload.get("exp"),
            iat=payload.get("iat"),
        )


def extract_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    """Return the token of a ``Bearer <token>`` header, or None when absent."""
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed Authorization header. Expected 'Bearer <token>'"
        )
    return token.strip()


async def get_session(
        request: Request,
        logger: ErrorLogger = Depends(get_error_logger_dependency)
) -> SessionContext:
    """Session of the caller; anonymous when no Authorization header is sent."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        return ANONYMOUS
    return VerifyToken(logger)(token)


async def require_session(session: SessionContext = Depends(get_session)) -> SessionContext:
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing"
        )
    return session


def websocket_session(websocket: WebSocket, logger: ErrorLogger) -> SessionContext:
    """Session for a WebSocket handshake: ``token`` query param or header."""
    token = websocket.query_params.get("token")
    if not token:
        token = extract_bearer_token(websocket.headers.get("Authorization"))
    if not token:
        return ANONYMOUS
    return VerifyToken(logger)(token)
