"""
Authentication and Authorization

TokenService issues and verifies HS256 JWTs carrying the user's id, email
and role. authenticate() turns a raw ``Authorization`` header into an
IdentityContext; authorize() checks that identity against a set of roles.

FastAPI wiring:
    get_identity            - dependency, 401 on any credential problem
    require_roles(*roles)   - dependency, runs get_identity then 403 on role

Token payload:
    {"userId": 1, "userEmail": "a@b.com", "userRole": "APPLICANT",
     "iat": 1700000000, "exp": 1700003600}
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Union

from fastapi import Depends, Header, Request
from jose import JWTError, jwt

from jobboard.errors import (
    ConfigurationError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidTokenError,
    UnauthorizedError,
)
from jobboard.models import UserRole

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_TOKEN_TTL = timedelta(hours=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    subject_id: int
    subject_email: str
    subject_role: UserRole
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class IdentityContext:
    """The authenticated caller, passed explicitly to whatever needs it."""

    user_id: int
    email: str
    role: Optional[UserRole]


def has_token_shape(token: str) -> bool:
    parts = token.split(".")
    return len(parts) == 3 and all(part.strip() for part in parts)


def _coerce_role(role: Union[UserRole, str, None]) -> UserRole:
    if isinstance(role, UserRole):
        return role
    if isinstance(role, str) and role:
        try:
            return UserRole(role)
        except ValueError:
            pass
    raise InvalidArgumentError("User role must be a known role")


class TokenService:
    """Signs and verifies session tokens with a server-held secret."""

    def __init__(
        self,
        secret: str,
        default_ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.secret = secret
        self.default_ttl = default_ttl
        self.clock = clock

    def ensure_configured(self) -> None:
        if not self.secret:
            raise ConfigurationError("JWT_SECRET is not defined in environment variables")

    def issue(
        self,
        subject_id: int,
        subject_email: str,
        subject_role: Union[UserRole, str],
        ttl: Optional[timedelta] = None,
    ) -> str:
        self.ensure_configured()

        if isinstance(subject_id, bool) or not isinstance(subject_id, int) or subject_id <= 0:
            raise InvalidArgumentError("User ID must be a valid number")
        if not isinstance(subject_email, str) or not subject_email.strip():
            raise InvalidArgumentError("User email must be a valid string")
        role = _coerce_role(subject_role)

        ttl = self.default_ttl if ttl is None else ttl
        if ttl.total_seconds() <= 0:
            raise InvalidArgumentError("Token lifetime must be positive")

        issued_at = self.clock()
        payload = {
            "userId": subject_id,
            "userEmail": subject_email,
            "userRole": role.value,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and validate a token.

        Every failure raises the same InvalidTokenError; the specific cause
        is only logged.
        """
        self.ensure_configured()

        if not isinstance(token, str) or not token.strip():
            logger.info("Token rejected: empty")
            raise InvalidTokenError()
        if not has_token_shape(token):
            logger.info("Token rejected: malformed structure")
            raise InvalidTokenError()

        try:
            # Expiry is checked below against our own clock
            payload = jwt.decode(
                token, self.secret, algorithms=[ALGORITHM], options={"verify_exp": False}
            )
        except JWTError as e:
            logger.info(f"Token rejected: {e}")
            raise InvalidTokenError() from e

        try:
            subject_id = payload["userId"]
            subject_email = payload["userEmail"]
            subject_role = UserRole(payload["userRole"])
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError) as e:
            logger.info(f"Token rejected: malformed claims ({e!r})")
            raise InvalidTokenError() from e

        if isinstance(subject_id, bool) or not isinstance(subject_id, int) or subject_id <= 0:
            logger.info("Token rejected: bad subject id")
            raise InvalidTokenError()
        if not isinstance(subject_email, str) or not subject_email:
            logger.info("Token rejected: bad subject email")
            raise InvalidTokenError()

        if self.clock() >= expires_at:
            logger.info(f"Token rejected: expired at {expires_at.isoformat()}")
            raise InvalidTokenError()

        return TokenClaims(
            subject_id=subject_id,
            subject_email=subject_email,
            subject_role=subject_role,
            issued_at=issued_at,
            expires_at=expires_at,
        )


def authenticate(authorization: Optional[str], token_service: TokenService) -> IdentityContext:
    """Validate a ``Bearer <token>`` header, failing fast on the first bad step."""
    if not authorization:
        raise UnauthorizedError("Authorization header is missing")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise UnauthorizedError("Invalid authorization header format. Use: Bearer <token>")

    token = parts[1]
    if not token.strip():
        raise UnauthorizedError("Token is empty")

    segments = token.split(".")
    if len(segments) != 3:
        raise UnauthorizedError(
            "Invalid token format. JWT must have 3 parts (header.payload.signature)"
        )
    if any(not segment.strip() for segment in segments):
        raise UnauthorizedError("Invalid token format. JWT parts cannot be empty")

    try:
        claims = token_service.verify(token)
    except InvalidTokenError:
        raise UnauthorizedError("Invalid or expired token") from None

    return IdentityContext(
        user_id=claims.subject_id,
        email=claims.subject_email,
        role=claims.subject_role,
    )


def authorize(identity: Optional[IdentityContext], allowed_roles: Iterable[UserRole]) -> None:
    allowed = frozenset(allowed_roles)
    if not allowed:
        raise InvalidArgumentError("At least one role must be allowed")

    if identity is None or identity.role is None:
        raise ForbiddenError("User role is missing")
    if identity.role not in allowed:
        logger.info(f"User {identity.user_id} with role {identity.role.value} denied")
        raise ForbiddenError("Insufficient permissions")


# ==================== FastAPI dependencies ====================


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


async def get_identity(
    authorization: Optional[str] = Header(None),
    token_service: TokenService = Depends(get_token_service),
) -> IdentityContext:
    try:
        return authenticate(authorization, token_service)
    except UnauthorizedError as e:
        logger.info(f"Authentication failed: {e.message}")
        raise


def require_roles(*roles: UserRole):
    """Build a dependency admitting only identities holding one of ``roles``."""
    if not roles:
        raise InvalidArgumentError("At least one role must be allowed")

    async def guard(identity: IdentityContext = Depends(get_identity)) -> IdentityContext:
        authorize(identity, roles)
        return identity

    return guard
