"""
finreports/auth.py — Username/password login and bearer-token guard.

  - Passwords are stored as bcrypt hashes (see scripts/generate_hash.py).
  - Tokens are HS256 JWTs carrying user_id, username, iat and exp.
  - get_current_user() protects the report routes.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from finreports.config import settings
from finreports.exceptions import AuthenticationError
from finreports.schemas import LoginResponse, User, UserRecord

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

security = HTTPBearer(auto_error=False)


class UserStore(Protocol):
    async def get_user_by_username(self, username: str) -> UserRecord | None: ...


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # malformed hash in the users table
        return False


def create_access_token(
    user: User,
    secret: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.jwt_expire_hours))
    claims = {
        "user_id": user.id,
        "username": user.username,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(claims, secret or settings.jwt_secret, algorithm=ALGORITHM)


def decode_access_token(token: str, secret: str | None = None) -> dict[str, Any] | None:
    """Return the token payload, or None when the signature or expiry is bad."""
    try:
        return jwt.decode(token, secret or settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError:
        return None


class AuthService:
    def __init__(
        self,
        user_store: UserStore,
        secret: str | None = None,
        expire_hours: int | None = None,
    ):
        self._users = user_store
        self._secret = secret or settings.jwt_secret
        self._expires = timedelta(hours=expire_hours or settings.jwt_expire_hours)

    async def login(self, username: str, password: str) -> LoginResponse:
        record = await self._users.get_user_by_username(username)
        if record is None:
            logger.info("Login failed - user not found: %s", username)
            raise AuthenticationError()

        if not verify_password(password, record.password_hash):
            logger.info("Login failed - password mismatch for user: %s", username)
            raise AuthenticationError()

        logger.info("Login successful for user: %s", username)
        user = User(id=record.id, username=record.username, email=record.email)
        token = create_access_token(user, self._secret, self._expires)
        return LoginResponse(token=token, user=user)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    """FastAPI dependency: 401 unless a valid bearer token is supplied."""
    if credentials is None:
        raise AuthenticationError("authorization header required")

    payload = decode_access_token(credentials.credentials)
    if payload is None or not payload.get("user_id"):
        raise AuthenticationError("invalid or expired token")
    return payload
