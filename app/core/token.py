"""
Token management and validation logic.
All JWT signing and verification is centralized here.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings


class InvalidCredential(Exception):
    """Raised when a bearer token cannot be trusted"""


def sign(payload: Dict[str, Any], ttl: Optional[timedelta] = None) -> str:
    """Sign a payload into a JWT carrying iat/exp claims"""
    to_encode = payload.copy()
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])

    now = datetime.now(timezone.utc)
    if ttl is None:
        ttl = timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"iat": now, "exp": now + ttl})

    return jwt.encode(
        to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
    )


def verify(token: str) -> Dict[str, Any]:
    """
    Verify a JWT and return its claims.

    Raises InvalidCredential on a bad signature, malformed token,
    expired token or a token without a subject.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except ExpiredSignatureError as exc:
        raise InvalidCredential("Token has expired") from exc
    except JWTError as exc:
        raise InvalidCredential("Invalid token") from exc

    if not payload.get("sub"):
        raise InvalidCredential("Token has no subject")
    return payload


def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    role: Optional[str] = None,
) -> str:
    """Create the access token handed out by every login flow"""
    data: Dict[str, Any] = {"sub": user_id}
    if email:
        data["email"] = email
    if role:
        data["role"] = role
    return sign(data)
