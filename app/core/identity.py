"""
Request identity resolution.

Two stages:
  * IdentityMiddleware resolves the bearer token (if any) into a UserContext
    and stores it on request.state.user. It never rejects a request.
  * require_login is the guard dependency for routes that need a user.
"""

from typing import Annotated, Callable, Literal, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import Unauthorized
from app.core.logging import bind_user, get_logger
from app.core.token import InvalidCredential, verify
from app.models.user import User

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "

# Only used so the OpenAPI schema advertises bearer auth; the guard
# below decides on 401 itself.
security_scheme = HTTPBearer(auto_error=False)


class UserContext(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    nickname: Optional[str] = None
    is_verified: Optional[bool] = None
    role: Optional[str] = None


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class IdentityResolver:
    """
    Turns an Authorization header into a UserContext.

    strategy="stateless" trusts the verified claims.
    strategy="refreshing" reloads the user row so profile edits apply
    without reissuing a token.
    """

    def __init__(
        self,
        strategy: Literal["stateless", "refreshing"] = "refreshing",
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        if strategy == "refreshing" and session_factory is None:
            raise ValueError("refreshing identity strategy requires a session factory")
        self.strategy = strategy
        self.session_factory = session_factory

    async def resolve(self, authorization: Optional[str]) -> Optional[UserContext]:
        token = extract_bearer(authorization)
        if token is None:
            return None

        try:
            claims = verify(token)
        except InvalidCredential as exc:
            logger.debug("identity.token_rejected", reason=str(exc))
            return None

        if self.strategy == "stateless":
            return UserContext(
                id=str(claims["sub"]),
                email=claims.get("email"),
                role=claims.get("role"),
            )
        return await self._load_user(str(claims["sub"]))

    async def _load_user(self, user_id: str) -> Optional[UserContext]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(User).where(User.id == user_id))
                user = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.warning("identity.lookup_failed", user_id=user_id, error=str(exc))
            return None

        if user is None:
            logger.debug("identity.unknown_subject", user_id=user_id)
            return None

        return UserContext(
            id=user.id,
            email=user.email,
            name=user.name,
            nickname=user.nickname,
            is_verified=user.is_verified,
            role=user.role,
        )


class IdentityMiddleware:
    """Attach the resolved identity (or None) to every HTTP request"""

    def __init__(self, app, resolver_getter: Optional[Callable[[object], Optional[IdentityResolver]]] = None):
        self.app = app
        self.resolver_getter = resolver_getter or _resolver_from_app_state

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        user: Optional[UserContext] = None
        resolver = self.resolver_getter(scope)
        if resolver is not None:
            authorization = _header(scope, b"authorization")
            try:
                user = await resolver.resolve(authorization)
            except Exception as exc:
                logger.warning("identity.resolve_failed", error=str(exc))
                user = None

        scope.setdefault("state", {})["user"] = user
        bind_user(user.id if user else None)
        await self.app(scope, receive, send)


def _resolver_from_app_state(scope) -> Optional[IdentityResolver]:
    app = scope.get("app")
    if app is None:
        return None
    return getattr(app.state, "identity_resolver", None)


def _header(scope, name: bytes) -> Optional[str]:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return None


async def require_login(
    request: Request,
    _credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security_scheme)] = None,
) -> UserContext:
    """Guard: reject with 401 when no identity was attached"""
    user = getattr(request.state, "user", None)
    if user is None:
        raise Unauthorized()
    return user


CurrentUserDep = Annotated[UserContext, Depends(require_login)]
