"""
User accounts: registration, credential checks, profile fields and point accrual.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError, StorageError, Unauthorized, ValidationError
from app.core.logging import get_logger
from app.core.security import generate_friend_code, get_password_hash, verify_password
from app.models.user import User

logger = get_logger(__name__)

EMAIL_MAX_LENGTH = 255
NAME_MAX_LENGTH = 100
NICKNAME_MAX_LENGTH = 50
FRIEND_CODE_ATTEMPTS = 5
PROFILE_IMAGE_MAX_LENGTH = 512

AVATAR_NAMES = ("img_glass_malchi", "img_malchi", "img_mungchi", "img_glass_mungchi")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def get_user(db: AsyncSession, user_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def _exists(db: AsyncSession, *criteria) -> bool:
    result = await db.execute(select(User.id).where(*criteria).limit(1))
    return result.scalar_one_or_none() is not None


async def _unused_friend_code(db: AsyncSession) -> str:
    for _ in range(FRIEND_CODE_ATTEMPTS):
        code = generate_friend_code()
        if not await _exists(db, User.friend_code == code):
            return code
    raise StorageError("Could not allocate a friend code")


async def register_user(
    db: AsyncSession,
    email: str,
    password: str,
    name: str,
    nickname: Optional[str] = None,
) -> User:
    email = normalize_email(email)
    name = (name or "").strip()
    nickname = nickname.strip() if nickname and nickname.strip() else None

    if not email or not password or not name:
        raise ValidationError("email, password and name are required")
    if (
        len(email) > EMAIL_MAX_LENGTH
        or len(name) > NAME_MAX_LENGTH
        or (nickname and len(nickname) > NICKNAME_MAX_LENGTH)
    ):
        raise ValidationError("Input is too long")

    try:
        if await _exists(db, User.email == email):
            raise ConflictError("Email is already registered")
        if nickname and await _exists(db, User.nickname == nickname):
            raise ConflictError("Nickname is already in use")

        user = User(
            id=str(uuid4()),
            email=email,
            password_hash=get_password_hash(password),
            name=name,
            nickname=nickname,
            is_verified=False,
            friend_code=await _unused_friend_code(db),
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
    except IntegrityError as exc:
        # Lost a race on email/nickname/friend_code uniqueness
        await db.rollback()
        logger.warning("users.register.conflict", email_domain=email.split("@")[-1])
        raise ConflictError("Email or nickname is already in use") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("users.register.failed", error=str(exc))
        raise StorageError("Registration failed") from exc

    logger.info("users.registered", user_id=user.id)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    email = normalize_email(email)
    if not email or not password:
        raise ValidationError("email and password are required")

    try:
        result = await db.execute(select(User).where(User.email == email).limit(1))
        user = result.scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.error("users.login.failed", error=str(exc))
        raise StorageError("Login failed") from exc

    if user is None or not verify_password(password, user.password_hash):
        raise Unauthorized("Invalid email or password")
    return user


async def add_points(db: AsyncSession, user_id: str, point: int) -> None:
    """Atomic point = point + n"""
    if isinstance(point, bool) or not isinstance(point, int) or point <= 0:
        raise ValidationError("point must be a positive integer")

    try:
        await db.execute(
            update(User).where(User.id == user_id).values(point=User.point + point)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("users.points.failed", user_id=user_id, point=point, error=str(exc))
        raise StorageError("Failed to add points") from exc


async def _update_profile(db: AsyncSession, user_id: str, event: str, **values) -> None:
    try:
        result = await db.execute(
            update(User).where(User.id == user_id).values(**values, updated_at=datetime.utcnow())
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(f"users.{event}.failed", user_id=user_id, error=str(exc))
        raise StorageError("Failed to update profile") from exc
    if result.rowcount == 0:
        raise NotFoundError("User not found")
    logger.info(f"users.{event}.updated", user_id=user_id)


async def update_avatar(db: AsyncSession, user_id: str, avatar_name: str) -> str:
    avatar_name = (avatar_name or "").strip()
    if avatar_name not in AVATAR_NAMES:
        raise ValidationError("Unknown avatar", details={"allowed": list(AVATAR_NAMES)})
    await _update_profile(db, user_id, "avatar", avatar_name=avatar_name)
    return avatar_name


async def update_profile_image(db: AsyncSession, user_id: str, url: str) -> str:
    url = (url or "").strip()
    if not url or len(url) > PROFILE_IMAGE_MAX_LENGTH:
        raise ValidationError("profileImageUrl is required and must be at most 512 characters")
    if not url.startswith(("https://", "http://", "/")):
        raise ValidationError("profileImageUrl must be an http(s) URL or a site path")
    await _update_profile(db, user_id, "profile_image", profile_image_url=url)
    return url
