from datetime import datetime
from typing import Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from app.core.config import settings
from app.core.deps import CurrentUserDep, OtpCacheDep, SessionDep
from app.core.errors import NotFoundError, ValidationError
from app.core.logging import get_logger
from app.core.otp import OtpResult
from app.core.time import to_kst_iso
from app.core.token import create_access_token
from app.services import users as user_service

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

# ============ Schemas ============

class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str
    nickname: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResult(BaseModel):
    userId: str
    accessToken: str
    status: str
    inactiveDate: Optional[datetime] = None


class LoginResponse(BaseModel):
    isSuccess: bool = True
    code: str = "COMMON200"
    message: str = "OK"
    result: LoginResult


class WebUser(BaseModel):
    id: str
    email: str
    name: str
    nickname: Optional[str] = None
    is_verified: bool
    level: int


class WebLoginResponse(BaseModel):
    success: bool = True
    token: str
    user: WebUser


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class MeResult(BaseModel):
    id: str
    email: str
    name: str
    nickname: Optional[str] = None
    is_verified: bool
    friend_code: str
    point: int
    avatar_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: Optional[str] = None


class MeResponse(BaseModel):
    success: bool = True
    result: MeResult


class AvatarRequest(BaseModel):
    avatarName: str = ""


class AvatarResponse(BaseModel):
    success: bool = True
    avatarName: str


class ProfileImageRequest(BaseModel):
    profileImageUrl: str = ""


class ProfileImageResponse(BaseModel):
    success: bool = True
    profileImageUrl: str


class OtpRequest(BaseModel):
    email: str = Field(min_length=1)


class OtpVerifyRequest(BaseModel):
    email: str = Field(min_length=1)
    code: str = Field(min_length=1)

# ============ Endpoints ============

@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, db: SessionDep):
    await user_service.register_user(
        db,
        email=data.email,
        password=data.password,
        name=data.name,
        nickname=data.nickname,
    )
    return MessageResponse(message="Registration complete")


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, db: SessionDep):
    """App login"""
    user = await user_service.authenticate(db, data.email, data.password)
    token = create_access_token(user.id, email=user.email, role=user.role)
    return LoginResponse(
        result=LoginResult(
            userId=user.id,
            accessToken=token,
            status=user.status,
            inactiveDate=user.inactive_date,
        )
    )


@router.post("/login/web", response_model=WebLoginResponse)
async def login_web(data: LoginRequest, db: SessionDep):
    """Web login, same credential as the app"""
    user = await user_service.authenticate(db, data.email, data.password)
    token = create_access_token(user.id, email=user.email)
    return WebLoginResponse(
        token=token,
        user=WebUser(
            id=user.id,
            email=user.email,
            name=user.name,
            nickname=user.nickname,
            is_verified=user.is_verified,
            level=user.level,
        ),
    )


@router.get("/me", response_model=MeResponse)
async def me(current_user: CurrentUserDep, db: SessionDep):
    user = await user_service.get_user(db, current_user.id)
    if user is None:
        raise NotFoundError("User not found")
    return MeResponse(
        result=MeResult(
            id=user.id,
            email=user.email,
            name=user.name,
            nickname=user.nickname,
            is_verified=user.is_verified,
            friend_code=user.friend_code,
            point=user.point,
            avatar_name=user.avatar_name,
            profile_image_url=user.profile_image_url,
            created_at=to_kst_iso(user.created_at),
        )
    )


@router.patch("/me/avatar", response_model=AvatarResponse)
async def update_avatar(data: AvatarRequest, current_user: CurrentUserDep, db: SessionDep):
    avatar_name = await user_service.update_avatar(db, current_user.id, data.avatarName)
    return AvatarResponse(avatarName=avatar_name)


@router.patch("/profile-image", response_model=ProfileImageResponse)
async def update_profile_image(data: ProfileImageRequest, current_user: CurrentUserDep, db: SessionDep):
    """Web profile picture; the image itself is hosted elsewhere"""
    url = await user_service.update_profile_image(db, current_user.id, data.profileImageUrl)
    return ProfileImageResponse(profileImageUrl=url)


# ============ Dev OTP (mounted only when enable_dev_routes) ============

dev_router = APIRouter(prefix="/auth/dev", tags=["auth-dev"])


@dev_router.post("/request-otp", response_model=MessageResponse)
async def request_otp(data: OtpRequest, otp_cache: OtpCacheDep):
    code = otp_cache.issue(data.email)
    # Dev only: the code is delivered through the server log
    logger.info("otp.issued", email=data.email.strip().lower(), code=code, ttl_seconds=settings.otp_ttl_seconds)
    return MessageResponse(message="OTP issued (see server log)")


@dev_router.post("/verify-otp", response_model=MessageResponse)
async def verify_otp(data: OtpVerifyRequest, otp_cache: OtpCacheDep):
    result = otp_cache.verify(data.email, data.code)
    if result is OtpResult.MISSING:
        raise ValidationError("No OTP issued for this email")
    if result is OtpResult.EXPIRED:
        raise ValidationError("OTP has expired")
    if result is OtpResult.MISMATCH:
        raise ValidationError("OTP does not match")
    return MessageResponse(message="OTP verified")
