"""
Dependency Injection

FastAPI dependencies for routes.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.identity import CurrentUserDep, UserContext
from app.core.otp import ExpiringCodeCache
from app.infra.db import get_db
from app.services.openai_service import OpenAIService, get_openai_service

# Type aliases for common dependencies
SessionDep = Annotated[AsyncSession, Depends(get_db)]


def get_otp_cache(request: Request) -> ExpiringCodeCache:
    return request.app.state.otp_cache


OtpCacheDep = Annotated[ExpiringCodeCache, Depends(get_otp_cache)]
OpenAIDep = Annotated[OpenAIService, Depends(get_openai_service)]

__all__ = [
    "SessionDep",
    "OtpCacheDep",
    "OpenAIDep",
    "CurrentUserDep",
    "UserContext",
]
