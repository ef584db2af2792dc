from fastapi import APIRouter
from pydantic import BaseModel

from app.core.deps import CurrentUserDep, SessionDep
from app.services.engagement import likes

router = APIRouter(prefix="/likes", tags=["likes"])


class SuccessResponse(BaseModel):
    success: bool = True


class LikedResponse(BaseModel):
    liked: bool


@router.post("/{writing_id}", response_model=SuccessResponse)
async def add_like(writing_id: int, current_user: CurrentUserDep, db: SessionDep):
    await likes.add(db, current_user.id, writing_id)
    return SuccessResponse()


@router.delete("/{writing_id}", response_model=SuccessResponse)
async def remove_like(writing_id: int, current_user: CurrentUserDep, db: SessionDep):
    await likes.remove(db, current_user.id, writing_id)
    return SuccessResponse()


@router.get("/{writing_id}", response_model=LikedResponse)
async def check_like(writing_id: int, current_user: CurrentUserDep, db: SessionDep):
    return LikedResponse(liked=await likes.exists(db, current_user.id, writing_id))
