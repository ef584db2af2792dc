from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from app.core.deps import CurrentUserDep, SessionDep
from app.services import friends as friend_service

router = APIRouter(prefix="/friends", tags=["friends"])

# ============ Schemas ============

class AddByCodeRequest(BaseModel):
    code: str = ""


class FriendSummary(BaseModel):
    id: str
    name: str
    avatarName: Optional[str] = None
    point: int
    friendCode: str


class FriendEdgeOut(BaseModel):
    id: str
    requester_id: str
    addressee_id: str
    status: str
    accepted_at: datetime
    updated_at: datetime


class AddByCodeResult(BaseModel):
    friend: FriendSummary
    edge: FriendEdgeOut


class AddByCodeResponse(BaseModel):
    success: bool = True
    message: str
    result: AddByCodeResult


class RankingItem(BaseModel):
    id: str
    name: str
    avatarName: Optional[str] = None
    point: int


class RankingResult(BaseModel):
    meId: str
    items: List[RankingItem]


class RankingResponse(BaseModel):
    success: bool = True
    result: RankingResult

# ============ Endpoints ============

@router.post("/by-code", response_model=AddByCodeResponse)
async def add_friend_by_code(data: AddByCodeRequest, current_user: CurrentUserDep, db: SessionDep):
    """Add a friend by their 7-character code. The friendship is accepted immediately."""
    friend, edge = await friend_service.add_friend_by_code(db, current_user.id, data.code)
    return AddByCodeResponse(
        message="Friend added",
        result=AddByCodeResult(
            friend=FriendSummary(
                id=friend.id,
                name=friend.name,
                avatarName=friend.avatar_name,
                point=friend.point,
                friendCode=friend.friend_code,
            ),
            edge=FriendEdgeOut(**edge),
        ),
    )


def _ranking_response(me_id: str, users) -> RankingResponse:
    return RankingResponse(
        result=RankingResult(
            meId=me_id,
            items=[
                RankingItem(id=u.id, name=u.name, avatarName=u.avatar_name, point=u.point)
                for u in users
            ],
        )
    )


@router.get("/ranking", response_model=RankingResponse)
async def friends_ranking(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(default=friend_service.RANKING_DEFAULT_LIMIT),
):
    users = await friend_service.friends_ranking(db, current_user.id, limit)
    return _ranking_response(current_user.id, users)


@router.get("/ranking/all", response_model=RankingResponse)
async def global_ranking(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(default=friend_service.RANKING_DEFAULT_LIMIT),
):
    users = await friend_service.global_ranking(db, limit)
    return _ranking_response(current_user.id, users)
