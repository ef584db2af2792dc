from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, StrictBool

from app.core.deps import CurrentUserDep, SessionDep
from app.core.time import to_kst_iso
from app.services import vocabulary as vocabulary_service

router = APIRouter(tags=["vocabulary"])

# ============ Schemas ============

class SaveWordRequest(BaseModel):
    study_id: Optional[int] = None
    word: str = ""
    meaning: str = ""
    example: Optional[str] = None


class SaveWordResponse(BaseModel):
    success: bool = True
    message: str
    vocabId: int


class StudyWord(BaseModel):
    id: int
    word: str
    meaning: str
    example: Optional[str] = None


class StudyWordsResponse(BaseModel):
    success: bool = True
    result: List[StudyWord]


class SavedWord(BaseModel):
    id: int
    word: str
    meaning: str
    example: Optional[str] = None
    createdAt: Optional[str] = None
    isLiked: bool


class SavedWordsResponse(BaseModel):
    success: bool = True
    result: List[SavedWord]
    nextLastId: Optional[int] = None


class LikeWordRequest(BaseModel):
    liked: StrictBool


class LikeWordResponse(BaseModel):
    success: bool = True
    vocabId: int
    isLiked: bool

# ============ Helpers ============

def _saved_words(rows, limit: int) -> SavedWordsResponse:
    items = [
        SavedWord(
            id=row["id"],
            word=row["word"],
            meaning=row["meaning"],
            example=row["example"],
            createdAt=to_kst_iso(row["created_at"]),
            isLiked=bool(row["is_liked"]),
        )
        for row in rows
    ]
    # A full page means there may be more behind the last id
    next_last_id = items[-1].id if len(items) == limit else None
    return SavedWordsResponse(result=items, nextLastId=next_last_id)

# ============ Endpoints ============

@router.post("/gpt/vocabulary", response_model=SaveWordResponse)
async def save_word(data: SaveWordRequest, current_user: CurrentUserDep, db: SessionDep):
    vocab_id = await vocabulary_service.save_word(
        db,
        current_user.id,
        word=data.word,
        meaning=data.meaning,
        example=data.example,
        study_id=data.study_id,
    )
    return SaveWordResponse(message="Word saved", vocabId=vocab_id)


@router.get("/gpt/vocabulary/{study_id}", response_model=StudyWordsResponse)
async def words_for_study(
    study_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    today: int = Query(default=0),
):
    """Words saved against one study; ?today=1 redirects to today's study when there is one"""
    words = await vocabulary_service.words_for_study(db, current_user.id, study_id, today_only=today == 1)
    return StudyWordsResponse(
        result=[StudyWord(id=w.id, word=w.word, meaning=w.meaning, example=w.example) for w in words]
    )


@router.get("/auth/me/vocabulary/recent", response_model=SavedWordsResponse)
async def recent_words(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(default=vocabulary_service.RECENT_DEFAULT_LIMIT),
):
    limit = vocabulary_service.clamp_limit(
        limit, vocabulary_service.RECENT_DEFAULT_LIMIT, vocabulary_service.RECENT_MAX_LIMIT
    )
    rows = await vocabulary_service.list_words(db, current_user.id, limit)
    return _saved_words(rows, limit)


@router.get("/auth/me/vocabulary/liked", response_model=SavedWordsResponse)
async def liked_words(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(default=vocabulary_service.PAGE_DEFAULT_LIMIT),
    lastId: Optional[int] = Query(default=None),
):
    limit = vocabulary_service.clamp_limit(
        limit, vocabulary_service.PAGE_DEFAULT_LIMIT, vocabulary_service.PAGE_MAX_LIMIT
    )
    rows = await vocabulary_service.list_words(db, current_user.id, limit, last_id=lastId, liked_only=True)
    return _saved_words(rows, limit)


@router.get("/auth/me/vocabulary", response_model=SavedWordsResponse)
async def my_words(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(default=vocabulary_service.PAGE_DEFAULT_LIMIT),
    lastId: Optional[int] = Query(default=None),
):
    limit = vocabulary_service.clamp_limit(
        limit, vocabulary_service.PAGE_DEFAULT_LIMIT, vocabulary_service.PAGE_MAX_LIMIT
    )
    rows = await vocabulary_service.list_words(db, current_user.id, limit, last_id=lastId)
    return _saved_words(rows, limit)


@router.patch("/auth/me/vocabulary/{vocab_id}/like", response_model=LikeWordResponse)
async def like_word(vocab_id: int, data: LikeWordRequest, current_user: CurrentUserDep, db: SessionDep):
    await vocabulary_service.set_liked(db, current_user.id, vocab_id, data.liked)
    return LikeWordResponse(vocabId=vocab_id, isLiked=data.liked)
