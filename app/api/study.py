from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, StrictInt

from app.core.deps import CurrentUserDep, OpenAIDep, SessionDep
from app.core.time import kst_today
from app.services import daily_study, progress

router = APIRouter(tags=["study"])

# ============ Schemas ============

class ProgressLevelResponse(BaseModel):
    success: bool = True
    progress_level: int


class WeekResult(BaseModel):
    progress_map: Dict[str, int]


class WeekProgressResponse(BaseModel):
    success: bool = True
    result: WeekResult


class ProgressUpdateRequest(BaseModel):
    date: date
    step: StrictInt


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class GenerateQuoteRequest(BaseModel):
    level: Optional[int] = None


class GenerateQuoteResponse(BaseModel):
    success: bool = True
    result: str
    studyId: int
    level: int


class HandwritingRequest(BaseModel):
    study_id: int
    content: str = ""


class HandwritingResponse(BaseModel):
    success: bool = True
    result: str

# ============ Endpoints ============

@router.get("/study/progress/week/{day}", response_model=WeekProgressResponse)
async def get_week_progress(day: date, current_user: CurrentUserDep, db: SessionDep):
    levels = await progress.get_week_levels(db, current_user.id, day)
    return WeekProgressResponse(result=WeekResult(progress_map=levels))


@router.get("/study/progress/{day}", response_model=ProgressLevelResponse)
async def get_progress(day: date, current_user: CurrentUserDep, db: SessionDep):
    level = await progress.get_level(db, current_user.id, day)
    return ProgressLevelResponse(progress_level=level)


@router.patch("/study/progress", response_model=MessageResponse)
async def update_progress(data: ProgressUpdateRequest, current_user: CurrentUserDep, db: SessionDep):
    await progress.mark_step(db, current_user.id, data.date, data.step)
    return MessageResponse(message=f"Step {data.step} saved")


@router.post("/gpt/generate-quote", response_model=GenerateQuoteResponse)
async def generate_quote(
    current_user: CurrentUserDep,
    db: SessionDep,
    ai: OpenAIDep,
    data: Optional[GenerateQuoteRequest] = None,
    refresh: int = Query(default=0),
):
    """Today's study passage; reused for the day unless refresh=1"""
    study_id, content, level = await daily_study.get_or_generate(
        db,
        ai,
        current_user.id,
        kst_today(),
        requested_level=data.level if data else None,
        refresh=refresh == 1,
    )
    return GenerateQuoteResponse(result=content, studyId=study_id, level=level)


@router.post("/gpt/study/handwriting", response_model=MessageResponse)
async def save_handwriting(data: HandwritingRequest, current_user: CurrentUserDep, db: SessionDep):
    await daily_study.save_handwriting(db, current_user.id, data.study_id, data.content)
    return MessageResponse(message="Handwriting saved")


@router.get("/gpt/study/handwriting/{study_id}", response_model=HandwritingResponse)
async def get_handwriting(study_id: int, current_user: CurrentUserDep, db: SessionDep):
    return HandwritingResponse(result=await daily_study.get_handwriting(db, current_user.id, study_id))
