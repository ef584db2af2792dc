from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import select

from app.core.deps import SessionDep
from app.models.writing import Prompt

router = APIRouter(prefix="/prompts", tags=["writings"])


class PromptOut(BaseModel):
    id: int
    word: str
    description: Optional[str] = None


@router.get("", response_model=List[PromptOut])
async def list_prompts(db: SessionDep):
    result = await db.execute(select(Prompt).order_by(Prompt.id))
    return [PromptOut.model_validate(p, from_attributes=True) for p in result.scalars().all()]
