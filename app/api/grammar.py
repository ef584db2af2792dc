from typing import List

from fastapi import APIRouter
from pydantic import BaseModel

from app.core.deps import OpenAIDep
from app.core.errors import ValidationError

router = APIRouter(prefix="/grammar", tags=["ai"])


class GrammarCheckRequest(BaseModel):
    content: str = ""


class Correction(BaseModel):
    original: str
    corrected: str
    type: str


class GrammarCheckResponse(BaseModel):
    success: bool = True
    result: List[Correction]


@router.post("/check", response_model=GrammarCheckResponse)
async def check_grammar(data: GrammarCheckRequest, ai: OpenAIDep):
    """Only the wrong fragments are returned, never whole sentences"""
    if not data.content.strip():
        raise ValidationError("content is required")
    corrections = await ai.check_grammar(data.content)
    return GrammarCheckResponse(result=[Correction(**c) for c in corrections])
