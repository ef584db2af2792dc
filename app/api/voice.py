import base64
from typing import Optional

from fastapi import APIRouter, File, Form, Query, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from app.core.deps import OpenAIDep
from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.services import voice_prompts

logger = get_logger(__name__)

router = APIRouter(prefix="/voice", tags=["ai"])

MP3_MIME_TYPE = "audio/mpeg"
MAX_AUDIO_BYTES = 20 * 1024 * 1024

# ============ Schemas ============

class VoicePromptResponse(BaseModel):
    success: bool = True
    mode: str
    title: str
    prompt: str


class VoiceHelloResponse(BaseModel):
    success: bool = True
    mode: str
    text: str
    audioBase64: str
    mimeType: str = MP3_MIME_TYPE


class VoiceChatResponse(BaseModel):
    success: bool = True
    mode: str
    userText: str
    text: str
    audioBase64: str
    mimeType: str = MP3_MIME_TYPE
    hint: Optional[str] = None
    needRetry: bool = False
    critique: Optional[str] = None

# ============ Helpers ============

def wants_stream(request: Request, as_: Optional[str]) -> bool:
    """Raw MP3 when ?as=stream or the client accepts audio/mpeg"""
    return as_ == "stream" or MP3_MIME_TYPE in request.headers.get("accept", "")


def mp3_response(audio: bytes) -> Response:
    return Response(content=audio, media_type=MP3_MIME_TYPE)

# ============ Endpoints ============

@router.get("/prompts", response_model=VoicePromptResponse)
async def get_voice_prompt(mode: str = Query(default=voice_prompts.DEFAULT_MODE)):
    mode = voice_prompts.normalize_mode(mode)
    return VoicePromptResponse(
        mode=mode,
        title=voice_prompts.mode_title(mode),
        prompt=voice_prompts.guide_text(mode),
    )


@router.get("/hello", response_model=VoiceHelloResponse)
async def voice_hello(
    request: Request,
    ai: OpenAIDep,
    mode: str = Query(default=voice_prompts.DEFAULT_MODE),
    as_: Optional[str] = Query(default=None, alias="as"),
):
    """The bot opens the conversation with a situation and a question"""
    mode = voice_prompts.normalize_mode(mode)
    text = voice_prompts.pick_starter(mode)
    audio = await ai.synthesize(text)

    if wants_stream(request, as_):
        return mp3_response(audio)
    return VoiceHelloResponse(
        mode=mode,
        text=text,
        audioBase64=base64.b64encode(audio).decode("ascii"),
    )


@router.post("/chat", response_model=VoiceChatResponse)
async def voice_chat(
    request: Request,
    ai: OpenAIDep,
    audio: UploadFile = File(...),
    mode: str = Form(default=voice_prompts.DEFAULT_MODE),
    systemPrompt: str = Form(default=""),
    temperature: float = Form(default=0.6),
    as_: Optional[str] = Query(default=None, alias="as"),
):
    """Speech in, speech out: STT, then a chat turn, then TTS of the reply"""
    # One byte past the limit is enough to tell an oversized upload apart
    payload = await audio.read(MAX_AUDIO_BYTES + 1)
    if not payload:
        raise ValidationError("audio file is required")
    if len(payload) > MAX_AUDIO_BYTES:
        raise ValidationError("audio file is too large", details={"max_bytes": MAX_AUDIO_BYTES})

    user_text = await ai.transcribe(payload, audio.filename or "audio.m4a")
    if not user_text:
        raise ValidationError("Could not extract any speech from the audio")

    mode = voice_prompts.normalize_mode(mode)
    turn = await ai.chat_reply(
        voice_prompts.system_prompt(mode, systemPrompt),
        user_text,
        temperature=temperature,
    )
    reply_audio = await ai.synthesize(turn["reply"])
    logger.info("voice.chat.completed", mode=mode, need_retry=turn["needRetry"])

    if wants_stream(request, as_):
        return mp3_response(reply_audio)
    return VoiceChatResponse(
        mode=mode,
        userText=user_text,
        text=turn["reply"],
        audioBase64=base64.b64encode(reply_audio).decode("ascii"),
        hint=turn["tip"] or (voice_prompts.RETRY_HINT if turn["needRetry"] else None),
        needRetry=turn["needRetry"],
        critique=turn["critique"],
    )
