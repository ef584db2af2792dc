import json
import re
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from app.core.config import settings
from app.core.errors import UpstreamError
from app.core.logging import LatencyLogger, get_logger

logger = get_logger(__name__)

GRAMMAR_SYSTEM_PROMPT = """Pick out only the short fragments of the Korean sentence below that contain
spelling, spacing or grammar mistakes, and return them as a JSON object:
{"corrections": [{"original": "않", "corrected": "안", "type": "맞춤법 오류"}]}
Rules:
- never return a whole sentence
- include only the wrong fragments
- respond with JSON only
- type is one of "맞춤법 오류", "띄어쓰기 오류", "문법 오류"
"""

STUDY_TEXT_SYSTEM_PROMPT = """You write practical vocabulary and literacy reading passages in Korean
for people in their twenties who are starting their careers. Cover everyday topics such as economy,
work, organisational culture, technology, housing, policy, psychology or culture. No politics,
religion or current affairs. Write 480-520 Korean characters of plain prose: no title, numbering,
citations, markdown or character counts."""

STUDY_LEVEL_HINTS = {
    1: "Use easy everyday words and short sentences.",
    2: "Use common workplace vocabulary with a few Sino-Korean terms.",
    3: "Use denser vocabulary typical of news and reports.",
    4: "Use advanced, abstract vocabulary and complex sentences.",
}

_TRAILING_JSON = re.compile(r"\{[\s\S]*\}$")


class OpenAIService:
    def __init__(self, client: Optional[AsyncOpenAI] = None):
        if client is None and settings.openai_api_key:
            client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.openai_timeout_seconds,
            )
        self.client = client
        self.model = settings.openai_model

    async def check_grammar(self, content: str) -> List[Dict[str, str]]:
        """
        Ask the model for spelling/spacing/grammar corrections.
        Output that is not the expected JSON yields an empty list.
        """
        if not content or not content.strip():
            return []

        if not self.client:
            logger.warning("OpenAI API key is not configured. Returning mock grammar result.")
            return []

        try:
            with LatencyLogger("openai.grammar", logger):
                response = await self.client.chat.completions.create(
                    model=settings.grammar_model,
                    messages=[
                        {"role": "system", "content": GRAMMAR_SYSTEM_PROMPT},
                        {"role": "user", "content": content},
                    ],
                )
        except OpenAIError as e:
            logger.error("openai.grammar.failed", error=str(e))
            raise UpstreamError("Grammar check failed") from e

        return _parse_corrections(response.choices[0].message.content or "")

    async def generate_study_text(self, level: int) -> str:
        if not self.client:
            logger.warning("OpenAI API key is not configured. Returning mock study text.")
            return f"[mock level {level}] 오늘의 학습 글입니다."

        hint = STUDY_LEVEL_HINTS.get(level, STUDY_LEVEL_HINTS[1])
        try:
            with LatencyLogger("openai.study_text", logger):
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": STUDY_TEXT_SYSTEM_PROMPT},
                        {"role": "user", "content": f"Difficulty level {level}. {hint}"},
                    ],
                    temperature=0.7,
                )
        except OpenAIError as e:
            logger.error("openai.study_text.failed", level=level, error=str(e))
            raise UpstreamError("Study text generation failed") from e

        text = (response.choices[0].message.content or "").strip()
        if not text:
            raise UpstreamError("Study text generation returned nothing")
        return text

    async def chat_reply(self, system_prompt: str, user_text: str, temperature: float = 0.6) -> Dict[str, Any]:
        """
        Conversation turn. The model must answer with a JSON object holding
        a string "reply" plus optional "tip", "needRetry" and "critique".
        """
        if not self.client:
            logger.warning("OpenAI API key is not configured. Returning mock chat reply.")
            return {"reply": f"[mock] {user_text}", "tip": None, "needRetry": False, "critique": None}

        try:
            with LatencyLogger("openai.chat", logger):
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_text},
                    ],
                    temperature=temperature,
                    max_tokens=600,
                )
        except OpenAIError as e:
            logger.error("openai.chat.failed", error=str(e))
            raise UpstreamError("Chat completion failed") from e

        raw = (response.choices[0].message.content or "").strip()
        data = _loads_json_object(raw)
        if not data or not isinstance(data.get("reply"), str):
            logger.error("openai.chat.invalid_reply", raw_length=len(raw))
            raise UpstreamError("Chat completion returned an invalid reply")

        return {
            "reply": data["reply"].strip(),
            "tip": str(data["tip"]).strip() if data.get("tip") else None,
            "needRetry": bool(data.get("needRetry")),
            "critique": str(data["critique"]).strip() if data.get("critique") else None,
        }

    async def transcribe(self, audio: bytes, filename: str = "audio.m4a") -> str:
        """Speech-to-text with the primary model, then the fallback model"""
        if not self.client:
            logger.warning("OpenAI API key is not configured. Returning mock transcript.")
            return "[mock transcript]"

        last_error: Optional[Exception] = None
        for model in (settings.stt_model, settings.stt_fallback_model):
            try:
                with LatencyLogger("openai.stt", logger):
                    result = await self.client.audio.transcriptions.create(
                        model=model,
                        file=(filename, audio),
                    )
                return (result.text or "").strip()
            except OpenAIError as e:
                logger.warning("openai.stt.failed", model=model, error=str(e))
                last_error = e

        raise UpstreamError("Speech-to-text failed") from last_error

    async def synthesize(self, text: str) -> bytes:
        """Text-to-speech, MP3 bytes"""
        if not self.client:
            logger.warning("OpenAI API key is not configured. Returning empty mock audio.")
            return b""

        try:
            with LatencyLogger("openai.tts", logger):
                response = await self.client.audio.speech.create(
                    model=settings.tts_model,
                    voice=settings.tts_voice,
                    input=text,
                    response_format="mp3",
                )
        except OpenAIError as e:
            logger.error("openai.tts.failed", error=str(e))
            raise UpstreamError("Text-to-speech failed") from e
        return response.content


def _loads_json_object(raw: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        # Models sometimes prepend prose; keep the trailing JSON block
        match = _TRAILING_JSON.search(raw)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def _parse_corrections(raw: str) -> List[Dict[str, str]]:
    raw = raw.strip()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        data = _loads_json_object(raw)

    if isinstance(data, dict):
        data = data.get("corrections", [])
    if not isinstance(data, list):
        return []

    corrections = []
    for item in data:
        if not isinstance(item, dict) or "original" not in item or "corrected" not in item:
            continue
        corrections.append({
            "original": str(item["original"]),
            "corrected": str(item["corrected"]),
            "type": str(item.get("type", "")),
        })
    return corrections


openai_service = OpenAIService()


def get_openai_service() -> OpenAIService:
    return openai_service
