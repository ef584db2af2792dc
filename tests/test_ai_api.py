import base64
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from app.api import voice
from app.core.time import kst_today
from app.models import TodayStudy
from app.services.openai_service import OpenAIService, get_openai_service


@pytest.fixture
def ai(application):
    """Replace the provider with an AsyncMock-backed service."""
    service = AsyncMock(spec=OpenAIService)
    application.dependency_overrides[get_openai_service] = lambda: service
    return service


class TestGrammar:
    @pytest.mark.asyncio
    async def test_check(self, client, ai):
        ai.check_grammar.return_value = [{"original": "않", "corrected": "안", "type": "맞춤법 오류"}]
        response = await client.post("/api/grammar/check", json={"content": "밥을 않 먹었다"})
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "result": [{"original": "않", "corrected": "안", "type": "맞춤법 오류"}],
        }

    @pytest.mark.asyncio
    async def test_empty_content(self, client, ai):
        response = await client.post("/api/grammar/check", json={"content": " "})
        assert response.status_code == 400
        ai.check_grammar.assert_not_awaited()


class TestVoice:
    @pytest.mark.asyncio
    async def test_hello_json(self, client, ai):
        ai.synthesize.return_value = b"mp3-bytes"
        response = await client.get("/api/voice/hello?mode=daily")
        body = response.json()
        assert body["mode"] == "daily"
        assert body["mimeType"] == "audio/mpeg"
        assert base64.b64decode(body["audioBase64"]) == b"mp3-bytes"

    @pytest.mark.asyncio
    async def test_hello_stream(self, client, ai):
        ai.synthesize.return_value = b"mp3-bytes"
        response = await client.get("/api/voice/hello", headers={"Accept": "audio/mpeg"})
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.content == b"mp3-bytes"

    @pytest.mark.asyncio
    async def test_prompts_unknown_mode(self, client):
        body = (await client.get("/api/voice/prompts?mode=unknown")).json()
        assert body["mode"] == "job"
        assert body["title"] == "취업준비"

    @pytest.mark.asyncio
    async def test_chat(self, client, ai):
        ai.transcribe.return_value = "저는 꼼꼼합니다"
        ai.chat_reply.return_value = {"reply": "좋아요!", "tip": None, "needRetry": True, "critique": "짧아요"}
        ai.synthesize.return_value = b"reply-mp3"

        response = await client.post(
            "/api/voice/chat",
            files={"audio": ("a.m4a", b"fake-audio", "audio/mp4")},
            data={"mode": "work", "temperature": "0.2"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["userText"] == "저는 꼼꼼합니다"
        assert body["text"] == "좋아요!"
        assert body["needRetry"] is True
        assert body["hint"] == "다시 한 번 해볼까요?"
        assert ai.chat_reply.await_args.kwargs["temperature"] == 0.2
        assert "[업무 모드 지시]" in ai.chat_reply.await_args.args[0]

    @pytest.mark.asyncio
    async def test_chat_stream(self, client, ai):
        ai.transcribe.return_value = "안녕"
        ai.chat_reply.return_value = {"reply": "안녕!", "tip": None, "needRetry": False, "critique": None}
        ai.synthesize.return_value = b"reply-mp3"
        response = await client.post("/api/voice/chat?as=stream", files={"audio": ("a.m4a", b"x", "audio/mp4")})
        assert response.content == b"reply-mp3"

    @pytest.mark.asyncio
    async def test_chat_empty_transcript(self, client, ai):
        """Should answer 400 when nothing was recognised."""
        ai.transcribe.return_value = ""
        response = await client.post("/api/voice/chat", files={"audio": ("a.m4a", b"x", "audio/mp4")})
        assert response.status_code == 400
        ai.chat_reply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_chat_without_audio(self, client, ai):
        response = await client.post("/api/voice/chat", data={"mode": "job"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_chat_oversized_audio(self, client, ai, monkeypatch):
        """Should reject uploads past the size limit before calling the provider."""
        monkeypatch.setattr(voice, "MAX_AUDIO_BYTES", 4)
        response = await client.post("/api/voice/chat", files={"audio": ("a.m4a", b"x" * 10, "audio/mp4")})
        assert response.status_code == 400
        assert response.json()["details"] == {"max_bytes": 4}
        ai.transcribe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_chat_audio_at_limit(self, client, ai, monkeypatch):
        monkeypatch.setattr(voice, "MAX_AUDIO_BYTES", 4)
        ai.transcribe.return_value = "안녕"
        ai.chat_reply.return_value = {"reply": "네", "tip": None, "needRetry": False, "critique": None}
        ai.synthesize.return_value = b"mp3"
        response = await client.post("/api/voice/chat", files={"audio": ("a.m4a", b"abcd", "audio/mp4")})
        assert response.status_code == 200
        assert ai.transcribe.await_args.args[0] == b"abcd"


class TestGenerateQuote:
    @pytest.mark.asyncio
    async def test_reused_within_day(self, client, ai, make_user, db, auth_headers):
        """Should generate once per day unless refresh=1."""
        user = await make_user()
        headers = auth_headers(user.id)
        ai.generate_study_text.side_effect = ["first passage", "second passage"]

        first = (await client.post("/api/gpt/generate-quote", json={"level": 2}, headers=headers)).json()
        again = (await client.post("/api/gpt/generate-quote", headers=headers)).json()
        refreshed = (await client.post("/api/gpt/generate-quote?refresh=1", headers=headers)).json()

        assert first["result"] == again["result"] == "first passage"
        assert first["level"] == 2
        assert again["level"] == 1
        assert refreshed["result"] == "second passage"
        assert first["studyId"] == refreshed["studyId"]
        assert ai.generate_study_text.await_count == 2

        rows = (await db.execute(select(TodayStudy).where(TodayStudy.user_id == user.id))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_keeps_progress(self, client, ai, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user.id)
        ai.generate_study_text.return_value = "passage"

        quote = (await client.post("/api/gpt/generate-quote", headers=headers)).json()
        await client.patch("/api/study/progress", json={"date": quote_date(), "step": 1}, headers=headers)
        await client.post("/api/gpt/generate-quote?refresh=1", headers=headers)

        level = (await client.get(f"/api/study/progress/{quote_date()}", headers=headers)).json()
        assert level["progress_level"] == 1


def quote_date() -> str:
    return kst_today().isoformat()
