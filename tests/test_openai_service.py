from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError

from app.core.errors import UpstreamError
from app.services.openai_service import OpenAIService, _loads_json_object, _parse_corrections


def _chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    client.audio.transcriptions.create = AsyncMock()
    client.audio.speech.create = AsyncMock()
    return client


def _connection_error():
    return APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/x"))


class TestParsing:
    def test_corrections_object(self):
        raw = '{"corrections": [{"original": "않", "corrected": "안", "type": "맞춤법 오류"}]}'
        assert _parse_corrections(raw) == [{"original": "않", "corrected": "안", "type": "맞춤법 오류"}]

    def test_corrections_bare_list(self):
        raw = '[{"original": "a", "corrected": "b"}]'
        assert _parse_corrections(raw) == [{"original": "a", "corrected": "b", "type": ""}]

    def test_corrections_with_prose(self):
        """Should recover the trailing JSON block after chatter."""
        raw = 'Here you go:\n{"corrections": [{"original": "a", "corrected": "b", "type": "t"}]}'
        assert len(_parse_corrections(raw)) == 1

    @pytest.mark.parametrize("raw", ["", "no json here", '{"corrections": "nope"}', '[1, 2, {"original": "x"}]'])
    def test_corrections_garbage(self, raw):
        assert _parse_corrections(raw) == []

    def test_loads_json_object_rejects_lists(self):
        assert _loads_json_object("[1, 2]") is None


class TestMockMode:
    @pytest.mark.asyncio
    async def test_without_key(self):
        """Should return placeholders when no API key is configured."""
        service = OpenAIService()
        assert service.client is None
        assert await service.check_grammar("문장") == []
        assert (await service.chat_reply("sys", "hi"))["reply"] == "[mock] hi"
        assert await service.transcribe(b"audio") == "[mock transcript]"
        assert await service.synthesize("text") == b""
        assert "level 2" in await service.generate_study_text(2)


class TestWithClient:
    @pytest.mark.asyncio
    async def test_grammar(self, client):
        client.chat.completions.create.return_value = _chat_response(
            '{"corrections": [{"original": "되요", "corrected": "돼요", "type": "맞춤법 오류"}]}'
        )
        result = await OpenAIService(client).check_grammar("이렇게 되요")
        assert result[0]["corrected"] == "돼요"

    @pytest.mark.asyncio
    async def test_grammar_blank_input_skips_call(self, client):
        assert await OpenAIService(client).check_grammar("   ") == []
        client.chat.completions.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_chat_reply(self, client):
        client.chat.completions.create.return_value = _chat_response(
            '{"reply": " 좋아요 ", "tip": null, "needRetry": true, "critique": "어순"}'
        )
        turn = await OpenAIService(client).chat_reply("sys", "안녕하세요")
        assert turn == {"reply": "좋아요", "tip": None, "needRetry": True, "critique": "어순"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["plain text", '{"reply": 3}', "[]"])
    async def test_chat_reply_invalid(self, client, content):
        """Should refuse output without a string reply."""
        client.chat.completions.create.return_value = _chat_response(content)
        with pytest.raises(UpstreamError):
            await OpenAIService(client).chat_reply("sys", "hi")

    @pytest.mark.asyncio
    async def test_provider_failure(self, client):
        client.chat.completions.create.side_effect = _connection_error()
        with pytest.raises(UpstreamError):
            await OpenAIService(client).check_grammar("문장")

    @pytest.mark.asyncio
    async def test_transcribe_falls_back(self, client):
        """Should retry with the fallback model when the primary fails."""
        client.audio.transcriptions.create.side_effect = [
            _connection_error(),
            SimpleNamespace(text=" 안녕하세요 "),
        ]
        text = await OpenAIService(client).transcribe(b"audio", "a.m4a")
        assert text == "안녕하세요"
        models = [call.kwargs["model"] for call in client.audio.transcriptions.create.await_args_list]
        assert models == ["gpt-4o-mini-transcribe", "whisper-1"]

    @pytest.mark.asyncio
    async def test_transcribe_both_fail(self, client):
        client.audio.transcriptions.create.side_effect = [_connection_error(), _connection_error()]
        with pytest.raises(UpstreamError):
            await OpenAIService(client).transcribe(b"audio")

    @pytest.mark.asyncio
    async def test_synthesize(self, client):
        client.audio.speech.create.return_value = SimpleNamespace(content=b"ID3mp3")
        assert await OpenAIService(client).synthesize("안녕") == b"ID3mp3"

    @pytest.mark.asyncio
    async def test_study_text_empty(self, client):
        client.chat.completions.create.return_value = _chat_response("   ")
        with pytest.raises(UpstreamError):
            await OpenAIService(client).generate_study_text(1)
