import pytest

from app.core.logging import (
    REDACTED,
    add_request_context,
    bind_user,
    redact_secrets,
    request_id_var,
)


class TestProcessors:
    def test_redacts_credentials(self):
        event = redact_secrets(None, "info", {"event": "x", "password": "hunter2", "email": "a@example.com"})
        assert event["password"] == REDACTED
        assert event["email"] == "a@example.com"

    def test_adds_request_and_user(self):
        token = request_id_var.set("req-1")
        try:
            bind_user("user-1")
            event = add_request_context(None, "info", {"event": "x"})
        finally:
            request_id_var.reset(token)
            bind_user(None)
        assert event["request_id"] == "req-1"
        assert event["user_id"] == "user-1"

    def test_explicit_fields_win(self):
        bind_user("user-1")
        try:
            event = add_request_context(None, "info", {"event": "x", "user_id": "other"})
        finally:
            bind_user(None)
        assert event["user_id"] == "other"


class TestRequestId:
    @pytest.mark.asyncio
    async def test_minted(self, client):
        response = await client.get("/")
        assert len(response.headers["x-request-id"]) == 36

    @pytest.mark.asyncio
    async def test_reused_from_caller(self, client):
        response = await client.get("/", headers={"X-Request-ID": "trace-abc"})
        assert response.headers["x-request-id"] == "trace-abc"
