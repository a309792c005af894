import pytest

from tramoo.services.chat_service import CONTEXT_MESSAGES, WELCOME_MESSAGE

API = "/api/v1"


async def _send(client, account, text, session_id="trip-1"):
    return await client.post(
        f"{API}/chat/message", json={"session_id": session_id, "message": text}, headers=account.headers
    )


class TestHistory:
    @pytest.mark.asyncio
    async def test_new_session_starts_with_welcome(self, client, register_user):
        account = await register_user("Ada")
        response = await client.get(f"{API}/chat/history/trip-1", headers=account.headers)
        assert response.status_code == 200
        messages = response.json()
        assert len(messages) == 1
        assert messages[0]["sender"] == "bot"
        assert messages[0]["message"] == WELCOME_MESSAGE

    @pytest.mark.asyncio
    async def test_history_requires_login(self, client):
        assert (await client.get(f"{API}/chat/history/trip-1")).status_code == 401

    @pytest.mark.asyncio
    async def test_history_is_cached_per_user_and_session(self, client, register_user, response_cache):
        account = await register_user("Ada")
        first = await client.get(f"{API}/chat/history/trip-1", headers=account.headers)
        assert len(response_cache) == 1
        second = await client.get(f"{API}/chat/history/trip-1", headers=account.headers)
        assert first.json() == second.json()

    @pytest.mark.asyncio
    async def test_sessions_are_private(self, client, register_user, clock):
        ada = await register_user("Ada")
        bob = await register_user("Bob")
        await _send(client, ada, "Where should I go in May?")
        response = await client.get(f"{API}/chat/history/trip-1", headers=bob.headers)
        assert [m["message"] for m in response.json()] == [WELCOME_MESSAGE]


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_exchange(self, client, register_user, assistant):
        account = await register_user("Ada")
        response = await _send(client, account, "Best time for Lisbon?")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        user_msg, bot_msg = body["messages"]
        assert (user_msg["sender"], user_msg["message"]) == ("user", "Best time for Lisbon?")
        assert (bot_msg["sender"], bot_msg["message"]) == ("bot", assistant.reply_text)
        history, message = assistant.calls[0]
        assert message == "Best time for Lisbon?"
        assert history[-1] == ("user", "Best time for Lisbon?")

    @pytest.mark.asyncio
    async def test_send_invalidates_cached_history(self, client, register_user):
        account = await register_user("Ada")
        await client.get(f"{API}/chat/history/trip-1", headers=account.headers)
        await _send(client, account, "Hello")
        response = await client.get(f"{API}/chat/history/trip-1", headers=account.headers)
        assert [m["sender"] for m in response.json()] == ["bot", "user", "bot"]

    @pytest.mark.asyncio
    async def test_context_is_limited_to_recent_messages(self, client, register_user, assistant, clock):
        account = await register_user("Ada")
        await client.get(f"{API}/chat/history/trip-1", headers=account.headers)
        for i in range(4):
            response = await _send(client, account, f"question {i}")
            assert response.status_code == 200
            clock.advance(2)
        history, message = assistant.calls[-1]
        assert len(history) == CONTEXT_MESSAGES
        assert history[-1] == ("user", "question 3")
        assert history[-2] == ("bot", assistant.reply_text)

    @pytest.mark.asyncio
    async def test_rapid_messages_are_throttled(self, client, register_user, clock):
        """A second message inside the interval gets 429 with Retry-After."""
        account = await register_user("Ada")
        assert (await _send(client, account, "one")).status_code == 200
        throttled = await _send(client, account, "two")
        assert throttled.status_code == 429
        assert throttled.headers["Retry-After"] == "2"
        assert throttled.json()["code"] == "RATE_LIMITED"

        clock.advance(2)
        assert (await _send(client, account, "two")).status_code == 200

    @pytest.mark.asyncio
    async def test_throttle_is_per_user(self, client, register_user):
        ada = await register_user("Ada")
        bob = await register_user("Bob")
        assert (await _send(client, ada, "hi")).status_code == 200
        assert (await _send(client, bob, "hi")).status_code == 200

    @pytest.mark.asyncio
    async def test_empty_message_rejected(self, client, register_user):
        account = await register_user("Ada")
        response = await _send(client, account, "")
        assert response.status_code == 400


class TestClearHistory:
    @pytest.mark.asyncio
    async def test_clear_then_fresh_welcome(self, client, register_user):
        account = await register_user("Ada")
        await _send(client, account, "Hello")
        await client.get(f"{API}/chat/history/trip-1", headers=account.headers)
        response = await client.delete(f"{API}/chat/history/trip-1", headers=account.headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Chat history cleared successfully"
        history = await client.get(f"{API}/chat/history/trip-1", headers=account.headers)
        assert [m["message"] for m in history.json()] == [WELCOME_MESSAGE]

    @pytest.mark.asyncio
    async def test_clear_leaves_other_sessions(self, client, register_user, clock):
        account = await register_user("Ada")
        await _send(client, account, "kept", session_id="trip-2")
        await client.delete(f"{API}/chat/history/trip-1", headers=account.headers)
        history = await client.get(f"{API}/chat/history/trip-2", headers=account.headers)
        assert [m["message"] for m in history.json()][0] == "kept"
