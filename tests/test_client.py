import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from jose import jwt

from tramoo.client import ApiError, FileStorage, MemoryStorage, SessionExpired, SessionStore, TramooClient
from tramoo.core.config import settings

USER = {"id": "u-1", "name": "Ada", "email": "ada@example.com", "role": "user"}


def _tokens(access, refresh):
    return {"access_token": access, "refresh_token": refresh, "token_type": "bearer", "user": USER}


def _session(access="old-access", refresh="old-refresh"):
    return SessionStore(MemoryStorage({"access_token": access, "refresh_token": refresh, "user": USER}))


class TestSessionStore:
    def test_header_only_with_token(self):
        assert SessionStore().authorization_header() == {}
        assert _session("abc").authorization_header() == {"Authorization": "Bearer abc"}

    def test_file_storage_survives_restart(self, tmp_path):
        path = tmp_path / "session.json"
        store = SessionStore(FileStorage(path))
        store.save("a1", "r1", USER)

        restored = SessionStore(FileStorage(path))
        assert (restored.access_token, restored.refresh_token, restored.user) == ("a1", "r1", USER)

        restored.clear()
        assert not path.exists()
        assert not SessionStore(FileStorage(path)).is_authenticated

    def test_unreadable_file_is_ignored(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("{not json", encoding="utf-8")
        assert not SessionStore(FileStorage(path)).is_authenticated

    def test_refresh_keeps_user_when_omitted(self):
        store = _session()
        store.save("new-access")
        assert store.refresh_token == "old-refresh"
        assert store.user == USER


class TestRequests:
    @pytest.mark.asyncio
    async def test_bearer_attached_only_when_held(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get("authorization"))
            return httpx.Response(200, json=USER)

        async with TramooClient("http://api.test/api/v1", transport=httpx.MockTransport(handler)) as client:
            await client.request("GET", "/auth/me")
            client.session.save("tok", "ref", USER)
            await client.request("GET", "/auth/me")
        assert seen == [None, "Bearer tok"]

    @pytest.mark.asyncio
    async def test_error_payload_surfaces(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"message": "Not authorized to perform this action", "code": "FORBIDDEN"})

        async with TramooClient("http://api.test/api/v1", _session(), transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ApiError) as exc:
                await client.delete_blog("b-1")
        assert exc.value.status_code == 403
        assert exc.value.code == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_unauthenticated_401_is_plain_error(self):
        """Without a session there is nothing to refresh or expire."""
        expired = []

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Invalid credentials"})

        client = TramooClient(
            "http://api.test/api/v1", transport=httpx.MockTransport(handler), on_session_expired=lambda: expired.append(1)
        )
        async with client:
            with pytest.raises(ApiError) as exc:
                await client.login("ada@example.com", "nope")
        assert not isinstance(exc.value, SessionExpired)
        assert expired == []


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refreshes_once_and_retries(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append((request.url.path, request.headers.get("authorization")))
            if request.url.path.endswith("/auth/refresh"):
                assert json.loads(request.content) == {"refresh_token": "old-refresh"}
                return httpx.Response(200, json=_tokens("new-access", "new-refresh"))
            if request.headers.get("authorization") == "Bearer new-access":
                return httpx.Response(200, json=USER)
            return httpx.Response(401, json={"message": "Not authorized"})

        session = _session()
        async with TramooClient("http://api.test/api/v1", session, transport=httpx.MockTransport(handler)) as client:
            assert await client.me() == USER
        assert [path.rsplit("/", 1)[-1] for path, _ in calls] == ["me", "refresh", "me"]
        assert (session.access_token, session.refresh_token) == ("new-access", "new-refresh")

    @pytest.mark.asyncio
    async def test_failed_refresh_expires_session(self):
        expired = []

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Not authorized"})

        storage = MemoryStorage({"access_token": "a", "refresh_token": "r", "user": USER})
        session = SessionStore(storage)
        client = TramooClient(
            "http://api.test/api/v1",
            session,
            transport=httpx.MockTransport(handler),
            on_session_expired=lambda: expired.append(True),
        )
        async with client:
            with pytest.raises(SessionExpired):
                await client.me()
        assert expired == [True]
        assert not session.is_authenticated
        assert storage.load() == {}

    @pytest.mark.asyncio
    async def test_still_401_after_refresh_expires_session(self):
        """A refreshed token that is also refused does not loop."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            if request.url.path.endswith("/auth/refresh"):
                return httpx.Response(200, json=_tokens("new-access", "new-refresh"))
            return httpx.Response(401, json={"message": "Not authorized"})

        session = _session()
        async with TramooClient("http://api.test/api/v1", session, transport=httpx.MockTransport(handler)) as client:
            assert await client.check_auth_status() is None
        assert len(calls) == 3
        assert not session.is_authenticated


class TestRateLimitRetry:
    @pytest.mark.asyncio
    async def test_waits_retry_after(self):
        responses = [httpx.Response(429, headers={"Retry-After": "2"}), httpx.Response(200, json={"blogs": []})]
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        async with TramooClient(
            "http://api.test/api/v1", transport=httpx.MockTransport(handler), sleep=fake_sleep
        ) as client:
            assert await client.list_blogs() == {"blogs": []}
        assert delays == [2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        calls = []

        async def fake_sleep(seconds):
            pass

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429, json={"message": "Too many requests, please try again later"})

        async with TramooClient(
            "http://api.test/api/v1",
            transport=httpx.MockTransport(handler),
            sleep=fake_sleep,
            max_rate_limit_retries=2,
        ) as client:
            with pytest.raises(ApiError) as exc:
                await client.list_blogs()
        assert exc.value.status_code == 429
        assert len(calls) == 3


class TestLogout:
    @pytest.mark.asyncio
    async def test_network_failure_still_clears(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        session = _session()
        async with TramooClient("http://api.test/api/v1", session, transport=httpx.MockTransport(handler)) as client:
            await client.logout()
        assert not session.is_authenticated

    @pytest.mark.asyncio
    async def test_server_error_still_clears(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"message": "Server error"})

        session = _session()
        async with TramooClient("http://api.test/api/v1", session, transport=httpx.MockTransport(handler)) as client:
            await client.logout()
        assert session.refresh_token is None


class TestAgainstServer:
    @pytest.mark.asyncio
    async def test_stale_session_at_startup(self, app):
        """An expired access token plus a dead refresh token leaves the client logged out."""
        expired = []
        transport = httpx.ASGITransport(app=app)
        async with TramooClient("http://testserver/api/v1", transport=transport) as client:
            user = await client.register("Ada", "ada@example.com", "password123")
            stale_access = jwt.encode(
                {"id": user["id"], "exp": datetime.now(timezone.utc) - timedelta(minutes=5)},
                settings.JWT_ACCESS_SECRET,
                algorithm=settings.JWT_ALGORITHM,
            )
            first_refresh = client.session.refresh_token
            await client.refresh()

            restarted = TramooClient(
                "http://testserver/api/v1",
                SessionStore(MemoryStorage({"access_token": stale_access, "refresh_token": first_refresh})),
                transport=transport,
                on_session_expired=lambda: expired.append(True),
            )
            async with restarted:
                assert await restarted.check_auth_status() is None
            assert expired == [True]
            assert not restarted.session.is_authenticated

    @pytest.mark.asyncio
    async def test_expired_access_token_is_refreshed(self, app):
        transport = httpx.ASGITransport(app=app)
        async with TramooClient("http://testserver/api/v1", transport=transport) as client:
            user = await client.register("Ada", "ada@example.com", "password123")
            client.session.access_token = jwt.encode(
                {"id": user["id"], "exp": datetime.now(timezone.utc) - timedelta(minutes=5)},
                settings.JWT_ACCESS_SECRET,
                algorithm=settings.JWT_ALGORITHM,
            )
            me = await client.check_auth_status()
            assert me["id"] == user["id"]
            assert client.session.is_authenticated

    @pytest.mark.asyncio
    async def test_round_trip(self, app):
        transport = httpx.ASGITransport(app=app)
        async with TramooClient("http://testserver/api/v1", transport=transport) as client:
            await client.register("Ada", "ada@example.com", "password123")
            blog = await client.create_blog(title="Oaxaca", content="Mole and mezcal.", country="Mexico")
            like = await client.toggle_like(blog["id"])
            assert like["is_liked"] is True
            comment = await client.add_comment(blog["id"], "Go in November")
            fetched = await client.get_blog(blog["id"])
            assert fetched["comments"][0]["id"] == comment["id"]
            await client.logout()
            assert not client.session.is_authenticated
