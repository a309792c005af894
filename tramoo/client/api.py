"""
Async HTTP client for the TraMoo API.

Attaches the bearer token when one is held, refreshes once on a 401, and
turns an unrecoverable 401 into a cleared session plus the
`on_session_expired` hook (a UI would redirect to its login page there).
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from tramoo.client.session import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000/api/v1"
DEFAULT_RETRY_AFTER = 5.0


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, code: str | None = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.payload = payload


class SessionExpired(ApiError):
    """The access token was rejected and could not be refreshed. Local session is cleared."""

    def __init__(self, message: str = "Session expired. Please log in again."):
        super().__init__(401, message, code="SESSION_EXPIRED")


def _retry_after(response: httpx.Response) -> float:
    try:
        return max(0.0, float(response.headers.get("Retry-After", DEFAULT_RETRY_AFTER)))
    except ValueError:
        return DEFAULT_RETRY_AFTER


def _error_from(response: httpx.Response) -> ApiError:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        message = payload.get("message") or f"Request failed with status {response.status_code}"
        return ApiError(response.status_code, message, payload.get("code"), payload)
    return ApiError(response.status_code, f"Request failed with status {response.status_code}")


class TramooClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session: SessionStore | None = None,
        *,
        on_session_expired: Callable[[], None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
        max_rate_limit_retries: int = 3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.session = session or SessionStore()
        self.on_session_expired = on_session_expired
        self.max_rate_limit_retries = max_rate_limit_retries
        self._sleep = sleep
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "TramooClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # -- transport --------------------------------------------------------

    async def _send(self, method: str, path: str, *, authenticate: bool, **kwargs) -> httpx.Response:
        """One logical request; a 429 is retried after Retry-After."""
        retries = 0
        while True:
            headers = self.session.authorization_header() if authenticate else {}
            response = await self._http.request(method, path, headers=headers, **kwargs)
            if response.status_code != 429 or retries >= self.max_rate_limit_retries:
                return response
            retries += 1
            delay = _retry_after(response)
            logger.info("Rate limited on %s %s, retrying in %.1fs (%d/%d)", method, path, delay, retries, self.max_rate_limit_retries)
            await self._sleep(delay)

    def _expire_session(self) -> None:
        self.session.clear()
        if self.on_session_expired is not None:
            self.on_session_expired()

    async def request(self, method: str, path: str, *, authenticate: bool = True, **kwargs) -> Any:
        response = await self._send(method, path, authenticate=authenticate, **kwargs)
        if response.status_code == 401 and authenticate and self.session.is_authenticated:
            if await self.refresh():
                response = await self._send(method, path, authenticate=True, **kwargs)
            if response.status_code == 401:
                self._expire_session()
                raise SessionExpired()
        if response.is_error:
            raise _error_from(response)
        if not response.content:
            return None
        return response.json()

    async def refresh(self) -> bool:
        """Rotate the token pair. False when there is nothing to refresh or the server refuses."""
        if not self.session.refresh_token:
            return False
        response = await self._send(
            "POST", "/auth/refresh", authenticate=False, json={"refresh_token": self.session.refresh_token}
        )
        if response.status_code != 200:
            logger.info("Token refresh rejected with status %s", response.status_code)
            return False
        self._store_tokens(response.json())
        return True

    def _store_tokens(self, data: dict[str, Any]) -> dict[str, Any]:
        self.session.save(data["access_token"], data["refresh_token"], data.get("user"))
        return data["user"]

    # -- auth -------------------------------------------------------------

    async def register(self, name: str, email: str, password: str) -> dict[str, Any]:
        data = await self.request(
            "POST", "/auth/register", authenticate=False, json={"name": name, "email": email, "password": password}
        )
        return self._store_tokens(data)

    async def login(self, email: str, password: str) -> dict[str, Any]:
        data = await self.request("POST", "/auth/login", authenticate=False, json={"email": email, "password": password})
        return self._store_tokens(data)

    async def google_login(self, code: str) -> dict[str, Any]:
        data = await self.request("POST", "/auth/google", authenticate=False, json={"code": code})
        return self._store_tokens(data)

    async def me(self) -> dict[str, Any]:
        user = await self.request("GET", "/auth/me")
        self.session.update_user(user)
        return user

    async def check_auth_status(self) -> dict[str, Any] | None:
        """Startup who-am-I. A stale session is cleared and reported as None, never raised."""
        if not self.session.is_authenticated:
            return None
        try:
            return await self.me()
        except SessionExpired:
            return None

    async def logout(self) -> None:
        """Tell the server if possible; the local session is cleared regardless."""
        try:
            if self.session.is_authenticated:
                await self._send("POST", "/auth/logout", authenticate=True)
        except httpx.HTTPError as e:
            logger.warning("Logout request failed, clearing local session anyway: %s", e)
        finally:
            self.session.clear()

    async def update_profile(self, **fields: Any) -> dict[str, Any]:
        data = await self.request("PUT", "/auth/update", json=fields)
        self.session.update_user(data["user"])
        return data["user"]

    async def verify_current_password(self, current_password: str) -> bool:
        try:
            await self.request("POST", "/auth/verify-current-password", json={"current_password": current_password})
        except ApiError as e:
            if e.status_code == 400:
                return False
            raise
        return True

    async def delete_account(self) -> None:
        await self.request("DELETE", "/auth/delete")
        self.session.clear()

    # -- blogs ------------------------------------------------------------

    async def list_blogs(self, page: int = 1, limit: int = 10, search: str | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        return await self.request("GET", "/blogs", authenticate=False, params=params)

    async def get_blog(self, blog_id: str) -> dict[str, Any]:
        return await self.request("GET", f"/blogs/{blog_id}", authenticate=False)

    async def create_blog(self, **fields: Any) -> dict[str, Any]:
        return await self.request("POST", "/blogs", json=fields)

    async def update_blog(self, blog_id: str, **fields: Any) -> dict[str, Any]:
        return await self.request("PUT", f"/blogs/{blog_id}", json=fields)

    async def delete_blog(self, blog_id: str) -> None:
        await self.request("DELETE", f"/blogs/{blog_id}")

    async def liked_blogs(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/blogs/liked")

    async def my_stories(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/blogs/my-stories")

    async def toggle_like(self, blog_id: str) -> dict[str, Any]:
        return await self.request("POST", f"/blogs/{blog_id}/like")

    async def add_comment(self, blog_id: str, content: str) -> dict[str, Any]:
        return await self.request("POST", f"/blogs/{blog_id}/comment", json={"content": content})

    async def delete_comment(self, blog_id: str, comment_id: str) -> None:
        await self.request("DELETE", f"/blogs/{blog_id}/comments/{comment_id}")

    async def site_stats(self) -> dict[str, Any]:
        return await self.request("GET", "/user-stats", authenticate=False)

    # -- uploads ----------------------------------------------------------

    async def upload_avatar(self, filename: str, content: bytes, content_type: str) -> str:
        data = await self.request("POST", "/uploads/avatar", files={"file": (filename, content, content_type)})
        return data["url"]

    async def upload_post_images(self, images: list[tuple[str, bytes, str]]) -> list[str]:
        files = [("files", image) for image in images]
        data = await self.request("POST", "/uploads/post-images", files=files)
        return data["urls"]

    # -- users ------------------------------------------------------------

    async def list_users(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/users")

    async def get_user(self, user_id: str) -> dict[str, Any]:
        return await self.request("GET", f"/users/{user_id}", authenticate=False)

    async def make_admin(self, user_id: str) -> dict[str, Any]:
        return await self.request("PUT", f"/users/{user_id}/make-admin")

    async def remove_admin(self, user_id: str) -> dict[str, Any]:
        return await self.request("PUT", f"/users/{user_id}/remove-admin")

    async def delete_user(self, user_id: str) -> None:
        await self.request("DELETE", f"/users/{user_id}")

    async def recompute_stats(self, user_id: str) -> dict[str, Any]:
        return await self.request("POST", f"/users/{user_id}/recompute-stats")

    # -- chat -------------------------------------------------------------

    async def chat_history(self, session_id: str) -> list[dict[str, Any]]:
        return await self.request("GET", f"/chat/history/{session_id}")

    async def send_chat_message(self, session_id: str, message: str) -> dict[str, Any]:
        return await self.request("POST", "/chat/message", json={"session_id": session_id, "message": message})

    async def clear_chat_history(self, session_id: str) -> None:
        await self.request("DELETE", f"/chat/history/{session_id}")
