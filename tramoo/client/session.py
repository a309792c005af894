"""Client-side session: the current token pair and a cached copy of the user."""
from typing import Any

from tramoo.client.storage import MemoryStorage, SessionStorage


class SessionStore:
    def __init__(self, storage: SessionStorage | None = None):
        self.storage = storage or MemoryStorage()
        data = self.storage.load()
        self.access_token: str | None = data.get("access_token")
        self.refresh_token: str | None = data.get("refresh_token")
        self.user: dict[str, Any] | None = data.get("user")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def save(self, access_token: str, refresh_token: str | None = None, user: dict[str, Any] | None = None) -> None:
        """Persist after login, registration, Google exchange or refresh."""
        self.access_token = access_token
        if refresh_token is not None:
            self.refresh_token = refresh_token
        if user is not None:
            self.user = user
        self.storage.save(
            {"access_token": self.access_token, "refresh_token": self.refresh_token, "user": self.user}
        )

    def update_user(self, user: dict[str, Any]) -> None:
        self.user = user
        if self.access_token:
            self.save(self.access_token)

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.user = None
        self.storage.clear()

    def authorization_header(self) -> dict[str, str]:
        """Bearer header, or nothing at all when there is no token."""
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}
