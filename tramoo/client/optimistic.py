"""
Optimistic local updates reconciled against the server.

A tentative change is applied to the local view, the request is issued,
and the view then either takes the server's state or is put back exactly
as it was. It is never left in the tentative state after a failure.
"""
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from tramoo.client.api import TramooClient

T = TypeVar("T")
S = TypeVar("S")


async def optimistic_update(
    apply: Callable[[], S],
    request: Callable[[], Awaitable[T]],
    confirm: Callable[[T], None],
    rollback: Callable[[S], None],
) -> T:
    """`apply` returns a snapshot; `rollback` receives it if `request` raises."""
    snapshot = apply()
    try:
        result = await request()
    except Exception:
        rollback(snapshot)
        raise
    confirm(result)
    return result


@dataclass
class BlogView:
    """The parts of a post a UI mutates in place."""

    id: str
    likes: list[str] = field(default_factory=list)
    comments: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "BlogView":
        return cls(
            id=str(data["id"]),
            likes=[str(u) for u in data.get("likes", [])],
            comments=list(data.get("comments", [])),
        )

    @property
    def likes_count(self) -> int:
        return len(self.likes)

    def is_liked_by(self, user_id: str) -> bool:
        return user_id in self.likes


async def toggle_like(client: TramooClient, view: BlogView, user_id: str) -> dict[str, Any]:
    def apply() -> list[str]:
        previous = list(view.likes)
        if user_id in view.likes:
            view.likes.remove(user_id)
        else:
            view.likes.append(user_id)
        return previous

    def confirm(result: dict[str, Any]) -> None:
        view.likes = [str(u) for u in result["likes"]]

    def rollback(previous: list[str]) -> None:
        view.likes = previous

    return await optimistic_update(apply, lambda: client.toggle_like(view.id), confirm, rollback)


async def add_comment(client: TramooClient, view: BlogView, user_id: str, content: str) -> dict[str, Any]:
    temp_id = f"pending-{uuid.uuid4().hex}"

    def apply() -> str:
        view.comments.append({"id": temp_id, "author_id": user_id, "content": content.strip(), "pending": True})
        return temp_id

    def _position(comment_id: str) -> int | None:
        for i, comment in enumerate(view.comments):
            if str(comment.get("id")) == comment_id:
                return i
        return None

    def confirm(result: dict[str, Any]) -> None:
        i = _position(temp_id)
        if i is None:
            view.comments.append(result)
        else:
            view.comments[i] = result

    def rollback(pending_id: str) -> None:
        i = _position(pending_id)
        if i is not None:
            del view.comments[i]

    return await optimistic_update(apply, lambda: client.add_comment(view.id, content), confirm, rollback)


async def delete_comment(client: TramooClient, view: BlogView, comment_id: str) -> None:
    def apply() -> tuple[int, dict[str, Any]] | None:
        for i, comment in enumerate(view.comments):
            if str(comment.get("id")) == comment_id:
                return i, view.comments.pop(i)
        return None

    def rollback(removed: tuple[int, dict[str, Any]] | None) -> None:
        if removed is not None:
            index, comment = removed
            view.comments.insert(index, comment)

    await optimistic_update(apply, lambda: client.delete_comment(view.id, comment_id), lambda _: None, rollback)
