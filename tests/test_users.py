import uuid

import pytest
from sqlalchemy import update

from tramoo.core.permissions import Role
from tramoo.models.user import User
from tramoo.services.user_service import recompute_all_user_stats

API = "/api/v1"


class TestRoleChanges:
    @pytest.mark.asyncio
    async def test_plain_user_cannot_promote(self, client, register_user):
        """The role check comes before the lookup, so even unknown targets get 403."""
        user = await register_user("Ada")
        other = await register_user("Bob")
        for target in (other.id, str(uuid.uuid4())):
            response = await client.put(f"{API}/users/{target}/make-admin", headers=user.headers)
            assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_promotes_user(self, client, register_user):
        admin = await register_user("Ada", role=Role.ADMIN)
        user = await register_user("Bob")
        response = await client.put(f"{API}/users/{user.id}/make-admin", headers=admin.headers)
        assert response.status_code == 200
        assert response.json()["message"] == "User Bob is now admin"
        assert response.json()["user"]["role"] == "admin"

    @pytest.mark.asyncio
    async def test_promoting_an_admin_is_a_no_op(self, client, register_user):
        admin = await register_user("Ada", role=Role.ADMIN)
        other = await register_user("Bob", role=Role.ADMIN)
        response = await client.put(f"{API}/users/{other.id}/make-admin", headers=admin.headers)
        assert response.status_code == 200
        assert response.json()["user"]["role"] == "admin"

    @pytest.mark.asyncio
    async def test_owner_cannot_be_promoted_or_demoted(self, client, register_user):
        owner = await register_user("Olga", role=Role.OWNER)
        admin = await register_user("Ada", role=Role.ADMIN)
        assert (await client.put(f"{API}/users/{owner.id}/make-admin", headers=admin.headers)).status_code == 403
        assert (await client.put(f"{API}/users/{owner.id}/remove-admin", headers=owner.headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_only_owner_demotes(self, client, register_user):
        owner = await register_user("Olga", role=Role.OWNER)
        first = await register_user("Ada", role=Role.ADMIN)
        second = await register_user("Bob", role=Role.ADMIN)

        denied = await client.put(f"{API}/users/{second.id}/remove-admin", headers=first.headers)
        assert denied.status_code == 403

        response = await client.put(f"{API}/users/{second.id}/remove-admin", headers=owner.headers)
        assert response.status_code == 200
        assert response.json()["user"]["role"] == "user"

    @pytest.mark.asyncio
    async def test_demoted_admin_loses_privileges_immediately(self, client, register_user):
        """Role is read per request, so an existing token carries no stale role."""
        owner = await register_user("Olga", role=Role.OWNER)
        admin = await register_user("Ada", role=Role.ADMIN)
        assert (await client.get(f"{API}/users", headers=admin.headers)).status_code == 200
        await client.put(f"{API}/users/{admin.id}/remove-admin", headers=owner.headers)
        assert (await client.get(f"{API}/users", headers=admin.headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_admin_promotes_unknown_user(self, client, register_user):
        admin = await register_user("Ada", role=Role.ADMIN)
        response = await client.put(f"{API}/users/{uuid.uuid4()}/make-admin", headers=admin.headers)
        assert response.status_code == 404


class TestListUsers:
    @pytest.mark.asyncio
    async def test_sort_order(self, client, register_user):
        """Owner first, admins by name, then users newest first."""
        owner = await register_user("Olga", role=Role.OWNER)
        await register_user("Zed", role=Role.ADMIN)
        await register_user("Amy", role=Role.ADMIN)
        await register_user("Early")
        await register_user("Late")
        response = await client.get(f"{API}/users", headers=owner.headers)
        assert response.status_code == 200
        assert [u["name"] for u in response.json()] == ["Olga", "Amy", "Zed", "Late", "Early"]

    @pytest.mark.asyncio
    async def test_users_cannot_list(self, client, register_user):
        user = await register_user("Ada")
        assert (await client.get(f"{API}/users", headers=user.headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_public_profile(self, client, register_user):
        user = await register_user("Ada")
        response = await client.get(f"{API}/users/{user.id}")
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Ada"
        assert "email" not in body

    @pytest.mark.asyncio
    async def test_unknown_profile(self, client):
        response = await client.get(f"{API}/users/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"


class TestDeleteUser:
    @pytest.mark.asyncio
    async def test_only_owner_deletes_and_never_self(self, client, register_user):
        owner = await register_user("Olga", role=Role.OWNER)
        admin = await register_user("Ada", role=Role.ADMIN)
        user = await register_user("Bob")
        assert (await client.delete(f"{API}/users/{user.id}", headers=admin.headers)).status_code == 403
        assert (await client.delete(f"{API}/users/{owner.id}", headers=owner.headers)).status_code == 403
        response = await client.delete(f"{API}/users/{user.id}", headers=owner.headers)
        assert response.status_code == 200
        assert response.json()["message"] == "User deleted successfully"
        assert (await client.get(f"{API}/users/{user.id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_cascade_removes_everything_they_authored(self, client, register_user, create_blog):
        """Their posts go entirely; their likes and comments on others' posts go too."""
        owner = await register_user("Olga", role=Role.OWNER)
        doomed = await register_user("Ada")
        other = await register_user("Bob")
        doomed_post = await create_blog(doomed, title="By Ada")
        other_post = await create_blog(other, title="By Bob")

        await client.post(f"{API}/blogs/{doomed_post['id']}/like", headers=other.headers)
        await client.post(f"{API}/blogs/{doomed_post['id']}/comment", json={"content": "nice"}, headers=other.headers)
        await client.post(f"{API}/blogs/{other_post['id']}/like", headers=doomed.headers)
        await client.post(f"{API}/blogs/{other_post['id']}/comment", json={"content": "from Ada"}, headers=doomed.headers)
        kept = await client.post(
            f"{API}/blogs/{other_post['id']}/comment", json={"content": "from Bob"}, headers=other.headers
        )
        await client.post(f"{API}/chat/message", json={"session_id": "s1", "message": "hi"}, headers=doomed.headers)

        response = await client.delete(f"{API}/users/{doomed.id}", headers=owner.headers)
        assert response.status_code == 200

        assert (await client.get(f"{API}/blogs/{doomed_post['id']}")).status_code == 404
        remaining = (await client.get(f"{API}/blogs/{other_post['id']}")).json()
        assert remaining["likes"] == []
        assert [c["id"] for c in remaining["comments"]] == [kept.json()["id"]]
        assert (await client.get(f"{API}/blogs/liked", headers=other.headers)).json() == []


class TestRecomputeStats:
    @pytest.mark.asyncio
    async def test_recompute_repairs_drifted_counters(self, client, register_user, create_blog, session_maker):
        admin = await register_user("Ada", role=Role.ADMIN)
        author = await register_user("Bob")
        await create_blog(author, country="Japan", images=["https://cdn.example.com/1.jpg"])
        async with session_maker() as session:
            await session.execute(
                update(User)
                .where(User.id == uuid.UUID(author.id))
                .values(stories_written=42, photos_shared=0, countries_explored=9)
            )
            await session.commit()

        response = await client.post(f"{API}/users/{author.id}/recompute-stats", headers=admin.headers)
        assert response.status_code == 200
        body = response.json()
        assert (body["stories_written"], body["photos_shared"], body["countries_explored"]) == (1, 1, 1)

    @pytest.mark.asyncio
    async def test_recompute_needs_admin(self, client, register_user):
        user = await register_user("Ada")
        response = await client.post(f"{API}/users/{user.id}/recompute-stats", headers=user.headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_recompute_all(self, client, register_user, create_blog, session_maker):
        """The periodic worker job walks every user."""
        first = await register_user("Ada")
        await register_user("Bob")
        await create_blog(first)
        async with session_maker() as session:
            await session.execute(update(User).values(stories_written=7))
            await session.commit()
        async with session_maker() as session:
            assert await recompute_all_user_stats(session) == 2
            await session.commit()
        me = (await client.get(f"{API}/auth/me", headers=first.headers)).json()
        assert me["stories_written"] == 1


class TestWorkerSchedule:
    def test_beat_schedule_targets_recompute_task(self):
        from tramoo.core.celery_app import celery_app
        from tramoo.workers.stats import recompute_all_user_stats as task

        entry = celery_app.conf.beat_schedule["recompute-user-stats"]
        assert entry["task"] == task.name
