"""
Blog API — Category Tests (HTTP)
==================================

Reads are public; create, update and delete are admin-only.
"""

import uuid

import pytest
import pytest_asyncio

from tests.conftest import API


class TestCategories:

    @pytest_asyncio.fixture
    async def users(self, client, app, make_user):
        return {
            "admin": await make_user(client, "root", admin_of=app),
            "alice": await make_user(client, "alice"),
        }

    async def _create(self, client, users, name="Tech", description=""):
        response = await client.post(
            f"{API}/categories",
            json={"name": name, "description": description},
            headers=users["admin"]["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()

    @pytest.mark.asyncio
    async def test_admin_creates_and_anyone_reads(self, client, users):
        created = await self._create(client, users, "Tech", "Computers and such")

        listed = await client.get(f"{API}/categories")
        fetched = await client.get(f"{API}/categories/{created['id']}")

        assert [c["id"] for c in listed.json()["categories"]] == [created["id"]]
        assert fetched.json()["description"] == "Computers and such"

    @pytest.mark.asyncio
    async def test_list_ordered_by_name(self, client, users):
        for name in ("Zoology", "Art", "Music"):
            await self._create(client, users, name)

        listed = (await client.get(f"{API}/categories")).json()["categories"]

        assert [c["name"] for c in listed] == ["Art", "Music", "Zoology"]

    @pytest.mark.asyncio
    async def test_non_admin_is_forbidden(self, client, users):
        response = await client.post(
            f"{API}/categories", json={"name": "Tech"}, headers=users["alice"]["headers"]
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Access denied. Admins only."

    @pytest.mark.asyncio
    async def test_anonymous_is_unauthenticated(self, client, users):
        response = await client.post(f"{API}/categories", json={"name": "Tech"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts_case_insensitively(self, client, users):
        await self._create(client, users, "Tech")

        response = await client.post(
            f"{API}/categories", json={"name": "TECH"}, headers=users["admin"]["headers"]
        )

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_update(self, client, users):
        created = await self._create(client, users, "Tech")

        response = await client.patch(
            f"{API}/categories/{created['id']}",
            json={"description": "Now with a description"},
            headers=users["admin"]["headers"],
        )
        denied = await client.patch(
            f"{API}/categories/{created['id']}",
            json={"name": "Mine now"},
            headers=users["alice"]["headers"],
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Tech"
        assert response.json()["description"] == "Now with a description"
        assert denied.status_code == 403

    @pytest.mark.asyncio
    async def test_rename_onto_existing_name_conflicts(self, client, users):
        await self._create(client, users, "Tech")
        other = await self._create(client, users, "Art")

        response = await client.patch(
            f"{API}/categories/{other['id']}", json={"name": "tech"}, headers=users["admin"]["headers"]
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_delete_removes_category_from_blogs(self, client, users):
        category = await self._create(client, users, "Tech")
        blog = (
            await client.post(
                f"{API}/blogs",
                json={"title": "Tagged", "content": "0123456789", "categories": [category["id"]]},
                headers=users["alice"]["headers"],
            )
        ).json()
        assert blog["categories"] == [category["id"]]

        response = await client.delete(
            f"{API}/categories/{category['id']}", headers=users["admin"]["headers"]
        )

        assert response.status_code == 200
        assert (await client.get(f"{API}/categories/{category['id']}")).status_code == 404
        mine = (await client.get(f"{API}/blogs/mine", headers=users["alice"]["headers"])).json()
        assert mine["blogs"][0]["categories"] == []

    @pytest.mark.asyncio
    async def test_missing_category(self, client, users):
        missing = uuid.uuid4()

        assert (await client.get(f"{API}/categories/{missing}")).status_code == 404
        response = await client.delete(f"{API}/categories/{missing}", headers=users["admin"]["headers"])
        assert response.status_code == 404
