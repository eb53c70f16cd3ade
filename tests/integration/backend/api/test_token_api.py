"""
Integration Tests for Capability Token API.

POST verifies, PUT merges, PATCH prunes.
"""

import pytest
from httpx import AsyncClient

TOKEN = "/api/v1/token"
NOTES = "/api/v1/notes"


async def _create(client: AsyncClient, api, note_id: str, token: str | None = None) -> dict:
    params = {"token": token} if token else None
    response = await client.post(NOTES, json={"id": note_id, "content": "hello"}, params=params)
    return api.assert_success(response, expected_status=201)["data"]


async def _claimed_ids(client: AsyncClient, api, token: str) -> set[str]:
    response = await client.post(TOKEN, json={"token": token})
    return {claim["note_id"] for claim in api.assert_success(response)["data"]["claims"]}


class TestVerifyToken:
    @pytest.mark.asyncio
    async def test_lists_claims(self, client: AsyncClient, api):
        created = await _create(client, api, "verify-me")

        response = await client.post(TOKEN, json={"token": created["token"]})

        data = api.assert_success(response)["data"]
        assert data["claims"][0]["note_id"] == "verify-me"
        assert data["claims"][0]["created_at"].startswith(created["created_at"][:19])
        assert data["subject"]

    @pytest.mark.asyncio
    async def test_rejects_garbage(self, client: AsyncClient, api):
        response = await client.post(TOKEN, json={"token": "garbage"})

        api.assert_error(response, 403, "AUTHZ_INVALID_TOKEN")

    @pytest.mark.asyncio
    async def test_empty_token_is_request_error(self, client: AsyncClient, api):
        response = await client.post(TOKEN, json={"token": ""})

        api.assert_validation_error(response, field="token")


class TestMergeTokens:
    @pytest.mark.asyncio
    async def test_union_of_claims(self, client: AsyncClient, api):
        first = await _create(client, api, "merge-a")
        second = await _create(client, api, "merge-b")

        response = await client.put(
            TOKEN, json={"first_token": first["token"], "second_token": second["token"]}
        )

        merged = api.assert_success(response)["data"]["token"]
        assert await _claimed_ids(client, api, merged) == {"merge-a", "merge-b"}

    @pytest.mark.asyncio
    async def test_merged_token_can_delete_both(self, client: AsyncClient, api):
        first = await _create(client, api, "merge-c")
        second = await _create(client, api, "merge-d")
        merged = api.assert_success(
            await client.put(
                TOKEN, json={"first_token": first["token"], "second_token": second["token"]}
            )
        )["data"]["token"]

        for note_id in ("merge-c", "merge-d"):
            response = await client.delete(f"{NOTES}/{note_id}", params={"token": merged})
            api.assert_success(response)

    @pytest.mark.asyncio
    async def test_invalid_side_rejected(self, client: AsyncClient, api):
        first = await _create(client, api, "merge-e")

        response = await client.put(
            TOKEN, json={"first_token": first["token"], "second_token": "garbage"}
        )

        api.assert_error(response, 403, "AUTHZ_INVALID_TOKEN")


class TestPruneToken:
    @pytest.mark.asyncio
    async def test_drops_deleted_and_recreated_notes(self, client: AsyncClient, api):
        kept = await _create(client, api, "prune-kept")
        token = kept["token"]
        token = (await _create(client, api, "prune-gone", token=token))["token"]
        token = (await _create(client, api, "prune-reborn", token=token))["token"]

        # Delete with the accumulated token but keep using the accumulated one
        await client.delete(f"{NOTES}/prune-gone", params={"token": token})
        await client.delete(f"{NOTES}/prune-reborn", params={"token": token})
        await _create(client, api, "prune-reborn")

        response = await client.patch(TOKEN, json={"token": token})

        pruned = api.assert_success(response)["data"]["token"]
        assert await _claimed_ids(client, api, pruned) == {"prune-kept"}
