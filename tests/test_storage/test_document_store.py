"""Tests for the Appwrite and in-memory document stores."""

import json

import httpx
import pytest
import respx

from src.config.settings import ConfigurationError, Settings
from src.ingestion.http_client import RetryConfig
from src.storage.document_store import (
    AppwriteDocumentStore,
    DocumentNotFound,
    MemoryDocumentStore,
    WriteConflict,
    WriteFailure,
)
from src.storage.upsert import UpsertOutcome, upsert

ENDPOINT = "https://cloud.example.com/v1"
DOCS = f"{ENDPOINT}/databases/cyberlab/collections/articles/documents"


def make_store() -> AppwriteDocumentStore:
    return AppwriteDocumentStore(
        endpoint=ENDPOINT + "/",
        project_id="proj",
        api_key="secret",
        database_id="cyberlab",
        retry_config=RetryConfig(max_retries=0),
    )


class TestAppwriteDocumentStore:
    """Tests for AppwriteDocumentStore against mocked REST endpoints."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_update_sends_patch_with_auth_headers(self):
        route = respx.patch(f"{DOCS}/art_1").mock(
            return_value=httpx.Response(200, json={"$id": "art_1", "title": "a"})
        )

        async with make_store() as store:
            result = await store.update_document("articles", "art_1", {"title": "a"})

        request = route.calls.last.request
        assert request.headers["X-Appwrite-Project"] == "proj"
        assert request.headers["X-Appwrite-Key"] == "secret"
        assert json.loads(request.content) == {"data": {"title": "a"}}
        assert result["$id"] == "art_1"

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_posts_document_id(self):
        route = respx.post(DOCS).mock(return_value=httpx.Response(201, json={"$id": "art_1"}))

        async with make_store() as store:
            await store.create_document("articles", "art_1", {"title": "a"})

        assert json.loads(route.calls.last.request.content) == {
            "documentId": "art_1",
            "data": {"title": "a"},
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_document(self):
        respx.get(f"{ENDPOINT}/databases/cyberlab/collections/platform_stats/documents/offsec").mock(
            return_value=httpx.Response(200, json={"$id": "offsec", "rank": 12})
        )

        async with make_store() as store:
            document = await store.get_document("platform_stats", "offsec")

        assert document["rank"] == 12

    @pytest.mark.asyncio
    @respx.mock
    async def test_not_found_maps_to_document_not_found(self):
        respx.patch(f"{DOCS}/art_1").mock(
            return_value=httpx.Response(404, json={"message": "Document not found", "code": 404})
        )

        async with make_store() as store:
            with pytest.raises(DocumentNotFound) as exc_info:
                await store.update_document("articles", "art_1", {"title": "a"})

        assert exc_info.value.collection == "articles"
        assert exc_info.value.document_id == "art_1"
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,body",
        [
            (409, {"message": "Conflict", "code": 409}),
            (400, {"message": "Document with the requested ID already exists.", "code": 400}),
        ],
    )
    @respx.mock
    async def test_conflict_maps_to_write_conflict(self, status, body):
        respx.post(DOCS).mock(return_value=httpx.Response(status, json=body))

        async with make_store() as store:
            with pytest.raises(WriteConflict):
                await store.create_document("articles", "art_1", {"title": "a"})

    @pytest.mark.asyncio
    @respx.mock
    async def test_other_errors_map_to_write_failure(self):
        respx.patch(f"{DOCS}/art_1").mock(
            return_value=httpx.Response(401, json={"message": "Invalid API key", "code": 401})
        )

        async with make_store() as store:
            with pytest.raises(WriteFailure) as exc_info:
                await store.update_document("articles", "art_1", {"title": "a"})

        assert exc_info.value.status_code == 401
        assert "Invalid API key" in str(exc_info.value)

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_maps_to_write_failure(self):
        respx.patch(f"{DOCS}/art_1").mock(side_effect=httpx.ConnectError("refused"))

        async with make_store() as store:
            with pytest.raises(WriteFailure):
                await store.update_document("articles", "art_1", {"title": "a"})

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_success_body_tolerated(self):
        respx.patch(f"{DOCS}/art_1").mock(return_value=httpx.Response(200, text="OK"))

        async with make_store() as store:
            assert await store.update_document("articles", "art_1", {"title": "a"}) == {}

    @pytest.mark.asyncio
    @respx.mock
    async def test_upsert_creates_after_not_found(self):
        patch_route = respx.patch(f"{DOCS}/art_1").mock(return_value=httpx.Response(404, json={}))
        post_route = respx.post(DOCS).mock(return_value=httpx.Response(201, json={"$id": "art_1"}))

        async with make_store() as store:
            outcome = await upsert(store, "articles", "art_1", {"title": "a"})

        assert outcome is UpsertOutcome.CREATED
        assert patch_route.call_count == 1
        assert post_route.call_count == 1

    def test_from_settings_requires_configuration(self, clean_env):
        with pytest.raises(ConfigurationError) as exc_info:
            AppwriteDocumentStore.from_settings(Settings(_env_file=None))

        assert "APPWRITE_ENDPOINT" in exc_info.value.missing

    def test_from_settings(self, test_settings):
        store = AppwriteDocumentStore.from_settings(test_settings)
        assert store._documents_url("articles", "a b") == (
            f"{ENDPOINT}/databases/cyberlab/collections/articles/documents/a%20b"
        )


class TestMemoryDocumentStore:
    """Tests for MemoryDocumentStore."""

    @pytest.mark.asyncio
    async def test_not_found_and_conflict(self):
        store = MemoryDocumentStore()

        with pytest.raises(DocumentNotFound):
            await store.update_document("articles", "a", {"x": 1})

        await store.create_document("articles", "a", {"x": 1})

        with pytest.raises(WriteConflict):
            await store.create_document("articles", "a", {"x": 2})

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self):
        store = MemoryDocumentStore()
        data = {"badges": ["a"]}

        await store.create_document("platform_stats", "tryhackme", data)
        data["badges"].append("b")
        fetched = await store.get_document("platform_stats", "tryhackme")
        fetched["badges"].append("c")

        assert store.documents("platform_stats")["tryhackme"] == {"badges": ["a"]}
