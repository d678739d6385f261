"""
Document store clients.

The store offers only get/update/create by (database, collection, id).
Store failures are mapped to three exception classes so the upsert path
can branch on them:
- DocumentNotFound: update/get of an id that does not exist (HTTP 404)
- WriteConflict: create of an id that already exists (HTTP 409)
- WriteFailure: anything else (auth, validation, transport)

AppwriteDocumentStore talks to the Appwrite REST surface.
MemoryDocumentStore keeps documents in a dict with the same semantics
and backs dry runs.
"""

import copy
import logging
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx

from src.config.settings import Settings
from src.ingestion.http_client import HTTPClient, HTTPClientError, RetryConfig

logger = logging.getLogger(__name__)


def _json_body(response: httpx.Response) -> dict[str, Any]:
    """Decoded success body; the write already happened, so a bad body is not an error."""
    try:
        body = response.json()
    except ValueError:
        logger.warning(f"Non-JSON store response from {response.request.url}")
        return {}
    return body if isinstance(body, dict) else {}


class StoreError(Exception):
    """Base exception for document store errors."""

    def __init__(
        self,
        message: str,
        collection: str | None = None,
        document_id: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.collection = collection
        self.document_id = document_id
        self.status_code = status_code


class DocumentNotFound(StoreError):
    """The addressed document does not exist."""

    pass


class WriteConflict(StoreError):
    """A document with the requested id already exists."""

    pass


class WriteFailure(StoreError):
    """The store rejected the write for a reason other than a conflict."""

    pass


class DocumentStore(ABC):
    """
    Abstract document store.

    Implementations are async context managers so clients holding
    connections are opened and closed around a run.
    """

    async def __aenter__(self) -> "DocumentStore":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        return None

    @abstractmethod
    async def get_document(self, collection: str, document_id: str) -> dict[str, Any]:
        """Return the document's attributes. Raises DocumentNotFound."""
        ...

    @abstractmethod
    async def update_document(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        """Replace the given attributes. Raises DocumentNotFound."""
        ...

    @abstractmethod
    async def create_document(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        """Create a document under a caller-chosen id. Raises WriteConflict."""
        ...


class MemoryDocumentStore(DocumentStore):
    """In-process store with the same not-found/conflict semantics."""

    def __init__(self) -> None:
        self._documents: dict[tuple[str, str], dict[str, Any]] = {}

    async def get_document(self, collection: str, document_id: str) -> dict[str, Any]:
        try:
            return copy.deepcopy(self._documents[(collection, document_id)])
        except KeyError:
            raise DocumentNotFound(
                f"Document {document_id} not found",
                collection=collection,
                document_id=document_id,
                status_code=404,
            ) from None

    async def update_document(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        key = (collection, document_id)
        if key not in self._documents:
            raise DocumentNotFound(
                f"Document {document_id} not found",
                collection=collection,
                document_id=document_id,
                status_code=404,
            )
        self._documents[key].update(copy.deepcopy(data))
        return copy.deepcopy(self._documents[key])

    async def create_document(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        key = (collection, document_id)
        if key in self._documents:
            raise WriteConflict(
                f"Document with the requested ID {document_id} already exists",
                collection=collection,
                document_id=document_id,
                status_code=409,
            )
        self._documents[key] = copy.deepcopy(data)
        return copy.deepcopy(data)

    def documents(self, collection: str) -> dict[str, dict[str, Any]]:
        """All documents of a collection keyed by id."""
        return {
            doc_id: copy.deepcopy(data)
            for (coll, doc_id), data in self._documents.items()
            if coll == collection
        }

    def __len__(self) -> int:
        return len(self._documents)


class AppwriteDocumentStore(DocumentStore):
    """
    Appwrite Databases REST client.

    Usage:
        async with AppwriteDocumentStore.from_settings(settings) as store:
            await store.update_document("platform_stats", "tryhackme", {...})
    """

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        api_key: str,
        database_id: str,
        retry_config: RetryConfig | None = None,
        timeout: float = 15.0,
    ):
        self._base_url = endpoint.rstrip("/")
        self._database_id = database_id
        self._http = HTTPClient(
            retry_config=retry_config,
            timeout=timeout,
            headers={
                "X-Appwrite-Project": project_id,
                "X-Appwrite-Key": api_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppwriteDocumentStore":
        """Build a client from validated settings."""
        settings.validate_required()
        return cls(
            endpoint=settings.appwrite_endpoint,
            project_id=settings.appwrite_project_id,
            api_key=settings.appwrite_api_key,
            database_id=settings.appwrite_database_id,
            retry_config=RetryConfig(
                max_retries=settings.max_http_retries,
                max_backoff_seconds=settings.max_backoff_seconds,
            ),
            timeout=settings.http_timeout_seconds,
        )

    async def __aenter__(self) -> "AppwriteDocumentStore":
        await self._http.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self._http.__aexit__(exc_type, exc_val, exc_tb)

    def _documents_url(self, collection: str, document_id: str | None = None) -> str:
        url = (
            f"{self._base_url}/databases/{quote(self._database_id, safe='')}"
            f"/collections/{quote(collection, safe='')}/documents"
        )
        if document_id is not None:
            url += f"/{quote(document_id, safe='')}"
        return url

    async def get_document(self, collection: str, document_id: str) -> dict[str, Any]:
        try:
            response = await self._http.get(self._documents_url(collection, document_id))
        except HTTPClientError as e:
            raise self._translate(e, collection, document_id) from e
        return _json_body(response)

    async def update_document(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        try:
            response = await self._http.patch(
                self._documents_url(collection, document_id),
                json_body={"data": data},
            )
        except HTTPClientError as e:
            raise self._translate(e, collection, document_id) from e
        return _json_body(response)

    async def create_document(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        try:
            response = await self._http.post(
                self._documents_url(collection),
                json_body={"documentId": document_id, "data": data},
            )
        except HTTPClientError as e:
            raise self._translate(e, collection, document_id) from e
        return _json_body(response)

    @staticmethod
    def _translate(error: HTTPClientError, collection: str, document_id: str) -> StoreError:
        """Map an HTTP failure to the store error taxonomy."""
        body = error.response_body or ""
        kwargs = {
            "collection": collection,
            "document_id": document_id,
            "status_code": error.status_code,
        }

        if error.status_code == 404:
            return DocumentNotFound(f"Document {document_id} not found in {collection}", **kwargs)
        if error.status_code == 409 or "already exists" in body:
            return WriteConflict(f"Document {document_id} already exists in {collection}", **kwargs)

        detail = body[:200] if body else str(error)
        return WriteFailure(f"Write to {collection}/{document_id} failed: {detail}", **kwargs)
