"""Storage layer - document store clients and the upsert write path."""

from src.storage.document_store import (
    AppwriteDocumentStore,
    DocumentNotFound,
    DocumentStore,
    MemoryDocumentStore,
    StoreError,
    WriteConflict,
    WriteFailure,
)
from src.storage.upsert import UpsertOutcome, upsert

__all__ = [
    "AppwriteDocumentStore",
    "DocumentNotFound",
    "DocumentStore",
    "MemoryDocumentStore",
    "StoreError",
    "UpsertOutcome",
    "WriteConflict",
    "WriteFailure",
    "upsert",
]
