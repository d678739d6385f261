"""
Update-or-create write path.

The store has no native upsert. Update is tried first because after the
first run nearly every id already exists; a 404 falls through to create.
If that create hits an existing document, another run (or a retried
request) created it in between: the record exists, so the outcome is
reported as UPDATED. Overlapping runs converge; whichever wrote last wins.
"""

import logging
from enum import Enum
from typing import Any

from src.storage.document_store import DocumentNotFound, DocumentStore, WriteConflict

logger = logging.getLogger(__name__)


class UpsertOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


async def upsert(
    store: DocumentStore,
    collection: str,
    document_id: str,
    data: dict[str, Any],
) -> UpsertOutcome:
    """
    Write `data` under `document_id`, creating the document if needed.

    Raises:
        StoreError: Any failure other than not-found on update or
            conflict on create, unmodified
    """
    try:
        await store.update_document(collection, document_id, data)
        return UpsertOutcome.UPDATED
    except DocumentNotFound:
        pass

    try:
        await store.create_document(collection, document_id, data)
        return UpsertOutcome.CREATED
    except WriteConflict:
        logger.debug(f"Create raced on {collection}/{document_id}, counting as update")
        return UpsertOutcome.UPDATED
