import functools
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import firebase_admin
from firebase_admin import firestore_async
from google.api_core.exceptions import GoogleAPICallError, RetryError
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter

from errors import StoreFailure

logger = logging.getLogger(__name__)

# (field, operator, value), e.g. ("postId", "==", post_id)
Filter = Tuple[str, str, Any]


def store_call(func):
    """Turn Firestore client errors into StoreFailure so callers see one error type"""

    @functools.wraps(func)
    async def wrapper(self, collection: str, *args, **kwargs):
        try:
            return await func(self, collection, *args, **kwargs)
        except (GoogleAPICallError, RetryError) as e:
            logger.error("Firestore %s on '%s' failed: %s", func.__name__, collection, e)
            raise StoreFailure(
                detail=f"Firestore {func.__name__} on '{collection}' failed",
                cause=e
            ) from e

    return wrapper


class FirestoreDB:
    """
    Async document store over Cloud Firestore.

    Documents are returned as plain dicts with the document ID attached under "id".
    Counter fields are only ever changed through `increment`, which maps to a
    server-side atomic delta, or overwritten outright by `update`.
    """

    def __init__(self, app: firebase_admin.App):
        self.db = firestore_async.client(app)

    def collection(self, name: str):
        return self.db.collection(name)

    def _where(self, collection: str, filters: Sequence[Filter]):
        query = self.collection(collection)
        for field, op, value in filters:
            query = query.where(filter=FieldFilter(field, op, value))
        return query

    @store_call
    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Get a document by ID, or None if it does not exist"""
        snapshot = await self.collection(collection).document(doc_id).get()
        if not snapshot.exists:
            return None
        data = snapshot.to_dict()
        data["id"] = snapshot.id
        return data

    @store_call
    async def query(
            self,
            collection: str,
            filters: Sequence[Filter],
            order_by: Optional[str] = None,
            descending: bool = False
    ) -> List[Dict[str, Any]]:
        """Run an equality/range query and materialize every matching document"""
        query = self._where(collection, filters)
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)

        documents = []
        async for doc in query.stream():
            data = doc.to_dict()
            data["id"] = doc.id
            documents.append(data)
        return documents

    @store_call
    async def count(self, collection: str, filters: Sequence[Filter]) -> int:
        """Count matching documents with a server-side aggregation"""
        results = await self._where(collection, filters).count(alias="total").get()
        return int(results[0][0].value)

    @store_call
    async def insert(self, collection: str, data: Dict[str, Any]) -> str:
        """Add a document with an auto-generated ID and return the ID"""
        _, doc_ref = await self.collection(collection).add(data)
        return doc_ref.id

    @store_call
    async def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        await self.collection(collection).document(doc_id).set(data)

    @store_call
    async def delete(self, collection: str, doc_id: str) -> None:
        await self.collection(collection).document(doc_id).delete()

    @store_call
    async def increment(self, collection: str, doc_id: str, field: str, delta: int) -> None:
        """Apply a signed delta to a numeric field without reading it first"""
        await self.collection(collection).document(doc_id).update({field: firestore.Increment(delta)})

    @store_call
    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Overwrite the given fields of an existing document"""
        await self.collection(collection).document(doc_id).update(fields)
