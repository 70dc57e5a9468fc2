"""
Base CRUD Class
Base class for Firestore CRUD operations.

The Firestore client (and the LocalStore stand-in) is synchronous, so every
call is pushed to a worker thread to keep the event loop free.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, TypeVar

T = TypeVar("T")


class BaseCRUD(ABC):
    """
    Base CRUD class for Firestore operations.

    Works with ``google.cloud.firestore.Client`` and ``LocalStore`` alike.
    """

    def __init__(self, db: Any):
        """
        Initialize CRUD with a Firestore-compatible client.

        Args:
            db: Firestore client or LocalStore instance
        """
        self.db = db

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """Get collection name. Must be implemented by subclass."""
        pass

    def get_collection(self) -> Any:
        """
        Get Firestore collection reference.

        Returns:
            Firestore collection reference
        """
        return self.db.collection(self.collection_name)

    @staticmethod
    async def run(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking client call in a worker thread."""
        return await asyncio.to_thread(fn, *args, **kwargs)

    async def get_by_id(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Get document by ID.

        Args:
            doc_id: Document ID

        Returns:
            Document data or None if not found
        """
        doc = await self.run(self.get_collection().document(doc_id).get)
        if doc.exists:
            return doc.to_dict()
        return None

    async def exists(self, doc_id: str) -> bool:
        """
        Check if document exists.

        Args:
            doc_id: Document ID

        Returns:
            True if document exists
        """
        doc = await self.run(self.get_collection().document(doc_id).get)
        return doc.exists

    async def find(self, filters: Optional[List[tuple]] = None) -> List[Any]:
        """
        Query documents with equality/range filters.

        Args:
            filters: List of (field, operator, value) tuples for filtering

        Returns:
            Matching document snapshots, in storage order
        """
        query = self.get_collection()
        if filters:
            for field, operator, value in filters:
                query = query.where(field, operator, value)
        return await self.run(query.get)
