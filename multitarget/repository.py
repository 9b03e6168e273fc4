"""Generic repository wrapping a single MongoDB collection."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterable, List, Mapping, Optional, TypeVar

from .database import DatabaseContext
from .errors import InvalidArgument

T = TypeVar("T")

Filter = Mapping[str, Any]
Update = Mapping[str, Any]


@dataclass(frozen=True)
class DocumentCodec(Generic[T]):
    """Describe how entities of type ``T`` map to stored documents."""

    to_document: Callable[[T], Dict[str, Any]]
    from_document: Callable[[Mapping[str, Any]], T]


def _identity_codec() -> DocumentCodec[Dict[str, Any]]:
    return DocumentCodec(to_document=dict, from_document=dict)


class MongoRepository(Generic[T]):
    """Forward CRUD calls to one collection, logging every outcome.

    Failures from the driver are logged with their traceback and re-raised unchanged.
    The repository only closes its :class:`DatabaseContext` when ``owns_context`` is set.
    """

    def __init__(
        self,
        context: DatabaseContext,
        collection_name: str,
        codec: Optional[DocumentCodec[T]] = None,
        logger: Optional[logging.Logger] = None,
        *,
        owns_context: bool = False,
    ) -> None:
        if context is None:
            raise InvalidArgument("context", "Database context must be provided")

        self._context = context
        self._collection_name = collection_name
        self._collection = context.get_collection(collection_name)
        self._codec: DocumentCodec[Any] = codec or _identity_codec()
        self._logger = logger or logging.getLogger("multitarget.repository")
        self._owns_context = owns_context
        self._closed = False

    @property
    def collection_name(self) -> str:
        return self._collection_name

    @property
    def context(self) -> DatabaseContext:
        return self._context

    def get_all(self) -> List[T]:
        try:
            result = [self._codec.from_document(doc) for doc in self._collection.find({})]
        except Exception:
            self._logger.exception("Error retrieving all documents from %s", self._collection_name)
            raise
        self._logger.info("Retrieved %s documents from %s", len(result), self._collection_name)
        return result

    def get_by_filter(self, filter: Filter) -> Optional[T]:
        """Return the first document matching ``filter`` or ``None``."""
        try:
            document = self._collection.find_one(filter)
        except Exception:
            self._logger.exception("Error retrieving document by filter from %s", self._collection_name)
            raise
        self._logger.info(
            "Retrieved document by filter from %s, found: %s",
            self._collection_name,
            document is not None,
        )
        if document is None:
            return None
        return self._codec.from_document(document)

    def insert_one(self, document: T) -> None:
        try:
            self._collection.insert_one(self._codec.to_document(document))
        except Exception:
            self._logger.exception("Error inserting document into %s", self._collection_name)
            raise
        self._logger.info("Inserted one document into %s", self._collection_name)

    def insert_many(self, documents: Iterable[T]) -> None:
        encoded = [self._codec.to_document(document) for document in documents]
        if not encoded:
            self._logger.info("Inserted 0 documents into %s", self._collection_name)
            return
        try:
            self._collection.insert_many(encoded)
        except Exception:
            self._logger.exception("Error inserting multiple documents into %s", self._collection_name)
            raise
        self._logger.info("Inserted %s documents into %s", len(encoded), self._collection_name)

    def update_one(self, filter: Filter, update: Update) -> bool:
        """Apply ``update`` to the first match; ``True`` when a document changed."""
        try:
            result = self._collection.update_one(filter, update)
        except Exception:
            self._logger.exception("Error updating document in %s", self._collection_name)
            raise
        self._logger.info(
            "Updated document in %s. Modified count: %s", self._collection_name, result.modified_count
        )
        return result.modified_count > 0

    def delete_one(self, filter: Filter) -> bool:
        try:
            result = self._collection.delete_one(filter)
        except Exception:
            self._logger.exception("Error deleting document from %s", self._collection_name)
            raise
        self._logger.info(
            "Deleted document from %s. Deleted count: %s", self._collection_name, result.deleted_count
        )
        return result.deleted_count > 0

    def count(self, filter: Optional[Filter] = None) -> int:
        try:
            total = int(self._collection.count_documents(filter or {}))
        except Exception:
            self._logger.exception("Error counting documents in %s", self._collection_name)
            raise
        self._logger.info("Counted %s documents in %s", total, self._collection_name)
        return total

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_context:
            self._context.close()
        self._logger.info("MongoDB repository for %s disposed", self._collection_name)

    def __enter__(self) -> "MongoRepository[T]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["DocumentCodec", "Filter", "MongoRepository", "Update"]
