"""
Abstract Storage Interface

DESIGN DECISION: Flows never talk to a hosted database client directly.
They receive a document store port with three operations:
- get(path)
- put(path, data, merge)
- subscribe(path, callback)

This allows us to:
1. Swap Google Sheets for a hosted document database later
2. Use in-memory storage for testing
3. Keep the calculators completely free of I/O

Paths are slash-separated, e.g. "users/abc123/financialData/profile".
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Optional
from uuid import UUID

import structlog

from src.models.audit import AuditEvent

Subscriber = Callable[[dict], None]
Unsubscribe = Callable[[], None]

logger = structlog.get_logger(__name__)


def validate_path(path: str) -> str:
    """Check a document path: non-empty segments, no leading or trailing slash."""
    if not isinstance(path, str) or not path:
        raise StorageError("Document path must be a non-empty string")
    segments = path.split("/")
    if any(not segment.strip() for segment in segments):
        raise StorageError(f"Invalid document path: '{path}'")
    return path


class DocumentStoreInterface(ABC):
    """
    Abstract interface for document storage.

    Implementations provide get/put. Subscriptions are delivered by
    this base class after every successful put through this store.
    """

    def __init__(self):
        self._subscribers: dict[str, list[Subscriber]] = {}

    @abstractmethod
    async def get(self, path: str) -> Optional[dict]:
        """
        Read a document.

        Args:
            path: Document path

        Returns:
            The document data if it exists, None otherwise

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def put(self, path: str, data: dict, merge: bool = True) -> None:
        """
        Write a document.

        Args:
            path: Document path
            data: Fields to write
            merge: If True, top-level fields in data replace those in the
                   existing document and other fields are kept. If False,
                   the document is replaced entirely.

        Raises:
            StorageError: If the write fails
        """
        pass

    def subscribe(self, path: str, callback: Subscriber) -> Unsubscribe:
        """
        Register a callback for writes to path.

        The callback receives the full document after each write.

        Returns:
            A function that removes the subscription
        """
        validate_path(path)
        self._subscribers.setdefault(path, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(path, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def _notify(self, path: str, document: dict) -> None:
        """Deliver a written document to the subscribers of its path."""
        for callback in list(self._subscribers.get(path, [])):
            try:
                callback(dict(document))
            except Exception as e:
                # A failing listener must not fail the write that triggered it
                logger.error("subscriber_failed", path=path, error=str(e))

    async def append_to_list(self, path: str, field: str, item: Any) -> bool:
        """
        Append item to a list field unless an equal item is already there.

        Creates the document and the field if needed.

        Returns:
            True if the item was added, False if it was already present
        """
        document = await self.get(path) or {}
        items = list(document.get(field) or [])
        if item in items:
            return False
        items.append(item)
        await self.put(path, {field: items}, merge=True)
        return True


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one calculate-and-save action).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_user(
        self,
        user_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events about one user's records.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Document not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
