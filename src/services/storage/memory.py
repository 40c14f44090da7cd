"""
In-Memory Storage Implementation

Used for local runs without Google Sheets and throughout the tests.
Documents are deep-copied on the way in and out so callers can never
mutate stored state by accident.
"""

import copy
from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.services.storage.interface import (
    AuditStorageInterface,
    DocumentStoreInterface,
    validate_path,
)


class InMemoryDocumentStore(DocumentStoreInterface):
    """Dictionary-backed document store."""

    def __init__(self, documents: Optional[dict[str, dict]] = None):
        super().__init__()
        self._documents: dict[str, dict] = copy.deepcopy(documents or {})

    async def get(self, path: str) -> Optional[dict]:
        validate_path(path)
        document = self._documents.get(path)
        return copy.deepcopy(document) if document is not None else None

    async def put(self, path: str, data: dict, merge: bool = True) -> None:
        validate_path(path)
        if merge and path in self._documents:
            document = self._documents[path]
            document.update(copy.deepcopy(data))
        else:
            document = copy.deepcopy(data)
            self._documents[path] = document

        self._notify(path, copy.deepcopy(document))

    @property
    def paths(self) -> list[str]:
        return sorted(self._documents)


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed append-only audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_user(
        self,
        user_id: str,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.user_id == user_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    def __len__(self) -> int:
        return len(self._events)
