"""Progress tracking for automation runs.

The orchestrator writes one AutomationProgress entry per document id at each
stage boundary; status pollers read it. Storage sits behind ProgressStore so
a process-local dict can be swapped for a shared cache without touching the
orchestrator.

Entries are never expired by the in-memory store. A long-lived process keeps
one entry per document it has ever automated until clear() is called.
"""

from __future__ import annotations

import threading
from typing import Any, Protocol

from lifecycle.pydantic_models.results import AutomationProgress


class ProgressStore(Protocol):
    """Keyed storage for progress entries. Must be safe across threads."""

    def get(self, document_id: str) -> AutomationProgress | None: ...

    def set(self, document_id: str, progress: AutomationProgress) -> None: ...

    def delete(self, document_id: str) -> None: ...


class InMemoryProgressStore:
    """Lock-guarded dict store scoped to the current process."""

    def __init__(self) -> None:
        self._entries: dict[str, AutomationProgress] = {}
        self._lock = threading.Lock()

    def get(self, document_id: str) -> AutomationProgress | None:
        with self._lock:
            return self._entries.get(document_id)

    def set(self, document_id: str, progress: AutomationProgress) -> None:
        with self._lock:
            self._entries[document_id] = progress

    def delete(self, document_id: str) -> None:
        with self._lock:
            self._entries.pop(document_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ProgressTracker:
    """Init/update/get interface over a ProgressStore.

    Entries are replaced, never mutated in place, so a reader holding an
    entry always sees a consistent snapshot.
    """

    def __init__(self, store: ProgressStore | None = None, total_steps: int = 0):
        self.store: ProgressStore = store if store is not None else InMemoryProgressStore()
        self.total_steps = total_steps
        self._update_lock = threading.Lock()

    def init(self, document_id: str) -> AutomationProgress:
        """Start a fresh entry, replacing any left over from a previous run."""
        progress = AutomationProgress(document_id=document_id, total_steps=self.total_steps)
        self.store.set(document_id, progress)
        return progress

    def update(self, document_id: str, **fields: Any) -> AutomationProgress | None:
        """Shallow-merge ``fields`` into the entry.

        percent_complete never moves backwards within a run. Returns None
        when the document has no entry.

        Raises:
            pydantic.ValidationError: The merged entry is invalid (percent
                outside 0-100, unknown phase). The stored entry is unchanged.
        """
        with self._update_lock:
            existing = self.store.get(document_id)
            if existing is None:
                return None

            percent = fields.get("percent_complete")
            if percent is not None and percent < existing.percent_complete:
                fields["percent_complete"] = existing.percent_complete

            updated = AutomationProgress.model_validate({**existing.model_dump(), **fields})
            self.store.set(document_id, updated)
            return updated

    def get(self, document_id: str) -> AutomationProgress | None:
        return self.store.get(document_id)

    def clear(self, document_id: str) -> None:
        self.store.delete(document_id)
