"""Store interfaces for the document record and the four domain modules.

The pipeline never talks to a database directly. Each collaborator is an
async Protocol; the in-memory implementations below back the CLI and the test
suite and can be told to fail on a named operation to exercise partial
failure paths.

Write operations take plain dict records (the mapped cascade rows plus the
foreign keys the processor adds) and return the stored rows with an ``id``.
A rejected write raises StoreError.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from pydantic import BaseModel

from lifecycle.core.errors import StoreError
from lifecycle.pydantic_models.extraction_models import RawExtractionResult


Record = dict[str, Any]


class DocumentRecord(BaseModel):
    """The slice of a loan document the pipeline reads."""

    id: str
    organization_id: str
    processing_status: str = "pending"
    raw_text: str | None = None
    lifecycle_automation_result: dict[str, Any] | None = None

    @property
    def is_extraction_ready(self) -> bool:
        return self.processing_status == "completed" or bool(self.raw_text)


# Protocols

class Extractor(Protocol):
    async def extract(self, raw_text: str) -> RawExtractionResult:
        """Turn document text into a RawExtractionResult.

        Raises:
            ExtractionFailedError: When no usable result can be produced.
        """
        ...


class DocumentStore(Protocol):
    async def get(self, document_id: str) -> DocumentRecord | None: ...

    async def persist_lifecycle_result(self, document_id: str, payload: Record) -> None:
        """Replace the document's lifecycle result with ``payload``."""
        ...


class ComplianceStore(Protocol):
    async def create_facility(self, record: Record) -> Record: ...

    async def create_covenants(self, records: list[Record]) -> list[Record]: ...

    async def create_obligations(self, records: list[Record]) -> list[Record]: ...

    async def create_events(self, records: list[Record]) -> list[Record]: ...


class DealsStore(Protocol):
    async def upsert_term_template(self, record: Record) -> Record: ...


class TradingStore(Protocol):
    async def create_facility(self, record: Record) -> Record: ...

    async def upsert_dd_checklist_template(self, record: Record) -> Record: ...


class ESGStore(Protocol):
    async def create_facility(self, record: Record) -> Record: ...

    async def create_kpis(self, records: list[Record]) -> list[Record]: ...

    async def create_targets(self, records: list[Record]) -> list[Record]: ...

    async def create_proceeds_categories(self, records: list[Record]) -> list[Record]: ...


# In-memory implementations

def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryStore:
    """Table-per-operation store kept in a dict of lists.

    Args:
        fail_on: Operation names (e.g. ``"create_covenants"``) that raise
            StoreError instead of writing.
    """

    def __init__(self, fail_on: set[str] | None = None):
        self.tables: dict[str, list[Record]] = {}
        self.fail_on: set[str] = set(fail_on or ())
        self.calls: list[str] = []

    def rows(self, table: str) -> list[Record]:
        return self.tables.get(table, [])

    @property
    def write_count(self) -> int:
        return sum(len(rows) for rows in self.tables.values())

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise StoreError(operation, "write rejected by store")

    def _insert(self, operation: str, table: str, records: list[Record]) -> list[Record]:
        self._check(operation)
        stored = []
        for record in records:
            row = copy.deepcopy(record)
            row["id"] = str(uuid.uuid4())
            row.setdefault("created_at", _utc_now())
            stored.append(row)
        self.tables.setdefault(table, []).extend(stored)
        return copy.deepcopy(stored)

    def _upsert(self, operation: str, table: str, record: Record, keys: tuple[str, ...]) -> Record:
        self._check(operation)
        rows = self.tables.setdefault(table, [])
        row = copy.deepcopy(record)
        row["updated_at"] = _utc_now()
        for index, existing in enumerate(rows):
            if all(existing.get(k) == row.get(k) for k in keys):
                row["id"] = existing["id"]
                rows[index] = row
                return copy.deepcopy(row)
        row["id"] = str(uuid.uuid4())
        rows.append(row)
        return copy.deepcopy(row)


_TEMPLATE_KEYS = ("organization_id", "source_document_id")


class InMemoryComplianceStore(InMemoryStore):
    async def create_facility(self, record: Record) -> Record:
        return self._insert("create_facility", "compliance_facilities", [record])[0]

    async def create_covenants(self, records: list[Record]) -> list[Record]:
        return self._insert("create_covenants", "compliance_covenants", records)

    async def create_obligations(self, records: list[Record]) -> list[Record]:
        return self._insert("create_obligations", "compliance_obligations", records)

    async def create_events(self, records: list[Record]) -> list[Record]:
        return self._insert("create_events", "compliance_events", records)


class InMemoryDealsStore(InMemoryStore):
    async def upsert_term_template(self, record: Record) -> Record:
        return self._upsert("upsert_term_template", "deal_term_templates", record, _TEMPLATE_KEYS)


class InMemoryTradingStore(InMemoryStore):
    async def create_facility(self, record: Record) -> Record:
        return self._insert("create_facility", "trade_facilities", [record])[0]

    async def upsert_dd_checklist_template(self, record: Record) -> Record:
        return self._upsert("upsert_dd_checklist_template", "dd_checklist_templates", record, _TEMPLATE_KEYS)


class InMemoryESGStore(InMemoryStore):
    async def create_facility(self, record: Record) -> Record:
        return self._insert("create_facility", "esg_facilities", [record])[0]

    async def create_kpis(self, records: list[Record]) -> list[Record]:
        return self._insert("create_kpis", "esg_kpis", records)

    async def create_targets(self, records: list[Record]) -> list[Record]:
        return self._insert("create_targets", "esg_targets", records)

    async def create_proceeds_categories(self, records: list[Record]) -> list[Record]:
        return self._insert("create_proceeds_categories", "use_of_proceeds_categories", records)


class InMemoryDocumentStore:
    """Document records keyed by id."""

    def __init__(self, documents: list[DocumentRecord] | None = None, fail_on: set[str] | None = None):
        self.documents: dict[str, DocumentRecord] = {d.id: d for d in documents or ()}
        self.fail_on: set[str] = set(fail_on or ())
        self.persist_count = 0

    def add(self, document: DocumentRecord) -> None:
        self.documents[document.id] = document

    async def get(self, document_id: str) -> DocumentRecord | None:
        document = self.documents.get(document_id)
        return document.model_copy(deep=True) if document else None

    async def persist_lifecycle_result(self, document_id: str, payload: Record) -> None:
        if "persist_lifecycle_result" in self.fail_on:
            raise StoreError("persist_lifecycle_result", "write rejected by store")
        document = self.documents.get(document_id)
        if document is None:
            raise StoreError("persist_lifecycle_result", f"no document {document_id}")
        self.documents[document_id] = document.model_copy(
            update={"lifecycle_automation_result": copy.deepcopy(payload)}
        )
        self.persist_count += 1


@dataclass(frozen=True)
class DomainStores:
    """The four module stores a run writes to."""

    compliance: ComplianceStore
    deals: DealsStore
    trading: TradingStore
    esg: ESGStore

    @classmethod
    def in_memory(cls, fail_on: dict[str, set[str]] | None = None) -> DomainStores:
        """Fresh in-memory stores. ``fail_on`` maps module name to failing operations."""
        fail_on = fail_on or {}
        return cls(
            compliance=InMemoryComplianceStore(fail_on.get("compliance")),
            deals=InMemoryDealsStore(fail_on.get("deals")),
            trading=InMemoryTradingStore(fail_on.get("trading")),
            esg=InMemoryESGStore(fail_on.get("esg")),
        )


__all__ = [
    "Record",
    "DocumentRecord",
    "Extractor",
    "DocumentStore",
    "ComplianceStore",
    "DealsStore",
    "TradingStore",
    "ESGStore",
    "InMemoryStore",
    "InMemoryComplianceStore",
    "InMemoryDealsStore",
    "InMemoryTradingStore",
    "InMemoryESGStore",
    "InMemoryDocumentStore",
    "DomainStores",
]
