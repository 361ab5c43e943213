"""Pytest configuration and shared fixtures.

Provides reusable test fixtures for:
- A sample extraction (facility, covenants, obligation, ESG provisions)
- Document records and in-memory stores
- An orchestrator factory wired to in-memory collaborators
- Extractors that fail or block on demand
"""

import asyncio
from datetime import datetime, timezone

import pytest

from lifecycle.core.extraction import StaticExtractor
from lifecycle.core.pipeline_logger import PipelineLogger, reset_logger
from lifecycle.core.progress import ProgressTracker
from lifecycle.core.stores import DocumentRecord, DomainStores, InMemoryDocumentStore
from lifecycle.orchestrator import LifecycleOrchestrator
from lifecycle.pydantic_models.extraction_models import (
    Borrower,
    ExtractedCovenant,
    ExtractedESG,
    ExtractedEvent,
    ExtractedFacility,
    ExtractedObligation,
    ExtractedTerm,
    KPITarget,
    RawExtractionResult,
)
from lifecycle.pydantic_models.run_config import RunConfig


DOCUMENT_ID = "doc-001"
ORGANIZATION_ID = "org-001"
FIXED_NOW = datetime(2025, 6, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _fresh_logger():
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def logger():
    return PipelineLogger(name="lifecycle.tests")


@pytest.fixture
def now():
    return FIXED_NOW


# =============================================================================
# Sample extraction
# =============================================================================


@pytest.fixture
def sample_facility():
    """A fully populated revolving credit facility."""
    return ExtractedFacility(
        facility_name="Acme Revolving Credit Facility",
        facility_reference="ACME-RCF-2024",
        effective_date="2024-03-01",
        maturity_date="2029-03-01",
        borrowers=[Borrower(name="Acme Holdings Ltd", jurisdiction="England")],
        facility_type="revolving_credit",
        currency="EUR",
        total_commitments=250_000_000,
        interest_rate_type="floating",
        base_rate="EURIBOR",
        margin_initial=175,
        governing_law="English law",
        confidence=0.92,
    )


@pytest.fixture
def sample_covenants():
    """Two covenants: one confident, one below the default 0.8 threshold."""
    return [
        ExtractedCovenant(
            covenant_type="leverage_ratio",
            covenant_name="Maximum Leverage Ratio",
            threshold_type="maximum",
            threshold_value=3.5,
            testing_frequency="quarterly",
            clause_reference="22.2(a)",
            confidence=0.95,
        ),
        ExtractedCovenant(
            covenant_type="interest_coverage",
            covenant_name="Minimum Interest Cover",
            threshold_type="minimum",
            threshold_value=4.0,
            testing_frequency="quarterly",
            clause_reference="22.2(b)",
            confidence=0.6,
        ),
    ]


@pytest.fixture
def sample_extraction(sample_facility, sample_covenants):
    """Extraction touching every module."""
    return RawExtractionResult(
        document_id=DOCUMENT_ID,
        facility=sample_facility,
        covenants=sample_covenants,
        obligations=[
            ExtractedObligation(
                obligation_type="annual_financials",
                description="Annual audited financial statements",
                frequency="annual",
                deadline_days=120,
                recipient_role="Agent",
                clause_reference="21.1",
                confidence=0.9,
            ),
        ],
        events_of_default=[
            ExtractedEvent(event_category="non_payment", grace_period_days=3, confidence=0.9),
        ],
        esg_provisions=[
            ExtractedESG(
                provision_type="sustainability_linked_margin",
                kpi_name="Scope 1 and 2 GHG emissions",
                kpi_definition="Absolute tonnes CO2 equivalent",
                kpi_baseline=120_000,
                kpi_targets=[
                    KPITarget(date="2026-12-31", target_value=100_000, margin_adjustment=-2.5),
                    KPITarget(date="2027-12-31", target_value=90_000, margin_adjustment=-5.0),
                ],
                verification_required=True,
                clause_reference="Schedule 12",
                confidence=0.88,
            ),
            ExtractedESG(
                provision_type="green_use_of_proceeds",
                kpi_definition="Financing of solar and wind generation assets",
                clause_reference="3.2",
                confidence=0.85,
            ),
        ],
        defined_terms=[
            ExtractedTerm(term="EBITDA", definition="Consolidated operating profit before ...", clause_reference="1.1"),
        ],
        overall_confidence=0.87,
    )


@pytest.fixture
def run_config():
    return RunConfig(document_id=DOCUMENT_ID, organization_id=ORGANIZATION_ID)


# =============================================================================
# Documents and stores
# =============================================================================


@pytest.fixture
def document():
    return DocumentRecord(
        id=DOCUMENT_ID,
        organization_id=ORGANIZATION_ID,
        processing_status="completed",
        raw_text="FACILITY AGREEMENT dated 1 March 2024 between Acme Holdings Ltd ...",
    )


@pytest.fixture
def document_store(document):
    return InMemoryDocumentStore([document])


@pytest.fixture
def stores():
    return DomainStores.in_memory()


# =============================================================================
# Extractors
# =============================================================================


class FailingExtractor:
    """Extractor whose call always raises."""

    def __init__(self, exc: Exception | None = None):
        self.exc = exc or RuntimeError("model timed out")
        self.calls = 0

    async def extract(self, raw_text: str) -> RawExtractionResult:
        self.calls += 1
        raise self.exc


class BlockingExtractor:
    """Extractor that waits for release() before returning its result."""

    def __init__(self, result: RawExtractionResult):
        self.result = result
        self.started = asyncio.Event()
        self._release = asyncio.Event()

    def release(self):
        self._release.set()

    async def extract(self, raw_text: str) -> RawExtractionResult:
        self.started.set()
        await self._release.wait()
        return self.result


@pytest.fixture
def failing_extractor():
    return FailingExtractor()


@pytest.fixture
def blocking_extractor(sample_extraction):
    return BlockingExtractor(sample_extraction)


# =============================================================================
# Orchestrator factory
# =============================================================================


@pytest.fixture
def make_orchestrator(document_store, stores, sample_extraction, logger, now):
    """Factory building an orchestrator over the shared in-memory fixtures.

    Any collaborator can be swapped by keyword.
    """

    def _make(**overrides):
        kwargs = {
            "documents": document_store,
            "extractor": StaticExtractor(sample_extraction),
            "stores": stores,
            "progress": ProgressTracker(total_steps=6),
            "logger": logger,
            "clock": lambda: now,
        }
        kwargs.update(overrides)
        return LifecycleOrchestrator(**kwargs)

    return _make
