"""Tests for lifecycle.processors.

Each processor is run directly against in-memory stores with the cascade
package built from the sample extraction.
"""

import pytest

from lifecycle.core.cascade_builder import build_cascade_package
from lifecycle.core.errors import ModulePersistenceError
from lifecycle.core.stores import (
    InMemoryComplianceStore,
    InMemoryDealsStore,
    InMemoryESGStore,
    InMemoryTradingStore,
)
from lifecycle.processors import (
    ComplianceProcessor,
    DealsProcessor,
    ESGProcessor,
    TradingProcessor,
    review_status,
)
from lifecycle.pydantic_models.extraction_models import ExtractedObligation, RawExtractionResult
from lifecycle.pydantic_models.results import ComplianceResult, ESGResult
from lifecycle.pydantic_models.run_config import RunConfig


@pytest.fixture
def cascade(sample_extraction, run_config, now):
    return build_cascade_package(sample_extraction, run_config, now)


@pytest.fixture
def empty_cascade(run_config, now):
    return build_cascade_package(RawExtractionResult(), run_config, now)


# =============================================================================
# Shared behaviour
# =============================================================================


class TestProcessorBase:
    """Behaviour every processor gets from ModuleProcessor."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("processor_cls,store_cls", [
        (ComplianceProcessor, InMemoryComplianceStore),
        (DealsProcessor, InMemoryDealsStore),
        (TradingProcessor, InMemoryTradingStore),
        (ESGProcessor, InMemoryESGStore),
    ])
    async def test_no_data_returns_zero_result(self, processor_cls, store_cls, empty_cascade, run_config, logger):
        store = store_cls()
        result = await processor_cls(store, logger).process(empty_cascade, run_config)
        assert result == processor_cls.result_type()
        assert store.calls == []

    def test_review_status(self, run_config):
        auto = run_config.model_copy(update={"auto_confirm_low_risk_items": True})
        assert review_status(False, run_config) == "pending"
        assert review_status(True, run_config) == "pending"
        assert review_status(False, auto) == "confirmed"
        assert review_status(True, auto) == "pending"


# =============================================================================
# Compliance
# =============================================================================


class TestComplianceProcessor:
    """Tests for the compliance writer."""

    @pytest.mark.asyncio
    async def test_writes_everything(self, cascade, run_config, logger):
        store = InMemoryComplianceStore()
        result = await ComplianceProcessor(store, logger).process(cascade, run_config)

        assert result.facility_created is True
        assert result.facility_id == store.rows("compliance_facilities")[0]["id"]
        assert result.covenants_created == 2
        assert result.obligations_created == 1
        assert result.events_scheduled == 1
        assert result.items_pending_review == 1
        assert store.calls == ["create_facility", "create_covenants", "create_obligations", "create_events"]

    @pytest.mark.asyncio
    async def test_rows_are_linked(self, cascade, run_config, logger):
        store = InMemoryComplianceStore()
        result = await ComplianceProcessor(store, logger).process(cascade, run_config)

        facility = store.rows("compliance_facilities")[0]
        assert facility["organization_id"] == "org-001"
        assert facility["source_document_id"] == "doc-001"
        assert facility["status"] == "active"
        assert all(c["facility_id"] == result.facility_id for c in store.rows("compliance_covenants"))
        obligation = store.rows("compliance_obligations")[0]
        assert store.rows("compliance_events")[0]["obligation_id"] == obligation["id"]

    @pytest.mark.asyncio
    async def test_events_link_to_own_obligation(self, sample_facility, run_config, now, logger):
        # Both types map to annual_audited_financials
        raw = RawExtractionResult(
            facility=sample_facility,
            obligations=[
                ExtractedObligation(obligation_type="annual_financials", description="Audited accounts",
                                    frequency="annual", confidence=0.9),
                ExtractedObligation(obligation_type="audit_report", description="Auditor report",
                                    frequency="annual", confidence=0.9),
            ],
        )
        cascade = build_cascade_package(raw, run_config, now)
        store = InMemoryComplianceStore()
        result = await ComplianceProcessor(store, logger).process(cascade, run_config)

        obligation_ids = [o["id"] for o in store.rows("compliance_obligations")]
        events = store.rows("compliance_events")
        assert result.events_scheduled == 2
        assert len(set(obligation_ids)) == 2
        assert [e["obligation_id"] for e in events] == obligation_ids
        assert all("obligation_index" not in e for e in events)

    @pytest.mark.asyncio
    async def test_review_status_pending_by_default(self, cascade, run_config, logger):
        store = InMemoryComplianceStore()
        await ComplianceProcessor(store, logger).process(cascade, run_config)
        assert {c["review_status"] for c in store.rows("compliance_covenants")} == {"pending"}

    @pytest.mark.asyncio
    async def test_auto_confirm_low_risk(self, sample_extraction, now, logger):
        config = RunConfig.from_overrides("doc-001", "org-001", {"auto_confirm_low_risk_items": True})
        cascade = build_cascade_package(sample_extraction, config, now)
        store = InMemoryComplianceStore()
        await ComplianceProcessor(store, logger).process(cascade, config)
        statuses = [c["review_status"] for c in store.rows("compliance_covenants")]
        assert statuses == ["confirmed", "pending"]

    @pytest.mark.asyncio
    async def test_failure_keeps_partial_counts(self, cascade, run_config, logger):
        store = InMemoryComplianceStore(fail_on={"create_obligations"})
        with pytest.raises(ModulePersistenceError) as exc_info:
            await ComplianceProcessor(store, logger).process(cascade, run_config)

        partial = exc_info.value.partial_result
        assert exc_info.value.module == "compliance"
        assert isinstance(partial, ComplianceResult)
        assert partial.facility_created is True
        assert partial.covenants_created == 2
        assert partial.obligations_created == 0
        assert partial.events_scheduled == 0
        assert "create_events" not in store.calls

    @pytest.mark.asyncio
    async def test_facility_failure_stops_children(self, cascade, run_config, logger):
        store = InMemoryComplianceStore(fail_on={"create_facility"})
        with pytest.raises(ModulePersistenceError) as exc_info:
            await ComplianceProcessor(store, logger).process(cascade, run_config)
        assert exc_info.value.partial_result == ComplianceResult()
        assert store.calls == ["create_facility"]


# =============================================================================
# Deals
# =============================================================================


class TestDealsProcessor:
    """Tests for the deals writer."""

    @pytest.mark.asyncio
    async def test_template_counts(self, cascade, run_config, logger):
        store = InMemoryDealsStore()
        result = await DealsProcessor(store, logger).process(cascade, run_config)
        assert result.terms_populated == 10
        assert result.base_terms_from_facility == 10
        assert result.categories_created == 5
        assert result.defined_terms_linked == 1

        template = store.rows("deal_term_templates")[0]
        assert template["template_name"] == "From doc-001"
        assert all(t["source_document_id"] == "doc-001" for t in template["terms"])

    @pytest.mark.asyncio
    async def test_rerun_upserts_single_template(self, cascade, run_config, logger):
        store = InMemoryDealsStore()
        processor = DealsProcessor(store, logger)
        await processor.process(cascade, run_config)
        await processor.process(cascade, run_config)
        assert len(store.rows("deal_term_templates")) == 1


# =============================================================================
# Trading
# =============================================================================


class TestTradingProcessor:
    """Tests for the trading writer."""

    @pytest.mark.asyncio
    async def test_facility_and_checklist(self, cascade, run_config, logger):
        store = InMemoryTradingStore()
        result = await TradingProcessor(store, logger).process(cascade, run_config)
        assert result.facility_created is True
        assert result.transferability_identified is True
        assert result.dd_checklist_items_generated == 12
        assert store.rows("trade_facilities")[0]["transferability"] == "consent_required"

    @pytest.mark.asyncio
    async def test_checklist_failure_keeps_facility(self, cascade, run_config, logger):
        store = InMemoryTradingStore(fail_on={"upsert_dd_checklist_template"})
        with pytest.raises(ModulePersistenceError) as exc_info:
            await TradingProcessor(store, logger).process(cascade, run_config)
        partial = exc_info.value.partial_result
        assert partial.facility_created is True
        assert partial.dd_checklist_items_generated == 0


# =============================================================================
# ESG
# =============================================================================


class TestESGProcessor:
    """Tests for the ESG writer."""

    @pytest.mark.asyncio
    async def test_writes_facility_kpis_targets_categories(self, cascade, run_config, logger):
        store = InMemoryESGStore()
        result = await ESGProcessor(store, logger).process(cascade, run_config)
        assert result == ESGResult(
            facility_created=True,
            facility_id=result.facility_id,
            kpis_created=1,
            targets_created=2,
            proceeds_categories_created=1,
        )

        facility = store.rows("esg_facilities")[0]
        assert facility["facility_name"] == "Acme Revolving Credit Facility"
        assert facility["borrower_name"] == "Acme Holdings Ltd"
        assert facility["maturity_date"] == "2029-03-01"
        assert facility["esg_loan_type"] == "sustainability_linked"
        assert facility["facility_reference"] == "doc-001"

        kpi = store.rows("esg_kpis")[0]
        targets = store.rows("esg_targets")
        assert all(t["kpi_id"] == kpi["id"] for t in targets)
        assert [t["target_date"] for t in targets] == ["2026-12-31", "2027-12-31"]
        assert {t["target_period"] for t in targets} == {"annual"}

    @pytest.mark.asyncio
    async def test_defaults_without_compliance_view(self, sample_extraction, now, logger):
        config = RunConfig.from_overrides("doc-00123456789", "org-001", {"enable_compliance": False})
        cascade = build_cascade_package(sample_extraction, config, now)
        store = InMemoryESGStore()
        await ESGProcessor(store, logger).process(cascade, config)

        facility = store.rows("esg_facilities")[0]
        assert facility["facility_name"] == "ESG Facility - doc-0012"
        assert facility["borrower_name"] == "Unknown"
        assert facility["effective_date"] == "2025-06-15"
        assert facility["maturity_date"] == "2030-06-14"

    @pytest.mark.asyncio
    async def test_target_failure_keeps_kpi_counts(self, cascade, run_config, logger):
        store = InMemoryESGStore(fail_on={"create_targets"})
        with pytest.raises(ModulePersistenceError) as exc_info:
            await ESGProcessor(store, logger).process(cascade, run_config)

        partial = exc_info.value.partial_result
        assert exc_info.value.module == "esg"
        assert partial.facility_created is True
        assert partial.kpis_created == 1
        assert partial.targets_created == 0
        assert partial.proceeds_categories_created == 0
        assert "create_proceeds_categories" not in store.calls
