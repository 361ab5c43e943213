"""Cascade package builder.

Reshapes one RawExtractionResult into the four module views of a
CascadeDataPackage. Pure: no store access, never raises for missing data.
A module whose extraction slice is empty (or which the run disabled) gets
None instead of an empty sub-package, so processors can tell "nothing to do"
apart from "nothing written".
"""

from datetime import datetime, timezone

from lifecycle.core.config import ComplianceDefaults, DealsConfig, DEFAULT_CURRENCY, ESGDefaults
from lifecycle.core.mappers import (
    generate_compliance_events,
    generate_dd_checklist,
    map_covenant,
    map_esg_provision,
    map_facility_to_deal_terms,
    map_facility_to_trading,
    map_obligation,
    needs_review,
)
from lifecycle.pydantic_models.cascade_models import (
    CascadeDataPackage,
    CascadeStats,
    ComplianceCascade,
    ComplianceFacilityData,
    DealsCascade,
    ESGCascade,
    ESGLoanType,
    LinkedDefinedTerm,
    ProceedsCategory,
    TradingCascade,
)
from lifecycle.pydantic_models.extraction_models import RawExtractionResult
from lifecycle.pydantic_models.run_config import RunConfig


def classify_esg_loan_type(has_margin_adjustment: bool, has_proceeds_categories: bool) -> ESGLoanType:
    """Decide the ESG loan type.

    A margin ratchet wins over use-of-proceeds language, which wins over the
    hybrid default.
    """
    if has_margin_adjustment:
        return "sustainability_linked"
    if has_proceeds_categories:
        return "green_loan"
    return "esg_linked_hybrid"


def build_compliance(raw: RawExtractionResult, config: RunConfig, now: datetime) -> ComplianceCascade | None:
    if raw.facility is None and not raw.covenants and not raw.obligations:
        return None

    facility_data = None
    if raw.facility is not None:
        facility = raw.facility
        facility_data = ComplianceFacilityData(
            facility_name=facility.facility_name,
            facility_reference=facility.facility_reference or None,
            borrower_name=facility.borrowers[0].name if facility.borrowers else ComplianceDefaults.UNKNOWN_BORROWER,
            maturity_date=facility.maturity_date or None,
            reporting_currency=facility.currency or DEFAULT_CURRENCY,
        )

    today = now.date()
    threshold = config.confidence_threshold
    covenants = [map_covenant(c, threshold, today) for c in raw.covenants]
    obligations = [map_obligation(o, threshold) for o in raw.obligations]

    return ComplianceCascade(
        facility_data=facility_data,
        covenants=covenants,
        obligations=obligations,
        calendar_events=generate_compliance_events(obligations, config.fiscal_year_end, today.year),
    )


def build_deals(raw: RawExtractionResult) -> DealsCascade | None:
    if raw.facility is None:
        return None
    return DealsCascade(
        terms=map_facility_to_deal_terms(raw.facility),
        categories=list(DealsConfig.TERM_CATEGORIES),
        defined_terms=[
            LinkedDefinedTerm(
                term=t.term,
                definition=t.definition,
                clause_reference=t.clause_reference,
                references_terms=list(t.references_terms),
            )
            for t in raw.defined_terms
        ],
    )


def build_trading(raw: RawExtractionResult, now: datetime) -> TradingCascade | None:
    if raw.facility is None:
        return None
    return TradingCascade(
        facility=map_facility_to_trading(raw.facility, now.date()),
        dd_checklist_items=generate_dd_checklist(
            raw.facility, raw.covenants, raw.obligations, raw.events_of_default
        ),
    )


def build_esg(raw: RawExtractionResult, config: RunConfig, now: datetime) -> ESGCascade | None:
    today = now.date()
    kpis = [
        kpi
        for kpi in (map_esg_provision(p, config.confidence_threshold, today) for p in raw.esg_provisions)
        if kpi is not None
    ]
    proceeds = [
        ProceedsCategory(
            category_name=p.kpi_name or ESGDefaults.PROCEEDS_CATEGORY_NAME,
            category_type="green",
            eligibility_criteria=p.kpi_definition or None,
            clause_reference=p.clause_reference or None,
        )
        for p in raw.esg_provisions
        if p.provision_type == "green_use_of_proceeds"
    ]
    if not kpis and not proceeds:
        return None

    has_margin_adjustment = any(p.provision_type == "sustainability_linked_margin" for p in raw.esg_provisions)
    return ESGCascade(
        kpis=kpis,
        proceeds_categories=proceeds,
        has_margin_adjustment=has_margin_adjustment,
        loan_type=classify_esg_loan_type(has_margin_adjustment, bool(proceeds)),
    )


def build_stats(raw: RawExtractionResult, config: RunConfig) -> CascadeStats:
    threshold = config.confidence_threshold
    flagged = [
        needs_review(item.confidence, threshold, item.requires_review)
        for group in (raw.covenants, raw.obligations, raw.esg_provisions)
        for item in group
    ]
    return CascadeStats(
        total_covenants=len(raw.covenants),
        total_obligations=len(raw.obligations),
        total_esg_provisions=len(raw.esg_provisions),
        total_events_of_default=len(raw.events_of_default),
        items_requiring_review=sum(flagged),
        overall_confidence=raw.overall_confidence,
    )


def build_cascade_package(
    raw: RawExtractionResult,
    config: RunConfig,
    now: datetime | None = None,
) -> CascadeDataPackage:
    """Build the cascade package for one run.

    Args:
        raw: Extraction result for the run's document.
        config: Run configuration (module flags, review threshold, fiscal year).
        now: Reference time for date-derived fields. Defaults to the current UTC time.

    Returns:
        CascadeDataPackage with a sub-package for every enabled module that
        has data.
    """
    now = now or datetime.now(timezone.utc)

    return CascadeDataPackage(
        document_id=raw.document_id or config.document_id,
        organization_id=config.organization_id,
        extracted_at=now,
        compliance=build_compliance(raw, config, now) if config.enable_compliance else None,
        deals=build_deals(raw) if config.enable_deals else None,
        trading=build_trading(raw, now) if config.enable_trading else None,
        esg=build_esg(raw, config, now) if config.enable_esg else None,
        stats=build_stats(raw, config),
    )
