"""Pydantic models for the cascade data package.

The cascade package is the module-partitioned view of one extraction:
- compliance: facility data, mapped covenants/obligations, calendar events
- deals: term template rows
- trading: trade facility and DD checklist
- esg: KPIs, proceeds categories and the inferred loan type

A sub-package is None when its module is disabled or the extraction had
nothing for it. The package is built once per run and only read afterwards.
"""

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


ESGLoanType = Literal["sustainability_linked", "green_loan", "esg_linked_hybrid"]


# Compliance

class ThresholdStep(BaseModel):
    effective_from: date
    threshold_value: float


class ComplianceFacilityData(BaseModel):
    facility_name: str
    facility_reference: str | None = None
    borrower_name: str
    maturity_date: str | None = None
    reporting_currency: str


class MappedCovenant(BaseModel):
    covenant_type: str
    name: str
    description: str | None = None
    numerator_definition: str | None = None
    denominator_definition: str | None = None
    threshold_type: Literal["maximum", "minimum"]
    threshold_schedule: list[ThresholdStep] | None = None
    testing_frequency: Literal["quarterly", "semi_annual", "annual"]
    testing_basis: Literal["period_end", "rolling_12_months", "rolling_4_quarters"] = "period_end"
    has_equity_cure: bool = False
    clause_reference: str | None = None
    confidence: float
    requires_review: bool


ObligationFrequency = Literal["annual", "semi_annual", "quarterly", "monthly", "one_time", "on_event"]


class MappedObligation(BaseModel):
    obligation_type: str
    name: str
    description: str | None = None
    frequency: ObligationFrequency
    reference_point: Literal["period_end", "fiscal_year_end", "fixed_date", "event_date"] = "period_end"
    deadline_days: int
    recipient_roles: list[str]
    requires_certification: bool
    requires_audit: bool
    clause_reference: str | None = None
    confidence: float
    requires_review: bool


class ComplianceEvent(BaseModel):
    """One reporting deadline on the compliance calendar."""

    obligation_index: int = Field(description="Position of the source obligation in ComplianceCascade.obligations")
    obligation_type: str
    obligation_name: str
    reference_period_start: date
    reference_period_end: date
    deadline_date: date
    grace_deadline_date: date
    status: Literal["upcoming"] = "upcoming"


class ComplianceCascade(BaseModel):
    model_config = ConfigDict(frozen=True)

    facility_data: ComplianceFacilityData | None = None
    covenants: list[MappedCovenant] = Field(default_factory=list)
    obligations: list[MappedObligation] = Field(default_factory=list)
    calendar_events: list[ComplianceEvent] = Field(default_factory=list)


# Deals

class DealTerm(BaseModel):
    term_key: str
    term_label: str
    term_description: str | None = None
    value_type: str
    current_value: Any = None
    current_value_text: str | None = None
    source_clause_reference: str | None = None
    category: str


class LinkedDefinedTerm(BaseModel):
    term: str
    definition: str
    clause_reference: str | None = None
    references_terms: list[str] = Field(default_factory=list)


class DealsCascade(BaseModel):
    model_config = ConfigDict(frozen=True)

    terms: list[DealTerm] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    defined_terms: list[LinkedDefinedTerm] = Field(default_factory=list)


# Trading

class TradeFacility(BaseModel):
    facility_name: str
    facility_reference: str | None = None
    borrower_name: str
    total_commitments: float
    currency: str
    maturity_date: str
    transferability: Literal["freely_transferable", "consent_required", "restricted"]
    minimum_transfer_amount: float | None = None
    current_status: Literal["performing", "default", "restructuring"]


class DDChecklistItem(BaseModel):
    category: str
    item_name: str
    item_description: str
    data_source: Literal["auto_system", "seller_provided", "document_review", "external"]
    required_for: Literal["buyer", "seller", "both"]
    is_critical: bool
    display_order: int


class TradingCascade(BaseModel):
    model_config = ConfigDict(frozen=True)

    facility: TradeFacility | None = None
    dd_checklist_items: list[DDChecklistItem] = Field(default_factory=list)


# ESG

class MappedKPITarget(BaseModel):
    target_year: int
    target_value: float
    margin_adjustment_bps: float | None = None


class MappedKPI(BaseModel):
    kpi_name: str
    kpi_category: str
    kpi_subcategory: str | None = None
    unit_of_measure: str
    measurement_methodology: str | None = None
    baseline_year: int | None = None
    baseline_value: float | None = None
    improvement_direction: Literal["decrease", "increase"]
    is_core_kpi: bool
    requires_external_verification: bool
    clause_reference: str | None = None
    targets: list[MappedKPITarget] = Field(default_factory=list)
    confidence: float
    requires_review: bool


class ProceedsCategory(BaseModel):
    category_name: str
    category_type: Literal["green", "social"] = "green"
    eligibility_criteria: str | None = None
    clause_reference: str | None = None


class ESGCascade(BaseModel):
    model_config = ConfigDict(frozen=True)

    kpis: list[MappedKPI] = Field(default_factory=list)
    proceeds_categories: list[ProceedsCategory] = Field(default_factory=list)
    has_margin_adjustment: bool = False
    loan_type: ESGLoanType = "esg_linked_hybrid"


# Package

class CascadeStats(BaseModel):
    total_covenants: int = 0
    total_obligations: int = 0
    total_esg_provisions: int = 0
    total_events_of_default: int = 0
    items_requiring_review: int = 0
    overall_confidence: float = 0.0


class CascadeDataPackage(BaseModel):
    """Module-shaped views of one extraction result."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    organization_id: str
    extracted_at: datetime

    compliance: ComplianceCascade | None = None
    deals: DealsCascade | None = None
    trading: TradingCascade | None = None
    esg: ESGCascade | None = None

    stats: CascadeStats = Field(default_factory=CascadeStats)
