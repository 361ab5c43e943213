"""Pydantic models for the raw extraction result.

This is the payload the extraction collaborator hands the pipeline: one
facility plus lists of covenant, obligation, event-of-default, ESG and
defined-term candidates, each carrying its own confidence score.
"""

from pydantic import BaseModel, Field


class Borrower(BaseModel):
    """A borrowing entity named in the agreement."""

    name: str
    jurisdiction: str | None = None
    role: str | None = None


class Lender(BaseModel):
    name: str
    commitment_amount: float | None = None
    percentage: float | None = None


class Agent(BaseModel):
    name: str
    role: str


class MarginGridStep(BaseModel):
    threshold: float
    margin: float


class ExtractedFacility(BaseModel):
    """Facility-level terms from the credit agreement."""

    facility_name: str = ""
    facility_reference: str | None = None
    execution_date: str | None = None
    effective_date: str | None = None
    maturity_date: str | None = None
    borrowers: list[Borrower] = Field(default_factory=list)
    lenders: list[Lender] = Field(default_factory=list)
    agents: list[Agent] = Field(default_factory=list)
    facility_type: str | None = None
    currency: str | None = None
    total_commitments: float | None = None
    interest_rate_type: str | None = None
    base_rate: str | None = None
    margin_initial: float | None = Field(default=None, description="Initial margin in bps")
    margin_grid: list[MarginGridStep] = Field(default_factory=list)
    governing_law: str | None = None
    jurisdiction: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class ExtractedCovenant(BaseModel):
    """A financial covenant candidate."""

    covenant_type: str = "other"
    covenant_name: str
    numerator_definition: str | None = None
    denominator_definition: str | None = None
    threshold_type: str | None = Field(default=None, description="'maximum' or 'minimum'")
    threshold_value: float | None = None
    testing_frequency: str | None = None
    clause_reference: str | None = None
    page_number: int | None = None
    raw_text: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    requires_review: bool = False


class ExtractedObligation(BaseModel):
    """A reporting obligation candidate."""

    obligation_type: str = "other"
    description: str | None = None
    frequency: str | None = None
    deadline_days: int | None = None
    recipient_role: str | None = None
    clause_reference: str | None = None
    page_number: int | None = None
    raw_text: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    requires_review: bool = False


class ExtractedEvent(BaseModel):
    """An event-of-default clause."""

    event_category: str
    description: str | None = None
    grace_period_days: int | None = None
    cure_rights: str | None = None
    consequences: str | None = None
    clause_reference: str | None = None
    page_number: int | None = None
    raw_text: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class KPITarget(BaseModel):
    date: str
    target_value: float
    margin_adjustment: float | None = Field(default=None, description="Margin ratchet in bps")


class ExtractedESG(BaseModel):
    """A sustainability provision (KPI, margin ratchet or use of proceeds)."""

    provision_type: str = Field(
        description="e.g. 'sustainability_linked_margin', 'green_use_of_proceeds', 'reporting'"
    )
    kpi_name: str | None = None
    kpi_definition: str | None = None
    kpi_baseline: float | None = None
    kpi_targets: list[KPITarget] = Field(default_factory=list)
    verification_required: bool = False
    clause_reference: str | None = None
    page_number: int | None = None
    raw_text: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    requires_review: bool = False


class ExtractedTerm(BaseModel):
    """A defined term from the definitions clause."""

    term: str
    definition: str
    clause_reference: str | None = None
    page_number: int | None = None
    references_terms: list[str] = Field(default_factory=list)


class RawExtractionResult(BaseModel):
    """Everything the extraction collaborator found in one document."""

    document_id: str = ""
    facility: ExtractedFacility | None = None
    covenants: list[ExtractedCovenant] = Field(default_factory=list)
    obligations: list[ExtractedObligation] = Field(default_factory=list)
    events_of_default: list[ExtractedEvent] = Field(default_factory=list)
    esg_provisions: list[ExtractedESG] = Field(default_factory=list)
    defined_terms: list[ExtractedTerm] = Field(default_factory=list)
    overall_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
