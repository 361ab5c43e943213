"""Result, progress and status models for lifecycle automation runs.

- Module results: one counter model per downstream module
- LifecycleAutomationResult: the consolidated, persisted outcome of a run
- AutomationProgress: the live progress entry read by status pollers
- AutomationStatusView: what GetAutomationStatus returns
"""

from datetime import datetime, timezone
from typing import Literal, Union

from pydantic import BaseModel, Field

from lifecycle.core.errors import AutomationError, AutomationStatus
from lifecycle.pydantic_models.cascade_models import CascadeDataPackage
from lifecycle.pydantic_models.extraction_models import RawExtractionResult


# Module results
# Every counter starts at zero so a skipped module reports an all-zero result.

class ComplianceResult(BaseModel):
    facility_created: bool = False
    facility_id: str | None = None
    covenants_created: int = 0
    obligations_created: int = 0
    events_scheduled: int = 0
    items_pending_review: int = 0


class DealsResult(BaseModel):
    terms_populated: int = 0
    categories_created: int = 0
    base_terms_from_facility: int = 0
    defined_terms_linked: int = 0


class TradingResult(BaseModel):
    facility_created: bool = False
    facility_id: str | None = None
    dd_checklist_items_generated: int = 0
    transferability_identified: bool = False


class ESGResult(BaseModel):
    facility_created: bool = False
    facility_id: str | None = None
    kpis_created: int = 0
    targets_created: int = 0
    proceeds_categories_created: int = 0


ModuleResult = Union[ComplianceResult, DealsResult, TradingResult, ESGResult]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LifecycleAutomationResult(BaseModel):
    """Consolidated outcome of one run, persisted against the document."""

    document_id: str
    extraction_result: RawExtractionResult | None = None
    compliance: ComplianceResult | None = None
    deals: DealsResult | None = None
    trading: TradingResult | None = None
    esg: ESGResult | None = None
    automation_status: AutomationStatus = AutomationStatus.COMPLETED
    errors: list[AutomationError] = Field(default_factory=list)
    processing_time_ms: int = 0
    cascade_data: CascadeDataPackage | None = None
    processed_at: datetime = Field(default_factory=_utc_now)


# Progress

AutomationPhase = Literal[
    "queued",
    "extracting",
    "processing_compliance",
    "processing_deals",
    "processing_trading",
    "processing_esg",
    "finalizing",
    "completed",
    "failed",
]


class AutomationProgress(BaseModel):
    """Live progress of one run, keyed by document id."""

    document_id: str
    phase: AutomationPhase = "queued"
    percent_complete: int = Field(default=0, ge=0, le=100)
    current_step: str = "Initializing automation pipeline"
    steps_completed: int = 0
    total_steps: int = 0
    modules_processed: list[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=_utc_now)

    @property
    def is_terminal(self) -> bool:
        return self.phase in ("completed", "failed")


class AutomationStatusView(BaseModel):
    """Status answer for pollers: live progress, else persisted result."""

    document_id: str
    status: Literal["not_started", "in_progress", "completed", "failed"]
    phase: str
    percent_complete: int
    current_step: str
    result: LifecycleAutomationResult | None = None
