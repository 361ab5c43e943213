"""Pydantic models for lifecycle automation.

Modules:
- extraction_models: RawExtractionResult and the extracted facts it holds
- cascade_models: CascadeDataPackage and its four module views
- results: module results, LifecycleAutomationResult, progress and status
- run_config: RunConfig
"""

from lifecycle.pydantic_models.extraction_models import (
    Borrower,
    Lender,
    Agent,
    MarginGridStep,
    ExtractedFacility,
    ExtractedCovenant,
    ExtractedObligation,
    ExtractedEvent,
    KPITarget,
    ExtractedESG,
    ExtractedTerm,
    RawExtractionResult,
)
from lifecycle.pydantic_models.cascade_models import (
    ESGLoanType,
    ThresholdStep,
    ComplianceFacilityData,
    MappedCovenant,
    MappedObligation,
    ComplianceEvent,
    ComplianceCascade,
    DealTerm,
    LinkedDefinedTerm,
    DealsCascade,
    TradeFacility,
    DDChecklistItem,
    TradingCascade,
    MappedKPITarget,
    MappedKPI,
    ProceedsCategory,
    ESGCascade,
    CascadeStats,
    CascadeDataPackage,
)
from lifecycle.pydantic_models.results import (
    ComplianceResult,
    DealsResult,
    TradingResult,
    ESGResult,
    ModuleResult,
    LifecycleAutomationResult,
    AutomationPhase,
    AutomationProgress,
    AutomationStatusView,
)
from lifecycle.pydantic_models.run_config import RunConfig

__all__ = [
    # Extraction
    "Borrower",
    "Lender",
    "Agent",
    "MarginGridStep",
    "ExtractedFacility",
    "ExtractedCovenant",
    "ExtractedObligation",
    "ExtractedEvent",
    "KPITarget",
    "ExtractedESG",
    "ExtractedTerm",
    "RawExtractionResult",
    # Cascade
    "ESGLoanType",
    "ThresholdStep",
    "ComplianceFacilityData",
    "MappedCovenant",
    "MappedObligation",
    "ComplianceEvent",
    "ComplianceCascade",
    "DealTerm",
    "LinkedDefinedTerm",
    "DealsCascade",
    "TradeFacility",
    "DDChecklistItem",
    "TradingCascade",
    "MappedKPITarget",
    "MappedKPI",
    "ProceedsCategory",
    "ESGCascade",
    "CascadeStats",
    "CascadeDataPackage",
    # Results
    "ComplianceResult",
    "DealsResult",
    "TradingResult",
    "ESGResult",
    "ModuleResult",
    "LifecycleAutomationResult",
    "AutomationPhase",
    "AutomationProgress",
    "AutomationStatusView",
    # Config
    "RunConfig",
]
