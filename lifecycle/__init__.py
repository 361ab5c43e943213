"""Loan document lifecycle automation.

Takes one processed loan document, extracts its terms, and cascades them into
the compliance, deals, trading and ESG modules in a single run.

Architecture:
    core/            - config, errors, logging, mappers, cascade builder,
                       progress tracking, store interfaces, LLM extraction
    processors/      - one writer per downstream module
    pydantic_models/ - extraction, cascade, result and config models
    orchestrator.py  - runs the stages and reports progress

Usage:
    from lifecycle import LifecycleOrchestrator

    orchestrator = LifecycleOrchestrator(documents, extractor, stores)
    result = await orchestrator.start_automation("doc-123", {"enable_esg": False})

CLI:
    lifecycle run document.json --extraction extraction.json
"""

from lifecycle.orchestrator import LifecycleOrchestrator, ModuleStage
from lifecycle.pydantic_models import (
    RunConfig,
    RawExtractionResult,
    CascadeDataPackage,
    LifecycleAutomationResult,
    AutomationProgress,
    AutomationStatusView,
)

__all__ = [
    "LifecycleOrchestrator",
    "ModuleStage",
    "RunConfig",
    "RawExtractionResult",
    "CascadeDataPackage",
    "LifecycleAutomationResult",
    "AutomationProgress",
    "AutomationStatusView",
]
