"""Core utilities for lifecycle automation.

Only the dependency-free modules are re-exported here; the pydantic models
import from lifecycle.core, so anything that imports them (builder,
progress, stores, extraction) is imported from its own module.
"""

from lifecycle.core.config import (
    LLM_PROVIDER,
    API_KEY_ENV_VAR,
    API_KEY_ENV_VARS,
    EXTRACTION_MODEL,
    FALLBACK_EXTRACTION_MODEL,
    LLMConfig,
    RetryConfig,
    ProgressCheckpoints,
    ConfidenceThresholds,
    ComplianceDefaults,
    DealsConfig,
    TradingDefaults,
    ESGDefaults,
)
from lifecycle.core.errors import (
    AutomationStatus,
    Stage,
    LifecycleError,
    DocumentNotFoundError,
    DocumentNotReadyError,
    ExtractionFailedError,
    StoreError,
    ModulePersistenceError,
    AutomationError,
    AutomationErrors,
    ErrorClassifier,
)
from lifecycle.core.pipeline_logger import PipelineLogger, get_logger, reset_logger

__all__ = [
    # Config
    "LLM_PROVIDER",
    "API_KEY_ENV_VAR",
    "API_KEY_ENV_VARS",
    "EXTRACTION_MODEL",
    "FALLBACK_EXTRACTION_MODEL",
    "LLMConfig",
    "RetryConfig",
    "ProgressCheckpoints",
    "ConfidenceThresholds",
    "ComplianceDefaults",
    "DealsConfig",
    "TradingDefaults",
    "ESGDefaults",
    # Errors
    "AutomationStatus",
    "Stage",
    "LifecycleError",
    "DocumentNotFoundError",
    "DocumentNotReadyError",
    "ExtractionFailedError",
    "StoreError",
    "ModulePersistenceError",
    "AutomationError",
    "AutomationErrors",
    "ErrorClassifier",
    # Logging
    "PipelineLogger",
    "get_logger",
    "reset_logger",
]
