"""Centralized configuration for the lifecycle automation pipeline.

All magic numbers, defaults, and checkpoint values live here.
Each constant documents:
- What it controls
- Where it is used
"""

import os
from typing import Final


# =============================================================================
# LLM Provider Configuration (extraction collaborator)
# =============================================================================
#
# Only the LLMExtractor talks to a model. Switch providers with LLM_PROVIDER:
#   - "openrouter" (default): Uses OpenRouter API gateway
#   - "azure": Uses Azure OpenAI Service
#
# For Azure, also set AZURE_API_KEY, AZURE_API_BASE, AZURE_API_VERSION and
# optionally AZURE_DEPLOYMENT_EXTRACTION.
#
# =============================================================================

LLM_PROVIDER: Final[str] = os.environ.get("LLM_PROVIDER", "openrouter")
"""LLM provider to use. Set via LLM_PROVIDER env var."""

API_KEY_ENV_VARS: Final[dict[str, str]] = {
    "openrouter": "OPENROUTER_API_KEY",
    "azure": "AZURE_API_KEY",
}

API_KEY_ENV_VAR: Final[str] = API_KEY_ENV_VARS.get(LLM_PROVIDER, "OPENROUTER_API_KEY")
"""Environment variable name for the LLM API key (provider-dependent)."""


def _get_model_name(base_model: str) -> str:
    """Convert a base model name to the provider-specific identifier."""
    if LLM_PROVIDER == "azure":
        return f"azure/{os.environ.get('AZURE_DEPLOYMENT_EXTRACTION', base_model)}"
    return f"openrouter/openai/{base_model}"


EXTRACTION_MODEL: Final[str] = _get_model_name("gpt-4o")
"""Model used for full-document extraction.

A loan agreement is one long call, so the stronger model is the default here.
Used by: extraction.py:LLMExtractor
"""

FALLBACK_EXTRACTION_MODEL: Final[str] = _get_model_name("gpt-4o-mini")
"""Model the router falls back to when the extraction model keeps failing."""


class LLMConfig:
    """Default parameters for LLM API calls."""

    TEMPERATURE: Final[float] = 0.0
    """0.0 keeps repeated extractions of the same document comparable."""

    RESPONSE_FORMAT: Final[dict[str, str]] = {"type": "json_object"}
    """Response format enforcing JSON output."""

    MAX_DOCUMENT_CHARS: Final[int] = 100_000
    """Raw text beyond this is truncated before the extraction call.

    About 25k tokens, leaving room in the context window for the JSON reply.
    """


class RetryConfig:
    """Router-level retry behaviour for the extraction call."""

    NUM_RETRIES: Final[int] = 2
    RETRY_AFTER_SECONDS: Final[int] = 4
    COOLDOWN_SECONDS: Final[int] = 60
    ALLOWED_FAILS: Final[int] = 2


# =============================================================================
# Progress Checkpoints
# =============================================================================

class ProgressCheckpoints:
    """Fixed percent-complete markers reported to status pollers.

    These are progress markers, not work estimates. They must stay strictly
    increasing in pipeline order so a poller never sees progress go backwards.

    Used by: orchestrator.py
    """

    QUEUED: Final[int] = 0
    EXTRACTION_STARTED: Final[int] = 5
    EXTRACTION_RUNNING: Final[int] = 10
    EXTRACTION_DONE: Final[int] = 30

    COMPLIANCE_STARTED: Final[int] = 40
    COMPLIANCE_DONE: Final[int] = 50

    DEALS_STARTED: Final[int] = 60
    DEALS_DONE: Final[int] = 70

    TRADING_STARTED: Final[int] = 80
    TRADING_DONE: Final[int] = 85

    ESG_STARTED: Final[int] = 90
    ESG_DONE: Final[int] = 95

    FINALIZING: Final[int] = 98
    COMPLETED: Final[int] = 100

    TOTAL_STEPS: Final[int] = 6
    """Extraction, four modules, finalization."""


# =============================================================================
# Confidence Thresholds
# =============================================================================

class ConfidenceThresholds:
    """Thresholds applied to extraction confidence scores."""

    DEFAULT_REVIEW: Final[float] = 0.8
    """Records extracted below this confidence are flagged requires_review.

    Overridable per run through RunConfig.confidence_threshold.
    Used by: run_config.py, mappers.py
    """


# =============================================================================
# Module Defaults
# =============================================================================

DEFAULT_CURRENCY: Final[str] = "USD"
"""Currency assumed when the agreement does not state one."""

DEFAULT_FISCAL_YEAR_END: Final[str] = "12-31"
"""Fiscal year end (MM-DD) used to lay out compliance calendar periods."""


class ComplianceDefaults:
    """Defaults for covenants, obligations and calendar events."""

    DEADLINE_DAYS: Final[int] = 90
    """Reporting deadline when the obligation does not state one."""

    RECIPIENT_ROLES: Final[tuple[str, ...]] = ("Agent",)
    """Recipient when the obligation does not name one."""

    ANNUAL_GRACE_DAYS: Final[int] = 10
    """Grace period after an annual reporting deadline."""

    PERIODIC_GRACE_DAYS: Final[int] = 5
    """Grace period after a sub-annual reporting deadline."""

    UNKNOWN_BORROWER: Final[str] = "Unknown"


class DealsConfig:
    """Deal-room term template configuration."""

    TERM_CATEGORIES: Final[tuple[str, ...]] = (
        "General",
        "Financial Terms",
        "Pricing",
        "Key Dates",
        "Legal",
    )
    """Categories every generated term template carries, in display order."""


class TradingDefaults:
    """Defaults for trade facilities built from extraction."""

    MATURITY_FALLBACK_DAYS: Final[int] = 365
    """Maturity assumed (from today) when the agreement has none."""

    UNKNOWN_BORROWER: Final[str] = "Unknown Borrower"

    TRANSFERABILITY: Final[str] = "consent_required"
    """Assignment provisions always need review, so start conservative."""

    STATUS: Final[str] = "performing"


class ESGDefaults:
    """Defaults for ESG facilities and KPIs."""

    MATURITY_FALLBACK_DAYS: Final[int] = 5 * 365
    """Maturity assumed (from today) for an ESG facility without a date."""

    PROCEEDS_CATEGORY_NAME: Final[str] = "Green Proceeds"

    FACILITY_NAME_PREFIX: Final[str] = "ESG Facility - "

    FACILITY_REFERENCE_LENGTH: Final[int] = 20
    """Characters of the document id used as ESG facility reference."""
