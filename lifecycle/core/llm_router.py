"""LiteLLM Router for the extraction call.

Retries, fallback to the smaller model and deployment cooldown are all left
to the Router. The router is built on first use so that importing the package
(tests, the StaticExtractor path) never needs provider credentials.

Providers:
- OpenRouter (default): OPENROUTER_API_KEY
- Azure OpenAI: AZURE_API_KEY, AZURE_API_BASE, AZURE_API_VERSION
"""

import os
from functools import lru_cache

from litellm import Router

from lifecycle.core.config import (
    API_KEY_ENV_VAR,
    EXTRACTION_MODEL,
    FALLBACK_EXTRACTION_MODEL,
    LLM_PROVIDER,
    RetryConfig,
)


def _deployment(model: str) -> dict:
    if LLM_PROVIDER == "azure":
        params = {
            "model": model,
            "api_key": os.environ.get("AZURE_API_KEY", ""),
            "api_base": os.environ.get("AZURE_API_BASE", ""),
            "api_version": os.environ.get("AZURE_API_VERSION", "2024-02-15-preview"),
        }
    else:
        params = {"model": model, "api_key": f"os.environ/{API_KEY_ENV_VAR}"}
    return {"model_name": model, "litellm_params": params}


def build_model_list() -> list[dict]:
    models = [EXTRACTION_MODEL]
    if FALLBACK_EXTRACTION_MODEL != EXTRACTION_MODEL:
        models.append(FALLBACK_EXTRACTION_MODEL)
    return [_deployment(m) for m in models]


def build_fallbacks() -> list[dict]:
    if FALLBACK_EXTRACTION_MODEL == EXTRACTION_MODEL:
        return []
    return [{EXTRACTION_MODEL: [FALLBACK_EXTRACTION_MODEL]}]


def build_router() -> Router:
    """Build a Router configured from RetryConfig and the active provider."""
    return Router(
        model_list=build_model_list(),
        num_retries=RetryConfig.NUM_RETRIES,
        retry_after=RetryConfig.RETRY_AFTER_SECONDS,
        cooldown_time=RetryConfig.COOLDOWN_SECONDS,
        allowed_fails=RetryConfig.ALLOWED_FAILS,
        fallbacks=build_fallbacks(),
    )


@lru_cache(maxsize=1)
def get_router() -> Router:
    """Process-wide router, built on first call."""
    return build_router()
