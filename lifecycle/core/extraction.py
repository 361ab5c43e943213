"""Extraction collaborators.

LLMExtractor sends the document text to the model in one JSON-mode call and
validates the reply into a RawExtractionResult. StaticExtractor replays a
result produced earlier, which lets the pipeline run offline.

Both raise ExtractionFailedError for anything that stops a usable result
from being produced, so the orchestrator only has one failure to handle.
"""

import json
from pathlib import Path

from pydantic import ValidationError

from lifecycle.core.config import EXTRACTION_MODEL, LLMConfig
from lifecycle.core.errors import ExtractionFailedError
from lifecycle.core.llm_client import LLMClient
from lifecycle.pydantic_models.extraction_models import RawExtractionResult


SYSTEM_PROMPT = """You are a loan documentation analyst. Read the credit agreement and return a single JSON object with these keys:

- "facility": {facility_name, facility_reference, execution_date, effective_date, maturity_date (YYYY-MM-DD),
  borrowers: [{name, jurisdiction, role}], lenders: [{name, commitment_amount, percentage}], agents: [{name, role}],
  facility_type, currency (ISO 4217), total_commitments (number), interest_rate_type, base_rate,
  margin_initial (basis points), margin_grid: [{threshold, margin}], governing_law, jurisdiction, confidence}
- "covenants": [{covenant_type (leverage_ratio, interest_coverage, fixed_charge_coverage, debt_service_coverage,
  minimum_liquidity, capex, net_worth, other), covenant_name, numerator_definition, denominator_definition,
  threshold_type (maximum or minimum), threshold_value, testing_frequency (quarterly, semi_annual, annual),
  clause_reference, page_number, raw_text, confidence}]
- "obligations": [{obligation_type (annual_financials, quarterly_financials, compliance_certificate, budget,
  audit_report, event_notice, other), description, frequency, deadline_days, recipient_role, clause_reference,
  page_number, raw_text, confidence}]
- "events_of_default": [{event_category, description, grace_period_days, cure_rights, consequences,
  clause_reference, page_number, raw_text, confidence}]
- "esg_provisions": [{provision_type (sustainability_linked_margin, green_use_of_proceeds, reporting, other),
  kpi_name, kpi_definition, kpi_baseline, kpi_targets: [{date, target_value, margin_adjustment}],
  verification_required, clause_reference, page_number, raw_text, confidence}]
- "defined_terms": [{term, definition, clause_reference, page_number, references_terms}]
- "overall_confidence"

Every confidence is a number between 0 and 1. Use null for anything the document does not state.
Do not invent values."""


def _truncate(raw_text: str, limit: int) -> str:
    if len(raw_text) <= limit:
        return raw_text
    return raw_text[:limit]


class LLMExtractor:
    """Model-backed extractor.

    Args:
        client: LLMClient to call through. A fresh one is created if omitted.
        model: Router model name.
        max_chars: Document text beyond this is cut before the call.
    """

    def __init__(
        self,
        client: LLMClient | None = None,
        model: str = EXTRACTION_MODEL,
        max_chars: int = LLMConfig.MAX_DOCUMENT_CHARS,
    ):
        self.client = client or LLMClient()
        self.model = model
        self.max_chars = max_chars

    def build_user_prompt(self, raw_text: str) -> str:
        return f"Extract the loan terms from this credit agreement:\n\n{_truncate(raw_text, self.max_chars)}"

    async def extract(self, raw_text: str) -> RawExtractionResult:
        if not raw_text or not raw_text.strip():
            raise ExtractionFailedError("Document has no text to extract from")

        try:
            response = await self.client.complete(
                system_prompt=SYSTEM_PROMPT,
                user_prompt=self.build_user_prompt(raw_text),
                model=self.model,
            )
        except Exception as e:
            raise ExtractionFailedError(f"Extraction call failed: {e}") from e

        try:
            return RawExtractionResult.model_validate(response.content)
        except ValidationError as e:
            raise ExtractionFailedError(
                f"Extraction response did not match the expected shape ({e.error_count()} errors)"
            ) from e


class StaticExtractor:
    """Extractor that returns a result it was given up front."""

    def __init__(self, result: RawExtractionResult):
        self.result = result

    @classmethod
    def from_file(cls, path: str | Path) -> "StaticExtractor":
        """Load a saved extraction JSON file.

        Raises:
            ExtractionFailedError: If the file is unreadable or malformed.
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
            return cls(RawExtractionResult.model_validate(data))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ExtractionFailedError(f"Could not load extraction from {path}: {e}") from e

    async def extract(self, raw_text: str) -> RawExtractionResult:
        return self.result.model_copy(deep=True)
