"""Per-run configuration for lifecycle automation."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from lifecycle.core.config import ConfidenceThresholds, DEFAULT_FISCAL_YEAR_END


class RunConfig(BaseModel):
    """Settings for one automation run. Immutable once the run starts."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    organization_id: str
    enable_compliance: bool = True
    enable_deals: bool = True
    enable_trading: bool = True
    enable_esg: bool = True
    auto_confirm_low_risk_items: bool = False
    confidence_threshold: float = Field(default=ConfidenceThresholds.DEFAULT_REVIEW, ge=0.0, le=1.0)
    fiscal_year_end: str = Field(default=DEFAULT_FISCAL_YEAR_END, pattern=r"^(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$")

    @classmethod
    def from_overrides(
        cls,
        document_id: str,
        organization_id: str,
        overrides: Mapping[str, Any] | None = None,
    ) -> "RunConfig":
        """Build a config from caller input.

        Modules stay enabled unless the caller passes an explicit False;
        None or a missing key both mean "use the default".

        Raises:
            pydantic.ValidationError: For out-of-range or unknown-typed values.
        """
        overrides = dict(overrides or {})
        values: dict[str, Any] = {
            "document_id": document_id,
            "organization_id": organization_id,
        }
        for flag in ("enable_compliance", "enable_deals", "enable_trading", "enable_esg"):
            values[flag] = overrides.get(flag) is not False
        for key in ("auto_confirm_low_risk_items", "confidence_threshold", "fiscal_year_end"):
            if overrides.get(key) is not None:
                values[key] = overrides[key]
        return cls(**values)

    def is_enabled(self, module: str) -> bool:
        return bool(getattr(self, f"enable_{module}"))
