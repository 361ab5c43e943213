"""Structured error types for the lifecycle automation pipeline.

Provides:
- Exceptions raised by collaborators and processors
- AutomationError records appended to a run's error list
- AutomationErrors aggregator that rolls errors up into a run status
- ErrorClassifier, the policy deciding which stage failures are fatal
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from lifecycle.pydantic_models.results import ModuleResult


class AutomationStatus(str, Enum):
    """Overall outcome of one automation run."""
    COMPLETED = "completed"  # No errors
    PARTIAL = "partial"      # Only recoverable errors
    FAILED = "failed"        # At least one fatal error


class Stage(str, Enum):
    """Pipeline stages that can fail."""
    EXTRACTION = "extraction"
    COMPLIANCE = "compliance"
    DEALS = "deals"
    TRADING = "trading"
    ESG = "esg"


# Exceptions

class LifecycleError(Exception):
    """Base class for lifecycle automation errors."""


class DocumentNotFoundError(LifecycleError):
    """The document id does not exist in the document store."""

    def __init__(self, document_id: str):
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


class DocumentNotReadyError(LifecycleError):
    """The document has not been processed and has no raw text."""

    code = "DOCUMENT_NOT_READY"

    def __init__(self, document_id: str):
        super().__init__(
            f"Document {document_id} must be processed before lifecycle automation can run"
        )
        self.document_id = document_id


class ExtractionFailedError(LifecycleError):
    """The extraction collaborator could not produce a result."""


class StoreError(LifecycleError):
    """A domain or document store rejected a write."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class ModulePersistenceError(LifecycleError):
    """A module processor failed part-way through its writes.

    Carries the counts accumulated before the failing write so the
    orchestrator can still report them.
    """

    def __init__(self, module: str, message: str, partial_result: ModuleResult):
        super().__init__(message)
        self.module = module
        self.partial_result = partial_result


# Run-scoped error records

def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class AutomationError:
    """One classified failure within a run. Never mutated after creation."""

    module: str
    code: str
    message: str
    recoverable: bool
    timestamp: str = field(default_factory=_utc_now)

    def __str__(self) -> str:
        kind = "recoverable" if self.recoverable else "fatal"
        return f"[{self.code}] {self.module}: {self.message} ({kind})"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "module": self.module,
            "code": self.code,
            "message": self.message,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp,
        }


@dataclass
class AutomationErrors:
    """Aggregate errors across one automation run."""

    errors: list[AutomationError] = field(default_factory=list)

    def add(self, error: AutomationError):
        """Append an error. Existing entries are never touched."""
        self.errors.append(error)

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self):
        return iter(self.errors)

    @property
    def has_fatal(self) -> bool:
        return any(not e.recoverable for e in self.errors)

    @property
    def failed_modules(self) -> list[str]:
        seen: list[str] = []
        for error in self.errors:
            if error.module not in seen:
                seen.append(error.module)
        return seen

    @property
    def status(self) -> AutomationStatus:
        """Roll the errors up into the run outcome."""
        if not self.errors:
            return AutomationStatus.COMPLETED
        if self.has_fatal:
            return AutomationStatus.FAILED
        return AutomationStatus.PARTIAL

    def summary(self) -> dict:
        """Get summary statistics."""
        by_module: dict[str, int] = {}
        for error in self.errors:
            by_module[error.module] = by_module.get(error.module, 0) + 1

        return {
            "total_errors": len(self.errors),
            "fatal_errors": sum(1 for e in self.errors if not e.recoverable),
            "errors_by_module": by_module,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "errors": [e.to_dict() for e in self.errors],
            "summary": self.summary(),
        }


# Classification policy

DEFAULT_RECOVERABILITY: Mapping[str, bool] = {
    Stage.EXTRACTION.value: False,
    Stage.COMPLIANCE.value: True,
    Stage.DEALS.value: True,
    Stage.TRADING.value: True,
    Stage.ESG.value: True,
}
"""Which stage failures a run survives.

Extraction feeds every module, so losing it ends the run. Modules share no
data, so one module failing only degrades that module's result.
"""


class ErrorClassifier:
    """Turns stage failures into AutomationError records.

    The policy is a plain stage -> recoverable table so a deployment can
    override one stage (say, treat compliance as fatal) without touching the
    orchestrator. Stages missing from the table use ``default_recoverable``.
    """

    def __init__(
        self,
        policy: Mapping[str, bool] | None = None,
        default_recoverable: bool = True,
    ):
        self.policy: dict[str, bool] = dict(DEFAULT_RECOVERABILITY)
        if policy:
            self.policy.update({_stage_name(k): v for k, v in policy.items()})
        self.default_recoverable = default_recoverable

    def is_recoverable(self, stage: str | Stage, exc: BaseException | None = None) -> bool:
        return self.policy.get(_stage_name(stage), self.default_recoverable)

    def code_for(self, stage: str | Stage) -> str:
        name = _stage_name(stage)
        if name == Stage.EXTRACTION.value:
            return "EXTRACTION_FAILED"
        return f"{name.upper()}_PROCESSING_FAILED"

    def classify(self, stage: str | Stage, exc: BaseException) -> AutomationError:
        """Build the error record for a failure in ``stage``."""
        name = _stage_name(stage)
        message = str(exc) or _default_message(name)
        return AutomationError(
            module=name,
            code=self.code_for(name),
            message=message,
            recoverable=self.is_recoverable(name, exc),
        )

    @staticmethod
    def rollup(errors: AutomationErrors | list[AutomationError]) -> AutomationStatus:
        """Overall status for a run with these errors."""
        if isinstance(errors, AutomationErrors):
            return errors.status
        return AutomationErrors(list(errors)).status


def _stage_name(stage: Any) -> str:
    return stage.value if isinstance(stage, Stage) else str(stage)


def _default_message(stage: str) -> str:
    if stage == Stage.EXTRACTION.value:
        return "Extraction failed"
    return f"{stage.capitalize()} processing failed"
