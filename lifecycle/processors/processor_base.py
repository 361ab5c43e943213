"""Base class for module processors.

A processor turns one slice of the cascade package into domain-store writes
and reports what it wrote as a typed result. The template method process()
owns the common behaviour:

- a missing sub-package is a no-op that returns the zero result
- writes run in dependency order inside _write(), which fills in the result
  as each write lands
- any failure stops the remaining writes and is re-raised as a
  ModulePersistenceError carrying the counts accumulated so far
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from lifecycle.core.errors import ModulePersistenceError
from lifecycle.core.pipeline_logger import PipelineLogger, get_logger
from lifecycle.pydantic_models.cascade_models import CascadeDataPackage
from lifecycle.pydantic_models.run_config import RunConfig

R = TypeVar("R")


def review_status(requires_review: bool, config: RunConfig) -> str:
    """Review state a new record starts in.

    Low-risk items (not flagged for review) are confirmed straight away only
    when the run asks for it.
    """
    if config.auto_confirm_low_risk_items and not requires_review:
        return "confirmed"
    return "pending"


class ModuleProcessor(ABC, Generic[R]):
    """Base class for the compliance, deals, trading and ESG writers."""

    name: str = "unnamed"
    result_type: type

    def __init__(self, store: Any, logger: PipelineLogger | None = None):
        self.store = store
        self.logger = logger or get_logger()

    @abstractmethod
    def select(self, cascade: CascadeDataPackage) -> Any:
        """Return this module's sub-package (None means nothing to do)."""

    @abstractmethod
    async def _write(self, data: Any, cascade: CascadeDataPackage, config: RunConfig, result: R) -> None:
        """Perform the writes, updating ``result`` in place as each one lands."""

    def empty_result(self) -> R:
        return self.result_type()

    async def process(self, cascade: CascadeDataPackage, config: RunConfig) -> R:
        """Write this module's records.

        Returns:
            The module result. All zero when the sub-package is None.

        Raises:
            ModulePersistenceError: A write failed. ``partial_result`` holds
                the counts from the writes that landed before it.
        """
        result = self.empty_result()
        data = self.select(cascade)
        if data is None:
            self.log("No data for module, skipping", level="debug")
            return result

        try:
            await self._write(data, cascade, config, result)
        except Exception as e:
            self.log(f"Write failed: {e}", level="warning")
            raise ModulePersistenceError(self.name, str(e), partial_result=result) from e
        return result

    def base_record(self, config: RunConfig) -> dict[str, Any]:
        return {
            "organization_id": config.organization_id,
            "source_document_id": config.document_id,
        }

    def log(self, message: str, level: str = "info", **data):
        if level == "debug":
            self.logger.debug(f"[{self.name}] {message}", **data)
        elif level == "warning":
            self.logger.warning(f"[{self.name}] {message}", **data)
        elif level == "error":
            self.logger.error(f"[{self.name}] {message}", **data)
        else:
            self.logger.info(f"[{self.name}] {message}", **data)
