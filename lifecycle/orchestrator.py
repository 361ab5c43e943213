"""Lifecycle automation orchestrator.

Runs one document through the whole pipeline:

  extract → build cascade package → compliance → deals → trading → esg
  → persist result → mark complete

Modules are an ordered list of ModuleStage entries; the orchestrator walks
the list and never branches on a module name, so adding or reordering a
module is a change to that list only. Progress is reported through an
injected ProgressTracker and failures are classified by an injected
ErrorClassifier.

Only extraction failure aborts a run (with the default policy). A module
failure is recorded against that module and the run moves on; module writes
already made are never rolled back.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from lifecycle.core.cascade_builder import build_cascade_package
from lifecycle.core.config import ProgressCheckpoints
from lifecycle.core.errors import (
    AutomationErrors,
    AutomationStatus,
    DocumentNotFoundError,
    DocumentNotReadyError,
    ErrorClassifier,
    ModulePersistenceError,
    Stage,
)
from lifecycle.core.pipeline_logger import PipelineLogger, get_logger
from lifecycle.core.progress import ProgressTracker
from lifecycle.core.stores import DocumentStore, DomainStores, Extractor
from lifecycle.processors import (
    ComplianceProcessor,
    DealsProcessor,
    ESGProcessor,
    ModuleProcessor,
    TradingProcessor,
)
from lifecycle.pydantic_models.cascade_models import CascadeDataPackage
from lifecycle.pydantic_models.results import (
    AutomationStatusView,
    LifecycleAutomationResult,
    ModuleResult,
)
from lifecycle.pydantic_models.run_config import RunConfig


PERSISTENCE_STAGE = "persistence"


@dataclass(frozen=True)
class ModuleStage:
    """One module step of a run and where it sits on the progress bar."""

    name: str
    phase: str
    processor: ModuleProcessor
    start_percent: int
    done_percent: int
    step_label: str

    def is_enabled(self, config: RunConfig) -> bool:
        return config.is_enabled(self.name)


def default_stages(stores: DomainStores, logger: PipelineLogger) -> list[ModuleStage]:
    """The four module stages in run order."""
    cp = ProgressCheckpoints
    return [
        ModuleStage(
            name=Stage.COMPLIANCE.value,
            phase="processing_compliance",
            processor=ComplianceProcessor(stores.compliance, logger),
            start_percent=cp.COMPLIANCE_STARTED,
            done_percent=cp.COMPLIANCE_DONE,
            step_label="Creating compliance facility and obligations",
        ),
        ModuleStage(
            name=Stage.DEALS.value,
            phase="processing_deals",
            processor=DealsProcessor(stores.deals, logger),
            start_percent=cp.DEALS_STARTED,
            done_percent=cp.DEALS_DONE,
            step_label="Populating deal room terms",
        ),
        ModuleStage(
            name=Stage.TRADING.value,
            phase="processing_trading",
            processor=TradingProcessor(stores.trading, logger),
            start_percent=cp.TRADING_STARTED,
            done_percent=cp.TRADING_DONE,
            step_label="Setting up trading DD checklist",
        ),
        ModuleStage(
            name=Stage.ESG.value,
            phase="processing_esg",
            processor=ESGProcessor(stores.esg, logger),
            start_percent=cp.ESG_STARTED,
            done_percent=cp.ESG_DONE,
            step_label="Creating ESG KPIs and targets",
        ),
    ]


@dataclass(frozen=True)
class AutomationResources:
    """Collaborators shared by every run. Created once, never modified."""

    documents: DocumentStore
    extractor: Extractor
    progress: ProgressTracker
    classifier: ErrorClassifier
    logger: PipelineLogger
    clock: Callable[[], datetime]


@dataclass
class RunState:
    """What one run accumulates as it moves through the stages."""

    config: RunConfig
    started: float = field(default_factory=time.monotonic)
    errors: AutomationErrors = field(default_factory=AutomationErrors)
    results: dict[str, ModuleResult] = field(default_factory=dict)
    modules_processed: list[str] = field(default_factory=list)
    steps_completed: int = 0

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LifecycleOrchestrator:
    """Entry point for starting automation runs and polling their status."""

    def __init__(
        self,
        documents: DocumentStore,
        extractor: Extractor,
        stores: DomainStores | None = None,
        progress: ProgressTracker | None = None,
        classifier: ErrorClassifier | None = None,
        stages: list[ModuleStage] | None = None,
        logger: PipelineLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            documents: Document record store (read at start, written at the end).
            extractor: Extraction collaborator.
            stores: Domain stores for the default stages. In-memory if omitted.
            progress: Progress tracker. A private in-memory one if omitted.
            classifier: Failure policy. Extraction fatal, modules recoverable if omitted.
            stages: Module stages in run order. Built from ``stores`` if omitted.
            logger: Pipeline logger. The global one if omitted.
            clock: Source of "now" for date-derived cascade fields.
        """
        logger = logger or get_logger()
        self.resources = AutomationResources(
            documents=documents,
            extractor=extractor,
            progress=progress or ProgressTracker(total_steps=ProgressCheckpoints.TOTAL_STEPS),
            classifier=classifier or ErrorClassifier(),
            logger=logger,
            clock=clock or _utc_now,
        )
        self.stages = stages if stages is not None else default_stages(stores or DomainStores.in_memory(), logger)

    @property
    def logger(self) -> PipelineLogger:
        return self.resources.logger

    @property
    def progress(self) -> ProgressTracker:
        return self.resources.progress

    async def start_automation(
        self,
        document_id: str,
        overrides: Mapping[str, Any] | None = None,
    ) -> LifecycleAutomationResult:
        """Run the full pipeline for one document.

        Args:
            document_id: Document to automate.
            overrides: Caller settings (enable_* flags, auto_confirm_low_risk_items,
                confidence_threshold, fiscal_year_end).

        Returns:
            The run's LifecycleAutomationResult. Returned for failed runs too.

        Raises:
            DocumentNotFoundError: Unknown document id. No progress entry is created.
            DocumentNotReadyError: Document not processed yet. No progress entry is created.
            pydantic.ValidationError: Invalid overrides. No progress entry is created.
        """
        documents = self.resources.documents
        document = await documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        if not document.is_extraction_ready:
            raise DocumentNotReadyError(document_id)

        config = RunConfig.from_overrides(document_id, document.organization_id, overrides)
        state = RunState(config=config)

        self.progress.init(document_id)
        self.logger.start_run(document_id)

        # Extraction
        self.logger.start_stage(Stage.EXTRACTION.value)
        self._update(state, phase="extracting", percent_complete=ProgressCheckpoints.EXTRACTION_STARTED,
                     current_step="Running AI extraction")
        try:
            self._update(state, percent_complete=ProgressCheckpoints.EXTRACTION_RUNNING,
                         current_step="Extracting document data with AI")
            raw = await self.resources.extractor.extract(document.raw_text or "")
        except Exception as e:
            return self._fail_extraction(state, e)

        if not raw.document_id:
            raw = raw.model_copy(update={"document_id": document_id})
        state.steps_completed += 1
        self._update(state, percent_complete=ProgressCheckpoints.EXTRACTION_DONE,
                     current_step="Extraction complete")
        self.logger.stage_result(
            Stage.EXTRACTION.value, "ok",
            covenants=len(raw.covenants),
            obligations=len(raw.obligations),
            esg=len(raw.esg_provisions),
            confidence=raw.overall_confidence,
        )

        result: LifecycleAutomationResult | None = None
        try:
            cascade = build_cascade_package(raw, config, now=self.resources.clock())
            await self._run_modules(state, cascade)
            result = await self._persist(state, raw, cascade)
        finally:
            self._finish(state, result)
        return result

    async def _persist(self, state: RunState, raw, cascade: CascadeDataPackage) -> LifecycleAutomationResult:
        """Save the run result on the document.

        A failed save is recorded as a persistence error on the returned
        result; it never escapes the run.
        """
        self._update(state, phase="finalizing", percent_complete=ProgressCheckpoints.FINALIZING,
                     current_step="Saving automation results")
        result = self._build_result(state, raw, cascade)
        try:
            await self.resources.documents.persist_lifecycle_result(
                state.config.document_id, result.model_dump(mode="json"))
        except Exception as e:
            self.logger.error("Could not persist lifecycle result", exc=e)
            state.errors.add(self.resources.classifier.classify(PERSISTENCE_STAGE, e))
            result = self._build_result(state, raw, cascade)
        return result

    def _finish(self, state: RunState, result: LifecycleAutomationResult | None) -> None:
        """Move progress to its terminal phase. ``result`` is None when the run crashed."""
        if result is None:
            self._update(state, phase="failed", current_step="Automation failed")
            self.logger.end_run(AutomationStatus.FAILED.value, stats=state.errors.summary())
            return

        state.steps_completed += 1
        self._update(
            state,
            phase="failed" if result.automation_status == AutomationStatus.FAILED else "completed",
            percent_complete=ProgressCheckpoints.COMPLETED,
            current_step="Automation completed",
        )
        self.logger.end_run(result.automation_status.value, stats=self._stats(state, result))

    async def _run_modules(self, state: RunState, cascade: CascadeDataPackage) -> None:
        config = state.config
        for stage in self.stages:
            state.results[stage.name] = stage.processor.empty_result()

        for stage in self.stages:
            if not stage.is_enabled(config):
                self.logger.debug(f"[{stage.name}] disabled for this run")
                continue
            if stage.processor.select(cascade) is None:
                self.logger.debug(f"[{stage.name}] nothing extracted for this module")
                continue

            self.logger.start_stage(stage.name)
            self._update(state, phase=stage.phase, percent_complete=stage.start_percent,
                         current_step=stage.step_label)
            try:
                state.results[stage.name] = await stage.processor.process(cascade, config)
            except ModulePersistenceError as e:
                state.results[stage.name] = e.partial_result
                error = self.resources.classifier.classify(stage.name, e)
                state.errors.add(error)
                self.logger.stage_result(stage.name, "failed", code=error.code)
                if not error.recoverable:
                    self.logger.milestone(f"Stopping run: {stage.name} failure is fatal")
                    return
            else:
                state.modules_processed.append(stage.name)
                self.logger.stage_result(stage.name, "ok", **state.results[stage.name].model_dump(
                    exclude={"facility_id"}))

            state.steps_completed += 1
            self._update(state, percent_complete=stage.done_percent)

    def _fail_extraction(self, state: RunState, exc: Exception) -> LifecycleAutomationResult:
        config = state.config
        error = self.resources.classifier.classify(Stage.EXTRACTION, exc)
        state.errors.add(error)
        self.logger.error("Extraction failed", exc=exc)
        self.logger.stage_result(Stage.EXTRACTION.value, "failed", code=error.code)

        result = LifecycleAutomationResult(
            document_id=config.document_id,
            automation_status=state.errors.status,
            errors=list(state.errors),
            processing_time_ms=state.elapsed_ms,
        )
        self._update(state, phase="failed", current_step="Extraction failed")
        self.logger.end_run(result.automation_status.value, stats=state.errors.summary())
        return result

    def _build_result(self, state: RunState, raw, cascade: CascadeDataPackage) -> LifecycleAutomationResult:
        return LifecycleAutomationResult(
            document_id=state.config.document_id,
            extraction_result=raw,
            automation_status=self.resources.classifier.rollup(state.errors),
            errors=list(state.errors),
            processing_time_ms=state.elapsed_ms,
            cascade_data=cascade,
            **state.results,
        )

    def _update(self, state: RunState, **fields) -> None:
        self.progress.update(
            state.config.document_id,
            steps_completed=state.steps_completed,
            modules_processed=list(state.modules_processed),
            **fields,
        )

    @staticmethod
    def _stats(state: RunState, result: LifecycleAutomationResult) -> dict:
        return {
            "modules_processed": ", ".join(state.modules_processed) or "none",
            "processing_time_ms": result.processing_time_ms,
            **state.errors.summary(),
        }

    async def get_automation_status(self, document_id: str) -> AutomationStatusView:
        """Report a document's automation status.

        Live progress wins; then a persisted result; otherwise the document
        has not been automated yet.

        Raises:
            DocumentNotFoundError: Unknown document id with no live progress.
        """
        progress = self.progress.get(document_id)
        if progress is not None:
            status = {"completed": "completed", "failed": "failed"}.get(progress.phase, "in_progress")
            result = None
            if progress.phase == "completed":
                result = await self._persisted_result(document_id)
            return AutomationStatusView(
                document_id=document_id,
                status=status,
                phase=progress.phase,
                percent_complete=progress.percent_complete,
                current_step=progress.current_step,
                result=result,
            )

        document = await self.resources.documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)

        if document.lifecycle_automation_result:
            result = LifecycleAutomationResult.model_validate(document.lifecycle_automation_result)
            return AutomationStatusView(
                document_id=document_id,
                status="completed",
                phase="completed",
                percent_complete=ProgressCheckpoints.COMPLETED,
                current_step="Automation completed",
                result=result,
            )

        return AutomationStatusView(
            document_id=document_id,
            status="not_started",
            phase="not_started",
            percent_complete=0,
            current_step="Not started",
        )

    async def _persisted_result(self, document_id: str) -> LifecycleAutomationResult | None:
        document = await self.resources.documents.get(document_id)
        if document is None or not document.lifecycle_automation_result:
            return None
        return LifecycleAutomationResult.model_validate(document.lifecycle_automation_result)
