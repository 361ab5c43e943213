"""Structured logging for lifecycle automation runs.

Wraps a stdlib logger with run- and stage-aware helpers so every stage of a
run reports in the same shape:

    AUTOMATION doc-123
    COMPLIANCE
      Done: ok | covenants=2, obligations=1, pending_review=1 [0.0s]
    ...
    Run COMPLETED [0.2s]

Console output is terse; an optional per-run log file captures DEBUG too.
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class PipelineLogger:
    """Run/stage logger for the automation pipeline."""

    def __init__(self, name: str = "lifecycle", verbose: bool = False, log_dir: str | Path | None = None):
        """
        Args:
            name: Underlying logging.Logger name.
            verbose: Show DEBUG lines on the console.
            log_dir: Directory for per-run log files. None disables file logging.
        """
        self.logger = logging.getLogger(name)
        self.verbose = verbose
        self._log_dir = Path(log_dir) if log_dir else None
        self._log_file: Path | None = None
        self._file_handler: logging.FileHandler | None = None
        self._run_start: float = 0
        self._stage: str = ""
        self._stage_start: float = 0

        if not self.logger.handlers:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(ConsoleFormatter())
            console.setLevel(logging.DEBUG if verbose else logging.INFO)
            self.logger.addHandler(console)

        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

    def set_verbose(self, verbose: bool):
        self.verbose = verbose
        for handler in self.logger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    def _ts(self) -> str:
        return datetime.now().strftime("%H:%M:%S")

    @staticmethod
    def _since(start: float) -> str:
        if not start:
            return ""
        elapsed = time.monotonic() - start
        mins = int(elapsed // 60)
        if mins > 0:
            return f"{mins}m {elapsed % 60:.0f}s"
        return f"{elapsed:.1f}s"

    # Run boundaries

    def start_run(self, document_id: str):
        """Mark the start of an automation run, opening a log file if configured."""
        self._run_start = time.monotonic()
        self._close_file_handler()

        if self._log_dir:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self._log_file = self._log_dir / f"{document_id}_{stamp}.log"
            self._file_handler = logging.FileHandler(self._log_file, encoding="utf-8")
            self._file_handler.setFormatter(FileFormatter())
            self._file_handler.setLevel(logging.DEBUG)
            self.logger.addHandler(self._file_handler)

        self.logger.info(f"[{self._ts()}] AUTOMATION {document_id}")

    def end_run(self, status: str, stats: dict | None = None):
        """Mark the end of a run with its final status."""
        if stats:
            self.summary(stats)
        self.logger.info(f"{'=' * 50}")
        self.logger.info(f"Run {status.upper()} [{self._since(self._run_start)}]")
        self.logger.info(f"{'=' * 50}")
        if self._log_file:
            self.logger.info(f"Log: {self._log_file}")
        self._close_file_handler()

    def _close_file_handler(self):
        if self._file_handler is not None:
            self._file_handler.close()
            self.logger.removeHandler(self._file_handler)
            self._file_handler = None

    # Stages

    def start_stage(self, stage: str, detail: str = ""):
        self._stage = stage
        self._stage_start = time.monotonic()
        header = stage.upper()
        if detail:
            header += f" ({detail})"
        self.logger.info(header)

    def stage_result(self, stage: str, result: str, **metrics):
        """Log a stage outcome with its key counts.

        Args:
            stage: Stage name, e.g. "compliance".
            result: Short outcome word ("ok", "skipped", "failed").
            **metrics: Counts to display.
        """
        parts = [result]
        if metrics:
            parts.append(", ".join(f"{k}={v}" for k, v in metrics.items()))
        elapsed = self._since(self._stage_start) if self._stage == stage else ""
        if elapsed:
            parts.append(f"[{elapsed}]")
        self.logger.info(f"  Done: {' | '.join(parts)}")
        self._stage = ""

    # Plain messages

    def debug(self, message: str, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.debug(f"[{self._ts()}] {message}")

    def info(self, message: str, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.info(f"  {message}")

    def warning(self, message: str, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.warning(f"[{self._ts()}] WARN: {message}")

    def error(self, message: str, exc: BaseException | None = None, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        if exc is not None:
            message = f"{message} | {type(exc).__name__}: {exc}"
        self.logger.error(f"[{self._ts()}] ERROR: {message}")

    def milestone(self, message: str, **data):
        """Always-visible highlighted line for decisions worth seeing at INFO."""
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.info(f"  -> {message}")

    def summary(self, stats: dict):
        lines = ["SUMMARY"]
        for key, value in stats.items():
            if isinstance(value, dict):
                lines.append(f"  {key}:")
                lines.extend(f"    {k}: {v}" for k, v in value.items())
            else:
                lines.append(f"  {key}: {value}")
        self.logger.info("\n".join(lines))


class ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


class FileFormatter(logging.Formatter):
    """Adds a millisecond timestamp and level tag."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        return f"{ts} [{record.levelname[:4]}] {record.getMessage()}"


def _format_data(data: dict[str, Any]) -> str:
    parts = []
    for k, v in data.items():
        if isinstance(v, str) and len(v) > 60:
            v = v[:57] + "..."
        elif isinstance(v, (list, tuple, set)) and len(v) > 5:
            v = f"[{len(v)} items]"
        parts.append(f"{k}={v}")
    return ", ".join(parts)


_logger: PipelineLogger | None = None


def get_logger(verbose: bool = False, log_dir: str | Path | None = None) -> PipelineLogger:
    """Get or create the process-wide pipeline logger.

    A later call can switch on verbose output or set a log directory; it
    never switches them back off.
    """
    global _logger
    if _logger is None:
        _logger = PipelineLogger(verbose=verbose, log_dir=log_dir)
    else:
        if verbose and not _logger.verbose:
            _logger.set_verbose(True)
        if log_dir and not _logger._log_dir:
            _logger._log_dir = Path(log_dir)
    return _logger


def reset_logger():
    """Drop the global logger and close its file handlers (for tests)."""
    global _logger
    if _logger:
        _logger._close_file_handler()
        for handler in _logger.logger.handlers[:]:
            if isinstance(handler, logging.FileHandler):
                handler.close()
                _logger.logger.removeHandler(handler)
    _logger = None
