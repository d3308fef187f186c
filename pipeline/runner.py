"""High-level monitor runner that sequences capture, analysis and reporting."""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence, TYPE_CHECKING

from analyzer.engine import AnalysisEngine, AnalysisResult, ChatCapability
from capture.scheduler import (
    CaptureCapability,
    CaptureExhausted,
    CaptureScheduler,
    SnapshotRecord,
    load_snapshot_list,
    save_snapshot_list,
)
from report.assembler import ReportArtifact, ReportAssembler, ReportWriteError

if TYPE_CHECKING:
    from capture.driver import WorkflowDriver
    from config import Config
    from utils.logger import MonitorLogger

_module_logger = logging.getLogger(__name__)

DIAGNOSTIC_FILENAME = "error-screenshot.png"
RESULT_FILENAME = "monitor_result.json"


@dataclass
class MonitorResult:
    """Result of a monitor run (or of re-analyzing saved snapshots)."""

    snapshots: tuple[SnapshotRecord, ...]
    analysis: AnalysisResult
    artifact: ReportArtifact | None
    snapshot_list: Path | None = None
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_at: str | None = None

    @property
    def report_written(self) -> bool:
        return self.artifact is not None

    def to_dict(self) -> dict:
        """Convert to serializable dictionary."""
        return {
            "snapshots": [s.to_dict() for s in self.snapshots],
            "degraded": self.analysis.degraded,
            "analysis_error": self.analysis.error,
            "conversation_turns": len(self.analysis.conversation),
            "report": self.artifact.to_dict() if self.artifact else None,
            "snapshot_list": str(self.snapshot_list) if self.snapshot_list else None,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }

    def save(self, path: Path) -> None:
        """Save the run result to a JSON file."""
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)


class MonitorRunner:
    """Runs the capture → analysis → report pipeline once.

    Failure policy per phase:
    - capture exhaustion is fatal: a diagnostic screenshot is attempted and
      CaptureExhausted propagates to the caller;
    - analysis failures degrade the annotations but never abort;
    - report write failures are logged and swallowed.
    """

    def __init__(
        self,
        config: "Config",
        capture: CaptureCapability,
        chat: ChatCapability,
        driver: "WorkflowDriver | None" = None,
        logger: "MonitorLogger | None" = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now,
        verbose: bool = True,
    ):
        """Initialize the runner.

        Args:
            config: Monitor configuration (counts, intervals, directories).
            capture: Capture capability used for snapshots and the diagnostic capture.
            chat: Chat capability used by the analysis engine.
            driver: Optional driver that starts the observed workflow with the seed prompt.
            logger: Optional MonitorLogger for structured output.
            sleep: Sleep function for intervals and retries (injectable for tests).
            clock: Current-time function (injectable for tests).
            verbose: Whether to show progress bars during analysis.
        """
        self.config = config
        self.capture = capture
        self.chat = chat
        self.driver = driver
        self.logger = logger
        self.sleep = sleep
        self.clock = clock
        self.verbose = verbose

    def run(self) -> MonitorResult:
        """Start the workflow, capture snapshots, analyze them and write the report.

        Raises:
            CaptureExhausted: If a snapshot could not be captured. No report is written.
        """
        started_at = self.clock().isoformat()
        self.config.snapshots_dir.mkdir(parents=True, exist_ok=True)
        self.config.report_dir.mkdir(parents=True, exist_ok=True)

        if self.driver is not None:
            self.driver.start(self.config.prompt)

        if self.logger:
            self.logger.header("Capture")
        snapshots = self._capture()

        snapshot_list = save_snapshot_list(snapshots, self.config.report_dir)
        if self.logger:
            self.logger.info(f"Screenshot paths saved: [cyan]{snapshot_list}[/cyan]")

        result = self._analyze_and_report(snapshots, started_at)
        result.snapshot_list = snapshot_list
        return result

    def analyze_existing(self, snapshot_list: Path) -> MonitorResult:
        """Analyze snapshots captured by an earlier run and write the report."""
        started_at = self.clock().isoformat()
        snapshots = load_snapshot_list(snapshot_list)
        if self.logger:
            self.logger.info(f"Loaded {len(snapshots)} screenshots from [cyan]{snapshot_list}[/cyan]")

        result = self._analyze_and_report(snapshots, started_at)
        result.snapshot_list = Path(snapshot_list)
        return result

    def _capture(self) -> tuple[SnapshotRecord, ...]:
        scheduler = CaptureScheduler(
            capture=self.capture,
            snapshots_dir=self.config.snapshots_dir,
            max_attempts=self.config.capture_attempts,
            retry_delay_ms=self.config.capture_retry_delay_ms,
            sleep=self.sleep,
            clock=self.clock,
            logger=self.logger,
        )
        try:
            return scheduler.run(self.config.snapshot_count, self.config.interval_ms)
        except CaptureExhausted as e:
            if self.logger:
                self.logger.error(f"Capture failed: {e.message}")
            self._diagnostic_capture()
            raise

    def _diagnostic_capture(self) -> Path | None:
        """Best-effort screenshot of the failure state; never raises."""
        path = self.config.report_dir / DIAGNOSTIC_FILENAME
        try:
            self.capture(path)
        except Exception as e:
            _module_logger.warning(f"Diagnostic screenshot failed: {e}")
            if self.logger:
                self.logger.warning(f"Diagnostic screenshot failed: {e}")
            return None

        if self.logger:
            self.logger.info(f"Diagnostic screenshot saved: [cyan]{path}[/cyan]")
        return path

    def _analyze_and_report(
        self,
        snapshots: Sequence[SnapshotRecord],
        started_at: str,
    ) -> MonitorResult:
        if self.logger:
            self.logger.header("Analysis")
        engine = AnalysisEngine(
            chat=self.chat,
            chat_attempts=self.config.chat_attempts,
            sleep=self.sleep,
            logger=self.logger,
            verbose=self.verbose,
        )
        analysis = engine.analyze(snapshots)
        if analysis.degraded and self.logger:
            self.logger.warning("Analysis degraded: the report will contain error placeholders")

        if self.logger:
            self.logger.header("Report")
        artifact = self._write_report(snapshots, analysis)

        result = MonitorResult(
            snapshots=tuple(snapshots),
            analysis=analysis,
            artifact=artifact,
            started_at=started_at,
            completed_at=self.clock().isoformat(),
        )
        if artifact is not None:
            try:
                result.save(self.config.report_dir / RESULT_FILENAME)
            except OSError as e:
                _module_logger.warning(f"Could not save run result: {e}")
        return result

    def _write_report(
        self,
        snapshots: Sequence[SnapshotRecord],
        analysis: AnalysisResult,
    ) -> ReportArtifact | None:
        assembler = ReportAssembler(clock=self.clock, logger=self.logger)
        try:
            return assembler.assemble(snapshots, analysis.annotations, self.config.report_dir)
        except ReportWriteError as e:
            _module_logger.error(e.message)
            if self.logger:
                self.logger.error(e.message)
            return None
