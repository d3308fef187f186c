"""Timed, retried capture of an ordered snapshot series."""

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Protocol, Sequence, TYPE_CHECKING

from utils.retry import RetryExhausted, retry

if TYPE_CHECKING:
    from utils.logger import MonitorLogger

_module_logger = logging.getLogger(__name__)

CAPTURE_ATTEMPTS = 3
CAPTURE_RETRY_DELAY_MS = 5000
SNAPSHOT_LIST_FILENAME = "screenshot_paths.json"


class CaptureCapability(Protocol):
    """Writes one full-page image to ``path``; raises on failure."""

    def __call__(self, path: Path) -> None: ...


class CaptureExhausted(Exception):
    """Raised when a snapshot could not be captured within the retry budget.

    This is fatal for the run: no further snapshots are taken.
    """

    def __init__(self, sequence_index: int, attempts: int, last_error: BaseException):
        self.sequence_index = sequence_index
        self.attempts = attempts
        self.last_error = last_error
        self.message = (
            f"Failed to take screenshot {sequence_index + 1} "
            f"after {attempts} attempts: {last_error}"
        )
        super().__init__(self.message)


@dataclass(frozen=True)
class SnapshotRecord:
    """One captured snapshot of the observed workflow."""

    sequence_index: int
    image_path: Path
    captured_at: datetime

    @property
    def number(self) -> int:
        """1-based position, as shown to humans and the model."""
        return self.sequence_index + 1

    @property
    def filename(self) -> str:
        return self.image_path.name

    def to_dict(self) -> dict:
        """Convert to serializable dictionary."""
        return {
            "sequence_index": self.sequence_index,
            "image_path": str(self.image_path),
            "captured_at": self.captured_at.isoformat(),
        }


def snapshot_filename(sequence_index: int, when: datetime) -> str:
    """Filename for a snapshot: ``screenshot-<n>-<iso timestamp>.png`` (':' replaced)."""
    timestamp = when.isoformat(timespec="milliseconds").replace(":", "-")
    return f"screenshot-{sequence_index + 1}-{timestamp}.png"


def save_snapshot_list(snapshots: Sequence[SnapshotRecord], output_dir: Path) -> Path:
    """Write the ordered snapshot paths as a JSON list for downstream consumers."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    list_path = output_dir / SNAPSHOT_LIST_FILENAME
    with open(list_path, "w", encoding="utf-8") as f:
        json.dump([str(s.image_path) for s in snapshots], f, indent=2)
    return list_path


def load_snapshot_list(list_path: Path) -> tuple[SnapshotRecord, ...]:
    """Rebuild snapshot records from a saved path list.

    ``captured_at`` comes from each file's modification time, which is when
    the capture finished writing it.
    """
    with open(list_path, encoding="utf-8") as f:
        paths = json.load(f)

    if not isinstance(paths, list) or not paths:
        raise ValueError(f"{list_path} does not contain a non-empty list of paths")

    records = []
    for index, raw_path in enumerate(paths):
        if not isinstance(raw_path, str):
            raise ValueError(f"{list_path} entry {index} is not a path: {raw_path!r}")
        image_path = Path(raw_path)
        if not image_path.exists():
            raise FileNotFoundError(f"Snapshot not found: {image_path}")
        records.append(SnapshotRecord(
            sequence_index=index,
            image_path=image_path,
            captured_at=datetime.fromtimestamp(image_path.stat().st_mtime),
        ))
    return tuple(records)


class CaptureScheduler:
    """Takes N snapshots, T milliseconds apart, retrying each capture."""

    def __init__(
        self,
        capture: CaptureCapability,
        snapshots_dir: Path,
        max_attempts: int = CAPTURE_ATTEMPTS,
        retry_delay_ms: int = CAPTURE_RETRY_DELAY_MS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now,
        logger: "MonitorLogger | None" = None,
    ):
        """Initialize the scheduler.

        Args:
            capture: Capture capability that writes an image to a path.
            snapshots_dir: Directory the images are written to.
            max_attempts: Attempts per snapshot before the run is aborted.
            retry_delay_ms: Fixed wait after a failed attempt.
            sleep: Sleep function taking seconds (injectable for tests).
            clock: Returns the current time (injectable for tests).
            logger: Optional MonitorLogger for styled output.
        """
        self.capture = capture
        self.snapshots_dir = Path(snapshots_dir)
        self.max_attempts = max_attempts
        self.retry_delay_ms = retry_delay_ms
        self.sleep = sleep
        self.clock = clock
        self.logger = logger

    def run(self, count: int, interval_ms: int) -> tuple[SnapshotRecord, ...]:
        """Capture ``count`` snapshots, idling ``interval_ms`` between them.

        Returns:
            Exactly ``count`` records with contiguous indices starting at 0.

        Raises:
            ValueError: If count < 1 or interval_ms < 0.
            CaptureExhausted: If any snapshot fails ``max_attempts`` times.
        """
        if count < 1:
            raise ValueError(f"Snapshot count must be >= 1, got {count}")
        if interval_ms < 0:
            raise ValueError(f"Interval must be >= 0 ms, got {interval_ms}")

        self.snapshots_dir.mkdir(parents=True, exist_ok=True)
        self._log_step(f"Taking {count} screenshots with {interval_ms}ms interval")

        records: list[SnapshotRecord] = []
        for index in range(count):
            records.append(self._capture_one(index, count))

            if index < count - 1:
                self._log_info(f"Waiting {interval_ms}ms before taking next screenshot...")
                self.sleep(interval_ms / 1000)

        self._log_success(f"All {count} screenshots taken")
        return tuple(records)

    def _capture_one(self, index: int, count: int) -> SnapshotRecord:
        """Capture snapshot ``index`` with retry and stamp it on completion."""
        path = self.snapshots_dir / snapshot_filename(index, self.clock())
        self._log_info(f"Taking screenshot {index + 1}/{count}...")

        def on_failure(attempt: int, error: Exception) -> None:
            remaining = self.max_attempts - attempt
            if remaining:
                self._log_warning(
                    f"Screenshot failed ({error}), retrying... ({remaining} attempts left)"
                )

        try:
            retry(
                lambda: self.capture(path),
                max_attempts=self.max_attempts,
                delay_ms=self.retry_delay_ms,
                sleep=self.sleep,
                on_failure=on_failure,
                description=f"screenshot {index + 1}",
            )
        except RetryExhausted as e:
            self._log_error(f"Failed to take screenshot {index + 1} after {e.attempts} attempts")
            raise CaptureExhausted(index, e.attempts, e.last_error) from e.last_error

        record = SnapshotRecord(sequence_index=index, image_path=path, captured_at=self.clock())
        _module_logger.debug(f"Captured {record.to_dict()}")
        self._log_success(f"Screenshot {index + 1}/{count} taken: [cyan]{path}[/cyan]")
        return record

    def _log_info(self, message: str) -> None:
        if self.logger:
            self.logger.info(message)

    def _log_step(self, message: str) -> None:
        if self.logger:
            self.logger.step(message)

    def _log_success(self, message: str) -> None:
        if self.logger:
            self.logger.success(message)

    def _log_warning(self, message: str) -> None:
        if self.logger:
            self.logger.warning(message)
        else:
            _module_logger.warning(message)

    def _log_error(self, message: str) -> None:
        if self.logger:
            self.logger.error(message)
        else:
            _module_logger.error(message)
