"""Screen capture capability backed by pyautogui."""

import logging
from dataclasses import dataclass
from pathlib import Path

_module_logger = logging.getLogger(__name__)


class CaptureError(Exception):
    """A single capture attempt failed."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


@dataclass
class ScreenCapture:
    """Captures the full screen (or a region) to a PNG file.

    Instances are callable so they can be passed anywhere a capture
    capability is expected.
    """

    region: tuple[int, int, int, int] | None = None  # (left, top, width, height)

    def __call__(self, path: Path) -> None:
        """Write a screenshot to ``path``.

        Raises:
            CaptureError: If the screen could not be grabbed or the file not written.
        """
        path = Path(path)
        try:
            # Imported lazily: pyautogui needs a display at import time
            import pyautogui

            screenshot = pyautogui.screenshot(region=self.region)
            path.parent.mkdir(parents=True, exist_ok=True)
            screenshot.save(path, format="PNG")
        except Exception as e:
            _module_logger.info(f"Action: screenshot, Path: {path}, Status: error")
            raise CaptureError(f"Screenshot failed: {e}") from e

        if not path.exists() or path.stat().st_size == 0:
            raise CaptureError(f"Screenshot was not written: {path}")
        _module_logger.info(f"Action: screenshot, Path: {path}, Status: success")
