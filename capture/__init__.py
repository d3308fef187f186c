"""Capture module for workflow monitoring.

This module provides:
- CaptureScheduler: Take an ordered series of timed, retried snapshots
- ScreenCapture: Capture the screen to a PNG file using pyautogui
- ManualDriver / KeyboardDriver: Start the observed workflow with a seed prompt
"""

from .driver import DEFAULT_RESEARCH_PROMPT, KeyboardDriver, ManualDriver, WorkflowDriver
from .scheduler import (
    CaptureCapability,
    CaptureExhausted,
    CaptureScheduler,
    SnapshotRecord,
    load_snapshot_list,
    save_snapshot_list,
)
from .screen import CaptureError, ScreenCapture

__all__ = [
    "CaptureCapability",
    "CaptureError",
    "CaptureExhausted",
    "CaptureScheduler",
    "DEFAULT_RESEARCH_PROMPT",
    "KeyboardDriver",
    "ManualDriver",
    "ScreenCapture",
    "SnapshotRecord",
    "WorkflowDriver",
    "load_snapshot_list",
    "save_snapshot_list",
]
