"""Test doubles for the capture and chat capabilities and the clock."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Sequence

from analyzer.conversation import Turn


class FakeTime:
    """Clock that only advances when ``sleep`` is called."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2025, 3, 1, 12, 0, 0)
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self.current

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += timedelta(seconds=seconds)


class FakeCapture:
    """Writes a small file per call; fails on the given (1-based) call numbers."""

    def __init__(self, fail_calls: set[int] | None = None, always_fail: bool = False):
        self.fail_calls = fail_calls or set()
        self.always_fail = always_fail
        self.calls: list[Path] = []

    def __call__(self, path: Path) -> None:
        self.calls.append(Path(path))
        if self.always_fail or len(self.calls) in self.fail_calls:
            raise RuntimeError(f"capture failed (call {len(self.calls)})")
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_bytes(b"\x89PNG fake image")


class EchoChat:
    """Deterministic chat capability that records what each call saw."""

    def __init__(self, fail_on_call: int | None = None):
        self.fail_on_call = fail_on_call
        self.seen: list[tuple[Turn, ...]] = []

    def __call__(self, turns: Sequence[Turn]) -> str:
        self.seen.append(tuple(turns))
        call_number = len(self.seen)
        if call_number == self.fail_on_call:
            raise ConnectionError("backend unavailable")
        return f"echo {call_number}: {turns[-1].text[:20]}"
