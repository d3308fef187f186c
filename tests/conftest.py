from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from config import Config
from tests.fakes import FakeTime
from utils.logger import MonitorLogger


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("MONITOR_SNAPSHOT_COUNT", "MONITOR_INTERVAL_MS", "MONITOR_PROMPT", "MONITOR_MODEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def logger(tmp_path: Path) -> MonitorLogger:
    log = MonitorLogger("test", logs_dir=tmp_path / "logs", console=Console(file=io.StringIO()))
    yield log
    log.close()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        snapshot_count=3,
        interval_ms=1000,
        snapshots_dir=tmp_path / "screenshots",
        report_dir=tmp_path / "analysis",
        logs_dir=tmp_path / "logs",
    )
