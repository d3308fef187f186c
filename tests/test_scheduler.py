from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from capture.scheduler import (
    CaptureExhausted,
    CaptureScheduler,
    load_snapshot_list,
    save_snapshot_list,
    snapshot_filename,
)
from tests.fakes import FakeCapture, FakeTime


def _scheduler(capture: FakeCapture, tmp_path: Path, fake_time: FakeTime) -> CaptureScheduler:
    return CaptureScheduler(
        capture=capture,
        snapshots_dir=tmp_path / "shots",
        sleep=fake_time.sleep,
        clock=fake_time.now,
    )


@pytest.mark.parametrize("count,interval_ms", [(1, 0), (3, 1000), (5, 60000)])
def test_produces_contiguous_records_spaced_by_interval(
    tmp_path: Path, fake_time: FakeTime, count: int, interval_ms: int
) -> None:
    capture = FakeCapture()
    records = _scheduler(capture, tmp_path, fake_time).run(count, interval_ms)

    assert [r.sequence_index for r in records] == list(range(count))
    assert all(r.image_path.exists() for r in records)
    for earlier, later in zip(records, records[1:]):
        assert later.captured_at - earlier.captured_at >= timedelta(milliseconds=interval_ms)
    # No idle after the final capture
    assert fake_time.sleeps == [interval_ms / 1000] * (count - 1)


def test_filenames_are_numbered_from_one(tmp_path: Path, fake_time: FakeTime) -> None:
    records = _scheduler(FakeCapture(), tmp_path, fake_time).run(2, 0)

    assert records[0].filename.startswith("screenshot-1-")
    assert records[1].filename.startswith("screenshot-2-")
    assert ":" not in records[0].filename
    assert records[0].filename.endswith(".png")


def test_two_failures_then_success_is_invisible(tmp_path: Path, fake_time: FakeTime) -> None:
    capture = FakeCapture(fail_calls={1, 2})
    records = _scheduler(capture, tmp_path, fake_time).run(2, 1000)

    assert len(records) == 2
    assert len(capture.calls) == 4
    # Two retry waits of 5s, then one interval wait
    assert fake_time.sleeps == [5.0, 5.0, 1.0]


def test_captured_at_is_stamped_after_retries(tmp_path: Path, fake_time: FakeTime) -> None:
    start = fake_time.now()
    records = _scheduler(FakeCapture(fail_calls={1}), tmp_path, fake_time).run(1, 0)

    assert records[0].captured_at == start + timedelta(seconds=5)


def test_three_failures_abort_the_run(tmp_path: Path, fake_time: FakeTime) -> None:
    # Snapshot 1 succeeds, snapshot 2 fails on every attempt
    capture = FakeCapture(fail_calls={2, 3, 4})
    scheduler = _scheduler(capture, tmp_path, fake_time)

    with pytest.raises(CaptureExhausted) as excinfo:
        scheduler.run(4, 1000)

    assert excinfo.value.sequence_index == 1
    assert excinfo.value.attempts == 3
    assert len(capture.calls) == 4
    assert "screenshot 2" in str(excinfo.value)


@pytest.mark.parametrize("count,interval_ms", [(0, 1000), (3, -1)])
def test_rejects_invalid_arguments(
    tmp_path: Path, fake_time: FakeTime, count: int, interval_ms: int
) -> None:
    with pytest.raises(ValueError):
        _scheduler(FakeCapture(), tmp_path, fake_time).run(count, interval_ms)


def test_snapshot_list_round_trips(tmp_path: Path, fake_time: FakeTime) -> None:
    records = _scheduler(FakeCapture(), tmp_path, fake_time).run(3, 0)

    list_path = save_snapshot_list(records, tmp_path / "report")
    assert json.loads(list_path.read_text()) == [str(r.image_path) for r in records]

    loaded = load_snapshot_list(list_path)
    assert [r.image_path for r in loaded] == [r.image_path for r in records]
    assert [r.sequence_index for r in loaded] == [0, 1, 2]


def test_load_snapshot_list_rejects_missing_files(tmp_path: Path) -> None:
    list_path = tmp_path / "screenshot_paths.json"
    list_path.write_text(json.dumps([str(tmp_path / "gone.png")]))

    with pytest.raises(FileNotFoundError):
        load_snapshot_list(list_path)


def test_snapshot_filename_format(fake_time: FakeTime) -> None:
    assert snapshot_filename(0, fake_time.now()) == "screenshot-1-2025-03-01T12-00-00.000.png"


@pytest.mark.parametrize("entries", [[3], [None], [["nested.png"]]])
def test_load_snapshot_list_rejects_non_string_entries(tmp_path: Path, entries: list) -> None:
    list_path = tmp_path / "screenshot_paths.json"
    list_path.write_text(json.dumps(entries))

    with pytest.raises(ValueError, match="entry 0"):
        load_snapshot_list(list_path)
