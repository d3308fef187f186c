from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

import pytest

from analyzer.engine import AnnotationSet
from capture.scheduler import SnapshotRecord
from report.assembler import ReportAssembler, ReportWriteError


def _snapshots(count: int, directory: Path) -> list[SnapshotRecord]:
    directory.mkdir(parents=True, exist_ok=True)
    records = []
    for i in range(count):
        path = directory / f"screenshot-{i + 1}-2025-03-01T12-0{i}-00.000.png"
        path.write_bytes(b"image")
        records.append(SnapshotRecord(i, path, datetime(2025, 3, 1, 12, i)))
    return records


def _assembler() -> ReportAssembler:
    return ReportAssembler(clock=lambda: datetime(2025, 3, 1, 13, 0))


def test_writes_one_annotation_file_per_snapshot(tmp_path: Path) -> None:
    snapshots = _snapshots(3, tmp_path / "shots")
    annotations = AnnotationSet(("first", "second", "third"), "all good")

    artifact = _assembler().assemble(snapshots, annotations, tmp_path / "report")

    assert [p.name for p in artifact.annotation_files] == [
        f"{s.image_path.stem}-annotation.md" for s in snapshots
    ]
    assert [p.read_text() for p in artifact.annotation_files] == ["first", "second", "third"]
    # Images are copied next to the index
    assert all((tmp_path / "report" / s.filename).exists() for s in snapshots)
    assert artifact.summary.read_text() == "all good"


def test_transcript_sections(tmp_path: Path) -> None:
    snapshots = _snapshots(3, tmp_path / "shots")
    annotations = AnnotationSet(("a", "b", "c"), "summary text")

    artifact = _assembler().assemble(snapshots, annotations, tmp_path / "report")
    transcript = artifact.transcript.read_text()

    headings = re.findall(r"^## Screenshot (\d+): ", transcript, flags=re.MULTILINE)
    assert headings == ["1", "2", "3"]
    assert len(re.findall(r"^## .*Summary", transcript, flags=re.MULTILINE)) == 1
    assert "*Timestamp: 2025-03-01 12:01:00*" in transcript
    assert transcript.index("### Analysis:\nc") < transcript.index("## Workflow Summary")
    assert transcript.rstrip().endswith("summary text")


def test_index_references_every_snapshot_once_in_order(tmp_path: Path) -> None:
    snapshots = _snapshots(3, tmp_path / "shots")
    annotations = AnnotationSet(("a", "b", "c"), "ok")

    artifact = _assembler().assemble(snapshots, annotations, tmp_path / "report")
    index = artifact.index.read_text()

    assert re.findall(r"<h3>Screenshot (\d+)</h3>", index) == ["1", "2", "3"]
    for snapshot in snapshots:
        assert index.count(f'src="{snapshot.filename}"') == 1
        assert index.count(f'href="{snapshot.image_path.stem}-annotation.md"') == 1
    assert 'href="conversation_log.md"' in index
    assert 'href="workflow_summary.md"' in index


def test_index_escapes_model_output(tmp_path: Path) -> None:
    snapshots = _snapshots(1, tmp_path / "shots")
    annotations = AnnotationSet(("x",), "<script>alert(1)</script>\nline two")

    index = _assembler().assemble(snapshots, annotations, tmp_path / "report").index.read_text()

    assert "<script>" not in index
    assert "&lt;script&gt;" in index
    assert "<br>" in index


def test_rerun_overwrites_previous_files(tmp_path: Path) -> None:
    snapshots = _snapshots(2, tmp_path / "shots")
    _assembler().assemble(snapshots, AnnotationSet(("old", "old"), "old"), tmp_path / "report")
    artifact = _assembler().assemble(snapshots, AnnotationSet(("new", "new"), "new"), tmp_path / "report")

    assert [p.read_text() for p in artifact.annotation_files] == ["new", "new"]
    assert artifact.summary.read_text() == "new"


def test_images_already_in_output_dir_are_not_copied(tmp_path: Path) -> None:
    snapshots = _snapshots(1, tmp_path / "report")

    artifact = _assembler().assemble(snapshots, AnnotationSet(("a",), "s"), tmp_path / "report")

    assert artifact.images == [snapshots[0].image_path]


def test_rejects_misaligned_annotations(tmp_path: Path) -> None:
    snapshots = _snapshots(2, tmp_path / "shots")

    with pytest.raises(ValueError):
        _assembler().assemble(snapshots, AnnotationSet(("only one",), "s"), tmp_path / "report")


def test_io_errors_become_report_write_errors(tmp_path: Path) -> None:
    snapshots = _snapshots(1, tmp_path / "shots")
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")

    with pytest.raises(ReportWriteError):
        _assembler().assemble(snapshots, AnnotationSet(("a",), "s"), blocker)
