from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from analyzer.engine import AnalysisEngine, AnnotationSet
from capture.scheduler import SnapshotRecord
from prompts.analysis_prompts import (
    ANALYST_SYSTEM_PROMPT,
    FIRST_SNAPSHOT_PROMPT,
    FOLLOW_UP_SNAPSHOT_PROMPT,
    SUMMARY_PROMPT,
)
from tests.fakes import EchoChat


def _snapshots(count: int, tmp_path: Path) -> list[SnapshotRecord]:
    return [
        SnapshotRecord(
            sequence_index=i,
            image_path=tmp_path / f"screenshot-{i + 1}-t.png",
            captured_at=datetime(2025, 3, 1, 12, i),
        )
        for i in range(count)
    ]


def test_each_call_sees_the_whole_conversation(tmp_path: Path) -> None:
    chat = EchoChat()
    result = AnalysisEngine(chat, verbose=False).analyze(_snapshots(3, tmp_path))

    # Call k (0-based) sees the system turn, k user/assistant pairs and the new user turn
    assert [len(turns) for turns in chat.seen] == [2, 4, 6, 8]
    for k, turns in enumerate(chat.seen[:3]):
        assert turns[0].role == "system"
        assert turns[-1].role == "user"
        assert turns[-1].image_path == tmp_path / f"screenshot-{k + 1}-t.png"
        # Earlier replies are present, in order
        assert [t.text for t in turns if t.role == "assistant"] == list(result.annotations.annotations[:k])

    assert len(result.conversation) == 1 + 2 * 3 + 2
    assert not result.degraded


def test_annotations_are_index_aligned_and_summary_is_last_reply(tmp_path: Path) -> None:
    result = AnalysisEngine(EchoChat(), verbose=False).analyze(_snapshots(2, tmp_path))

    assert result.annotations.annotations[0].startswith("echo 1:")
    assert result.annotations.annotations[1].startswith("echo 2:")
    assert result.annotations.summary.startswith("echo 3:")
    assert result.conversation[-1].text == result.annotations.summary


def test_prompts_and_system_persona(tmp_path: Path) -> None:
    chat = EchoChat()
    AnalysisEngine(chat, verbose=False).analyze(_snapshots(3, tmp_path))

    final = chat.seen[-1]
    assert final[0].text == ANALYST_SYSTEM_PROMPT
    user_texts = [t.text for t in final if t.role == "user"]
    assert user_texts == [
        FIRST_SNAPSHOT_PROMPT,
        FOLLOW_UP_SNAPSHOT_PROMPT,
        FOLLOW_UP_SNAPSHOT_PROMPT,
        SUMMARY_PROMPT,
    ]
    assert FIRST_SNAPSHOT_PROMPT != FOLLOW_UP_SNAPSHOT_PROMPT
    assert final[-1].image_path is None


@pytest.mark.parametrize("fail_on_call", [1, 2, 4])
def test_any_failure_degrades_every_position(tmp_path: Path, fail_on_call: int) -> None:
    chat = EchoChat(fail_on_call=fail_on_call)
    result = AnalysisEngine(chat, verbose=False).analyze(_snapshots(3, tmp_path))

    assert result.degraded
    assert "backend unavailable" in result.error
    assert len(result.annotations) == 3
    assert all(
        a == "Error evaluating screenshots: backend unavailable"
        for a in result.annotations.annotations
    )
    assert result.annotations.summary == "Error generating summary: backend unavailable"
    # Nothing is called after the failing call
    assert len(chat.seen) == fail_on_call


def test_chat_retries_when_configured(tmp_path: Path) -> None:
    calls = []
    sleeps: list[float] = []

    def flaky_chat(turns):
        calls.append(len(turns))
        if len(calls) == 1:
            raise TimeoutError("slow")
        return "fine"

    engine = AnalysisEngine(flaky_chat, chat_attempts=2, retry_delay_ms=100, sleep=sleeps.append, verbose=False)
    result = engine.analyze(_snapshots(1, tmp_path))

    assert not result.degraded
    assert result.annotations.annotations == ("fine",)
    assert calls == [2, 2, 4]
    assert sleeps == [0.1]


def test_logger_receives_each_annotation(tmp_path: Path, logger) -> None:
    AnalysisEngine(EchoChat(), logger=logger, verbose=False).analyze(_snapshots(2, tmp_path))

    log_text = logger.log_file.read_text(encoding="utf-8")
    assert "MODEL: Screenshot 1: echo 1" in log_text
    assert "MODEL: Screenshot 2: echo 2" in log_text
    assert "MODEL: Workflow Summary: echo 3" in log_text


def test_degraded_annotation_set() -> None:
    degraded = AnnotationSet.degraded(2, "boom")

    assert degraded.annotations == (
        "Error evaluating screenshots: boom",
        "Error evaluating screenshots: boom",
    )
    assert degraded.summary == "Error generating summary: boom"
