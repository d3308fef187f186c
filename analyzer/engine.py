"""Incremental analysis of a snapshot series through one growing conversation."""

import logging
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence, TYPE_CHECKING

from tqdm import tqdm

from prompts.analysis_prompts import (
    ANALYST_SYSTEM_PROMPT,
    ANNOTATION_ERROR_TEMPLATE,
    SUMMARY_ERROR_TEMPLATE,
    SUMMARY_PROMPT,
    snapshot_prompt,
)
from utils.retry import retry
from .conversation import ConversationState, Turn

if TYPE_CHECKING:
    from capture.scheduler import SnapshotRecord
    from utils.logger import MonitorLogger

_module_logger = logging.getLogger(__name__)


class ChatCapability(Protocol):
    """Stateless chat call: takes the whole conversation, returns the reply text."""

    def __call__(self, turns: Sequence[Turn]) -> str: ...


@dataclass(frozen=True)
class AnnotationSet:
    """Per-snapshot annotations (index-aligned with sequence_index) plus a summary."""

    annotations: tuple[str, ...]
    summary: str

    @classmethod
    def degraded(cls, count: int, error: str) -> "AnnotationSet":
        """Sentinel set used when the analysis phase failed."""
        return cls(
            annotations=tuple(ANNOTATION_ERROR_TEMPLATE.format(error=error) for _ in range(count)),
            summary=SUMMARY_ERROR_TEMPLATE.format(error=error),
        )

    def __len__(self) -> int:
        return len(self.annotations)


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of the whole analysis phase.

    ``error`` is set when the phase failed and ``annotations`` holds sentinel text.
    """

    annotations: AnnotationSet
    conversation: tuple[Turn, ...]
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.error is not None


class AnalysisEngine:
    """Annotates snapshots in order, each call seeing every prior turn.

    Calls are strictly sequential: the reply to snapshot k is appended to the
    conversation before the prompt for snapshot k+1 is built.
    """

    def __init__(
        self,
        chat: ChatCapability,
        system_prompt: str = ANALYST_SYSTEM_PROMPT,
        chat_attempts: int = 1,
        retry_delay_ms: int = 5000,
        sleep: Callable[[float], None] | None = None,
        logger: "MonitorLogger | None" = None,
        verbose: bool = True,
    ):
        """Initialize the engine.

        Args:
            chat: Chat capability called with the full conversation.
            system_prompt: Persona and failure-flagging instructions.
            chat_attempts: Attempts per chat call (1 = no retry).
            retry_delay_ms: Fixed wait between failed chat attempts.
            sleep: Optional sleep function for the retry wait (tests).
            logger: Optional MonitorLogger for styled output.
            verbose: Whether to show a tqdm progress bar.
        """
        self.chat = chat
        self.system_prompt = system_prompt
        self.chat_attempts = chat_attempts
        self.retry_delay_ms = retry_delay_ms
        self.sleep = sleep
        self.logger = logger
        self.verbose = verbose

    def analyze(self, snapshots: Sequence["SnapshotRecord"]) -> AnalysisResult:
        """Annotate every snapshot and produce a closing summary.

        Never raises for backend failures: any exception during the phase
        yields a degraded result with sentinel text in every position.
        """
        conversation = ConversationState(self.system_prompt)

        try:
            annotations = self._annotate_all(conversation, snapshots)
            summary = self._summarize(conversation)
        except Exception as e:
            _module_logger.exception("Analysis phase failed")
            if self.logger:
                self.logger.error(f"Error evaluating screenshots: {e}")
            return AnalysisResult(
                annotations=AnnotationSet.degraded(len(snapshots), str(e)),
                conversation=conversation.turns,
                error=str(e),
            )

        if self.logger:
            self.logger.success(f"Analyzed {len(annotations)} screenshots")
        return AnalysisResult(
            annotations=AnnotationSet(annotations=tuple(annotations), summary=summary),
            conversation=conversation.turns,
        )

    def _annotate_all(
        self,
        conversation: ConversationState,
        snapshots: Sequence["SnapshotRecord"],
    ) -> list[str]:
        annotations: list[str] = []

        snapshot_iterator = tqdm(
            snapshots,
            desc="Analyzing screenshots",
            unit="screenshot",
            disable=not self.verbose,
        )
        for snapshot in snapshot_iterator:
            snapshot_iterator.set_postfix({"screenshot": snapshot.filename})

            conversation.append(Turn.user(
                snapshot_prompt(snapshot.sequence_index),
                image_path=snapshot.image_path,
            ))
            annotation = self._send(conversation, f"screenshot {snapshot.number}")
            conversation.append(Turn.assistant(annotation))
            annotations.append(annotation)

            if self.logger:
                self.logger.model_response(f"Screenshot {snapshot.number}", annotation)

        return annotations

    def _summarize(self, conversation: ConversationState) -> str:
        if self.logger:
            self.logger.step("Generating workflow summary...")

        conversation.append(Turn.user(SUMMARY_PROMPT))
        summary = self._send(conversation, "summary")
        conversation.append(Turn.assistant(summary))

        if self.logger:
            self.logger.model_response("Workflow Summary", summary)
        return summary

    def _send(self, conversation: ConversationState, description: str) -> str:
        """Invoke the chat capability with the entire conversation so far."""
        turns = conversation.turns
        if self.chat_attempts <= 1:
            return self.chat(turns)

        retry_kwargs = {"sleep": self.sleep} if self.sleep else {}
        return retry(
            lambda: self.chat(turns),
            max_attempts=self.chat_attempts,
            delay_ms=self.retry_delay_ms,
            description=f"analysis of {description}",
            **retry_kwargs,
        )
