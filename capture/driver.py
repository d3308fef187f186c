"""Hand-off of the seed prompt to whatever drives the observed workflow.

Operating the target application is outside the monitor. A driver only has
to get the workflow started with the given prompt before capture begins.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from utils.logger import MonitorLogger

_module_logger = logging.getLogger(__name__)

DEFAULT_RESEARCH_PROMPT = (
    "Install yfinance library, analyze apple financial performance, "
    "upload the table to athena, and write a report"
)


class WorkflowDriver(Protocol):
    """Starts the observed workflow with a seed prompt."""

    def start(self, prompt: str) -> None: ...


@dataclass
class ManualDriver:
    """Shows the prompt and waits for an operator to start the workflow."""

    logger: "MonitorLogger | None" = None
    wait_for_confirmation: Callable[[str], object] = input

    def start(self, prompt: str) -> None:
        if self.logger:
            self.logger.step("Start the workflow with this prompt:")
            self.logger.print(f"  [bold]{prompt}[/bold]")
        self.wait_for_confirmation("Press Enter once the workflow is running... ")


@dataclass
class KeyboardDriver:
    """Types the prompt into the focused input field and submits it.

    The operator gets ``countdown`` seconds to focus the target field first.
    """

    countdown: float = 5.0
    typing_interval: float = 0.02
    submit_key: str = "enter"
    logger: "MonitorLogger | None" = None
    sleep: Callable[[float], None] = field(default=time.sleep)

    def start(self, prompt: str) -> None:
        import pyautogui

        if self.logger:
            self.logger.step(
                f"Typing the prompt into the focused field in {self.countdown:.0f}s..."
            )
        self.sleep(self.countdown)

        pyautogui.write(prompt, interval=self.typing_interval)
        pyautogui.press(self.submit_key)
        _module_logger.info(f"Action: type, Chars: {len(prompt)}, Submit: {self.submit_key}")

        if self.logger:
            self.logger.success("Prompt submitted")
