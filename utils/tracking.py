"""Token/cost accounting and elapsed-time tracking for a monitor run."""

import time
from dataclasses import dataclass, field
from typing import Any


# Price per million tokens (input, output), keyed by model name
MODEL_PRICING: dict[str, tuple[float, float]] = {
    # Anthropic
    "claude-opus-4-5": (5.0, 25.0),
    "claude-sonnet-4-5-20250929": (3.0, 15.0),
    "claude-sonnet-4-5": (3.0, 15.0),
    "claude-sonnet-4-20250514": (3.0, 15.0),
    "claude-3-7-sonnet-20250219": (3.0, 15.0),
    "claude-haiku-4-5": (1.0, 5.0),
    # OpenAI
    "gpt-4o": (2.50, 10.0),
    "gpt-4o-mini": (0.15, 0.60),
    "gpt-5-mini": (0.25, 2.0),
    # Gemini
    "gemini-3-flash-preview": (0.5, 3.0),
    "gemini-2.0-flash": (0.10, 0.40),
}

DEFAULT_PRICING = (3.0, 15.0)


def get_model_pricing(model: str) -> tuple[float, float]:
    """Return (input_price_per_mtok, output_price_per_mtok) for a model."""
    return MODEL_PRICING.get(model, DEFAULT_PRICING)


def detect_provider(model: str) -> str:
    """Detect the provider from a model name.

    Returns: "anthropic", "openai", or "gemini"
    """
    if model.startswith("claude"):
        return "anthropic"
    if model.startswith(("gpt", "o1", "o3", "o4")):
        return "openai"
    if model.startswith("gemini"):
        return "gemini"
    return "anthropic"


@dataclass
class CostTracker:
    """Accumulates token usage and cost per model and per phase."""

    total_input_tokens: int = 0
    total_output_tokens: int = 0
    api_calls: int = 0
    total_cost: float = 0.0

    # phase -> {"input", "output", "calls", "cost", "model"}
    phase_stats: dict[str, dict[str, Any]] = field(default_factory=dict)

    def add_usage(
        self,
        input_tokens: int,
        output_tokens: int,
        model: str,
        phase: str | None = None,
    ) -> float:
        """Record token usage from one API call and return its cost in dollars."""
        input_price, output_price = get_model_pricing(model)
        call_cost = (
            (input_tokens / 1_000_000) * input_price +
            (output_tokens / 1_000_000) * output_price
        )

        self.total_input_tokens += input_tokens
        self.total_output_tokens += output_tokens
        self.api_calls += 1
        self.total_cost += call_cost

        key = phase or "default"
        stats = self.phase_stats.setdefault(
            key, {"input": 0, "output": 0, "calls": 0, "cost": 0.0, "model": model}
        )
        stats["input"] += input_tokens
        stats["output"] += output_tokens
        stats["calls"] += 1
        stats["cost"] += call_cost

        return call_cost

    def get_summary(self) -> dict[str, str]:
        """Get a summary dictionary for display."""
        return {
            "API Calls": str(self.api_calls),
            "Input Tokens": f"{self.total_input_tokens:,}",
            "Output Tokens": f"{self.total_output_tokens:,}",
            "Total Cost": f"${self.total_cost:.4f}",
        }

    def get_phase_summary(self) -> list[list[str]]:
        """Get per-phase rows for table display."""
        return [
            [
                phase,
                stats.get("model", "unknown"),
                str(stats["calls"]),
                f"{stats['input']:,}",
                f"{stats['output']:,}",
                f"${stats['cost']:.4f}",
            ]
            for phase, stats in self.phase_stats.items()
        ]


class Timer:
    """Wall-clock timer for a command run."""

    def __init__(self, name: str = "Operation"):
        self.name = name
        self.start_time: float | None = None
        self.end_time: float | None = None

    @property
    def elapsed(self) -> float:
        """Get elapsed time in seconds."""
        if self.start_time is None:
            return 0.0
        end = self.end_time or time.time()
        return end - self.start_time

    @property
    def elapsed_str(self) -> str:
        """Get elapsed time as a formatted string."""
        seconds = self.elapsed
        if seconds < 60:
            return f"{seconds:.1f}s"
        minutes = int(seconds // 60)
        secs = seconds % 60
        if minutes < 60:
            return f"{minutes}m {secs:.0f}s"
        return f"{minutes // 60}h {minutes % 60}m {secs:.0f}s"

    def start(self) -> None:
        """Manually start the timer."""
        self.start_time = time.time()
        self.end_time = None

    def stop(self) -> float:
        """Manually stop the timer and return elapsed time."""
        self.end_time = time.time()
        return self.elapsed
