"""Role-tagged conversation turns and the append-only conversation log."""

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class Turn:
    """One unit of the analysis dialogue.

    User turns may carry a snapshot image; system and assistant turns are text only.
    """

    role: Role
    text: str
    image_path: Path | None = None

    def __post_init__(self):
        if self.role not in ("system", "user", "assistant"):
            raise ValueError(f"Unknown role: {self.role}")
        if self.image_path is not None and self.role != "user":
            raise ValueError(f"Only user turns can carry an image, got role={self.role}")

    @classmethod
    def system(cls, text: str) -> "Turn":
        return cls(role="system", text=text)

    @classmethod
    def user(cls, text: str, image_path: Path | None = None) -> "Turn":
        return cls(role="user", text=text, image_path=image_path)

    @classmethod
    def assistant(cls, text: str) -> "Turn":
        return cls(role="assistant", text=text)

    def to_dict(self) -> dict:
        """Convert to serializable dictionary."""
        return {
            "role": self.role,
            "text": self.text,
            "image_path": str(self.image_path) if self.image_path else None,
        }


class ConversationState:
    """Append-only, ordered log of turns.

    The first turn is the single system turn. After that roles strictly
    alternate user/assistant, starting with user.
    """

    def __init__(self, system_prompt: str):
        self._turns: list[Turn] = [Turn.system(system_prompt)]

    @property
    def turns(self) -> tuple[Turn, ...]:
        """Snapshot of the conversation so far, in original order."""
        return tuple(self._turns)

    @property
    def expected_role(self) -> Role:
        """Role the next appended turn must have."""
        return "user" if self._turns[-1].role in ("system", "assistant") else "assistant"

    def append(self, turn: Turn) -> None:
        """Append a turn, enforcing the system/user/assistant ordering."""
        if turn.role != self.expected_role:
            raise ValueError(
                f"Out-of-order turn: expected {self.expected_role}, got {turn.role} "
                f"(after {len(self._turns)} turns)"
            )
        self._turns.append(turn)

    def __len__(self) -> int:
        return len(self._turns)
