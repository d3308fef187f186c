from __future__ import annotations

from pathlib import Path

import pytest

from analyzer.conversation import ConversationState, Turn


def test_starts_with_single_system_turn() -> None:
    conversation = ConversationState("persona")

    assert len(conversation) == 1
    assert conversation.turns[0] == Turn.system("persona")
    assert conversation.expected_role == "user"


def test_alternates_user_and_assistant() -> None:
    conversation = ConversationState("persona")
    conversation.append(Turn.user("look", image_path=Path("a.png")))
    conversation.append(Turn.assistant("I see a page"))
    conversation.append(Turn.user("and now?"))

    assert [t.role for t in conversation.turns] == ["system", "user", "assistant", "user"]
    assert conversation.expected_role == "assistant"


@pytest.mark.parametrize(
    "turn",
    [Turn.assistant("too early"), Turn.system("second system turn")],
)
def test_rejects_out_of_order_turns(turn: Turn) -> None:
    conversation = ConversationState("persona")

    with pytest.raises(ValueError):
        conversation.append(turn)
    assert len(conversation) == 1


def test_turns_is_a_snapshot() -> None:
    conversation = ConversationState("persona")
    before = conversation.turns
    conversation.append(Turn.user("hello"))

    assert isinstance(before, tuple)
    assert len(before) == 1
    assert len(conversation.turns) == 2


def test_only_user_turns_carry_images() -> None:
    with pytest.raises(ValueError):
        Turn(role="assistant", text="x", image_path=Path("a.png"))
