"""Analysis module for annotating workflow screenshots with a vision model."""

from .conversation import ConversationState, Role, Turn
from .engine import AnalysisEngine, AnalysisResult, AnnotationSet, ChatCapability

__all__ = [
    # Conversation types
    "ConversationState",
    "Role",
    "Turn",
    # Engine
    "AnalysisEngine",
    "AnalysisResult",
    "AnnotationSet",
    "ChatCapability",
]
