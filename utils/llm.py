"""Multi-turn LLM client with provider abstraction and cost tracking."""

import base64
import io
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence, TYPE_CHECKING

from PIL import Image

from analyzer.conversation import Turn
from .tracking import CostTracker, detect_provider

if TYPE_CHECKING:
    from .logger import MonitorLogger

# Full-page captures are large; downscale before sending
MAX_IMAGE_DIMENSION = 1568
IMAGE_QUALITY = 85


@dataclass
class LLMResponse:
    """Standardized response from any LLM provider."""

    text: str
    input_tokens: int
    output_tokens: int
    model: str


def encode_image(image_path: Path, max_dimension: int = MAX_IMAGE_DIMENSION) -> tuple[str, str]:
    """Resize an image if needed and return (base64_data, media_type).

    Images are re-encoded as JPEG, which keeps multi-snapshot conversations
    well under provider request size limits.
    """
    with Image.open(image_path) as img:
        if img.mode in ("RGBA", "P", "LA"):
            img = img.convert("RGB")

        width, height = img.size
        longest = max(width, height)
        if longest > max_dimension:
            scale = max_dimension / longest
            img = img.resize((int(width * scale), int(height * scale)), Image.Resampling.LANCZOS)

        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=IMAGE_QUALITY, optimize=True)
        return base64.b64encode(buffer.getvalue()).decode("utf-8"), "image/jpeg"


class LLMClient:
    """LLM client that sends a whole conversation on every call.

    The provider (Anthropic, OpenAI or Gemini) is detected from the model name.
    The client keeps no conversation state of its own: callers pass the full,
    ordered list of turns each time.

    Example:
        >>> client = LLMClient(CostTracker())
        >>> text = client.chat(
        ...     "claude-sonnet-4-5-20250929",
        ...     [Turn.system("You are terse."), Turn.user("Hello!")],
        ... )
    """

    def __init__(
        self,
        cost_tracker: CostTracker,
        logger: "MonitorLogger | None" = None,
        max_image_dimension: int = MAX_IMAGE_DIMENSION,
    ):
        """Initialize the LLM client.

        Args:
            cost_tracker: CostTracker instance for tracking usage and costs.
            logger: Optional MonitorLogger for logging API calls.
            max_image_dimension: Longest image edge sent to the provider.
        """
        self.cost_tracker = cost_tracker
        self.logger = logger
        self.max_image_dimension = max_image_dimension

        # Lazy-loaded provider clients
        self._anthropic_client: Any = None
        self._openai_client: Any = None
        self._gemini_client: Any = None

        # Encoding cache: each snapshot is resent on every later call
        self._image_cache: dict[Path, tuple[str, str]] = {}

    def _get_anthropic_client(self) -> Any:
        if self._anthropic_client is None:
            from anthropic import Anthropic
            self._anthropic_client = Anthropic()
        return self._anthropic_client

    def _get_openai_client(self) -> Any:
        if self._openai_client is None:
            from openai import OpenAI
            self._openai_client = OpenAI()
        return self._openai_client

    def _get_gemini_client(self) -> Any:
        if self._gemini_client is None:
            from google import genai

            api_key = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
            self._gemini_client = genai.Client(api_key=api_key)
        return self._gemini_client

    def chat(
        self,
        model: str,
        turns: Sequence[Turn],
        max_tokens: int = 4096,
        phase: str | None = None,
    ) -> str:
        """Send the full conversation and return the assistant's reply text.

        Args:
            model: Model name (e.g., "claude-sonnet-4-5-20250929", "gpt-4o").
            turns: Ordered turns; at most one system turn, which must come first.
            max_tokens: Maximum tokens for the response.
            phase: Optional phase name for cost tracking.

        Returns:
            The assistant reply text.
        """
        system_prompt, dialogue = split_system(turns)

        provider = detect_provider(model)
        if provider == "anthropic":
            response = self._call_anthropic(model, system_prompt, dialogue, max_tokens)
        elif provider == "openai":
            response = self._call_openai(model, system_prompt, dialogue, max_tokens)
        elif provider == "gemini":
            response = self._call_gemini(model, system_prompt, dialogue, max_tokens)
        else:
            raise ValueError(f"Unknown provider for model: {model}")

        self.cost_tracker.add_usage(
            response.input_tokens,
            response.output_tokens,
            model=model,
            phase=phase,
        )

        if self.logger:
            self.logger.api(response.input_tokens, response.output_tokens)

        return response.text

    def _call_anthropic(
        self,
        model: str,
        system_prompt: str,
        dialogue: Sequence[Turn],
        max_tokens: int,
    ) -> LLMResponse:
        client = self._get_anthropic_client()

        response = client.messages.create(
            model=model,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=self.to_anthropic_messages(dialogue),
        )

        text = "".join(block.text for block in response.content if block.type == "text")
        return LLMResponse(
            text=text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=model,
        )

    def _call_openai(
        self,
        model: str,
        system_prompt: str,
        dialogue: Sequence[Turn],
        max_tokens: int,
    ) -> LLMResponse:
        client = self._get_openai_client()

        response = client.chat.completions.create(
            model=model,
            max_completion_tokens=max_tokens,
            messages=self.to_openai_messages(system_prompt, dialogue),
        )

        return LLMResponse(
            text=response.choices[0].message.content or "",
            input_tokens=response.usage.prompt_tokens if response.usage else 0,
            output_tokens=response.usage.completion_tokens if response.usage else 0,
            model=model,
        )

    def _call_gemini(
        self,
        model: str,
        system_prompt: str,
        dialogue: Sequence[Turn],
        max_tokens: int,
    ) -> LLMResponse:
        from google.genai import types

        client = self._get_gemini_client()

        response = client.models.generate_content(
            model=model,
            contents=self.to_gemini_contents(dialogue),
            config=types.GenerateContentConfig(
                system_instruction=system_prompt or None,
                max_output_tokens=max_tokens,
            ),
        )

        usage = response.usage_metadata
        return LLMResponse(
            text=response.text or "",
            input_tokens=usage.prompt_token_count if usage else 0,
            output_tokens=usage.candidates_token_count if usage else 0,
            model=model,
        )

    def _image_data(self, image_path: Path) -> tuple[str, str]:
        """Return cached (base64_data, media_type) for an image."""
        image_path = Path(image_path)
        if image_path not in self._image_cache:
            self._image_cache[image_path] = encode_image(image_path, self.max_image_dimension)
        return self._image_cache[image_path]

    def to_anthropic_messages(self, dialogue: Sequence[Turn]) -> list[dict]:
        """Convert user/assistant turns to Anthropic message params."""
        messages = []
        for turn in dialogue:
            if turn.role == "assistant":
                messages.append({"role": "assistant", "content": turn.text})
                continue

            content: list[dict] = []
            if turn.image_path is not None:
                image_data, media_type = self._image_data(turn.image_path)
                content.append({
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": media_type,
                        "data": image_data,
                    },
                })
            content.append({"type": "text", "text": turn.text})
            messages.append({"role": "user", "content": content})
        return messages

    def to_openai_messages(self, system_prompt: str, dialogue: Sequence[Turn]) -> list[dict]:
        """Convert turns to OpenAI chat completion messages."""
        messages: list[dict] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        for turn in dialogue:
            if turn.role == "assistant":
                messages.append({"role": "assistant", "content": turn.text})
                continue

            content: list[dict] = [{"type": "text", "text": turn.text}]
            if turn.image_path is not None:
                image_data, media_type = self._image_data(turn.image_path)
                content.append({
                    "type": "image_url",
                    "image_url": {"url": f"data:{media_type};base64,{image_data}"},
                })
            messages.append({"role": "user", "content": content})
        return messages

    def to_gemini_contents(self, dialogue: Sequence[Turn]) -> list[Any]:
        """Convert turns to Gemini ``types.Content`` objects (assistant -> "model")."""
        from google.genai import types

        contents = []
        for turn in dialogue:
            parts = [types.Part.from_text(text=turn.text)]
            if turn.image_path is not None:
                image_data, media_type = self._image_data(turn.image_path)
                parts.append(types.Part.from_bytes(
                    data=base64.b64decode(image_data),
                    mime_type=media_type,
                ))
            role = "model" if turn.role == "assistant" else "user"
            contents.append(types.Content(role=role, parts=parts))
        return contents


def split_system(turns: Sequence[Turn]) -> tuple[str, list[Turn]]:
    """Separate the leading system turn from the rest of the dialogue."""
    if not turns:
        raise ValueError("Conversation is empty")

    dialogue = list(turns)
    system_prompt = ""
    if dialogue[0].role == "system":
        system_prompt = dialogue.pop(0).text

    if any(turn.role == "system" for turn in dialogue):
        raise ValueError("System turn must be the first turn of the conversation")
    if not dialogue:
        raise ValueError("Conversation has no user turn to respond to")
    return system_prompt, dialogue
