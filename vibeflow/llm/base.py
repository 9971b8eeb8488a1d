"""Language model contract used by LLM nodes and vibe evaluation."""

from __future__ import annotations

from typing import Protocol, Sequence


class LanguageModel(Protocol):
    """Anything that can turn a prompt into a text response."""

    async def complete(self, prompt: str, tools: Sequence[str] = ()) -> str:
        """Return the model's response to ``prompt``.

        ``tools`` names the tools the model may call while answering.
        """
