"""Language model adapter built on pydantic-ai agents."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence

from pydantic_ai import Agent
from pydantic_ai.models import Model

from ..config import LLMConfig

logger = logging.getLogger(__name__)


class PydanticAILanguageModel:
    """Run each prompt through a pydantic-ai ``Agent``.

    Tools are looked up by name in ``tools``; an agent is built per call with
    only the tools the node asked for.
    """

    def __init__(
        self,
        model: Model | str,
        system_prompt: Optional[str] = None,
        tools: Optional[Dict[str, Callable]] = None,
    ) -> None:
        self.model = model
        self.system_prompt = system_prompt
        self.tools: Dict[str, Callable] = dict(tools or {})

    def register_tool(self, name: str, func: Callable) -> None:
        self.tools[name] = func

    def _resolve_tools(self, names: Sequence[str]) -> List[Callable]:
        resolved = []
        for name in names:
            func = self.tools.get(name)
            if func is None:
                logger.warning(f"Tool '{name}' is not registered, skipping")
                continue
            resolved.append(func)
        return resolved

    def _build_agent(self, tool_names: Sequence[str]) -> Agent:
        kwargs = {"tools": self._resolve_tools(tool_names)}
        if self.system_prompt:
            kwargs["system_prompt"] = self.system_prompt
        return Agent(self.model, **kwargs)

    async def complete(self, prompt: str, tools: Sequence[str] = ()) -> str:
        agent = self._build_agent(tools)
        logger.debug(f"Sending prompt to {self.model} ({len(prompt)} chars)")
        result = await agent.run(prompt)
        return str(result.output)


def get_language_model(
    config: Optional[LLMConfig] = None, tools: Optional[Dict[str, Callable]] = None
) -> PydanticAILanguageModel:
    config = config or LLMConfig()
    return PydanticAILanguageModel(config.model, config.system_prompt, tools)
