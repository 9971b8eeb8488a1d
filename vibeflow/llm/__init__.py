"""Language model integration."""

from .agent import PydanticAILanguageModel, get_language_model
from .base import LanguageModel
from .tools import create_file_tool, project_tools, question_catalog_tool

__all__ = [
    "LanguageModel",
    "PydanticAILanguageModel",
    "get_language_model",
    "project_tools",
    "create_file_tool",
    "question_catalog_tool",
]
