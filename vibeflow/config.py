from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_LLM_MODEL,
    DEFAULT_MAX_NODE_VISITS,
)


class EngineConfig(BaseModel):
    """Limits applied to every workflow run."""

    max_node_visits: int = Field(default=DEFAULT_MAX_NODE_VISITS, gt=0)
    command_timeout: float = Field(default=DEFAULT_COMMAND_TIMEOUT, gt=0)


class LLMConfig(BaseModel):
    """Language model settings."""

    model: str = DEFAULT_LLM_MODEL
    system_prompt: Optional[str] = None


class VibeConfig(BaseModel):
    """Vibe check evaluation settings."""

    evaluator: Literal["auto", "console", "llm"] = "auto"


class VibeflowConfig(BaseModel):
    """Top-level configuration model."""

    engine: EngineConfig = EngineConfig()
    llm: LLMConfig = LLMConfig()
    vibe: VibeConfig = VibeConfig()
    database_url: Optional[str] = None
    history_url: Optional[str] = None
    process_dir: Optional[str] = None
    catalog_path: Optional[str] = None


def load_config(path: Optional[str] = None) -> VibeflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to VIBEFLOW_CONFIG env
            variable or 'vibeflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("VIBEFLOW_CONFIG", "vibeflow.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = VibeflowConfig(**data)
    else:
        config = VibeflowConfig()

    env_db_url = os.getenv("VIBEFLOW_DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_model = os.getenv("VIBEFLOW_LLM_MODEL")
    if env_model:
        config.llm.model = env_model
    env_evaluator = os.getenv("VIBEFLOW_VIBE_EVALUATOR")
    if env_evaluator:
        config.vibe = VibeConfig(evaluator=env_evaluator)
    return config
