from __future__ import annotations

import os
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_CHAT_SYSTEM_PROMPT,
    DEFAULT_GENERATION_TIMEOUT,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
)


class GenerationConfig(BaseModel):
    """Settings forwarded to the generation provider."""

    default_model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: Optional[float] = None
    timeout: float = DEFAULT_GENERATION_TIMEOUT
    retries: int = 0
    chat_system_prompt: str = DEFAULT_CHAT_SYSTEM_PROMPT


class CatalogConfig(BaseModel):
    """Where templates are loaded from."""

    include_builtin: bool = True
    paths: List[str] = Field(default_factory=list)


class HyperflowConfig(BaseModel):
    """Top-level configuration model."""

    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    database_url: Optional[str] = None


def load_config(path: Optional[str] = None) -> HyperflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to HYPERFLOW_CONFIG env
            variable or 'hyperflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("HYPERFLOW_CONFIG", "hyperflow.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = HyperflowConfig(**data)
    else:
        config = HyperflowConfig()

    env_model = os.getenv("HYPERFLOW_DEFAULT_MODEL")
    if env_model:
        config.generation.default_model = env_model
    env_db_url = os.getenv("HYPERFLOW_DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    return config
