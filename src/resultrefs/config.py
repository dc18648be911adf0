"""Configuration loading for result reference resolution.

Reads an optional YAML file describing the reference syntax and duplicate
handling, then applies ``RESULTREFS_*`` environment overrides.

Example ``resultrefs.yaml``::

    strict_duplicates: true
    syntax:
      task_part: tasks
      result_part: results
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from resultrefs.templates import ReferenceSyntax

logger = logging.getLogger(__name__)


class ResolverConfig(BaseModel):
    syntax: ReferenceSyntax = Field(default_factory=ReferenceSyntax)
    # Raise instead of keeping the last entry when duplicate references
    # resolve to different values.
    strict_duplicates: bool = False

    model_config = {"frozen": True}


def _env_flag(value: str) -> bool:
    return value.lower() in ("1", "true", "yes")


def load_config(config_path: Path) -> ResolverConfig:
    """Load resolver configuration from a YAML file.

    Args:
        config_path: Path to the YAML config file.

    Returns:
        Validated ResolverConfig.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        pydantic.ValidationError: If config validation fails.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Resolver config not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = ResolverConfig(**raw)

    # Environment variable overrides for deployment
    overrides: dict[str, object] = {}
    strict = os.environ.get("RESULTREFS_STRICT_DUPLICATES")
    if strict is not None:
        overrides["strict_duplicates"] = _env_flag(strict)

    syntax_overrides: dict[str, object] = {}
    task_part = os.environ.get("RESULTREFS_TASK_PART")
    if task_part:
        syntax_overrides["task_part"] = task_part

    result_part = os.environ.get("RESULTREFS_RESULT_PART")
    if result_part:
        syntax_overrides["result_part"] = result_part

    if syntax_overrides:
        overrides["syntax"] = config.syntax.model_copy(update=syntax_overrides)
    if overrides:
        config = config.model_copy(update=overrides)

    logger.info(
        "Loaded resolver config: strict_duplicates=%s forms=%s",
        config.strict_duplicates,
        ",".join(config.syntax.forms),
    )
    return config
