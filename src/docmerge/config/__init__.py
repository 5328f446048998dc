"""
docmerge Configuration

YAML configuration validated with Pydantic and converted to frozen
settings dataclasses, plus the packaged canonical-tag catalogue.

Usage:
    from docmerge.config import load_config

    config = load_config("docmerge.yaml")   # or load_config() for defaults
    engine = MergeEngine(settings=config.settings)
"""
from __future__ import annotations

from .loader import load_config, load_config_dict, load_default_rules
from .schema import SCHEMA_VERSION, ConfigSchema, MatchRuleSchema, SettingsSchema
from .settings import (
    DEFAULT_HARD_BOUNDARY_ELEMENTS,
    DocMergeConfig,
    EngineSettings,
    MatchRule,
)

__all__ = [
    "DEFAULT_HARD_BOUNDARY_ELEMENTS",
    "SCHEMA_VERSION",
    "ConfigSchema",
    "DocMergeConfig",
    "EngineSettings",
    "MatchRule",
    "MatchRuleSchema",
    "SettingsSchema",
    "load_config",
    "load_config_dict",
    "load_default_rules",
]
