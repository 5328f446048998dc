"""
docmerge Configuration Loader

Loads and validates configuration from YAML or JSON files.

Converts Pydantic schema models to the frozen settings dataclasses.
The canonical-tag catalogue ships as default_rules.yaml inside this
package; a user config may override settings and/or replace the rules.
"""
from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigLoadError, ConfigValidationError
from .schema import (
    SCHEMA_VERSION,
    ConfigSchema,
    MatchRuleSchema,
    SettingsSchema,
    check_schema_version,
)
from .settings import DocMergeConfig, EngineSettings, MatchRule

DEFAULT_RULES_RESOURCE = "default_rules.yaml"


# =============================================================================
# Schema to Model Converters
# =============================================================================

def _convert_settings(schema: SettingsSchema) -> EngineSettings:
    """Overlay the keys present in the schema onto default settings."""
    values = schema.model_dump(exclude_none=True)
    if "hard_boundary_elements" in values:
        values["hard_boundary_elements"] = frozenset(values["hard_boundary_elements"])
    return EngineSettings(**values)


def _convert_rule(schema: MatchRuleSchema) -> MatchRule:
    return MatchRule(
        tag=schema.tag,
        keywords=tuple(schema.keywords),
        exclude_keywords=tuple(schema.exclude_keywords),
        priority=schema.priority,
    )


# =============================================================================
# Loading
# =============================================================================

def _read_file(path: Path) -> Any:
    if not path.exists():
        raise ConfigLoadError(
            message=f"Configuration file not found: {path}",
            details={"path": str(path)},
        )
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                return json.load(f)
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigLoadError(
            message=f"Invalid YAML in {path}: {e}",
            details={"path": str(path)},
        ) from e
    except json.JSONDecodeError as e:
        raise ConfigLoadError(
            message=f"Invalid JSON in {path}: {e}",
            details={"path": str(path)},
        ) from e


def _validate(data: Any, source: str) -> ConfigSchema:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigValidationError(
            message=f"Configuration in {source} must be a mapping",
            details={"source": source, "type": type(data).__name__},
        )
    try:
        schema = ConfigSchema.model_validate(data)
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        raise ConfigValidationError(
            message=f"Configuration validation failed for {source}",
            details={"source": source, "errors": errors},
        ) from e
    if not check_schema_version(schema.schema_version):
        raise ConfigValidationError(
            message=(
                f"Unsupported schema_version {schema.schema_version} "
                f"(expected {SCHEMA_VERSION})"
            ),
            details={"source": source, "schema_version": schema.schema_version},
        )
    return schema


def load_config_dict(
    data: Any,
    source: str = "<dict>",
    default_rules: Optional[tuple[MatchRule, ...]] = None,
) -> DocMergeConfig:
    """
    Validate a configuration mapping and convert it.

    Args:
        data: Parsed YAML/JSON content
        source: Label used in error messages
        default_rules: Catalogue used when the data has no `rules`
            (defaults to the packaged catalogue)

    Raises:
        ConfigValidationError: If the data does not match the schema
    """
    schema = _validate(data, source)
    if schema.rules is not None:
        rules = tuple(_convert_rule(r) for r in schema.rules)
    elif default_rules is not None:
        rules = default_rules
    else:
        rules = load_default_rules()
    return DocMergeConfig(
        settings=_convert_settings(schema.settings),
        rules=rules,
        schema_version=schema.schema_version,
    )


def load_config(path: Union[str, Path, None] = None) -> DocMergeConfig:
    """
    Load a configuration file, or the packaged defaults when path is None.

    Raises:
        ConfigLoadError: If the file is missing or unparsable
        ConfigValidationError: If it fails schema validation
    """
    if path is None:
        return DocMergeConfig(rules=load_default_rules())
    path = Path(path)
    return load_config_dict(_read_file(path), source=str(path))


@lru_cache(maxsize=1)
def load_default_rules() -> tuple[MatchRule, ...]:
    """The packaged canonical-tag catalogue."""
    resource = resources.files(__package__).joinpath(DEFAULT_RULES_RESOURCE)
    try:
        data = yaml.safe_load(resource.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigLoadError(
            message=f"Packaged rule catalogue is not valid YAML: {e}",
            details={"resource": DEFAULT_RULES_RESOURCE},
        ) from e
    schema = _validate(data, DEFAULT_RULES_RESOURCE)
    return tuple(_convert_rule(r) for r in (schema.rules or []))
