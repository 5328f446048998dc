"""
docmerge Configuration Schemas

Pydantic models for validating configuration YAML/JSON files.

These schemas define the structure of docmerge configuration that can be
loaded at runtime. They map to the dataclasses in docmerge.config.settings.

Schema versioning:
- schema_version field tracks breaking changes
- Loaders should check version compatibility
"""
from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Schema Version
# =============================================================================

SCHEMA_VERSION = "1.0.0"

_TAG_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


# =============================================================================
# Schemas
# =============================================================================

class SettingsSchema(BaseModel):
    """Schema for the `settings` block. Every key is optional."""
    model_config = ConfigDict(extra="forbid")

    hard_boundary_elements: Optional[list[str]] = Field(
        None, description="Element local names treated as paragraph-level boundaries"
    )
    max_nesting_depth: Optional[int] = Field(None, ge=1, le=10_000)
    allow_partial_match: Optional[bool] = None
    escape_braces: Optional[bool] = None
    date_dayfirst: Optional[bool] = None
    parallel_parts: Optional[bool] = None
    strict: Optional[bool] = None
    abbreviation_max_length: Optional[int] = Field(None, ge=1, le=64)

    @field_validator("hard_boundary_elements")
    @classmethod
    def non_empty_names(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is None:
            return value
        cleaned = [name.strip() for name in value if name and name.strip()]
        if not cleaned:
            raise ValueError("hard_boundary_elements must name at least one element")
        return cleaned


class MatchRuleSchema(BaseModel):
    """Schema for one canonical-tag heuristic rule."""
    model_config = ConfigDict(extra="forbid")

    tag: str = Field(..., description="Canonical merge tag this rule fills")
    keywords: list[str] = Field(..., min_length=1)
    exclude_keywords: list[str] = Field(default_factory=list)
    priority: float = Field(1.0, gt=0)

    @field_validator("tag")
    @classmethod
    def valid_tag(cls, value: str) -> str:
        if not _TAG_PATTERN.match(value):
            raise ValueError(f"'{value}' is not a valid merge tag name")
        return value

    @field_validator("keywords", "exclude_keywords")
    @classmethod
    def lowercase_keywords(cls, value: list[str]) -> list[str]:
        return [str(keyword).lower() for keyword in value if str(keyword).strip()]


class ConfigSchema(BaseModel):
    """Top-level configuration file."""
    model_config = ConfigDict(extra="forbid")

    schema_version: str = Field(SCHEMA_VERSION)
    settings: SettingsSchema = Field(default_factory=SettingsSchema)
    rules: Optional[list[MatchRuleSchema]] = Field(
        None, description="Replaces the packaged catalogue when given"
    )

    @model_validator(mode="after")
    def unique_tags(self) -> ConfigSchema:
        if self.rules:
            seen: set[str] = set()
            for rule in self.rules:
                if rule.tag in seen:
                    raise ValueError(f"Duplicate rule for tag '{rule.tag}'")
                seen.add(rule.tag)
        return self


def check_schema_version(version: str) -> bool:
    """Major versions must match."""
    return version.split(".")[0] == SCHEMA_VERSION.split(".")[0]
