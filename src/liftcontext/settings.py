# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Lift settings: credential, field mappings, UDF mappings, thumbnails, advanced.

Mirrors the ``acquia_lift.settings`` configuration object. Every section is
optional: an absent or null section resolves to an empty table, which the
assembler treats as "nothing configured" rather than an error.

Usage:
    from liftcontext.settings import load_settings
    settings = load_settings("lift.yaml")
    settings.field_mappings  # {"content_section": "field_category", ...}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

CONFIG_NAME = "acquia_lift.settings"

CONTENT_REPLACEMENT_MODES = frozenset({"trusted", "customized"})


def is_valid_content_replacement_mode(mode: Any) -> bool:
    return isinstance(mode, str) and mode in CONTENT_REPLACEMENT_MODES


class ThumbnailConfig(BaseModel):
    """Per content type: ``field`` is a ``->`` separated reference path, ``style`` an image style."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    field: str = Field("", description="Reference path, e.g. field_media->field_media_image")
    style: str = Field("", description="Image style machine name")


class LiftSettings(BaseModel):
    """Resolved module configuration. Read-only for the lifetime of a request."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    credential: dict[str, Any] = Field(default_factory=dict)
    field_mappings: dict[str, str] = Field(default_factory=dict)
    udf_person_mappings: dict[str, Any] = Field(default_factory=dict)
    udf_event_mappings: dict[str, Any] = Field(default_factory=dict)
    udf_touch_mappings: dict[str, Any] = Field(default_factory=dict)
    thumbnail: dict[str, ThumbnailConfig] = Field(default_factory=dict)
    advanced: dict[str, Any] = Field(default_factory=dict)

    # Decision API credentials
    api_key: str = ""
    admin_key: str = ""
    owner_code: str = ""
    api_url: str = ""

    @field_validator(
        "credential",
        "field_mappings",
        "udf_person_mappings",
        "udf_event_mappings",
        "udf_touch_mappings",
        "thumbnail",
        "advanced",
        mode="before",
    )
    @classmethod
    def _absent_section_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("api_key", "admin_key", "owner_code", "api_url", mode="before")
    @classmethod
    def _absent_credential_is_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def assets_url(self) -> str:
        return str(self.credential.get("assets_url") or "")

    @property
    def content_replacement_mode(self) -> Any:
        return self.advanced.get("content_replacement_mode")

    @classmethod
    def from_mapping(cls, data: Any) -> LiftSettings:
        """Validate a settings mapping, bare or nested under ``acquia_lift.settings``."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings must be a mapping, got {type(data).__name__}")
        if isinstance(data.get(CONFIG_NAME), dict):
            data = data[CONFIG_NAME]
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e


def load_settings(path: str | Path) -> LiftSettings:
    """Load and validate a YAML settings file.

    Raises:
        ConfigurationError: file missing, not YAML, or not a valid settings mapping.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(f"Settings file not found: {p}") from None
    except OSError as e:
        raise ConfigurationError(f"Cannot read settings file {p}: {e}") from e
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Settings file {p} is not valid YAML: {e}") from e
    return LiftSettings.from_mapping(data)
