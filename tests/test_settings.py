# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for settings.py: LiftSettings validation and YAML loading."""

from __future__ import annotations

import pytest

from liftcontext.errors import ConfigurationError
from liftcontext.settings import (
    CONFIG_NAME,
    LiftSettings,
    ThumbnailConfig,
    is_valid_content_replacement_mode,
    load_settings,
)


class TestFromMapping:
    def test_none_gives_empty_tables(self):
        settings = LiftSettings.from_mapping(None)
        assert settings.credential == {}
        assert settings.field_mappings == {}
        assert settings.udf_person_mappings == {}
        assert settings.udf_event_mappings == {}
        assert settings.udf_touch_mappings == {}
        assert settings.thumbnail == {}
        assert settings.advanced == {}
        assert settings.assets_url == ""

    def test_null_sections_are_empty(self):
        settings = LiftSettings.from_mapping({"field_mappings": None, "thumbnail": None, "api_url": None})
        assert settings.field_mappings == {}
        assert settings.thumbnail == {}
        assert settings.api_url == ""

    def test_nested_under_config_name(self):
        settings = LiftSettings.from_mapping({CONFIG_NAME: {"field_mappings": {"content_section": "field_tags"}}})
        assert settings.field_mappings == {"content_section": "field_tags"}

    def test_thumbnail_entries_typed(self):
        settings = LiftSettings.from_mapping({"thumbnail": {"article": {"field": "field_image", "style": "medium"}}})
        assert settings.thumbnail["article"] == ThumbnailConfig(field="field_image", style="medium")

    def test_thumbnail_entry_without_field(self):
        settings = LiftSettings.from_mapping({"thumbnail": {"article": {"style": "medium"}}})
        assert settings.thumbnail["article"].field == ""

    def test_unknown_keys_ignored(self):
        settings = LiftSettings.from_mapping({"visibility": {"path_patterns": "/admin"}})
        assert settings.field_mappings == {}

    def test_assets_url(self):
        settings = LiftSettings.from_mapping({"credential": {"assets_url": "https://assets.example.com"}})
        assert settings.assets_url == "https://assets.example.com"

    def test_content_replacement_mode(self):
        settings = LiftSettings.from_mapping({"advanced": {"content_replacement_mode": "trusted"}})
        assert settings.content_replacement_mode == "trusted"

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError, match="mapping"):
            LiftSettings.from_mapping(["a", "b"])

    def test_invalid_section_type(self):
        with pytest.raises(ConfigurationError, match="Invalid settings"):
            LiftSettings.from_mapping({"field_mappings": "field_tags"})

    def test_frozen(self):
        settings = LiftSettings.from_mapping({})
        with pytest.raises(Exception):
            settings.api_key = "x"  # type: ignore[misc]


class TestContentReplacementMode:
    @pytest.mark.parametrize("mode", ["trusted", "customized"])
    def test_valid(self, mode):
        assert is_valid_content_replacement_mode(mode)

    @pytest.mark.parametrize("mode", ["", "TRUSTED", "untrusted", None, 0, ["trusted"]])
    def test_invalid(self, mode):
        assert not is_valid_content_replacement_mode(mode)


class TestLoadSettings:
    def test_load_yaml(self, tmp_path):
        path = tmp_path / "lift.yaml"
        path.write_text(
            "credential:\n"
            "  account_id: ACC\n"
            "  assets_url: https://assets.example.com\n"
            "field_mappings:\n"
            "  content_section: field_category\n"
            "udf_person_mappings:\n"
            "  person_udf1:\n"
            "    id: person_udf1\n"
            "    value: field_persona\n"
            "    type: taxonomy\n"
            "owner_code: OWNER\n",
            encoding="utf-8",
        )
        settings = load_settings(path)
        assert settings.credential["account_id"] == "ACC"
        assert settings.field_mappings == {"content_section": "field_category"}
        assert settings.udf_person_mappings["person_udf1"]["value"] == "field_persona"
        assert settings.owner_code == "OWNER"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_settings(path).field_mappings == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("credential: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="not valid YAML"):
            load_settings(path)
