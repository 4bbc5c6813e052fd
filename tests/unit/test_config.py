"""Unit tests for interview_sync.config."""

from __future__ import annotations

import textwrap

import pytest

from interview_sync.config import (
    ConfigError,
    PropertyMap,
    PropertyMapValidationError,
    SyncSettings,
    load_property_map,
    validate_property_map,
)


class TestSyncSettings:
    def test_from_env(self):
        env = {"NOTION_KEY": " secret ", "INTERVIEW_DATABASE_ID": "db-i", "MEMBER_DATABASE_ID": "db-m"}
        assert SyncSettings.from_env(env) == SyncSettings("secret", "db-i", "db-m")

    def test_custom_env_names(self):
        env = {"TOKEN": "t", "I": "i", "M": "m"}
        settings = SyncSettings.from_env(env, token_env="TOKEN", interview_db_env="I", member_db_env="M")
        assert settings.member_database_id == "m"

    def test_missing_vars_all_named(self):
        with pytest.raises(ConfigError) as exc_info:
            SyncSettings.from_env({"NOTION_KEY": "t", "MEMBER_DATABASE_ID": ""})
        msg = str(exc_info.value)
        assert "INTERVIEW_DATABASE_ID" in msg
        assert "MEMBER_DATABASE_ID" in msg
        assert "NOTION_KEY" not in msg


class TestPropertyMap:
    def test_defaults_without_file(self):
        assert load_property_map(None) == PropertyMap()

    def test_partial_override(self, tmp_path):
        path = tmp_path / "props.yml"
        path.write_text(textwrap.dedent("""\
            interview_title: 記事タイトル
            video_url: "YouTube"
        """), encoding="utf-8")
        props = load_property_map(path)
        assert props.interview_title == "記事タイトル"
        assert props.video_url == "YouTube"
        assert props.interviewee == "インタビュイー"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "props.yml"
        path.write_text("", encoding="utf-8")
        assert load_property_map(path) == PropertyMap()

    def test_unknown_key_rejected(self):
        with pytest.raises(PropertyMapValidationError, match="unknown"):
            validate_property_map({"interview_titel": "x"})

    def test_non_mapping_rejected(self):
        with pytest.raises(PropertyMapValidationError, match="mapping"):
            validate_property_map(["タイトル"])

    @pytest.mark.parametrize("value", ["", "  ", 3, None])
    def test_blank_or_non_string_rejected(self, value):
        with pytest.raises(PropertyMapValidationError):
            validate_property_map({"interviewer": value})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_property_map(tmp_path / "nope.yml")

    def test_shipped_config_is_valid(self):
        from pathlib import Path

        shipped = Path(__file__).parent.parent.parent / "config" / "properties.yml"
        assert load_property_map(shipped) == PropertyMap()
