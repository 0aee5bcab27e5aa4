"""
Tests for the Settings System.

This test suite covers:
1. Schema validation (type mismatch, constraint violation, coercion)
2. TOML generation from schema (with comments)
3. Loading settings (defaults, overrides, errors)
4. Runtime writes with auto-flush
"""

import tempfile
import tomllib
from pathlib import Path

import pytest

import practa.config
from practa.config.runtime import SettingsError
from practa.config.schema import (
    SchemaError,
    SettingField,
    ValidationError,
    default_settings,
    resolve_settings,
)
from practa.config.toml_handler import read_table, render_table, write_table


class TestSchemaValidation:
    """Test schema field validation."""

    def test_field_default_type_mismatch(self):
        """SettingField should reject default value that doesn't match type."""
        with pytest.raises(SchemaError, match="must be of type int"):
            SettingField(int, "not an int", "Bad default")

    def test_field_min_max_on_unsupported_type(self):
        with pytest.raises(SchemaError, match="cannot declare min/max"):
            SettingField(bool, True, "Flag", min=0)

    def test_field_choices_default_must_be_in_choices(self):
        with pytest.raises(SchemaError, match="is not one of"):
            SettingField(str, "TRACE", "Level", choices=["INFO", "DEBUG"])

    def test_numeric_bounds(self):
        field = SettingField(int, 10, "Size", min=1, max=100)
        field.check(1)
        field.check(100)
        with pytest.raises(ValidationError, match="below the minimum"):
            field.check(0)
        with pytest.raises(ValidationError, match="above the maximum"):
            field.check(101)

    def test_string_length_bounds(self):
        field = SettingField(str, "abc", "Name", min=3)
        with pytest.raises(ValidationError, match="Length 2"):
            field.check("ab")

    def test_parse_strings(self):
        assert SettingField(int, 1).parse("42") == 42
        assert SettingField(float, 1.0).parse("2.5") == 2.5
        assert SettingField(bool, False).parse("yes") is True
        assert SettingField(bool, True).parse("off") is False
        with pytest.raises(ValidationError, match="Cannot read"):
            SettingField(int, 1).parse("many")

    def test_parse_int_to_float(self):
        assert SettingField(float, 0.0).parse(5) == 5.0

    def test_resolve_settings_fills_defaults(self):
        schema = {"a": SettingField(int, 1), "b": SettingField(str, "x")}
        assert resolve_settings({"a": 2}, schema) == {"a": 2, "b": "x"}

    def test_resolve_settings_unknown_field(self):
        with pytest.raises(ValidationError, match="Unknown setting"):
            resolve_settings({"nope": 1}, {"a": SettingField(int, 1)})

    def test_resolve_settings_bad_value(self):
        schema = {"a": SettingField(int, 1, min=0)}
        with pytest.raises(ValidationError, match="Setting 'a'"):
            resolve_settings({"a": -1}, schema)


class TestTOMLHandler:
    """Test TOML generation and updates."""

    def test_generate_from_schema(self):
        schema = {
            "level": SettingField(str, "INFO", "Logging level", choices=["INFO", "DEBUG"]),
            "size": SettingField(int, 5, "Size limit", min=1),
        }
        content = render_table("practa", schema, default_settings(schema))

        assert "# Logging level" in content
        assert "# Allowed: min 1" in content
        assert tomllib.loads(content) == {"practa": {"level": "INFO", "size": 5}}

    def test_read_missing_file_or_table(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "practa.toml"
            assert read_table(path, "practa") == {}

            path.write_text("[other]\nx = 1\n")
            assert read_table(path, "practa") == {}

    def test_update_preserves_comments(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "practa.toml"
            path.write_text('# keep me\n[practa]\nlog_level = "INFO"\n\n[other]\nx = 1\n')

            write_table(path, "practa", {"log_level": "DEBUG"})

            content = path.read_text()
            assert "# keep me" in content
            data = tomllib.loads(content)
            assert data["practa"]["log_level"] == "DEBUG"
            assert data["other"] == {"x": 1}


class TestLoadSettings:
    """Test loading the [practa] settings."""

    def test_missing_file_uses_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            settings = practa.config.load_settings(Path(tmpdir) / "practa.toml")

            assert settings.plugin_dir == "my-practa"
            assert settings.config_file == "practa.config.json"
            assert settings.max_file_bytes == 5 * 1024 * 1024
            assert settings.max_total_bytes == 25 * 1024 * 1024
            assert settings.http_timeout == 0.0
            assert settings.sync_marker == ".cache/last-template-sync.json"

    def test_file_overrides(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "practa.toml"
            path.write_text('[practa]\nplugin_dir = "calm"\nhttp_timeout = 30\n')

            settings = practa.config.load_settings(path)

            assert settings.plugin_dir == "calm"
            assert settings.http_timeout == 30.0
            assert settings.log_level == "INFO"

    def test_invalid_value(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "practa.toml"
            path.write_text('[practa]\nlog_level = "LOUD"\n')

            with pytest.raises(SettingsError, match="log_level"):
                practa.config.load_settings(path)

    def test_malformed_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "practa.toml"
            path.write_text("[practa\n")

            with pytest.raises(SettingsError):
                practa.config.load_settings(path)

    def test_unknown_attribute(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            settings = practa.config.load_settings(Path(tmpdir) / "practa.toml")

            with pytest.raises(AttributeError, match="No setting named"):
                settings.missing_field

    def test_write_default_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "practa.toml"
            practa.config.write_default_config(path)

            data = tomllib.loads(path.read_text())
            assert data["practa"] == default_settings(practa.config.SETTINGS_SCHEMA)
            assert practa.config.load_settings(path).as_dict() == data["practa"]


class TestAutoFlush:
    """Test runtime writes."""

    def test_write_flushes_to_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "practa.toml"
            practa.config.write_default_config(path)
            settings = practa.config.load_settings(path)

            settings.log_level = "DEBUG"
            settings.max_file_bytes = "1024"

            data = tomllib.loads(path.read_text())
            assert data["practa"]["log_level"] == "DEBUG"
            assert data["practa"]["max_file_bytes"] == 1024
            assert "# Logging level" in path.read_text()
            assert practa.config.load_settings(path).log_level == "DEBUG"

    def test_invalid_write_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "practa.toml"
            settings = practa.config.load_settings(path)

            with pytest.raises(ValidationError):
                settings.log_level = "LOUD"

            assert settings.log_level == "INFO"
            assert not path.exists()
