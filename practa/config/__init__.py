"""
Practa Settings - TOML-based configuration.

This module provides:
- The settings schema for the flow/packaging/sync toolchain
- Runtime typed access with auto-flush
- Settings file generation from the schema

Example usage:
    import practa.config

    settings = practa.config.load_settings(Path("practa.toml"))
    print(settings.plugin_dir)          # Read
    settings.log_level = "DEBUG"        # Write (auto-flushes)
"""

from pathlib import Path
from typing import Any

from practa.config.runtime import ConfigProxy, SettingsError
from practa.config.schema import SettingField, default_settings
from practa.config.toml_handler import render_table

SECTION = "practa"

DEFAULT_CONFIG_FILE = Path("practa.toml")

MIB = 1024 * 1024


def field(type_: type, default: Any, description: str = "", **constraints: Any) -> SettingField:
    """Declare one settings field; ``constraints`` are min, max and choices."""
    return SettingField(type_, default, description, **constraints)


SETTINGS_SCHEMA: dict[str, SettingField] = {
    "project_root": field(str, ".", "Root of the host project checkout"),
    "plugin_dir": field(
        str, "my-practa", "Plugin directory, relative to project_root", min=1
    ),
    "config_file": field(
        str,
        "practa.config.json",
        "Plugin config file mirrored from metadata.json, relative to project_root",
        min=1,
    ),
    "submission_url": field(
        str,
        "https://stellarin-practa-verification.replit.app/api/upload",
        "Marketplace endpoint that receives packaged archives",
        min=1,
    ),
    "upstream_repo": field(
        str,
        "stellarin-app/practa-template",
        "Upstream template repository (owner/name)",
        min=3,
    ),
    "api_base_url": field(
        str, "https://api.github.com", "Source-control REST API base URL", min=1
    ),
    "owner_token_env": field(
        str,
        "PRACTA_TEMPLATE_TOKEN",
        "Environment variable holding the template owner credential",
        min=1,
    ),
    "sync_marker": field(
        str,
        ".cache/last-template-sync.json",
        "Last-synced upstream commit marker, relative to project_root",
        min=1,
    ),
    "version_file": field(
        str, "app.json", "JSON file carrying the template version", min=1
    ),
    "version_key": field(
        str, "expo.version", "Dotted key path of the version inside version_file", min=1
    ),
    "max_file_bytes": field(
        int, 5 * MIB, "Per-asset size limit in bytes", min=1
    ),
    "max_total_bytes": field(
        int, 25 * MIB, "Total asset size limit in bytes", min=1
    ),
    "http_timeout": field(
        float, 0.0, "HTTP timeout in seconds (0 disables the timeout)", min=0.0
    ),
    "log_level": field(
        str,
        "INFO",
        "Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    ),
}


def load_settings(config_file: Path = DEFAULT_CONFIG_FILE) -> ConfigProxy:
    """
    Load settings from a TOML file.

    A missing file or missing [practa] table yields the schema defaults.

    Args:
        config_file: Path to the TOML settings file

    Returns:
        ConfigProxy for runtime access

    Raises:
        SettingsError: If the file is malformed or fails validation
    """
    return ConfigProxy(SECTION, SETTINGS_SCHEMA, config_file)


def write_default_config(config_file: Path = DEFAULT_CONFIG_FILE) -> None:
    """
    Write a commented settings file populated with defaults.

    Args:
        config_file: Destination path

    Raises:
        SettingsError: If the file cannot be written
    """
    content = render_table(SECTION, SETTINGS_SCHEMA, default_settings(SETTINGS_SCHEMA))
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(content, encoding="utf-8")
    except OSError as e:
        raise SettingsError(f"Failed to write settings file {config_file}: {e}") from e


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "SECTION",
    "SETTINGS_SCHEMA",
    "ConfigProxy",
    "SettingsError",
    "field",
    "load_settings",
    "write_default_config",
]
