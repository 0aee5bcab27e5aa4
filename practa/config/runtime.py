"""
Runtime Settings Access.

ConfigProxy exposes the resolved [practa] table as attributes. Assigning an
attribute parses the value against its field and writes the table back to
disk straight away.
"""

import threading
from pathlib import Path
from typing import Any

from practa.config.schema import SettingField, ValidationError, resolve_settings
from practa.config.toml_handler import TOMLError, read_table, write_table


class SettingsError(Exception):
    """Raised when settings cannot be loaded or persisted."""

    pass


class ConfigProxy:
    """
    Attribute view over one settings table.

    Example:
        settings = ConfigProxy("practa", SETTINGS_SCHEMA, Path("practa.toml"))
        settings.plugin_dir             # "my-practa"
        settings.log_level = "DEBUG"    # parsed, then written to practa.toml
    """

    _INTERNAL = frozenset({"_table", "_schema", "_path", "_values", "_write_lock"})

    def __init__(self, table: str, schema: dict[str, SettingField], path: Path):
        """
        Initialize ConfigProxy.

        Args:
            table: Settings table name
            schema: Field name -> SettingField
            path: Settings file; a missing file means all defaults

        Raises:
            SettingsError: If the file cannot be parsed or a value is rejected
        """
        object.__setattr__(self, "_table", table)
        object.__setattr__(self, "_schema", schema)
        object.__setattr__(self, "_path", path)
        object.__setattr__(self, "_write_lock", threading.Lock())
        object.__setattr__(self, "_values", {})
        self.reload()

    def reload(self) -> None:
        """Re-read the settings file, discarding in-memory values."""
        try:
            values = resolve_settings(read_table(self._path, self._table), self._schema)
        except (TOMLError, ValidationError) as e:
            raise SettingsError(f"Invalid settings in {self._path}: {e}") from e
        object.__setattr__(self, "_values", values)

    def _field(self, name: str) -> SettingField:
        try:
            return self._schema[name]
        except KeyError:
            raise AttributeError(f"No setting named '{name}' in [{self._table}]") from None

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        self._field(name)
        return self._values[name]

    def __setattr__(self, name: str, value: Any) -> None:
        """
        Parse ``value`` for field ``name`` and persist the table.

        Raises:
            AttributeError: If ``name`` is not a setting
            ValidationError: If the value is rejected
            SettingsError: If the file cannot be written
        """
        if name in self._INTERNAL:
            object.__setattr__(self, name, value)
            return

        value = self._field(name).parse(value)
        with self._write_lock:
            self._values[name] = value
            try:
                write_table(self._path, self._table, dict(self._values))
            except TOMLError as e:
                raise SettingsError(f"Could not save settings: {e}") from e

    def as_dict(self) -> dict[str, Any]:
        """Return a copy of all current values."""
        return dict(self._values)

    def __repr__(self) -> str:
        return f"ConfigProxy([{self._table}] from {self._path})"
