"""
Settings File I/O.

Reads practa.toml with tomllib and writes it with tomlkit, so comments a
user added (or that were generated from the schema) survive updates.
"""

import tomllib
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from practa.config.schema import SettingField


class TOMLError(Exception):
    """Raised when a settings file cannot be read, parsed or written."""

    pass


def read_table(file_path: Path, table: str) -> dict[str, Any]:
    """
    Read one table from a TOML file.

    Args:
        file_path: Settings file
        table: Table name

    Returns:
        The table's key/value pairs; empty if the file or table is absent

    Raises:
        TOMLError: If the file cannot be read or parsed
    """
    try:
        with open(file_path, "rb") as f:
            document = tomllib.load(f)
    except FileNotFoundError:
        return {}
    except tomllib.TOMLDecodeError as e:
        raise TOMLError(f"{file_path} is not valid TOML: {e}") from e
    except OSError as e:
        raise TOMLError(f"Cannot read {file_path}: {e}") from e

    values = document.get(table, {})
    if not isinstance(values, dict):
        raise TOMLError(f"{file_path}: '{table}' must be a table")
    return values


def write_table(file_path: Path, table: str, values: dict[str, Any]) -> None:
    """
    Store ``values`` under ``table``, leaving the rest of the file as is.

    Args:
        file_path: Settings file (created when missing)
        table: Table name
        values: Key/value pairs to set

    Raises:
        TOMLError: If the file cannot be parsed or written
    """
    try:
        text = file_path.read_text(encoding="utf-8") if file_path.exists() else ""
        document = tomlkit.parse(text)
        if table not in document:
            document.add(table, tomlkit.table())
        document[table].update(values)

        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(tomlkit.dumps(document), encoding="utf-8")
    except TOMLKitError as e:
        raise TOMLError(f"{file_path} is not valid TOML: {e}") from e
    except OSError as e:
        raise TOMLError(f"Cannot write {file_path}: {e}") from e


def _constraint_note(setting: SettingField) -> str | None:
    notes = []
    if setting.min is not None:
        notes.append(f"min {setting.min}")
    if setting.max is not None:
        notes.append(f"max {setting.max}")
    if setting.choices is not None:
        notes.append("one of " + ", ".join(map(str, setting.choices)))
    return "; ".join(notes) if notes else None


def render_table(
    table: str, schema: dict[str, SettingField], values: dict[str, Any]
) -> str:
    """
    Render a commented settings file for one table.

    Each field is preceded by its description and, when it has any, its
    constraints.

    Args:
        table: Table name
        schema: Field name -> SettingField
        values: Values to write; missing fields use their default

    Returns:
        TOML text
    """
    document = tomlkit.document()
    document.add(tomlkit.comment("Practa Kit settings"))
    document.add(tomlkit.nl())

    section = tomlkit.table()
    for name, setting in schema.items():
        if setting.description:
            section.add(tomlkit.comment(setting.description))
        note = _constraint_note(setting)
        if note:
            section.add(tomlkit.comment(f"Allowed: {note}"))
        section.add(name, values.get(name, setting.default))
        section.add(tomlkit.nl())

    document.add(table, section)
    return tomlkit.dumps(document)
