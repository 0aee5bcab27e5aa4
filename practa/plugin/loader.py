"""
Dynamic Practa Loader.

This module imports a plugin's entry module so its component can be
validated and run.

Key features:
- importlib integration for dynamic loading
- Module caching keyed by plugin directory
- Unload/reload support for development
"""

import hashlib
import importlib.util
import re
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

ENTRY_POINT = "index.py"
COMPONENT_ATTR = "component"


class LoaderError(Exception):
    """Raised when a plugin's entry module cannot be imported."""

    pass


# Resolved plugin dir -> imported entry module
_loaded: dict[Path, ModuleType] = {}


def _module_name(plugin_dir: Path) -> str:
    # Unique per resolved plugin directory
    digest = hashlib.sha1(str(plugin_dir).encode("utf-8")).hexdigest()[:10]
    stem = re.sub(r"\W", "_", plugin_dir.name)
    return f"practa_plugin_{stem}_{digest}"


def _import_entry(module_name: str, entry_point: Path) -> ModuleType:
    spec = importlib.util.spec_from_file_location(module_name, entry_point)
    if spec is None or spec.loader is None:
        raise LoaderError(f"Cannot import {entry_point}")

    module = importlib.util.module_from_spec(spec)
    # Registered first so the entry module can import itself by name
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        del sys.modules[module_name]
        raise LoaderError(f"{entry_point} failed to import: {e}") from e
    return module


def load_practa_module(plugin_dir: Path) -> ModuleType:
    """
    Import the plugin's ``index.py``, reusing a previous import.

    Args:
        plugin_dir: Plugin directory

    Returns:
        The entry module

    Raises:
        LoaderError: If the entry point is missing or raises on import
    """
    key = plugin_dir.resolve()
    if key in _loaded:
        return _loaded[key]

    entry_point = key / ENTRY_POINT
    if not entry_point.is_file():
        raise LoaderError(f"Entry point not found: {entry_point}")

    module = _import_entry(_module_name(key), entry_point)
    _loaded[key] = module
    return module


def get_component(module: ModuleType) -> Any:
    """Return the module's exported component, or None."""
    return getattr(module, COMPONENT_ATTR, None)


def load_component(plugin_dir: Path) -> Any:
    """Import the plugin and return its component (None when not exported)."""
    return get_component(load_practa_module(plugin_dir))


def unload_practa_module(plugin_dir: Path) -> None:
    """Forget a previously imported plugin."""
    key = plugin_dir.resolve()
    _loaded.pop(key, None)
    sys.modules.pop(_module_name(key), None)


def reload_practa_module(plugin_dir: Path) -> ModuleType:
    """Re-import a plugin after its source changed."""
    unload_practa_module(plugin_dir)
    return load_practa_module(plugin_dir)
