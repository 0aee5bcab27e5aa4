"""
Asset Auditor.

This module checks a plugin's declared assets against the files that are
physically present, plus size and type limits.

Key features:
- Explicit declaration manifest (assets.json: key -> path under assets/)
- Missing declared files are errors
- Per-file and aggregate size limits are errors
- Unsupported file types are warnings only
- Every problem is returned as data, never raised
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

from practa.core.logging import get_logger

logger = get_logger(__name__)

ASSETS_DIRNAME = "assets"
DECLARATIONS_FILENAME = "assets.json"

MAX_FILE_BYTES = 5 * 1024 * 1024
MAX_TOTAL_BYTES = 25 * 1024 * 1024

ALLOWED_EXTENSIONS = frozenset(
    {
        # Images
        ".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg",
        # Audio
        ".mp3", ".wav", ".m4a", ".ogg",
        # Video
        ".mp4", ".webm",
        # Data
        ".json", ".txt",
    }
)


class AssetError(Exception):
    """Raised when the asset declaration manifest cannot be used."""

    pass


@dataclass
class AssetValidationResult:
    """
    Outcome of an asset audit.

    Attributes:
        valid: True when no errors were found
        errors: Blocking problems
        warnings: Non-blocking problems
        total_size_bytes: Sum of the sizes of every file under assets/
        file_count: Number of files under assets/
    """

    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    total_size_bytes: int = 0
    file_count: int = 0


def format_size(size_bytes: int) -> str:
    """Render a byte count as megabytes, e.g. ``"5.00MB"``."""
    return f"{size_bytes / (1024 * 1024):.2f}MB"


def load_asset_declarations(plugin_dir: Path) -> dict[str, str]:
    """
    Read the declared-asset manifest of a plugin.

    Args:
        plugin_dir: Plugin directory

    Returns:
        Mapping of asset key to relative path; empty when no manifest exists

    Raises:
        AssetError: If the manifest is unreadable or malformed
    """
    path = plugin_dir / DECLARATIONS_FILENAME
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise AssetError(f"Failed to parse {DECLARATIONS_FILENAME}: {e}") from e
    except OSError as e:
        raise AssetError(f"Failed to read {DECLARATIONS_FILENAME}: {e}") from e

    if not isinstance(data, dict):
        raise AssetError(f"{DECLARATIONS_FILENAME} must contain a JSON object")
    for key, value in data.items():
        if not isinstance(value, str):
            raise AssetError(f"Asset {key!r} must map to a path string")
    return data


def _declared_path(plugin_dir: Path, relative: str) -> Path:
    """Resolve a declared path; a leading ``./`` is optional."""
    return (plugin_dir / relative.removeprefix("./")).resolve()


def audit_assets(
    plugin_dir: Path,
    max_file_bytes: int = MAX_FILE_BYTES,
    max_total_bytes: int = MAX_TOTAL_BYTES,
) -> AssetValidationResult:
    """
    Audit a plugin's assets.

    Args:
        plugin_dir: Plugin directory
        max_file_bytes: Per-file size limit
        max_total_bytes: Aggregate size limit

    Returns:
        AssetValidationResult
    """
    result = AssetValidationResult()
    assets_dir = plugin_dir / ASSETS_DIRNAME

    try:
        declarations = load_asset_declarations(plugin_dir)
    except AssetError as e:
        result.errors.append(str(e))
        declarations = {}

    # Declared assets must exist under assets/
    assets_root = assets_dir.resolve()
    for key, relative in declarations.items():
        path = _declared_path(plugin_dir, relative)
        if not path.is_relative_to(assets_root):
            result.errors.append(
                f"Asset '{key}' points outside {ASSETS_DIRNAME}/: {relative}"
            )
        elif not path.is_file():
            result.errors.append(f"Asset '{key}' is declared but missing: {relative}")

    # Physical files, declared or not
    if assets_dir.is_dir():
        try:
            files = sorted(p for p in assets_dir.rglob("*") if p.is_file())
        except OSError as e:
            result.errors.append(f"Failed to scan {ASSETS_DIRNAME}/: {e}")
            files = []

        for path in files:
            relative = path.relative_to(plugin_dir).as_posix()
            try:
                size = path.stat().st_size
            except OSError as e:
                result.errors.append(f"Cannot read {relative}: {e}")
                continue

            result.total_size_bytes += size
            result.file_count += 1

            if size > max_file_bytes:
                result.errors.append(
                    f"{relative} is {format_size(size)}, "
                    f"over the {format_size(max_file_bytes)} per-file limit"
                )
            if path.suffix.lower() not in ALLOWED_EXTENSIONS:
                result.warnings.append(
                    f"{relative} has an unsupported file type ({path.suffix or 'none'})"
                )

    if result.total_size_bytes > max_total_bytes:
        result.errors.append(
            f"Total asset size {format_size(result.total_size_bytes)} exceeds "
            f"the {format_size(max_total_bytes)} limit"
        )

    result.valid = not result.errors
    logger.debug(
        "Audited %d asset file(s), %d bytes, %d error(s)",
        result.file_count,
        result.total_size_bytes,
        len(result.errors),
    )
    return result
