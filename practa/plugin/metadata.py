"""
Practa Metadata.

This module provides the metadata model for a plugin and its JSON file.

Key features:
- PractaMetadata dataclass with a fixed JSON key order
- Whole-file read/write of metadata.json (no partial patching)
- Patch version bump mirrored into the plugin config file
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from practa.core.logging import get_logger

logger = get_logger(__name__)

METADATA_FILENAME = "metadata.json"


class MetadataError(Exception):
    """Raised when a metadata file cannot be read, parsed or written."""

    pass


def _read_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
        raise MetadataError(f"tags must be a list of strings, got {value!r}")
    return list(value)


@dataclass
class PractaMetadata:
    """
    Descriptive metadata of a plugin.

    Attributes:
        id: Kebab-case identifier
        name: Display name
        description: Short description
        author: Author name
        version: Semantic version (X.Y.Z)
        estimated_duration: Expected run time in seconds
        category: Marketplace category
        tags: Marketplace tags
    """

    id: str
    name: str
    description: str
    author: str
    version: str
    estimated_duration: float | None = None
    category: str | None = None
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PractaMetadata":
        """
        Build metadata from its JSON form.

        Missing required keys become empty strings; the validation engine is
        responsible for reporting them.

        Raises:
            MetadataError: If tags is not a list of strings
        """
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            author=data.get("author", ""),
            version=data.get("version", ""),
            estimated_duration=data.get("estimatedDuration"),
            category=data.get("category"),
            tags=_read_tags(data.get("tags")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the canonical key order, omitting unset optionals."""
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "author": self.author,
        }
        if self.estimated_duration is not None:
            data["estimatedDuration"] = self.estimated_duration
        if self.category:
            data["category"] = self.category
        if self.tags:
            data["tags"] = list(self.tags)
        return data


@dataclass
class BumpResult:
    """Outcome of a version bump."""

    success: bool
    old_version: str | None = None
    new_version: str | None = None
    error: str | None = None


def read_metadata_dict(path: Path) -> dict[str, Any]:
    """
    Read a metadata file as a raw mapping.

    Args:
        path: Path to metadata.json

    Returns:
        Parsed JSON object

    Raises:
        MetadataError: If the file is missing, unreadable or not a JSON object
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise MetadataError(f"Metadata file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise MetadataError(f"Failed to parse metadata JSON: {e}") from e
    except OSError as e:
        raise MetadataError(f"Failed to read metadata file: {e}") from e

    if not isinstance(data, dict):
        raise MetadataError(f"Metadata file must contain a JSON object: {path}")
    return data


def load_metadata(path: Path) -> PractaMetadata:
    """Read a metadata file into a PractaMetadata."""
    return PractaMetadata.from_dict(read_metadata_dict(path))


def save_metadata(path: Path, metadata: PractaMetadata) -> None:
    """
    Overwrite a metadata file with ``metadata``.

    Raises:
        MetadataError: If the file cannot be written
    """
    content = json.dumps(metadata.to_dict(), indent=2, ensure_ascii=False) + "\n"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise MetadataError(f"Failed to write metadata file {path}: {e}") from e


def bump_patch_version(version: str) -> str:
    """
    Increment the patch component of a version.

    Any suffix after X.Y.Z is kept; an unparsable version restarts at 1.0.1.

    Example:
        bump_patch_version("1.2.3-beta")  # "1.2.4-beta"
    """
    match = re.match(r"^(\d+)\.(\d+)\.(\d+)(.*)$", version)
    if not match:
        return "1.0.1"
    major, minor, patch, suffix = match.groups()
    return f"{major}.{minor}.{int(patch) + 1}{suffix}"


def bump_metadata_patch(plugin_dir: Path, config_path: Path | None = None) -> BumpResult:
    """
    Bump the plugin's patch version and write it back.

    The bumped metadata is written to ``metadata.json`` and mirrored to
    ``config_path`` when given.

    Args:
        plugin_dir: Plugin directory
        config_path: Optional mirror file (e.g. practa.config.json)

    Returns:
        BumpResult
    """
    metadata_path = plugin_dir / METADATA_FILENAME
    try:
        metadata = load_metadata(metadata_path)
        old_version = metadata.version
        metadata.version = bump_patch_version(old_version)

        save_metadata(metadata_path, metadata)
        if config_path is not None:
            save_metadata(config_path, metadata)
    except MetadataError as e:
        return BumpResult(success=False, error=str(e))

    logger.info("Version bump %s -> %s", old_version, metadata.version)
    return BumpResult(success=True, old_version=old_version, new_version=metadata.version)
