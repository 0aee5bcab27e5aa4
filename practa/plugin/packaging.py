"""
Packaging Pipeline.

This module bundles a plugin into a distributable zip and hands it to the
caller (download) or to the marketplace (submission).

Key features:
- Flattened archive of the plugin directory (no wrapper folder)
- Generated metadata.json, manifest.json and README.md at the top level
- Download mode streams into any writable binary file object
- Submission mode builds the archive fully in memory, then POSTs it
- Submission is refused without a network call when the asset audit failed
"""

import io
import json
import re
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

import httpx

from practa.core.logging import get_logger
from practa.plugin.assets import AssetValidationResult
from practa.plugin.metadata import METADATA_FILENAME, PractaMetadata
from practa.plugin.validation import ValidationReport

logger = get_logger(__name__)

MANIFEST_FILENAME = "manifest.json"
README_FILENAME = "README.md"
GENERATED_FILES = frozenset({METADATA_FILENAME, MANIFEST_FILENAME, README_FILENAME})

EXCLUDED_DIRS = frozenset({".git", "__pycache__", "node_modules", ".cache", ".pytest_cache"})

PLUGIN_TYPE = "widget"
DEFAULT_CATEGORY = "wellbeing"
DEFAULT_TAGS = ("mindfulness", "wellbeing")
DEFAULT_SUBMISSION_URL = "https://stellarin-practa-verification.replit.app/api/upload"


class PackagingError(Exception):
    """Raised when the archive cannot be assembled or written."""

    pass


@dataclass
class SubmissionResult:
    """
    Outcome of a marketplace submission.

    Attributes:
        success: True when the endpoint accepted the archive
        status_code: Upstream HTTP status (None when no request was made)
        data: Parsed JSON response body on success
        error: Failure detail; upstream body verbatim for non-2xx responses
    """

    success: bool
    status_code: int | None = None
    data: dict[str, Any] | None = None
    error: str | None = None


def component_identifier(name: str) -> str:
    """
    Convert a display name to a PascalCase identifier.

    Example:
        component_identifier("my practa!")  # "MyPracta"
    """
    words = [w for w in re.split(r"[^0-9A-Za-z]+", name) if w]
    identifier = "".join(w[0].upper() + w[1:] for w in words)
    if not identifier or identifier[0].isdigit():
        identifier = f"Practa{identifier}"
    return identifier


def build_manifest(metadata: PractaMetadata) -> dict[str, Any]:
    """Build the marketplace manifest for a plugin."""
    return {
        "id": metadata.id,
        "name": metadata.name,
        "version": metadata.version,
        "description": metadata.description,
        "author": metadata.author,
        "type": PLUGIN_TYPE,
        "category": metadata.category or DEFAULT_CATEGORY,
        "tags": list(metadata.tags) if metadata.tags else list(DEFAULT_TAGS),
        "estimatedDuration": metadata.estimated_duration,
        "permissions": [],
    }


def _describe_duration(value: Any) -> str:
    if value is None:
        return "not specified"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:g} seconds"
    return str(value)


def build_readme(metadata: PractaMetadata) -> str:
    """Render the README bundled with a plugin."""
    identifier = component_identifier(metadata.name)
    duration = _describe_duration(metadata.estimated_duration)
    return f"""# {metadata.name}

{metadata.description}

- **ID:** `{metadata.id}`
- **Version:** {metadata.version}
- **Author:** {metadata.author}
- **Category:** {metadata.category or DEFAULT_CATEGORY}
- **Estimated duration:** {duration}

## Usage

```python
from index import component as {identifier}

{identifier}(context, on_complete, on_skip)
```

The component receives a `PractaContext` and must call exactly one of
`on_complete(output)` or `on_skip()`, at most once.
"""


def _json_bytes(data: dict[str, Any]) -> bytes:
    return (json.dumps(data, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


class PackagingPipeline:
    """
    Builds, downloads and submits the archive of one plugin.

    Archive assembly and submission are strictly sequential; nothing reads
    the in-memory buffer before the zip writer is closed.
    """

    def __init__(
        self,
        plugin_dir: Path,
        metadata: PractaMetadata,
        submission_url: str = DEFAULT_SUBMISSION_URL,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize PackagingPipeline.

        Args:
            plugin_dir: Plugin directory to archive
            metadata: Plugin metadata
            submission_url: Marketplace upload endpoint
            timeout: HTTP timeout in seconds (None for no timeout)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.plugin_dir = plugin_dir
        self.metadata = metadata
        self.submission_url = submission_url
        self.timeout = timeout
        self._transport = transport

    @property
    def archive_filename(self) -> str:
        """Download filename, ``{id}-{version}.zip``."""
        return f"{self.metadata.id}-{self.metadata.version}.zip"

    def iter_plugin_files(self) -> list[tuple[Path, str]]:
        """
        List the plugin files that go into the archive.

        Returns:
            (path, archive name) pairs in a stable order

        Raises:
            PackagingError: If the plugin directory is missing or unreadable
        """
        if not self.plugin_dir.is_dir():
            raise PackagingError(f"Plugin directory not found: {self.plugin_dir}")

        entries = []
        try:
            for path in sorted(self.plugin_dir.rglob("*")):
                relative = path.relative_to(self.plugin_dir)
                if any(part in EXCLUDED_DIRS for part in relative.parts):
                    continue
                if not path.is_file():
                    continue
                arcname = relative.as_posix()
                if arcname in GENERATED_FILES:
                    continue
                entries.append((path, arcname))
        except OSError as e:
            raise PackagingError(f"Failed to scan plugin directory: {e}") from e
        return entries

    def write_archive(self, fileobj: IO[bytes]) -> int:
        """
        Write the archive into a binary file object.

        Args:
            fileobj: Writable (not necessarily seekable) binary stream

        Returns:
            Number of entries written

        Raises:
            PackagingError: If any file cannot be read or written
        """
        entries = self.iter_plugin_files()
        try:
            with zipfile.ZipFile(
                fileobj, "w", compression=zipfile.ZIP_DEFLATED, strict_timestamps=False
            ) as archive:
                for path, arcname in entries:
                    archive.write(path, arcname)
                archive.writestr(METADATA_FILENAME, _json_bytes(self.metadata.to_dict()))
                archive.writestr(MANIFEST_FILENAME, _json_bytes(build_manifest(self.metadata)))
                archive.writestr(README_FILENAME, build_readme(self.metadata))
        except (OSError, zipfile.BadZipFile) as e:
            raise PackagingError(f"Failed to build archive: {e}") from e

        count = len(entries) + len(GENERATED_FILES)
        logger.info("Packaged %s with %d entries", self.archive_filename, count)
        return count

    def stream_archive(self, fileobj: IO[bytes]) -> str:
        """
        Download mode: stream the archive to the caller.

        Args:
            fileobj: Destination stream (e.g. an HTTP response body)

        Returns:
            The filename the caller should present, ``{id}-{version}.zip``
        """
        self.write_archive(fileobj)
        return self.archive_filename

    def download_archive(self, dest_dir: Path) -> Path:
        """
        Download mode: write ``{id}-{version}.zip`` into ``dest_dir``.

        A partially written file is removed on failure.

        Returns:
            Path of the written archive

        Raises:
            PackagingError: If the archive cannot be written
        """
        target = dest_dir / self.archive_filename
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as f:
                self.write_archive(f)
        except PackagingError:
            target.unlink(missing_ok=True)
            raise
        except OSError as e:
            target.unlink(missing_ok=True)
            raise PackagingError(f"Failed to write {target}: {e}") from e
        return target

    def build_archive_bytes(self) -> bytes:
        """Build the complete archive in memory."""
        buffer = io.BytesIO()
        self.write_archive(buffer)
        # The writer is closed at this point, so the buffer holds a complete zip
        return buffer.getvalue()

    async def submit(
        self,
        audit: AssetValidationResult,
        report: ValidationReport | None = None,
    ) -> SubmissionResult:
        """
        Submission mode: upload the archive to the marketplace.

        Never raises; every failure is returned as a SubmissionResult.

        Args:
            audit: Asset audit of this plugin; an invalid audit blocks submission
            report: Optional validation report; an invalid report blocks submission

        Returns:
            SubmissionResult
        """
        if not audit.valid:
            logger.warning("Submission refused: asset audit failed")
            return SubmissionResult(
                success=False,
                error="Asset validation failed: " + "; ".join(audit.errors),
            )
        if report is not None and not report.is_valid:
            logger.warning("Submission refused: validation failed")
            return SubmissionResult(
                success=False,
                error="Validation failed: "
                + "; ".join(result.message for result in report.errors),
            )

        try:
            archive = self.build_archive_bytes()
        except PackagingError as e:
            return SubmissionResult(success=False, error=str(e))

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.submission_url,
                    files={"file": (self.archive_filename, archive, "application/zip")},
                )
        except httpx.HTTPError as e:
            logger.warning("Submission to %s failed: %s", self.submission_url, e)
            return SubmissionResult(success=False, error=f"Submission failed: {e}")

        if not response.is_success:
            logger.warning("Submission rejected with status %d", response.status_code)
            return SubmissionResult(
                success=False,
                status_code=response.status_code,
                error=response.text,
            )

        try:
            data = response.json()
        except ValueError:
            data = None
        logger.info("Submitted %s (%d bytes)", self.archive_filename, len(archive))
        return SubmissionResult(
            success=True,
            status_code=response.status_code,
            data=data if isinstance(data, dict) else None,
        )
