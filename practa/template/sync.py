"""
Template Sync Tracker.

This module tracks whether a project built from the shared template is
behind upstream, and pulls upstream changes into it.

Key features:
- Owner role (template maintainer) compares the local git HEAD to upstream
- Fork role compares a persisted last-synced marker to upstream
- Status checks degrade to "in sync, unavailable" on upstream failures
- Updates overwrite template files but never the plugin or its config
"""

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any

import httpx

from practa.core.logging import get_logger
from practa.template.git_ops import GitError, get_head_commit
from practa.template.upstream import (
    DEFAULT_API_BASE_URL,
    UpstreamClient,
    UpstreamError,
    iter_archive_entries,
)
from practa.template.versions import compare_versions

logger = get_logger(__name__)

DEFAULT_UPSTREAM_REPO = "stellarin-app/practa-template"
DEFAULT_MARKER_PATH = ".cache/last-template-sync.json"
DEFAULT_OWNER_TOKEN_ENV = "PRACTA_TEMPLATE_TOKEN"

IGNORED_PATHS = frozenset({".git", "node_modules", ".venv", ".cache", ".tmp"})


class SyncError(Exception):
    """Raised when local sync state cannot be read or written."""

    pass


class SyncRole(Enum):
    """Which side of the template the local project is on."""

    OWNER = "owner"
    FORK = "fork"


@dataclass
class TemplateSyncState:
    """
    Result of a sync status check.

    Attributes:
        role: Owner or fork
        is_in_sync: True when nothing newer is upstream (also True when unknown)
        available: False when upstream could not be reached
        local_commit: Local HEAD (owner) or last-synced marker (fork)
        latest_commit: Latest upstream commit
        local_version: Template version in the local version file
        latest_version: Template version in the upstream version file
        error: Failure detail when unavailable
    """

    role: SyncRole
    is_in_sync: bool
    available: bool = True
    local_commit: str | None = None
    latest_commit: str | None = None
    local_version: str | None = None
    latest_version: str | None = None
    error: str | None = None

    @property
    def update_available(self) -> bool:
        return self.available and not self.is_in_sync

    @property
    def version_behind(self) -> bool | None:
        """True if the local version is older than upstream; None if unknown."""
        if not self.local_version or not self.latest_version:
            return None
        try:
            return compare_versions(self.local_version, self.latest_version) < 0
        except ValueError:
            return None


@dataclass
class UpdateResult:
    """
    Result of applying an upstream update.

    Attributes:
        success: True when every entry was written and the marker persisted
        commit: Upstream commit that was applied
        updated_files: Relative paths overwritten locally
        skipped_files: Relative paths left alone (protected or ignored)
        error: Failure detail
    """

    success: bool
    commit: str | None = None
    updated_files: list[str] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)
    error: str | None = None


def read_sync_marker(path: Path) -> str | None:
    """
    Read the last-synced commit marker.

    Returns:
        Commit SHA, or None if the marker does not exist

    Raises:
        SyncError: If the marker exists but is unreadable or malformed
    """
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise SyncError(f"Failed to read sync marker {path}: {e}") from e

    commit = data.get("lastCommit") if isinstance(data, dict) else None
    if not isinstance(commit, str) or not commit:
        raise SyncError(f"Sync marker {path} has no lastCommit")
    return commit


def write_sync_marker(path: Path, commit: str) -> None:
    """
    Persist the last-synced commit marker (whole-file overwrite).

    Raises:
        SyncError: If the marker cannot be written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"lastCommit": commit}, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise SyncError(f"Failed to write sync marker {path}: {e}") from e


def extract_version(raw: str | bytes, key_path: str) -> str | None:
    """
    Extract a version string from JSON text by dotted key path.

    Example:
        extract_version('{"expo": {"version": "1.2.0"}}', "expo.version")  # "1.2.0"

    Returns:
        The version, or None if the key path is absent

    Raises:
        SyncError: If the text is not valid JSON
    """
    try:
        data: Any = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SyncError(f"Version file is not valid JSON: {e}") from e

    for key in key_path.split("."):
        if not isinstance(data, dict) or key not in data:
            return None
        data = data[key]
    return data if isinstance(data, str) else None


def _is_under(parts: tuple[str, ...], prefix: tuple[str, ...]) -> bool:
    return bool(prefix) and parts[: len(prefix)] == prefix


class TemplateSyncTracker:
    """
    Sync status and updates against the upstream template.

    The role is chosen by the presence of the owner credential in the
    environment variable named by ``owner_token_env``.
    """

    def __init__(
        self,
        project_root: Path,
        plugin_dir: str = "my-practa",
        config_file: str = "practa.config.json",
        repo: str = DEFAULT_UPSTREAM_REPO,
        api_base_url: str = DEFAULT_API_BASE_URL,
        marker_path: str = DEFAULT_MARKER_PATH,
        version_file: str = "app.json",
        version_key: str = "expo.version",
        owner_token_env: str = DEFAULT_OWNER_TOKEN_ENV,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        env: Mapping[str, str] | None = None,
    ):
        """
        Initialize TemplateSyncTracker.

        Args:
            project_root: Root of the local project checkout
            plugin_dir: Plugin directory (protected from updates)
            config_file: Plugin config file (protected from updates)
            repo: Upstream repository in ``owner/name`` form
            api_base_url: REST API base URL
            marker_path: Last-synced marker, relative to project_root
            version_file: JSON file carrying the template version
            version_key: Dotted key path of the version in version_file
            owner_token_env: Environment variable holding the owner credential
            timeout: HTTP timeout in seconds (None for no timeout)
            transport: Optional httpx transport (tests use httpx.MockTransport)
            env: Environment mapping (defaults to os.environ)
        """
        self.project_root = project_root
        self.plugin_dir = plugin_dir
        self.config_file = config_file
        self.repo = repo
        self.api_base_url = api_base_url
        self.marker_path = project_root / marker_path
        self.version_file = version_file
        self.version_key = version_key
        self.owner_token_env = owner_token_env
        self.timeout = timeout
        self._transport = transport
        self._env = os.environ if env is None else env

        self._protected = (
            PurePosixPath(plugin_dir).parts,
            PurePosixPath(config_file).parts,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        transport: httpx.AsyncBaseTransport | None = None,
        env: Mapping[str, str] | None = None,
    ) -> "TemplateSyncTracker":
        """Build a tracker from the [practa] settings."""
        return cls(
            project_root=Path(settings.project_root),
            plugin_dir=settings.plugin_dir,
            config_file=settings.config_file,
            repo=settings.upstream_repo,
            api_base_url=settings.api_base_url,
            marker_path=settings.sync_marker,
            version_file=settings.version_file,
            version_key=settings.version_key,
            owner_token_env=settings.owner_token_env,
            timeout=settings.http_timeout or None,
            transport=transport,
            env=env,
        )

    @property
    def _token(self) -> str | None:
        return self._env.get(self.owner_token_env) or None

    @property
    def role(self) -> SyncRole:
        return SyncRole.OWNER if self._token else SyncRole.FORK

    def _client(self) -> UpstreamClient:
        return UpstreamClient(
            self.repo,
            api_base_url=self.api_base_url,
            token=self._token,
            timeout=self.timeout,
            transport=self._transport,
        )

    def is_protected(self, relative: str) -> bool:
        """Check if a path belongs to the plugin or its config file."""
        parts = PurePosixPath(relative).parts
        return any(_is_under(parts, prefix) for prefix in self._protected)

    def is_ignored(self, relative: str) -> bool:
        """Check if a path lives under a tooling or cache directory."""
        parts = PurePosixPath(relative).parts
        return bool(parts) and parts[0] in IGNORED_PATHS

    def get_local_version(self) -> str | None:
        """
        Read the template version from the local version file.

        Returns:
            Version string, or None if the file or key is absent

        Raises:
            SyncError: If the file exists but cannot be read or parsed
        """
        path = self.project_root / self.version_file
        if not path.exists():
            return None
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SyncError(f"Failed to read {path}: {e}") from e
        return extract_version(raw, self.version_key)

    async def _get_latest_version(self, upstream: UpstreamClient, ref: str) -> str | None:
        try:
            raw = await upstream.get_file(self.version_file, ref)
        except UpstreamError as e:
            logger.debug("Upstream version file unavailable: %s", e)
            return None
        return extract_version(raw, self.version_key)

    async def check_status(self) -> TemplateSyncState:
        """
        Check whether the local project is behind upstream.

        On the first fork check with no marker, the current upstream head is
        adopted as the baseline and the project is reported in sync.

        Never raises for upstream, git or marker failures; those yield
        ``is_in_sync=True, available=False``.

        Returns:
            TemplateSyncState
        """
        role = self.role
        try:
            local_version = self.get_local_version()

            async with self._client() as upstream:
                branch = await upstream.get_default_branch()
                latest = await upstream.get_latest_commit(branch)
                latest_version = await self._get_latest_version(upstream, latest)

            if role is SyncRole.OWNER:
                local = get_head_commit(self.project_root)
                if local is None:
                    raise GitError(f"Cannot resolve HEAD in {self.project_root}")
            else:
                local = read_sync_marker(self.marker_path)
                if local is None:
                    logger.info("No sync marker; adopting upstream %s as baseline", latest[:12])
                    write_sync_marker(self.marker_path, latest)
                    local = latest
        except (UpstreamError, GitError, SyncError) as e:
            logger.warning("Template sync status unavailable: %s", e)
            return TemplateSyncState(
                role=role,
                is_in_sync=True,
                available=False,
                error=str(e),
            )

        state = TemplateSyncState(
            role=role,
            is_in_sync=local == latest,
            local_commit=local,
            latest_commit=latest,
            local_version=local_version,
            latest_version=latest_version,
        )
        logger.debug(
            "Template sync (%s): local=%s latest=%s in_sync=%s",
            role.value,
            local,
            latest,
            state.is_in_sync,
        )
        return state

    def _target_path(self, relative: str) -> Path:
        posix = PurePosixPath(relative)
        if posix.is_absolute() or ".." in posix.parts:
            raise SyncError(f"Refusing unsafe archive path: {relative}")
        return self.project_root.joinpath(*posix.parts)

    async def apply_update(self) -> UpdateResult:
        """
        Pull the upstream default branch into the local project.

        Every archive entry outside the protected and ignored paths
        overwrites its local counterpart. In the fork role the marker is only
        persisted after the whole archive has been written; files written
        before a failure are left in place.

        Returns:
            UpdateResult; failures carry ``success=False`` and an error
        """
        try:
            async with self._client() as upstream:
                branch = await upstream.get_default_branch()
                latest = await upstream.get_latest_commit(branch)
                archive = await upstream.download_archive(latest)
        except UpstreamError as e:
            logger.warning("Template update failed: %s", e)
            return UpdateResult(success=False, error=str(e))

        result = UpdateResult(success=False, commit=latest)
        try:
            for relative, content in iter_archive_entries(archive):
                if self.is_protected(relative) or self.is_ignored(relative):
                    result.skipped_files.append(relative)
                    continue
                target = self._target_path(relative)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(content)
                result.updated_files.append(relative)

            # The owner tracks HEAD, not a marker
            if self.role is SyncRole.FORK:
                write_sync_marker(self.marker_path, latest)
        except (UpstreamError, SyncError, OSError) as e:
            logger.warning(
                "Template update aborted after %d files: %s", len(result.updated_files), e
            )
            result.error = str(e)
            return result

        result.success = True
        logger.info(
            "Applied upstream %s: %d updated, %d skipped",
            latest[:12],
            len(result.updated_files),
            len(result.skipped_files),
        )
        return result
