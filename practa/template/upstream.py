"""
Upstream Template Client.

This module talks to the source-control REST API (GitHub flavour) hosting
the shared template.

Key features:
- Resolve the default branch and its latest commit
- Fetch a single file at a ref
- Download a branch archive and iterate its entries without the wrapper folder
"""

import io
import zipfile
import zlib
from collections.abc import Iterator

import httpx

from practa.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_API_BASE_URL = "https://api.github.com"


class UpstreamError(Exception):
    """Raised when the upstream API cannot be reached or answers unexpectedly."""

    pass


class UpstreamClient:
    """
    Async client for the upstream template repository.

    Use as an async context manager:

        async with UpstreamClient("owner/repo") as upstream:
            branch = await upstream.get_default_branch()
    """

    def __init__(
        self,
        repo: str,
        api_base_url: str = DEFAULT_API_BASE_URL,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize UpstreamClient.

        Args:
            repo: Repository in ``owner/name`` form
            api_base_url: REST API base URL
            token: Optional bearer token
            timeout: HTTP timeout in seconds (None for no timeout)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.repo = repo
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "practa-template-sync",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=api_base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "UpstreamClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.get(path, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Request to {path} failed: {e}") from e

        if not response.is_success:
            raise UpstreamError(
                f"Upstream returned {response.status_code} for {path}: {response.text}"
            )
        return response

    async def _get_json(self, path: str) -> dict:
        response = await self._get(path)
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(f"Invalid JSON from {path}: {e}") from e
        if not isinstance(data, dict):
            raise UpstreamError(f"Unexpected response shape from {path}")
        return data

    async def get_default_branch(self) -> str:
        """Resolve the repository's default branch."""
        data = await self._get_json(f"/repos/{self.repo}")
        branch = data.get("default_branch")
        if not isinstance(branch, str) or not branch:
            raise UpstreamError(f"No default branch reported for {self.repo}")
        return branch

    async def get_latest_commit(self, branch: str) -> str:
        """Resolve the latest commit SHA of ``branch``."""
        data = await self._get_json(f"/repos/{self.repo}/commits/{branch}")
        sha = data.get("sha")
        if not isinstance(sha, str) or not sha:
            raise UpstreamError(f"No commit SHA reported for {self.repo}@{branch}")
        return sha

    async def get_file(self, path: str, ref: str) -> bytes:
        """Fetch the raw content of ``path`` at ``ref``."""
        response = await self._get(
            f"/repos/{self.repo}/contents/{path}",
            params={"ref": ref},
            headers={"Accept": "application/vnd.github.raw+json"},
        )
        return response.content

    async def download_archive(self, ref: str) -> bytes:
        """Download the zip archive of ``ref``."""
        response = await self._get(f"/repos/{self.repo}/zipball/{ref}")
        logger.debug("Downloaded %d byte archive of %s@%s", len(response.content), self.repo, ref)
        return response.content


def iter_archive_entries(archive: bytes) -> Iterator[tuple[str, bytes]]:
    """
    Iterate the file entries of a branch archive.

    The single top-level wrapper directory added by the host is stripped.

    Yields:
        (relative path, content) for each file entry

    Raises:
        UpstreamError: If the archive or one of its entries is corrupt
    """
    try:
        zf = zipfile.ZipFile(io.BytesIO(archive))
    except zipfile.BadZipFile as e:
        raise UpstreamError(f"Upstream archive is not a valid zip: {e}") from e

    with zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            _, _, relative = info.filename.partition("/")
            if not relative:
                continue
            try:
                content = zf.read(info)
            except (zipfile.BadZipFile, zlib.error) as e:
                raise UpstreamError(f"Corrupt archive entry {info.filename}: {e}") from e
            yield relative, content
