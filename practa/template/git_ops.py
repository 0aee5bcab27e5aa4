"""
Git Operations for Template Sync.

This module reads the local source-control state of the host project.

Key features:
- Resolve the HEAD commit with ``git rev-parse``
- Fall back to reading .git/HEAD directly when git is not installed
"""

import subprocess
from pathlib import Path

from practa.core.logging import get_logger

logger = get_logger(__name__)


class GitError(Exception):
    """Base exception for git-related errors."""

    pass


def _run_git(repo_dir: Path, *args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args],
        cwd=repo_dir,
        capture_output=True,
        text=True,
        check=False,
    )


def read_head_file(repo_dir: Path) -> str | None:
    """
    Resolve HEAD by reading .git/HEAD (and the ref it points to).

    Args:
        repo_dir: Repository root

    Returns:
        Commit SHA, or None if it cannot be resolved
    """
    head_path = repo_dir / ".git" / "HEAD"
    try:
        head = head_path.read_text(encoding="utf-8").strip()
    except OSError:
        return None

    if not head.startswith("ref: "):
        return head or None

    ref_path = repo_dir / ".git" / head[len("ref: "):]
    try:
        return ref_path.read_text(encoding="utf-8").strip() or None
    except OSError:
        pass

    # Refs may only exist in packed-refs after a gc
    ref_name = head[len("ref: "):]
    try:
        for line in (repo_dir / ".git" / "packed-refs").read_text(encoding="utf-8").splitlines():
            sha, _, name = line.partition(" ")
            if name == ref_name:
                return sha
    except OSError:
        pass
    return None


def get_head_commit(repo_dir: Path) -> str | None:
    """
    Get the HEAD commit SHA of a repository.

    Args:
        repo_dir: Repository root

    Returns:
        Commit SHA, or None if ``repo_dir`` is not a repository

    Raises:
        GitError: If git is installed but fails unexpectedly
    """
    try:
        result = _run_git(repo_dir, "rev-parse", "HEAD")
    except FileNotFoundError:
        logger.debug("git command not found; reading .git/HEAD instead")
        return read_head_file(repo_dir)
    except OSError as e:
        raise GitError(f"Failed to run git: {e}") from e

    if result.returncode != 0:
        stderr = result.stderr or result.stdout
        if "not a git repository" in stderr.lower() or "unknown revision" in stderr.lower():
            return None
        raise GitError(f"Failed to resolve HEAD: {stderr.strip()}")

    return result.stdout.strip() or None
