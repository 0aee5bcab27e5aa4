"""
practactl commands.

Shared workspace resolution for the subcommands.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from practa.config import ConfigProxy, load_settings


class CLIError(Exception):
    """Base exception for practactl errors."""

    pass


@dataclass
class Workspace:
    """Resolved settings and paths for one CLI invocation."""

    settings: ConfigProxy
    project_root: Path
    plugin_dir: Path
    config_path: Path


def load_workspace(args: Any) -> Workspace:
    """
    Resolve settings and plugin paths from parsed arguments.

    Args:
        args: Parsed command-line arguments

    Returns:
        Workspace
    """
    settings = load_settings(args.config)
    project_root = Path(settings.project_root)
    plugin_dir = args.plugin_dir or project_root / settings.plugin_dir
    return Workspace(
        settings=settings,
        project_root=project_root,
        plugin_dir=plugin_dir,
        config_path=project_root / settings.config_file,
    )
