"""
practactl bump command.

Increment the plugin's patch version in metadata.json and its config file.
"""

import sys

from practa.plugin.metadata import bump_metadata_patch

from practactl.commands import Workspace


def bump_command(workspace: Workspace) -> int:
    """
    Execute bump command.

    Returns:
        Exit code
    """
    result = bump_metadata_patch(workspace.plugin_dir, workspace.config_path)
    if not result.success:
        print(f"Version bump failed: {result.error}", file=sys.stderr)
        return 1

    print(f"{result.old_version} -> {result.new_version}")
    return 0
