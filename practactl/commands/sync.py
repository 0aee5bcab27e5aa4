"""
practactl sync-status and sync-update commands.

Compare the project with the upstream template and pull its changes.
"""

import asyncio
import sys

from practa.template.sync import TemplateSyncTracker

from practactl.commands import Workspace


def sync_status_command(workspace: Workspace, check: bool = False) -> int:
    """
    Execute sync-status command.

    Args:
        workspace: Resolved workspace
        check: Return 1 when an update is available

    Returns:
        Exit code
    """
    tracker = TemplateSyncTracker.from_settings(workspace.settings)
    state = asyncio.run(tracker.check_status())

    print(f"Role: {state.role.value}")
    if not state.available:
        print(f"Upstream unavailable: {state.error}")
        return 0

    print(f"Local commit:  {state.local_commit or 'unknown'}")
    print(f"Latest commit: {state.latest_commit}")
    if state.local_version or state.latest_version:
        print(
            f"Version: {state.local_version or 'unknown'} "
            f"(latest {state.latest_version or 'unknown'})"
        )

    if state.is_in_sync:
        print("Up to date")
        return 0

    print("Update available (run: practactl sync-update)")
    return 1 if check else 0


def sync_update_command(workspace: Workspace) -> int:
    """
    Execute sync-update command.

    Returns:
        Exit code
    """
    tracker = TemplateSyncTracker.from_settings(workspace.settings)
    result = asyncio.run(tracker.apply_update())

    if not result.success:
        print(
            f"Update failed after {len(result.updated_files)} file(s): {result.error}",
            file=sys.stderr,
        )
        return 1

    print(
        f"Applied {result.commit}: {len(result.updated_files)} updated, "
        f"{len(result.skipped_files)} skipped"
    )
    return 0
