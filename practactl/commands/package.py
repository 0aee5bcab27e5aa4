"""
practactl package and submit commands.

Build the plugin archive for download, or upload it to the marketplace.
"""

import asyncio
import sys
from pathlib import Path

from practa.plugin.metadata import METADATA_FILENAME, MetadataError, load_metadata
from practa.plugin.packaging import PackagingError, PackagingPipeline

from practactl.commands import CLIError, Workspace
from practactl.commands.audit import run_audit
from practactl.commands.validate import build_report


def create_pipeline(workspace: Workspace) -> PackagingPipeline:
    """Build a pipeline for the workspace plugin."""
    try:
        metadata = load_metadata(workspace.plugin_dir / METADATA_FILENAME)
    except MetadataError as e:
        raise CLIError(str(e)) from e

    return PackagingPipeline(
        workspace.plugin_dir,
        metadata,
        submission_url=workspace.settings.submission_url,
        timeout=workspace.settings.http_timeout or None,
    )


def package_command(workspace: Workspace, output: str) -> int:
    """
    Execute package command.

    Args:
        workspace: Resolved workspace
        output: Destination directory, or ``-`` for stdout

    Returns:
        Exit code
    """
    pipeline = create_pipeline(workspace)
    try:
        if output == "-":
            pipeline.stream_archive(sys.stdout.buffer)
            sys.stdout.buffer.flush()
            return 0
        target = pipeline.download_archive(Path(output))
    except PackagingError as e:
        raise CLIError(str(e)) from e

    print(f"Wrote {target}")
    return 0


def submit_command(workspace: Workspace) -> int:
    """
    Execute submit command.

    The archive is only uploaded when both the asset audit and the
    validation report pass.

    Returns:
        Exit code (0 when the marketplace accepted the archive)
    """
    pipeline = create_pipeline(workspace)
    audit = run_audit(workspace)
    report = build_report(workspace)

    # Run async submission
    result = asyncio.run(pipeline.submit(audit, report))

    if not result.success:
        status = f" (HTTP {result.status_code})" if result.status_code else ""
        print(f"Submission failed{status}: {result.error}", file=sys.stderr)
        return 1

    print(f"Submitted {pipeline.archive_filename}")
    if result.data:
        for key, value in result.data.items():
            print(f"  {key}: {value}")
    return 0
