"""
practactl validate command.

Load the plugin's metadata and component and print the itemized report.
"""

import sys

from practa.plugin.loader import LoaderError, load_component
from practa.plugin.metadata import METADATA_FILENAME, MetadataError, read_metadata_dict
from practa.plugin.validation import Severity, ValidationReport, validate_practa

from practactl.commands import CLIError, Workspace

MARKERS = {
    Severity.SUCCESS: "ok",
    Severity.WARNING: "warn",
    Severity.ERROR: "error",
}


def print_report(report: ValidationReport) -> None:
    """Print one line per check."""
    for result in report.results:
        print(f"[{MARKERS[result.severity]}] {result.message}")
    print(
        f"\n{len(report.errors)} error(s), {len(report.warnings)} warning(s)"
    )


def build_report(workspace: Workspace) -> ValidationReport:
    """
    Validate the workspace plugin.

    A component that fails to import is reported as missing.

    Raises:
        CLIError: If the metadata file cannot be read
    """
    try:
        metadata = read_metadata_dict(workspace.plugin_dir / METADATA_FILENAME)
    except MetadataError as e:
        raise CLIError(str(e)) from e

    try:
        component = load_component(workspace.plugin_dir)
    except LoaderError as e:
        print(f"Failed to load component: {e}", file=sys.stderr)
        component = None

    return validate_practa(component, metadata)


def validate_command(workspace: Workspace) -> int:
    """
    Execute validate command.

    Returns:
        Exit code (0 when the plugin is valid)
    """
    report = build_report(workspace)
    print_report(report)
    return 0 if report.is_valid else 1
