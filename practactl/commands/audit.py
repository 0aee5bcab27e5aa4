"""
practactl audit command.

Compare declared assets with the files under assets/ and check size limits.
"""

from practa.plugin.assets import AssetValidationResult, audit_assets, format_size

from practactl.commands import Workspace


def run_audit(workspace: Workspace) -> AssetValidationResult:
    """Audit the workspace plugin with the configured limits."""
    return audit_assets(
        workspace.plugin_dir,
        max_file_bytes=workspace.settings.max_file_bytes,
        max_total_bytes=workspace.settings.max_total_bytes,
    )


def audit_command(workspace: Workspace) -> int:
    """
    Execute audit command.

    Returns:
        Exit code (0 when no errors were found)
    """
    result = run_audit(workspace)

    for error in result.errors:
        print(f"[error] {error}")
    for warning in result.warnings:
        print(f"[warn] {warning}")

    print(f"{result.file_count} file(s), {format_size(result.total_size_bytes)} total")
    return 0 if result.valid else 1
