"""
practactl CLI - Practa plugin and template toolchain.

Usage:
    practactl validate               Validate plugin metadata and component
    practactl audit                  Audit plugin assets
    practactl package [-o DIR|-]     Build {id}-{version}.zip
    practactl submit                 Upload the archive to the marketplace
    practactl bump                   Bump the plugin's patch version
    practactl sync-status            Compare the project with the upstream template
    practactl sync-update            Pull upstream template changes
    practactl init-config            Write a default practa.toml
"""

import argparse
import sys
from pathlib import Path

from practa.config import DEFAULT_CONFIG_FILE, SettingsError
from practa.core.logging import setup_logging

from practactl.commands import CLIError


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="practactl",
        description="Practa toolchain - validate, package and sync plugins",
    )

    # Common options
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_FILE,
        help="Settings file (default: practa.toml)",
    )
    parser.add_argument(
        "-p", "--plugin-dir", type=Path, help="Plugin directory (overrides settings)"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    commands = parser.add_subparsers(dest="command", metavar="<command>")

    commands.add_parser("validate", help="Validate plugin metadata and component")
    commands.add_parser("audit", help="Audit plugin assets")

    package = commands.add_parser("package", help="Build the plugin archive")
    package.add_argument(
        "-o",
        "--output",
        default=".",
        help="Destination directory, or '-' to stream to stdout",
    )

    commands.add_parser("submit", help="Upload the archive to the marketplace")
    commands.add_parser("bump", help="Bump the plugin's patch version")

    status = commands.add_parser("sync-status", help="Check upstream template status")
    status.add_argument(
        "--check",
        action="store_true",
        help="Exit 1 when an update is available",
    )

    commands.add_parser("sync-update", help="Apply upstream template changes")

    init = commands.add_parser("init-config", help="Write a default settings file")
    init.add_argument("--force", action="store_true", help="Overwrite an existing file")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for practactl CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        # init-config must work before a settings file exists
        if args.command == "init-config":
            setup_logging("DEBUG" if args.verbose else "INFO", args.log_file)
            from practactl.commands.init_config import init_config_command

            return init_config_command(args)

        from practactl.commands import load_workspace

        workspace = load_workspace(args)
        level = "DEBUG" if args.verbose else workspace.settings.log_level
        setup_logging(level, args.log_file)

        # Route to appropriate command
        if args.command == "validate":
            from practactl.commands.validate import validate_command

            return validate_command(workspace)

        elif args.command == "audit":
            from practactl.commands.audit import audit_command

            return audit_command(workspace)

        elif args.command == "package":
            from practactl.commands.package import package_command

            return package_command(workspace, args.output)

        elif args.command == "submit":
            from practactl.commands.package import submit_command

            return submit_command(workspace)

        elif args.command == "bump":
            from practactl.commands.bump import bump_command

            return bump_command(workspace)

        elif args.command == "sync-status":
            from practactl.commands.sync import sync_status_command

            return sync_status_command(workspace, check=args.check)

        elif args.command == "sync-update":
            from practactl.commands.sync import sync_update_command

            return sync_update_command(workspace)

        parser.error(f"unknown command: {args.command}")

    except (CLIError, SettingsError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
