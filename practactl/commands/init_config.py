"""
practactl init-config command.

Write a commented practa.toml populated with defaults.
"""

from typing import Any

from practa.config import write_default_config

from practactl.commands import CLIError


def init_config_command(args: Any) -> int:
    """
    Execute init-config command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    if args.config.exists() and not args.force:
        raise CLIError(f"{args.config} already exists (use --force to overwrite)")

    write_default_config(args.config)
    print(f"Wrote {args.config}")
    return 0
