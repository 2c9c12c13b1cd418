"""CLI command implementations."""

from versionit.cli.commands.bump import auto_bump_command, bump_command, next_command
from versionit.cli.commands.craft import craft_command
from versionit.cli.commands.monorepo import monorepo_command

__all__ = [
    "bump_command",
    "next_command",
    "auto_bump_command",
    "craft_command",
    "monorepo_command",
]
