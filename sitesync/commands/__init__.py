"""Slash command registry."""

from __future__ import annotations

from .config import COMMAND as CONFIG_COMMAND
from .deploy import DEPLOY_COMMAND, MANIFEST_COMMAND, WAIT_COMMAND
from .help import COMMAND as HELP_COMMAND
from .sites import CREATE_COMMAND, LIST_COMMAND, SHOW_COMMAND

COMMANDS = [
    HELP_COMMAND,
    CONFIG_COMMAND,
    LIST_COMMAND,
    SHOW_COMMAND,
    CREATE_COMMAND,
    DEPLOY_COMMAND,
    WAIT_COMMAND,
    MANIFEST_COMMAND,
]

__all__ = ["COMMANDS"]
