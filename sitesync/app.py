# sitesync/app.py
"""
Command-line entry point for sitesync.

With arguments, runs a single command (``sitesync deploy <id> ./public``) and
exits. Without arguments, starts an interactive shell that accepts slash
commands.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
try:
    import readline
except ImportError:  # pragma: no cover
    readline = None
import shlex
import sys
from typing import List, Optional, Sequence

from rich.console import Console

from .commands import COMMANDS
from .configuration import (
    ConfigurationBundle,
    Diagnostic,
    load_runtime_configuration,
)
from .logging_utils import setup_logging
from .slash_commands import CommandRouter, is_error_output

logger = logging.getLogger("sitesync")
TRUE_STRINGS = {"1", "true", "yes", "on"}
FALSE_STRINGS = {"0", "false", "no", "off"}


def print_banner(console: Console) -> None:
    console.print("[bold cyan]sitesync[/bold cyan] :: static site deploys")
    console.print("[dim]Type /help for commands, 'exit' to quit.[/dim]")
    console.print()


def _parse_env_flag(value: str, *, default: bool = True) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_STRINGS:
        return True
    if normalized in FALSE_STRINGS:
        return False
    return default


def _resolve_ui_verbose(config_bundle: ConfigurationBundle) -> bool:
    """Resolve whether the shell shows its banner and diagnostics."""

    env_value = os.environ.get("SITESYNC_UI_VERBOSE")
    if env_value is not None:
        return _parse_env_flag(env_value)

    verbose_setting = config_bundle.section("ui").get("verbose")
    if verbose_setting is None:
        return True
    return bool(verbose_setting)


def _resolve_log_level(config_bundle: ConfigurationBundle) -> str:
    configured_level = config_bundle.section("logging").get("level")
    env_level = os.environ.get("SITESYNC_LOG_LEVEL")
    return (env_level or configured_level or "WARNING").upper()


def build_router(config: ConfigurationBundle) -> CommandRouter:
    """Create a router with every built-in command registered."""

    router = CommandRouter(config)
    for command in COMMANDS:
        router.register(command)
    return router


def emit_configuration_report(config: ConfigurationBundle) -> None:
    """Print diagnostics so operators can correct issues quickly."""

    problems = [diag for diag in config.diagnostics if diag.level != "info"]
    if not problems:
        print(f"[config] Loaded {len(config.files_loaded)} file(s).")
        return

    print("[config] Diagnostics:")
    for diag in problems:
        prefix = diag.source or config.home_dir
        print(f"  - ({diag.level.upper()}) {diag.message} [{prefix}]")


def configure_autocomplete(router: CommandRouter) -> None:
    """Enable readline tab completion for slash commands."""

    if readline is None:
        return

    commands = list(router.command_names)

    def completer(text: str, state: int):
        buffer = readline.get_line_buffer()
        if not buffer.startswith("/"):
            return None
        fragment = text[1:] if text.startswith("/") else text
        matches = [f"/{cmd}" for cmd in commands if cmd.startswith(fragment)]
        if state < len(matches):
            return matches[state]
        return None

    readline.set_completer(completer)
    readline.parse_and_bind("tab: complete")
    readline.set_completer_delims(" \t")


def execute_cli_command(command_line: str, router: CommandRouter) -> str:
    """Run one command line (without its leading slash) and print the output."""

    stripped = command_line.strip().lstrip("/")
    if not stripped:
        return ""

    try:
        parts = shlex.split(stripped)
    except ValueError as e:
        result = f"[router] error: {e}"
    else:
        command, args = parts[0], parts[1:]
        result = router.handle(command, args)
    print(result)
    logger.info("Executed command: %s", stripped)
    return result


def bootstrap(home_dir: Optional[Path] = None) -> ConfigurationBundle:
    """Load configuration and initialize logging."""

    config_bundle = load_runtime_configuration(home_dir)
    log_path = setup_logging(
        config_bundle.home_dir,
        _resolve_log_level(config_bundle),
        structured=bool(config_bundle.section("logging").get("structured", True)),
    )
    config_bundle.log_path = log_path
    try:
        log_path.relative_to(config_bundle.home_dir)
    except ValueError:
        config_bundle.diagnostics.append(
            Diagnostic(
                level="warning",
                message=(
                    "Home log directory is not writable; "
                    f"logging to fallback path '{log_path}'."
                ),
                source=log_path,
            )
        )
    logger.info("Logging initialized at %s", log_path)
    return config_bundle


def run_shell(router: CommandRouter, console: Console, verbose: bool) -> None:
    if verbose:
        print_banner(console)
        emit_configuration_report(router.config)
    configure_autocomplete(router)

    while True:
        try:
            raw_line = input("> ")
        except (EOFError, KeyboardInterrupt):
            print("\n[Exiting sitesync]")
            break

        line = raw_line.strip()
        if line.lower() in {"quit", "exit", "/quit", "/exit"}:
            print("[Goodbye]")
            break
        if not line:
            continue

        try:
            execute_cli_command(line, router)
        except KeyboardInterrupt:
            print("\n[interrupted]")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the ``sitesync`` console script."""

    args: List[str] = list(sys.argv[1:] if argv is None else argv)
    config_bundle = bootstrap()
    router = build_router(config_bundle)

    if args:
        output = execute_cli_command(shlex.join(args), router)
        return 1 if is_error_output(output) else 0

    run_shell(router, Console(), _resolve_ui_verbose(config_bundle))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
