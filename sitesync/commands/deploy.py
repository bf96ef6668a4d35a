"""Slash commands for deploying content and waiting for it to go live."""

from __future__ import annotations

from dataclasses import replace
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console
from rich.table import Table

from ..deploy import DirectorySource, build_manifest, source_for_path
from ..errors import SiteSyncError
from ..sites import Site
from ..slash_commands import SlashCommand, SlashCommandContext, render_rich

logger = logging.getLogger("sitesync.commands.deploy")

MANIFEST_PREVIEW = 50


def _deploy_handler(context: SlashCommandContext, args: List[str]) -> str:
    try:
        site_id, path, wait, timeout = _parse_deploy_args(args)
    except ValueError as e:
        return f"[deploy] usage: /deploy <site-id> <dir-or-archive> [--wait] [--timeout N] ({e})"

    service = context.sites()
    wait = wait or service.deploy_settings.wait
    try:
        source = source_for_path(path)
        site = service.get(site_id)
        result = service.deploy(site, source, progress=_log_progress)
    except (SiteSyncError, OSError) as e:
        return f"[deploy] error: {e}"

    lines = [f"[deploy] {result.summary()}"]
    if isinstance(source, DirectorySource) and result.uploaded:
        for rel_path in result.uploaded[:10]:
            lines.append(f"  + {rel_path}")
        if len(result.uploaded) > 10:
            lines.append(f"  ... and {len(result.uploaded) - 10} more")

    if wait:
        # The fetched state predates this deploy, so poll at least once.
        pending = replace(site, state="")
        try:
            ready = service.wait_for_ready(pending, timeout=timeout)
        except SiteSyncError as e:
            lines.insert(0, f"[deploy] error: {e}")
            return "\n".join(lines)
        lines.append(f"[deploy] site {ready.id} is live at {ready.url or '(no url)'}")
    return "\n".join(lines)


def _wait_handler(context: SlashCommandContext, args: List[str]) -> str:
    if not args or len(args) > 2:
        return "[wait] usage: /wait <site-id> [timeout-seconds]"
    try:
        timeout = float(args[1]) if len(args) > 1 else None
    except ValueError:
        return "[wait] usage: /wait <site-id> [timeout-seconds]"

    service = context.sites()
    try:
        site = service.wait_for_ready(Site(id=args[0]), timeout=timeout)
    except SiteSyncError as e:
        return f"[wait] error: {e}"
    return f"[wait] site {site.id} is {site.state}"


def _manifest_handler(context: SlashCommandContext, args: List[str]) -> str:
    if len(args) != 1:
        return "[manifest] usage: /manifest <dir>"
    try:
        manifest = build_manifest(Path(args[0]).expanduser())
    except (SiteSyncError, OSError) as e:
        return f"[manifest] error: {e}"

    def _render(console: Console) -> None:
        console.print(f"[bold]Deploy Manifest[/bold] ({len(manifest)} files)\n")
        table = Table(show_header=True)
        table.add_column("Path", style="cyan")
        table.add_column("Size", justify="right")
        table.add_column("SHA-1", style="dim")
        for rel_path in sorted(manifest.entries)[:MANIFEST_PREVIEW]:
            entry = manifest.entries[rel_path]
            table.add_row(rel_path, _format_size(entry.size), entry.digest)
        if len(manifest) > MANIFEST_PREVIEW:
            console.print(f"(showing first {MANIFEST_PREVIEW} of {len(manifest)} files)")
        console.print(table)

    return render_rich(_render)


def _parse_deploy_args(args: List[str]) -> Tuple[str, str, bool, Optional[float]]:
    positional: List[str] = []
    wait = False
    timeout: Optional[float] = None
    remaining = list(args)
    while remaining:
        arg = remaining.pop(0)
        if arg == "--wait":
            wait = True
        elif arg == "--timeout":
            if not remaining:
                raise ValueError("--timeout needs a value")
            try:
                timeout = float(remaining.pop(0))
            except ValueError:
                raise ValueError("--timeout must be a number") from None
            wait = True
        else:
            positional.append(arg)
    if len(positional) != 2:
        raise ValueError("expected a site id and a path")
    return positional[0], positional[1], wait, timeout


def _log_progress(message: str, current: int, total: int) -> None:
    logger.info("%s (%d/%d)", message, current, total)


def _format_size(size: int) -> str:
    """Format file size in human-readable form."""
    if size < 1024:
        return f"{size} B"
    elif size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    elif size < 1024 * 1024 * 1024:
        return f"{size / (1024 * 1024):.1f} MB"
    else:
        return f"{size / (1024 * 1024 * 1024):.1f} GB"


DEPLOY_COMMAND = SlashCommand(
    name="deploy",
    description="Deploy a directory or archive to a site.",
    handler=_deploy_handler,
    usage="<site-id> <path> [--wait] [--timeout N]",
)

WAIT_COMMAND = SlashCommand(
    name="wait",
    description="Wait until a site's latest deploy is live.",
    handler=_wait_handler,
    usage="<site-id> [timeout]",
)

MANIFEST_COMMAND = SlashCommand(
    name="manifest",
    description="Show the files and digests a directory deploy would submit.",
    handler=_manifest_handler,
    usage="<dir>",
)
