"""Slash commands for listing, showing and creating sites."""

from __future__ import annotations

from typing import Dict, List

from rich.console import Console
from rich.table import Table

from ..deploy.protocol import MUTABLE_FIELDS
from ..errors import SiteSyncError
from ..sites import Site
from ..slash_commands import SlashCommand, SlashCommandContext, render_rich
from ..transport import ListOptions


def _list_handler(context: SlashCommandContext, args: List[str]) -> str:
    try:
        numbers = [int(arg) for arg in args[:2]]
    except ValueError:
        return "[sites] usage: /sites [page] [per_page]"
    options = ListOptions(
        page=numbers[0] if numbers else None,
        per_page=numbers[1] if len(numbers) > 1 else None,
    )

    try:
        sites = context.sites().list(options)
    except SiteSyncError as e:
        return f"[sites] error: {e}"

    if not sites:
        return "[sites] No sites found."

    def _render(console: Console) -> None:
        table = Table(title=f"Sites ({len(sites)})", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name")
        table.add_column("State")
        table.add_column("URL", overflow="fold")
        for site in sites:
            table.add_row(site.id, site.name, _state_text(site.state), site.url)
        console.print(table)

    return render_rich(_render)


def _show_handler(context: SlashCommandContext, args: List[str]) -> str:
    if len(args) != 1:
        return "[site] usage: /site <site-id>"
    try:
        site = context.sites().get(args[0])
    except SiteSyncError as e:
        return f"[site] error: {e}"
    return render_site(site)


def _create_handler(context: SlashCommandContext, args: List[str]) -> str:
    try:
        params = _parse_assignments(args)
    except ValueError as e:
        return f"[create] usage: /create name=<name> [custom_domain=..] [password=..] [notification_email=..] ({e})"

    try:
        site = context.sites().create(Site(**params))
    except SiteSyncError as e:
        return f"[create] error: {e}"
    return render_site(site)


def _parse_assignments(args: List[str]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep:
            raise ValueError(f"expected key=value, got '{arg}'")
        if key not in MUTABLE_FIELDS:
            raise ValueError(f"unknown field '{key}'")
        params[key] = value
    return params


def render_site(site: Site) -> str:
    """Render one site as a two-column table."""

    def _render(console: Console) -> None:
        table = Table(title=f"Site {site.id}", show_header=False)
        table.add_column("Property", style="bold")
        table.add_column("Value", overflow="fold")
        table.add_row("Name", site.name or "(unnamed)")
        table.add_row("State", _state_text(site.state))
        table.add_row("URL", site.url or "-")
        table.add_row("Admin URL", site.admin_url or "-")
        table.add_row("Custom Domain", site.custom_domain or "-")
        table.add_row("Password", "set" if site.password else "-")
        table.add_row("Notification Email", site.notification_email or "-")
        table.add_row("Premium", str(site.premium))
        table.add_row("Claimed", str(site.claimed))
        table.add_row("Created", site.created_at.isoformat() if site.created_at else "-")
        table.add_row("Updated", site.updated_at.isoformat() if site.updated_at else "-")
        console.print(table)

    return render_rich(_render)


def _state_text(state: str) -> str:
    if state == "current":
        return f"[green]{state}[/green]"
    return state or "-"


LIST_COMMAND = SlashCommand(
    name="sites",
    description="List sites.",
    handler=_list_handler,
    usage="[page] [per_page]",
)

SHOW_COMMAND = SlashCommand(
    name="site",
    description="Show one site.",
    handler=_show_handler,
    usage="<site-id>",
)

CREATE_COMMAND = SlashCommand(
    name="create",
    description="Create a site.",
    handler=_create_handler,
    usage="name=<name> [field=value ...]",
)
