"""
Console output for ActionBox using Rich.

Design Principles:
    - Severity at a glance: colors and icons per severity
    - Summary first, details below
"""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from actionbox.contract.audit import SkillAudit
from actionbox.policy.builder import GlobalPolicy
from actionbox.schema import ActionBox, Severity, Violation

ICON_OK = "[green]✓[/green]"
ICON_BLOCKED = "[red]✗[/red]"

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "dim",
}


def _none_if_empty(items: list[str] | tuple[str, ...]) -> str:
    return ", ".join(items) if items else "[dim](none)[/dim]"


def render_violations(
    violations: list[Violation],
    console: Console | None = None,
    tool_name: str | None = None,
) -> None:
    """Print a violation table, or a one-line all-clear."""
    console = console or Console()

    if not violations:
        target = f" for [cyan]{tool_name}[/cyan]" if tool_name else ""
        console.print(f"{ICON_OK} No violations{target}")
        return

    table = Table(show_header=True, header_style="bold", expand=True)
    table.add_column("Severity", width=9)
    table.add_column("Type", style="cyan")
    table.add_column("Skill")
    table.add_column("Message", overflow="fold")
    table.add_column("Rule", style="dim")

    for v in violations:
        style = SEVERITY_STYLES[v.severity]
        table.add_row(
            f"[{style}]{v.severity.value}[/{style}]",
            v.type.value,
            v.skill_id,
            escape(v.message),
            v.rule,
        )

    console.print(table)


def render_block_decision(blocked: bool, reason: str | None, console: Console | None = None) -> None:
    console = console or Console()
    if blocked:
        console.print(f"{ICON_BLOCKED} [red]Blocked:[/red] {escape(reason or '')}")
    elif reason:
        console.print("[yellow]Monitor mode: tool call allowed, violations alerted[/yellow]")


def render_policy(policy: GlobalPolicy, console: Console | None = None) -> None:
    """Print the merged policy."""
    console = console or Console()

    header = Text()
    header.append(" Global policy ", style="bold")
    header.append("│ ", style="dim")
    header.append(f"{len(policy.boxes)} contract(s)", style="bold cyan")
    console.print(Panel(header, expand=False))

    if policy.is_empty:
        console.print("[yellow]No contracts loaded; every tool call is allowed.[/yellow]")
        return

    tools = Table(title="Allowed tools", show_header=True, header_style="bold")
    tools.add_column("Tool", style="cyan")
    tools.add_column("Claimed by")
    for name, skills in sorted(policy.tool_index.items()):
        tools.add_row(name, ", ".join(skills))
    console.print(tools)

    if policy.global_denied_tools:
        denied = Table(title="Globally denied tools", show_header=True, header_style="bold")
        denied.add_column("Tool", style="red")
        denied.add_column("Denied by")
        denied.add_column("Reason", overflow="fold")
        for name, entry in sorted(policy.global_denied_tools.items()):
            denied.add_row(name, ", ".join(entry.denying_skill_ids), entry.reason)
        console.print(denied)

    stats = Table(show_header=False, box=None, padding=(0, 2))
    stats.add_column("Rule", style="dim")
    stats.add_column("Value", overflow="fold")
    stats.add_row("Denied paths", _none_if_empty(policy.global_denied_paths))
    stats.add_row("Denied hosts", _none_if_empty(policy.global_denied_hosts))
    stats.add_row("Allowed capabilities", _none_if_empty(policy.all_allowed_capabilities))
    stats.add_row("Denied capabilities", _none_if_empty(policy.all_denied_capabilities))
    console.print(stats)


def render_audit(rows: list[SkillAudit], console: Console | None = None) -> None:
    """Print the audit table followed by a short summary."""
    console = console or Console()

    if not rows:
        console.print("[yellow]No skills found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    for column in ("Skill", "Box", "Reviewed", "Drift", "Allowed", "Denied"):
        table.add_column(column)

    for row in rows:
        if row.error:
            box = "[red]invalid[/red]"
        elif row.has_box:
            box = "[green]yes[/green]"
        else:
            box = "[red]no[/red]"
        table.add_row(
            row.skill,
            box,
            "[green]yes[/green]" if row.reviewed else "[yellow]no[/yellow]",
            "[red]DRIFTED[/red]" if row.drift else "[green]ok[/green]",
            str(row.allowed_tools),
            str(row.denied_tools),
        )
    console.print(table)

    no_box = sum(1 for r in rows if not r.has_box)
    drifted = sum(1 for r in rows if r.drift)
    unreviewed = sum(1 for r in rows if r.has_box and not r.reviewed)

    if no_box:
        console.print(f"[yellow]{no_box} skill(s) missing ActionBox.[/yellow]")
    if drifted:
        console.print(f"[red]{drifted} skill(s) with drift detected.[/red]")
    if unreviewed:
        console.print(f"[yellow]{unreviewed} skill(s) not yet reviewed.[/yellow]")
    if not (no_box or drifted or unreviewed):
        console.print("[green]All skills have reviewed, up-to-date ActionBoxes.[/green]")


def render_review(box: ActionBox, console: Console | None = None) -> None:
    """Print a single contract for human review."""
    console = console or Console()
    drift = box.drift

    console.print(
        Panel(
            Text.assemble(
                ("ActionBox for ", "bold"),
                (box.skill_name or box.skill_id, "bold cyan"),
                (f" ({box.skill_id})", "dim"),
            ),
            expand=False,
        )
    )
    console.print(f"  [dim]Generated:[/dim] {drift.generated_at or 'unknown'}")
    console.print(f"  [dim]Model:[/dim]     {drift.generator_model or 'unknown'}")
    reviewed = f"yes (by {drift.reviewed_by or 'unknown'})" if drift.reviewed else "no"
    console.print(f"  [dim]Reviewed:[/dim]  {reviewed}")
    console.print(f"  [dim]Skill hash:[/dim] {drift.skill_hash[:12] + '...' if drift.skill_hash else '(none)'}")
    console.print()

    console.print("[bold]Allowed Tools[/bold]")
    for tool in box.allowed_tools:
        console.print(f"  [green]+[/green] {tool.name}: {tool.reason}")
    console.print("[bold]Denied Tools[/bold]")
    for tool in box.denied_tools:
        console.print(f"  [red]-[/red] {tool.name}: {tool.reason}")
    console.print()

    console.print("[bold]Filesystem[/bold]")
    console.print(f"  Readable: {_none_if_empty(box.filesystem.readable)}")
    console.print(f"  Writable: {_none_if_empty(box.filesystem.writable)}")
    console.print(f"  Denied:   {_none_if_empty(box.filesystem.denied)}")
    console.print("[bold]Network[/bold]")
    console.print(f"  Allowed: {_none_if_empty(box.network.allowed_hosts)}")
    console.print(f"  Denied:  {_none_if_empty(box.network.denied_hosts)}")
    console.print()

    behavior = box.behavior
    console.print("[bold]Behavior[/bold]")
    if behavior.summary:
        console.print(f"  {behavior.summary}")
    if behavior.max_tool_calls:
        console.print(f"  Max tool calls: {behavior.max_tool_calls}")
    if behavior.never_do:
        console.print("  Never do:")
        for item in behavior.never_do:
            console.print(f"    - {item}")
