"""
CLI entry point for ActionBox.

This module provides the Typer-based command-line interface for ActionBox.

Commands:
    check       Check one tool call against all loaded contracts
    policy      Show the merged global policy
    audit       Show contract coverage, review status and drift per skill
    review      Show a contract for review and optionally mark it reviewed
    directive   Print the prompt directive built from all contracts
    drift       Check every skill for drift between SKILL.md and its contract

The CLI parses arguments and delegates to the enforcer and contract
modules; everything it does is also available from Python.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from actionbox import __version__
from actionbox.alerts import ViolationAlerter, format_violation_summary
from actionbox.contract import (
    audit_skills,
    check_drift,
    discover_skill_dirs,
    load_action_box,
    mark_reviewed,
    save_action_box,
)
from actionbox.directive import build_directive
from actionbox.enforcer import ActionBoxEnforcer
from actionbox.errors import ActionBoxError, SkillNotFoundError
from actionbox.report import (
    build_audit_list,
    build_check_dict,
    build_policy_dict,
    render_audit,
    render_block_decision,
    render_policy,
    render_review,
    render_violations,
    to_json,
)
from actionbox.schema import EnforcementMode, EnforcerConfig, load_config

app = typer.Typer(
    name="actionbox",
    help="Check agent tool calls against per-skill behavioral contracts.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger("actionbox")

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to an ActionBox config YAML file.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]

SkillsDirOption = Annotated[
    Optional[Path],
    typer.Option(
        "--skills-dir",
        "-s",
        help="Directory containing skill directories. Defaults to the config's skillsDir.",
        resolve_path=True,
    ),
]

JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output results in JSON format."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]actionbox[/bold] version {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=err_console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging."),
    ] = False,
) -> None:
    """
    ActionBox - Behavioral contracts for agent skills.

    Merges every skill's ACTIONBOX.md into one global policy and reports
    tool calls that break it.
    """
    _configure_logging(verbose)


# =============================================================================
# Helpers
# =============================================================================


def _load_settings(config_path: Path | None) -> EnforcerConfig:
    return load_config(config_path)


def _resolve_skills_dir(config: EnforcerConfig, skills_dir: Path | None) -> Path:
    return skills_dir if skills_dir is not None else config.resolve_skills_dir(Path.cwd())


def _parse_params(pairs: list[str] | None, params_json: str | None) -> dict[str, Any]:
    """Merge --params-json with --param key=value pairs (pairs win)."""
    params: dict[str, Any] = {}
    if params_json:
        try:
            loaded = json.loads(params_json)
        except json.JSONDecodeError as e:
            raise typer.BadParameter(f"Invalid JSON: {e}", param_hint="--params-json") from e
        if not isinstance(loaded, dict):
            raise typer.BadParameter("Must be a JSON object", param_hint="--params-json")
        params.update(loaded)

    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}", param_hint="--param")
        params[key] = value
    return params


def _fail(error: Exception, json_output: bool = False) -> None:
    if json_output:
        output: dict[str, Any] = {"error": True, "message": str(error)}
        if isinstance(error, ActionBoxError):
            output.update(error.to_dict())
        print(json.dumps(output, indent=2, default=str))
    else:
        err_console.print(f"[red]{escape(str(error))}[/red]")
    raise typer.Exit(code=1)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def check(
    tool_name: Annotated[str, typer.Argument(help="Name of the tool being called.")],
    param: Annotated[
        Optional[list[str]],
        typer.Option("--param", "-p", help="Tool argument as key=value (repeatable)."),
    ] = None,
    params_json: Annotated[
        Optional[str],
        typer.Option("--params-json", help="Tool arguments as a JSON object."),
    ] = None,
    skills_dir: SkillsDirOption = None,
    config_path: ConfigOption = None,
    mode: Annotated[
        Optional[EnforcementMode],
        typer.Option("--mode", "-m", help="Override the configured enforcement mode."),
    ] = None,
    json_output: JsonOption = False,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit with code 1 on any violation, even in monitor mode."),
    ] = False,
) -> None:
    """
    Check one tool call against all loaded contracts.

    Exits with code 1 when the call would be blocked (enforce mode) or, with
    --strict, when any violation is found.

    Example:
        $ actionbox check read_file --param path=/etc/passwd --mode enforce
    """
    params = _parse_params(param, params_json)

    try:
        config = _load_settings(config_path)
        if mode is not None:
            config = config.model_copy(update={"mode": mode})
        root = _resolve_skills_dir(config, skills_dir)

        enforcer = ActionBoxEnforcer.from_config(config)
        try:
            enforcer.load_skills_dir(root)
            violations = enforcer.check(tool_name, params)
        finally:
            enforcer.close()
    except ActionBoxError as e:
        _fail(e, json_output)
        return

    blocked = enforcer.should_block(violations)
    reason = enforcer.block_reason(violations)
    logger.debug(format_violation_summary(violations))

    if json_output:
        print(to_json(build_check_dict(tool_name, params, violations, enforcer.mode, blocked, reason)))
    else:
        render_violations(violations, console=console, tool_name=tool_name)
        render_block_decision(blocked, reason, console=console)

    if blocked or (strict and violations):
        raise typer.Exit(code=1)


@app.command()
def policy(
    skills_dir: SkillsDirOption = None,
    config_path: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Show the merged global policy of every loaded contract.

    Example:
        $ actionbox policy --skills-dir ./skills
    """
    try:
        config = _load_settings(config_path)
        enforcer = ActionBoxEnforcer(mode=config.mode)
        enforcer.load_skills_dir(_resolve_skills_dir(config, skills_dir))
    except ActionBoxError as e:
        _fail(e, json_output)
        return

    if json_output:
        print(to_json(build_policy_dict(enforcer.policy)))
    else:
        render_policy(enforcer.policy, console=console)


@app.command()
def audit(
    skills_dir: SkillsDirOption = None,
    config_path: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Audit every skill: contract present, reviewed, drifted.

    Example:
        $ actionbox audit
    """
    try:
        config = _load_settings(config_path)
    except ActionBoxError as e:
        _fail(e, json_output)
        return

    rows = audit_skills(_resolve_skills_dir(config, skills_dir))
    if json_output:
        print(to_json(build_audit_list(rows)))
    else:
        render_audit(rows, console=console)


@app.command()
def review(
    skill: Annotated[str, typer.Argument(help="Skill directory name.")],
    reviewer: Annotated[
        Optional[str],
        typer.Option("--reviewer", "-r", help="Mark the contract as reviewed by this name."),
    ] = None,
    skills_dir: SkillsDirOption = None,
    config_path: ConfigOption = None,
) -> None:
    """
    Show a skill's contract and optionally mark it as reviewed.

    Example:
        $ actionbox review calendar-helper --reviewer alice
    """
    try:
        config = _load_settings(config_path)
        root = _resolve_skills_dir(config, skills_dir)
        skill_dir = root / skill
        if not skill_dir.is_dir():
            raise SkillNotFoundError(skill=skill, skills_dir=str(root))

        box = load_action_box(skill_dir)
        render_review(box, console=console)

        if reviewer:
            save_action_box(skill_dir, mark_reviewed(box, reviewer))
            console.print(f'[green]Marked as reviewed by "{reviewer}".[/green]')
        else:
            console.print(
                f"[yellow]To mark as reviewed, run: actionbox review {skill} "
                "--reviewer <name>[/yellow]"
            )
    except ActionBoxError as e:
        _fail(e)


@app.command()
def directive(
    skills_dir: SkillsDirOption = None,
    config_path: ConfigOption = None,
) -> None:
    """
    Print the <actionbox-directive> block for all loaded contracts.

    Example:
        $ actionbox directive > directive.xml
    """
    try:
        config = _load_settings(config_path)
        enforcer = ActionBoxEnforcer(mode=config.mode)
        enforcer.load_skills_dir(_resolve_skills_dir(config, skills_dir))
    except ActionBoxError as e:
        _fail(e)
        return

    text = build_directive(enforcer.all_boxes())
    if text:
        print(text)
    else:
        err_console.print("[yellow]No contracts loaded.[/yellow]")


@app.command()
def drift(
    skills_dir: SkillsDirOption = None,
    config_path: ConfigOption = None,
) -> None:
    """
    Check every skill for drift between SKILL.md and its contract.

    Exits with code 1 when any skill has drifted.

    Example:
        $ actionbox drift
    """
    try:
        config = _load_settings(config_path)
    except ActionBoxError as e:
        _fail(e)
        return

    alerter = ViolationAlerter()
    drifted = 0
    for skill_dir in discover_skill_dirs(_resolve_skills_dir(config, skills_dir)):
        status = check_drift(skill_dir)
        if status is None:
            console.print(f"[dim]{skill_dir.name}: no valid contract[/dim]")
            continue
        if status.has_drift:
            drifted += 1
            alerter.alert_drift(status.skill_id, status.current_hash, status.expected_hash)
            console.print(f"[red]✗[/red] {skill_dir.name}: drifted")
        else:
            console.print(f"[green]✓[/green] {skill_dir.name}: ok")

    if drifted:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
