"""
CLI entry point for Veil.

This module provides the Typer-based command-line interface for Veil.

Commands:
    check file|dir|env|command   Ask Veil about a single target
    rules                        List registered named rules
    packs                        List rule packs
    wrap                         Run a command after checking it

Architecture Note:
    The CLI is thin: it composes a config from presets, packs and the
    nearest config file, then delegates to the policy engine and runner.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from veil import __version__
from veil.compose import merge_configs
from veil.errors import ConfigLoadError
from veil.loader import find_config_dir, load_config
from veil.policy.engine import Veil
from veil.presets import PRESETS
from veil.rules.builder import build_config_from_rules
from veil.rules.packs import RULE_PACKS, from_packs
from veil.rules.registry import create_default_registry
from veil.runner import DEFAULT_TIMEOUT_SECONDS, is_veil_active, run_command
from veil.schema import Platform, RuleCategory, VeilConfig, VeilResult

# Initialize Typer app with metadata
app = typer.Typer(
    name="veil",
    help="Control what AI agents see: files, environment variables and commands.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]veil[/bold] version {__version__}")
        raise typer.Exit()


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
        typer.Option(
            "--verbose",
            "-v",
            help="Log policy decisions to stderr.",
        ),
    ] = False,
) -> None:
    """
    Veil - a policy layer between AI agents and your machine.

    Decide per file, environment variable and command whether an agent
    sees the real value, a masked one, a rewritten command or a denial.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Shared options
# =============================================================================

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Directory holding .veilrc.json/.veilrc.yaml. Defaults to the nearest one above the current directory.",
        file_okay=False,
        resolve_path=True,
    ),
]
PresetOption = Annotated[
    Optional[str],
    typer.Option(
        "--preset",
        "-p",
        help=f"Start from a preset ({', '.join(PRESETS)}).",
    ),
]
PackOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--pack",
        help="Enable a rule pack (repeatable), e.g. security:recommended.",
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output the result as JSON."),
]


def _build_veil(
    config_dir: Path | None,
    preset: str | None,
    packs: list[str] | None,
) -> Veil:
    """Compose preset, packs and config file (in that order) into a Veil."""
    configs: list[VeilConfig] = []

    if preset is not None:
        if preset not in PRESETS:
            raise typer.BadParameter(
                f"Unknown preset {preset!r} (expected one of: {', '.join(PRESETS)})",
                param_hint="--preset",
            )
        configs.append(PRESETS[preset])

    if packs:
        configs.append(
            build_config_from_rules(from_packs(*packs), registry=create_default_registry())
        )

    directory = config_dir if config_dir is not None else find_config_dir(Path.cwd())
    if directory is not None:
        loaded = load_config(directory)
        if loaded is not None:
            configs.append(loaded)

    return Veil(merge_configs(*configs))


def _emit_result(result: VeilResult, json_output: bool) -> None:
    """Print a check result and exit 1 when it was blocked."""
    if json_output:
        print(json.dumps(result.model_dump(mode="json"), indent=2, default=str))
    elif result.ok:
        console.print("[green]allowed[/green]")
        if result.command is not None:
            console.print(f"  Command: {escape(result.command)}")
        if result.value is not None:
            if isinstance(result.value, list):
                for entry in result.value:
                    console.print(f"  {escape(str(entry))}")
            else:
                console.print(f"  Value: {escape(str(result.value))}")
        if result.context:
            console.print(f"  [dim]Decided by {result.context}[/dim]")
    else:
        _print_blocked(result)

    if not result.ok:
        raise typer.Exit(code=1)


def _print_blocked(result: VeilResult) -> None:
    console.print(f"[red]blocked[/red] {escape(result.details.target)}")
    console.print(f"  Reason: {escape(result.reason)}")
    if result.safe_alternatives:
        console.print("  Safe alternatives:")
        for alternative in result.safe_alternatives:
            console.print(f"    - {escape(alternative)}")
    if result.details.policy_ref:
        console.print(f"  [dim]Decided by {result.details.policy_ref}[/dim]")


# =============================================================================
# Check Subcommand Group
# =============================================================================

check_app = typer.Typer(
    name="check",
    help="Check a single file, directory, environment variable or command.",
    no_args_is_help=True,
)
app.add_typer(check_app, name="check")


@check_app.command("file")
def check_file(
    path: Annotated[str, typer.Argument(help="Path as the agent would request it.")],
    config: ConfigOption = None,
    preset: PresetOption = None,
    pack: PackOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Check whether a file is visible.

    Example:
        $ veil check file .env --preset recommended
    """
    _emit_result(_build_veil(config, preset, pack).check_file(path), json_output)


@check_app.command("dir")
def check_dir(
    path: Annotated[str, typer.Argument(help="Directory as the agent would request it.")],
    config: ConfigOption = None,
    preset: PresetOption = None,
    pack: PackOption = None,
    json_output: JsonOption = False,
) -> None:
    """Check whether a directory is visible."""
    _emit_result(_build_veil(config, preset, pack).check_directory(path), json_output)


@check_app.command("env")
def check_env(
    key: Annotated[str, typer.Argument(help="Environment variable name.")],
    config: ConfigOption = None,
    preset: PresetOption = None,
    pack: PackOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Show an environment variable as the agent would see it.

    Example:
        $ veil check env AWS_SECRET_ACCESS_KEY --pack security:recommended
    """
    _emit_result(_build_veil(config, preset, pack).get_env(key), json_output)


@check_app.command("command")
def check_command(
    command: Annotated[str, typer.Argument(help="Full command line, quoted.")],
    config: ConfigOption = None,
    preset: PresetOption = None,
    pack: PackOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Check a command line.

    Example:
        $ veil check command "rm -rf /" --preset recommended
    """
    _emit_result(_build_veil(config, preset, pack).check_command(command), json_output)


# =============================================================================
# Catalog commands
# =============================================================================


@app.command()
def rules(
    category: Annotated[
        Optional[RuleCategory],
        typer.Option("--category", help="Only rules of this category."),
    ] = None,
    platform: Annotated[
        Optional[Platform],
        typer.Option("--platform", help="Only rules applicable to this platform."),
    ] = None,
    json_output: JsonOption = False,
) -> None:
    """List registered named rules."""
    registry = create_default_registry()
    selected = registry.by_platform(platform) if platform is not None else registry.all()
    if category is not None:
        selected = [rule for rule in selected if rule.category is category]

    if json_output:
        output = {
            "rules": [
                {
                    "id": rule.id,
                    "category": rule.category.value,
                    "platforms": [p.value for p in rule.platforms],
                    "default_severity": rule.default_severity.value,
                    "description": rule.description,
                    "patterns": [
                        r.pattern_source for r in (*rule.file_rules, *rule.env_rules, *rule.cli_rules)
                    ],
                }
                for rule in selected
            ],
            "count": len(selected),
        }
        print(json.dumps(output, indent=2))
        return

    if not selected:
        console.print("[dim]No rules found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Rule", style="cyan")
    table.add_column("Category")
    table.add_column("Platforms")
    table.add_column("Default", width=7)
    table.add_column("Description")

    for rule in selected:
        table.add_row(
            rule.id,
            rule.category.value,
            ", ".join(p.value for p in rule.platforms),
            rule.default_severity.value,
            rule.description,
        )

    console.print(table)


@app.command()
def packs(json_output: JsonOption = False) -> None:
    """List rule packs."""
    if json_output:
        output = {
            "packs": {
                name: {"name": pack.name, "description": pack.description, "rules": pack.rules}
                for name, pack in RULE_PACKS.items()
            },
            "count": len(RULE_PACKS),
        }
        print(json.dumps(output, indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Pack", style="cyan")
    table.add_column("Name")
    table.add_column("Rules", justify="right")
    table.add_column("Description")

    for name, pack in RULE_PACKS.items():
        table.add_row(name, pack.name, str(len(pack.rules)), pack.description)

    console.print(table)


# =============================================================================
# Wrap
# =============================================================================


@app.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
def wrap(
    command: Annotated[
        list[str],
        typer.Argument(help="Command and arguments to run."),
    ],
    fail_closed: Annotated[
        bool,
        typer.Option(
            "--fail-closed",
            help="Refuse to run when the config file cannot be loaded.",
        ),
    ] = False,
    timeout: Annotated[
        float,
        typer.Option("--timeout", help="Seconds before the command is killed."),
    ] = DEFAULT_TIMEOUT_SECONDS,
) -> None:
    """
    Run a command, checking it first when Veil is active.

    Veil is active when VEIL_ENABLED=1 (or VEIL_FORCE=1) is set, typically
    only in terminals an agent drives. Without a config file the command
    runs unchecked.

    Example:
        $ VEIL_ENABLED=1 veil wrap git push --force
    """
    command_line = " ".join(command)
    veil = Veil()

    if is_veil_active():
        config_dir = find_config_dir(Path.cwd())
        if config_dir is not None:
            try:
                loaded = load_config(config_dir, fail_open=not fail_closed)
            except ConfigLoadError as e:
                err_console.print(f"[red]{escape(str(e))}[/red]")
                raise typer.Exit(code=1)
            if loaded is not None:
                veil = Veil(loaded)

    outcome = run_command(veil, command_line, timeout=timeout, capture=False)

    if outcome.blocked is not None:
        err_console.print()
        err_console.print("[bold red]Command blocked by Veil security policy[/bold red]")
        err_console.print()
        err_console.print(f"Reason: {escape(outcome.blocked.reason)}")
        if outcome.blocked.safe_alternatives:
            err_console.print()
            err_console.print("Safe alternatives:")
            for alternative in outcome.blocked.safe_alternatives:
                err_console.print(f"  - {escape(alternative)}")
        raise typer.Exit(code=1)

    if outcome.rewritten:
        err_console.print(f"[yellow]Veil: command rewritten to: {escape(outcome.executed)}[/yellow]")

    if outcome.error is not None:
        err_console.print(f"[red]{escape(str(outcome.error))}[/red]")
        raise typer.Exit(code=1)

    raise typer.Exit(code=outcome.return_code or 0)
