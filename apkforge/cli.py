"""
APKForge CLI.

Command-line host for the APKForge commands. Turns flags into normalized
requests, runs the matching flow and renders the outcome.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.config import Config, get_config
from .core.context import ForgeContext
from .core.exceptions import ToolUnavailableError, ValidationError
from .core.logging import setup_logging
from .models.project import CommandOutcome
from .models.tools import ToolUpdate
from .services.tool_lifecycle import ToolLifecycleManager
from .tools.quark import read_report

app = typer.Typer(
    name="apkforge",
    help="Decode, analyze, rebuild and install Android packages",
    add_completion=False,
)
split_app = typer.Typer(help="Batch operations on split package projects")
tools_app = typer.Typer(help="Manage the downloaded tools")
app.add_typer(split_app, name="split")
app.add_typer(tools_app, name="tools")

console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from . import __version__
        console.print(f"APKForge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging"),
) -> None:
    """APKForge: orchestrate apktool, jadx, quark, adb and friends."""
    config = get_config()
    if verbose:
        config.log_level = "DEBUG"
    setup_logging(config)


async def _advisory_update_check(config: Config) -> list[ToolUpdate]:
    context = ForgeContext.create(config)
    try:
        return await ToolLifecycleManager(context).check_for_updates()
    finally:
        context.close()


def _show_updates(updates: list[ToolUpdate]) -> None:
    for update in updates:
        console.print(
            f"[yellow]Update available:[/yellow] {update.name} "
            f"{update.installed_version} → {update.latest_version} "
            "(run [bold]apkforge tools update --install[/bold])"
        )


def _run(flow_call: Callable[[], Awaitable[CommandOutcome]]) -> CommandOutcome:
    """Run a flow; the advisory update check runs alongside it and never delays it."""
    config = get_config()

    async def run_async() -> CommandOutcome:
        update_task = None
        if config.tools.check_updates_on_start:
            update_task = asyncio.create_task(_advisory_update_check(config))
        outcome = await flow_call()
        if update_task is not None:
            if not update_task.done():
                update_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await update_task
            elif not update_task.cancelled() and update_task.exception() is None:
                _show_updates(update_task.result())
        return outcome

    outcome = asyncio.run(run_async())
    _render(outcome)
    return outcome


def _render(outcome: CommandOutcome) -> None:
    if outcome.success:
        console.print(f"\n[bold green]✓ {outcome.command} completed[/bold green]")
    else:
        console.print(f"\n[bold red]✗ {outcome.command} failed[/bold red]")

    if outcome.details:
        table = Table(title=outcome.command)
        table.add_column("Property", style="cyan")
        table.add_column("Value")
        for key, value in outcome.details.items():
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value) or "-"
            table.add_row(key, str(value))
        console.print(table)

    for error in outcome.errors:
        console.print(f"  [red]• {error}[/red]")

    if not outcome.success:
        raise typer.Exit(1)


@app.command()
def decode(
    apk_path: Path = typer.Argument(
        ...,
        help="Package to decode (the base package of a split set)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    apktool_args: Optional[List[str]] = typer.Option(
        None, "--apktool-arg", "-a", help="Extra apktool decode argument (repeatable)"
    ),
    decompile: bool = typer.Option(False, "--decompile", "-j", help="Decompile Java sources with jadx"),
    jadx_args: Optional[List[str]] = typer.Option(
        None, "--jadx-arg", help="Extra jadx argument (repeatable, needs --decompile)"
    ),
    analyze: bool = typer.Option(False, "--analyze", "-q", help="Run quark-engine static analysis"),
    split: Optional[bool] = typer.Option(
        None, "--split/--no-split", help="Treat as a split package set (detected when omitted)"
    ),
    open_workspace: Optional[bool] = typer.Option(
        None, "--open/--no-open", help="Open the project when done (config default when omitted)"
    ),
) -> None:
    """Decode a package into a new project directory."""
    from .orchestration import decode_flow

    console.print(Panel.fit(f"[bold blue]APKForge[/bold blue]\nDecoding {apk_path.name}", border_style="blue"))
    _run(
        lambda: decode_flow(
            apk_path=apk_path,
            decode_args=apktool_args or [],
            decompile=decompile,
            decompile_args=jadx_args or [],
            analyze=analyze,
            split=split,
            open_workspace_after=open_workspace,
        )
    )


@app.command()
def rebuild(
    apktool_yml: Path = typer.Argument(
        ..., help="apktool.yml of the project (or the project directory)", exists=True, resolve_path=True
    ),
    args: Optional[List[str]] = typer.Option(None, "--arg", "-a", help="Extra apktool build argument"),
    install: bool = typer.Option(False, "--install", "-i", help="Install the rebuilt package afterwards"),
) -> None:
    """Rebuild and sign a decoded project."""
    from .orchestration import rebuild_flow

    _run(lambda: rebuild_flow(apktool_yml=apktool_yml, args=args or [], install=install))


@app.command("rebuild-install")
def rebuild_install(
    apktool_yml: Path = typer.Argument(
        ..., help="apktool.yml of the project (or the project directory)", exists=True, resolve_path=True
    ),
    args: Optional[List[str]] = typer.Option(None, "--arg", "-a", help="Extra apktool build argument"),
) -> None:
    """Rebuild a decoded project and install it on the attached device."""
    from .orchestration import rebuild_flow

    _run(lambda: rebuild_flow(apktool_yml=apktool_yml, args=args or [], install=True))


@app.command()
def install(
    apk_path: Path = typer.Argument(..., help="Package to install", exists=True, dir_okay=False, resolve_path=True),
) -> None:
    """Install a package on the attached device."""
    from .orchestration import install_flow

    _run(lambda: install_flow(apk_path=apk_path))


@app.command("patch-https")
def patch_https(
    apk_path: Path = typer.Argument(..., help="Package to patch", exists=True, dir_okay=False, resolve_path=True),
) -> None:
    """Patch a package so its HTTPS traffic can be inspected."""
    from .orchestration import patch_https_flow

    _run(lambda: patch_https_flow(apk_path=apk_path))


@app.command("empty-framework")
def empty_framework() -> None:
    """Empty apktool's framework resource directory."""
    from .orchestration import empty_framework_flow

    _run(empty_framework_flow)


def _split_dir_argument() -> Path:
    return typer.Argument(
        ..., help="Shared split project directory (or a member's apktool.yml)", exists=True, resolve_path=True
    )


@split_app.command("rebuild")
def split_rebuild(
    project_dir: Path = _split_dir_argument(),
    args: Optional[List[str]] = typer.Option(None, "--arg", "-a", help="Extra apktool build argument"),
) -> None:
    """Rebuild every member of a split project."""
    from .orchestration import split_batch_flow

    _run(lambda: split_batch_flow(project_dir=project_dir, rebuild=True, install=False, args=args or []))


@split_app.command("install")
def split_install(project_dir: Path = _split_dir_argument()) -> None:
    """Install every rebuilt member of a split project."""
    from .orchestration import split_batch_flow

    _run(lambda: split_batch_flow(project_dir=project_dir, rebuild=False, install=True))


@split_app.command("rebuild-install")
def split_rebuild_install(
    project_dir: Path = _split_dir_argument(),
    args: Optional[List[str]] = typer.Option(None, "--arg", "-a", help="Extra apktool build argument"),
) -> None:
    """Rebuild every member of a split project and install the ones that rebuilt."""
    from .orchestration import split_batch_flow

    _run(lambda: split_batch_flow(project_dir=project_dir, rebuild=True, install=True, args=args or []))


@tools_app.command("check")
def tools_check() -> None:
    """Download any missing or outdated tool and show what is installed."""
    context = ForgeContext.create(get_config())
    manager = ToolLifecycleManager(context)
    try:
        descriptors = asyncio.run(manager.ensure_tools_ready())
    except ToolUnavailableError as e:
        console.print(f"[red]Can't download/update dependencies![/red]\n{e}")
        raise typer.Exit(1)
    finally:
        context.close()

    table = Table(title="Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Installed")
    table.add_column("Required")
    table.add_column("Path")
    for descriptor in descriptors:
        table.add_row(
            descriptor.name,
            descriptor.installed_version or "-",
            descriptor.expected_version_constraint,
            str(descriptor.entry_point(context.data_dir)),
        )
    console.print(table)


@tools_app.command("update")
def tools_update(
    install_updates: bool = typer.Option(False, "--install", help="Install the newer releases found"),
) -> None:
    """Check GitHub for newer tool releases."""
    config = get_config()
    context = ForgeContext.create(config)
    manager = ToolLifecycleManager(context)

    async def run_async() -> list[ToolUpdate]:
        updates = await manager.check_for_updates()
        if install_updates:
            await manager.apply_updates(updates)
        return updates

    try:
        updates = asyncio.run(run_async())
    except ToolUnavailableError as e:
        console.print(f"[red]Can't download/update dependencies![/red]\n{e}")
        raise typer.Exit(1)
    finally:
        context.close()

    if not updates:
        console.print("[green]All tools are up to date[/green]")
    elif install_updates:
        for update in updates:
            console.print(f"[green]Updated[/green] {update.name} to {update.latest_version}")
    else:
        _show_updates(updates)


@app.command()
def report(
    path: Path = typer.Argument(
        ..., help="Project directory holding quarkReport.json (or the report itself)", exists=True, resolve_path=True
    ),
    min_confidence: int = typer.Option(
        0, "--min-confidence", "-c", min=0, max=100, help="Hide crimes below this confidence percentage"
    ),
) -> None:
    """Summarize the quark-engine report of a project."""
    try:
        quark_report = asyncio.run(read_report(path))
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(
        Panel.fit(
            f"[bold]{quark_report.apk_filename or path.name}[/bold]\n"
            f"Threat level: [yellow]{quark_report.threat_level or '-'}[/yellow]  "
            f"Total score: {quark_report.total_score:g}",
            title="Quark report",
            border_style="blue",
        )
    )

    crimes = quark_report.ranked(min_confidence)
    table = Table(title=f"{len(crimes)} of {len(quark_report.crimes)} crimes")
    table.add_column("Confidence", justify="right")
    table.add_column("Crime", style="cyan")
    table.add_column("Weight", justify="right")
    table.add_column("Permissions")
    for crime in crimes:
        table.add_row(crime.confidence, crime.crime, f"{crime.weight:g}", ", ".join(crime.permissions) or "-")
    console.print(table)


@app.command()
def config() -> None:
    """Show the current configuration."""
    cfg = get_config()

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Log Level", cfg.log_level)
    table.add_row("Data Directory", str(cfg.data_dir))
    table.add_row("Non-interactive", str(cfg.non_interactive))
    table.add_row("Init Project As Git", str(cfg.project.init_project_dir_as_git))
    table.add_row("Open Workspace After", str(cfg.project.open_workspace_after))
    table.add_row("Editor", cfg.project.editor_command or "(system default)")
    table.add_row("Commit Message", cfg.project.vcs_commit_message)
    table.add_row("apktool", cfg.tools.apktool_version)
    table.add_row("jadx", cfg.tools.jadx_version)
    table.add_row("uber-apk-signer", cfg.tools.uber_apk_signer_version)
    table.add_row("java", cfg.tools.java_path)
    table.add_row("adb", cfg.tools.adb_path)
    table.add_row("git", cfg.tools.git_path)
    table.add_row("quark", cfg.tools.quark_path)
    table.add_row("apk-mitm", cfg.tools.apk_mitm_path)
    table.add_row("Update Policy", cfg.tools.update_policy.value)

    console.print(table)

    console.print("\n[dim]Configure via environment variables:[/dim]")
    console.print("  APKFORGE_LOG_LEVEL, APKFORGE_DATA_DIR, APKFORGE_INIT_GIT, APKFORGE_EDITOR")
    console.print("  APKFORGE_UPDATE_POLICY, APKFORGE_CHECK_UPDATES, APKFORGE_NON_INTERACTIVE")
    console.print("  APKFORGE_COMMIT_MESSAGE, APKFORGE_OPEN_WORKSPACE")
    console.print("  APKFORGE_JAVA, APKFORGE_ADB, APKFORGE_GIT, APKFORGE_QUARK, APKFORGE_APK_MITM")
    console.print("  APKFORGE_APKTOOL_VERSION, APKFORGE_JADX_VERSION, APKFORGE_SIGNER_VERSION")


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
