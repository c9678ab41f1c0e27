"""CLI entry point using typer."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Awaitable, Callable

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from gucli import __version__
from gucli.config import (
    CONFIG_DIR,
    CONFIG_FILE,
    AppConfig,
    ensure_config_dir,
    expand,
    load_commands,
    load_config,
    save_commands,
    save_config,
    tomllib,
    write_default_commands,
)
from gucli.services.help_probe import HelpProbe
from gucli.services.notifier import NotificationDispatcher
from gucli.services.registry import CommandRegistry, UnknownCommandError, ValidationError
from gucli.services.runner import CommandRunner, RunReport
from gucli.services.supervisor import ProcessSupervisor
from gucli.storage.history import HistoryLog
from gucli.storage.models import CommandDefinition, Shell
from gucli.utils.formatting import format_duration, status_tag
from gucli.utils.system import check_notify_send, check_shell
from gucli.utils.terminal import LineReader

app = typer.Typer(
    name="gucli",
    help="Run shell commands from a menu and get the results as desktop notifications.",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)


def setup_logging(config: AppConfig) -> None:
    log_path = expand(config.logging.file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    console_handler = RichHandler(console=Console(stderr=True), show_path=False)
    console_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(str(log_path)),
            console_handler,
        ],
    )


def _load_registry(config: AppConfig) -> CommandRegistry:
    path = expand(config.commands.file)
    if not path.exists():
        console.print(f"[red]Commands file not found: {path}[/red]")
        console.print("Run [bold]gucli init[/bold] first.")
        raise typer.Exit(1)
    try:
        return load_commands(path)
    except ValidationError as e:
        console.print(f"[red]Invalid commands file {path}:[/red] {e}")
        raise typer.Exit(1)
    except tomllib.TOMLDecodeError as e:
        console.print(f"[red]Cannot parse {path}:[/red] {e}")
        raise typer.Exit(1)


def _build_runner(config: AppConfig, registry: CommandRegistry) -> CommandRunner:
    notifier = NotificationDispatcher(
        app_name=config.notifications.app_name,
        icon=config.notifications.icon,
    )
    return CommandRunner(
        registry=registry,
        supervisor=ProcessSupervisor(),
        notifier=notifier,
        history=HistoryLog(expand(config.history.file), notifier=notifier),
    )


def _print_report(report: RunReport) -> None:
    color = "red" if report.result.is_error else "green"
    tag = status_tag(report.result)
    console.print(
        f"[{color}][{tag}][/{color}] [bold]{escape(report.definition.command)}[/bold] "
        f"[dim]({format_duration(report.result.duration_ms)})[/dim]"
    )
    console.print(f"  {report.formatted.text}", markup=False, highlight=False)


async def _run_many(runner: CommandRunner, definitions: list[CommandDefinition]) -> list[RunReport]:
    try:
        return await asyncio.gather(*(runner.execute(d) for d in definitions))
    finally:
        await runner.supervisor.shutdown()


@app.callback()
def main() -> None:
    setup_logging(load_config())


@app.command()
def init(
    reset: bool = typer.Option(False, "--reset", help="Overwrite an existing commands file"),
) -> None:
    """Create the config directory and a default commands file."""
    console.print(f"\n[bold]gucli v{__version__}[/bold]\n")

    installed, version_info = check_notify_send()
    if installed:
        console.print(f"  notify-send: [green]{version_info}[/green]")
    else:
        console.print(f"  [yellow]Warning: {version_info}[/yellow]")
        console.print("  Results will only be written to the history log.")

    ensure_config_dir()
    config = load_config()
    if not CONFIG_FILE.exists():
        save_config(config)
        console.print(f"  Config: [green]{CONFIG_FILE}[/green]")

    path = expand(config.commands.file)
    if write_default_commands(path, reset=reset):
        console.print(f"  Commands: [green]{path}[/green]")
    else:
        console.print(f"  Commands: {path} [dim](exists, use --reset to overwrite)[/dim]")


@app.command("list")
def list_commands() -> None:
    """Show registered commands in menu order."""
    registry = _load_registry(load_config())

    table = Table(title="Commands")
    table.add_column("#", style="dim")
    table.add_column("Icon")
    table.add_column("Command", style="cyan")
    table.add_column("Shell")
    table.add_column("Notify")

    for i, definition in enumerate(registry.list(), 1):
        available, _ = check_shell(definition.shell)
        shell = definition.shell.value if available else f"[red]{definition.shell.value} (missing)[/red]"
        table.add_row(str(i), definition.icon, definition.command, shell, "yes" if definition.notify else "errors only")

    console.print(table)


@app.command()
def add(
    command: str = typer.Argument(..., help="Command string to register"),
    shell: Shell = typer.Option(Shell.DEFAULT, "--shell", "-s", help="Shell to run it with"),
    icon: str = typer.Option("", "--icon", "-i", help="Menu icon (up to 8 characters)"),
    notify: bool = typer.Option(True, "--notify/--no-notify", help="Notify on success"),
) -> None:
    """Register a command at the end of the menu."""
    config = load_config()
    registry = _load_registry(config)
    definition = CommandDefinition(command=command, shell=shell, icon=icon, notify=notify)
    _save_registry(config, [*registry.list(), definition])
    console.print(f"[green]Added:[/green] {escape(command)}")


@app.command()
def remove(
    command: str = typer.Argument(..., help="Registered command string"),
) -> None:
    """Unregister a command."""
    config = load_config()
    registry = _load_registry(config)
    if command not in registry:
        console.print(f"[red]Unknown command: {escape(command)}[/red]")
        raise typer.Exit(1)
    _save_registry(config, [d for d in registry if d.command != command])
    console.print(f"[green]Removed:[/green] {escape(command)}")


def _save_registry(config: AppConfig, definitions: list[CommandDefinition]) -> None:
    try:
        registry = CommandRegistry.load(definitions)
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    save_commands(expand(config.commands.file), registry)


@app.command()
def run(
    commands: list[str] = typer.Argument(..., help="Registered command strings to run"),
) -> None:
    """Run registered commands, as a menu click would."""
    config = load_config()
    registry = _load_registry(config)
    try:
        definitions = [registry.get(c) for c in commands]
    except UnknownCommandError as e:
        console.print(f"[red]Unknown command: {e.args[0]}[/red]")
        console.print("Use [bold]gucli list[/bold] to see registered commands.")
        raise typer.Exit(1)

    reports = asyncio.run(_run_many(_build_runner(config, registry), definitions))
    for report in reports:
        _print_report(report)

    if any(r.result.is_error for r in reports):
        raise typer.Exit(1)


@app.command()
def test(
    command: str = typer.Argument(..., help="Command string to try"),
    shell: Shell = typer.Option(Shell.DEFAULT, "--shell", "-s", help="Shell to run it with"),
    notify: bool = typer.Option(True, "--notify/--no-notify", help="Notify on success"),
) -> None:
    """Run an ad-hoc command through the same pipeline without registering it."""
    config = load_config()
    definition = CommandDefinition(command=command, shell=shell, notify=notify)
    try:
        registry = CommandRegistry.load([definition])
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    (report,) = asyncio.run(_run_many(_build_runner(config, registry), [definition]))
    _print_report(report)
    if report.result.is_error:
        raise typer.Exit(1)


@app.command()
def menu() -> None:
    """Interactive command menu. Runs until 'q' or Ctrl+D."""
    config = load_config()
    registry = _load_registry(config)
    definitions = registry.list()
    if not definitions:
        console.print("[yellow]No commands registered.[/yellow]")
        return

    reader = LineReader()
    try:
        asyncio.run(_menu_loop(_build_runner(config, registry), definitions, reader.readline))
    except KeyboardInterrupt:
        pass
    except PermissionError:
        # epoll refuses regular files
        console.print("[red]The menu needs a terminal or a pipe on stdin.[/red]")
        raise typer.Exit(1)
    console.print("\n[dim]Menu closed.[/dim]")


async def _menu_loop(
    runner: CommandRunner,
    definitions: list[CommandDefinition],
    read_line: Callable[[], Awaitable[str]],
) -> None:
    pending: set[asyncio.Task] = set()

    async def run_one(definition: CommandDefinition) -> None:
        _print_report(await runner.execute(definition))

    try:
        while True:
            for i, definition in enumerate(definitions, 1):
                console.print(f"  [bold]{i}[/bold]  {escape(definition.icon)}  {escape(definition.command)}")
            console.print("Run # (q to quit): ", end="")
            try:
                choice = (await read_line()).strip()
            except EOFError:
                break
            if choice.lower() in ("q", "quit"):
                break
            if not choice.isdigit() or not 1 <= int(choice) <= len(definitions):
                console.print(f"[red]Choose 1-{len(definitions)}[/red]")
                continue
            task = asyncio.create_task(run_one(definitions[int(choice) - 1]))
            pending.add(task)
            task.add_done_callback(pending.discard)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
    finally:
        await runner.supervisor.shutdown()
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)


@app.command()
def man(
    command: str = typer.Argument(..., help="Command to look up"),
) -> None:
    """Look up usage text for a command (--help, then man)."""
    helper = HelpProbe(ProcessSupervisor())
    text = asyncio.run(helper.discover(command))
    console.print(text, markup=False, highlight=False)


@app.command()
def history(
    lines: int = typer.Option(20, "--lines", "-n", help="Number of entries"),
) -> None:
    """Show the most recent results, newest first."""
    config = load_config()
    log = HistoryLog(expand(config.history.file))
    try:
        entries = log.read_entries(limit=lines)
    except OSError as e:
        console.print(f"[red]Cannot read history: {e}[/red]")
        raise typer.Exit(1)

    if not entries:
        console.print("[dim]No history yet.[/dim]")
        return

    table = Table(title="History")
    table.add_column("Time", style="dim")
    table.add_column("Command", style="cyan")
    table.add_column("Result")
    for entry in entries:
        table.add_row(entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"), entry.command, entry.summary)
    console.print(table)


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Restore the default commands file."""
    path = expand(load_config().commands.file)
    if not yes and not typer.confirm(f"Overwrite {path} with defaults?", default=False):
        raise typer.Exit(1)
    write_default_commands(path, reset=True)
    console.print("[green]Settings reset to default.[/green]")


@app.command()
def config(
    key: str = typer.Argument(None, help="Config key (e.g., logging.level)"),
    value: str = typer.Argument(None, help="New value"),
) -> None:
    """View or modify configuration."""
    cfg = load_config()
    section_map = {
        "notifications": cfg.notifications,
        "history": cfg.history,
        "commands": cfg.commands,
        "logging": cfg.logging,
    }

    if key is None:
        table = Table(title="Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        for section, obj in section_map.items():
            for attr, current in vars(obj).items():
                table.add_row(f"{section}.{attr}", str(current))
        console.print(table)
        return

    if value is None:
        console.print("[red]Usage: gucli config <key> <value>[/red]")
        raise typer.Exit(1)

    parts = key.split(".")
    if len(parts) != 2:
        console.print("[red]Key format: section.key (e.g., logging.level)[/red]")
        raise typer.Exit(1)

    section, attr = parts
    if section not in section_map:
        console.print(f"[red]Unknown section: {section}[/red]")
        raise typer.Exit(1)

    obj = section_map[section]
    if not hasattr(obj, attr):
        console.print(f"[red]Unknown key: {key}[/red]")
        raise typer.Exit(1)

    setattr(obj, attr, value)
    save_config(cfg)
    console.print(f"[green]{key} = {value}[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"gucli v{__version__}")

    installed, version_info = check_notify_send()
    if installed:
        console.print(f"notify-send: {version_info}")
    else:
        console.print("notify-send: [yellow]not installed[/yellow]")

    console.print(f"Python: {sys.version.split()[0]}")
    console.print(f"Config: {CONFIG_DIR}")


if __name__ == "__main__":
    app()
