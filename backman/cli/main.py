"""
BackMan CLI entry point.

Commands:
    backman run        — Run the scheduler in the foreground
    backman list       — Show stored tasks
    backman paths      — Show where tasks, config and logs live
    backman autostart  — Start BackMan at logon (Windows)
    backman version    — Show version
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from backman.core.config import BackmanConfig, get_backman_home
from backman.core.errors import ConfigError, StoreError
from backman.scheduler.task import FOREVER, NEVER

app = typer.Typer(
    name="backman",
    help="BackMan — start programs at logon, on a calendar, or every N minutes.",
    add_completion=False,
)

console = Console()


def _load_config(config_file: Path | None) -> BackmanConfig:
    try:
        return BackmanConfig.load(project_path=config_file)
    except ConfigError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(2)


def _fmt(moment: datetime) -> str:
    if moment == NEVER:
        return "never"
    if moment == FOREVER:
        return "not scheduled"
    return moment.strftime("%Y-%m-%d %H:%M")


@app.command()
def run(
    config_file: Path = typer.Option(None, "--config", "-c", help="Extra TOML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log launches instead of starting programs"),
    no_startup: bool = typer.Option(False, "--no-startup", help="Skip startup tasks this time"),
) -> None:
    """Run the scheduler until interrupted.

    On Unix, SIGHUP reloads the task file and SIGUSR1 restarts the scheduler.
    """
    config = _load_config(config_file)
    asyncio.run(_run(config, verbose, dry_run, no_startup))


async def _run(config: BackmanConfig, verbose: bool, dry_run: bool, no_startup: bool) -> None:
    from backman.core.bus import EventBus
    from backman.core.events import Event, EventType
    from backman.core.logging import EventLogger, setup_logging
    from backman.launch.detect import detect_launcher
    from backman.scheduler.dispatcher import Dispatcher
    from backman.scheduler.engine import SchedulerEngine
    from backman.scheduler.store import TaskStore

    log_dir = config.get_log_dir()
    setup_logging(
        log_dir=log_dir,
        console_level=logging.DEBUG if verbose else config.logging.console_level,
        file_level=config.logging.file_level,
    )
    logger = logging.getLogger("backman")

    bus = EventBus()
    bus.on(EventType.ALL, EventLogger(log_dir=log_dir).handle)

    async def on_launched(event: Event) -> None:
        mark = " [yellow](admin)[/yellow]" if event.data.get("elevated") else ""
        console.print(f"[green]▶[/green] {event.data['task_name']}{mark}")

    async def on_failed(event: Event) -> None:
        console.print(f"[red]✗ {event.data['task_name']}: {event.data.get('error', '')}[/red]")

    async def on_reload(event: Event) -> None:
        console.print(f"[dim]Reloaded {event.data.get('tasks', 0)} tasks[/dim]")

    bus.on(EventType.TASK_LAUNCHED, on_launched)
    bus.on(EventType.TASK_FAILED, on_failed)
    bus.on(EventType.SCHEDULER_RELOAD, on_reload)

    if dry_run:
        launcher = detect_launcher("mock")
    else:
        launcher = detect_launcher(
            config.launcher.provider,
            elevation_helper=config.launcher.elevation_helper,
        )
    dispatcher = Dispatcher(
        launcher,
        elevation_delay=config.scheduler.elevation_delay,
        bus=bus,
        powershell=config.launcher.powershell,
    )
    engine = SchedulerEngine(
        TaskStore(config.get_store_path()),
        dispatcher,
        poll_interval=config.scheduler.poll_interval,
        seed_example=config.store.seed_example,
        run_startup_tasks=config.scheduler.run_startup_tasks and not no_startup,
        bus=bus,
    )

    logger.info(f"Starting BackMan, tasks file {config.get_store_path()}")
    await engine.start()
    console.print(f"[bold cyan]{engine.status_line()}[/bold cyan]")
    console.print(f"[dim]Tasks: {config.get_store_path()}  (Ctrl-C to exit)[/dim]")

    pending: set[asyncio.Task] = set()
    installed = _install_signal_handlers(engine, pending)
    try:
        await engine.wait_closed()
    finally:
        loop = asyncio.get_running_loop()
        for signum in installed:
            loop.remove_signal_handler(signum)
        await engine.stop()


# Signal → engine command. Windows event loops have no signal handlers;
# Ctrl-C cancels the run there instead.
SIGNAL_COMMANDS = {
    "SIGHUP": "reload",
    "SIGUSR1": "restart",
    "SIGINT": "terminate",
    "SIGTERM": "terminate",
}


def _install_signal_handlers(engine, pending: set[asyncio.Task]) -> list[int]:
    """Route signals to engine commands. Returns the signals handled."""
    loop = asyncio.get_running_loop()
    installed: list[int] = []
    for name, command in SIGNAL_COMMANDS.items():
        signum = getattr(signal, name, None)
        if signum is None:
            continue

        def fire(send=getattr(engine, command)) -> None:
            task = loop.create_task(send())
            pending.add(task)
            task.add_done_callback(pending.discard)

        try:
            loop.add_signal_handler(signum, fire)
        except (NotImplementedError, RuntimeError):
            continue
        installed.append(signum)
    return installed


@app.command(name="list")
def list_tasks(
    config_file: Path = typer.Option(None, "--config", "-c", help="Extra TOML config file"),
) -> None:
    """Show stored tasks and when they run next."""
    from backman.scheduler.store import TaskStore
    from backman.scheduler.triggers import make_trigger

    config = _load_config(config_file)
    store = TaskStore(config.get_store_path())
    if not store.exists():
        console.print(
            f"[dim]No tasks yet. Run [bold]backman run[/bold] once to create "
            f"{store.path}[/dim]"
        )
        raise typer.Exit(0)

    try:
        tasks = asyncio.run(store.load())
    except StoreError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"BackMan - {len(tasks)} Tasks", border_style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Schedule")
    table.add_column("Next run")
    table.add_column("Last run", style="dim")
    table.add_column("Admin", justify="center")
    table.add_column("Enabled", justify="center")
    for task in tasks:
        table.add_row(
            task.name or "[dim](unnamed)[/dim]",
            make_trigger(task).description,
            _fmt(task.next_run),
            _fmt(task.last_run),
            "✓" if task.run_as_admin else "",
            "✓" if task.enabled else "[red]disabled[/red]",
        )
    console.print(table)
    console.print(f"[dim]Config: {store.path}[/dim]")


@app.command()
def paths(
    config_file: Path = typer.Option(None, "--config", "-c", help="Extra TOML config file"),
) -> None:
    """Show where BackMan keeps its files."""
    config = _load_config(config_file)
    console.print(f"[bold]Tasks:[/bold]  {config.get_store_path()}")
    console.print(f"[bold]Config:[/bold] {get_backman_home() / 'config.toml'}")
    console.print(f"[bold]Logs:[/bold]   {config.get_log_dir()}")


@app.command()
def autostart(
    remove: bool = typer.Option(False, "--remove", help="Remove the logon entry"),
) -> None:
    """Start BackMan automatically when you log on (Windows only)."""
    from backman.bootstrap import register_autostart, unregister_autostart

    if remove:
        ok = unregister_autostart()
        console.print("Autostart removed" if ok else "[dim]No autostart entry removed[/dim]")
        return

    command = f'"{sys.executable}" -m backman run'
    if register_autostart(command):
        console.print(f"Autostart registered: [cyan]{command}[/cyan]")
    else:
        console.print("[yellow]Autostart could not be registered on this system[/yellow]")


@app.command()
def version() -> None:
    """Show BackMan version."""
    from backman import __version__
    console.print(f"BackMan v{__version__}")


if __name__ == "__main__":
    app()
