"""Command-line interface for taskboard."""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional

import typer
from rich.console import Console
from rich.table import Table

from taskboard.logging_setup import configure_logging
from taskboard.models import Subtask, TaskboardSettings, TaskKind, TaskStatus
from taskboard.models.task import TaskBase
from taskboard.persistence import FileBackedTaskManager

app = typer.Typer(
    name="taskboard",
    help="Track tasks, epics and subtasks in a CSV-backed board",
    add_completion=False,
)
console = Console()

DATETIME_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S"]

STATUS_STYLES = {
    TaskStatus.NEW: "white",
    TaskStatus.IN_PROGRESS: "yellow",
    TaskStatus.DONE: "green",
}


@app.callback()
def main_callback() -> None:
    """Configure logging before any command runs."""
    configure_logging(TaskboardSettings().log_level)


def _open_board(file: Optional[Path]) -> FileBackedTaskManager:
    settings = TaskboardSettings()
    if file is None:
        settings.ensure_data_dir()
        file = settings.data_file
    return FileBackedTaskManager.load_from_file(file, settings)


def _fmt_time(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def _fmt_duration(value: timedelta) -> str:
    minutes = int(value.total_seconds() // 60)
    return f"{minutes}m" if minutes else "-"


def _print_table(title: str, entities: Iterable[TaskBase]) -> None:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Type", style="blue")
    table.add_column("Name", style="white")
    table.add_column("Status")
    table.add_column("Epic", justify="right")
    table.add_column("Start", style="blue")
    table.add_column("Duration", justify="right", style="yellow")

    for entity in entities:
        style = STATUS_STYLES[entity.status]
        table.add_row(
            str(entity.id),
            entity.kind.value,
            entity.name[:40],
            f"[{style}]{entity.status.value}[/{style}]",
            str(entity.epic_id) if isinstance(entity, Subtask) else "",
            _fmt_time(entity.start_time),
            _fmt_duration(entity.duration),
        )

    console.print(table)


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


FileOption = typer.Option(None, "--file", "-f", help="CSV task file (defaults to settings)")


@app.command()
def add_task(
    name: str = typer.Argument(..., help="Task name"),
    description: str = typer.Option("", "--description", "-d", help="Task description"),
    start: Optional[datetime] = typer.Option(None, "--start", "-s", formats=DATETIME_FORMATS, help="Start time"),
    duration: int = typer.Option(0, "--duration", "-m", min=0, help="Duration in minutes"),
    file: Optional[Path] = FileOption,
) -> None:
    """Create a standalone task."""
    try:
        board = _open_board(file)
        task_id = board.create_task(
            name, description, duration=timedelta(minutes=duration), start_time=start
        )
        console.print(f"[bold green]✓[/bold green] Created task {task_id}")
    except Exception as e:
        _fail(e)


@app.command()
def add_epic(
    name: str = typer.Argument(..., help="Epic name"),
    description: str = typer.Option("", "--description", "-d", help="Epic description"),
    file: Optional[Path] = FileOption,
) -> None:
    """Create an epic."""
    try:
        board = _open_board(file)
        epic_id = board.create_epic(name, description)
        console.print(f"[bold green]✓[/bold green] Created epic {epic_id}")
    except Exception as e:
        _fail(e)


@app.command()
def add_subtask(
    epic_id: int = typer.Argument(..., help="Owning epic id"),
    name: str = typer.Argument(..., help="Subtask name"),
    description: str = typer.Option("", "--description", "-d", help="Subtask description"),
    start: Optional[datetime] = typer.Option(None, "--start", "-s", formats=DATETIME_FORMATS, help="Start time"),
    duration: int = typer.Option(0, "--duration", "-m", min=0, help="Duration in minutes"),
    file: Optional[Path] = FileOption,
) -> None:
    """Create a subtask under an epic."""
    try:
        board = _open_board(file)
        subtask_id = board.create_subtask(
            name, description, epic_id, duration=timedelta(minutes=duration), start_time=start
        )
        console.print(f"[bold green]✓[/bold green] Created subtask {subtask_id} in epic {epic_id}")
    except Exception as e:
        _fail(e)


@app.command()
def show(
    entity_id: int = typer.Argument(..., help="Id of a task, epic or subtask"),
    file: Optional[Path] = FileOption,
) -> None:
    """Show one entity (and record the view in history)."""
    try:
        board = _open_board(file)
        kind = board.kind_of(entity_id)
        if kind is None:
            console.print(f"[yellow]No entity with id {entity_id}[/yellow]")
            raise typer.Exit(1)

        getter = {
            TaskKind.TASK: board.get_task,
            TaskKind.EPIC: board.get_epic,
            TaskKind.SUBTASK: board.get_subtask,
        }[kind]
        entity = getter(entity_id)
        board.save()

        console.print(f"\n[bold]{entity.kind.value.title()} {entity.id}[/bold]")
        console.print(f"[cyan]Name:[/cyan] {entity.name}")
        console.print(f"[cyan]Description:[/cyan] {entity.description or '-'}")
        console.print(f"[cyan]Status:[/cyan] {entity.status.value}")
        console.print(f"[cyan]Start:[/cyan] {_fmt_time(entity.start_time)}")
        console.print(f"[cyan]End:[/cyan] {_fmt_time(entity.end_time)}")
        console.print(f"[cyan]Duration:[/cyan] {_fmt_duration(entity.duration)}")

        if kind is TaskKind.EPIC:
            _print_table("Subtasks", board.get_epic_subtasks(entity_id))
        elif kind is TaskKind.SUBTASK:
            console.print(f"[cyan]Epic:[/cyan] {entity.epic_id}")

    except typer.Exit:
        raise
    except Exception as e:
        _fail(e)


@app.command(name="list")
def list_entities(
    file: Optional[Path] = FileOption,
) -> None:
    """List every task, epic and subtask."""
    try:
        board = _open_board(file)
        entities, _ = board.export_state()
        _print_table("Board", entities)
    except Exception as e:
        _fail(e)


@app.command()
def set_status(
    entity_id: int = typer.Argument(..., help="Id of a task or subtask"),
    status: TaskStatus = typer.Argument(..., help="New status"),
    file: Optional[Path] = FileOption,
) -> None:
    """Change the status of a task or subtask."""
    try:
        board = _open_board(file)
        kind = board.kind_of(entity_id)
        if kind is TaskKind.TASK:
            task = board.peek(entity_id)
            task.status = status
            board.update_task(task)
        elif kind is TaskKind.SUBTASK:
            subtask = board.peek(entity_id)
            subtask.status = status
            board.update_subtask(subtask)
        elif kind is TaskKind.EPIC:
            console.print("[yellow]Epic status is derived from its subtasks[/yellow]")
            raise typer.Exit(1)
        else:
            console.print(f"[yellow]No entity with id {entity_id}[/yellow]")
            raise typer.Exit(1)

        console.print(f"[bold green]✓[/bold green] {entity_id} is now {status.value}")
    except typer.Exit:
        raise
    except Exception as e:
        _fail(e)


@app.command()
def schedule(
    entity_id: int = typer.Argument(..., help="Id of a task or subtask"),
    start: datetime = typer.Option(..., "--start", "-s", formats=DATETIME_FORMATS, help="Start time"),
    duration: int = typer.Option(..., "--duration", "-m", min=1, help="Duration in minutes"),
    file: Optional[Path] = FileOption,
) -> None:
    """Set the start time and duration of a task or subtask."""
    try:
        board = _open_board(file)
        kind = board.kind_of(entity_id)
        if kind is TaskKind.TASK:
            entity = board.peek(entity_id)
            update = board.update_task
        elif kind is TaskKind.SUBTASK:
            entity = board.peek(entity_id)
            update = board.update_subtask
        else:
            console.print(f"[yellow]No task or subtask with id {entity_id}[/yellow]")
            raise typer.Exit(1)

        entity.start_time = start
        entity.duration = timedelta(minutes=duration)
        update(entity)
        console.print(
            f"[bold green]✓[/bold green] {entity_id} scheduled "
            f"{_fmt_time(entity.start_time)} - {_fmt_time(entity.end_time)}"
        )
    except typer.Exit:
        raise
    except Exception as e:
        _fail(e)


@app.command()
def delete(
    entity_id: int = typer.Argument(..., help="Id of a task, epic or subtask"),
    file: Optional[Path] = FileOption,
) -> None:
    """Delete an entity (deleting an epic deletes its subtasks)."""
    try:
        board = _open_board(file)
        kind = board.kind_of(entity_id)
        if kind is TaskKind.TASK:
            board.delete_task(entity_id)
        elif kind is TaskKind.EPIC:
            board.delete_epic(entity_id)
        elif kind is TaskKind.SUBTASK:
            board.delete_subtask(entity_id)
        else:
            console.print(f"[yellow]Nothing to delete for id {entity_id}[/yellow]")
            return
        console.print(f"[bold green]✓[/bold green] Deleted {kind.value.lower()} {entity_id}")
    except Exception as e:
        _fail(e)


@app.command()
def history(
    file: Optional[Path] = FileOption,
) -> None:
    """Show recently viewed entities, oldest first."""
    try:
        board = _open_board(file)
        _print_table("History", board.get_history())
    except Exception as e:
        _fail(e)


@app.command()
def prioritized(
    file: Optional[Path] = FileOption,
) -> None:
    """Show scheduled tasks and subtasks by start time."""
    try:
        board = _open_board(file)
        _print_table("Up next", board.get_prioritized_tasks())
    except Exception as e:
        _fail(e)


@app.command()
def free_slot(
    duration: int = typer.Argument(..., min=1, help="Required duration in minutes"),
    after: Optional[datetime] = typer.Option(None, "--after", "-a", formats=DATETIME_FORMATS, help="Earliest start (default: now)"),
    file: Optional[Path] = FileOption,
) -> None:
    """Find the earliest free time slot of a given length."""
    try:
        board = _open_board(file)
        found = board.find_next_free_slot(duration, after or datetime.now())
        if found is None:
            console.print("[yellow]No free slot left in the planning horizon[/yellow]")
        else:
            console.print(f"[bold green]Next free slot:[/bold green] {_fmt_time(found)}")
    except Exception as e:
        _fail(e)


@app.command()
def stats(
    file: Optional[Path] = FileOption,
) -> None:
    """Show board and time-slot statistics."""
    try:
        board = _open_board(file)
        console.print("\n[bold]Board[/bold]")
        console.print(f"[cyan]Tasks:[/cyan] {len(board.get_all_tasks())}")
        console.print(f"[cyan]Epics:[/cyan] {len(board.get_all_epics())}")
        console.print(f"[cyan]Subtasks:[/cyan] {len(board.get_all_subtasks())}")

        console.print("\n[bold]Time slots[/bold]")
        for key, value in board.get_time_slot_statistics().items():
            console.print(f"[cyan]{key.replace('_', ' ').title()}:[/cyan] {value}")
    except Exception as e:
        _fail(e)


@app.command()
def version() -> None:
    """Show version information."""
    from taskboard import __version__

    console.print(f"[bold]taskboard[/bold] version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
