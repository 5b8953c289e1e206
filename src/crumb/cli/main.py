"""Main CLI entrypoint for crumb."""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Optional

import click
import typer
from rich.console import Console
from rich.markup import escape
from typer.core import TyperGroup

from crumb.app import CrumbContext
from crumb.cli.resolve import resolve_task
from crumb.core.config import CrumbConfig
from crumb.core.constants import LOG_FORMAT
from crumb.core.exceptions import CrumbError
from crumb.tasks.constants import STATUS_ICONS, ReorderDirection, TaskStatus
from crumb.tasks.models import Task
from crumb.tasks.operations import describe_operations

console = Console()
err_console = Console(stderr=True)

DEFAULT_COMMAND = "add"


class AddByDefaultGroup(TyperGroup):
    """Treats a first argument that names no command as titles to add."""

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        if args and not args[0].startswith("-") and self.get_command(ctx, args[0]) is None:
            args = [DEFAULT_COMMAND, *args]
        return super().resolve_command(ctx, args)


app = typer.Typer(
    name="crumb",
    help="crumb - hierarchical micro-task manager",
    cls=AddByDefaultGroup,
    invoke_without_command=True,
)


# =============================================================================
# Helpers
# =============================================================================


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[red]Error: {escape(message)}[/red]")
    return typer.Exit(1)


def _open(ctx: typer.Context) -> CrumbContext:
    config: CrumbConfig = ctx.obj["config"]
    try:
        return CrumbContext.open(config)
    except CrumbError as e:
        raise _fail(str(e))


def _resolve(crumb: CrumbContext, reference: str) -> Task:
    try:
        return resolve_task(reference, crumb.forest().numbered())
    except CrumbError as e:
        raise _fail(e.message)


def _configure_logging(level: str) -> None:
    level_upper = level.upper()
    if level_upper not in ("DEBUG", "INFO", "WARNING", "ERROR"):
        raise _fail(f"Invalid log level '{level}'")
    logging.basicConfig(
        level=getattr(logging, level_upper),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


@app.callback()
def main_callback(
    ctx: typer.Context,
    data_dir: Annotated[
        Optional[Path],
        typer.Option("--data-dir", help="Data directory (default: $CRUMB_HOME or ~/.crumb)"),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    ] = None,
) -> None:
    """Manage a tree of small tasks."""
    try:
        config = CrumbConfig.load(data_dir)
    except CrumbError as e:
        raise _fail(str(e))

    _configure_logging(log_level or config.logging.level)
    ctx.obj = {"config": config}

    if ctx.invoked_subcommand is None:
        list_command(ctx)


# =============================================================================
# Listing
# =============================================================================


def list_command(
    ctx: typer.Context,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON")
    ] = False,
) -> None:
    """Show the task tree with row numbers."""
    with _open(ctx) as crumb:
        forest = crumb.forest()

    rows = forest.numbered()

    if json_output:
        typer.echo(json.dumps(
            [
                {**row.task.to_dict(), "number": number, "depth": row.depth}
                for number, row in enumerate(rows, start=1)
            ],
            indent=2,
            ensure_ascii=False,
        ))
        return

    if not rows:
        console.print("[dim]No tasks yet. Add one with: crumb add \"Title\"[/dim]")
        return

    width = len(str(len(rows)))
    for number, row in enumerate(rows, start=1):
        task = row.task
        indent = "  " * row.depth
        title = escape(task.title)
        if task.is_done:
            title = f"[dim strike]{title}[/dim strike]"
        progress = ""
        if row.has_children:
            color = "green" if row.all_children_done else "yellow"
            progress = f" [{color}]\\[{row.done_count}/{row.total_count}][/{color}]"
        console.print(f"{number:>{width}}. {indent}{STATUS_ICONS[task.status]} {title}{progress}")

    totals = forest.totals()
    console.print(f"[dim]{totals.done}/{totals.total} done[/dim]")


app.command("list")(list_command)
app.command("ls", hidden=True)(list_command)


# =============================================================================
# Mutations
# =============================================================================


@app.command("add")
def add_command(
    ctx: typer.Context,
    titles: Annotated[list[str], typer.Argument(help="One or more task titles")],
    parent: Annotated[
        Optional[str], typer.Option("--parent", "-p", help="Parent task number or id prefix")
    ] = None,
) -> None:
    """Add tasks (as children of --parent if given)."""
    with _open(ctx) as crumb:
        parent_id = _resolve(crumb, parent).id if parent else None
        for title in titles:
            try:
                task = crumb.engine.create(title, parent_id)
            except CrumbError as e:
                raise _fail(e.message)
            console.print(f"[green]+[/green] {escape(task.title)}")


@app.command("done")
def done_command(
    ctx: typer.Context,
    ref: Annotated[str, typer.Argument(help="Task number or id prefix")],
) -> None:
    """Mark a task done (parents complete automatically)."""
    with _open(ctx) as crumb:
        task = _resolve(crumb, ref)
        crumb.engine.complete(task.id)
        console.print(f"{STATUS_ICONS[TaskStatus.DONE]} {escape(task.title)}")


@app.command("undo")
def undo_command(
    ctx: typer.Context,
    ref: Annotated[str, typer.Argument(help="Task number or id prefix")],
) -> None:
    """Mark a task as not done again."""
    with _open(ctx) as crumb:
        task = _resolve(crumb, ref)
        crumb.engine.reopen(task.id)
        console.print(f"{STATUS_ICONS[TaskStatus.TODO]} {escape(task.title)}")


@app.command("edit")
def edit_command(
    ctx: typer.Context,
    ref: Annotated[str, typer.Argument(help="Task number or id prefix")],
    title: Annotated[str, typer.Argument(help="New title")],
) -> None:
    """Rename a task."""
    with _open(ctx) as crumb:
        task = _resolve(crumb, ref)
        try:
            crumb.engine.rename(task.id, title)
        except CrumbError as e:
            raise _fail(e.message)
        console.print(f"✎ {escape(task.title)} → {escape(title.strip())}")


def remove_command(
    ctx: typer.Context,
    ref: Annotated[str, typer.Argument(help="Task number or id prefix")],
) -> None:
    """Delete a task and everything under it."""
    with _open(ctx) as crumb:
        task = _resolve(crumb, ref)
        crumb.engine.delete(task.id)
        console.print(f"[red]-[/red] {escape(task.title)}")


app.command("rm")(remove_command)
app.command("delete", hidden=True)(remove_command)


@app.command("clear")
def clear_command(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete all tasks."""
    with _open(ctx) as crumb:
        total = crumb.store.count()
        if total == 0:
            console.print("[dim]No tasks to delete.[/dim]")
            return
        if not yes and not typer.confirm(f"Delete all {total} tasks?"):
            console.print("Cancelled.")
            return
        count = crumb.engine.clear_all()
    console.print(f"Deleted {count} tasks.")


# =============================================================================
# Structure
# =============================================================================


@app.command("move")
def move_command(
    ctx: typer.Context,
    ref: Annotated[str, typer.Argument(help="Task number or id prefix")],
    to: Annotated[
        Optional[str], typer.Option("--to", help="New parent number or id prefix")
    ] = None,
    root: Annotated[bool, typer.Option("--root", help="Move to the top level")] = False,
) -> None:
    """Move a task under another task, or to the top level."""
    if (to is None) == (not root):
        raise _fail("Give exactly one of --to or --root")
    with _open(ctx) as crumb:
        task = _resolve(crumb, ref)
        target = _resolve(crumb, to) if to else None
        try:
            crumb.engine.move(task.id, target.id if target else None)
        except CrumbError as e:
            raise _fail(e.message)
        where = f"under {escape(target.title)}" if target else "to top level"
        console.print(f"~ {escape(task.title)} moved {where}")


def _structure_command(ctx: typer.Context, ref: str, action: str) -> None:
    with _open(ctx) as crumb:
        task = _resolve(crumb, ref)
        if action == "indent":
            changed = crumb.engine.indent(task.id)
        elif action == "outdent":
            changed = crumb.engine.outdent(task.id)
        else:
            changed = crumb.engine.reorder_sibling(task.id, ReorderDirection(action))
    if changed:
        console.print(f"~ {escape(task.title)}")
    else:
        console.print(f"[yellow]Nothing to do for {escape(task.title)}[/yellow]")


@app.command("up")
def up_command(
    ctx: typer.Context,
    ref: Annotated[str, typer.Argument(help="Task number or id prefix")],
) -> None:
    """Swap a task with the sibling above it."""
    _structure_command(ctx, ref, ReorderDirection.UP.value)


@app.command("down")
def down_command(
    ctx: typer.Context,
    ref: Annotated[str, typer.Argument(help="Task number or id prefix")],
) -> None:
    """Swap a task with the sibling below it."""
    _structure_command(ctx, ref, ReorderDirection.DOWN.value)


@app.command("indent")
def indent_command(
    ctx: typer.Context,
    ref: Annotated[str, typer.Argument(help="Task number or id prefix")],
) -> None:
    """Make a task a child of the sibling above it."""
    _structure_command(ctx, ref, "indent")


@app.command("outdent")
def outdent_command(
    ctx: typer.Context,
    ref: Annotated[str, typer.Argument(help="Task number or id prefix")],
) -> None:
    """Move a task up one level."""
    _structure_command(ctx, ref, "outdent")


# =============================================================================
# Assistant
# =============================================================================


@app.command("ask")
def ask_command(
    ctx: typer.Context,
    instruction: Annotated[str, typer.Argument(help="What to change, in plain words")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Apply without confirmation")] = False,
) -> None:
    """Turn a plain-language instruction into task changes."""
    with _open(ctx) as crumb:
        forest = crumb.forest()
        with console.status("Thinking..."):
            result = crumb.processor.process(instruction, forest)

        if not result.ok:
            raise _fail(result.error or "Instruction failed")

        if not result.operations:
            console.print("[yellow]No changes proposed.[/yellow]")
            return

        names = {node.task.id: node.task.title for node in forest.nodes.values()}
        console.print("[bold]Proposed changes:[/bold]")
        for line in describe_operations(result.operations, names):
            console.print(f"  {escape(line)}")

        if not yes and not typer.confirm("Apply these changes?"):
            console.print("Cancelled.")
            return

        try:
            applied = crumb.apply_operations(result.operations)
        except CrumbError as e:
            raise _fail(str(e))

    console.print(f"[green]Applied {applied.applied} operations[/green]")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
