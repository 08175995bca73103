#!/usr/bin/env python3
"""CLI for the grades engine.

Commands:
    init-db     Create or reset the database
    seed        Load demo data
    status      Show database status
    levels      List grade levels visible to a user
    classes     List class sections visible to a user
    subjects    List the subjects of a class
    journal     Show the score journal for a class, subject and quarter
    set-score   Save one journal cell
    summary     Show a student's per-subject grade summary
"""

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file from current directory if available
load_dotenv()

import click  # noqa: E402
from rich.console import Console  # noqa: E402
from rich.panel import Panel  # noqa: E402
from rich.table import Table  # noqa: E402

from src.database import SqliteGradesStore, init_database, seed_demo_data, verify_database  # noqa: E402
from src.database.connection import DB_PATH  # noqa: E402
from src.grades import Actor, GradesConfig, GradesService, Result, Role, ScoreWriteError  # noqa: E402
from src.logutils import configure_root_logger  # noqa: E402

console = Console()

LETTER_STYLES = {"A": "green", "B": "green", "C": "yellow", "D": "yellow", "F": "red"}


def _db_path(ctx: click.Context) -> Path:
    return ctx.obj["db_path"]


def _service(ctx: click.Context, use_fallback: Optional[bool] = None) -> GradesService:
    config = replace(GradesConfig.from_env(), db_path=_db_path(ctx))
    if use_fallback is not None:
        config = replace(config, use_fallback=use_fallback)
    return GradesService(SqliteGradesStore(config.db_path), config)


def _actor(user_id: str, role: str) -> Actor:
    return Actor(user_id=user_id, role=role)


def _report(result: Result) -> None:
    """Print the error and warnings attached to a result."""
    if result.degraded:
        console.print("[yellow]Showing fallback data; the database could not provide real data.[/yellow]")
    if result.error is not None:
        style = "red" if result.error.is_backend_failure else "yellow"
        console.print(f"[{style}]{result.error.kind.value}: {result.error.message}[/{style}]")
    for warning in result.warnings:
        console.print(f"[yellow]warning: {warning.message}[/yellow]")


def _role_option(func):
    return click.option(
        "--role",
        type=click.Choice([r.value for r in Role]),
        default=Role.TEACHER.value,
        show_default=True,
        help="Role of the user",
    )(func)


@click.group()
@click.version_option(version="0.1.0", prog_name="grades")
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="SQLite database (default: GRADES_DB_PATH or grades.db)",
)
@click.pass_context
def cli(ctx: click.Context, db_path: Optional[Path]):
    """Grades engine CLI - browse journals and grade summaries."""
    configure_root_logger()
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path or DB_PATH


@cli.command()
@click.option("--force", is_flag=True, help="Force reset existing database")
@click.pass_context
def init_db(ctx: click.Context, force: bool):
    """Initialize or reset the database."""
    db_path = _db_path(ctx)
    if db_path.exists() and not force:
        if not click.confirm("Database exists. Reset it?", default=False):
            console.print("[yellow]Aborted.[/yellow]")
            return
        force = True

    console.print("[blue]Initializing database...[/blue]")
    init_database(db_path, force=force)
    info = verify_database(db_path)

    console.print("[green]✓ Database initialized[/green]")
    console.print(f"  Tables: {', '.join(info.get('tables', []))}")


@cli.command()
@click.pass_context
def seed(ctx: click.Context):
    """Load demo levels, classes, lessons, scores and attendance."""
    counts = seed_demo_data(_db_path(ctx))
    console.print("[green]✓ Demo data loaded[/green]")
    for table_name, count in counts.items():
        console.print(f"  {table_name}: {count}")


@cli.command()
@click.pass_context
def status(ctx: click.Context):
    """Show database status."""
    info = verify_database(_db_path(ctx))

    console.print(Panel("[bold]Database Status[/bold]"))
    if not info.get("exists"):
        console.print(f"[red]{info.get('error')}[/red]")
        return
    if info.get("error"):
        console.print(f"[red]{info['error']}[/red]")
        return

    table = Table(show_header=False)
    table.add_column("Item", style="cyan")
    table.add_column("Value")
    table.add_row("Path", info["path"])
    for item, count in info.get("row_counts", {}).items():
        table.add_row(item.replace("_", " ").title(), str(count))
    console.print(table)


@cli.command()
@click.option("--user", "-u", "user_id", required=True, help="User id")
@_role_option
@click.pass_context
def levels(ctx: click.Context, user_id: str, role: str):
    """List grade levels visible to a user."""
    result = asyncio.run(_service(ctx).resolve_levels(_actor(user_id, role)))
    _report(result)
    if not result.value:
        return

    table = Table(title="Grade Levels")
    table.add_column("Level")
    table.add_column("Classes", justify="right")
    table.add_column("Subjects", justify="right")
    table.add_column("Students", justify="right")
    for level in result.value:
        table.add_row(level.level_name, str(level.class_count), str(level.subject_count), str(level.student_count))
    console.print(table)


@cli.command()
@click.option("--user", "-u", "user_id", required=True, help="User id")
@_role_option
@click.option("--level", "-l", "level_id", default=None, help="Only classes in this level")
@click.pass_context
def classes(ctx: click.Context, user_id: str, role: str, level_id: Optional[str]):
    """List class sections visible to a user."""
    result = asyncio.run(_service(ctx).resolve_classes(_actor(user_id, role), level_id))
    _report(result)
    if not result.value:
        return

    table = Table(title="Classes")
    table.add_column("Id", style="cyan")
    table.add_column("Class")
    table.add_column("Level")
    table.add_column("Students", justify="right")
    table.add_column("Subjects", justify="right")
    for section in result.value:
        subjects = "-" if section.subject_count is None else str(section.subject_count)
        table.add_row(section.class_id, section.class_name, section.level_id or "-", str(section.student_count), subjects)
    console.print(table)


@cli.command()
@click.argument("class_id")
@click.pass_context
def subjects(ctx: click.Context, class_id: str):
    """List the subjects of a class."""
    result = asyncio.run(_service(ctx).resolve_subjects(class_id))
    _report(result)
    if not result.value:
        return

    table = Table(title=f"Subjects - {class_id}")
    table.add_column("Id", style="cyan")
    table.add_column("Subject")
    table.add_column("Lessons", justify="right")
    for subject in result.value:
        table.add_row(subject.subject_id, subject.subject_name, str(subject.lesson_count))
    console.print(table)


@cli.command()
@click.argument("class_id")
@click.argument("subject_id")
@click.argument("quarter_id")
@click.pass_context
def journal(ctx: click.Context, class_id: str, subject_id: str, quarter_id: str):
    """Show the score journal for a class, subject and quarter."""
    result = asyncio.run(_service(ctx).load_journal(class_id, subject_id, quarter_id))
    _report(result)
    table_data = result.value
    if table_data.is_empty:
        console.print("[yellow]Nothing to show for this selection.[/yellow]")
        return

    table = Table(title=f"Journal - {class_id} / {subject_id} / {quarter_id}")
    table.add_column("Student")
    for lesson in table_data.lessons:
        header = lesson.lesson_name if lesson.date is None else f"{lesson.lesson_name}\n{lesson.date:%d.%m}"
        table.add_column(header, justify="center")

    for student in table_data.students:
        cells = []
        for lesson in table_data.lessons:
            record = table_data.score_for(student.id, lesson.id)
            cells.append("·" if record is None or record.score is None else f"{record.score:g}")
        table.add_row(student.full_name or student.id, *cells)
    console.print(table)


@cli.command("set-score")
@click.argument("student_id")
@click.argument("lesson_id")
@click.argument("quarter_id")
@click.argument("score", type=float)
@click.option("--teacher", "-t", "teacher_id", default=None, help="Teacher saving the score")
@click.pass_context
def set_score(ctx: click.Context, student_id: str, lesson_id: str, quarter_id: str, score: float, teacher_id: Optional[str]):
    """Save one journal cell (creates or overwrites the score)."""
    try:
        record = asyncio.run(_service(ctx).write_score(student_id, lesson_id, quarter_id, score, teacher_id))
    except ScoreWriteError as e:
        console.print(f"[red]Score not saved: {e}[/red]")
        ctx.exit(1)
    console.print(f"[green]✓ Saved {record.score:g} for {record.student_id} on {record.lesson_id} ({record.quarter_id})[/green]")


@cli.command()
@click.argument("student_id")
@click.option("--no-fallback", is_flag=True, help="Never substitute fallback data")
@click.pass_context
def summary(ctx: click.Context, student_id: str, no_fallback: bool):
    """Show a student's per-subject grade summary."""
    service = _service(ctx, use_fallback=False if no_fallback else None)
    result = asyncio.run(service.student_grade_summaries(student_id))
    _report(result)

    for subject in result.value:
        console.print(
            Panel(
                f"[bold]{subject.subject_name}[/bold]  ({subject.class_name}, {subject.teacher_name})",
                border_style=subject.color,
            )
        )
        table = Table(show_header=True)
        table.add_column("Quarter")
        table.add_column("Average", justify="right")
        table.add_column("Grade", justify="center")
        for grade in subject.grades:
            style = LETTER_STYLES.get(grade.letter_grade, "white")
            table.add_row(grade.quarter_name, str(grade.average_score), f"[{style}]{grade.letter_grade}[/{style}]")
        console.print(table)

        attendance = subject.attendance
        console.print(
            f"  Attendance: {attendance.percentage}% "
            f"(present {attendance.present}, late {attendance.late}, "
            f"excused {attendance.excused}, absent {attendance.absent})"
        )
        console.print(f"  Scored lessons: {len(subject.daily_scores)}\n")


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
