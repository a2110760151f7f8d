"""CLI commands for the recitation tracker.

Commands:
- teachers / students: list the roster
- add-teacher / add-student / delete-teacher / delete-student
- record: record a recitation
- recent: latest recitations
- report: weekly or monthly leaderboard
- student-report / teacher-report: detail reports
- page: Juz and surah for a page
- export / import / clear: backup management

The data directory comes from TILAWA_DATA_DIR (default: ./data).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from tilawa.config.app_config import CONFIG_FILE, create_storage, load_app_config
from tilawa.core.models import (
    CapacityExceededError,
    EntityNotFoundError,
    ImportMalformedError,
    OutOfRangeError,
    Rating,
    Recitation,
)
from tilawa.core.quran_data import lookup_page_context
from tilawa.core.reports import (
    ActivityFilter,
    ReportWindow,
    Role,
    SortKey,
    compute_report,
    recent_activity,
    student_detail,
    teacher_detail,
)
from tilawa.core.store import RecitationStore

app = typer.Typer(
    name="tilawa",
    help="Record Quran recitation sessions and follow student progress.",
    no_args_is_help=True,
)

console = Console()

_RATING_STYLES = {
    Rating.EXCELLENT: "green",
    Rating.VERY_GOOD: "green",
    Rating.GOOD: "yellow",
    Rating.NEEDS_ATTENTION: "red",
}

_WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def _data_dir() -> Path:
    return Path(os.environ.get("TILAWA_DATA_DIR", "data"))


def _open_store() -> RecitationStore:
    """Open the store configured for the current data directory."""
    data_dir = _data_dir()
    config = load_app_config(data_dir / "config" / CONFIG_FILE.name)
    return RecitationStore(
        storage=create_storage(config, data_dir=data_dir),
        max_records=config.limits.max_records,
    )


def _fail(message: str) -> NoReturn:
    console.print(f"[red]✗ {message}[/red]")
    raise typer.Exit(code=1)


def _names(store: RecitationStore) -> tuple[dict[str, str], dict[str, str]]:
    teachers = {t.id: t.name for t in store.list_teachers()}
    students = {s.id: s.name for s in store.list_students()}
    return teachers, students


def _print_recitations(store: RecitationStore, recitations: list[Recitation], title: str) -> None:
    teachers, students = _names(store)
    table = Table(title=title)
    table.add_column("Date", style="dim")
    table.add_column("Student")
    table.add_column("Teacher")
    table.add_column("Page", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Rating")

    for r in recitations:
        rating = r.rating
        table.add_row(
            r.timestamp.strftime("%Y-%m-%d %H:%M"),
            students.get(r.student_id, "?"),
            teachers.get(r.teacher_id, "?"),
            str(r.page_number),
            str(r.error_count),
            f"[{_RATING_STYLES[rating]}]{rating.label_ar}[/{_RATING_STYLES[rating]}]",
        )
    console.print(table)


# =============================================================================
# ROSTER
# =============================================================================


@app.command()
def teachers() -> None:
    """List teachers."""
    store = _open_store()
    items = store.list_teachers()
    if not items:
        console.print("[yellow]No teachers yet.[/yellow]")
        return

    table = Table(title=f"Teachers ({len(items)})")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    for t in items:
        table.add_row(t.id, t.name)
    console.print(table)


@app.command()
def students() -> None:
    """List students."""
    store = _open_store()
    items = store.list_students()
    if not items:
        console.print("[yellow]No students yet.[/yellow]")
        return

    table = Table(title=f"Students ({len(items)})")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    for s in items:
        table.add_row(s.id, s.name)
    console.print(table)


@app.command(name="add-teacher")
def add_teacher(name: str = typer.Argument(..., help="Teacher name")) -> None:
    """Add a teacher."""
    store = _open_store()
    try:
        teacher = store.add_teacher(name)
    except (ValueError, CapacityExceededError) as e:
        _fail(str(e))

    console.print(f"[green]✓ Teacher added: {teacher.name}[/green]")
    console.print(f"  [dim]id:[/dim] {teacher.id}")


@app.command(name="add-student")
def add_student(
    names: list[str] = typer.Argument(..., help="One or more student names"),
) -> None:
    """Add one or more students."""
    store = _open_store()
    try:
        added = store.add_students(names)
    except CapacityExceededError as e:
        _fail(str(e))

    if not added:
        _fail("No valid names given")

    for student in added:
        console.print(f"[green]✓ Student added: {student.name}[/green] [dim]({student.id})[/dim]")


@app.command(name="delete-teacher")
def delete_teacher(
    teacher_id: str = typer.Argument(..., help="Teacher ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a teacher and all recitations they listened to."""
    store = _open_store()
    teacher = store.get_teacher(teacher_id)
    if teacher is None:
        _fail(f"Teacher not found: {teacher_id}")

    if not yes and not typer.confirm(f"Delete {teacher.name} and their recitations?"):
        console.print("[yellow]Cancelled.[/yellow]")
        return

    store.delete_teacher(teacher_id)
    console.print(f"[green]✓ Deleted: {teacher.name}[/green]")


@app.command(name="delete-student")
def delete_student(
    student_id: str = typer.Argument(..., help="Student ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a student and all of their recitations."""
    store = _open_store()
    student = store.get_student(student_id)
    if student is None:
        _fail(f"Student not found: {student_id}")

    if not yes and not typer.confirm(f"Delete {student.name} and their recitations?"):
        console.print("[yellow]Cancelled.[/yellow]")
        return

    store.delete_student(student_id)
    console.print(f"[green]✓ Deleted: {student.name}[/green]")


# =============================================================================
# RECITATIONS
# =============================================================================


@app.command()
def record(
    teacher_id: str = typer.Option(..., "--teacher", "-t", help="Teacher ID"),
    student_id: str = typer.Option(..., "--student", "-s", help="Student ID"),
    page: int = typer.Option(..., "--page", "-p", help="Page number (1-604)"),
    errors: int = typer.Option(0, "--errors", "-e", help="Number of mistakes"),
) -> None:
    """Record a recitation."""
    store = _open_store()
    try:
        recitation = store.add_recitation(teacher_id, student_id, page, errors)
    except (EntityNotFoundError, OutOfRangeError, CapacityExceededError) as e:
        _fail(str(e))

    rating = recitation.rating
    style = _RATING_STYLES[rating]
    console.print(f"[green]✓ Recitation recorded[/green] [dim]({recitation.id})[/dim]")
    console.print(f"  [dim]rating:[/dim] [{style}]{rating.label_ar} ({rating.value})[/{style}]")
    context = lookup_page_context(page)
    if context:
        console.print(f"  [dim]page:[/dim]   {page} · Juz {context.juz} · {context.surah}")


@app.command()
def recent(
    limit: int = typer.Option(10, "--limit", "-n", help="How many to show"),
) -> None:
    """Show the latest recitations."""
    store = _open_store()
    items = recent_activity(store.list_recitations(), limit)
    if not items:
        console.print("[yellow]No recitations yet.[/yellow]")
        return
    _print_recitations(store, items, "Recent activity")


# =============================================================================
# REPORTS
# =============================================================================


@app.command()
def report(
    role: Role = typer.Option(Role.STUDENT, "--role", "-r", help="teacher or student"),
    window: ReportWindow = typer.Option(
        ReportWindow.WEEKLY, "--window", "-w", help="weekly (7 days) or monthly (30 days)"
    ),
    search: str = typer.Option("", "--search", "-q", help="Filter by name"),
    activity: ActivityFilter = typer.Option(
        ActivityFilter.ALL, "--activity", "-a", help="all, active or inactive"
    ),
    sort: SortKey = typer.Option(SortKey.MOST, "--sort", help="most, least, name-asc, name-desc"),
) -> None:
    """Weekly or monthly activity report."""
    store = _open_store()
    entities = store.list_teachers() if role is Role.TEACHER else store.list_students()
    result = compute_report(
        entities,
        store.list_recitations(),
        role=role,
        window=window,
        name_filter=search,
        activity=activity,
        sort=sort,
    )

    table = Table(title=f"{role.value.title()} report ({window.days} days)")
    table.add_column("Name")
    table.add_column("Recitations", justify="right")
    table.add_column("Active days", justify="right")
    if role is Role.TEACHER:
        table.add_column("Students", justify="right")
    else:
        table.add_column("Errors", justify="right")

    for row in result.rows:
        marker = " ⭐" if row.stats.active else ""
        last_col = row.stats.unique_students if role is Role.TEACHER else row.stats.errors
        table.add_row(
            f"{row.entity.name}{marker}",
            str(row.stats.count),
            str(row.stats.days),
            str(last_col),
        )

    console.print(table)
    console.print(
        f"[dim]Total recitations:[/dim] {result.total_recitations}   "
        f"[dim]Active:[/dim] {result.active_count}/{len(result.rows)}"
    )


@app.command(name="student-report")
def student_report(student_id: str = typer.Argument(..., help="Student ID")) -> None:
    """Detail report for a student: badges, ratings and memorization."""
    store = _open_store()
    student = store.get_student(student_id)
    if student is None:
        _fail(f"Student not found: {student_id}")

    detail = student_detail(student, store.list_recitations())
    memo = detail.memorization

    console.print(f"\n[bold]{student.name}[/bold]")
    console.print(f"  [dim]recitations:[/dim]    {detail.total_recitations}")
    console.print(f"  [dim]average errors:[/dim] {detail.average_errors}")
    console.print(f"  [dim]last page:[/dim]      {detail.last_page or '-'}")

    if detail.rating_distribution:
        console.print("\n[cyan]Ratings[/cyan]")
        for bucket in detail.rating_distribution:
            console.print(f"  {bucket.rating.label_ar}: {bucket.count}")

    console.print("\n[cyan]Badges[/cyan]")
    if detail.badges:
        for badge in detail.badges:
            console.print(f"  {badge.icon} {badge.name} [dim]- {badge.description}[/dim]")
    else:
        console.print("  [dim]No badges yet.[/dim]")

    console.print("\n[cyan]Memorization[/cyan]")
    console.print(f"  [dim]passed pages:[/dim] {len(memo.passed_pages)}")
    console.print(f"  [dim]ranges:[/dim]       {', '.join(memo.page_ranges) or '-'}")
    console.print(f"  [dim]complete juz:[/dim] {memo.completed_juz}/30")
    started = [j for j in memo.juz_progress if j.completed]
    for juz in started:
        console.print(f"  Juz {juz.juz:>2}: {juz.percent:>3}% ({juz.completed} pages)")


@app.command(name="teacher-report")
def teacher_report(teacher_id: str = typer.Argument(..., help="Teacher ID")) -> None:
    """Detail report for a teacher."""
    store = _open_store()
    teacher = store.get_teacher(teacher_id)
    if teacher is None:
        _fail(f"Teacher not found: {teacher_id}")

    detail = teacher_detail(teacher, store.list_recitations())
    last = detail.last_activity.strftime("%d/%m") if detail.last_activity else "-"

    console.print(f"\n[bold]{teacher.name}[/bold]")
    console.print(f"  [dim]recitations heard:[/dim] {detail.total_recitations}")
    console.print(f"  [dim]students:[/dim]          {detail.unique_students}")
    console.print(f"  [dim]last activity:[/dim]     {last}")

    table = Table(title="Activity by weekday")
    for day in _WEEKDAYS:
        table.add_column(day, justify="right")
    table.add_row(*(str(n) for n in detail.activity_by_weekday))
    console.print(table)


@app.command()
def page(number: int = typer.Argument(..., help="Page number (1-604)")) -> None:
    """Show the Juz and surah of a page."""
    context = lookup_page_context(number)
    if context is None:
        _fail(f"Page {number} is outside 1-604")
    console.print(f"Page {context.page}: Juz {context.juz} · {context.surah}")


# =============================================================================
# BACKUP
# =============================================================================


@app.command()
def export(
    fmt: str = typer.Option("json", "--format", "-f", help="json or csv"),
    output: str | None = typer.Option(None, "--output", "-o", help="Output file"),
) -> None:
    """Export a JSON backup or a CSV report."""
    if fmt not in ("json", "csv"):
        _fail(f"Unsupported format: {fmt}")

    store = _open_store()
    content = store.export_data(fmt)  # type: ignore[arg-type]

    if output is None:
        stamp = store.export_bundle()["exportDate"][:10]
        prefix = "quran-tracking-backup" if fmt == "json" else "quran-tracking-report"
        output = f"{prefix}-{stamp}.{fmt}"

    path = Path(output).expanduser()
    path.write_text(content, encoding="utf-8")
    console.print(f"[green]✓ Exported {len(store.list_recitations())} recitations[/green]")
    console.print(f"  [dim]file:[/dim] {path}")


@app.command(name="import")
def import_data(file: str = typer.Argument(..., help="JSON backup to merge")) -> None:
    """Merge a JSON backup into the current data."""
    path = Path(file).expanduser().resolve()
    if not path.exists():
        _fail(f"File not found: {path}")

    store = _open_store()
    try:
        result = store.import_data(path.read_bytes())
    except (ImportMalformedError, CapacityExceededError) as e:
        _fail(f"Import failed: {e}")

    console.print(f"[green]✓ Imported {result.total} records[/green]")
    console.print(
        f"  [dim]teachers:[/dim] {result.teachers}  "
        f"[dim]students:[/dim] {result.students}  "
        f"[dim]recitations:[/dim] {result.recitations}"
    )
    if result.skipped:
        console.print(f"  [yellow]• {result.skipped} already present, skipped[/yellow]")


@app.command()
def clear(yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")) -> None:
    """Delete all teachers, students and recitations."""
    if not yes and not typer.confirm("Delete ALL data?"):
        console.print("[yellow]Cancelled.[/yellow]")
        return

    _open_store().clear()
    console.print("[green]✓ Database cleared[/green]")


if __name__ == "__main__":
    app()
