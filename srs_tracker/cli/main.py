"""
Typer CLI for srs-tracker.

Commands:
    srs db init             - Create the SRS tables
    srs db migrate FILE     - Apply a raw SQL migration file
    srs review submit       - Grade an answer and record the review
    srs review queue        - Show items due for review
    srs review forecast     - Hourly forecast of upcoming reviews
    srs stats today         - Today's rollup and stage breakdown
    srs stats range         - Rollups for the last N days

Usage:
    srs --help
    srs db init
    srs review submit --user u1 --item 42 --type word --answer ni3 --expected ni3 --correct --time-ms 3200
    srs review queue --user u1 --limit 20
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from config import get_settings
from srs_tracker.db.database import init_db, run_migration, session_scope
from srs_tracker.db.queries import (
    get_daily_stats_range,
    get_dashboard_stats,
    get_review_queue,
    get_upcoming_reviews_forecast,
)
from srs_tracker.db.utils import utc_date, utcnow
from srs_tracker.errors import SrsError
from srs_tracker.logging_setup import configure_logging
from srs_tracker.reviews.submission import ReviewSubmitter

app = typer.Typer(help="srs-tracker CLI: spaced-repetition scheduling for vocabulary review")
db_app = typer.Typer(help="Database management (init, migrate)")
review_app = typer.Typer(help="Submit reviews and inspect the review queue")
stats_app = typer.Typer(help="Daily progress statistics")

app.add_typer(db_app, name="db")
app.add_typer(review_app, name="review")
app.add_typer(stats_app, name="stats")

console = Console()

STAGE_STYLES = {
    "new": "cyan",
    "learning": "yellow",
    "review": "green",
    "relearning": "red",
}


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Spaced-repetition scheduling core."""
    configure_logging(get_settings(), level="DEBUG" if verbose else None)


# ========================================
# DATABASE COMMANDS
# ========================================


@db_app.command("init")
def db_init() -> None:
    """
    Create tables from the SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    logger.info("Initializing database tables...")
    init_db()
    rprint("[green]✓[/green] Database initialized!")


@db_app.command("migrate")
def db_migrate(
    migration_file: Path = typer.Argument(..., help="Path to a .sql migration file"),
) -> None:
    """Run a raw SQL migration file, skipping statements that already exist."""
    try:
        counts = run_migration(migration_file)
    except FileNotFoundError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    rprint("[green]✓[/green] Migration complete!")
    rprint(f"  Executed: {counts['executed']}")
    rprint(f"  Skipped: {counts['skipped']}")


# ========================================
# REVIEW COMMANDS
# ========================================


@review_app.command("submit")
def review_submit(
    user: str = typer.Option(..., "--user", "-u", help="Learner id"),
    item: int = typer.Option(..., "--item", "-i", help="Item id"),
    item_type: str = typer.Option("word", "--type", "-t", help="Item type"),
    answer: str = typer.Option(..., "--answer", help="What the learner answered"),
    expected: str = typer.Option(..., "--expected", help="The correct answer"),
    correct: bool = typer.Option(..., "--correct/--incorrect", help="Whether the answer was right"),
    time_ms: int = typer.Option(..., "--time-ms", help="Response time in milliseconds"),
) -> None:
    """Derive the grade from correctness and pace, then record the review."""
    settings = get_settings()
    submitter = ReviewSubmitter.from_settings()

    try:
        result = submitter.submit_answer(
            user_id=user,
            item_id=item,
            item_type=item_type,
            user_answer=answer,
            correct_answer=expected,
            is_correct=correct,
            response_time_ms=time_ms,
            timezone=settings.default_timezone,
        )
    except SrsError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    state = result.item
    style = STAGE_STYLES.get(state.stage.value, "white")
    rprint(
        f"[green]✓[/green] {result.event.grade.name}: "
        f"{result.previous_stage.value} -> [{style}]{state.stage.value}[/{style}]"
    )
    rprint(f"  Interval: {state.interval_days}d  Ease: {state.ease_factor / 1000:.2f}  Step: {state.step}")
    rprint(f"  Next review: {state.next_review_date:%Y-%m-%d %H:%M} UTC")
    reviews, accuracy, seconds = result.rollup.as_tuple()
    rprint(f"  Today: {reviews} reviews, {accuracy}% accuracy, {seconds}s")


@review_app.command("queue")
def review_queue(
    user: str = typer.Option(..., "--user", "-u", help="Learner id"),
    limit: int = typer.Option(None, "--limit", "-n", help="Maximum items to show"),
) -> None:
    """Show items due for review, earliest first."""
    try:
        with session_scope() as session:
            items = get_review_queue(session, user, limit=limit)
    except SrsError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    if not items:
        rprint("[dim]Nothing due. Come back later.[/dim]")
        return

    table = Table(title=f"Due for {user} ({len(items)})")
    table.add_column("Item", style="cyan")
    table.add_column("Type")
    table.add_column("Stage")
    table.add_column("Interval", justify="right")
    table.add_column("Due (UTC)")

    for state in items:
        style = STAGE_STYLES.get(state.stage.value, "white")
        table.add_row(
            str(state.item_id),
            state.item_type,
            f"[{style}]{state.stage.value}[/{style}]",
            f"{state.interval_days}d",
            f"{state.next_review_date:%Y-%m-%d %H:%M}",
        )
    console.print(table)


@review_app.command("forecast")
def review_forecast(
    user: str = typer.Option(..., "--user", "-u", help="Learner id"),
    hours: int = typer.Option(24, "--hours", help="Forecast window in hours"),
) -> None:
    """Hourly count of items becoming due."""
    if hours <= 0:
        rprint("[red]✗[/red] --hours must be positive")
        raise typer.Exit(code=1)

    with session_scope() as session:
        buckets = get_upcoming_reviews_forecast(session, user, hours=hours)

    table = Table(title=f"Upcoming reviews for {user}")
    table.add_column("Hour", justify="right")
    table.add_column("Until (UTC)")
    table.add_column("Due", justify="right")
    for bucket in buckets:
        if bucket["count"]:
            table.add_row(
                f"+{bucket['hour'] + 1}h",
                f"{bucket['due_at']:%Y-%m-%d %H:%M}",
                str(bucket["count"]),
            )
    console.print(table)
    rprint(f"Total in next {hours}h: {sum(b['count'] for b in buckets)}")


# ========================================
# STATS COMMANDS
# ========================================


@stats_app.command("today")
def stats_today(
    user: str = typer.Option(..., "--user", "-u", help="Learner id"),
) -> None:
    """Today's rollup plus the learner's stage breakdown."""
    with session_scope() as session:
        stats = get_dashboard_stats(session, user)

    today = stats["today"]
    rprint(f"[bold]{user}[/bold] - {utc_date(utcnow())}")
    rprint(f"  Due now: {stats['reviews_due']}  Next 24h: {stats['upcoming_24h']}")
    if today is None:
        rprint("  [dim]No reviews today[/dim]")
    else:
        rprint(
            f"  Reviews: {today.reviews_completed}  Accuracy: {today.accuracy_percentage}%  "
            f"Time: {today.time_spent_seconds}s  Learned: {today.new_items_learned}"
        )

    table = Table(title="Stages")
    table.add_column("Stage")
    table.add_column("Items", justify="right")
    for stage, count in stats["stage_breakdown"].items():
        style = STAGE_STYLES.get(stage.value, "white")
        table.add_row(f"[{style}]{stage.value}[/{style}]", str(count))
    console.print(table)


@stats_app.command("range")
def stats_range(
    user: str = typer.Option(..., "--user", "-u", help="Learner id"),
    days: int = typer.Option(7, "--days", "-d", help="Number of days, today included"),
) -> None:
    """Daily rollups for the last N days."""
    if days <= 0:
        rprint("[red]✗[/red] --days must be positive")
        raise typer.Exit(code=1)

    end = utc_date(utcnow())
    start = end - timedelta(days=days - 1)
    with session_scope() as session:
        rollups = get_daily_stats_range(session, user, start, end)

    if not rollups:
        rprint(f"[dim]No reviews between {start} and {end}[/dim]")
        return

    table = Table(title=f"{user}: {start} to {end}")
    table.add_column("Date")
    table.add_column("Reviews", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Learned", justify="right")
    for rollup in rollups:
        table.add_row(
            str(rollup.stat_date),
            str(rollup.reviews_completed),
            f"{rollup.accuracy_percentage}%",
            f"{rollup.time_spent_seconds}s",
            str(rollup.new_items_learned),
        )
    console.print(table)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
