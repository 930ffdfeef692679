"""
Typer CLI for the MixMind lesson scheduler.

Commands:
    mixmind catalog              - List modules (or the items of one module)
    mixmind place                - Run the placement survey
    mixmind plan <module>        - Show the interleaved plan for a user
    mixmind simulate <module>    - Run a full lesson with simulated answers
    mixmind stats                - Mastery and XP overview for a user
    mixmind reset                - Delete a user's mastery records and stats

Usage:
    mixmind --help
    mixmind place --answers answers.json
    mixmind plan ch1-intro --user alice --minutes 5
    mixmind simulate ch1-intro --user alice --accuracy 0.8 --seed 7
"""

from __future__ import annotations

import asyncio
import json
import random
import sys
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table
from rich.text import Text

from config import get_settings
from mixmind.analytics.sinks import create_analytics
from mixmind.content.item_pool import ItemPoolIndex, load_catalog
from mixmind.exceptions import MixMindError
from mixmind.placement.placement_engine import PlacementResult
from mixmind.placement.survey import QuestionKind, get_survey_questions
from mixmind.storage.database import get_engine
from mixmind.storage.mastery_store import InMemoryMasteryStore
from mixmind.storage.sql_store import SqlMasteryStore
from mixmind.study.lesson_service import LessonService
from mixmind.study.mastery_tracker import MasteryRecord, is_due, is_fragile, strength_of, utcnow
from mixmind.study.session_mixer import SessionPlan, adapt_ratios

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="mixmind",
    help="MixMind - adaptive cocktail lessons: placement, scheduling and progress",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"

DbOption = Annotated[
    Optional[str], typer.Option("--db", help="Database URL (default: from config)")
]
UserOption = Annotated[str, typer.Option("--user", "-u", help="User id")]


def _configure_logging(level: str, log_file: Optional[str]) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    if log_file:
        logger.add(log_file, level="DEBUG", rotation="10 MB", retention=5)


def _load_pool() -> ItemPoolIndex:
    return load_catalog(get_settings().catalog_path)


def _sql_store(db: Optional[str]) -> SqlMasteryStore:
    return SqlMasteryStore(get_engine(db))


def _fail(message: str) -> None:
    rprint(f"[red]Error:[/red] {message}")
    raise typer.Exit(code=1)


def _simulated_answer_ms(rng: random.Random, estimated_seconds: int) -> int:
    """Answer time between 2s and the item's estimate (the estimate itself when shorter)."""
    upper = estimated_seconds * 1000
    return rng.randint(min(2000, upper), upper)


def _format_strength_bar(strength: int, cap: int) -> str:
    """Format a strength bar."""
    return "#" * strength + "-" * (cap - strength)


# =============================================================================
# Content
# =============================================================================


@app.command()
def catalog(
    module: Annotated[
        Optional[str], typer.Option("--module", "-m", help="Show the items of one module")
    ] = None,
) -> None:
    """List lesson modules, or the items of one module."""
    try:
        pool = _load_pool()
        if module:
            items = pool.items_for(module, strict=True)
    except MixMindError as e:
        _fail(str(e))

    if module:
        table = Table(title=f"{module} ({pool.module(module).title})")
        table.add_column("Item", style="cyan", no_wrap=True)
        table.add_column("Type")
        table.add_column("Difficulty", justify="right")
        table.add_column("Seconds", justify="right")
        table.add_column("Prompt")
        for item in items:
            table.add_row(
                item.id,
                item.exercise_type.value,
                str(item.difficulty),
                str(item.estimated_seconds),
                item.prompt,
            )
        console.print(table)
        return

    table = Table(title=f"Catalog {pool.version}")
    table.add_column("Module", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Track", style="magenta")
    table.add_column("Items", justify="right")
    table.add_column("Minutes", justify="right")
    for mod in pool.modules():
        items = pool.items_for(mod.id)
        minutes = sum(i.estimated_seconds for i in items) / 60
        title = f"{mod.title} [dim](starter: {mod.starter_for})[/dim]" if mod.starter_for else mod.title
        table.add_row(mod.id, title, mod.track.value, str(len(items)), f"{minutes:.1f}")
    console.print(table)


# =============================================================================
# Placement
# =============================================================================


def _ask_survey() -> dict[str, Any]:
    """Ask every survey question interactively."""
    answers: dict[str, Any] = {}
    for question in get_survey_questions():
        if question.kind == QuestionKind.SCALE:
            low, high = question.scale
            answers[question.id] = IntPrompt.ask(
                question.prompt,
                choices=[str(v) for v in range(low, high + 1)],
                show_choices=True,
            )
        elif question.kind == QuestionKind.MULTI:
            raw = Prompt.ask(
                f"{question.prompt} [dim]({', '.join(question.options)}; comma separated, in order)[/dim]",
                default="",
                show_default=False,
            )
            answers[question.id] = [o.strip() for o in raw.split(",") if o.strip()]
        else:
            answers[question.id] = Prompt.ask(question.prompt, choices=list(question.options))
    return answers


def _render_placement(placement: PlacementResult) -> None:
    content = Text()
    content.append("Level: ", style="cyan")
    content.append(f"{placement.level.value}\n", style="bold")
    content.append("Track: ", style="cyan")
    content.append(f"{placement.track.value}\n", style="bold")
    content.append("Spirits: ", style="cyan")
    content.append(f"{', '.join(placement.spirits)}\n", style="bold")
    content.append("Session: ", style="cyan")
    content.append(f"{placement.session_minutes} min\n", style="bold")
    content.append("Start module: ", style="cyan")
    content.append(f"{placement.start_module_id}\n\n", style="bold green")
    content.append(placement.interlude, style="italic")

    console.print(
        Panel(content, title="[bold]Your Placement[/bold]", border_style="blue")
    )


@app.command()
def place(
    answers_file: Annotated[
        Optional[Path], typer.Option("--answers", "-a", help="JSON file of survey answers")
    ] = None,
    user: Annotated[str, typer.Option("--user", "-u", help="User id")] = "local",
) -> None:
    """Run the placement survey from a file or interactively."""
    if answers_file is not None:
        try:
            answers = json.loads(answers_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            _fail(f"Cannot read answers from {answers_file}: {e}")
        if not isinstance(answers, dict):
            _fail("Answers file must contain a JSON object of question id -> answer")
    else:
        answers = _ask_survey()

    async def run_placement() -> PlacementResult:
        analytics = create_analytics(get_settings())
        service = LessonService.from_settings(
            get_settings(), InMemoryMasteryStore(), _load_pool(), analytics
        )
        try:
            return await service.onboard(user, answers)
        finally:
            await analytics.close()

    try:
        placement = asyncio.run(run_placement())
    except (MixMindError, ValueError) as e:
        _fail(str(e))

    _render_placement(placement)


# =============================================================================
# Lessons
# =============================================================================


def _render_plan(plan: SessionPlan, snapshot: dict[str, MasteryRecord], cap: int) -> None:
    table = Table(title=f"Plan: {plan.module_id}")
    table.add_column("#", justify="right")
    table.add_column("Item", style="cyan", no_wrap=True)
    table.add_column("Module")
    table.add_column("Type")
    table.add_column("Strength")
    table.add_column("Seconds", justify="right")
    for n, item in enumerate(plan.items, start=1):
        strength = strength_of(snapshot.get(item.id))
        table.add_row(
            str(n),
            item.id,
            item.module_id,
            item.exercise_type.value,
            _format_strength_bar(min(strength, cap), cap),
            str(item.estimated_seconds),
        )
    console.print(table)

    mix = plan.mix
    summary = (
        f"[bold]{len(plan.items)}[/bold] items: "
        f"{mix.current} current, {mix.review} review, {mix.older} older | "
        f"{plan.expected_minutes:.1f} of {plan.budget_seconds / 60:.1f} min"
    )
    rprint(summary)
    if plan.under_filled:
        rprint("[yellow][!] Not enough eligible content to fill this session[/yellow]")


@app.command()
def plan(
    module: Annotated[str, typer.Argument(help="Active module id")],
    user: UserOption,
    minutes: Annotated[
        Optional[float], typer.Option("--minutes", "-n", help="Session length in minutes")
    ] = None,
    db: DbOption = None,
) -> None:
    """Show the interleaved lesson plan for a user without starting it."""
    settings = get_settings()
    session_minutes = minutes if minutes is not None else settings.placement_default_session_minutes

    async def build_plan():
        store = _sql_store(db)
        pool = _load_pool()
        service = LessonService.from_settings(settings, store, pool)
        snapshot = await store.get_records(user)
        stats = await store.get_stats(user)
        ratios = None
        if service.adaptive_ratios:
            ratios = adapt_ratios(stats.last_accuracy, service.mixer.config)
        return snapshot, service.mixer.plan(module, session_minutes, snapshot, ratios=ratios)

    try:
        snapshot, lesson_plan = asyncio.run(build_plan())
    except MixMindError as e:
        _fail(str(e))

    if not lesson_plan.items:
        rprint(f"[yellow]Nothing to study in {module} right now.[/yellow]")
        return
    _render_plan(lesson_plan, snapshot, settings.mastery_strength_cap)


@app.command()
def simulate(
    module: Annotated[str, typer.Argument(help="Active module id")],
    user: UserOption,
    minutes: Annotated[
        Optional[float], typer.Option("--minutes", "-n", help="Session length in minutes")
    ] = None,
    accuracy: Annotated[
        float, typer.Option("--accuracy", min=0.0, max=1.0, help="Chance of a correct answer")
    ] = 0.8,
    seed: Annotated[Optional[int], typer.Option("--seed", help="Random seed")] = None,
    db: DbOption = None,
) -> None:
    """Run a full lesson with simulated answers and record the results."""
    settings = get_settings()
    session_minutes = minutes if minutes is not None else settings.placement_default_session_minutes
    rng = random.Random(seed)

    async def run_lesson():
        analytics = create_analytics(settings)
        service = LessonService.from_settings(settings, _sql_store(db), _load_pool(), analytics)
        try:
            session = await service.start_lesson(user, module, session_minutes)
            elapsed_ms = 0
            for item in session.plan.items:
                correct = rng.random() < accuracy
                ms = _simulated_answer_ms(rng, item.estimated_seconds)
                elapsed_ms += ms
                await service.record_attempt(
                    session, item.id, "correct" if correct else "incorrect", ms
                )
            summary = await service.complete_lesson(session, duration_ms=elapsed_ms)
            stats = await service.store.get_stats(user)
            return session, summary, stats
        finally:
            await analytics.close()

    try:
        session, summary, stats = asyncio.run(run_lesson())
    except MixMindError as e:
        _fail(str(e))

    if summary.total_count == 0:
        rprint(f"[yellow]Nothing to study in {module} right now.[/yellow]")
        return

    table = Table(title=f"Lesson {summary.lesson_id}")
    table.add_column("Item", style="cyan", no_wrap=True)
    table.add_column("Result")
    table.add_column("Time", justify="right")
    table.add_column("Strength", justify="right")
    for attempt in session.attempts:
        result = "[green]correct[/green]" if attempt.is_correct else "[red]incorrect[/red]"
        table.add_row(
            attempt.item_id,
            result,
            f"{attempt.ms_to_answer / 1000:.1f}s",
            f"{attempt.strength_delta:+d}",
        )
    console.print(table)

    content = Text()
    content.append(f"Correct: {summary.correct_count}/{summary.total_count}", style="bold")
    content.append(f" ({summary.accuracy:.0%})\n")
    content.append(f"XP: +{summary.xp_awarded}", style="bold yellow")
    content.append(f" (total {stats.total_xp})\n")
    content.append(f"Mastery change: {summary.mastery_delta:+d}\n")
    content.append(f"Streak: {stats.streak} days\n")
    content.append(f"Next lesson: {summary.recommended_adjustment}")
    console.print(Panel(content, title="[bold]Lesson Complete[/bold]", border_style="green"))


# =============================================================================
# Progress
# =============================================================================


@app.command()
def stats(
    user: UserOption,
    db: DbOption = None,
) -> None:
    """Show mastery and XP for a user."""
    settings = get_settings()

    async def load():
        store = _sql_store(db)
        return await store.get_records(user), await store.get_stats(user)

    try:
        records, user_stats = asyncio.run(load())
    except MixMindError as e:
        _fail(str(e))

    now = utcnow()
    cap = settings.mastery_strength_cap
    mastered = sum(1 for r in records.values() if r.strength >= cap)
    due = sum(1 for r in records.values() if is_due(r, now))
    fragile = sum(1 for r in records.values() if is_fragile(r))

    table = Table(title=f"Stats: {user}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Lessons", str(user_stats.total_lessons))
    table.add_row("Correct answers", str(user_stats.total_correct))
    table.add_row("XP", str(user_stats.total_xp))
    table.add_row("Streak", f"{user_stats.streak} days")
    if user_stats.last_accuracy is not None:
        table.add_row("Last accuracy", f"{user_stats.last_accuracy:.0%}")
    table.add_row("Items seen", str(len(records)))
    table.add_row("Mastered", str(mastered))
    table.add_row("Due now", str(due))
    table.add_row("Fragile", str(fragile))
    console.print(table)

    if user_stats.badges:
        rprint(f"[bold]Badges:[/bold] {', '.join(user_stats.badges)}")


@app.command()
def reset(
    user: UserOption,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
    db: DbOption = None,
) -> None:
    """Delete a user's mastery records and stats."""
    if not yes and not Confirm.ask(f"Delete all progress for {user}?"):
        rprint("[dim]Cancelled.[/dim]")
        return

    try:
        removed = asyncio.run(_sql_store(db).reset(user))
    except MixMindError as e:
        _fail(str(e))

    rprint(f"[green][OK][/green] Removed {removed} mastery records for {user}")


# =============================================================================
# Entry Point
# =============================================================================


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Verbose output")
    ] = False,
) -> None:
    """
    MixMind - adaptive cocktail lessons.

    \b
    Quick Start:
      mixmind place                         # Take the placement survey
      mixmind plan ch1-intro -u alice       # Preview a lesson
      mixmind simulate ch1-intro -u alice   # Run one with simulated answers
    """
    settings = get_settings()
    _configure_logging("DEBUG" if verbose else settings.log_level, settings.log_file)


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
