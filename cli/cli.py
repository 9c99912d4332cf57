"""CLI for the GZCLP progression tracker.

Syncs workouts from Hevy, shows progression state and lets the lifter review
queued changes.
"""

import json
import uuid
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from gzclp.analysis.stage_detector import detect_stage_from_workout_history, extract_max_weight
from gzclp.analysis.workout_analysis import find_day_by_routine_id
from gzclp.config.settings import settings
from gzclp.core.logger import setup_logger
from gzclp.db.session import get_engine
from gzclp.domain.enums import ExerciseRole, GZCLPDay, Stage, Tier, WeightUnit
from gzclp.domain.errors import RoleConflictError
from gzclp.domain.models import ExerciseDefinition, WorkoutLog
from gzclp.history.importer import build_history_from_workouts
from gzclp.history.recorder import merge_history
from gzclp.integrations.hevy.client import HevyApiError, HevyClient
from gzclp.progression.calculator import format_weight
from gzclp.progression.entries import assign_role
from gzclp.progression.prediction import PredictionConfig, predict_progression
from gzclp.progression.rep_schemes import get_rep_scheme
from gzclp.progression.roles import (
    exercises_for_day,
    get_progression_key,
    muscle_group_for,
    resolve_tier,
    tier_for_key,
)
from gzclp.progression.warmup import calculate_warmup_sets
from gzclp.state.db_models import create_tables
from gzclp.state.errors import ImportValidationError, StateCorruptionError
from gzclp.state.models import Partition
from gzclp.state.repository import StateRepository
from gzclp.state.transfer import (
    CompensationError,
    export_state,
    import_state,
    parse_bundle,
    partition_write_step,
    run_compensating_steps,
)
from gzclp.sync.errors import SyncError
from gzclp.sync.orchestrator import SyncOrchestrator
from gzclp.sync.review import PendingChangeNotFoundError, PendingChangeService

console = Console()

app = typer.Typer(
    name="gzclp",
    help="GZCLP progression tracker for Hevy workouts",
    add_completion=False,
)


@app.callback()
def main(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")) -> None:
    setup_logger(
        level="DEBUG" if debug else settings.log_level,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


def _repository() -> StateRepository:
    create_tables(get_engine())
    return StateRepository()


def _fail(message: str, code: int = 1) -> None:
    console.print(f"[bold red]✗ {message}[/bold red]")
    raise typer.Exit(code=code)


# -----------------------------
# Sync
# -----------------------------
@app.command()
def sync(
    max_pages: int | None = typer.Option(None, "--max-pages", help="Workout pages to fetch (default SYNC_MAX_PAGES)"),
) -> None:
    """Fetch new workouts from Hevy and queue progression changes."""
    repository = _repository()
    config = repository.load_config()

    try:
        client = HevyClient(settings.hevy_api_key, unit=config.settings.weight_unit)
    except HevyApiError as e:
        _fail(str(e))
        return

    with client:
        try:
            report = SyncOrchestrator(repository, client, max_pages=max_pages).sync()
        except SyncError as e:
            logger.error(f"[SYNC] Sync failed: {e!s}")
            _fail(f"Sync failed: {e}. Nothing was saved.")
            return

    unit = config.settings.weight_unit
    lines = [
        f"Fetched {report.fetched} workouts, {report.new_workouts} new",
        f"Applied {len(report.applied_changes)} changes, queued {len(report.queued_changes)} for review",
    ]
    if report.current_day is not None:
        lines.append(f"Next workout: {report.current_day}")
    console.print(Panel(Text("\n".join(lines)), title="Sync complete", border_style="green"))

    for discrepancy in report.discrepancies:
        console.print(
            f"[yellow]⚠ {discrepancy.exercise_name} ({discrepancy.tier}): stored "
            f"{format_weight(discrepancy.stored_weight, unit)}, lifted "
            f"{format_weight(discrepancy.actual_weight, unit)}[/yellow]"
        )


# -----------------------------
# State
# -----------------------------
@app.command()
def status() -> None:
    """Show current weights and stages."""
    repository = _repository()
    try:
        config = repository.load_config()
        store = repository.load_progression()
    except StateCorruptionError as e:
        _fail(str(e))
        return

    unit = config.settings.weight_unit
    table = Table(title=f"{config.program.name}: next day {config.program.current_day}")
    table.add_column("Key", no_wrap=True)
    table.add_column("Exercise")
    table.add_column("Weight", justify="right")
    table.add_column("Stage")
    table.add_column("AMRAP record", justify="right")

    for key, entry in sorted(store.progression.items()):
        exercise = config.exercises.get(entry.exercise_id)
        tier = tier_for_key(key)
        table.add_row(
            key,
            exercise.name if exercise is not None else entry.exercise_id,
            format_weight(entry.current_weight, unit),
            f"{entry.stage.display} ({get_rep_scheme(tier, entry.stage).display})",
            str(entry.amrap_record),
        )

    console.print(table)
    if store.last_sync is not None:
        console.print(f"Last sync: {store.last_sync:%Y-%m-%d %H:%M}")
    if store.pending_changes:
        console.print(f"[cyan]{len(store.pending_changes)} changes waiting for review (gzclp pending)[/cyan]")


def _warmup_display(weight: float, unit: WeightUnit) -> str:
    return ", ".join(s.display(unit) for s in calculate_warmup_sets(weight, unit))


@app.command()
def today() -> None:
    """Show the prescription for the next program day."""
    repository = _repository()
    config = repository.load_config()
    store = repository.load_progression()
    unit = config.settings.weight_unit
    day = config.program.current_day
    grouped = exercises_for_day(config.exercises, day, config.t3_schedule)

    table = Table(title=f"Day {day}")
    table.add_column("Tier")
    table.add_column("Exercise")
    table.add_column("Scheme")
    table.add_column("Weight", justify="right")
    table.add_column("Warmup")

    slots = [(Tier.T1, grouped.t1), (Tier.T2, grouped.t2), *((Tier.T3, e) for e in grouped.t3)]
    for tier, exercise in slots:
        if exercise is None:
            continue
        entry = store.progression.get(get_progression_key(exercise.id, exercise.role, tier))
        if entry is None:
            table.add_row(str(tier), exercise.name, "-", "-", "")
            continue
        table.add_row(
            str(tier),
            exercise.name,
            get_rep_scheme(tier, entry.stage).display,
            format_weight(entry.current_weight, unit),
            _warmup_display(entry.current_weight, unit) if tier == Tier.T1 else "",
        )
    console.print(table)


@app.command()
def pending() -> None:
    """List changes waiting for review."""
    repository = _repository()
    unit = repository.load_config().settings.weight_unit
    changes = PendingChangeService(repository).list_pending()
    if not changes:
        console.print("[green]No pending changes[/green]")
        return

    table = Table(title="Pending changes")
    table.add_column("ID", no_wrap=True)
    table.add_column("Exercise")
    table.add_column("Change")
    table.add_column("Weight")
    table.add_column("Reason")
    for change in changes:
        weight = f"{format_weight(change.current_weight, unit)} → {format_weight(change.new_weight, unit)}"
        if change.discrepancy is not None:
            weight += " [yellow](drift)[/yellow]"
        table.add_row(change.id[:8], change.exercise_name, str(change.type), weight, change.reason)
    console.print(table)


def _resolve_change_id(service: PendingChangeService, prefix: str) -> str:
    matches = [c.id for c in service.list_pending() if c.id.startswith(prefix)]
    if len(matches) != 1:
        _fail(f"{'No' if not matches else 'Ambiguous'} pending change matching {prefix!r}")
    return matches[0]


@app.command()
def apply(
    change_id: str | None = typer.Argument(None, help="Change id (or unique prefix)"),
    all_changes: bool = typer.Option(False, "--all", help="Apply every pending change and advance the day"),
    weight: float | None = typer.Option(None, "--weight", help="Override the proposed weight before applying"),
) -> None:
    """Apply one pending change, or all of them."""
    service = PendingChangeService(_repository())
    try:
        if all_changes:
            applied = service.apply_all()
            console.print(f"[green]✓ Applied {len(applied)} changes[/green]")
            return
        if change_id is None:
            _fail("Pass a change id or --all")
            return
        resolved = _resolve_change_id(service, change_id)
        if weight is not None:
            service.modify(resolved, weight)
        change = service.apply(resolved)
    except (PendingChangeNotFoundError, CompensationError, ValueError) as e:
        _fail(str(e))
        return
    console.print(f"[green]✓ Applied {change.exercise_name}[/green]")


@app.command()
def reject(change_id: str = typer.Argument(..., help="Change id (or unique prefix)")) -> None:
    """Reject a pending change."""
    service = PendingChangeService(_repository())
    change = service.reject(_resolve_change_id(service, change_id))
    console.print(f"[yellow]Rejected {change.exercise_name}[/yellow]")


@app.command()
def history(key: str | None = typer.Argument(None, help="Progression key, e.g. squat-T1")) -> None:
    """Show recorded progression history."""
    repository = _repository()
    unit = repository.load_config().settings.weight_unit
    state = repository.load_history()

    keys = [key] if key else sorted(state.history)
    for k in keys:
        exercise_history = state.history.get(k)
        if exercise_history is None:
            console.print(f"[yellow]No history for {k}[/yellow]")
            continue
        table = Table(title=f"{exercise_history.exercise_name} ({exercise_history.tier})")
        table.add_column("Date")
        table.add_column("Weight", justify="right")
        table.add_column("Stage")
        table.add_column("Result")
        table.add_column("AMRAP", justify="right")
        for entry in exercise_history.entries:
            table.add_row(
                f"{entry.date:%Y-%m-%d}",
                format_weight(entry.weight, unit),
                entry.stage.display,
                str(entry.change_type),
                "" if entry.amrap_reps is None else str(entry.amrap_reps),
            )
        console.print(table)


@app.command()
def predict(
    key: str = typer.Argument(..., help="Progression key, e.g. squat-T1"),
    workouts: int = typer.Option(12, "--workouts", min=1, help="Sessions to forecast"),
    per_week: float = typer.Option(1.5, "--per-week", min=0.1, help="Sessions of this lift per week"),
) -> None:
    """Forecast upcoming weights and stages from recorded history."""
    repository = _repository()
    config = repository.load_config()
    store = repository.load_progression()
    entry = store.progression.get(key)
    if entry is None:
        _fail(f"No progression entry {key!r}")
        return
    exercise = config.exercises.get(entry.exercise_id)
    if exercise is None:
        _fail(f"Exercise {entry.exercise_id} is not configured")
        return

    unit = config.settings.weight_unit
    exercise_history = repository.load_history().history.get(key)
    result = predict_progression(
        tier_for_key(key),
        entry,
        exercise_history.entries if exercise_history is not None else [],
        muscle_group_for(exercise),
        unit,
        workouts_per_week=per_week,
        config=PredictionConfig(horizon_workouts=workouts),
    )

    table = Table(title=f"{exercise.name} ({key}) forecast, confidence {result.overall_confidence:.0%}")
    table.add_column("#", justify="right")
    table.add_column("Date")
    table.add_column("Weight", justify="right")
    table.add_column("Stage")
    table.add_column("Event")
    for point in result.points:
        event = "deload" if point.is_deload else "stage change" if point.is_stage_change else ""
        table.add_row(
            str(point.workout_number),
            f"{point.date:%Y-%m-%d}",
            format_weight(point.weight, unit),
            point.stage.display,
            event,
        )
    console.print(table)
    if result.weeks_to_deload is not None:
        console.print(f"[yellow]Next deload expected in about {result.weeks_to_deload:.1f} weeks[/yellow]")


# -----------------------------
# Program setup
# -----------------------------
def _detect_from_history(
    workouts: list[WorkoutLog],
    template_id: str,
    role: ExerciseRole,
    routine_days: dict[GZCLPDay, str],
) -> tuple[dict[Tier, Stage], dict[Tier, float]]:
    """Detect the current T1/T2 stage and working weight of a main lift from its logged sessions."""
    recent_first = sorted(workouts, key=lambda w: w.start_time, reverse=True)
    stages: dict[Tier, Stage] = {}
    weights: dict[Tier, float] = {}
    for tier in (Tier.T1, Tier.T2):
        tier_workouts = [
            w for w in recent_first
            if resolve_tier(role, find_day_by_routine_id(w.routine_id, routine_days)) == tier
        ]
        stage = detect_stage_from_workout_history(tier_workouts, template_id, tier)
        if stage is not None:
            stages[tier] = stage
        latest = next(
            (ex for w in tier_workouts for ex in w.exercises if ex.template_id == template_id),
            None,
        )
        max_weight = extract_max_weight(latest.sets) if latest is not None else 0.0
        if max_weight > 0:
            weights[tier] = max_weight
    return stages, weights


@app.command("add-exercise")
def add_exercise(
    name: str = typer.Argument(..., help="Display name"),
    template_id: str = typer.Argument(..., help="Hevy exercise template id"),
    role: ExerciseRole = typer.Option(ExerciseRole.T3, "--role", help="squat, bench, ohp, deadlift or t3"),
    t1_weight: float = typer.Option(0.0, "--t1-weight", help="Starting T1 weight (main lifts)"),
    t2_weight: float = typer.Option(0.0, "--t2-weight", help="Starting T2 weight (main lifts)"),
    weight: float = typer.Option(0.0, "--weight", help="Starting weight (T3)"),
    increment: float | None = typer.Option(None, "--increment", help="Custom T3 increment"),
    days: list[GZCLPDay] = typer.Option([], "--day", help="Days a T3 exercise is scheduled on (repeatable)"),
    detect: bool = typer.Option(False, "--detect-stage", help="Detect T1/T2 stages and weights from recent Hevy workouts"),
) -> None:
    """Add an exercise and create its progression records."""
    repository = _repository()
    config = repository.load_config()
    store = repository.load_progression()

    weights = {Tier.T1: t1_weight, Tier.T2: t2_weight, Tier.T3: weight}
    stages: dict[Tier, Stage] = {}
    if detect and role != ExerciseRole.T3:
        try:
            with HevyClient(settings.hevy_api_key, unit=config.settings.weight_unit) as client:
                workouts = client.fetch_all_workouts(max_pages=settings.sync_max_pages)
        except HevyApiError as e:
            _fail(f"Could not fetch workouts: {e}")
            return
        stages, detected_weights = _detect_from_history(workouts, template_id, role, config.program.routine_ids)
        for tier, stage in stages.items():
            console.print(f"Detected {tier}: {stage.display} ({get_rep_scheme(tier, stage).display})")
        for tier, detected in detected_weights.items():
            if not weights[tier]:
                weights[tier] = detected
                console.print(f"Starting {tier} at {format_weight(detected, config.settings.weight_unit)}")

    exercise = ExerciseDefinition(
        id=uuid.uuid4().hex,
        external_template_id=template_id,
        name=name,
        custom_increment=increment,
    )
    try:
        exercises, progression = assign_role(
            {**config.exercises, exercise.id: exercise},
            store.progression,
            exercise.id,
            role,
            weights=weights,
            stages=stages,
        )
    except RoleConflictError as e:
        _fail(str(e))
        return

    t3_schedule = dict(config.t3_schedule)
    if role == ExerciseRole.T3:
        for day in days:
            t3_schedule[day] = [*t3_schedule.get(day, []), exercise.id]

    new_config = config.model_copy(update={"exercises": exercises, "t3_schedule": t3_schedule})
    run_compensating_steps(
        [
            partition_write_step(repository, Partition.CONFIG, new_config, config),
            partition_write_step(
                repository, Partition.PROGRESSION, store.model_copy(update={"progression": progression}), store
            ),
        ]
    )
    console.print(f"[green]✓ Added {name} ({role})[/green]")


@app.command("set-routine")
def set_routine(
    day: GZCLPDay = typer.Argument(..., help="A1, B1, A2 or B2"),
    routine_id: str = typer.Argument(..., help="Hevy routine id used for that day"),
) -> None:
    """Assign a Hevy routine to a program day."""
    repository = _repository()
    config = repository.load_config()
    program = config.program.model_copy(update={"routine_ids": {**config.program.routine_ids, day: routine_id}})
    repository.save_config(config.model_copy(update={"program": program}))
    console.print(f"[green]✓ {day} -> routine {routine_id}[/green]")


@app.command("configure")
def configure(
    unit: WeightUnit | None = typer.Option(None, "--unit", help="kg or lbs"),
    auto_apply: bool | None = typer.Option(None, "--auto-apply/--no-auto-apply", help="Apply drift-free changes on sync"),
    day: GZCLPDay | None = typer.Option(None, "--day", help="Set the next program day"),
) -> None:
    """Update user settings."""
    repository = _repository()
    config = repository.load_config()
    user_settings = config.settings
    if unit is not None:
        user_settings = user_settings.model_copy(update={"weight_unit": unit})
    if auto_apply is not None:
        user_settings = user_settings.model_copy(update={"auto_apply": auto_apply})
    program = config.program if day is None else config.program.model_copy(update={"current_day": day})
    repository.save_config(config.model_copy(update={"settings": user_settings, "program": program}))
    console.print(
        f"Unit: {user_settings.weight_unit}, auto-apply: {'on' if user_settings.auto_apply else 'off'}, "
        f"next day: {program.current_day}"
    )


@app.command("import-history")
def import_history() -> None:
    """Backfill progression history from every workout logged in Hevy."""
    repository = _repository()
    config = repository.load_config()
    try:
        with HevyClient(settings.hevy_api_key, unit=config.settings.weight_unit) as client:
            total = client.fetch_workout_count()
            console.print(f"Hevy reports {total} logged workouts")
            workouts = client.fetch_all_workouts()
    except HevyApiError as e:
        _fail(f"Could not fetch workouts: {e}")
        return

    result = build_history_from_workouts(workouts, config.exercises, config.program.routine_ids)
    state = repository.load_history()
    repository.save_history(state.model_copy(update={"history": merge_history(state.history, result.history)}))
    console.print(f"[green]✓ Imported {result.entry_count} entries from {result.workout_count} workouts[/green]")


# -----------------------------
# Export / import
# -----------------------------
@app.command()
def export(path: Path = typer.Argument(..., help="Output JSON file")) -> None:
    """Export configuration, progression and history to JSON."""
    bundle = export_state(_repository())
    path.write_text(bundle.model_dump_json(indent=2), encoding="utf-8")
    console.print(f"[green]✓ Exported to {path}[/green]")


@app.command(name="import")
def import_(path: Path = typer.Argument(..., exists=True, readable=True, help="JSON file from gzclp export")) -> None:
    """Replace all state with an exported bundle."""
    try:
        bundle = parse_bundle(json.loads(path.read_text(encoding="utf-8")))
        import_state(_repository(), bundle)
    except (json.JSONDecodeError, ImportValidationError) as e:
        _fail(f"Import rejected: {e}")
        return
    except CompensationError as e:
        logger.exception("Import failed and could not be fully undone")
        _fail(f"Import failed and could not be fully undone: {e}")
        return
    console.print(f"[green]✓ Imported {len(bundle.config.exercises)} exercises[/green]")


if __name__ == "__main__":
    app()
