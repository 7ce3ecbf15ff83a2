#!/usr/bin/env python3
"""
Spotter CLI

Internal Codename: SPOTTER
Command-line coaching interface for Spotter.

Usage:
    spotter evaluate EXERCISE_ID SET... [--week N] [--target-reps N] [--json]
    spotter phase WEEK [--base-rir RIR]
    spotter pattern EXERCISE_ID [--name NAME] [--spine-sensitive]
    spotter recap SESSION_ID
    spotter pr EXERCISE_ID
    spotter save-session SESSION_ID [--exercise EXERCISE_ID]
    spotter swap FROM_ID TO_ID [--after DATE]
    spotter init-db

Sets are written LOADxREPS[@RIR][rp], e.g. 185x8@2 or 120x17rp.
"""

import json
import logging
import re
import sys
from datetime import date, datetime
from typing import Optional, Tuple

import click

from spotter.coach import SessionCoach
from spotter.config import CoachConfig, postgres_dsn
from spotter.exceptions import SpotterError
from spotter.models import ExerciseLog, ExercisePlan, Session, SessionItem
from spotter.postgres_store import PostgresStore
from spotter.progression.mesocycle import effective_target_rir
from spotter.progression.readiness import allow_test_set
from spotter.progression.records import PRTracker
from spotter.progression.rulebook import display_range, progression_config_for
from spotter.progression.propagation import swap_exercise_forward
from spotter.progression.summary import format_volume, recap_session
from spotter.store import InMemoryStore

SET_SPEC = re.compile(
    r'^(?P<load>\d+(?:\.\d+)?)x(?P<reps>\d+)(?:@(?P<rir>\d+(?:\.\d+)?))?(?P<rp>rp)?$',
    re.IGNORECASE,
)


def parse_set_spec(spec: str) -> Tuple[float, int, Optional[float], bool]:
    """Parse `185x8@2rp` into (load, reps, rir, used_rest_pause)."""
    match = SET_SPEC.match(spec.strip())
    if not match:
        raise click.BadParameter(f"'{spec}' is not LOADxREPS[@RIR][rp]", param_hint='SETS')
    rir = match.group('rir')
    return (
        float(match.group('load')),
        int(match.group('reps')),
        float(rir) if rir is not None else None,
        match.group('rp') is not None,
    )


def _fail(message: str):
    click.echo(f"❌ {message}")
    sys.exit(1)


def _open_store(ctx: click.Context):
    factory = ctx.obj.get('store_factory')
    if factory is not None:
        return factory()
    return PostgresStore(ctx.obj.get('dsn') or postgres_dsn())


@click.group()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='Path to progression.yaml')
@click.option('--dsn', help='Postgres DSN (default: SPOTTER_POSTGRES_DSN)')
@click.option('-v', '--verbose', count=True, help='-v for info, -vv for every rule that fires')
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], dsn: Optional[str], verbose: int):
    """
    Spotter - Hypertrophy Progression Coach

    Three to grow, one to know.
    """
    level = logging.DEBUG if verbose > 1 else logging.INFO if verbose == 1 else logging.WARNING
    logging.basicConfig(level=level, format='%(asctime)s - %(levelname)s - %(message)s')

    ctx.ensure_object(dict)
    if 'coach_config' not in ctx.obj:
        try:
            ctx.obj['coach_config'] = CoachConfig.from_yaml(config_path)
        except SpotterError as e:
            _fail(f"Invalid configuration: {e}")
    ctx.obj['dsn'] = dsn


@cli.command()
@click.argument('exercise_id')
@click.argument('sets', nargs=-1)
@click.option('--name', help='Exercise display name (helps pattern inference)')
@click.option('--week', default=1, show_default=True, help='Week of the meso block')
@click.option('--target-reps', type=int, help='Planned top reps (default: top of the rep range)')
@click.option('--planned-sets', type=int, help='Planned working sets (default: cluster minimum)')
@click.option('--target-rir', type=float, default=0.0, help='Planned RIR (default: cluster base RIR)')
@click.option('--stars', default=0, help='Readiness stars 1-5 (0 = not rated)')
@click.option('--json', 'as_json', is_flag=True, help='Print the decision as JSON')
@click.pass_context
def evaluate(ctx: click.Context, exercise_id: str, sets: Tuple[str, ...], name: Optional[str], week: int,
             target_reps: Optional[int], planned_sets: Optional[int], target_rir: float, stars: int,
             as_json: bool):
    """Decide next session's load and sets from logged SETS."""
    coach_config: CoachConfig = ctx.obj['coach_config']
    parsed = [parse_set_spec(s) for s in sets]
    config, _, _ = progression_config_for(exercise_id, name, coach_config=coach_config)

    item = SessionItem(
        exercise_id=exercise_id,
        exercise_name=name,
        plan=ExercisePlan(
            target_reps=target_reps or config.rep_max,
            target_sets=planned_sets or config.min_sets,
            target_rir=target_rir,
        ),
        log=ExerciseLog(
            actual_loads=[p[0] for p in parsed],
            actual_reps=[p[1] for p in parsed],
            actual_rirs=[p[2] for p in parsed],
            rest_pause_flags=[p[3] for p in parsed],
        ),
    )
    session = Session(date=date.today(), week_index=week, readiness_stars=stars, items=[item])

    coach = SessionCoach(InMemoryStore(), coach_config)
    result = coach.evaluate_item(session, item)
    decision = result.decision

    if as_json:
        payload = decision.to_dict()
        payload.update({
            'phase': result.phase.value,
            'pattern': result.pattern.value,
            'cluster': result.cluster.value,
            'readiness_load': result.readiness_load,
        })
        click.echo(json.dumps(payload, indent=2))
        return

    click.echo("=" * 60)
    click.echo(f"NEXT SESSION: {name or exercise_id}")
    click.echo("=" * 60)
    click.echo(f"Week {week} ({result.phase.value}) | {result.pattern.value} -> {result.cluster.value}")
    click.echo(f"Rep range: {display_range(item.plan.target_reps, config.rep_range)}")
    click.echo(f"\nAction: {decision.action.value}")
    if decision.next_load > 0:
        click.echo(f"Next load: {decision.next_load:.1f}")
    click.echo(f"Next sets: {decision.next_sets}")
    if result.readiness_load is not None and result.readiness_load != decision.next_load:
        click.echo(f"Today at {stars} stars: {result.readiness_load:.1f}")
    if stars and allow_test_set(stars):
        click.echo("Readiness allows a diagnostic 4th set.")
    click.echo(f"\n{'─' * 60}")
    for note in decision.notes:
        click.echo(f"  • {note}")


@cli.command()
@click.argument('week', type=int)
@click.option('--base-rir', default=2.5, show_default=True, help='Early-phase target RIR')
@click.pass_context
def phase(ctx: click.Context, week: int, base_rir: float):
    """Show the meso phase and target RIR for a week."""
    coach_config: CoachConfig = ctx.obj['coach_config']
    meso_phase = coach_config.meso_block.phase(week)
    click.echo(f"Week {week}: {meso_phase.value}")
    click.echo(f"Target RIR: {effective_target_rir(meso_phase, base_rir):.1f}")


@cli.command()
@click.argument('exercise_id')
@click.option('--name', help='Exercise display name')
@click.option('--spine-sensitive', is_flag=True, help='Treat hinges as spine-sensitive')
@click.pass_context
def pattern(ctx: click.Context, exercise_id: str, name: Optional[str], spine_sensitive: bool):
    """Show the inferred pattern and progression settings for an exercise."""
    coach_config: CoachConfig = ctx.obj['coach_config']
    config, lift_pattern, cluster = progression_config_for(
        exercise_id, name, spine_sensitive=True if spine_sensitive else None, coach_config=coach_config,
    )
    click.echo(f"Pattern: {lift_pattern.value}")
    click.echo(f"Cluster: {cluster.value}")
    click.echo(f"Rep range: {config.rep_min}-{config.rep_max}")
    click.echo(f"Base RIR: {config.base_target_rir:.1f}")
    click.echo(f"Sets: {config.min_sets}-{config.max_sets}"
               f"{' (auto +1 allowed)' if config.allow_set_increase else ''}")
    click.echo(f"Increments: primary {config.primary_load_increment:.1f}, "
               f"secondary {config.secondary_load_increment:.1f}")
    if config.is_low_back_or_stability:
        click.echo("Low-back / stability: quality over load")


@cli.command()
@click.argument('session_id', type=int)
@click.pass_context
def recap(ctx: click.Context, session_id: int):
    """Planned vs logged for a session."""
    store = _open_store(ctx)
    try:
        session = store.fetch_session(session_id)
        if session is None:
            _fail(f"Session {session_id} not found")

        summary = recap_session(session)
        click.echo("=" * 60)
        click.echo(f"SESSION RECAP: {session.date.isoformat()} (week {session.week_index})")
        click.echo("=" * 60)
        click.echo(f"\n{'Exercise':24} | {'Status':10} | {'Sets':>5} | {'Volume':>7} | Top set")
        click.echo("─" * 60)
        for e in summary.exercises:
            label = (e.exercise_name or e.exercise_id)[:24]
            pr = " 🏆" if e.is_pr else ""
            click.echo(f"{label:24} | {e.status:10} | {e.logged_sets:>2}/{e.planned_sets:<2} | "
                       f"{format_volume(e.volume):>7} | {e.top_set or '-'}{pr}")
        click.echo("─" * 60)
        click.echo(f"Total: {summary.total_sets} sets, {format_volume(summary.total_volume)} volume, "
                   f"{summary.pr_count} PRs")
    except SpotterError as e:
        _fail(f"Error: {e}")
    finally:
        store.close()


@cli.command()
@click.argument('exercise_id')
@click.pass_context
def pr(ctx: click.Context, exercise_id: str):
    """Show the stored PR for an exercise."""
    store = _open_store(ctx)
    try:
        record = PRTracker(store).current(exercise_id)
        if record is None:
            click.echo(f"No PR recorded for {exercise_id}")
            return
        click.echo(f"{record.exercise_name} ({record.exercise_id})")
        click.echo(f"Best set: {record.best_load:.1f} x {record.best_reps} = {record.best_set_volume:.0f}")
        click.echo(f"Date: {record.best_date.isoformat()}")
    finally:
        store.close()


@cli.command('save-session')
@click.argument('session_id', type=int)
@click.option('--exercise', 'exercise_id', help='Only save this exercise')
@click.pass_context
def save_session(ctx: click.Context, session_id: int, exercise_id: Optional[str]):
    """Evaluate logged exercises, update PRs and carry plans forward."""
    store = _open_store(ctx)
    try:
        session = store.fetch_session(session_id)
        if session is None:
            _fail(f"Session {session_id} not found")

        coach = SessionCoach(store, ctx.obj['coach_config'])
        if exercise_id:
            item = session.item_for(exercise_id)
            if item is None:
                _fail(f"{exercise_id} is not in session {session_id}")
            results = [coach.save_exercise(session, item)]
        else:
            results = coach.complete_session(session)

        for result in results:
            decision = result.decision
            load = f"{decision.next_load:.1f}" if decision.next_load > 0 else "-"
            flags = " 🏆 PR" if result.is_record else ""
            carried = " -> carried forward" if result.propagated_to is not None else ""
            click.echo(f"{result.exercise_id}: {decision.action.value} "
                       f"(load {load}, {decision.next_sets} sets){flags}{carried}")

        warnings = sorted({w for r in results for w in r.warnings})
        for warning in warnings:
            click.secho(f"⚠  {warning}", fg='yellow')
    except SpotterError as e:
        _fail(f"Error: {e}")
    finally:
        store.close()


@cli.command()
@click.argument('from_id')
@click.argument('to_id')
@click.option('--after', type=click.DateTime(formats=['%Y-%m-%d']),
              help='Only sessions after this date (YYYY-MM-DD), default: today')
@click.pass_context
def swap(ctx: click.Context, from_id: str, to_id: str, after: Optional[datetime]):
    """Replace an exercise in all future planned sessions."""
    after_day = after.date() if after else None
    store = _open_store(ctx)
    try:
        replaced = swap_exercise_forward(store, from_id, to_id, after=after_day)
        click.echo(f"Replaced {from_id} with {to_id} in {replaced} planned items")
    finally:
        store.close()


@cli.command('init-db')
@click.pass_context
def init_db(ctx: click.Context):
    """Create the Spotter tables."""
    store = _open_store(ctx)
    try:
        store.create_schema()
        click.echo("✓ Schema ready")
    except SpotterError as e:
        _fail(f"Error: {e}")
    finally:
        store.close()


if __name__ == '__main__':
    cli()
