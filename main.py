#!/usr/bin/env python3
"""
Training Load Engine - CLI Entry Point

Usage:
    python main.py load WORKOUT.json|WORKOUTS.csv [--export OUT.csv]
    python main.py zones --zones ZONES.json (--stream HR.csv | --avg-hr BPM --duration SEC)
    python main.py acwr (--weekly W1 W2 W3 W4 ... | --daily-csv WORKOUTS.csv)
    python main.py retention MODALITY --weeks W --tss T [--running-pct P]
    python main.py pain LEVEL [--location LOC] [--timing WHEN] [--gait] [--acwr X]
                          [--injury TYPE [--plan PLAN.json]]
    python main.py risk (--loads L1 L2 ... | --daily-csv WORKOUTS.csv)
    python main.py progression STRENGTH_LOG.csv
    python main.py demo [--seed S]

All commands accept --config ENGINE.json and --verbose.
Invalid input exits with status 2.
"""

import argparse
from datetime import date
import json
import sys

from loguru import logger

from training_engine.acwr import analyze_load_patterns, assess_injury_risk, classify_acwr_zone
from training_engine.config import EngineConfig, load_config
from training_engine.errors import InvalidInputError
from training_engine.injury import (
    InjuryReport,
    InjuryType,
    PainLocation,
    PainTiming,
    PlannedWorkout,
    assess_pain_and_recommend,
    process_injury,
)
from training_engine.load import (
    WorkoutData,
    calculate_acwr,
    calculate_ewma_acwr,
    calculate_normalized_power,
    calculate_training_load,
)
from training_engine.progression import (
    InMemoryProgressionRepository,
    StrengthSession,
    calculate_progression,
)
from training_engine.retention import Modality, calculate_fitness_retention
from training_engine.zones import (
    calculate_hr_zone_distribution,
    create_zone_config_snapshot,
    estimate_zone_from_avg_hr,
)
from data.activity_loader import ActivityLoader, load_hr_stream, load_strength_log, load_zones
from data.synthetic import (
    generate_athlete_profiles,
    generate_daily_loads,
    generate_hr_stream,
    generate_power_stream,
    generate_strength_log,
)
from analysis.reports import (
    export_loads_csv,
    generate_acwr_report,
    generate_load_report,
    generate_progression_report,
    generate_retention_report,
    generate_zone_report,
)
from analysis.summaries import weekly_load_summary


def configure_logging(verbose: bool = False) -> None:
    """Send log output to stderr so stdout stays clean for reports/JSON."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def run_load(path: str, config: EngineConfig, export: str = None):
    """Training load for one JSON workout, or a CSV batch."""
    if path.endswith('.json'):
        with open(path) as f:
            workout = WorkoutData.from_dict(json.load(f))
        result = calculate_training_load(workout, config.load)
        _print_json(result.to_dict())
        return result

    loader = ActivityLoader(path, config.load)
    loads = loader.calculate_loads()
    daily = loader.daily_loads()

    patterns = None
    series = loader.daily_load_series()
    if series:
        patterns = analyze_load_patterns(series)

    print(generate_load_report(loads, weekly_load_summary(daily, thresholds=config.acwr), patterns))

    if export:
        export_loads_csv(loads, export)
        logger.info(f"Exported per-workout loads to {export}")

    return loads


def run_zones(
    zones_path: str,
    stream_path: str = None,
    avg_hr: float = None,
    duration: int = None,
    max_hr: float = None,
    config: EngineConfig = None,
):
    """Zone distribution from a stream, or estimated from average HR."""
    zones = load_zones(zones_path)

    if stream_path:
        distribution = calculate_hr_zone_distribution(
            load_hr_stream(stream_path), zones, config.zones
        )
    elif avg_hr and duration:
        distribution = estimate_zone_from_avg_hr(avg_hr, duration, zones)
    else:
        raise InvalidInputError("zones needs --stream or both --avg-hr and --duration")

    print(generate_zone_report(distribution))
    if max_hr:
        _print_json(create_zone_config_snapshot(zones, max_hr).to_dict())
    return distribution


def run_acwr(weekly=None, daily_csv: str = None, config: EngineConfig = None):
    """Rolling ACWR from weekly loads, or EWMA ACWR from a workout CSV."""
    if weekly:
        acwr, acute, chronic = calculate_acwr(weekly)
        method = "rolling 1w/4w"
    elif daily_csv:
        daily = ActivityLoader(daily_csv, config.load).daily_load_series()
        acwr, acute, chronic = calculate_ewma_acwr(daily)
        method = "EWMA 7d/28d"
    else:
        raise InvalidInputError("acwr needs --weekly or --daily-csv")

    assessment = classify_acwr_zone(acwr, config.acwr)
    print(generate_acwr_report(acwr, acute, chronic, assessment, method))
    return assessment


def run_risk(loads=None, daily_csv: str = None, config: EngineConfig = None):
    """Injury-risk assessment from daily loads, most recent first."""
    if daily_csv:
        loads = ActivityLoader(daily_csv, config.load).daily_load_series()
    if not loads:
        raise InvalidInputError("risk needs --loads or --daily-csv")

    assessment = assess_injury_risk(loads)
    _print_json(assessment.to_dict())
    return assessment


def run_retention(modality: str, weeks: float, tss: float, running_pct: float = 0.0):
    prediction = calculate_fitness_retention(modality, weeks, tss, running_pct)
    print(generate_retention_report(prediction))
    return prediction


def run_pain(
    level: float,
    location: str,
    timing: str = None,
    gait: bool = False,
    acwr: float = None,
    injury: str = None,
    weekly_minutes: float = 0.0,
    config: EngineConfig = None,
    plan: str = None,
):
    """Pain decision, plus the full injury response when --injury is given."""
    thresholds = config.acwr if config else None
    decision = assess_pain_and_recommend(level, location, gait, timing, acwr, thresholds)
    payload = {'decision': decision.to_dict()}

    if injury:
        acwr_risk = None
        if acwr is not None:
            acwr_risk = classify_acwr_zone(acwr, thresholds).risk.value
        report = InjuryReport(
            injury_type=injury,
            pain_level=level,
            pain_timing=timing or PainTiming.DURING,
            acwr_risk=acwr_risk,
        )
        workouts = []
        if plan:
            with open(plan) as f:
                workouts = [PlannedWorkout.from_dict(w) for w in json.load(f)]
        response = process_injury(report, weekly_minutes, upcoming_workouts=workouts)
        payload['injuryResponse'] = response.to_dict()

    _print_json(payload)
    return decision


def run_progression(log_path: str, config: EngineConfig):
    """Replay a strength log, oldest session first."""
    repository = InMemoryProgressionRepository()
    decisions = [
        calculate_progression(session, repository, config.progression)
        for session in load_strength_log(log_path)
    ]
    print(generate_progression_report(decisions))
    return decisions


def run_demo(seed: int = 42, config: EngineConfig = None):
    """Run every calculator over synthetic data."""
    print(f"Running demo with seed {seed}...")
    config = config or EngineConfig()

    cyclist = generate_athlete_profiles(1, seed=seed)[0]

    # Power -> NP -> TSS
    power = generate_power_stream(3600, cyclist.ftp * 0.75, interval_power=cyclist.ftp * 1.05,
                                  interval_seconds=300, seed=seed)
    np_watts = calculate_normalized_power(power, config.load)
    workout = WorkoutData(
        duration=60,
        normalized_power=np_watts,
        ftp=cyclist.ftp,
        avg_heart_rate=(cyclist.hr_rest + cyclist.lt_hr) / 2,
        max_heart_rate=cyclist.hr_max,
        resting_hr=cyclist.hr_rest,
        lt_hr=cyclist.lt_hr,
        gender=cyclist.gender,
    )
    _print_json(calculate_training_load(workout, config.load).to_dict())

    # HR stream -> zones
    hr = generate_hr_stream(3600, cyclist.hr_rest + 30, cyclist.lt_hr * 0.9, seed=seed)
    distribution = calculate_hr_zone_distribution(hr, cyclist.zones(), config.zones)
    print(generate_zone_report(distribution))

    # ACWR on a spiking load pattern
    daily = generate_daily_loads(pattern='spike', seed=seed)
    acwr, acute, chronic = calculate_ewma_acwr(daily)
    print(generate_acwr_report(acwr, acute, chronic, classify_acwr_zone(acwr, config.acwr),
                               "EWMA 7d/28d"))
    run_risk(daily, config=config)

    # Pain check-in and injury cascade
    run_pain(4, PainLocation.ACHILLES, PainTiming.DURING, acwr=acwr,
             injury=InjuryType.ACHILLES_TENDINOPATHY, weekly_minutes=240, config=config)

    run_retention(Modality.DEEP_WATER_RUNNING, 4, 280, running_pct=10)

    # Strength replay: four progressing weeks, then a stall at 87.5 kg
    sessions = [
        *generate_strength_log(n_weeks=4, trend='progressing').to_dict(orient='records'),
        *generate_strength_log(n_weeks=5, trend='plateau', start_load=87.5,
                               start=date(2024, 1, 29)).to_dict(orient='records'),
    ]
    repository = InMemoryProgressionRepository()
    decisions = [
        calculate_progression(StrengthSession.from_dict(row), repository, config.progression)
        for row in sessions
    ]
    print(generate_progression_report(decisions))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Training Load Engine')
    parser.add_argument('--config', help='Engine config JSON')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Load command
    load_parser = subparsers.add_parser('load', help='Training load of workouts')
    load_parser.add_argument('path', help='Workout JSON or workouts CSV')
    load_parser.add_argument('--export', help='Write per-workout loads to CSV')

    # Zones command
    zones_parser = subparsers.add_parser('zones', help='HR zone distribution')
    zones_parser.add_argument('--zones', required=True, help='Zones JSON')
    zones_parser.add_argument('--stream', help='1 Hz HR stream CSV')
    zones_parser.add_argument('--avg-hr', type=float, help='Average HR (estimate)')
    zones_parser.add_argument('--duration', type=int, help='Duration in seconds (estimate)')
    zones_parser.add_argument('--max-hr', type=float, help='Also print a zone snapshot')

    # ACWR command
    acwr_parser = subparsers.add_parser('acwr', help='Acute:Chronic Workload Ratio')
    acwr_parser.add_argument('--weekly', type=float, nargs='+',
                             help='Weekly loads, most recent first')
    acwr_parser.add_argument('--daily-csv', help='Workouts CSV for EWMA ACWR')

    # Retention command
    ret_parser = subparsers.add_parser('retention', help='Cross-training fitness retention')
    ret_parser.add_argument('modality', choices=[m.value for m in Modality])
    ret_parser.add_argument('--weeks', type=float, required=True, help='Cross-training weeks')
    ret_parser.add_argument('--tss', type=float, required=True, help='Weekly TSS')
    ret_parser.add_argument('--running-pct', type=float, default=0.0,
                            help='Share of volume still run (0-100)')

    # Pain command
    pain_parser = subparsers.add_parser('pain', help='Pain-based training decision')
    pain_parser.add_argument('level', type=float, help='Pain 0-10')
    pain_parser.add_argument('--location', default=PainLocation.OTHER.value,
                             choices=[p.value for p in PainLocation])
    pain_parser.add_argument('--timing', choices=[t.value for t in PainTiming])
    pain_parser.add_argument('--gait', action='store_true', help='Gait is affected')
    pain_parser.add_argument('--acwr', type=float, help='Current ACWR')
    pain_parser.add_argument('--injury', choices=[i.value for i in InjuryType],
                             help='Also build the injury response')
    pain_parser.add_argument('--weekly-minutes', type=float, default=0.0,
                             help='Planned running minutes per week')
    pain_parser.add_argument('--plan', help='Upcoming workouts JSON to modify')

    # Risk command
    risk_parser = subparsers.add_parser('risk', help='Injury risk from load patterns')
    risk_parser.add_argument('--loads', type=float, nargs='+',
                             help='Daily loads, most recent first')
    risk_parser.add_argument('--daily-csv', help='Workouts CSV')

    # Progression command
    prog_parser = subparsers.add_parser('progression', help='Replay a strength log')
    prog_parser.add_argument('path', help='Strength log CSV')

    # Demo command
    demo_parser = subparsers.add_parser('demo', help='Run all calculators on synthetic data')
    demo_parser.add_argument('--seed', type=int, default=42, help='Random seed')

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = load_config(args.config) if args.config else EngineConfig()

        if args.command == 'load':
            run_load(args.path, config, args.export)
        elif args.command == 'zones':
            run_zones(args.zones, args.stream, args.avg_hr, args.duration, args.max_hr, config)
        elif args.command == 'acwr':
            run_acwr(args.weekly, args.daily_csv, config)
        elif args.command == 'retention':
            run_retention(args.modality, args.weeks, args.tss, args.running_pct)
        elif args.command == 'pain':
            run_pain(args.level, args.location, args.timing, args.gait, args.acwr,
                     args.injury, args.weekly_minutes, config, args.plan)
        elif args.command == 'risk':
            run_risk(args.loads, args.daily_csv, config)
        elif args.command == 'progression':
            run_progression(args.path, config)
        elif args.command == 'demo':
            run_demo(args.seed, config)
        else:
            parser.print_help()
    except InvalidInputError as e:
        logger.error(f"Invalid input: {e}")
        return 2
    except ValueError as e:
        logger.error(f"Invalid value: {e}")
        return 2

    return 0


if __name__ == '__main__':
    sys.exit(main())
