"""
Text report generation.

Formats load batches, zone distributions, retention predictions and
progression replays as fixed-width reports for the CLI.
"""

import csv
from datetime import datetime
from typing import List, Optional, Sequence

import pandas as pd

from training_engine.acwr import ACWRAssessment, LoadPatternAnalysis
from training_engine.progression import ProgressionDecision
from training_engine.retention import FitnessRetentionPrediction
from training_engine.zones import (
    ZoneDistribution,
    calculate_polarization_ratio,
    validate_zone_distribution,
    zone_seconds_to_minutes,
)

from .summaries import load_method_breakdown


def _header(title: str) -> str:
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    return f"""
{'='*70}
{title}
{'='*70}
Generated: {timestamp}
"""


def generate_load_report(
    loads: pd.DataFrame,
    weekly: Optional[pd.DataFrame] = None,
    patterns: Optional[LoadPatternAnalysis] = None,
    title: str = "Training Load Report"
) -> str:
    """
    Report on a batch of workouts.

    Args:
        loads: ActivityLoader.calculate_loads() output
        weekly: weekly_load_summary() output
        patterns: analyze_load_patterns() result for the latest day

    Returns:
        Formatted report string
    """
    report = _header(title)
    report += f"Workouts: {len(loads)}\n"

    report += """
LOAD METHODS
------------
"""
    report += f"{'Method':<18} {'Workouts':>9} {'Load':>9}\n"
    report += "-" * 38 + "\n"
    for method, row in load_method_breakdown(loads).iterrows():
        report += f"{method:<18} {int(row['workouts']):>9d} {row['load']:>9.0f}\n"

    unscored = loads[loads['method'] == 'NONE'] if not loads.empty else loads
    if len(unscored):
        report += f"\n{len(unscored)} workout(s) could not be scored:\n"
        for _, row in unscored.head(5).iterrows():
            report += f"  {row['date']:%Y-%m-%d}: {row['warning']}\n"

    if weekly is not None and not weekly.empty:
        report += """
WEEKLY LOAD
-----------
"""
        report += f"{'Week':<12} {'Load':>8} {'Chronic':>9} {'ACWR':>6}  Zone\n"
        report += "-" * 50 + "\n"
        for week, row in weekly.iterrows():
            chronic = f"{row['chronic']:>9.0f}" if pd.notna(row['chronic']) else f"{'-':>9}"
            acwr = f"{row['acwr']:>6.2f}" if pd.notna(row['acwr']) else f"{'-':>6}"
            report += f"{week:%Y-%m-%d}   {row['load']:>8.0f} {chronic} {acwr}  {row['zone'] or ''}\n"

    if patterns is not None:
        report += f"""
LOAD PATTERNS
-------------
ACWR (7d/28d):             {patterns.acwr:>8.2f}  ({patterns.acwr_status})
Load, last 7 days:         {patterns.weekly_tss:>8d}
Monthly trend:             {patterns.monthly_trend:>8}
Spikes, last 4 weeks:      {patterns.load_spikes_last_4_weeks:>8d}
Sustainable weekly range:  {patterns.sustainable_min} - {patterns.sustainable_max}
"""

    report += "\n" + "=" * 70 + "\n"
    return report


def generate_zone_report(
    distribution: ZoneDistribution,
    title: str = "Zone Distribution"
) -> str:
    """Time in zone with minutes, share and validation problems."""
    minutes = zone_seconds_to_minutes(distribution)
    total = distribution.total_tracked_seconds

    report = _header(title)
    report += f"Source: {distribution.source.value}\n\n"
    report += f"{'Zone':<6} {'Minutes':>8} {'Share':>7}\n"
    report += "-" * 23 + "\n"
    for i, seconds in enumerate(distribution.zone_seconds, start=1):
        share = seconds / total * 100 if total > 0 else 0.0
        report += f"Z{i:<5} {minutes[f'zone{i}Minutes']:>8d} {share:>6.1f}%\n"
    report += "-" * 23 + "\n"
    report += f"{'Total':<6} {minutes['totalMinutes']:>8d}\n"
    report += f"\nPolarization (Z1-2): {calculate_polarization_ratio(distribution):.1f}%\n"

    ok, errors = validate_zone_distribution(distribution)
    if not ok:
        report += "\nValidation problems:\n"
        for error in errors:
            report += f"  - {error}\n"

    report += "\n" + "=" * 70 + "\n"
    return report


def generate_acwr_report(
    acwr: float,
    acute: float,
    chronic: float,
    assessment: ACWRAssessment,
    method: str = "rolling"
) -> str:
    report = _header(f"ACWR ({method})")
    report += f"""
Acute load:      {acute:>8.1f}
Chronic load:    {chronic:>8.1f}
ACWR:            {acwr:>8.2f}
Zone:            {assessment.zone.value:>8}
Risk:            {assessment.risk.value:>8}

{assessment.recommendation}
"""
    report += "\n" + "=" * 70 + "\n"
    return report


def generate_retention_report(prediction: FitnessRetentionPrediction) -> str:
    """Per-system retention, timeline and recommendations."""
    report = _header(f"Fitness Retention: {prediction.modality.value}")
    report += f"""
Duration:                  {prediction.duration_weeks:>8g} weeks

RETENTION
---------
VO2max:                    {prediction.vo2max_retention:>8.1f}%
Lactate threshold:         {prediction.lactate_threshold_retention:>8.1f}%
Running economy:           {prediction.running_economy_retention:>8.1f}%
Overall:                   {prediction.overall_retention:>8.1f}%

RETURN TO RUNNING
-----------------
{prediction.return_timeline}

RECOMMENDATIONS
---------------
"""
    for rec in prediction.recommendations:
        report += f"- {rec}\n"

    report += "\n" + "=" * 70 + "\n"
    return report


def generate_progression_report(
    decisions: Sequence[ProgressionDecision],
    title: str = "Strength Progression Replay"
) -> str:
    """One line per replayed session."""
    report = _header(title)
    report += f"Sessions: {len(decisions)}\n\n"
    report += (f"{'Date':<12} {'Load':>7} {'Reps':>6} {'e1RM':>7} "
               f"{'Status':<14} {'Action':<16} {'Next':>7}\n")
    report += "-" * 75 + "\n"

    for d in decisions:
        r = d.record
        report += (f"{r.date.isoformat():<12} {r.actual_load:>7.1f} "
                   f"{r.reps_completed:>3d}/{r.reps_target:<2d} {r.estimated_1rm:>7.1f} "
                   f"{r.progression_status.value:<14} {d.action.value:<16} "
                   f"{d.recommended_load:>7.1f}\n")

    if decisions:
        report += f"\nLatest: {decisions[-1].reasoning}\n"

    report += "\n" + "=" * 70 + "\n"
    return report


def export_loads_csv(loads: pd.DataFrame, filepath: str) -> None:
    """
    Export per-workout loads to CSV.

    Args:
        loads: ActivityLoader.calculate_loads() output
        filepath: Output file path
    """
    headers = ['date', 'duration_min', 'method', 'confidence', 'load', 'warning']

    with open(filepath, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=headers)
        writer.writeheader()

        for row in loads.to_dict(orient='records'):
            writer.writerow({
                'date': row['date'].strftime('%Y-%m-%d'),
                'duration_min': row['duration_min'],
                'method': row['method'],
                'confidence': row['confidence'] or '',
                'load': row['load'],
                'warning': row['warning'] or '',
            })
