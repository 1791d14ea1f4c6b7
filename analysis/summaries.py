"""
Weekly rollups of training load and time in zone.
"""

from datetime import date
from typing import Optional, Sequence, Tuple

import pandas as pd

from training_engine.acwr import classify_acwr_zone
from training_engine.config import ACWRThresholds
from training_engine.zones import (
    ZoneDistribution,
    aggregate_zone_distributions,
    calculate_polarization_ratio,
    zone_seconds_to_minutes,
)


def weekly_zone_summary(
    activities: Sequence[Tuple[date, ZoneDistribution]]
) -> pd.DataFrame:
    """
    Aggregate per-activity zone distributions by ISO week (weeks start Monday).

    Args:
        activities: (activity date, distribution) pairs

    Returns:
        DataFrame indexed by week start with zone1..zone5 minutes,
        totalMinutes, activityCount and polarization (% time in zones 1-2)
    """
    columns = [f'zone{i}Minutes' for i in range(1, 6)] + [
        'totalMinutes', 'activityCount', 'polarization'
    ]
    if not activities:
        return pd.DataFrame(columns=columns)

    frame = pd.DataFrame({
        'date': pd.to_datetime([d for d, _ in activities]),
        'distribution': [dist for _, dist in activities],
    })
    frame['week'] = frame['date'].dt.to_period('W-SUN').dt.start_time

    rows = {}
    for week, group in frame.groupby('week'):
        combined = aggregate_zone_distributions(list(group['distribution']))
        row = zone_seconds_to_minutes(combined)
        row['activityCount'] = len(group)
        row['polarization'] = calculate_polarization_ratio(combined)
        rows[week] = row

    summary = pd.DataFrame.from_dict(rows, orient='index')[columns]
    summary.index.name = 'week'
    return summary


def weekly_load_summary(
    daily: pd.DataFrame,
    chronic_weeks: int = 4,
    thresholds: Optional[ACWRThresholds] = None
) -> pd.DataFrame:
    """
    Weekly load totals with rolling ACWR and its zone.

    ACWR for a week is its load divided by the mean of the last
    chronic_weeks weeks (itself included); weeks without a full chronic
    window have no ACWR. A zero chronic mean gives an ACWR of 0.

    Args:
        daily: DataFrame indexed by date with a 'load' column
               (ActivityLoader.daily_loads())
        thresholds: ACWR zone bounds

    Returns:
        DataFrame indexed by week start with load, chronic, acwr, zone
    """
    if daily.empty:
        return pd.DataFrame(columns=['load', 'chronic', 'acwr', 'zone'])

    week_start = pd.DatetimeIndex(daily.index).to_period('W-SUN').start_time
    weekly = daily['load'].groupby(week_start).sum().to_frame('load')
    weekly.index.name = 'week'

    weekly['chronic'] = weekly['load'].rolling(chronic_weeks, min_periods=chronic_weeks).mean()
    ratio = weekly['load'] / weekly['chronic']
    ratio = ratio.where(weekly['chronic'] != 0, 0.0)
    weekly['acwr'] = ratio.round(2)
    weekly['zone'] = [
        classify_acwr_zone(v, thresholds).zone.value if pd.notna(v) else None
        for v in weekly['acwr']
    ]
    return weekly


def load_method_breakdown(loads: pd.DataFrame) -> pd.DataFrame:
    """
    How many workouts each load method scored, and their total load.

    Args:
        loads: ActivityLoader.calculate_loads() output

    Returns:
        DataFrame indexed by method with workouts and load columns
    """
    if loads.empty:
        return pd.DataFrame(columns=['workouts', 'load'])
    return (
        loads.groupby('method')
        .agg(workouts=('load', 'size'), load=('load', 'sum'))
        .sort_values('workouts', ascending=False)
    )
