"""Data generation and loading utilities."""

from .synthetic import (
    AthleteProfile,
    generate_athlete_profiles,
    generate_power_stream,
    generate_hr_stream,
    generate_daily_loads,
    generate_workouts,
    generate_strength_log,
)
from .activity_loader import (
    ActivityLoader,
    load_hr_stream,
    load_power_stream,
    load_zones,
    load_strength_log,
)

__all__ = [
    # Synthetic data
    'AthleteProfile',
    'generate_athlete_profiles',
    'generate_power_stream',
    'generate_hr_stream',
    'generate_daily_loads',
    'generate_workouts',
    'generate_strength_log',
    # Activity loader
    'ActivityLoader',
    'load_hr_stream',
    'load_power_stream',
    'load_zones',
    'load_strength_log',
]
