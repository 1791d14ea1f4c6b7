"""
Synthetic athlete data generation.

Generates reproducible inputs for the calculation engine:
- 1 Hz power and heart-rate streams for a single session
- Workout summaries for several athlete archetypes
- Daily load series with steady, spiking or tapering patterns
- Strength logs that progress, stall or regress
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from training_engine.zones import TrainingZone, DEFAULT_ZONE_PERCENTAGES


@dataclass
class AthleteProfile:
    """Physiological profile used to generate sessions."""
    id: str
    gender: str            # 'male' or 'female'
    hr_rest: float
    hr_max: float
    lt_hr: float
    ftp: Optional[float]   # None for athletes without a power meter
    has_hr_monitor: bool = True

    def zones(self) -> List[TrainingZone]:
        """Zones 1-5 as percentages of max HR."""
        return [
            TrainingZone(number, round(self.hr_max * low), round(self.hr_max * high), name)
            for number, (low, high, name) in DEFAULT_ZONE_PERCENTAGES.items()
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'gender': self.gender,
            'hr_rest': self.hr_rest,
            'hr_max': self.hr_max,
            'lt_hr': self.lt_hr,
            'ftp': self.ftp,
            'has_hr_monitor': self.has_hr_monitor,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# ATHLETE ARCHETYPES
# ═══════════════════════════════════════════════════════════════════════════════

def create_power_cyclist(id_num: int) -> AthleteProfile:
    """Triathlete with power meter and chest strap."""
    hr_max = np.random.uniform(178, 195)
    return AthleteProfile(
        id=f"cyclist_{id_num}",
        gender=np.random.choice(['male', 'female']),
        hr_rest=np.random.uniform(45, 58),
        hr_max=hr_max,
        lt_hr=hr_max * np.random.uniform(0.86, 0.91),
        ftp=np.random.uniform(200, 320),
    )


def create_hr_runner(id_num: int) -> AthleteProfile:
    """Runner with HR monitor, no power."""
    hr_max = np.random.uniform(175, 200)
    return AthleteProfile(
        id=f"runner_{id_num}",
        gender=np.random.choice(['male', 'female']),
        hr_rest=np.random.uniform(48, 65),
        hr_max=hr_max,
        lt_hr=hr_max * np.random.uniform(0.84, 0.90),
        ftp=None,
    )


def create_device_free(id_num: int) -> AthleteProfile:
    """Athlete logging sessions without any sensor data."""
    return AthleteProfile(
        id=f"unequipped_{id_num}",
        gender=np.random.choice(['male', 'female']),
        hr_rest=60,
        hr_max=185,
        lt_hr=165,
        ftp=None,
        has_hr_monitor=False,
    )


ARCHETYPE_CREATORS = [
    (create_power_cyclist, 2),
    (create_hr_runner, 3),
    (create_device_free, 1),
]


def generate_athlete_profiles(
    n_profiles: int = 6,
    seed: Optional[int] = None
) -> List[AthleteProfile]:
    """
    Generate athlete profiles covering every load method.

    Args:
        n_profiles: Number of profiles to generate
        seed: Random seed for reproducibility

    Returns:
        List of AthleteProfile objects
    """
    if seed is not None:
        np.random.seed(seed)

    profiles = []
    for creator, default_count in ARCHETYPE_CREATORS:
        for i in range(default_count):
            if len(profiles) >= n_profiles:
                break
            profiles.append(creator(i + 1))

    while len(profiles) < n_profiles:
        creator, _ = ARCHETYPE_CREATORS[np.random.randint(len(ARCHETYPE_CREATORS))]
        profiles.append(creator(len(profiles) + 1))

    return profiles[:n_profiles]


# ═══════════════════════════════════════════════════════════════════════════════
# STREAMS
# ═══════════════════════════════════════════════════════════════════════════════

def generate_power_stream(
    duration_seconds: int,
    target_power: float,
    variability: float = 0.15,
    interval_power: Optional[float] = None,
    interval_seconds: int = 0,
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Generate a 1 Hz power stream.

    Steady riding around target_power with multiplicative noise; when
    interval_power is given, alternating blocks of interval_seconds are
    ridden at that power.

    Returns:
        Array of non-negative watts
    """
    if seed is not None:
        np.random.seed(seed)

    base = np.full(duration_seconds, float(target_power))
    if interval_power is not None and interval_seconds > 0:
        block = (np.arange(duration_seconds) // interval_seconds) % 2 == 1
        base[block] = interval_power

    noise = np.random.normal(1.0, variability, duration_seconds)
    return np.clip(base * noise, 0, None)


def generate_hr_stream(
    duration_seconds: int,
    hr_start: float,
    hr_steady: float,
    drift_bpm: float = 5.0,
    noise_bpm: float = 2.0,
    dropout_rate: float = 0.0,
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Generate a 1 Hz heart-rate stream.

    HR rises exponentially from hr_start to hr_steady (tau ≈ 60 s), then
    drifts upward linearly by drift_bpm over the session (cardiac drift).
    dropout_rate replaces a fraction of samples with 0 (strap contact loss).

    Returns:
        Array of bpm values
    """
    if seed is not None:
        np.random.seed(seed)

    t = np.arange(duration_seconds)
    rise = hr_steady - (hr_steady - hr_start) * np.exp(-t / 60.0)
    drift = drift_bpm * t / max(duration_seconds - 1, 1)
    hr = rise + drift + np.random.normal(0, noise_bpm, duration_seconds)

    if dropout_rate > 0:
        dropouts = np.random.random(duration_seconds) < dropout_rate
        hr[dropouts] = 0

    return np.round(hr)


# ═══════════════════════════════════════════════════════════════════════════════
# DAILY LOADS
# ═══════════════════════════════════════════════════════════════════════════════

LOAD_PATTERNS = ('steady', 'spike', 'taper', 'detraining')


def generate_daily_loads(
    n_days: int = 42,
    base_load: float = 60.0,
    pattern: str = 'steady',
    rest_days_per_week: int = 2,
    seed: Optional[int] = None
) -> List[float]:
    """
    Generate a daily load series.

    Patterns:
        steady:     constant weekly load with day-to-day variation
        spike:      final week at 1.8x the base load
        taper:      final week at 0.5x the base load
        detraining: load falls linearly to 30% over the series

    Args:
        n_days: Number of days
        base_load: Mean load on training days
        pattern: One of LOAD_PATTERNS
        rest_days_per_week: Zero-load days per week
        seed: Random seed for reproducibility

    Returns:
        Daily loads, most recent first
    """
    if pattern not in LOAD_PATTERNS:
        raise ValueError(f"pattern must be one of {LOAD_PATTERNS}, got {pattern!r}")
    if seed is not None:
        np.random.seed(seed)

    loads = np.random.normal(base_load, base_load * 0.15, n_days).clip(0)

    # Oldest first while building
    rest_days = set(range(7 - rest_days_per_week, 7))
    for day in range(n_days):
        if day % 7 in rest_days:
            loads[day] = 0.0

    if pattern == 'spike':
        loads[-7:] *= 1.8
    elif pattern == 'taper':
        loads[-7:] *= 0.5
    elif pattern == 'detraining':
        loads *= np.linspace(1.0, 0.3, n_days)

    return [float(round(v, 1)) for v in loads[::-1]]


# ═══════════════════════════════════════════════════════════════════════════════
# WORKOUT SUMMARIES
# ═══════════════════════════════════════════════════════════════════════════════

def generate_workouts(
    profile: AthleteProfile,
    n_days: int = 42,
    start: Optional[date] = None,
    sessions_per_week: int = 5,
    seed: Optional[int] = None
) -> pd.DataFrame:
    """
    Generate workout summaries in the activity loader's CSV layout.

    Power columns are filled only when the athlete has an FTP, HR columns
    only with an HR monitor; device-free athletes log duration alone.

    Returns:
        DataFrame with one row per workout
    """
    if seed is not None:
        np.random.seed(seed)
    if start is None:
        start = date(2024, 1, 1)

    rows = []
    for day in range(n_days):
        if day % 7 >= sessions_per_week:
            continue

        duration = float(np.random.choice([30, 45, 60, 75, 90]))
        intensity = np.random.uniform(0.60, 0.95)
        row: Dict[str, Any] = {
            'date': (start + timedelta(days=day)).isoformat(),
            'duration': duration,
            'gender': profile.gender,
        }

        if profile.ftp is not None:
            row['normalized_power'] = round(profile.ftp * intensity)
            row['avg_power'] = round(profile.ftp * intensity * 0.93)
            row['ftp'] = round(profile.ftp)

        if profile.has_hr_monitor:
            avg_hr = profile.hr_rest + (profile.lt_hr - profile.hr_rest) * intensity
            row['avg_heart_rate'] = round(avg_hr)
            row['max_heart_rate'] = round(profile.hr_max)
            row['resting_hr'] = round(profile.hr_rest)
            row['lt_hr'] = round(profile.lt_hr)

        rows.append(row)

    return pd.DataFrame(rows)


# ═══════════════════════════════════════════════════════════════════════════════
# STRENGTH LOGS
# ═══════════════════════════════════════════════════════════════════════════════

STRENGTH_TRENDS = ('progressing', 'plateau', 'regressing')


def generate_strength_log(
    client_id: str = 'athlete_1',
    exercise_id: str = 'back_squat',
    exercise_name: str = 'Back Squat',
    n_weeks: int = 8,
    start_load: float = 80.0,
    reps_target: int = 5,
    sets: int = 3,
    trend: str = 'progressing',
    start: Optional[date] = None
) -> pd.DataFrame:
    """
    Generate one session per week for a single exercise.

    progressing: +2.5 kg per week and reps at target + 2
    plateau:     load and reps unchanged
    regressing:  load fixed, one rep fewer every two weeks

    Returns:
        DataFrame in the strength log CSV layout
    """
    if trend not in STRENGTH_TRENDS:
        raise ValueError(f"trend must be one of {STRENGTH_TRENDS}, got {trend!r}")
    if start is None:
        start = date(2024, 1, 1)

    rows = []
    for week in range(n_weeks):
        if trend == 'progressing':
            load = start_load + 2.5 * week
            reps = reps_target + 2
        elif trend == 'plateau':
            load = start_load
            reps = reps_target
        else:
            load = start_load
            reps = max(1, reps_target - week // 2)

        rows.append({
            'client_id': client_id,
            'exercise_id': exercise_id,
            'exercise_name': exercise_name,
            'date': (start + timedelta(weeks=week)).isoformat(),
            'load_kg': load,
            'sets': sets,
            'reps_target': reps_target,
            'reps_completed': reps,
        })

    return pd.DataFrame(rows)


if __name__ == '__main__':
    for p in generate_athlete_profiles(seed=42):
        print(f"{p.id:<16} FTP={p.ftp or '-':>6}  LTHR={p.lt_hr:.0f}  HRmax={p.hr_max:.0f}")

    loads = generate_daily_loads(pattern='spike', seed=42)
    print(f"\nLast 7 days (spike): {loads[:7]}")
