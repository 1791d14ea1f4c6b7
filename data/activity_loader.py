"""
Activity data loader.

Reads exported workout summaries, 1 Hz streams and strength logs from CSV
and turns them into the engine's input types.

Workout CSV columns (snake_case or the camelCase API names):
- date (required), duration (minutes, required)
- normalized_power, avg_power, ftp
- avg_heart_rate, max_heart_rate, resting_hr, lt_hr, gender
- zone1_min .. zone5_min (minutes in each HR zone)

Stream CSVs hold one row per second with a 'heart_rate' or 'power' column.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from loguru import logger

from training_engine.config import LoadParams
from training_engine.errors import InvalidInputError
from training_engine.load import WorkoutData, calculate_training_load
from training_engine.progression import StrengthSession
from training_engine.zones import TrainingZone


PathLike = Union[str, Path]

ZONE_MINUTE_COLUMNS = [f'zone{i}_min' for i in range(1, 6)]


# ===============================================================================
# WORKOUTS
# ===============================================================================

def _clean(value: Any) -> Any:
    """NaN -> None, numpy scalars -> Python scalars."""
    if value is None:
        return None
    if isinstance(value, float) and np.isnan(value):
        return None
    if isinstance(value, np.generic):
        value = value.item()
        if isinstance(value, float) and np.isnan(value):
            return None
    return value


def _row_to_workout(row: Dict[str, Any]) -> WorkoutData:
    payload = {k: _clean(v) for k, v in row.items() if k not in ('date', *ZONE_MINUTE_COLUMNS)}
    payload = {k: v for k, v in payload.items() if v is not None}

    zone_minutes = [_clean(row.get(col)) for col in ZONE_MINUTE_COLUMNS]
    if any(m is not None for m in zone_minutes):
        payload['time_in_zones'] = [m or 0.0 for m in zone_minutes]

    return WorkoutData.from_dict(payload)


class ActivityLoader:
    """
    Load workout summaries and compute their training load.

    Usage:
        loader = ActivityLoader('workouts.csv')
        loads = loader.calculate_loads()
        daily = loader.daily_loads()
    """

    def __init__(self, data_path: PathLike, params: Optional[LoadParams] = None):
        """
        Initialize the loader.

        Args:
            data_path: Path to a workout CSV file
            params: Load coefficients (defaults if None)
        """
        self.data_path = Path(data_path)
        self.params = params or LoadParams()

        self._workouts: Optional[List[Tuple[pd.Timestamp, WorkoutData]]] = None
        self._loads: Optional[pd.DataFrame] = None

    def load_workouts(self) -> List[Tuple[pd.Timestamp, WorkoutData]]:
        """
        Read the CSV into (date, WorkoutData) pairs.

        Rows without a date or duration are skipped with a warning.
        """
        if self._workouts is not None:
            return self._workouts

        if not self.data_path.exists():
            raise FileNotFoundError(f"Workout file not found: {self.data_path}")

        df = pd.read_csv(self.data_path)
        if 'date' not in df.columns:
            raise InvalidInputError(f"{self.data_path} has no 'date' column")
        df['date'] = pd.to_datetime(df['date'], errors='coerce')

        workouts = []
        for index, row in enumerate(df.to_dict(orient='records')):
            if pd.isna(row['date']):
                logger.warning(f"[LOADER] Row {index}: unparseable date, skipped")
                continue
            try:
                workout = _row_to_workout(row)
            except (InvalidInputError, TypeError) as e:
                logger.warning(f"[LOADER] Row {index}: {e}, skipped")
                continue
            workouts.append((row['date'], workout))

        workouts.sort(key=lambda w: w[0])
        logger.info(f"[LOADER] Loaded {len(workouts)} workouts from {self.data_path.name}")

        self._workouts = workouts
        return workouts

    def calculate_loads(self) -> pd.DataFrame:
        """
        Training load of every workout.

        Returns:
            DataFrame with columns date, method, confidence, load, warning
        """
        if self._loads is not None:
            return self._loads

        rows = []
        for date, workout in self.load_workouts():
            result = calculate_training_load(workout, self.params)
            rows.append({
                'date': date,
                'duration_min': workout.duration,
                'method': result.method.value,
                'confidence': result.confidence.value if result.confidence else None,
                'load': result.load if result.load is not None else 0,
                'warning': result.warning,
            })

        self._loads = pd.DataFrame(
            rows, columns=['date', 'duration_min', 'method', 'confidence', 'load', 'warning']
        )
        return self._loads

    def daily_loads(self) -> pd.DataFrame:
        """
        Daily load totals.

        Multiple workouts on the same day are summed.
        Missing days (rest days) get load = 0.

        Returns:
            DataFrame indexed by date with columns load, sessions
        """
        loads = self.calculate_loads()
        if loads.empty:
            return pd.DataFrame(columns=['load', 'sessions'])

        loads = loads.assign(day=loads['date'].dt.normalize())
        daily = loads.groupby('day').agg(load=('load', 'sum'), sessions=('load', 'size'))

        full_range = pd.date_range(daily.index.min(), daily.index.max(), freq='D')
        daily = daily.reindex(full_range, fill_value=0)
        daily.index.name = 'date'
        return daily

    def daily_load_series(self) -> List[float]:
        """Daily loads, most recent first (the order ACWR functions expect)."""
        daily = self.daily_loads()
        return [float(v) for v in daily['load'].iloc[::-1]]

    def weekly_load_series(self) -> List[float]:
        """Weekly (7-day) load totals ending on the last day, most recent first."""
        daily = self.daily_load_series()
        return [float(sum(daily[i:i + 7])) for i in range(0, len(daily) - 6, 7)]


# ===============================================================================
# STREAMS
# ===============================================================================

def _load_stream(path: PathLike, column: str) -> np.ndarray:
    df = pd.read_csv(path)
    if column not in df.columns:
        raise InvalidInputError(f"{path} has no '{column}' column (found {list(df.columns)})")
    stream = pd.to_numeric(df[column], errors='coerce')
    missing = int(stream.isna().sum())
    if missing:
        logger.debug(f"[LOADER] {missing} missing '{column}' samples dropped from {path}")
    return stream.dropna().to_numpy(dtype=float)


def load_hr_stream(path: PathLike, column: str = 'heart_rate') -> np.ndarray:
    """1 Hz heart-rate samples from a CSV."""
    return _load_stream(path, column)


def load_power_stream(path: PathLike, column: str = 'power') -> np.ndarray:
    """
    1 Hz power samples from a CSV.

    Missing samples are treated as zero power (coasting), so the stream keeps
    its time base.
    """
    df = pd.read_csv(path)
    if column not in df.columns:
        raise InvalidInputError(f"{path} has no '{column}' column (found {list(df.columns)})")
    return pd.to_numeric(df[column], errors='coerce').fillna(0).to_numpy(dtype=float)


# ===============================================================================
# ZONES AND STRENGTH
# ===============================================================================

def load_zones(path: PathLike) -> List[TrainingZone]:
    """Training zones from a JSON list of {zone, hrMin, hrMax, name}."""
    with open(path) as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get('zones', [])
    return [TrainingZone.from_dict(z) for z in raw]


def load_strength_log(path: PathLike) -> List[StrengthSession]:
    """
    Strength sessions from a CSV, oldest first.

    Expected columns: client_id, exercise_id, date, load_kg, sets,
    reps_target, reps_completed, and optionally exercise_name, formula.
    """
    df = pd.read_csv(path)
    df = df.sort_values('date', kind='stable')

    sessions = []
    for row in df.to_dict(orient='records'):
        clean: Dict[str, Any] = {k: _clean(v) for k, v in row.items()}
        sessions.append(StrengthSession.from_dict(clean))

    logger.info(f"[LOADER] Loaded {len(sessions)} strength sessions from {Path(path).name}")
    return sessions
