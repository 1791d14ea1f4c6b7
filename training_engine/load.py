"""
Load quantification: TSS, Normalized Power, hrTSS, TRIMP and ACWR.

Based on:
- Coggan & Allen (2010): TSS, IF and Normalized Power
- Edwards (1993): zone-weighted TRIMP
- Banister (1991): exponential TRIMP
- Williams et al. (2017): EWMA-based ACWR

The single-method calculators are strict: they raise InvalidInputError when
their inputs are incomplete. calculate_training_load() is the forgiving entry
point meant for heterogeneous historical data and never raises.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from .config import LoadParams
from .errors import InvalidInputError


class LoadMethod(str, Enum):
    """Method used to produce a training load value."""
    TSS = "TSS"
    HR_TSS = "HR_TSS"
    TRIMP_EDWARDS = "TRIMP_EDWARDS"
    TRIMP_BANISTER = "TRIMP_BANISTER"
    NONE = "NONE"


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# Accepted JSON keys -> WorkoutData field
_WORKOUT_KEYS = {
    'duration': 'duration',
    'avgPower': 'avg_power',
    'normalizedPower': 'normalized_power',
    'ftp': 'ftp',
    'avgHeartRate': 'avg_heart_rate',
    'maxHeartRate': 'max_heart_rate',
    'restingHR': 'resting_hr',
    'ltHR': 'lt_hr',
    'gender': 'gender',
    'timeInZones': 'time_in_zones',
}


@dataclass
class WorkoutData:
    """
    Raw physiological/power data for one workout.

    duration is in minutes; power in watts; heart rates in bpm;
    time_in_zones holds minutes spent in zones 1-5.
    """
    duration: float
    avg_power: Optional[float] = None
    normalized_power: Optional[float] = None
    ftp: Optional[float] = None
    avg_heart_rate: Optional[float] = None
    max_heart_rate: Optional[float] = None
    resting_hr: Optional[float] = None
    lt_hr: Optional[float] = None
    gender: Optional[str] = None
    time_in_zones: Optional[List[float]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'WorkoutData':
        """Build from a snake_case or camelCase payload, ignoring unknown keys."""
        kwargs = {}
        for key, value in d.items():
            name = _WORKOUT_KEYS.get(key, key)
            if name in cls.__dataclass_fields__:
                kwargs[name] = value
        if 'duration' not in kwargs:
            raise InvalidInputError("Workout payload is missing 'duration'")
        return cls(**kwargs)


@dataclass
class TrainingLoadResult:
    """Outcome of calculate_training_load()."""
    method: LoadMethod
    confidence: Optional[Confidence]
    tss: Optional[int] = None
    hr_tss: Optional[int] = None
    trimp: Optional[int] = None
    intensity: Optional[float] = None
    warning: Optional[str] = None
    attempted: List[str] = field(default_factory=list)

    @property
    def load(self) -> Optional[int]:
        """Primary load value for the selected method."""
        if self.method == LoadMethod.TSS:
            return self.tss
        if self.method == LoadMethod.HR_TSS:
            return self.hr_tss
        if self.method in (LoadMethod.TRIMP_EDWARDS, LoadMethod.TRIMP_BANISTER):
            return self.trimp
        return None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'method': self.method.value,
            'confidence': self.confidence.value if self.confidence else None,
        }
        for key in ('tss', 'hr_tss', 'trimp', 'intensity', 'warning'):
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        return d


def _positive(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def _require_duration(data: WorkoutData) -> None:
    if not _positive(data.duration):
        raise InvalidInputError(f"duration must be > 0, got {data.duration}")


def _banister_k(gender: Optional[str], params: LoadParams) -> float:
    if gender is not None and gender.lower() == 'female':
        return params.banister_k_female
    return params.banister_k_male


# =============================================================================
# Power
# =============================================================================

def calculate_intensity_factor(normalized_power: float, ftp: float) -> float:
    """IF = NP / FTP."""
    if not _positive(ftp):
        raise InvalidInputError(f"ftp must be > 0, got {ftp}")
    return normalized_power / ftp


def calculate_tss(data: WorkoutData) -> int:
    """
    Calculate Training Stress Score from power data.

    TSS = (seconds × NP × IF) / (FTP × 3600) × 100

    Args:
        data: Workout with normalized_power, ftp and duration

    Returns:
        TSS rounded to an integer
    """
    if not _positive(data.normalized_power):
        raise InvalidInputError("normalized_power is required for TSS")
    if not _positive(data.ftp):
        raise InvalidInputError("ftp must be > 0 for TSS")
    _require_duration(data)

    duration_seconds = data.duration * 60
    intensity = calculate_intensity_factor(data.normalized_power, data.ftp)
    tss = (duration_seconds * data.normalized_power * intensity) / (data.ftp * 3600) * 100

    return int(round(tss))


def calculate_normalized_power(
    power_stream: Sequence[float],
    params: Optional[LoadParams] = None
) -> int:
    """
    Calculate Normalized Power from a 1 Hz power stream.

    1. 30-second rolling average (each window summed from scratch)
    2. Raise each rolling value to the 4th power
    3. Average those values
    4. Take the 4th root

    Args:
        power_stream: Power samples in watts, one per second

    Returns:
        Normalized Power rounded to an integer
    """
    if params is None:
        params = LoadParams()

    window = params.np_window_seconds
    if power_stream is None or len(power_stream) < window:
        n = 0 if power_stream is None else len(power_stream)
        raise InvalidInputError(
            f"Normalized Power needs at least {window} samples, got {n}"
        )

    stream = np.asarray(power_stream, dtype=float)

    rolling = np.array([
        stream[i - window + 1:i + 1].sum() / window
        for i in range(window - 1, len(stream))
    ])
    fourth_powers = rolling ** 4
    mean_fourth = fourth_powers.sum() / len(fourth_powers)

    return int(round(mean_fourth ** 0.25))


# =============================================================================
# Heart rate
# =============================================================================

def calculate_hr_ratio(
    avg_hr: float,
    resting_hr: float,
    lt_hr: float,
    params: Optional[LoadParams] = None
) -> float:
    """
    Heart-rate ratio relative to lactate threshold, clamped to [0.3, 1.3].

    ratio = (HR_avg - HR_rest) / (HR_lt - HR_rest)
    """
    if params is None:
        params = LoadParams()
    if resting_hr >= lt_hr:
        raise InvalidInputError(
            f"resting_hr ({resting_hr}) must be below lt_hr ({lt_hr})"
        )

    ratio = (avg_hr - resting_hr) / (lt_hr - resting_hr)
    return float(np.clip(ratio, params.hr_ratio_min, params.hr_ratio_max))


def calculate_hr_tss(data: WorkoutData, params: Optional[LoadParams] = None) -> int:
    """
    Calculate heart-rate based TSS.

    hrTSS = hours × ratio² × 100, so one hour at LTHR scores 100.

    Args:
        data: Workout with avg_heart_rate, lt_hr, resting_hr and duration

    Returns:
        hrTSS rounded to an integer
    """
    if not _positive(data.avg_heart_rate):
        raise InvalidInputError("avg_heart_rate is required for hrTSS")
    if not _positive(data.lt_hr):
        raise InvalidInputError("lt_hr is required for hrTSS")
    if not _positive(data.resting_hr):
        raise InvalidInputError("resting_hr is required for hrTSS")
    _require_duration(data)

    ratio = calculate_hr_ratio(data.avg_heart_rate, data.resting_hr, data.lt_hr, params)
    hours = data.duration / 60

    return int(round(hours * ratio ** 2 * 100))


def calculate_trimp(data: WorkoutData, params: Optional[LoadParams] = None) -> int:
    """
    Calculate Edwards TRIMP.

    TRIMP = Σ minutes_in_zone_i × i   (i = 1..5)

    Args:
        data: Workout with time_in_zones (5 values, minutes)

    Returns:
        TRIMP rounded to an integer
    """
    if params is None:
        params = LoadParams()

    zones = data.time_in_zones
    if zones is None or len(zones) != 5:
        raise InvalidInputError("time_in_zones must contain exactly 5 values")
    if any(t is None or not math.isfinite(t) or t < 0 for t in zones):
        raise InvalidInputError(f"time_in_zones values must be finite and >= 0, got {zones}")

    trimp = sum(minutes * weight for minutes, weight in zip(zones, params.edwards_weights))
    return int(round(trimp))


def calculate_delta_hr(hr_avg: float, hr_rest: float, hr_max: float) -> float:
    """
    Calculate heart rate reserve fraction (Delta HR), clamped to [0, 1].
    """
    if hr_max <= hr_rest:
        raise InvalidInputError(f"hr_max ({hr_max}) must be greater than hr_rest ({hr_rest})")

    delta_hr = (hr_avg - hr_rest) / (hr_max - hr_rest)
    return float(np.clip(delta_hr, 0.0, 1.0))


def calculate_banister_trimp(data: WorkoutData, params: Optional[LoadParams] = None) -> int:
    """
    Calculate Banister TRIMP.

    TRIMP = duration × ΔHR × 0.64 × e^(k × ΔHR)
    with k = 1.92 (male, default) or 1.67 (female).

    Args:
        data: Workout with avg_heart_rate, max_heart_rate, resting_hr, duration

    Returns:
        TRIMP rounded to an integer
    """
    if params is None:
        params = LoadParams()

    if not _positive(data.avg_heart_rate):
        raise InvalidInputError("avg_heart_rate is required for Banister TRIMP")
    if not _positive(data.max_heart_rate):
        raise InvalidInputError("max_heart_rate is required for Banister TRIMP")
    if not _positive(data.resting_hr):
        raise InvalidInputError("resting_hr is required for Banister TRIMP")
    _require_duration(data)

    delta_hr = calculate_delta_hr(data.avg_heart_rate, data.resting_hr, data.max_heart_rate)
    k = _banister_k(data.gender, params)
    trimp = data.duration * delta_hr * params.banister_scale * math.exp(k * delta_hr)

    return int(round(trimp))


# =============================================================================
# Orchestrator
# =============================================================================

def _power_tss(data: WorkoutData, params: LoadParams) -> TrainingLoadResult:
    tss = calculate_tss(data)
    intensity = calculate_intensity_factor(data.normalized_power, data.ftp)
    return TrainingLoadResult(
        method=LoadMethod.TSS,
        confidence=Confidence.HIGH,
        tss=tss,
        intensity=round(intensity, 2),
    )


def _hr_tss(data: WorkoutData, params: LoadParams) -> TrainingLoadResult:
    hr_tss = calculate_hr_tss(data, params)
    ratio = calculate_hr_ratio(data.avg_heart_rate, data.resting_hr, data.lt_hr, params)
    result = TrainingLoadResult(
        method=LoadMethod.HR_TSS,
        confidence=Confidence.HIGH,
        hr_tss=hr_tss,
        intensity=round(ratio, 2),
    )
    if data.gender and _positive(data.max_heart_rate):
        try:
            result.trimp = calculate_banister_trimp(data, params)
        except (ValueError, ArithmeticError) as e:
            logger.debug(f"[LOAD] Banister TRIMP alongside hrTSS skipped: {e}")
    return result


def _edwards_trimp(data: WorkoutData, params: LoadParams) -> TrainingLoadResult:
    return TrainingLoadResult(
        method=LoadMethod.TRIMP_EDWARDS,
        confidence=Confidence.MEDIUM,
        trimp=calculate_trimp(data, params),
    )


def _banister_trimp(data: WorkoutData, params: LoadParams) -> TrainingLoadResult:
    return TrainingLoadResult(
        method=LoadMethod.TRIMP_BANISTER,
        confidence=Confidence.MEDIUM,
        trimp=calculate_banister_trimp(data, params),
    )


# (name, availability predicate, method) in strict precedence order
LOAD_METHOD_CHAIN: Tuple[Tuple[str, Callable[[WorkoutData], bool],
                               Callable[[WorkoutData, LoadParams], TrainingLoadResult]], ...] = (
    (
        LoadMethod.TSS.value,
        lambda d: d.normalized_power is not None and d.ftp is not None,
        _power_tss,
    ),
    (
        LoadMethod.HR_TSS.value,
        lambda d: d.avg_heart_rate is not None and d.lt_hr is not None
        and d.resting_hr is not None,
        _hr_tss,
    ),
    (
        LoadMethod.TRIMP_EDWARDS.value,
        lambda d: d.time_in_zones is not None,
        _edwards_trimp,
    ),
    (
        LoadMethod.TRIMP_BANISTER.value,
        lambda d: d.avg_heart_rate is not None and d.max_heart_rate is not None
        and d.resting_hr is not None,
        _banister_trimp,
    ),
)


def calculate_training_load(
    data: WorkoutData,
    params: Optional[LoadParams] = None
) -> TrainingLoadResult:
    """
    Calculate training load using the best available method.

    Precedence: power TSS > hrTSS > Edwards TRIMP > Banister TRIMP.
    A method whose inputs are present but invalid (for example NaN or
    infinite values) is logged and skipped.
    When nothing is computable the result has method NONE and a warning.

    Args:
        data: Workout data, possibly incomplete
        params: Load coefficients (defaults if None)

    Returns:
        TrainingLoadResult (never raises)
    """
    if params is None:
        params = LoadParams()

    attempted = []
    for name, available, method in LOAD_METHOD_CHAIN:
        if not available(data):
            continue
        attempted.append(name)
        try:
            result = method(data, params)
        except (ValueError, ArithmeticError, TypeError) as e:
            logger.warning(f"[LOAD] {name} failed, trying next method: {e}")
            continue
        result.attempted = attempted
        logger.debug(f"[LOAD] Selected {name} (confidence={result.confidence.value})")
        return result

    if attempted:
        warning = (f"Invalid data for every available method ({', '.join(attempted)}); "
                   "training load could not be calculated")
    else:
        warning = ("Insufficient data: provide power (NP + FTP), heart rate "
                   "(avg/rest/LT or max) or time in zones")
    logger.warning(f"[LOAD] No load method computable: {warning}")

    return TrainingLoadResult(
        method=LoadMethod.NONE,
        confidence=None,
        warning=warning,
        attempted=attempted,
    )


# =============================================================================
# Acute:Chronic Workload Ratio
# =============================================================================

def calculate_acwr(weekly_loads: Sequence[float]) -> Tuple[float, float, float]:
    """
    Calculate rolling-average ACWR from weekly loads.

    acute = most recent week; chronic = mean of the 4 most recent weeks.

    Args:
        weekly_loads: Weekly loads, most recent first (at least 4)

    Returns:
        Tuple of (acwr, acute, chronic); acwr is 0 when chronic is 0
    """
    if weekly_loads is None or len(weekly_loads) < 4:
        n = 0 if weekly_loads is None else len(weekly_loads)
        raise InvalidInputError(f"ACWR needs at least 4 weekly loads, got {n}")

    loads = np.asarray(weekly_loads, dtype=float)
    acute = float(loads[0])
    chronic = float(loads[:4].mean())

    if chronic == 0:
        return 0.0, acute, chronic

    return round(acute / chronic, 2), acute, chronic


def calculate_ewma(values: Sequence[float], span: int) -> np.ndarray:
    """
    Calculate Exponentially Weighted Moving Average.

    EWMA_t = value_t × λ + (1 - λ) × EWMA_{t-1}, λ = 2 / (span + 1),
    seeded with the first value.

    Args:
        values: Series of loads
        span: Decay span (7 for acute, 28 for chronic)

    Returns:
        Array of EWMA values
    """
    values = np.asarray(values, dtype=float)
    n = len(values)

    if n == 0:
        return np.array([])

    alpha = 2.0 / (span + 1.0)

    ewma = np.zeros(n)
    ewma[0] = values[0]
    for i in range(1, n):
        ewma[i] = alpha * values[i] + (1 - alpha) * ewma[i - 1]

    return ewma


def calculate_ewma_acwr(
    daily_loads: Sequence[float],
    acute_span: int = 7,
    chronic_span: int = 28
) -> Tuple[float, float, float]:
    """
    Calculate EWMA-based ACWR from daily loads.

    Both averages are seeded with the most recent day and folded backward
    through the 28-day window (α = 2/8 acute, α = 2/29 chronic).

    Args:
        daily_loads: Daily loads, most recent first (at least 28)

    Returns:
        Tuple of (acwr, acute_ewma, chronic_ewma); acwr is 0 when chronic is 0
    """
    if daily_loads is None or len(daily_loads) < chronic_span:
        n = 0 if daily_loads is None else len(daily_loads)
        raise InvalidInputError(
            f"EWMA ACWR needs at least {chronic_span} daily loads, got {n}"
        )

    window = np.asarray(daily_loads, dtype=float)[:chronic_span]
    acute = float(calculate_ewma(window, span=acute_span)[-1])
    chronic = float(calculate_ewma(window, span=chronic_span)[-1])

    if chronic == 0:
        return 0.0, acute, chronic

    return round(acute / chronic, 2), acute, chronic
