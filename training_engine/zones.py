"""
Heart-rate zone distribution.

Time-in-zone can be produced at three levels of fidelity:
    1. STRAVA_STREAM  - 1 Hz heart-rate samples classified one by one
    2. GARMIN_ZONES   - per-zone seconds reported by the device
    3. ESTIMATED      - bell-curve template around the zone of the average HR

Distributions from several activities can be summed (AGGREGATED) and checked
with validate_zone_distribution(), which reports problems instead of raising.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from .config import ZoneParams


def _round_half_up(value: float) -> int:
    """Nearest integer with halves rounded up."""
    return int(math.floor(value + 0.5))


class ZoneSource(str, Enum):
    STRAVA_STREAM = "STRAVA_STREAM"
    GARMIN_ZONES = "GARMIN_ZONES"
    ESTIMATED = "ESTIMATED"
    AGGREGATED = "AGGREGATED"


@dataclass
class TrainingZone:
    """A heart-rate zone (1-5) with inclusive bpm boundaries."""
    zone: int
    hr_min: float
    hr_max: float
    name: str = ""

    @property
    def midpoint(self) -> float:
        return (self.hr_min + self.hr_max) / 2

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'TrainingZone':
        return cls(
            zone=int(d['zone']),
            hr_min=d.get('hr_min', d.get('hrMin')),
            hr_max=d.get('hr_max', d.get('hrMax')),
            name=d.get('name', ''),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'zone': self.zone, 'hrMin': self.hr_min, 'hrMax': self.hr_max, 'name': self.name}


@dataclass
class ZoneDistribution:
    """Seconds spent in each of the five zones."""
    zone1_seconds: int = 0
    zone2_seconds: int = 0
    zone3_seconds: int = 0
    zone4_seconds: int = 0
    zone5_seconds: int = 0
    total_tracked_seconds: int = 0
    source: ZoneSource = ZoneSource.ESTIMATED

    @property
    def zone_seconds(self) -> List[int]:
        return [
            self.zone1_seconds,
            self.zone2_seconds,
            self.zone3_seconds,
            self.zone4_seconds,
            self.zone5_seconds,
        ]

    @classmethod
    def from_zone_seconds(cls, seconds: Sequence[int], source: ZoneSource,
                          total: Optional[int] = None) -> 'ZoneDistribution':
        seconds = [int(s) for s in seconds]
        return cls(
            zone1_seconds=seconds[0],
            zone2_seconds=seconds[1],
            zone3_seconds=seconds[2],
            zone4_seconds=seconds[3],
            zone5_seconds=seconds[4],
            total_tracked_seconds=sum(seconds) if total is None else int(total),
            source=source,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'zone1Seconds': self.zone1_seconds,
            'zone2Seconds': self.zone2_seconds,
            'zone3Seconds': self.zone3_seconds,
            'zone4Seconds': self.zone4_seconds,
            'zone5Seconds': self.zone5_seconds,
            'totalTrackedSeconds': self.total_tracked_seconds,
            'source': self.source.value,
        }


@dataclass
class ZoneConfigSnapshot:
    """Zone thresholds in force when a distribution was calculated."""
    max_hr: float
    zones: List[TrainingZone] = field(default_factory=list)
    captured_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'maxHR': self.max_hr,
            'zones': [z.to_dict() for z in self.zones],
            'capturedAt': self.captured_at,
        }


# Share of total time per zone (zones 1-5), indexed by primary zone
ESTIMATION_TEMPLATES: Mapping[int, Tuple[float, ...]] = MappingProxyType({
    1: (0.70, 0.25, 0.05, 0.00, 0.00),
    2: (0.15, 0.65, 0.15, 0.05, 0.00),
    3: (0.05, 0.20, 0.50, 0.20, 0.05),
    4: (0.00, 0.10, 0.25, 0.50, 0.15),
    5: (0.00, 0.05, 0.15, 0.30, 0.50),
})

# Default zone bounds as fractions of max HR
DEFAULT_ZONE_PERCENTAGES: Mapping[int, Tuple[float, float, str]] = MappingProxyType({
    1: (0.50, 0.60, 'Recovery'),
    2: (0.60, 0.70, 'Aerobic'),
    3: (0.70, 0.80, 'Tempo'),
    4: (0.80, 0.90, 'Threshold'),
    5: (0.90, 1.00, 'VO2max'),
})


def get_zone_for_hr(hr: float, zones: Sequence[TrainingZone]) -> int:
    """
    Find the zone (1-5) containing a heart rate.

    Below every zone -> 1; above every zone -> 5; in a gap between zones ->
    the zone whose midpoint is nearest.

    Returns:
        Zone number, or 0 for invalid input (hr <= 0 or no zones)
    """
    if hr is None or hr <= 0 or not zones:
        return 0

    ordered = sorted(zones, key=lambda z: z.hr_min)

    for zone in ordered:
        if zone.hr_min <= hr <= zone.hr_max:
            return zone.zone

    if hr < ordered[0].hr_min:
        return 1
    if hr > max(z.hr_max for z in ordered):
        return 5

    nearest = min(ordered, key=lambda z: abs(hr - z.midpoint))
    return nearest.zone


def calculate_hr_zone_distribution(
    hr_samples: Sequence[float],
    zones: Sequence[TrainingZone],
    params: Optional[ZoneParams] = None
) -> ZoneDistribution:
    """
    Classify a 1 Hz heart-rate stream into time-in-zone.

    Samples outside (30, 250) bpm are discarded as sensor noise.

    Args:
        hr_samples: Heart rate per second
        zones: Athlete's training zones

    Returns:
        ZoneDistribution with source STRAVA_STREAM
    """
    if params is None:
        params = ZoneParams()

    counts = [0, 0, 0, 0, 0]
    samples = np.asarray(hr_samples if hr_samples is not None else [], dtype=float)
    plausible = samples[(samples > params.hr_min_plausible) & (samples < params.hr_max_plausible)]

    dropped = len(samples) - len(plausible)
    if dropped:
        logger.debug(f"[ZONES] Dropped {dropped} implausible HR samples")

    for hr in plausible:
        zone = get_zone_for_hr(hr, zones)
        if 1 <= zone <= 5:
            counts[zone - 1] += 1

    return ZoneDistribution.from_zone_seconds(counts, ZoneSource.STRAVA_STREAM)


def calculate_from_garmin_zones(garmin_zones: Mapping[str, Optional[float]]) -> ZoneDistribution:
    """
    Build a distribution from device-reported seconds per zone.

    Args:
        garmin_zones: Mapping with optional keys 'zone1'..'zone5' (seconds)

    Returns:
        ZoneDistribution with source GARMIN_ZONES
    """
    seconds = [_round_half_up(garmin_zones.get(f'zone{i}') or 0) for i in range(1, 6)]
    return ZoneDistribution.from_zone_seconds(seconds, ZoneSource.GARMIN_ZONES)


def estimate_zone_from_avg_hr(
    avg_hr: float,
    duration_seconds: int,
    zones: Sequence[TrainingZone]
) -> ZoneDistribution:
    """
    Estimate time-in-zone from average heart rate alone.

    The primary zone is the zone of the average HR; its template spreads the
    duration across neighbouring zones. The rounding residual goes back to
    the primary zone so the five zones always sum to duration_seconds.

    When the primary zone cannot be determined (no zones, invalid HR) the
    zone-1 template is used.

    Args:
        avg_hr: Average heart rate (bpm)
        duration_seconds: Activity duration (seconds)
        zones: Athlete's training zones

    Returns:
        ZoneDistribution with source ESTIMATED
    """
    duration_seconds = int(duration_seconds)
    primary = get_zone_for_hr(avg_hr, zones) or 1

    template = ESTIMATION_TEMPLATES[primary]
    seconds = [_round_half_up(duration_seconds * share) for share in template]

    residual = duration_seconds - sum(seconds)
    seconds[primary - 1] += residual

    return ZoneDistribution.from_zone_seconds(seconds, ZoneSource.ESTIMATED, total=duration_seconds)


def create_zone_config_snapshot(
    zones: Sequence[TrainingZone],
    max_hr: float
) -> ZoneConfigSnapshot:
    """
    Capture the zone thresholds used for a calculation.

    Zones missing from the input are filled from DEFAULT_ZONE_PERCENTAGES of
    max_hr, so the snapshot always holds zones 1-5.
    """
    by_number = {z.zone: z for z in zones if 1 <= z.zone <= 5}

    snapshot_zones = []
    for number in range(1, 6):
        if number in by_number:
            z = by_number[number]
            snapshot_zones.append(TrainingZone(number, z.hr_min, z.hr_max, z.name))
        else:
            low, high, name = DEFAULT_ZONE_PERCENTAGES[number]
            snapshot_zones.append(
                TrainingZone(number, _round_half_up(max_hr * low),
                             _round_half_up(max_hr * high), name)
            )

    return ZoneConfigSnapshot(
        max_hr=max_hr,
        zones=snapshot_zones,
        captured_at=datetime.now(timezone.utc).isoformat(),
    )


def calculate_polarization_ratio(distribution: ZoneDistribution) -> float:
    """
    Percentage of tracked time spent in zones 1-2, one decimal place.

    80/20 polarized training targets ~80%.
    """
    if distribution.total_tracked_seconds <= 0:
        return 0.0

    easy = distribution.zone1_seconds + distribution.zone2_seconds
    return round(easy / distribution.total_tracked_seconds * 100, 1)


def aggregate_zone_distributions(distributions: Sequence[ZoneDistribution]) -> ZoneDistribution:
    """Sum zone and total counters across distributions."""
    seconds = [0, 0, 0, 0, 0]
    total = 0
    for dist in distributions:
        for i, s in enumerate(dist.zone_seconds):
            seconds[i] += s
        total += dist.total_tracked_seconds

    return ZoneDistribution.from_zone_seconds(seconds, ZoneSource.AGGREGATED, total=total)


def validate_zone_distribution(
    distribution: ZoneDistribution,
    params: Optional[ZoneParams] = None
) -> Tuple[bool, List[str]]:
    """
    Check a distribution for structural problems.

    Returns:
        Tuple of (is_valid, errors)
    """
    if params is None:
        params = ZoneParams()

    errors = []

    for i, seconds in enumerate(distribution.zone_seconds, start=1):
        if seconds < 0:
            errors.append(f"zone{i}Seconds is negative ({seconds})")
    if distribution.total_tracked_seconds < 0:
        errors.append(f"totalTrackedSeconds is negative ({distribution.total_tracked_seconds})")

    zone_sum = sum(distribution.zone_seconds)
    drift = abs(zone_sum - distribution.total_tracked_seconds)
    if drift > params.sum_tolerance_seconds:
        errors.append(
            f"Sum of zones ({zone_sum}s) does not match totalTrackedSeconds "
            f"({distribution.total_tracked_seconds}s), difference {drift}s"
        )

    if distribution.total_tracked_seconds > params.max_total_seconds:
        errors.append(
            f"totalTrackedSeconds ({distribution.total_tracked_seconds}s) exceeds "
            f"{params.max_total_seconds}s (24h)"
        )

    return len(errors) == 0, errors


def zone_seconds_to_minutes(distribution: ZoneDistribution) -> Dict[str, int]:
    """Convert a distribution to whole minutes per zone."""
    minutes = {
        f'zone{i}Minutes': _round_half_up(s / 60)
        for i, s in enumerate(distribution.zone_seconds, start=1)
    }
    minutes['totalMinutes'] = _round_half_up(distribution.total_tracked_seconds / 60)
    return minutes


def resolve_zone_distribution(
    zones: Sequence[TrainingZone],
    hr_stream: Optional[Sequence[float]] = None,
    device_zones: Optional[Mapping[str, Optional[float]]] = None,
    avg_hr: Optional[float] = None,
    duration_seconds: Optional[int] = None,
    params: Optional[ZoneParams] = None
) -> Optional[ZoneDistribution]:
    """
    Pick the most accurate distribution the available data allows.

    Priority: HR stream > device zones > estimate from average HR.

    Returns:
        ZoneDistribution, or None when the activity has no HR data
    """
    if hr_stream is not None and len(hr_stream) > 0:
        return calculate_hr_zone_distribution(hr_stream, zones, params)
    if device_zones:
        return calculate_from_garmin_zones(device_zones)
    if avg_hr and duration_seconds:
        return estimate_zone_from_avg_hr(avg_hr, duration_seconds, zones)

    logger.debug("[ZONES] No HR data available for zone distribution")
    return None
