"""
Cross-training fitness retention.

Predicts how much running fitness is preserved while training in a
different modality (typically during injury).

Based on:
- Eyestone et al. (1993): deep-water running maintains VO2max for 6 weeks
- Tanaka (1994): specificity of cross-training adaptations
- Mujika & Padilla (2000): detraining time course
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

from .errors import InvalidInputError


class Modality(str, Enum):
    DEEP_WATER_RUNNING = "DEEP_WATER_RUNNING"
    CYCLING = "CYCLING"
    ELLIPTICAL = "ELLIPTICAL"
    SWIMMING = "SWIMMING"
    ALTERG = "ALTERG"
    ROWING = "ROWING"


# Base VO2max retention per modality
VO2MAX_RETENTION: Mapping[Modality, float] = MappingProxyType({
    Modality.ALTERG: 0.98,
    Modality.DEEP_WATER_RUNNING: 0.95,
    Modality.ELLIPTICAL: 0.85,
    Modality.CYCLING: 0.75,
    Modality.ROWING: 0.70,
    Modality.SWIMMING: 0.45,
})

# Lactate threshold retains slightly less than VO2max
LACTATE_THRESHOLD_FACTOR = 0.95

# Running economy depends on movement-pattern similarity
RUNNING_ECONOMY_RETENTION: Mapping[Modality, float] = MappingProxyType({
    Modality.ALTERG: 0.95,
    Modality.DEEP_WATER_RUNNING: 0.70,
    Modality.ELLIPTICAL: 0.65,
    Modality.CYCLING: 0.40,
    Modality.ROWING: 0.30,
    Modality.SWIMMING: 0.20,
})

# Weekly TSS needed in each modality for full volume credit
TARGET_WEEKLY_TSS: Mapping[Modality, float] = MappingProxyType({
    Modality.DEEP_WATER_RUNNING: 300,
    Modality.CYCLING: 400,
    Modality.ELLIPTICAL: 350,
    Modality.SWIMMING: 300,
    Modality.ALTERG: 350,
    Modality.ROWING: 350,
})

MODALITY_RECOMMENDATIONS: Mapping[Modality, Tuple[str, ...]] = MappingProxyType({
    Modality.DEEP_WATER_RUNNING: (
        "Use a flotation belt and mimic running form with high cadence.",
        "Include interval sessions: 8-10 x 3 min hard with 1 min easy.",
    ),
    Modality.CYCLING: (
        "Keep cadence at 85-95 rpm to stay close to running turnover.",
        "Add running-specific drills and strides as soon as pain allows.",
    ),
    Modality.ELLIPTICAL: (
        "Use an upright posture and avoid leaning on the handles.",
        "Match running session structure (tempo, intervals) on the elliptical.",
    ),
    Modality.SWIMMING: (
        "Swimming preserves aerobic base but little running-specific fitness.",
        "Combine with deep-water running where possible.",
    ),
    Modality.ALTERG: (
        "Start at 50-70% body weight and increase 5-10% per week.",
        "AlterG keeps running mechanics intact; use it for quality sessions.",
    ),
    Modality.ROWING: (
        "Focus on leg drive to maximise lower-body aerobic work.",
        "Keep hard efforts short; rowing loads the lower back.",
    ),
})

MAX_DECAY = 0.20
DECAY_PER_WEEK = 0.02


@dataclass
class FitnessRetentionPrediction:
    modality: Modality
    duration_weeks: float
    vo2max_retention: float              # percent, 1 dp
    lactate_threshold_retention: float   # percent, 1 dp
    running_economy_retention: float     # percent, 1 dp
    overall_retention: float             # percent, 1 dp
    return_to_running_weeks: int
    return_timeline: str
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'modality': self.modality.value,
            'durationWeeks': self.duration_weeks,
            'vo2maxRetention': self.vo2max_retention,
            'lactateThresholdRetention': self.lactate_threshold_retention,
            'runningEconomyRetention': self.running_economy_retention,
            'overallRetention': self.overall_retention,
            'returnToRunningWeeks': self.return_to_running_weeks,
            'returnTimeline': self.return_timeline,
            'recommendations': list(self.recommendations),
        }


def duration_decay_multiplier(duration_weeks: float) -> float:
    """2% per week, capped at 20% total."""
    if duration_weeks < 0:
        raise InvalidInputError(f"duration_weeks must be >= 0, got {duration_weeks}")
    return 1.0 - min(DECAY_PER_WEEK * duration_weeks, MAX_DECAY)


def volume_adequacy_multiplier(weekly_tss: float, target_tss: float) -> float:
    """
    Credit for training volume relative to the modality target.

    Flat at 1.0 at or above target, gentle taper from 100% to 80% of
    target, steeper below that.
    """
    if weekly_tss < 0:
        raise InvalidInputError(f"weekly_tss must be >= 0, got {weekly_tss}")

    ratio = weekly_tss / target_tss
    if ratio >= 1.0:
        return 1.0
    if ratio >= 0.8:
        return 0.9 + (ratio - 0.8) * 0.5
    return 0.4 + (ratio / 0.8) * 0.5


def running_blend_bonus(running_percentage: float) -> float:
    """Extra retention when some running is kept in the week."""
    if running_percentage >= 50:
        return 0.15
    if running_percentage >= 25:
        return 0.10
    if running_percentage >= 10:
        return 0.05
    return 0.0


def _return_to_running(overall_pct: float, duration_weeks: float) -> Tuple[int, str]:
    if overall_pct >= 95:
        weeks = max(1, math.ceil(duration_weeks * 0.25))
        text = f"Minimal fitness loss. Resume normal training within {weeks} week(s)."
    elif overall_pct >= 85:
        weeks = max(1, math.ceil(duration_weeks * 0.5))
        text = f"Good retention. Rebuild to full volume over {weeks} week(s)."
    elif overall_pct >= 70:
        weeks = max(2, math.ceil(duration_weeks * 0.75))
        text = (f"Moderate fitness loss. Plan a {weeks}-week gradual rebuild "
                "before quality sessions.")
    else:
        weeks = max(3, math.ceil(duration_weeks))
        text = (f"Significant detraining. Expect a {weeks}-week return period "
                "starting with base mileage.")
    return weeks, text


def calculate_fitness_retention(
    modality: Modality,
    duration_weeks: float,
    weekly_tss: float,
    running_percentage: float = 0.0
) -> FitnessRetentionPrediction:
    """
    Predict fitness retained after a block of cross-training.

    Args:
        modality: Cross-training modality
        duration_weeks: Length of the cross-training block
        weekly_tss: Average weekly TSS in the substitute modality
        running_percentage: Share of weekly volume still run (0-100)

    Returns:
        FitnessRetentionPrediction with per-system retention in percent
    """
    try:
        modality = Modality(modality)
    except ValueError:
        raise InvalidInputError(f"Unknown modality: {modality}")
    if not (0 <= running_percentage <= 100):
        raise InvalidInputError(
            f"running_percentage must be between 0 and 100, got {running_percentage}"
        )

    decay = duration_decay_multiplier(duration_weeks)
    volume = volume_adequacy_multiplier(weekly_tss, TARGET_WEEKLY_TSS[modality])
    factor = decay * volume

    vo2max = VO2MAX_RETENTION[modality] * factor
    threshold = VO2MAX_RETENTION[modality] * LACTATE_THRESHOLD_FACTOR * factor
    economy = RUNNING_ECONOMY_RETENTION[modality] * factor

    bonus = running_blend_bonus(running_percentage)
    if bonus > 0:
        vo2max = min(1.0, vo2max + bonus)
        threshold = min(1.0, threshold + bonus)
        economy = min(1.0, economy + bonus * 2)

    overall = (vo2max + threshold + economy) / 3
    overall_pct = round(overall * 100, 1)

    weeks, timeline = _return_to_running(overall_pct, duration_weeks)

    recommendations = list(MODALITY_RECOMMENDATIONS[modality])
    if overall_pct < 70:
        recommendations.append(
            "Retention is low: add a second modality or increase session volume."
        )
    elif overall_pct < 85:
        recommendations.append(
            "Include at least two high-intensity cross-training sessions per week."
        )
    if running_percentage > 0:
        recommendations.append(
            "Keep the retained running easy and on soft surfaces; "
            "stop if pain exceeds 2/10."
        )
    if volume < 1.0:
        recommendations.append(
            f"Weekly load is below the {TARGET_WEEKLY_TSS[modality]:.0f} TSS target "
            "for this modality; extend session duration."
        )

    return FitnessRetentionPrediction(
        modality=modality,
        duration_weeks=duration_weeks,
        vo2max_retention=round(vo2max * 100, 1),
        lactate_threshold_retention=round(threshold * 100, 1),
        running_economy_retention=round(economy * 100, 1),
        overall_retention=overall_pct,
        return_to_running_weeks=weeks,
        return_timeline=timeline,
        recommendations=recommendations,
    )
