"""
Tunable parameters for the calculation engine.

Every calculator accepts an optional params object and falls back to the
defaults below. An EngineConfig can be loaded from JSON so that a deployment
can adjust thresholds without touching the code.
"""

import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Tuple, Union


@dataclass
class LoadParams:
    """Coefficients for TSS / TRIMP calculations."""

    # ═══════════════════════════════════════════════════════════════════════════
    # hrTSS
    # ═══════════════════════════════════════════════════════════════════════════
    hr_ratio_min: float = 0.3
    hr_ratio_max: float = 1.3

    # ═══════════════════════════════════════════════════════════════════════════
    # BANISTER TRIMP
    # ═══════════════════════════════════════════════════════════════════════════
    banister_k_male: float = 1.92
    banister_k_female: float = 1.67
    banister_scale: float = 0.64

    # Edwards zone weights (zone 1..5)
    edwards_weights: Tuple[float, ...] = (1, 2, 3, 4, 5)

    # Normalized Power rolling window (1 Hz samples)
    np_window_seconds: int = 30

    def to_dict(self) -> Dict[str, Any]:
        """Convert parameters to dictionary."""
        d = asdict(self)
        d['edwards_weights'] = list(self.edwards_weights)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'LoadParams':
        """Create parameters from dictionary."""
        d = dict(d)
        if 'edwards_weights' in d:
            d['edwards_weights'] = tuple(d['edwards_weights'])
        return cls(**d)

    def validate(self) -> Tuple[bool, str]:
        """Validate parameter constraints."""
        issues = []
        if not (0 <= self.hr_ratio_min < self.hr_ratio_max):
            issues.append("hrTSS ratio bounds must satisfy 0 <= min < max")
        if self.banister_k_male <= 0 or self.banister_k_female <= 0:
            issues.append("Banister k coefficients must be positive")
        if len(self.edwards_weights) != 5:
            issues.append("Edwards weights must have exactly 5 entries")
        if self.np_window_seconds < 1:
            issues.append("NP window must be at least 1 second")

        if issues:
            return False, "; ".join(issues)
        return True, "Valid"


@dataclass
class ACWRThresholds:
    """
    ACWR zone boundaries.

    Each bin is inclusive on its upper bound:
        acwr < detraining_below             -> DETRAINING
        acwr <= optimal_max                 -> OPTIMAL
        acwr <= caution_max                 -> CAUTION
        acwr <= danger_max                  -> DANGER
        otherwise                           -> CRITICAL
    """
    detraining_below: float = 0.8
    optimal_max: float = 1.3
    caution_max: float = 1.5
    danger_max: float = 2.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'ACWRThresholds':
        return cls(**d)

    def validate(self) -> Tuple[bool, str]:
        if not (0 < self.detraining_below < self.optimal_max
                < self.caution_max < self.danger_max):
            return False, "ACWR thresholds must be in ascending order"
        return True, "Valid"


@dataclass
class ZoneParams:
    """Sanity limits for zone distribution."""
    hr_min_plausible: float = 30.0       # samples must be strictly above
    hr_max_plausible: float = 250.0      # samples must be strictly below
    max_total_seconds: int = 86400       # one day
    sum_tolerance_seconds: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'ZoneParams':
        return cls(**d)

    def validate(self) -> Tuple[bool, str]:
        if not (0 <= self.hr_min_plausible < self.hr_max_plausible):
            return False, "Plausible HR bounds must satisfy 0 <= min < max"
        if self.max_total_seconds <= 0:
            return False, "max_total_seconds must be positive"
        return True, "Valid"


@dataclass
class ProgressionParams:
    """Strength progression rules."""

    # 2-for-2 rule
    extra_reps_required: int = 2
    consecutive_sessions_required: int = 2
    load_increase_pct: float = 0.05
    min_load_increment_kg: float = 2.5
    plate_increment_kg: float = 2.5

    # Plateau detection
    improvement_threshold: float = 0.01   # 1% over previous best counts as progress
    plateau_weeks: int = 3                # weeks without progress -> plateau
    deload_weeks: int = 4                 # weeks without progress -> deload
    regression_threshold: float = 0.05    # 5% below best -> deload

    # Deload prescription
    deload_load_pct: float = 0.90
    deload_volume_pct: float = 0.60

    # Volume progression
    max_sets: int = 5

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'ProgressionParams':
        return cls(**d)

    def validate(self) -> Tuple[bool, str]:
        issues = []
        if self.extra_reps_required < 1 or self.consecutive_sessions_required < 1:
            issues.append("2-for-2 requirements must be at least 1")
        if not (0 < self.load_increase_pct <= 0.20):
            issues.append("load_increase_pct must be in (0, 0.20]")
        if not (0 < self.plateau_weeks <= self.deload_weeks):
            issues.append("0 < plateau_weeks <= deload_weeks")
        if not (0 < self.deload_load_pct < 1 and 0 < self.deload_volume_pct < 1):
            issues.append("Deload percentages must be in (0, 1)")
        if self.plate_increment_kg <= 0:
            issues.append("plate_increment_kg must be positive")

        if issues:
            return False, "; ".join(issues)
        return True, "Valid"


@dataclass
class EngineConfig:
    """All engine parameters in one place."""
    load: LoadParams = field(default_factory=LoadParams)
    acwr: ACWRThresholds = field(default_factory=ACWRThresholds)
    zones: ZoneParams = field(default_factory=ZoneParams)
    progression: ProgressionParams = field(default_factory=ProgressionParams)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'load': self.load.to_dict(),
            'acwr': self.acwr.to_dict(),
            'zones': self.zones.to_dict(),
            'progression': self.progression.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'EngineConfig':
        return cls(
            load=LoadParams.from_dict(d.get('load', {})),
            acwr=ACWRThresholds.from_dict(d.get('acwr', {})),
            zones=ZoneParams.from_dict(d.get('zones', {})),
            progression=ProgressionParams.from_dict(d.get('progression', {})),
        )

    def validate(self) -> Tuple[bool, str]:
        issues = []
        for section in (self.load, self.acwr, self.zones, self.progression):
            ok, message = section.validate()
            if not ok:
                issues.append(message)
        if issues:
            return False, "; ".join(issues)
        return True, "Valid"


def load_config(path: Union[str, Path]) -> EngineConfig:
    """
    Load an EngineConfig from a JSON file.

    Missing sections and keys fall back to defaults.

    Raises:
        ValueError: If the resulting configuration fails validation
    """
    with open(path) as f:
        config = EngineConfig.from_dict(json.load(f))

    ok, message = config.validate()
    if not ok:
        raise ValueError(f"Invalid engine config {path}: {message}")
    return config
