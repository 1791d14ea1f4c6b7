"""
Strength progression: 1RM estimation, the 2-for-2 rule and plateau detection.

Based on:
- Epley (1985), Brzycki (1993), Lander (1985), Lombardi (1989): 1RM formulas
- Baechle & Earle, NSCA Essentials: 2-for-2 load increase rule
- Zourdos et al. (2016): deload after stalled progression

History is read from and written to an injected ProgressionRepository so the
decision logic can run against in-memory fixtures.
"""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from loguru import logger
from scipy import stats

from .config import ProgressionParams
from .errors import InvalidInputError


class OneRepMaxFormula(str, Enum):
    EPLEY = "EPLEY"
    BRZYCKI = "BRZYCKI"
    LANDER = "LANDER"
    LOMBARDI = "LOMBARDI"


class EstimateConfidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ProgressionAction(str, Enum):
    DELOAD = "DELOAD"
    INCREASE_LOAD = "INCREASE_LOAD"
    VARIATION = "VARIATION"
    INCREASE_VOLUME = "INCREASE_VOLUME"
    MAINTAIN = "MAINTAIN"


class ProgressionStatus(str, Enum):
    ON_TRACK = "ON_TRACK"
    PLATEAU = "PLATEAU"
    REGRESSING = "REGRESSING"
    DELOAD_NEEDED = "DELOAD_NEEDED"


# Substitutes suggested when an exercise stalls, matched by keyword
EXERCISE_VARIATIONS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    'squat': ('Front Squat', 'Box Squat', 'Pause Squat', 'Bulgarian Split Squat'),
    'deadlift': ('Romanian Deadlift', 'Trap Bar Deadlift', 'Deficit Deadlift'),
    'bench': ('Close-Grip Bench Press', 'Incline Bench Press', 'Dumbbell Bench Press'),
    'press': ('Push Press', 'Seated Dumbbell Press', 'Landmine Press'),
    'lunge': ('Reverse Lunge', 'Walking Lunge', 'Step-Up'),
    'row': ('Chest-Supported Row', 'Single-Arm Dumbbell Row', 'Pendlay Row'),
    'hip thrust': ('Glute Bridge', 'Single-Leg Hip Thrust', 'Barbell Glute Bridge'),
    'calf': ('Single-Leg Calf Raise', 'Seated Calf Raise', 'Eccentric Heel Drop'),
})

DEFAULT_VARIATIONS: Tuple[str, ...] = (
    'Change rep range (e.g. 3x5 -> 4x8)',
    'Switch to a unilateral version',
    'Add tempo or pause reps',
)


@dataclass
class OneRepMaxEstimate:
    one_rep_max: float
    formula: OneRepMaxFormula
    confidence: EstimateConfidence

    def to_dict(self) -> Dict[str, Any]:
        return {
            'oneRepMax': self.one_rep_max,
            'formula': self.formula.value,
            'confidence': self.confidence.value,
        }


def estimate_one_rep_max(
    weight: float,
    reps: int,
    formula: OneRepMaxFormula = OneRepMaxFormula.EPLEY
) -> OneRepMaxEstimate:
    """
    Estimate a one-repetition maximum from a submaximal set.

    Formulas:
        EPLEY:    w × (1 + r/30)
        BRZYCKI:  w × 36 / (37 - r)
        LANDER:   100 × w / (101.3 - 2.67123 × r)
        LOMBARDI: w × r^0.10

    Confidence falls with rep count: ≤5 HIGH, ≤10 MEDIUM, otherwise LOW.

    Args:
        weight: Load lifted (kg)
        reps: Repetitions completed
        formula: Formula family

    Returns:
        OneRepMaxEstimate rounded to 0.1 kg
    """
    formula = OneRepMaxFormula(formula)
    if weight is None or weight <= 0:
        raise InvalidInputError(f"weight must be positive, got {weight}")
    if reps is None or reps < 1:
        raise InvalidInputError(f"reps must be at least 1, got {reps}")
    if formula == OneRepMaxFormula.BRZYCKI and reps >= 37:
        raise InvalidInputError("Brzycki formula is undefined for 37 or more reps")

    if reps == 1:
        value = float(weight)
    elif formula == OneRepMaxFormula.EPLEY:
        value = weight * (1 + reps / 30)
    elif formula == OneRepMaxFormula.BRZYCKI:
        value = weight * 36 / (37 - reps)
    elif formula == OneRepMaxFormula.LANDER:
        value = 100 * weight / (101.3 - 2.67123 * reps)
    else:
        value = weight * reps ** 0.10

    if reps <= 5:
        confidence = EstimateConfidence.HIGH
    elif reps <= 10:
        confidence = EstimateConfidence.MEDIUM
    else:
        confidence = EstimateConfidence.LOW

    return OneRepMaxEstimate(round(value, 1), formula, confidence)


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass
class StrengthSession:
    """One logged exercise for one athlete on one day."""
    client_id: str
    exercise_id: str
    date: date
    load_kg: float
    sets: int
    reps_target: int
    reps_completed: int
    exercise_name: Optional[str] = None
    formula: OneRepMaxFormula = OneRepMaxFormula.EPLEY

    def __post_init__(self):
        self.date = _parse_date(self.date)
        self.formula = OneRepMaxFormula(self.formula)
        if self.sets is None or self.sets < 1:
            raise InvalidInputError(f"sets must be at least 1, got {self.sets}")
        if self.reps_target is None or self.reps_target < 1:
            raise InvalidInputError(f"reps_target must be at least 1, got {self.reps_target}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'StrengthSession':
        def pick(*keys, default=None):
            for key in keys:
                if key in d and d[key] is not None:
                    return d[key]
            return default

        return cls(
            client_id=str(pick('client_id', 'clientId')),
            exercise_id=str(pick('exercise_id', 'exerciseId')),
            date=pick('date'),
            load_kg=float(pick('load_kg', 'load', 'actualLoad')),
            sets=int(pick('sets', default=1)),
            reps_target=int(pick('reps_target', 'repsTarget')),
            reps_completed=int(pick('reps_completed', 'repsCompleted')),
            exercise_name=pick('exercise_name', 'exerciseName'),
            formula=pick('formula', default=OneRepMaxFormula.EPLEY),
        )


@dataclass
class ProgressionRecord:
    """Stored outcome of one session, used as history for later sessions."""
    client_id: str
    exercise_id: str
    date: date
    actual_load: float
    sets: int
    reps_target: int
    reps_completed: int
    estimated_1rm: float
    progression_status: ProgressionStatus = ProgressionStatus.ON_TRACK
    weeks_at_current_load: int = 0
    ready_for_increase: bool = False
    deload_week: bool = False

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['date'] = self.date.isoformat()
        d['progression_status'] = self.progression_status.value
        return d


class ProgressionRepository(Protocol):
    """Storage of progression records for one (client, exercise) stream."""

    def get_history(self, client_id: str, exercise_id: str) -> List[ProgressionRecord]:
        ...

    def save(self, record: ProgressionRecord) -> None:
        ...


class InMemoryProgressionRepository:
    """Dictionary-backed repository. Last write wins per (client, exercise, date)."""

    def __init__(self, records: Optional[Sequence[ProgressionRecord]] = None):
        self._records: Dict[Tuple[str, str, date], ProgressionRecord] = {}
        for record in records or ():
            self.save(record)

    def get_history(self, client_id: str, exercise_id: str) -> List[ProgressionRecord]:
        rows = [r for (c, e, _), r in self._records.items()
                if c == client_id and e == exercise_id]
        return sorted(rows, key=lambda r: r.date)

    def save(self, record: ProgressionRecord) -> None:
        self._records[(record.client_id, record.exercise_id, record.date)] = record

    def __len__(self):
        return len(self._records)


# ═══════════════════════════════════════════════════════════════════════════════
# 2-FOR-2 RULE
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class TwoForTwoResult:
    ready_for_increase: bool
    consecutive_sessions: int
    extra_reps: int
    current_load: float
    recommended_load: Optional[float]
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'readyForIncrease': self.ready_for_increase,
            'consecutiveSessions': self.consecutive_sessions,
            'extraReps': self.extra_reps,
            'currentLoad': self.current_load,
            'recommendedLoad': self.recommended_load,
            'reasoning': self.reasoning,
        }


def round_to_plate(load: float, plate_increment: float = 2.5) -> float:
    """Round a load to the nearest loadable increment."""
    return round(round(load / plate_increment) * plate_increment, 2)


def recommended_new_load(load: float, params: Optional[ProgressionParams] = None) -> float:
    """Load after a 2-for-2 increase: +5%, at least one minimum increment."""
    if params is None:
        params = ProgressionParams()
    increment = max(load * params.load_increase_pct, params.min_load_increment_kg)
    return round_to_plate(load + increment, params.plate_increment_kg)


def evaluate_two_for_two(
    history: Sequence[ProgressionRecord],
    current: ProgressionRecord,
    params: Optional[ProgressionParams] = None
) -> TwoForTwoResult:
    """
    Apply the 2-for-2 rule.

    A session qualifies when reps_completed >= reps_target + 2. The load is
    increased once the current session and the sessions immediately before
    it qualify at the same load, two sessions in a row.

    Args:
        history: Previous records, oldest first
        current: Record for the session being evaluated

    Returns:
        TwoForTwoResult
    """
    if params is None:
        params = ProgressionParams()

    def qualifies(record: ProgressionRecord) -> bool:
        return record.reps_completed >= record.reps_target + params.extra_reps_required

    consecutive = 0
    for record in [*history, current][::-1]:
        if record.actual_load != current.actual_load or not qualifies(record):
            break
        consecutive += 1

    extra = current.reps_completed - current.reps_target
    ready = consecutive >= params.consecutive_sessions_required

    if ready:
        new_load = recommended_new_load(current.actual_load, params)
        reasoning = (f"Exceeded target by {params.extra_reps_required}+ reps for "
                     f"{consecutive} consecutive sessions. Increase load "
                     f"{current.actual_load:g} -> {new_load:g} kg.")
    else:
        new_load = None
        reasoning = (f"{consecutive}/{params.consecutive_sessions_required} qualifying "
                     f"sessions at {current.actual_load:g} kg.")

    return TwoForTwoResult(
        ready_for_increase=ready,
        consecutive_sessions=consecutive,
        extra_reps=extra,
        current_load=current.actual_load,
        recommended_load=new_load,
        reasoning=reasoning,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# PLATEAU DETECTION
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class DeloadPrescription:
    sets: int
    reps: int
    load_kg: float
    duration_weeks: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PlateauAnalysis:
    is_plateau: bool
    status: ProgressionStatus
    weeks_since_progress: int
    best_1rm: Optional[float]
    current_1rm: Optional[float]
    regression_pct: float
    trend_kg_per_week: Optional[float]
    recommendation: Optional[ProgressionAction] = None   # DELOAD | VARIATION | None
    deload: Optional[DeloadPrescription] = None
    variations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'isPlateau': self.is_plateau,
            'status': self.status.value,
            'weeksSinceProgress': self.weeks_since_progress,
            'best1RM': self.best_1rm,
            'current1RM': self.current_1rm,
            'regressionPercent': round(self.regression_pct * 100, 1),
            'trendKgPerWeek': self.trend_kg_per_week,
            'recommendation': self.recommendation.value if self.recommendation else None,
            'deload': self.deload.to_dict() if self.deload else None,
            'variations': list(self.variations),
        }


def suggest_variations(exercise_name: Optional[str]) -> List[str]:
    """Variations for a stalled exercise, by keyword in its name."""
    name = (exercise_name or '').lower()
    for keyword, variations in EXERCISE_VARIATIONS.items():
        if keyword in name:
            return list(variations)
    return list(DEFAULT_VARIATIONS)


def _trend(records: Sequence[ProgressionRecord]) -> Optional[float]:
    if len(records) < 3:
        return None
    origin = records[0].date
    weeks = [(r.date - origin).days / 7 for r in records]
    if len(set(weeks)) < 2:
        return None
    result = stats.linregress(weeks, [r.estimated_1rm for r in records])
    return round(float(result.slope), 2)


def detect_plateau(
    records: Sequence[ProgressionRecord],
    params: Optional[ProgressionParams] = None,
    exercise_name: Optional[str] = None
) -> PlateauAnalysis:
    """
    Detect stalled or regressing strength from estimated 1RM history.

    A record counts as progress when its e1RM beats the previous best by more
    than improvement_threshold. The plateau is measured in whole weeks from
    the last progress to the latest record.

    - weeks >= plateau_weeks                       -> plateau
    - weeks >= deload_weeks or e1RM >= 5% below best -> DELOAD
    - otherwise a plateau recommends VARIATION

    Best and peak are taken only from records after the last completed
    deload week, so the lighter deload session never reads as regression.

    Args:
        records: History including the current session, any order
        exercise_name: Used to pick variations

    Returns:
        PlateauAnalysis
    """
    if params is None:
        params = ProgressionParams()

    records = sorted(records, key=lambda r: r.date)
    if not records:
        return PlateauAnalysis(False, ProgressionStatus.ON_TRACK, 0, None, None, 0.0, None)

    window = records
    for i in range(len(records) - 1, -1, -1):
        if records[i].deload_week:
            window = records[i + 1:] or records[i:]
            break

    best = window[0].estimated_1rm
    best_date = window[0].date
    peak = best
    for record in window[1:]:
        if record.estimated_1rm > best * (1 + params.improvement_threshold):
            best = record.estimated_1rm
            best_date = record.date
        peak = max(peak, record.estimated_1rm)

    latest = records[-1]
    weeks = (latest.date - best_date).days // 7
    regression = (peak - latest.estimated_1rm) / peak if peak > 0 else 0.0

    regressing = regression >= params.regression_threshold
    stalled = weeks >= params.plateau_weeks
    is_plateau = stalled or regressing

    recommendation = None
    deload = None
    variations: List[str] = []

    if regressing:
        status = ProgressionStatus.REGRESSING
    elif weeks >= params.deload_weeks:
        status = ProgressionStatus.DELOAD_NEEDED
    elif stalled:
        status = ProgressionStatus.PLATEAU
    else:
        status = ProgressionStatus.ON_TRACK

    if regressing or weeks >= params.deload_weeks:
        recommendation = ProgressionAction.DELOAD
        deload = DeloadPrescription(
            sets=max(1, round(latest.sets * params.deload_volume_pct)),
            reps=latest.reps_target,
            load_kg=round_to_plate(latest.actual_load * params.deload_load_pct,
                                   params.plate_increment_kg),
        )
    elif stalled:
        recommendation = ProgressionAction.VARIATION
        variations = suggest_variations(exercise_name)

    return PlateauAnalysis(
        is_plateau=is_plateau,
        status=status,
        weeks_since_progress=weeks,
        best_1rm=peak,
        current_1rm=latest.estimated_1rm,
        regression_pct=round(regression, 4),
        trend_kg_per_week=_trend(records),
        recommendation=recommendation,
        deload=deload,
        variations=variations,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# ORCHESTRATION
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ProgressionDecision:
    action: ProgressionAction
    recommended_load: float
    recommended_sets: int
    recommended_reps: int
    reasoning: str
    one_rep_max: OneRepMaxEstimate
    two_for_two: TwoForTwoResult
    plateau: PlateauAnalysis
    record: ProgressionRecord

    def to_dict(self) -> Dict[str, Any]:
        return {
            'action': self.action.value,
            'recommendedLoad': self.recommended_load,
            'recommendedSets': self.recommended_sets,
            'recommendedReps': self.recommended_reps,
            'reasoning': self.reasoning,
            'oneRepMax': self.one_rep_max.to_dict(),
            'twoForTwo': self.two_for_two.to_dict(),
            'plateau': self.plateau.to_dict(),
            'record': self.record.to_dict(),
        }


DELOAD_STATUSES = (ProgressionStatus.REGRESSING, ProgressionStatus.DELOAD_NEEDED)


def _weeks_at_load(history: Sequence[ProgressionRecord], current: ProgressionRecord) -> int:
    first = current.date
    for record in reversed(history):
        if record.actual_load != current.actual_load:
            break
        first = record.date
    return (current.date - first).days // 7


def _is_deload_week(history: Sequence[ProgressionRecord], session: StrengthSession) -> bool:
    """True when the previous session prescribed a deload and this one is lighter."""
    if not history:
        return False
    previous = history[-1]
    return (previous.progression_status in DELOAD_STATUSES
            and session.load_kg < previous.actual_load)


def _session_estimate(
    session: StrengthSession,
    history: Sequence[ProgressionRecord]
) -> OneRepMaxEstimate:
    # A failed session (no reps) carries the last e1RM forward
    if session.reps_completed is None or session.reps_completed < 1:
        carried = history[-1].estimated_1rm if history else 0.0
        return OneRepMaxEstimate(carried, session.formula, EstimateConfidence.LOW)
    return estimate_one_rep_max(session.load_kg, session.reps_completed, session.formula)


def calculate_progression(
    session: StrengthSession,
    repository: ProgressionRepository,
    params: Optional[ProgressionParams] = None
) -> ProgressionDecision:
    """
    Decide the next prescription for one logged exercise.

    Priority: DELOAD > INCREASE_LOAD > VARIATION > INCREASE_VOLUME > MAINTAIN.
    The resulting record is saved back to the repository.

    A session logged below the load of a deload prescription is the deload
    week itself: it is marked on the record and the athlete is sent back to
    the working load from before the deload. A session with no completed
    reps keeps the previous e1RM and never earns a load or volume increase.

    Args:
        session: The logged session
        repository: Source of history and sink for the new record

    Returns:
        ProgressionDecision with all intermediate analyses
    """
    if params is None:
        params = ProgressionParams()

    history = [r for r in repository.get_history(session.client_id, session.exercise_id)
               if r.date < session.date]

    estimate = _session_estimate(session, history)
    failed = session.reps_completed is None or session.reps_completed < 1

    record = ProgressionRecord(
        client_id=session.client_id,
        exercise_id=session.exercise_id,
        date=session.date,
        actual_load=session.load_kg,
        sets=session.sets,
        reps_target=session.reps_target,
        reps_completed=session.reps_completed or 0,
        estimated_1rm=estimate.one_rep_max,
        deload_week=_is_deload_week(history, session),
    )

    two_for_two = evaluate_two_for_two(history, record, params)
    plateau = detect_plateau([*history, record], params, session.exercise_name)

    load = session.load_kg
    sets = session.sets
    reps = session.reps_target

    if record.deload_week:
        action = ProgressionAction.MAINTAIN
        load, sets = history[-1].actual_load, history[-1].sets
        reasoning = f"Deload week complete. Return to {load:g} kg x {sets} sets."
    elif plateau.recommendation == ProgressionAction.DELOAD:
        action = ProgressionAction.DELOAD
        load, sets, reps = plateau.deload.load_kg, plateau.deload.sets, plateau.deload.reps
        reasoning = (f"No progress for {plateau.weeks_since_progress} weeks "
                     f"({plateau.regression_pct * 100:.1f}% below best). Deload for one week.")
    elif failed:
        action = ProgressionAction.MAINTAIN
        reasoning = "No reps completed. Repeat the session before changing the load."
    elif two_for_two.ready_for_increase:
        action = ProgressionAction.INCREASE_LOAD
        load = two_for_two.recommended_load
        reasoning = two_for_two.reasoning
    elif plateau.recommendation == ProgressionAction.VARIATION:
        action = ProgressionAction.VARIATION
        reasoning = (f"Plateau for {plateau.weeks_since_progress} weeks. "
                     f"Try: {', '.join(plateau.variations)}.")
    elif session.reps_completed >= session.reps_target and session.sets < params.max_sets:
        action = ProgressionAction.INCREASE_VOLUME
        sets = session.sets + 1
        reasoning = f"Target reps met. Add a set ({session.sets} -> {sets})."
    else:
        action = ProgressionAction.MAINTAIN
        reasoning = "Keep the current prescription."

    record.progression_status = plateau.status
    record.ready_for_increase = two_for_two.ready_for_increase
    record.weeks_at_current_load = _weeks_at_load(history, record)
    repository.save(record)

    logger.info(
        f"[PROGRESSION] {session.client_id}/{session.exercise_id} {session.date}: "
        f"{action.value} (e1RM={estimate.one_rep_max}, status={plateau.status.value})"
    )

    return ProgressionDecision(
        action=action,
        recommended_load=load,
        recommended_sets=sets,
        recommended_reps=reps,
        reasoning=reasoning,
        one_rep_max=estimate,
        two_for_two=two_for_two,
        plateau=plateau,
        record=record,
    )
