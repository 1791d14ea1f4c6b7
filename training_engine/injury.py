"""
Pain-based injury decisions and the injury response cascade.

Implements the University of Delaware soreness rules as explicit tables:
- Pain > 5/10: complete rest
- Pain 3-5/10 during/after running: cross-training only
- Pain < 3/10: reduce volume/intensity

All outputs are looked up from the constant tables below; nothing is
inferred from free text.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .acwr import ACWRZone, classify_acwr_zone
from .config import ACWRThresholds
from .errors import InvalidInputError


class PainLocation(str, Enum):
    PLANTAR_FASCIA = "PLANTAR_FASCIA"
    ACHILLES = "ACHILLES"
    IT_BAND = "IT_BAND"
    PATELLA = "PATELLA"
    SHIN = "SHIN"
    CALF = "CALF"
    HAMSTRING = "HAMSTRING"
    HIP = "HIP"
    LOWER_BACK = "LOWER_BACK"
    OTHER = "OTHER"


class PainTiming(str, Enum):
    BEFORE = "BEFORE"
    DURING = "DURING"
    AFTER = "AFTER"
    CONSTANT = "CONSTANT"


class PainBand(str, Enum):
    NONE = "NONE"            # 0
    LOW = "LOW"              # 1-2
    MODERATE = "MODERATE"    # 3-4
    HIGH = "HIGH"            # 5-6
    SEVERE = "SEVERE"        # 7-10


class Decision(str, Enum):
    CONTINUE = "CONTINUE"
    MODIFY = "MODIFY"
    REST_1_DAY = "REST_1_DAY"
    REST_2_3_DAYS = "REST_2_3_DAYS"
    MEDICAL_EVALUATION = "MEDICAL_EVALUATION"
    STOP_IMMEDIATELY = "STOP_IMMEDIATELY"


class Severity(str, Enum):
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"
    CRITICAL = "CRITICAL"


class CrossTrainingModality(str, Enum):
    DEEP_WATER_RUNNING = "DEEP_WATER_RUNNING"
    CYCLING = "CYCLING"
    ELLIPTICAL = "ELLIPTICAL"
    SWIMMING = "SWIMMING"
    ALTERG = "ALTERG"
    ROWING = "ROWING"


# Order of escalation
DECISION_ORDER: Tuple[Decision, ...] = (
    Decision.CONTINUE,
    Decision.MODIFY,
    Decision.REST_1_DAY,
    Decision.REST_2_3_DAYS,
    Decision.MEDICAL_EVALUATION,
    Decision.STOP_IMMEDIATELY,
)

_B, _D, _A, _C = PainTiming.BEFORE, PainTiming.DURING, PainTiming.AFTER, PainTiming.CONSTANT

PAIN_DECISION_TABLE: Mapping[Tuple[PainBand, PainTiming], Decision] = MappingProxyType({
    (PainBand.NONE, _B): Decision.CONTINUE,
    (PainBand.NONE, _D): Decision.CONTINUE,
    (PainBand.NONE, _A): Decision.CONTINUE,
    (PainBand.NONE, _C): Decision.CONTINUE,

    (PainBand.LOW, _B): Decision.CONTINUE,
    (PainBand.LOW, _D): Decision.MODIFY,
    (PainBand.LOW, _A): Decision.CONTINUE,
    (PainBand.LOW, _C): Decision.REST_1_DAY,

    (PainBand.MODERATE, _B): Decision.MODIFY,
    (PainBand.MODERATE, _D): Decision.REST_1_DAY,
    (PainBand.MODERATE, _A): Decision.REST_1_DAY,
    (PainBand.MODERATE, _C): Decision.REST_2_3_DAYS,

    (PainBand.HIGH, _B): Decision.REST_2_3_DAYS,
    (PainBand.HIGH, _D): Decision.REST_2_3_DAYS,
    (PainBand.HIGH, _A): Decision.REST_2_3_DAYS,
    (PainBand.HIGH, _C): Decision.MEDICAL_EVALUATION,

    (PainBand.SEVERE, _B): Decision.MEDICAL_EVALUATION,
    (PainBand.SEVERE, _D): Decision.STOP_IMMEDIATELY,
    (PainBand.SEVERE, _A): Decision.MEDICAL_EVALUATION,
    (PainBand.SEVERE, _C): Decision.STOP_IMMEDIATELY,
})

# Altered gait means the athlete is compensating: never lower than this
GAIT_ESCALATION: Mapping[PainBand, Decision] = MappingProxyType({
    PainBand.NONE: Decision.MODIFY,
    PainBand.LOW: Decision.REST_1_DAY,
    PainBand.MODERATE: Decision.MEDICAL_EVALUATION,
    PainBand.HIGH: Decision.STOP_IMMEDIATELY,
    PainBand.SEVERE: Decision.STOP_IMMEDIATELY,
})

# Minimum decision implied by the load ratio alone
ACWR_ESCALATION: Mapping[ACWRZone, Decision] = MappingProxyType({
    ACWRZone.DETRAINING: Decision.CONTINUE,
    ACWRZone.OPTIMAL: Decision.CONTINUE,
    ACWRZone.CAUTION: Decision.CONTINUE,
    ACWRZone.DANGER: Decision.MODIFY,
    ACWRZone.CRITICAL: Decision.REST_1_DAY,
})

DECISION_SEVERITY: Mapping[Decision, Severity] = MappingProxyType({
    Decision.CONTINUE: Severity.GREEN,
    Decision.MODIFY: Severity.YELLOW,
    Decision.REST_1_DAY: Severity.YELLOW,
    Decision.REST_2_3_DAYS: Severity.RED,
    Decision.MEDICAL_EVALUATION: Severity.RED,
    Decision.STOP_IMMEDIATELY: Severity.CRITICAL,
})

DECISION_GUIDANCE: Mapping[Decision, str] = MappingProxyType({
    Decision.CONTINUE: "Continue training as planned and keep monitoring.",
    Decision.MODIFY: "Reduce volume and keep all sessions easy until pain settles.",
    Decision.REST_1_DAY: "Take one day off running, then reassess.",
    Decision.REST_2_3_DAYS: "Rest from running for 2-3 days and reassess before resuming.",
    Decision.MEDICAL_EVALUATION: "Stop running and book an evaluation with a physio or physician.",
    Decision.STOP_IMMEDIATELY: "Stop immediately. Do not run until cleared by a medical professional.",
})

# Cross-training is offered only for these decisions
CROSS_TRAINING_DECISIONS = frozenset({
    Decision.MODIFY,
    Decision.REST_1_DAY,
    Decision.REST_2_3_DAYS,
    Decision.MEDICAL_EVALUATION,
})

CROSS_TRAINING_BY_LOCATION: Mapping[PainLocation, Tuple[CrossTrainingModality, str]] = MappingProxyType({
    PainLocation.PLANTAR_FASCIA: (
        CrossTrainingModality.DEEP_WATER_RUNNING,
        "Deep-water running keeps the running pattern with zero foot loading.",
    ),
    PainLocation.ACHILLES: (
        CrossTrainingModality.DEEP_WATER_RUNNING,
        "Deep-water running avoids calf and Achilles loading.",
    ),
    PainLocation.IT_BAND: (
        CrossTrainingModality.CYCLING,
        "Cycling with a slightly raised saddle limits IT band friction.",
    ),
    PainLocation.PATELLA: (
        CrossTrainingModality.CYCLING,
        "Low-resistance cycling maintains fitness with controlled knee load.",
    ),
    PainLocation.SHIN: (
        CrossTrainingModality.ELLIPTICAL,
        "The elliptical removes impact while keeping a running-like motion.",
    ),
    PainLocation.CALF: (
        CrossTrainingModality.CYCLING,
        "Cycling with low resistance; progress to deep-water running when pain < 2/10.",
    ),
    PainLocation.HAMSTRING: (
        CrossTrainingModality.SWIMMING,
        "Swimming avoids hip flexion under load.",
    ),
    PainLocation.HIP: (
        CrossTrainingModality.SWIMMING,
        "Swim with a pull buoy to unload the hip flexors.",
    ),
    PainLocation.LOWER_BACK: (
        CrossTrainingModality.DEEP_WATER_RUNNING,
        "Deep-water running keeps the spine unloaded.",
    ),
    PainLocation.OTHER: (
        CrossTrainingModality.DEEP_WATER_RUNNING,
        "Deep-water running is the lowest-impact option.",
    ),
})


@dataclass
class InjuryDecision:
    decision: Decision
    severity: Severity
    pain_level: float
    pain_location: PainLocation
    guidance: str
    cross_training: Optional[CrossTrainingModality] = None
    cross_training_notes: Optional[str] = None
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'decision': self.decision.value,
            'severity': self.severity.value,
            'painLevel': self.pain_level,
            'painLocation': self.pain_location.value,
            'guidance': self.guidance,
            'crossTraining': self.cross_training.value if self.cross_training else None,
            'crossTrainingNotes': self.cross_training_notes,
            'reasons': list(self.reasons),
        }


def pain_band(pain_level: float) -> PainBand:
    """Bucket a 0-10 pain score."""
    if pain_level is None or not (0 <= pain_level <= 10):
        raise InvalidInputError(f"pain_level must be between 0 and 10, got {pain_level}")

    if pain_level == 0:
        return PainBand.NONE
    if pain_level < 3:
        return PainBand.LOW
    if pain_level < 5:
        return PainBand.MODERATE
    if pain_level < 7:
        return PainBand.HIGH
    return PainBand.SEVERE


def _escalate(current: Decision, minimum: Decision) -> Decision:
    if DECISION_ORDER.index(minimum) > DECISION_ORDER.index(current):
        return minimum
    return current


def assess_pain_and_recommend(
    pain_level: float,
    pain_location: PainLocation = PainLocation.OTHER,
    gait_affected: bool = False,
    pain_timing: Optional[PainTiming] = None,
    acwr: Optional[float] = None,
    thresholds: Optional[ACWRThresholds] = None
) -> InjuryDecision:
    """
    Turn a pain check-in into a training decision.

    The base decision comes from PAIN_DECISION_TABLE[(band, timing)], then
    may be raised by GAIT_ESCALATION and ACWR_ESCALATION. Severity and the
    cross-training substitute are looked up from the final decision.

    Args:
        pain_level: 0-10 pain score
        pain_location: Where it hurts
        gait_affected: Whether the athlete is limping / running altered
        pain_timing: When the pain appears (DURING when unknown)
        acwr: Optional current Acute:Chronic Workload Ratio
        thresholds: ACWR zone bounds used for the escalation

    Returns:
        InjuryDecision
    """
    pain_location = PainLocation(pain_location)
    timing = PainTiming(pain_timing) if pain_timing is not None else PainTiming.DURING
    band = pain_band(pain_level)

    decision = PAIN_DECISION_TABLE[(band, timing)]
    reasons = [f"Pain {pain_level}/10 ({band.value.lower()}) {timing.value.lower()} running"]

    if gait_affected:
        escalated = _escalate(decision, GAIT_ESCALATION[band])
        if escalated != decision:
            reasons.append("Altered gait")
        decision = escalated

    if acwr is not None:
        zone = classify_acwr_zone(acwr, thresholds).zone
        escalated = _escalate(decision, ACWR_ESCALATION[zone])
        if escalated != decision:
            reasons.append(f"ACWR {acwr:.2f} in {zone.value} zone")
        decision = escalated

    cross_training = None
    notes = None
    if decision in CROSS_TRAINING_DECISIONS:
        cross_training, notes = CROSS_TRAINING_BY_LOCATION[pain_location]

    return InjuryDecision(
        decision=decision,
        severity=DECISION_SEVERITY[decision],
        pain_level=pain_level,
        pain_location=pain_location,
        guidance=DECISION_GUIDANCE[decision],
        cross_training=cross_training,
        cross_training_notes=notes,
        reasons=reasons,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# INJURY RESPONSE CASCADE
# ═══════════════════════════════════════════════════════════════════════════════

class InjuryType(str, Enum):
    PLANTAR_FASCIITIS = "PLANTAR_FASCIITIS"
    ACHILLES_TENDINOPATHY = "ACHILLES_TENDINOPATHY"
    IT_BAND_SYNDROME = "IT_BAND_SYNDROME"
    PATELLOFEMORAL_SYNDROME = "PATELLOFEMORAL_SYNDROME"
    SHIN_SPLINTS = "SHIN_SPLINTS"
    STRESS_FRACTURE = "STRESS_FRACTURE"
    HAMSTRING_STRAIN = "HAMSTRING_STRAIN"
    CALF_STRAIN = "CALF_STRAIN"
    HIP_FLEXOR = "HIP_FLEXOR"


class ImmediateAction(str, Enum):
    REST = "REST"
    CROSS_TRAINING_ONLY = "CROSS_TRAINING_ONLY"
    REDUCE_50 = "REDUCE_50"
    MONITOR = "MONITOR"


# injury -> (modality, fitness retention %, notes)
INJURY_CROSS_TRAINING: Mapping[InjuryType, Tuple[CrossTrainingModality, int, str]] = MappingProxyType({
    InjuryType.PLANTAR_FASCIITIS: (
        CrossTrainingModality.DEEP_WATER_RUNNING, 98,
        "Deep water running maintains fitness with zero impact. Avoid cycling (dorsiflexion stress).",
    ),
    InjuryType.ACHILLES_TENDINOPATHY: (
        CrossTrainingModality.DEEP_WATER_RUNNING, 98,
        "DWR ideal. Swimming also good. Avoid AlterG/cycling (calf loading).",
    ),
    InjuryType.IT_BAND_SYNDROME: (
        CrossTrainingModality.SWIMMING, 45,
        "Swimming or DWR. Avoid cycling (knee flexion aggravates ITB).",
    ),
    InjuryType.PATELLOFEMORAL_SYNDROME: (
        CrossTrainingModality.DEEP_WATER_RUNNING, 98,
        "DWR excellent. Avoid cycling and AlterG (knee loading).",
    ),
    InjuryType.SHIN_SPLINTS: (
        CrossTrainingModality.CYCLING, 75,
        "Cycling or DWR. AlterG at 50% once pain < 2/10.",
    ),
    InjuryType.STRESS_FRACTURE: (
        CrossTrainingModality.DEEP_WATER_RUNNING, 98,
        "DWR or swimming ONLY. Minimum 6 weeks no impact. Medical clearance required.",
    ),
    InjuryType.HAMSTRING_STRAIN: (
        CrossTrainingModality.SWIMMING, 45,
        "Swimming ideal. Avoid cycling (hip flexion). AlterG once pain < 2/10.",
    ),
    InjuryType.CALF_STRAIN: (
        CrossTrainingModality.CYCLING, 75,
        "Cycling with low resistance. DWR once pain < 2/10.",
    ),
    InjuryType.HIP_FLEXOR: (
        CrossTrainingModality.SWIMMING, 45,
        "Swimming with pull buoy. Avoid cycling (hip flexion aggravates).",
    ),
})

BASELINE_RETURN_WEEKS: Mapping[InjuryType, int] = MappingProxyType({
    InjuryType.PLANTAR_FASCIITIS: 4,
    InjuryType.ACHILLES_TENDINOPATHY: 6,
    InjuryType.IT_BAND_SYNDROME: 3,
    InjuryType.PATELLOFEMORAL_SYNDROME: 4,
    InjuryType.SHIN_SPLINTS: 4,
    InjuryType.STRESS_FRACTURE: 12,
    InjuryType.HAMSTRING_STRAIN: 3,
    InjuryType.CALF_STRAIN: 3,
    InjuryType.HIP_FLEXOR: 3,
})


@dataclass(frozen=True)
class ReturnToRunningPhase:
    phase: int
    phase_name: str
    weeks: int
    run_walk_ratio: str
    frequency: int            # sessions per week
    duration: int             # minutes per session
    intensity: str
    pain_threshold: str
    progression_criteria: Tuple[str, ...]
    cross_training_allowed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phase': self.phase,
            'phaseName': self.phase_name,
            'weeks': self.weeks,
            'runWalkRatio': self.run_walk_ratio,
            'frequency': self.frequency,
            'duration': self.duration,
            'intensity': self.intensity,
            'painThreshold': self.pain_threshold,
            'progressionCriteria': list(self.progression_criteria),
            'crossTrainingAllowed': self.cross_training_allowed,
        }


RETURN_TO_RUNNING_PHASES: Tuple[ReturnToRunningPhase, ...] = (
    ReturnToRunningPhase(
        1, 'Walking Only', 1, '0:1 (walk only)', 5, 20,
        'EASY (conversational)', 'STOP if pain > 2/10',
        ('7 consecutive days pain-free walking', 'No morning stiffness',
         'Full range of motion', 'Coach/physio clearance'),
        True,
    ),
    ReturnToRunningPhase(
        2, 'Walk/Run Introduction', 2, '1:4 (1 min run, 4 min walk)', 3, 30,
        'VERY EASY (conversational++)', 'STOP if pain > 1/10',
        ('6 sessions completed pain-free', 'No pain 24 hours post-run',
         'HRV within 5% of baseline', 'Sleep quality maintained'),
        True,
    ),
    ReturnToRunningPhase(
        3, 'Progressive Walk/Run', 2, '2:3 -> 3:2 (gradual progression)', 4, 35,
        'EASY', 'STOP if pain > 2/10',
        ('8 sessions completed pain-free', 'No ACWR spikes > 1.3',
         'Functional movement screen passed', 'Strength exercises pain-free'),
        True,
    ),
    ReturnToRunningPhase(
        4, 'Continuous Running', 2, '1:0 (continuous running)', 4, 40,
        'EASY to MODERATE', 'Reduce if pain > 1/10',
        ('8 continuous runs completed', 'Weekly volume 50% of pre-injury',
         'No injury symptoms for 2 weeks', 'Ready for 10% weekly volume increases'),
        False,
    ),
    ReturnToRunningPhase(
        5, 'Return to Full Training', 4, '1:0', 5, 60,
        'EASY to THRESHOLD (progressive)', 'Monitor daily, stop if pain recurs',
        ('Weekly volume 80% of pre-injury', 'Intensity progression reintroduced',
         'No injury symptoms for 4 weeks', 'Race-ready clearance from coach'),
        False,
    ),
)


@dataclass
class InjuryReport:
    """An injury detected from a check-in, workout log or coach assessment."""
    injury_type: InjuryType
    pain_level: float
    pain_timing: PainTiming
    acwr_risk: Optional[str] = None          # RiskLevel value, or 'CRITICAL'
    detection_source: str = "DAILY_CHECKIN"

    def __post_init__(self):
        self.injury_type = InjuryType(self.injury_type)
        self.pain_timing = PainTiming(self.pain_timing)
        pain_band(self.pain_level)


@dataclass
class CrossTrainingSubstitution:
    original_running_volume: float   # minutes/week
    modality: CrossTrainingModality
    equivalent_duration: int         # minutes/week
    intensity: str
    fitness_retention: int           # percent
    notes: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'originalRunningVolume': self.original_running_volume,
            'recommendedModality': self.modality.value,
            'equivalentDuration': self.equivalent_duration,
            'intensity': self.intensity,
            'fitnessRetention': self.fitness_retention,
            'injurySpecificNotes': self.notes,
        }


@dataclass
class ProgramAdjustment:
    action: str                      # 'PAUSE' | 'MODIFY' | 'MAINTAIN'
    reasoning: str
    pause_weeks: Optional[int] = None
    volume_reduction: Optional[int] = None
    intensity_reduction: Optional[int] = None
    goal_date_adjustment: Optional[int] = None   # days

    def to_dict(self) -> Dict[str, Any]:
        d = {'action': self.action, 'reasoning': self.reasoning}
        for key, value in (('pauseWeeks', self.pause_weeks),
                           ('volumeReduction', self.volume_reduction),
                           ('intensityReduction', self.intensity_reduction),
                           ('goalDateAdjustment', self.goal_date_adjustment)):
            if value is not None:
                d[key] = value
        return d


@dataclass
class CoachNotification:
    urgency: str
    title: str
    message: str
    action_required: bool
    suggested_actions: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'urgency': self.urgency,
            'title': self.title,
            'message': self.message,
            'actionRequired': self.action_required,
            'suggestedActions': list(self.suggested_actions),
        }


class ModificationAction(str, Enum):
    CANCEL = "CANCEL"
    CONVERT_TO_CROSS_TRAINING = "CONVERT_TO_CROSS_TRAINING"
    REDUCE_VOLUME = "REDUCE_VOLUME"
    REDUCE_INTENSITY = "REDUCE_INTENSITY"


# Planned workouts of these types are left untouched by an injury
UNMODIFIED_WORKOUT_TYPES: Tuple[str, ...] = ('REST', 'STRENGTH')

CROSS_TRAINING_DURATION_FACTOR = 1.2   # longer session for an equivalent stimulus
REDUCED_VOLUME_FACTOR = 0.5
MODIFICATION_HORIZON_DAYS = 14

# immediate action -> (volume reduction %, highest allowed intensity zone)
RESTRICTION_BY_ACTION: Mapping[ImmediateAction, Tuple[int, int]] = MappingProxyType({
    ImmediateAction.REST: (100, 1),
    ImmediateAction.CROSS_TRAINING_ONLY: (100, 2),
    ImmediateAction.REDUCE_50: (50, 3),
    ImmediateAction.MONITOR: (20, 4),
})


@dataclass
class PlannedWorkout:
    """One upcoming workout from the athlete's plan."""
    workout_id: str
    date: date
    workout_type: str
    duration: float                  # minutes
    intensity: str = 'MODERATE'

    def __post_init__(self):
        if isinstance(self.date, datetime):
            self.date = self.date.date()
        elif not isinstance(self.date, date):
            self.date = date.fromisoformat(str(self.date)[:10])
        self.workout_type = str(self.workout_type).upper()

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'PlannedWorkout':
        if d.get('date') is None:
            raise InvalidInputError(f"Planned workout is missing 'date': {d}")
        return cls(
            workout_id=str(d.get('workout_id', d.get('workoutId', d.get('id')))),
            date=d['date'],
            workout_type=d.get('workout_type', d.get('type', 'EASY')),
            duration=float(d.get('duration', d.get('totalDuration', 0)) or 0),
            intensity=d.get('intensity', d.get('intensityType', 'MODERATE')),
        )


@dataclass
class ModifiedWorkout:
    workout_type: str
    duration: float
    intensity: str
    notes: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.workout_type,
            'duration': self.duration,
            'intensity': self.intensity,
            'notes': self.notes,
        }


@dataclass
class WorkoutModification:
    workout_id: str
    date: date
    original_type: str
    action: ModificationAction
    reasoning: str
    modified_workout: Optional[ModifiedWorkout] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'workoutId': self.workout_id,
            'date': self.date.isoformat(),
            'originalType': self.original_type,
            'action': self.action.value,
            'reasoning': self.reasoning,
        }
        if self.modified_workout is not None:
            d['modifiedWorkout'] = self.modified_workout.to_dict()
        return d


@dataclass(frozen=True)
class TrainingRestriction:
    """Limits applied to the athlete's plan while the injury heals."""
    volume_reduction: int            # percent
    max_intensity_zone: int
    duration_days: int
    notes: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'volumeReduction': self.volume_reduction,
            'maxIntensityZone': self.max_intensity_zone,
            'durationDays': self.duration_days,
            'notes': self.notes,
        }


@dataclass
class InjuryResponse:
    immediate_action: ImmediateAction
    cross_training: CrossTrainingSubstitution
    program_adjustment: ProgramAdjustment
    coach_notification: CoachNotification
    estimated_return_weeks: int
    return_to_running: Optional[ReturnToRunningPhase] = None
    restriction: Optional[TrainingRestriction] = None
    workout_modifications: List[WorkoutModification] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'immediateAction': self.immediate_action.value,
            'workoutModifications': [m.to_dict() for m in self.workout_modifications],
            'crossTrainingSubstitutions': [self.cross_training.to_dict()],
            'returnToRunningProtocol': (self.return_to_running.to_dict()
                                        if self.return_to_running else None),
            'programAdjustment': self.program_adjustment.to_dict(),
            'coachNotification': self.coach_notification.to_dict(),
            'estimatedReturnWeeks': self.estimated_return_weeks,
            'trainingRestriction': self.restriction.to_dict() if self.restriction else None,
        }


def determine_immediate_action(pain_level: float, pain_timing: PainTiming) -> ImmediateAction:
    """University of Delaware pain rules."""
    pain_timing = PainTiming(pain_timing)

    if pain_level > 5 or pain_timing == PainTiming.CONSTANT:
        return ImmediateAction.REST
    if 3 <= pain_level <= 5 and pain_timing in (PainTiming.DURING, PainTiming.AFTER):
        return ImmediateAction.CROSS_TRAINING_ONLY
    if pain_level < 3:
        return ImmediateAction.REDUCE_50
    return ImmediateAction.MONITOR


def recommend_cross_training(
    injury_type: InjuryType,
    weekly_running_minutes: float,
    pain_level: float
) -> CrossTrainingSubstitution:
    """
    Injury-specific cross-training substitute.

    Lower-retention modalities need proportionally more time:
    equivalent = running_minutes × 100 / retention.
    """
    modality, retention, notes = INJURY_CROSS_TRAINING[InjuryType(injury_type)]
    return CrossTrainingSubstitution(
        original_running_volume=weekly_running_minutes,
        modality=modality,
        equivalent_duration=int(round(weekly_running_minutes * (100 / retention))),
        intensity='EASY' if pain_level > 5 else 'MODERATE',
        fitness_retention=retention,
        notes=notes,
    )


def return_to_running_protocol(pain_level: float) -> ReturnToRunningPhase:
    """Starting phase: pain > 7 -> phase 1, > 5 -> phase 2, else phase 3."""
    if pain_level > 7:
        start_phase = 1
    elif pain_level > 5:
        start_phase = 2
    else:
        start_phase = 3
    return RETURN_TO_RUNNING_PHASES[start_phase - 1]


def estimate_return_weeks(
    injury_type: InjuryType,
    pain_level: float,
    acwr_risk: Optional[str] = None
) -> int:
    """Baseline weeks per injury, extended for severe pain and high ACWR risk."""
    weeks = BASELINE_RETURN_WEEKS[InjuryType(injury_type)]

    if pain_level > 7:
        weeks += 2
    elif pain_level > 5:
        weeks += 1

    if acwr_risk in ('CRITICAL', 'VERY_HIGH'):
        weeks += 2
    elif acwr_risk == 'HIGH':
        weeks += 1

    return weeks


def determine_program_adjustment(
    injury_type: InjuryType,
    action: ImmediateAction,
    estimated_weeks: int
) -> ProgramAdjustment:
    injury_name = InjuryType(injury_type).value

    if action in (ImmediateAction.REST, ImmediateAction.CROSS_TRAINING_ONLY):
        return ProgramAdjustment(
            action='PAUSE',
            pause_weeks=estimated_weeks,
            goal_date_adjustment=estimated_weeks * 7,
            reasoning=(f"Complete program pause for {estimated_weeks} weeks due to "
                       f"{injury_name}. Goal date pushed back {estimated_weeks} weeks "
                       "to allow full recovery."),
        )

    if action == ImmediateAction.REDUCE_50:
        delay_days = -(-estimated_weeks * 7 // 2)
        return ProgramAdjustment(
            action='MODIFY',
            volume_reduction=50,
            intensity_reduction=30,
            goal_date_adjustment=delay_days,
            reasoning=(f"50% volume reduction, 30% intensity reduction for {estimated_weeks} "
                       f"weeks. Goal date pushed back {delay_days} days to maintain quality."),
        )

    return ProgramAdjustment(
        action='MAINTAIN',
        reasoning="Continue program with reduced intensity. Monitor symptoms daily.",
    )


_ACTION_SUMMARY: Mapping[ImmediateAction, str] = MappingProxyType({
    ImmediateAction.REST: 'Complete rest prescribed',
    ImmediateAction.CROSS_TRAINING_ONLY: 'Cross-training substitution initiated',
    ImmediateAction.REDUCE_50: '50% volume reduction applied',
    ImmediateAction.MONITOR: 'Monitoring with intensity reduction',
})


def build_coach_notification(
    report: InjuryReport,
    action: ImmediateAction,
    estimated_weeks: int,
    athlete_name: Optional[str] = None
) -> CoachNotification:
    if report.pain_level > 7:
        urgency = 'CRITICAL'
    elif report.pain_level > 5:
        urgency = 'HIGH'
    else:
        urgency = 'MEDIUM'

    suggested = []
    if report.pain_level > 5:
        suggested.append('Schedule video call with athlete within 24 hours')
        suggested.append('Consider referral to sports medicine physician')
    if report.injury_type == InjuryType.STRESS_FRACTURE:
        suggested.append('URGENT: Medical imaging required - refer to physician immediately')
    suggested.append('Review training load progression (ACWR)')
    suggested.append('Assess biomechanics and running form')
    suggested.append('Review footwear and training surface')

    name = athlete_name or 'Athlete'
    return CoachNotification(
        urgency=urgency,
        title=f"{report.injury_type.value.replace('_', ' ')} - {name}",
        message=(f"Pain level {report.pain_level}/10 detected during "
                 f"{report.detection_source}. {_ACTION_SUMMARY[action]}. "
                 f"Estimated return: {estimated_weeks} weeks."),
        action_required=urgency in ('CRITICAL', 'HIGH'),
        suggested_actions=suggested,
    )


def _modify_workout(
    workout: PlannedWorkout,
    action: ImmediateAction,
    report: InjuryReport
) -> WorkoutModification:
    pain = f"pain level {report.pain_level}/10"

    if action == ImmediateAction.REST:
        return WorkoutModification(
            workout.workout_id, workout.date, workout.workout_type,
            ModificationAction.CANCEL,
            f"Complete rest required ({pain})",
        )

    if action == ImmediateAction.CROSS_TRAINING_ONLY:
        return WorkoutModification(
            workout.workout_id, workout.date, workout.workout_type,
            ModificationAction.CONVERT_TO_CROSS_TRAINING,
            f"Convert to cross-training ({pain}, {report.injury_type.value})",
            ModifiedWorkout(
                workout_type='CROSS_TRAINING',
                duration=round(workout.duration * CROSS_TRAINING_DURATION_FACTOR, 1),
                intensity=workout.intensity,
                notes=f"Original: {workout.workout_type}. Converted due to {report.injury_type.value}.",
            ),
        )

    if action == ImmediateAction.REDUCE_50:
        return WorkoutModification(
            workout.workout_id, workout.date, workout.workout_type,
            ModificationAction.REDUCE_VOLUME,
            f"50% volume reduction ({pain})",
            ModifiedWorkout(
                workout_type=workout.workout_type,
                duration=round(workout.duration * REDUCED_VOLUME_FACTOR, 1),
                intensity='EASY',
                notes="Reduced to 50% volume, EASY intensity only. Monitor pain closely.",
            ),
        )

    return WorkoutModification(
        workout.workout_id, workout.date, workout.workout_type,
        ModificationAction.REDUCE_INTENSITY,
        f"Reduce intensity, monitor symptoms ({pain})",
        ModifiedWorkout(
            workout_type=workout.workout_type,
            duration=workout.duration,
            intensity='EASY',
            notes="Keep EASY intensity. Stop if pain increases above 3/10.",
        ),
    )


def generate_workout_modifications(
    workouts: Sequence[PlannedWorkout],
    action: ImmediateAction,
    report: InjuryReport,
    start: Optional[date] = None
) -> List[WorkoutModification]:
    """
    Rewrite the upcoming running workouts for an immediate action.

    REST cancels each workout, CROSS_TRAINING_ONLY converts it to a 20%
    longer cross-training session, REDUCE_50 halves it at EASY intensity and
    MONITOR keeps the duration at EASY intensity. Rest days and strength
    sessions are skipped.

    Args:
        workouts: Planned workouts, any order
        action: Immediate action from determine_immediate_action
        report: The detected injury
        start: When given, only workouts from start to start + 14 days are modified

    Returns:
        Modifications in date order
    """
    action = ImmediateAction(action)

    selected = []
    for workout in sorted(workouts, key=lambda w: w.date):
        if workout.workout_type in UNMODIFIED_WORKOUT_TYPES:
            continue
        if start is not None and not (
            start <= workout.date <= start + timedelta(days=MODIFICATION_HORIZON_DAYS)
        ):
            continue
        selected.append(workout)

    return [_modify_workout(workout, action, report) for workout in selected]


def build_training_restriction(
    report: InjuryReport,
    action: ImmediateAction,
    estimated_weeks: int,
    adjustment: ProgramAdjustment
) -> TrainingRestriction:
    """Restriction for the plan, sized by RESTRICTION_BY_ACTION and the return estimate."""
    volume_reduction, max_zone = RESTRICTION_BY_ACTION[ImmediateAction(action)]
    return TrainingRestriction(
        volume_reduction=volume_reduction,
        max_intensity_zone=max_zone,
        duration_days=estimated_weeks * 7,
        notes=(f"Auto-created from injury cascade: {report.injury_type.value} "
               f"(pain {report.pain_level}/10). {adjustment.reasoning}"),
    )


def process_injury(
    report: InjuryReport,
    weekly_running_minutes: float = 0.0,
    athlete_name: Optional[str] = None,
    upcoming_workouts: Optional[Sequence[PlannedWorkout]] = None,
    start: Optional[date] = None
) -> InjuryResponse:
    """
    Build the full response to a detected injury.

    Args:
        report: The detected injury
        weekly_running_minutes: Planned running minutes per week
        athlete_name: Used in the coach notification title
        upcoming_workouts: Planned workouts to modify (none when omitted)
        start: First day of the modification window

    Returns:
        InjuryResponse
    """
    action = determine_immediate_action(report.pain_level, report.pain_timing)

    protocol = None
    weeks = 0
    if action in (ImmediateAction.REST, ImmediateAction.CROSS_TRAINING_ONLY):
        protocol = return_to_running_protocol(report.pain_level)
        weeks = estimate_return_weeks(report.injury_type, report.pain_level, report.acwr_risk)

    adjustment = determine_program_adjustment(report.injury_type, action, weeks)

    return InjuryResponse(
        immediate_action=action,
        cross_training=recommend_cross_training(
            report.injury_type, weekly_running_minutes, report.pain_level
        ),
        program_adjustment=adjustment,
        coach_notification=build_coach_notification(report, action, weeks, athlete_name),
        estimated_return_weeks=weeks,
        return_to_running=protocol,
        restriction=build_training_restriction(report, action, weeks, adjustment),
        workout_modifications=generate_workout_modifications(
            upcoming_workouts or [], action, report, start
        ),
    )
