"""
Training-science calculation engine.

This package provides the calculations behind athlete coaching decisions:
- Load quantification (TSS, Normalized Power, hrTSS, TRIMP, ACWR)
- Heart-rate zone distribution
- ACWR zone classification and load-pattern analysis
- Pain-based injury decisions and the injury response cascade
- Cross-training fitness retention
- Strength progression (1RM, 2-for-2 rule, plateau detection)
"""

from .errors import InvalidInputError

from .config import (
    LoadParams,
    ACWRThresholds,
    ZoneParams,
    ProgressionParams,
    EngineConfig,
    load_config,
)

# Load quantification
from .load import (
    LoadMethod,
    Confidence,
    WorkoutData,
    TrainingLoadResult,
    calculate_tss,
    calculate_normalized_power,
    calculate_hr_tss,
    calculate_trimp,
    calculate_banister_trimp,
    calculate_training_load,
    calculate_acwr,
    calculate_ewma,
    calculate_ewma_acwr,
)

# Zone distribution
from .zones import (
    ZoneSource,
    TrainingZone,
    ZoneDistribution,
    ZoneConfigSnapshot,
    get_zone_for_hr,
    calculate_hr_zone_distribution,
    calculate_from_garmin_zones,
    estimate_zone_from_avg_hr,
    create_zone_config_snapshot,
    calculate_polarization_ratio,
    aggregate_zone_distributions,
    validate_zone_distribution,
    zone_seconds_to_minutes,
    resolve_zone_distribution,
)

# ACWR zones
from .acwr import (
    ACWRZone,
    RiskLevel,
    ACWRAssessment,
    LoadPatternAnalysis,
    RiskFactor,
    ProtectiveFactor,
    InjuryRiskAssessment,
    classify_acwr_zone,
    analyze_load_patterns,
    calculate_overall_risk,
    assess_injury_risk,
)

# Injury
from .injury import (
    PainLocation,
    PainTiming,
    Decision,
    Severity,
    InjuryDecision,
    InjuryType,
    InjuryReport,
    InjuryResponse,
    ImmediateAction,
    PlannedWorkout,
    TrainingRestriction,
    assess_pain_and_recommend,
    generate_workout_modifications,
    process_injury,
)

# Cross-training retention
from .retention import (
    Modality,
    FitnessRetentionPrediction,
    calculate_fitness_retention,
)

# Strength progression
from .progression import (
    OneRepMaxFormula,
    ProgressionAction,
    ProgressionStatus,
    StrengthSession,
    ProgressionRecord,
    ProgressionRepository,
    InMemoryProgressionRepository,
    ProgressionDecision,
    estimate_one_rep_max,
    evaluate_two_for_two,
    detect_plateau,
    calculate_progression,
)

__all__ = [
    'InvalidInputError',
    # Config
    'LoadParams',
    'ACWRThresholds',
    'ZoneParams',
    'ProgressionParams',
    'EngineConfig',
    'load_config',
    # Load
    'LoadMethod',
    'Confidence',
    'WorkoutData',
    'TrainingLoadResult',
    'calculate_tss',
    'calculate_normalized_power',
    'calculate_hr_tss',
    'calculate_trimp',
    'calculate_banister_trimp',
    'calculate_training_load',
    'calculate_acwr',
    'calculate_ewma',
    'calculate_ewma_acwr',
    # Zones
    'ZoneSource',
    'TrainingZone',
    'ZoneDistribution',
    'ZoneConfigSnapshot',
    'get_zone_for_hr',
    'calculate_hr_zone_distribution',
    'calculate_from_garmin_zones',
    'estimate_zone_from_avg_hr',
    'create_zone_config_snapshot',
    'calculate_polarization_ratio',
    'aggregate_zone_distributions',
    'validate_zone_distribution',
    'zone_seconds_to_minutes',
    'resolve_zone_distribution',
    # ACWR
    'ACWRZone',
    'RiskLevel',
    'ACWRAssessment',
    'LoadPatternAnalysis',
    'RiskFactor',
    'ProtectiveFactor',
    'InjuryRiskAssessment',
    'classify_acwr_zone',
    'analyze_load_patterns',
    'calculate_overall_risk',
    'assess_injury_risk',
    # Injury
    'PainLocation',
    'PainTiming',
    'Decision',
    'Severity',
    'InjuryDecision',
    'InjuryType',
    'InjuryReport',
    'InjuryResponse',
    'ImmediateAction',
    'PlannedWorkout',
    'TrainingRestriction',
    'assess_pain_and_recommend',
    'generate_workout_modifications',
    'process_injury',
    # Retention
    'Modality',
    'FitnessRetentionPrediction',
    'calculate_fitness_retention',
    # Progression
    'OneRepMaxFormula',
    'ProgressionAction',
    'ProgressionStatus',
    'StrengthSession',
    'ProgressionRecord',
    'ProgressionRepository',
    'InMemoryProgressionRepository',
    'ProgressionDecision',
    'estimate_one_rep_max',
    'evaluate_two_for_two',
    'detect_plateau',
    'calculate_progression',
]
