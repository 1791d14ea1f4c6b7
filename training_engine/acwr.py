"""
ACWR zone classification and load-pattern analysis.

Based on:
- Gabbett (2016): the 0.8-1.3 "sweet spot" and elevated risk above 1.5
- Hulin et al. (2016): spikes in week-over-week load
"""

import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .config import ACWRThresholds
from .errors import InvalidInputError


class ACWRZone(str, Enum):
    DETRAINING = "DETRAINING"
    OPTIMAL = "OPTIMAL"
    CAUTION = "CAUTION"
    DANGER = "DANGER"
    CRITICAL = "CRITICAL"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"


ACWR_ZONE_TABLE: Mapping[ACWRZone, Tuple[RiskLevel, str]] = MappingProxyType({
    ACWRZone.DETRAINING: (
        RiskLevel.LOW,
        "Training load is below your chronic level. Increase load gradually "
        "to avoid losing fitness.",
    ),
    ACWRZone.OPTIMAL: (
        RiskLevel.LOW,
        "Training load is in the optimal range. Continue with the planned "
        "progression.",
    ),
    ACWRZone.CAUTION: (
        RiskLevel.MODERATE,
        "Load is rising quickly. Hold volume steady and avoid adding intensity "
        "this week.",
    ),
    ACWRZone.DANGER: (
        RiskLevel.HIGH,
        "High injury risk. Reduce training load by 20-30% and prioritise "
        "recovery.",
    ),
    ACWRZone.CRITICAL: (
        RiskLevel.VERY_HIGH,
        "Very high injury risk. Replace hard sessions with rest or easy "
        "cross-training until the ratio falls below 1.5.",
    ),
})


@dataclass
class ACWRAssessment:
    acwr: float
    zone: ACWRZone
    risk: RiskLevel
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'acwr': self.acwr,
            'zone': self.zone.value,
            'risk': self.risk.value,
            'recommendation': self.recommendation,
        }


def classify_acwr_zone(
    acwr: float,
    thresholds: Optional[ACWRThresholds] = None
) -> ACWRAssessment:
    """
    Classify an ACWR value into a risk zone.

    Zones (upper bound inclusive):
        - DETRAINING: < 0.8 (includes zero and negative values)
        - OPTIMAL:    0.8 - 1.3
        - CAUTION:    1.3 - 1.5
        - DANGER:     1.5 - 2.0
        - CRITICAL:   > 2.0

    Args:
        acwr: Acute:Chronic Workload Ratio

    Returns:
        ACWRAssessment with zone, risk and recommendation
    """
    if thresholds is None:
        thresholds = ACWRThresholds()
    if acwr is None or math.isnan(acwr):
        raise InvalidInputError(f"ACWR must be a number, got {acwr}")

    if acwr < thresholds.detraining_below:
        zone = ACWRZone.DETRAINING
    elif acwr <= thresholds.optimal_max:
        zone = ACWRZone.OPTIMAL
    elif acwr <= thresholds.caution_max:
        zone = ACWRZone.CAUTION
    elif acwr <= thresholds.danger_max:
        zone = ACWRZone.DANGER
    else:
        zone = ACWRZone.CRITICAL

    risk, recommendation = ACWR_ZONE_TABLE[zone]
    return ACWRAssessment(acwr=acwr, zone=zone, risk=risk, recommendation=recommendation)


@dataclass
class LoadPatternAnalysis:
    """Summary of the last 4-8 weeks of daily load."""
    acwr: float
    acwr_status: str              # 'safe' | 'moderate' | 'risky' | 'dangerous'
    weekly_tss: int
    monthly_trend: str            # 'increasing' | 'stable' | 'decreasing'
    load_spikes_last_4_weeks: int
    sustainable_min: int
    sustainable_max: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'acwr': self.acwr,
            'acwrStatus': self.acwr_status,
            'weeklyTSS': self.weekly_tss,
            'monthlyTrend': self.monthly_trend,
            'loadSpikesLast4Weeks': self.load_spikes_last_4_weeks,
            'sustainableLoadRange': {'min': self.sustainable_min, 'max': self.sustainable_max},
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _acwr_status(acwr: float) -> str:
    if acwr > 1.5:
        return 'dangerous'
    if acwr > 1.3:
        return 'risky'
    if acwr > 1.1 or acwr < 0.8:
        return 'moderate'
    return 'safe'


def analyze_load_patterns(daily_loads: Sequence[float]) -> LoadPatternAnalysis:
    """
    Analyze daily training loads for injury-risk patterns.

    Acute load is the 7-day mean, chronic the 28-day mean (missing days count
    as zero). A spike is a week whose total exceeds the previous week by more
    than 25%.

    Args:
        daily_loads: Daily loads, most recent first

    Returns:
        LoadPatternAnalysis
    """
    loads = np.nan_to_num(np.asarray(daily_loads, dtype=float))

    acute = loads[:7].sum() / 7
    chronic = loads[:28].sum() / 28
    acwr = acute / chronic if chronic > 0 else 1.0

    # Monthly trend: last 14 days vs the 14 before
    recent_half = loads[:14]
    older_half = loads[14:28]
    recent_avg = recent_half.mean() if len(recent_half) else 0.0
    older_avg = older_half.mean() if len(older_half) else 0.0

    trend = 'stable'
    if len(older_half):
        if recent_avg > older_avg * 1.1:
            trend = 'increasing'
        elif recent_avg < older_avg * 0.9:
            trend = 'decreasing'

    spikes = 0
    for week in range(4):
        this_week = loads[week * 7:(week + 1) * 7].sum()
        prev_week = loads[(week + 1) * 7:(week + 2) * 7].sum()
        if prev_week > 0 and this_week > prev_week * 1.25:
            spikes += 1

    return LoadPatternAnalysis(
        acwr=_round_half_up(acwr * 100) / 100,
        acwr_status=_acwr_status(acwr),
        weekly_tss=_round_half_up(loads[:7].sum()),
        monthly_trend=trend,
        load_spikes_last_4_weeks=spikes,
        sustainable_min=_round_half_up(chronic * 0.85 * 7),
        sustainable_max=_round_half_up(chronic * 1.1 * 7),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# INJURY RISK SCORING
# ═══════════════════════════════════════════════════════════════════════════════

# Base risk score by load-pattern ACWR status
ACWR_STATUS_BASE_SCORE: Mapping[str, int] = MappingProxyType({
    'safe': 20,
    'moderate': 30,
    'risky': 45,
    'dangerous': 60,
})

# Lowest score for each overall risk level, highest first
OVERALL_RISK_BANDS: Tuple[Tuple[int, RiskLevel], ...] = (
    (70, RiskLevel.VERY_HIGH),
    (50, RiskLevel.HIGH),
    (30, RiskLevel.MODERATE),
)

RECOMMENDATION_PRIORITY_ORDER: Mapping[str, int] = MappingProxyType({
    'immediate': 0,
    'high': 1,
    'medium': 2,
    'low': 3,
})


@dataclass
class RiskFactor:
    """Something that raises injury risk, with its score contribution (0-100)."""
    name: str
    category: str                 # 'load' | 'recovery' | 'biomechanical' | 'lifestyle' | 'history'
    severity: str                 # 'low' | 'moderate' | 'high'
    contribution: float
    trend: str = 'stable'         # 'improving' | 'stable' | 'worsening'
    current_value: str = ''
    threshold_value: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'category': self.category,
            'severity': self.severity,
            'currentValue': self.current_value,
            'thresholdValue': self.threshold_value,
            'contribution': self.contribution,
            'trend': self.trend,
        }


@dataclass
class ProtectiveFactor:
    name: str
    impact: float
    description: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'impact': self.impact, 'description': self.description}


@dataclass
class PreventionRecommendation:
    priority: str                 # 'immediate' | 'high' | 'medium' | 'low'
    action: str
    rationale: str
    timeframe: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'priority': self.priority,
            'action': self.action,
            'rationale': self.rationale,
            'timeframe': self.timeframe,
        }


@dataclass
class WeeklyRiskPrediction:
    predicted_risk: RiskLevel     # LOW | MODERATE | HIGH
    confidence: float
    key_factors: List[str]
    preventive_actions: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'predictedRisk': self.predicted_risk.value,
            'confidence': self.confidence,
            'keyFactors': list(self.key_factors),
            'preventiveActions': list(self.preventive_actions),
        }


@dataclass
class InjuryRiskAssessment:
    overall_risk: RiskLevel
    risk_score: int
    risk_factors: List[RiskFactor]
    protective_factors: List[ProtectiveFactor]
    recommendations: List[PreventionRecommendation]
    load_analysis: LoadPatternAnalysis
    next_week: WeeklyRiskPrediction

    def to_dict(self) -> Dict[str, Any]:
        return {
            'overallRisk': self.overall_risk.value,
            'riskScore': self.risk_score,
            'riskFactors': [f.to_dict() for f in self.risk_factors],
            'protectiveFactors': [f.to_dict() for f in self.protective_factors],
            'recommendations': [r.to_dict() for r in self.recommendations],
            'loadAnalysis': self.load_analysis.to_dict(),
            'nextWeekPrediction': self.next_week.to_dict(),
        }


def identify_load_risk_factors(analysis: LoadPatternAnalysis) -> List[RiskFactor]:
    """
    Risk factors that follow from the load pattern alone.

    - ACWR above 1.0 contributes 10, 25 above 1.3 and 35 above 1.5
    - each load spike in the last 4 weeks contributes 10
    """
    factors = []

    if analysis.acwr > 1.0:
        if analysis.acwr_status == 'dangerous':
            severity = 'high'
        elif analysis.acwr_status == 'risky':
            severity = 'moderate'
        else:
            severity = 'low'

        if analysis.acwr > 1.5:
            contribution = 35
        elif analysis.acwr > 1.3:
            contribution = 25
        else:
            contribution = 10

        trend = {'increasing': 'worsening', 'decreasing': 'improving'}.get(
            analysis.monthly_trend, 'stable')
        factors.append(RiskFactor(
            name='ACWR',
            category='load',
            severity=severity,
            contribution=contribution,
            trend=trend,
            current_value=f"{analysis.acwr:.2f}",
            threshold_value='< 1.30',
        ))

    spikes = analysis.load_spikes_last_4_weeks
    if spikes > 0:
        factors.append(RiskFactor(
            name='Load spikes',
            category='load',
            severity='high' if spikes >= 2 else 'moderate',
            contribution=spikes * 10,
            trend='worsening',
            current_value=f"{spikes} spikes in the last 4 weeks",
            threshold_value='0 spikes',
        ))

    return factors


def calculate_overall_risk(
    analysis: LoadPatternAnalysis,
    risk_factors: Sequence[RiskFactor] = (),
    protective_factors: Sequence[ProtectiveFactor] = ()
) -> Tuple[RiskLevel, int]:
    """
    Overall injury risk score (0-100) and level.

    score = base(ACWR status) + Σ contributions - Σ protective impacts,
    clamped to [0, 100]. Base: safe 20, moderate 30, risky 45, dangerous 60.
    Levels: >= 70 VERY_HIGH, >= 50 HIGH, >= 30 MODERATE, otherwise LOW.

    Returns:
        (level, score rounded to an integer)
    """
    score = ACWR_STATUS_BASE_SCORE.get(analysis.acwr_status, 20)
    score += sum(f.contribution for f in risk_factors)
    score -= sum(f.impact for f in protective_factors)
    score = max(0.0, min(100.0, float(score)))

    level = RiskLevel.LOW
    for minimum, band_level in OVERALL_RISK_BANDS:
        if score >= minimum:
            level = band_level
            break

    return level, _round_half_up(score)


def generate_prevention_recommendations(
    risk_factors: Sequence[RiskFactor],
    analysis: LoadPatternAnalysis,
    overall_risk: RiskLevel
) -> List[PreventionRecommendation]:
    """Prevention advice, most urgent first. Strength work is always included."""
    recommendations = []

    if overall_risk == RiskLevel.VERY_HIGH:
        recommendations.append(PreventionRecommendation(
            'immediate',
            'Reduce training volume by 40-50%',
            'Very high injury risk requires an immediate load reduction',
            'Immediately - next 7 days',
        ))

    if analysis.acwr_status in ('dangerous', 'risky'):
        recommendations.append(PreventionRecommendation(
            'immediate',
            f"Reduce weekly load to {analysis.sustainable_min}-{analysis.sustainable_max} TSS",
            f"ACWR of {analysis.acwr} indicates elevated injury risk",
            'This week',
        ))

    for factor in risk_factors:
        if factor.severity != 'high':
            continue
        if factor.category == 'recovery':
            action = ('Prioritise 8+ hours of sleep per night' if factor.name == 'Sleep deficit'
                      else 'Add an extra rest day per week')
            recommendations.append(PreventionRecommendation(
                'high', action, factor.name, 'Immediately'))
        elif factor.category == 'load':
            recommendations.append(PreventionRecommendation(
                'high', 'Avoid weekly load increases above 10%', factor.name, 'Ongoing'))

    if analysis.load_spikes_last_4_weeks > 0:
        recommendations.append(PreventionRecommendation(
            'medium',
            'Plan gradual load increases using the 10% rule',
            f"{analysis.load_spikes_last_4_weeks} load spikes in the last 4 weeks",
            'Planning for the coming weeks',
        ))

    recommendations.append(PreventionRecommendation(
        'low',
        'Include strength training twice a week for injury prevention',
        'Stronger muscles and tendons tolerate more load',
        'Ongoing',
    ))

    return sorted(recommendations, key=lambda r: RECOMMENDATION_PRIORITY_ORDER[r.priority])


def predict_next_week_risk(
    analysis: LoadPatternAnalysis,
    risk_factors: Sequence[RiskFactor] = (),
    check_in_count: int = 0
) -> WeeklyRiskPrediction:
    """
    Risk for the coming week from the current load state.

    HIGH when ACWR is dangerous or two factors are high severity; MODERATE
    when ACWR is risky, one factor is high or two are worsening. Confidence
    grows 0.02 per check-in from 0.5, capped at 0.9.
    """
    high = [f for f in risk_factors if f.severity == 'high']
    worsening = [f for f in risk_factors if f.trend == 'worsening']

    if analysis.acwr_status == 'dangerous' or len(high) >= 2:
        predicted = RiskLevel.HIGH
    elif analysis.acwr_status == 'risky' or len(high) >= 1 or len(worsening) >= 2:
        predicted = RiskLevel.MODERATE
    else:
        predicted = RiskLevel.LOW

    confidence = min(0.9, 0.5 + check_in_count * 0.02)

    actions = []
    if predicted == RiskLevel.HIGH:
        actions += ['Reduce planned load by 20-30%', 'Prioritise rest and recovery']
    elif predicted == RiskLevel.MODERATE:
        actions += ['Avoid increasing intensity', 'Add an extra warm-up']
    actions.append('Monitor daily readiness')

    return WeeklyRiskPrediction(
        predicted_risk=predicted,
        confidence=_round_half_up(confidence * 100) / 100,
        key_factors=[f.name for f in risk_factors if f.severity != 'low'][:3],
        preventive_actions=actions,
    )


def assess_injury_risk(
    daily_loads: Sequence[float],
    extra_factors: Sequence[RiskFactor] = (),
    protective_factors: Sequence[ProtectiveFactor] = (),
    check_in_count: int = 0
) -> InjuryRiskAssessment:
    """
    Full injury-risk assessment from daily loads (most recent first).

    Load-derived risk factors are combined with any factors the caller
    supplies (recovery, lifestyle, history).
    """
    analysis = analyze_load_patterns(daily_loads)
    factors = identify_load_risk_factors(analysis) + list(extra_factors)
    level, score = calculate_overall_risk(analysis, factors, protective_factors)

    return InjuryRiskAssessment(
        overall_risk=level,
        risk_score=score,
        risk_factors=factors,
        protective_factors=list(protective_factors),
        recommendations=generate_prevention_recommendations(factors, analysis, level),
        load_analysis=analysis,
        next_week=predict_next_week_risk(analysis, factors, check_in_count),
    )
