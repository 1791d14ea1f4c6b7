"""
Tests for weekly summaries, reports and the CLI.

Run with: python -m pytest tests/test_analysis.py -v
"""

import json
from datetime import date

import pandas as pd
import pytest
from loguru import logger

from training_engine.acwr import classify_acwr_zone, analyze_load_patterns
from training_engine.config import ACWRThresholds
from training_engine.retention import calculate_fitness_retention
from training_engine.zones import ZoneDistribution, ZoneSource
from analysis.summaries import weekly_zone_summary, weekly_load_summary, load_method_breakdown
from analysis.reports import (
    generate_acwr_report,
    generate_load_report,
    generate_retention_report,
    generate_zone_report,
    export_loads_csv,
)
from data.synthetic import generate_strength_log
from main import main


def _dist(seconds):
    return ZoneDistribution.from_zone_seconds(seconds, ZoneSource.GARMIN_ZONES)


@pytest.fixture
def loads():
    return pd.DataFrame({
        'date': pd.to_datetime(['2024-01-01', '2024-01-02', '2024-01-03']),
        'duration_min': [60, 45, 30],
        'method': ['TSS', 'HR_TSS', 'NONE'],
        'confidence': ['HIGH', 'HIGH', None],
        'load': [100, 50, 0],
        'warning': [None, None, 'Insufficient data'],
    })


# =============================================================================
# Summaries
# =============================================================================

class TestWeeklyZoneSummary:

    def test_groups_by_week(self):
        activities = [
            (date(2024, 1, 1), _dist([600, 600, 0, 0, 0])),
            (date(2024, 1, 3), _dist([0, 0, 600, 0, 0])),
            (date(2024, 1, 8), _dist([1200, 0, 0, 0, 0])),
        ]
        summary = weekly_zone_summary(activities)
        assert len(summary) == 2

        first = summary.iloc[0]
        assert first['activityCount'] == 2
        assert first['zone1Minutes'] == 10
        assert first['totalMinutes'] == 30
        assert first['polarization'] == pytest.approx(66.7)
        assert summary.iloc[1]['polarization'] == 100.0

    def test_empty(self):
        assert weekly_zone_summary([]).empty


class TestWeeklyLoadSummary:

    def test_steady_weeks(self):
        index = pd.date_range('2024-01-01', periods=35, freq='D')
        daily = pd.DataFrame({'load': 10.0}, index=index)
        weekly = weekly_load_summary(daily)

        assert list(weekly['load']) == [70.0] * 5
        assert weekly['acwr'].isna().sum() == 3
        assert weekly['acwr'].iloc[-1] == 1.0
        assert weekly['zone'].iloc[-1] == 'OPTIMAL'
        assert weekly['zone'].iloc[0] is None

    def test_empty(self):
        assert weekly_load_summary(pd.DataFrame(columns=['load'])).empty

    def test_zero_chronic_is_detraining(self):
        index = pd.date_range('2024-01-01', periods=28, freq='D')
        weekly = weekly_load_summary(pd.DataFrame({'load': 0.0}, index=index))
        assert weekly['acwr'].iloc[-1] == 0.0
        assert weekly['zone'].iloc[-1] == 'DETRAINING'

    def test_custom_thresholds(self):
        index = pd.date_range('2024-01-01', periods=28, freq='D')
        loads = [10.0] * 21 + [20.0] * 7
        daily = pd.DataFrame({'load': loads}, index=index)

        # 140 / 87.5 = 1.6
        assert weekly_load_summary(daily)['zone'].iloc[-1] == 'DANGER'
        relaxed = ACWRThresholds(caution_max=1.7)
        assert weekly_load_summary(daily, thresholds=relaxed)['zone'].iloc[-1] == 'CAUTION'


class TestReports:

    def test_method_breakdown(self, loads):
        breakdown = load_method_breakdown(loads)
        assert breakdown.loc['TSS', 'load'] == 100
        assert breakdown['workouts'].sum() == 3

    def test_load_report(self, loads):
        patterns = analyze_load_patterns([50.0] * 28)
        report = generate_load_report(loads, patterns=patterns)
        assert 'Workouts: 3' in report
        assert 'could not be scored' in report
        assert 'LOAD PATTERNS' in report

    def test_zone_report_flags_problems(self):
        bad = ZoneDistribution.from_zone_seconds([-30, 90, 0, 0, 0], ZoneSource.ESTIMATED)
        report = generate_zone_report(bad)
        assert 'Validation problems' in report

    def test_acwr_report(self):
        report = generate_acwr_report(1.6, 200, 125, classify_acwr_zone(1.6))
        assert 'DANGER' in report

    def test_retention_report(self):
        report = generate_retention_report(calculate_fitness_retention('CYCLING', 4, 400))
        assert 'Fitness Retention: CYCLING' in report
        assert 'RECOMMENDATIONS' in report

    def test_export_csv(self, loads, tmp_path):
        path = tmp_path / 'loads.csv'
        export_loads_csv(loads, str(path))
        exported = pd.read_csv(path)
        assert list(exported['load']) == [100, 50, 0]
        assert exported['date'].iloc[0] == '2024-01-01'


# =============================================================================
# CLI
# =============================================================================

class TestCLI:
    """main() returns 0 on success and 2 on invalid input."""

    @pytest.fixture(autouse=True)
    def reset_logger(self):
        yield
        logger.remove()

    def test_load_json(self, tmp_path, capsys):
        path = tmp_path / 'workout.json'
        path.write_text(json.dumps({'duration': 60, 'normalizedPower': 250, 'ftp': 250}))
        assert main(['load', str(path)]) == 0
        assert json.loads(capsys.readouterr().out)['tss'] == 100

    def test_acwr_weekly(self, capsys):
        assert main(['acwr', '--weekly', '200', '100', '100', '100']) == 0
        assert 'DANGER' in capsys.readouterr().out

    def test_acwr_too_few_weeks(self):
        assert main(['acwr', '--weekly', '100', '100']) == 2

    def test_pain_with_injury(self, capsys):
        code = main(['pain', '4', '--location', 'ACHILLES', '--timing', 'AFTER',
                     '--injury', 'ACHILLES_TENDINOPATHY', '--acwr', '1.7'])
        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload['decision']['decision'] == 'REST_1_DAY'
        assert payload['injuryResponse']['estimatedReturnWeeks'] == 7

    def test_pain_out_of_range(self):
        assert main(['pain', '11']) == 2

    def test_pain_uses_config_thresholds(self, tmp_path, capsys):
        path = tmp_path / 'engine.json'
        path.write_text(json.dumps({'acwr': {'caution_max': 1.7}}))
        assert main(['--config', str(path), 'pain', '0', '--acwr', '1.6']) == 0
        assert json.loads(capsys.readouterr().out)['decision']['decision'] == 'CONTINUE'

    def test_pain_with_plan(self, tmp_path, capsys):
        path = tmp_path / 'plan.json'
        path.write_text(json.dumps([
            {'id': 'w1', 'date': '2024-03-04', 'type': 'EASY', 'duration': 40},
            {'id': 'w2', 'date': '2024-03-05', 'type': 'STRENGTH', 'duration': 45},
        ]))
        code = main(['pain', '4', '--timing', 'AFTER', '--injury', 'ACHILLES_TENDINOPATHY',
                     '--plan', str(path)])
        assert code == 0
        mods = json.loads(capsys.readouterr().out)['injuryResponse']['workoutModifications']
        assert [m['action'] for m in mods] == ['CONVERT_TO_CROSS_TRAINING']
        assert mods[0]['modifiedWorkout']['duration'] == 48.0

    def test_risk(self, capsys):
        loads = ['100'] * 7 + ['50'] * 21
        assert main(['risk', '--loads'] + loads) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload['overallRisk'] == 'VERY_HIGH'
        assert payload['riskScore'] == 100

    def test_risk_needs_loads(self):
        assert main(['risk']) == 2

    def test_retention(self, capsys):
        assert main(['retention', 'SWIMMING', '--weeks', '6', '--tss', '300']) == 0
        assert '31.6%' in capsys.readouterr().out

    def test_progression(self, tmp_path, capsys):
        path = tmp_path / 'strength.csv'
        generate_strength_log(n_weeks=4, trend='plateau').to_csv(path, index=False)
        assert main(['progression', str(path)]) == 0
        assert 'Sessions: 4' in capsys.readouterr().out

    def test_invalid_config(self, tmp_path):
        path = tmp_path / 'engine.json'
        path.write_text(json.dumps({'acwr': {'optimal_max': 5.0}}))
        assert main(['--config', str(path), 'acwr', '--weekly', '1', '1', '1', '1']) == 2

    def test_demo(self, capsys):
        assert main(['demo', '--seed', '3']) == 0
        out = capsys.readouterr().out
        assert 'Strength Progression Replay' in out
        assert 'Fitness Retention' in out
