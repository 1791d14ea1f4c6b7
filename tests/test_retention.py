"""
Tests for cross-training fitness retention.

Run with: python -m pytest tests/test_retention.py -v
"""

import pytest

from training_engine.errors import InvalidInputError
from training_engine.retention import (
    Modality,
    VO2MAX_RETENTION,
    RUNNING_ECONOMY_RETENTION,
    TARGET_WEEKLY_TSS,
    MODALITY_RECOMMENDATIONS,
    duration_decay_multiplier,
    volume_adequacy_multiplier,
    running_blend_bonus,
    calculate_fitness_retention,
)


class TestTables:

    def test_every_modality_covered(self):
        for table in (VO2MAX_RETENTION, RUNNING_ECONOMY_RETENTION,
                      TARGET_WEEKLY_TSS, MODALITY_RECOMMENDATIONS):
            assert set(table) == set(Modality)

    def test_economy_never_exceeds_vo2max(self):
        for modality in Modality:
            assert RUNNING_ECONOMY_RETENTION[modality] <= VO2MAX_RETENTION[modality]


# =============================================================================
# Multipliers
# =============================================================================

class TestMultipliers:

    @pytest.mark.parametrize('weeks,expected', [(0, 1.0), (5, 0.9), (10, 0.8), (20, 0.8), (100, 0.8)])
    def test_decay(self, weeks, expected):
        assert duration_decay_multiplier(weeks) == pytest.approx(expected)

    def test_negative_weeks_raise(self):
        with pytest.raises(InvalidInputError):
            duration_decay_multiplier(-1)

    @pytest.mark.parametrize('tss,expected', [(120, 1.0), (100, 1.0), (90, 0.95), (80, 0.9),
                                              (40, 0.65), (0, 0.4)])
    def test_volume(self, tss, expected):
        assert volume_adequacy_multiplier(tss, 100) == pytest.approx(expected)

    def test_negative_tss_raises(self):
        with pytest.raises(InvalidInputError):
            volume_adequacy_multiplier(-10, 100)

    @pytest.mark.parametrize('pct,bonus', [(0, 0.0), (9, 0.0), (10, 0.05), (25, 0.10),
                                           (49, 0.10), (50, 0.15), (100, 0.15)])
    def test_running_bonus(self, pct, bonus):
        assert running_blend_bonus(pct) == bonus


# =============================================================================
# Prediction
# =============================================================================

class TestFitnessRetention:
    """Tests for calculate_fitness_retention."""

    def test_alterg_fresh(self):
        result = calculate_fitness_retention(Modality.ALTERG, 0, 400)
        assert result.vo2max_retention == 98.0
        assert result.lactate_threshold_retention == 93.1
        assert result.running_economy_retention == 95.0
        assert result.overall_retention == 95.4
        assert result.return_to_running_weeks == 1

    def test_swimming_six_weeks(self):
        """0.45 × 0.88 etc. -> overall 31.6%, 6 weeks back."""
        result = calculate_fitness_retention(Modality.SWIMMING, 6, 300)
        assert result.vo2max_retention == 39.6
        assert result.overall_retention == 31.6
        assert result.return_to_running_weeks == 6
        assert any('Retention is low' in r for r in result.recommendations)

    def test_alterg_four_weeks_good_retention(self):
        """0.9537 x 0.92 -> 87.7%, rebuild over half the block."""
        result = calculate_fitness_retention(Modality.ALTERG, 4, 350)
        assert result.overall_retention == 87.7
        assert result.return_to_running_weeks == 2
        assert result.return_timeline.startswith('Good retention')
        assert not any('high-intensity' in r for r in result.recommendations)

    def test_deep_water_four_weeks_moderate_loss(self):
        result = calculate_fitness_retention(Modality.DEEP_WATER_RUNNING, 4, 300)
        assert result.overall_retention == 78.3
        assert result.return_to_running_weeks == 3
        assert result.return_timeline.startswith('Moderate fitness loss')
        assert any('high-intensity' in r for r in result.recommendations)

    def test_moderate_band_needs_at_least_two_weeks(self):
        """One week of deep-water running is 83.4%, still a two-week rebuild."""
        result = calculate_fitness_retention(Modality.DEEP_WATER_RUNNING, 1, 300)
        assert 70 <= result.overall_retention < 85
        assert result.return_to_running_weeks == 2

    def test_running_blend_capped_at_100(self):
        result = calculate_fitness_retention(Modality.ALTERG, 0, 400, running_percentage=50)
        assert result.vo2max_retention == 100.0
        assert result.lactate_threshold_retention == 100.0
        assert result.running_economy_retention == 100.0
        assert result.overall_retention == 100.0

    def test_economy_gets_double_bonus(self):
        base = calculate_fitness_retention(Modality.CYCLING, 4, 400)
        blended = calculate_fitness_retention(Modality.CYCLING, 4, 400, running_percentage=25)
        assert blended.vo2max_retention - base.vo2max_retention == pytest.approx(10.0, abs=0.11)
        assert (blended.running_economy_retention
                - base.running_economy_retention) == pytest.approx(20.0, abs=0.11)

    def test_low_volume_recommendation(self):
        result = calculate_fitness_retention(Modality.CYCLING, 2, 100)
        assert any('TSS target' in r for r in result.recommendations)

    def test_monotonic_in_weeks(self):
        values = [calculate_fitness_retention(Modality.DEEP_WATER_RUNNING, w, 300).overall_retention
                  for w in range(0, 16)]
        assert all(a >= b for a, b in zip(values, values[1:]))

    def test_accepts_string_modality(self):
        result = calculate_fitness_retention('ELLIPTICAL', 3, 350)
        assert result.modality == Modality.ELLIPTICAL
        assert result.to_dict()['modality'] == 'ELLIPTICAL'

    def test_invalid_modality(self):
        with pytest.raises(InvalidInputError):
            calculate_fitness_retention('KAYAK', 3, 300)

    @pytest.mark.parametrize('pct', [-5, 120])
    def test_invalid_running_percentage(self, pct):
        with pytest.raises(InvalidInputError):
            calculate_fitness_retention(Modality.CYCLING, 3, 300, running_percentage=pct)
