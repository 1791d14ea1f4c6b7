"""
Tests for load quantification: TSS, NP, hrTSS, TRIMP, ACWR.

Run with: python -m pytest tests/test_load.py -v
"""

import pytest
import numpy as np

from training_engine.config import LoadParams
from training_engine.errors import InvalidInputError
from training_engine.load import (
    LoadMethod,
    Confidence,
    WorkoutData,
    calculate_tss,
    calculate_normalized_power,
    calculate_hr_ratio,
    calculate_hr_tss,
    calculate_trimp,
    calculate_banister_trimp,
    calculate_training_load,
    calculate_acwr,
    calculate_ewma,
    calculate_ewma_acwr,
)


# =============================================================================
# Power
# =============================================================================

class TestTSS:
    """Tests for power-based Training Stress Score."""

    def test_one_hour_at_ftp_is_100(self):
        """One hour at FTP scores exactly 100."""
        data = WorkoutData(duration=60, normalized_power=250, ftp=250)
        assert calculate_tss(data) == 100

    def test_sub_threshold_hour(self):
        """IF 0.8 for an hour -> 64."""
        data = WorkoutData(duration=60, normalized_power=200, ftp=250)
        assert calculate_tss(data) == 64

    def test_monotonic_in_duration(self):
        """Longer sessions at the same power score higher."""
        scores = [
            calculate_tss(WorkoutData(duration=d, normalized_power=300, ftp=250))
            for d in (30, 60, 90, 120)
        ]
        assert scores == sorted(scores)
        assert len(set(scores)) == len(scores)

    def test_monotonic_in_normalized_power(self):
        """Higher NP above FTP scores higher."""
        scores = [
            calculate_tss(WorkoutData(duration=60, normalized_power=np_, ftp=250))
            for np_ in (260, 280, 300, 350)
        ]
        assert scores == sorted(scores)
        assert len(set(scores)) == len(scores)

    def test_missing_ftp_raises(self):
        with pytest.raises(InvalidInputError):
            calculate_tss(WorkoutData(duration=60, normalized_power=250))

    def test_zero_ftp_raises(self):
        with pytest.raises(InvalidInputError):
            calculate_tss(WorkoutData(duration=60, normalized_power=250, ftp=0))

    def test_zero_duration_raises(self):
        with pytest.raises(InvalidInputError):
            calculate_tss(WorkoutData(duration=0, normalized_power=250, ftp=250))


class TestNormalizedPower:
    """Tests for Normalized Power."""

    def test_constant_stream(self):
        """A constant stream normalizes to itself."""
        assert calculate_normalized_power([200.0] * 120) == 200

    def test_exactly_one_window(self):
        assert calculate_normalized_power([150.0] * 30) == 150

    def test_variable_stream_exceeds_average(self):
        """Surges push NP above the mean power."""
        stream = np.tile(np.r_[np.full(60, 100.0), np.full(60, 300.0)], 10)
        assert calculate_normalized_power(stream) > stream.mean()

    def test_short_stream_raises(self):
        with pytest.raises(InvalidInputError):
            calculate_normalized_power([200.0] * 29)

    def test_empty_stream_raises(self):
        with pytest.raises(InvalidInputError):
            calculate_normalized_power([])

    def test_custom_window(self):
        params = LoadParams(np_window_seconds=5)
        assert calculate_normalized_power([100.0] * 5, params) == 100


# =============================================================================
# Heart rate
# =============================================================================

class TestHrTSS:
    """Tests for heart-rate TSS."""

    def test_one_hour_at_lthr_is_100(self):
        data = WorkoutData(duration=60, avg_heart_rate=150, resting_hr=50, lt_hr=150)
        assert calculate_hr_tss(data) == 100

    def test_ratio_clamped_high(self):
        """Ratio above 1.3 is clamped."""
        assert calculate_hr_ratio(200, 50, 150) == pytest.approx(1.3)
        data = WorkoutData(duration=60, avg_heart_rate=200, resting_hr=50, lt_hr=150)
        assert calculate_hr_tss(data) == 169

    def test_ratio_clamped_low(self):
        """Ratio below 0.3 (even negative) is clamped."""
        assert calculate_hr_ratio(40, 50, 150) == pytest.approx(0.3)
        data = WorkoutData(duration=60, avg_heart_rate=40, resting_hr=50, lt_hr=150)
        assert calculate_hr_tss(data) == 9

    def test_resting_above_lthr_raises(self):
        data = WorkoutData(duration=60, avg_heart_rate=140, resting_hr=160, lt_hr=150)
        with pytest.raises(InvalidInputError):
            calculate_hr_tss(data)

    def test_missing_lthr_raises(self):
        with pytest.raises(InvalidInputError):
            calculate_hr_tss(WorkoutData(duration=60, avg_heart_rate=140, resting_hr=50))


class TestTRIMP:
    """Tests for Edwards and Banister TRIMP."""

    def test_edwards_weights(self):
        """10×1 + 20×2 + 30×3 = 140."""
        data = WorkoutData(duration=60, time_in_zones=[10, 20, 30, 0, 0])
        assert calculate_trimp(data) == 140

    def test_edwards_requires_five_zones(self):
        with pytest.raises(InvalidInputError):
            calculate_trimp(WorkoutData(duration=60, time_in_zones=[10, 20, 30]))

    def test_edwards_negative_minutes_raise(self):
        with pytest.raises(InvalidInputError):
            calculate_trimp(WorkoutData(duration=60, time_in_zones=[10, -1, 0, 0, 0]))

    def test_edwards_nan_minutes_raise(self):
        with pytest.raises(InvalidInputError):
            calculate_trimp(WorkoutData(duration=60, time_in_zones=[10, float('nan'), 0, 0, 0]))

    def test_banister_male(self):
        """60 × 0.667 × 0.64 × e^(1.92 × 0.667) ≈ 92."""
        data = WorkoutData(duration=60, avg_heart_rate=140, max_heart_rate=180,
                           resting_hr=60, gender='male')
        assert calculate_banister_trimp(data) == 92

    def test_banister_defaults_to_male(self):
        base = dict(duration=60, avg_heart_rate=140, max_heart_rate=180, resting_hr=60)
        assert (calculate_banister_trimp(WorkoutData(**base))
                == calculate_banister_trimp(WorkoutData(**base, gender='male')))

    def test_banister_female_lower(self):
        base = dict(duration=60, avg_heart_rate=140, max_heart_rate=180, resting_hr=60)
        female = calculate_banister_trimp(WorkoutData(**base, gender='female'))
        male = calculate_banister_trimp(WorkoutData(**base, gender='male'))
        assert female < male

    def test_banister_delta_hr_clamped(self):
        """Average above max HR behaves like average == max."""
        over = WorkoutData(duration=60, avg_heart_rate=220, max_heart_rate=180, resting_hr=60)
        at_max = WorkoutData(duration=60, avg_heart_rate=180, max_heart_rate=180, resting_hr=60)
        assert calculate_banister_trimp(over) == calculate_banister_trimp(at_max)

    def test_banister_invalid_max_raises(self):
        data = WorkoutData(duration=60, avg_heart_rate=140, max_heart_rate=60, resting_hr=60)
        with pytest.raises(InvalidInputError):
            calculate_banister_trimp(data)


# =============================================================================
# Orchestrator
# =============================================================================

class TestTrainingLoad:
    """Tests for method selection in calculate_training_load."""

    def test_prefers_power(self):
        data = WorkoutData(duration=60, normalized_power=250, ftp=250,
                           avg_heart_rate=150, resting_hr=50, lt_hr=150)
        result = calculate_training_load(data)
        assert result.method == LoadMethod.TSS
        assert result.confidence == Confidence.HIGH
        assert result.tss == 100
        assert result.load == 100
        assert result.intensity == pytest.approx(1.0)

    def test_hr_tss_when_no_power(self):
        data = WorkoutData(duration=60, avg_heart_rate=150, resting_hr=50, lt_hr=150)
        result = calculate_training_load(data)
        assert result.method == LoadMethod.HR_TSS
        assert result.hr_tss == 100

    def test_edwards_when_only_zones(self):
        data = WorkoutData(duration=60, time_in_zones=[10, 20, 30, 0, 0])
        result = calculate_training_load(data)
        assert result.method == LoadMethod.TRIMP_EDWARDS
        assert result.confidence == Confidence.MEDIUM
        assert result.trimp == 140

    def test_banister_when_only_max_hr(self):
        data = WorkoutData(duration=60, avg_heart_rate=140, max_heart_rate=180, resting_hr=60)
        result = calculate_training_load(data)
        assert result.method == LoadMethod.TRIMP_BANISTER
        assert result.trimp == 92

    def test_falls_through_invalid_power(self):
        """Zero FTP is logged and skipped in favour of hrTSS."""
        data = WorkoutData(duration=60, normalized_power=250, ftp=0,
                           avg_heart_rate=150, resting_hr=50, lt_hr=150)
        result = calculate_training_load(data)
        assert result.method == LoadMethod.HR_TSS
        assert result.attempted == ['TSS', 'HR_TSS']

    def test_banister_alongside_hr_tss(self):
        """Gender and max HR add Banister TRIMP to an hrTSS result."""
        base = dict(duration=60, avg_heart_rate=140, resting_hr=60, lt_hr=150,
                    max_heart_rate=180)
        result = calculate_training_load(WorkoutData(**base, gender='male'))
        assert result.method == LoadMethod.HR_TSS
        assert result.trimp == 92

        result = calculate_training_load(WorkoutData(**base))
        assert result.method == LoadMethod.HR_TSS
        assert result.trimp is None

    def test_nan_zone_minutes_never_raise(self):
        data = WorkoutData(duration=60, time_in_zones=[10, float('nan'), 0, 0, 0])
        result = calculate_training_load(data)
        assert result.method == LoadMethod.NONE
        assert result.attempted == ['TRIMP_EDWARDS']

    def test_nan_zone_minutes_fall_through(self):
        data = WorkoutData(duration=60, time_in_zones=[10, float('nan'), 0, 0, 0],
                           avg_heart_rate=140, max_heart_rate=180, resting_hr=60)
        assert calculate_training_load(data).method == LoadMethod.TRIMP_BANISTER

    def test_infinite_power_falls_through(self):
        data = WorkoutData(duration=60, normalized_power=float('inf'), ftp=250,
                           avg_heart_rate=150, resting_hr=50, lt_hr=150)
        result = calculate_training_load(data)
        assert result.method == LoadMethod.HR_TSS
        assert result.hr_tss == 100

    def test_no_data_never_raises(self):
        result = calculate_training_load(WorkoutData(duration=45))
        assert result.method == LoadMethod.NONE
        assert result.load is None
        assert 'Insufficient data' in result.warning

    def test_all_methods_invalid(self):
        data = WorkoutData(duration=0, normalized_power=250, ftp=250)
        result = calculate_training_load(data)
        assert result.method == LoadMethod.NONE
        assert 'TSS' in result.warning

    def test_from_camel_case_payload(self):
        data = WorkoutData.from_dict({
            'duration': 60, 'avgHeartRate': 150, 'restingHR': 50, 'ltHR': 150,
            'unknownField': 'ignored',
        })
        assert calculate_training_load(data).hr_tss == 100

    def test_payload_without_duration_raises(self):
        with pytest.raises(InvalidInputError):
            WorkoutData.from_dict({'avgHeartRate': 150})

    def test_to_dict_omits_empty_fields(self):
        d = calculate_training_load(WorkoutData(duration=60, normalized_power=250, ftp=250)).to_dict()
        assert d['method'] == 'TSS'
        assert 'trimp' not in d


# =============================================================================
# ACWR
# =============================================================================

class TestACWR:
    """Tests for rolling and EWMA ACWR."""

    def test_steady_weeks(self):
        acwr, acute, chronic = calculate_acwr([100, 100, 100, 100, 100])
        assert acwr == 1.0
        assert acute == 100
        assert chronic == 100

    def test_spike_week(self):
        """Acute 200 over chronic (200+100×3)/4 = 125 -> 1.6."""
        acwr, _, chronic = calculate_acwr([200, 100, 100, 100])
        assert chronic == 125
        assert acwr == 1.6

    def test_too_few_weeks_raises(self):
        with pytest.raises(InvalidInputError):
            calculate_acwr([100, 100, 100])

    def test_zero_chronic(self):
        assert calculate_acwr([0, 0, 0, 0])[0] == 0

    def test_ewma_seeded_with_first_value(self):
        ewma = calculate_ewma([10, 10, 10], span=7)
        assert np.allclose(ewma, 10)

    def test_ewma_empty(self):
        assert len(calculate_ewma([], span=7)) == 0

    def test_ewma_acwr_constant(self):
        acwr, acute, chronic = calculate_ewma_acwr([50.0] * 28)
        assert acwr == 1.0
        assert acute == pytest.approx(50.0)
        assert chronic == pytest.approx(50.0)

    def test_ewma_acwr_uses_first_28_days(self):
        base = calculate_ewma_acwr([50.0] * 28)
        extended = calculate_ewma_acwr([50.0] * 28 + [500.0] * 10)
        assert base == extended

    def test_ewma_acwr_too_short_raises(self):
        with pytest.raises(InvalidInputError):
            calculate_ewma_acwr([50.0] * 27)
