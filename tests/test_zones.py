"""
Tests for heart-rate zone distribution.

Run with: python -m pytest tests/test_zones.py -v
"""

import pytest

from training_engine.zones import (
    ZoneSource,
    TrainingZone,
    ZoneDistribution,
    ESTIMATION_TEMPLATES,
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


# =============================================================================
# Zone lookup
# =============================================================================

class TestZoneLookup:
    """Tests for get_zone_for_hr."""

    def test_inside_zone(self, zones):
        assert get_zone_for_hr(130, zones) == 2
        assert get_zone_for_hr(176, zones) == 5

    def test_below_all_zones(self, zones):
        assert get_zone_for_hr(90, zones) == 1

    def test_above_all_zones(self, zones):
        assert get_zone_for_hr(210, zones) == 5

    def test_gap_uses_nearest_midpoint(self, zones):
        """120.5 falls between zones 1 and 2; zone 1's midpoint is closer."""
        assert get_zone_for_hr(120.5, zones) == 1

    def test_invalid_input(self, zones):
        assert get_zone_for_hr(0, zones) == 0
        assert get_zone_for_hr(-5, zones) == 0
        assert get_zone_for_hr(140, []) == 0


# =============================================================================
# Distribution sources
# =============================================================================

class TestStreamDistribution:
    """Tests for 1 Hz stream classification."""

    def test_counts_seconds_per_zone(self, zones):
        stream = [110] * 60 + [150] * 30
        dist = calculate_hr_zone_distribution(stream, zones)
        assert dist.zone1_seconds == 60
        assert dist.zone3_seconds == 30
        assert dist.total_tracked_seconds == 90
        assert dist.source == ZoneSource.STRAVA_STREAM

    def test_drops_implausible_samples(self, zones):
        stream = [110] * 10 + [0] * 5 + [30] * 5 + [250] * 5 + [300] * 5
        dist = calculate_hr_zone_distribution(stream, zones)
        assert dist.total_tracked_seconds == 10

    def test_empty_stream(self, zones):
        dist = calculate_hr_zone_distribution([], zones)
        assert dist.total_tracked_seconds == 0


class TestGarminZones:
    """Tests for device-reported zones."""

    def test_total_is_sum(self):
        dist = calculate_from_garmin_zones(
            {'zone1': 10, 'zone2': 20, 'zone3': 0, 'zone4': 0, 'zone5': 0}
        )
        assert dist.total_tracked_seconds == 30
        assert dist.source == ZoneSource.GARMIN_ZONES

    def test_missing_zones_are_zero(self):
        dist = calculate_from_garmin_zones({'zone2': 600, 'zone4': None})
        assert dist.zone_seconds == [0, 600, 0, 0, 0]


class TestEstimate:
    """Tests for estimating zones from average HR."""

    @pytest.mark.parametrize('avg_hr', [0, 90, 110, 130, 150, 170, 190, 250])
    @pytest.mark.parametrize('duration', [1, 7, 59, 3600, 3601])
    def test_sum_equals_duration(self, zones, avg_hr, duration):
        dist = estimate_zone_from_avg_hr(avg_hr, duration, zones)
        assert sum(dist.zone_seconds) == duration
        assert dist.total_tracked_seconds == duration
        assert dist.source == ZoneSource.ESTIMATED

    def test_zone3_template(self, zones):
        dist = estimate_zone_from_avg_hr(150, 3600, zones)
        assert dist.zone_seconds == [180, 720, 1800, 720, 180]

    def test_unknown_zone_uses_zone1_template(self):
        dist = estimate_zone_from_avg_hr(150, 1000, [])
        assert dist.zone_seconds == [700, 250, 50, 0, 0]

    def test_residual_goes_to_primary_zone(self, zones):
        """3 s at zone 2: shares round to [0, 2, 0, 0, 0], the spare second lands in zone 2."""
        dist = estimate_zone_from_avg_hr(130, 3, zones)
        assert dist.zone_seconds == [0, 3, 0, 0, 0]

    def test_halves_round_up_before_residual(self, zones):
        """10 s at zone 3: 0.5 s shares round up to 1, zone 3 absorbs the excess."""
        dist = estimate_zone_from_avg_hr(150, 10, zones)
        assert dist.zone_seconds == [1, 2, 4, 2, 1]

    def test_templates_sum_to_one(self):
        for template in ESTIMATION_TEMPLATES.values():
            assert sum(template) == pytest.approx(1.0)


# =============================================================================
# Snapshot, polarization, aggregation
# =============================================================================

class TestSnapshot:

    def test_fills_missing_zones(self):
        given = [TrainingZone(1, 95, 115), TrainingZone(2, 116, 135)]
        snapshot = create_zone_config_snapshot(given, max_hr=200)
        assert [z.zone for z in snapshot.zones] == [1, 2, 3, 4, 5]
        assert (snapshot.zones[0].hr_min, snapshot.zones[0].hr_max) == (95, 115)
        assert (snapshot.zones[2].hr_min, snapshot.zones[2].hr_max) == (140, 160)
        assert snapshot.captured_at

    def test_snapshot_is_a_copy(self, zones):
        snapshot = create_zone_config_snapshot(zones, max_hr=200)
        zones[0].hr_max = 999
        assert snapshot.zones[0].hr_max == 120

    def test_default_bounds_round_half_up(self):
        """50% of 185 is 92.5, stored as 93."""
        snapshot = create_zone_config_snapshot([], max_hr=185)
        assert snapshot.zones[0].hr_min == 93
        assert snapshot.zones[0].hr_max == 111


class TestPolarization:

    def test_eighty_percent(self):
        dist = ZoneDistribution.from_zone_seconds([600, 600, 300, 0, 0], ZoneSource.GARMIN_ZONES)
        assert calculate_polarization_ratio(dist) == 80.0

    def test_one_decimal(self):
        dist = ZoneDistribution.from_zone_seconds([1, 0, 2, 0, 0], ZoneSource.GARMIN_ZONES)
        assert calculate_polarization_ratio(dist) == 33.3

    def test_empty(self):
        assert calculate_polarization_ratio(ZoneDistribution()) == 0.0


class TestAggregation:

    def test_sums_counters(self):
        a = ZoneDistribution.from_zone_seconds([10, 20, 0, 0, 0], ZoneSource.GARMIN_ZONES)
        b = ZoneDistribution.from_zone_seconds([5, 0, 15, 0, 1], ZoneSource.STRAVA_STREAM)
        total = aggregate_zone_distributions([a, b])
        assert total.zone_seconds == [15, 20, 15, 0, 1]
        assert total.total_tracked_seconds == 51
        assert total.source == ZoneSource.AGGREGATED

    def test_empty(self):
        assert aggregate_zone_distributions([]).total_tracked_seconds == 0

    def test_minutes_round_trip(self):
        """Minutes of the aggregate match the summed minutes within rounding."""
        parts = [
            ZoneDistribution.from_zone_seconds([90, 150, 610, 45, 0], ZoneSource.GARMIN_ZONES),
            ZoneDistribution.from_zone_seconds([1200, 330, 0, 75, 29], ZoneSource.GARMIN_ZONES),
            ZoneDistribution.from_zone_seconds([59, 61, 119, 121, 3599], ZoneSource.GARMIN_ZONES),
        ]
        combined = zone_seconds_to_minutes(aggregate_zone_distributions(parts))
        converted = [zone_seconds_to_minutes(p) for p in parts]

        for key, value in combined.items():
            summed = sum(c[key] for c in converted)
            assert abs(value - summed) <= len(parts)


# =============================================================================
# Validation
# =============================================================================

class TestValidation:

    def test_valid(self):
        dist = ZoneDistribution.from_zone_seconds([10, 20, 30, 0, 0], ZoneSource.GARMIN_ZONES)
        assert validate_zone_distribution(dist) == (True, [])

    def test_sum_mismatch(self):
        dist = ZoneDistribution.from_zone_seconds([10, 20, 30, 0, 0], ZoneSource.GARMIN_ZONES,
                                                  total=70)
        ok, errors = validate_zone_distribution(dist)
        assert not ok
        assert any('does not match' in e for e in errors)

    def test_one_second_tolerance(self):
        dist = ZoneDistribution.from_zone_seconds([10, 20, 30, 0, 0], ZoneSource.GARMIN_ZONES,
                                                  total=61)
        assert validate_zone_distribution(dist)[0]

    def test_negative_zone(self):
        dist = ZoneDistribution.from_zone_seconds([-5, 20, 0, 0, 0], ZoneSource.ESTIMATED)
        ok, errors = validate_zone_distribution(dist)
        assert not ok
        assert any('zone1Seconds' in e for e in errors)

    def test_over_24_hours(self):
        dist = ZoneDistribution.from_zone_seconds([90000, 0, 0, 0, 0], ZoneSource.GARMIN_ZONES)
        ok, errors = validate_zone_distribution(dist)
        assert not ok
        assert any('24h' in e for e in errors)


class TestMinutes:

    def test_conversion(self):
        dist = ZoneDistribution.from_zone_seconds([600, 90, 0, 0, 0], ZoneSource.GARMIN_ZONES)
        minutes = zone_seconds_to_minutes(dist)
        assert minutes['zone1Minutes'] == 10
        assert minutes['zone2Minutes'] == 2
        assert minutes['totalMinutes'] == 12


class TestResolve:
    """Tests for source priority."""

    def test_stream_first(self, zones):
        dist = resolve_zone_distribution(zones, hr_stream=[110] * 10,
                                         device_zones={'zone1': 600},
                                         avg_hr=150, duration_seconds=600)
        assert dist.source == ZoneSource.STRAVA_STREAM

    def test_device_second(self, zones):
        dist = resolve_zone_distribution(zones, device_zones={'zone1': 600},
                                         avg_hr=150, duration_seconds=600)
        assert dist.source == ZoneSource.GARMIN_ZONES

    def test_estimate_last(self, zones):
        dist = resolve_zone_distribution(zones, avg_hr=150, duration_seconds=600)
        assert dist.source == ZoneSource.ESTIMATED

    def test_nothing(self, zones):
        assert resolve_zone_distribution(zones) is None
