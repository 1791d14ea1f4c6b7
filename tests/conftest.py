"""Shared fixtures for the engine tests."""

from datetime import date, timedelta

import pytest

from training_engine.progression import InMemoryProgressionRepository, ProgressionRecord
from training_engine.zones import TrainingZone


@pytest.fixture
def zones():
    """Contiguous zones for an athlete with max HR 200."""
    return [
        TrainingZone(1, 100, 120, 'Recovery'),
        TrainingZone(2, 121, 140, 'Aerobic'),
        TrainingZone(3, 141, 160, 'Tempo'),
        TrainingZone(4, 161, 175, 'Threshold'),
        TrainingZone(5, 176, 200, 'VO2max'),
    ]


@pytest.fixture
def repository():
    return InMemoryProgressionRepository()


def make_record(week, e1rm, load=100.0, reps_completed=5, reps_target=5, sets=3,
                start=date(2024, 1, 1)):
    """Progression record for a given week offset."""
    return ProgressionRecord(
        client_id='athlete_1',
        exercise_id='back_squat',
        date=start + timedelta(weeks=week),
        actual_load=load,
        sets=sets,
        reps_target=reps_target,
        reps_completed=reps_completed,
        estimated_1rm=e1rm,
    )
