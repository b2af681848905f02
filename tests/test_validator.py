"""Tests for the validator and sampling schedules."""

import numpy as np
import pytest

from ccqc.data import generate_data, to_samples
from ccqc.errors import EmptyDatasetError, ScheduleRangeError
from ccqc.model import Model
from ccqc.schedule import SamplingSchedule
from ccqc.structure import CircuitSpec, RotationGate
from ccqc.validator import count_misclassifications, validate


SINGLE_ROTATION = CircuitSpec((RotationGate(target=0, axis="Y", parameter_index=0),))


@pytest.fixture
def samples():
    X, y = generate_data(40, seed=3, kind="wedge")
    return to_samples(X, y)


def test_planted_model_has_no_misses(samples):
    model = Model(SINGLE_ROTATION, (0.0,))
    schedule = SamplingSchedule.contiguous(len(samples), 7)
    assert validate(model, samples, 0.0, None, schedule) == 0.0


def test_always_one_model_misses_every_zero_label(samples):
    model = Model(SINGLE_ROTATION, (0.0,), bias=0.6)
    schedule = SamplingSchedule.from_range(0, len(samples))
    zeros = sum(s.label == 0 for s in samples)
    assert validate(model, samples, 0.0, None, schedule) == pytest.approx(zeros / len(samples))


def test_exact_mode_is_idempotent(samples):
    model = Model(SINGLE_ROTATION, (1.3,), bias=0.05)
    schedule = SamplingSchedule.contiguous(len(samples), 5)
    first = validate(model, samples, 0.0, None, schedule)
    second = validate(model, samples, 0.0, None, schedule)
    assert first == second
    assert model == Model(SINGLE_ROTATION, (1.3,), bias=0.05)


def test_sampled_mode_is_reproducible_for_a_seed(samples):
    model = Model(SINGLE_ROTATION, (1.3,), bias=0.05)
    schedule = SamplingSchedule.contiguous(len(samples), 5)
    first = validate(model, samples, 0.0, 3, schedule, seed=9)
    second = validate(model, samples, 0.0, 3, schedule, seed=9)
    assert first == second
    assert 0.0 <= first <= 1.0


def test_repeated_indices_count_per_occurrence(samples):
    model = Model(SINGLE_ROTATION, (0.0,), bias=0.6)
    wrong = next(i for i, s in enumerate(samples) if s.label == 0)
    right = next(i for i, s in enumerate(samples) if s.label == 1)
    schedule = SamplingSchedule(((wrong, wrong, right), (wrong,)))
    assert count_misclassifications(model, samples, 0.0, None, schedule) == 3
    assert validate(model, samples, 0.0, None, schedule) == pytest.approx(0.75)


def test_empty_schedule_contributes_nothing(samples):
    model = Model(SINGLE_ROTATION, (0.0,))
    assert validate(model, samples, 0.0, None, SamplingSchedule(((),))) == 0.0
    assert validate(model, samples, 0.0, None, SamplingSchedule()) == 0.0


def test_errors(samples):
    model = Model(SINGLE_ROTATION, (0.0,))
    with pytest.raises(ScheduleRangeError):
        validate(model, samples, 0.0, None, SamplingSchedule.single_batch([len(samples)]))
    with pytest.raises(EmptyDatasetError):
        validate(model, [], 0.0, None, SamplingSchedule())


def test_schedule_helpers():
    schedule = SamplingSchedule.contiguous(7, 3)
    assert schedule.batches == ((0, 1, 2), (3, 4, 5), (6,))
    assert schedule.indices() == list(range(7))
    assert schedule.n_evaluations == 7
    assert schedule.minibatches(2).batches == ((0, 1), (2,), (3, 4), (5,), (6,))
    assert SamplingSchedule.from_range(0, 6, 2).batches == ((0, 2, 4),)
    assert schedule.validate(7) is schedule
    with pytest.raises(ScheduleRangeError):
        schedule.validate(6)
    with pytest.raises(ValueError):
        SamplingSchedule.contiguous(4, 0)
    assert SamplingSchedule(((), (1,))).minibatches(3).batches == ((), (1,))
    assert np.array_equal(SamplingSchedule.single_batch(np.arange(3)).indices(), [0, 1, 2])
