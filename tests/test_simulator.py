"""Tests for the state-vector simulator.

These cover the rotation matrices, controlled application on the right
sub-block, norm preservation, measurement probabilities and seeded sampling.
"""

import numpy as np
import pytest

from ccqc.errors import NumericalInvariantViolation
from ccqc.simulator import StateSimulator, rotation_matrix
from ccqc.structure import Axis, CircuitSpec, RotationGate


def _random_state(n_units, seed):
    rng = np.random.default_rng(seed)
    v = rng.standard_normal(2**n_units) + 1j * rng.standard_normal(2**n_units)
    return v / np.linalg.norm(v)


@pytest.mark.parametrize("axis", ["X", "Y", "Z"])
def test_rotation_matrices_are_unitary(axis):
    m = rotation_matrix(axis, 0.83)
    assert np.allclose(m.conj().T @ m, np.eye(2), atol=1e-12)


def test_ry_pi_flips_single_unit():
    sim = StateSimulator()
    state = np.array([1.0, 0.0], dtype=complex)
    out = sim.apply_rotation(state, RotationGate(0, axis=Axis.Y), np.pi)
    assert sim.measurement_probability(out, 0, 1) == pytest.approx(1.0, abs=1e-12)
    # input untouched
    assert state[0] == 1.0


def test_controlled_rotation_acts_only_when_control_is_one():
    sim = StateSimulator()
    gate = RotationGate(target=1, controls=(0,), axis="Y")
    # |u1 u0> = |00>: control reads 0, nothing happens
    off = sim.apply_rotation(np.array([1, 0, 0, 0], dtype=complex), gate, np.pi)
    assert np.allclose(off, [1, 0, 0, 0])
    # |u1 u0> = |01>: control reads 1, target flips to |11>
    on = sim.apply_rotation(np.array([0, 1, 0, 0], dtype=complex), gate, np.pi)
    assert np.allclose(np.abs(on), [0, 0, 0, 1])


def test_full_circuit_preserves_norm():
    sim = StateSimulator()
    structure = CircuitSpec(
        (
            RotationGate(0, (), "X", 0),
            RotationGate(1, (0,), "Y", 1),
            RotationGate(2, (0, 1), "Z", 2),
            RotationGate(0, (2,), "X", 3),
            RotationGate(1, (), "Y", 0),
        )
    )
    params = np.random.default_rng(3).uniform(-np.pi, np.pi, structure.n_parameters)
    state = sim.apply_structure(_random_state(3, 1), structure, params)
    assert np.sum(np.abs(state) ** 2) == pytest.approx(1.0, abs=1e-9)


@pytest.mark.parametrize("seed", range(5))
def test_outcome_probabilities_sum_to_one(seed):
    sim = StateSimulator()
    state = _random_state(3, seed)
    for unit in range(3):
        total = sim.measurement_probability(state, unit, 0) + sim.measurement_probability(
            state, unit, 1
        )
        assert total == pytest.approx(1.0, abs=1e-9)


def test_measurement_probability_uses_little_endian_units():
    sim = StateSimulator()
    # basis state index 2 = |u1 u0> = |10>
    state = np.array([0, 0, 1, 0], dtype=complex)
    assert sim.measurement_probability(state, 0, 1) == 0.0
    assert sim.measurement_probability(state, 1, 1) == 1.0


def test_sampling_is_seedable():
    sim = StateSimulator()
    state = _random_state(2, 7)
    a = sim.sample_measurements(state, 1, np.random.default_rng(11), 50)
    b = sim.sample_measurements(state, 1, np.random.default_rng(11), 50)
    assert np.array_equal(a, b)
    rng = np.random.default_rng(11)
    singles = [sim.sample_measurement(state, 1, rng) for _ in range(50)]
    assert np.array_equal(a, singles)


def test_measure_collapses_state():
    sim = StateSimulator()
    state = np.array([np.sqrt(0.5), np.sqrt(0.5)], dtype=complex)
    outcome, collapsed = sim.measure(state, 0, np.random.default_rng(0))
    assert sim.measurement_probability(collapsed, 0, outcome) == pytest.approx(1.0)
    with pytest.raises(ValueError):
        sim.collapse(collapsed, 0, 1 - outcome)


def test_unnormalised_state_is_fatal():
    sim = StateSimulator()
    with pytest.raises(NumericalInvariantViolation):
        sim.apply_rotation(np.array([1.0, 1.0], dtype=complex), RotationGate(0), 0.1)


def test_non_finite_angle_is_fatal():
    sim = StateSimulator()
    with pytest.raises(NumericalInvariantViolation):
        sim.apply_rotation(np.array([1.0, 0.0], dtype=complex), RotationGate(0), np.nan)


def test_gate_outside_state_is_rejected():
    sim = StateSimulator()
    with pytest.raises(ValueError):
        sim.apply_rotation(np.array([1.0, 0.0], dtype=complex), RotationGate(1), 0.1)
    with pytest.raises(ValueError):
        sim.measurement_probability(np.array([1.0, 0.0], dtype=complex), 2, 1)
