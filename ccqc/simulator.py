"""State-vector simulation of the rotation circuits.

The state of ``n`` units is a complex vector of length ``2**n``. Units are
little-endian: unit ``k`` is bit ``k`` of the basis-state index, so for two
units the basis order is ``|u1 u0> = 00, 01, 10, 11``.

A rotation on a target unit mixes each pair of amplitudes whose indices
differ only in the target bit. A controlled rotation does so only for the
pairs whose control bits are all 1; every other amplitude is copied as is.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Sequence, Tuple

import numpy as np

from .encoder import encode
from .errors import NumericalInvariantViolation
from .structure import Axis, CircuitSpec, RotationGate

__all__ = ["rotation_matrix", "StateSimulator", "NORM_TOLERANCE"]

NORM_TOLERANCE = 1e-6


def rotation_matrix(axis: Axis | str, angle: float) -> np.ndarray:
    """Single-unit rotation ``exp(-i * angle * sigma_axis / 2)``."""
    axis = Axis.parse(axis)
    c = np.cos(angle / 2)
    s = np.sin(angle / 2)
    if axis is Axis.X:
        return np.array([[c, -1j * s], [-1j * s, c]], dtype=np.complex128)
    if axis is Axis.Y:
        return np.array([[c, -s], [s, c]], dtype=np.complex128)
    return np.array(
        [[np.exp(-0.5j * angle), 0.0], [0.0, np.exp(0.5j * angle)]],
        dtype=np.complex128,
    )


@lru_cache(maxsize=256)
def _pair_indices(
    n_units: int, target: int, controls: Tuple[int, ...]
) -> Tuple[np.ndarray, np.ndarray]:
    # indices with target bit 0 and every control bit 1, and their partners
    idx = np.arange(2**n_units)
    mask = (idx >> target) & 1 == 0
    for c in controls:
        mask &= (idx >> c) & 1 == 1
    lower = idx[mask]
    upper = lower | (1 << target)
    lower.setflags(write=False)
    upper.setflags(write=False)
    return lower, upper


def _n_units(state: np.ndarray) -> int:
    n = int(state.size).bit_length() - 1
    if state.ndim != 1 or 2**n != state.size or n < 1:
        raise ValueError(
            f"State must be a 1-D vector of length 2**n with n >= 1, got shape {state.shape}"
        )
    return n


class StateSimulator:
    """Applies encodings, rotations and measurements to amplitude vectors.

    The simulator holds no state of its own; every method takes a state and
    returns a new one, leaving its input untouched.

    Parameters
    ----------
    norm_tolerance : float
        Largest tolerated drift of the squared norm away from 1 before a
        :class:`~ccqc.errors.NumericalInvariantViolation` is raised.
    """

    def __init__(self, norm_tolerance: float = NORM_TOLERANCE) -> None:
        self.norm_tolerance = norm_tolerance

    def check_norm(self, state: np.ndarray) -> np.ndarray:
        total = float(np.sum(np.abs(state) ** 2))
        if not np.isfinite(total) or abs(total - 1.0) > self.norm_tolerance:
            raise NumericalInvariantViolation(
                f"State norm drifted to {total!r} (tolerance {self.norm_tolerance})"
            )
        return state

    def encode(self, features, tolerance: float = 0.0) -> np.ndarray:
        return self.check_norm(encode(features, tolerance=tolerance))

    def apply_rotation(
        self, state: np.ndarray, gate: RotationGate, value: float
    ) -> np.ndarray:
        """Return ``state`` after ``gate`` rotated by angle ``value``."""
        n = _n_units(state)
        if max(gate.units) >= n:
            raise ValueError(
                f"Gate on units {gate.units} does not fit a state of {n} units"
            )
        if not np.isfinite(value):
            raise NumericalInvariantViolation(f"Rotation angle is not finite: {value!r}")
        matrix = rotation_matrix(gate.axis, value)
        lower, upper = _pair_indices(n, gate.target, gate.controls)
        out = np.array(state, dtype=np.complex128, copy=True)
        a0 = state[lower]
        a1 = state[upper]
        out[lower] = matrix[0, 0] * a0 + matrix[0, 1] * a1
        out[upper] = matrix[1, 0] * a0 + matrix[1, 1] * a1
        return self.check_norm(out)

    def apply_structure(
        self, state: np.ndarray, structure: CircuitSpec, parameters: Sequence[float]
    ) -> np.ndarray:
        """Apply every gate of ``structure`` in order."""
        for gate in structure:
            state = self.apply_rotation(state, gate, parameters[gate.parameter_index])
        return state

    def measurement_probability(
        self, state: np.ndarray, unit: int, outcome: int = 1
    ) -> float:
        """Probability that measuring ``unit`` yields ``outcome``."""
        n = _n_units(state)
        if not 0 <= unit < n:
            raise ValueError(f"Unit {unit} out of range for a state of {n} units")
        if outcome not in (0, 1):
            raise ValueError(f"Measurement outcome must be 0 or 1, got {outcome!r}")
        weights = np.abs(state) ** 2
        bits = (np.arange(state.size) >> unit) & 1
        p_one = float(np.sum(weights[bits == 1]) / np.sum(weights))
        p_one = min(1.0, max(0.0, p_one))
        return p_one if outcome == 1 else 1.0 - p_one

    def sample_measurement(
        self, state: np.ndarray, unit: int, rng: np.random.Generator
    ) -> int:
        """Draw one measurement outcome of ``unit``; consumes one uniform draw."""
        p_one = self.measurement_probability(state, unit, 1)
        return int(rng.random() < p_one)

    def sample_measurements(
        self, state: np.ndarray, unit: int, rng: np.random.Generator, shots: int
    ) -> np.ndarray:
        """Outcomes of ``shots`` independent trials, each on the uncollapsed state.

        Equivalent to ``shots`` calls of :meth:`sample_measurement`, drawing the
        same uniforms from ``rng`` in the same order.
        """
        if shots < 1:
            raise ValueError(f"shots must be positive, got {shots}")
        p_one = self.measurement_probability(state, unit, 1)
        return (rng.random(shots) < p_one).astype(np.int64)

    def collapse(self, state: np.ndarray, unit: int, outcome: int) -> np.ndarray:
        """Post-measurement state after ``unit`` was observed as ``outcome``."""
        p = self.measurement_probability(state, unit, outcome)
        if p == 0.0:
            raise ValueError(
                f"Outcome {outcome} of unit {unit} has zero probability in this state"
            )
        bits = (np.arange(state.size) >> unit) & 1
        out = np.where(bits == outcome, state, 0.0).astype(np.complex128)
        return self.check_norm(out / np.sqrt(p))

    def measure(
        self, state: np.ndarray, unit: int, rng: np.random.Generator
    ) -> Tuple[int, np.ndarray]:
        outcome = self.sample_measurement(state, unit, rng)
        return outcome, self.collapse(state, unit, outcome)
