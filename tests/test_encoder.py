"""Tests for amplitude encoding."""

import numpy as np
import pytest

from ccqc.encoder import encode, n_units_for
from ccqc.errors import DegenerateInputError


@pytest.mark.parametrize("size", [1, 2, 3, 4, 7, 8])
def test_encoded_state_has_unit_norm(size):
    rng = np.random.default_rng(size)
    for _ in range(20):
        x = rng.standard_normal(size) * 10
        state = encode(x)
        assert state.size == 2 ** n_units_for(size)
        assert np.linalg.norm(state) == pytest.approx(1.0, abs=1e-9)


def test_component_i_maps_to_basis_state_i():
    state = encode([3.0, 4.0, 0.0])
    assert np.allclose(state, [0.6, 0.8, 0.0, 0.0])


def test_magnitude_is_discarded():
    assert np.allclose(encode([1.0, 2.0]), encode([5.0, 10.0]))


def test_unit_counts():
    assert n_units_for(1) == 1
    assert n_units_for(2) == 1
    assert n_units_for(3) == 2
    assert n_units_for(4) == 2
    assert n_units_for(5) == 3


def test_zero_vector_is_degenerate():
    with pytest.raises(DegenerateInputError):
        encode([0.0, 0.0])
    with pytest.raises(DegenerateInputError):
        encode([np.nan, 1.0])


def test_tolerance_drops_small_coefficients():
    state = encode([1.0, 0.001, 1.0, 0.0], tolerance=0.01)
    assert state[1] == 0
    assert np.linalg.norm(state) == pytest.approx(1.0)
    with pytest.raises(DegenerateInputError):
        encode([1.0, 1.0, 1.0, 1.0], tolerance=0.9)
