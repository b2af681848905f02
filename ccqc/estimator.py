"""Probability estimation and labelling.

The estimator prepares the classifier state for a feature vector (encode,
then every rotation of the model's circuit) and estimates the probability
that the output unit reads 1. In sampling mode each of the
``measurements_per_sample`` trials measures a fresh copy of the prepared
state; the estimate is the observed frequency of 1. Passing
``measurements_per_sample=None`` returns the exact probability instead.

Randomness is never global: callers pass a :class:`numpy.random.Generator`,
usually obtained from :func:`random_stream` with a key that identifies the
evaluation, so results are reproducible whatever order evaluations run in.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from .model import Model, infer_label
from .simulator import StateSimulator
from .structure import CircuitSpec

__all__ = ["random_stream", "EncodingCache", "Estimator"]


def random_stream(seed: int, *key: int) -> np.random.Generator:
    """Independent generator for the evaluation identified by ``key``."""
    return np.random.default_rng(np.random.SeedSequence(seed, spawn_key=tuple(key)))


class EncodingCache:
    """Encoded amplitude vectors of a fixed dataset, keyed by sample index."""

    def __init__(self, samples, simulator: StateSimulator, tolerance: float = 0.0) -> None:
        self.samples = samples
        self.simulator = simulator
        self.tolerance = tolerance
        self._states: Dict[int, np.ndarray] = {}

    def __getitem__(self, index: int) -> np.ndarray:
        state = self._states.get(index)
        if state is None:
            state = self.simulator.encode(self.samples[index].features, self.tolerance)
            self._states[index] = state
        return state


class Estimator:
    """Estimates output probabilities and predicted labels for a model.

    Parameters
    ----------
    simulator : StateSimulator or None
        Simulator used to prepare and measure states.
    output_unit : int or None
        Unit whose reading is the classifier output. ``None`` selects the
        highest unit of the encoded state.
    """

    def __init__(
        self,
        simulator: Optional[StateSimulator] = None,
        output_unit: Optional[int] = None,
    ) -> None:
        self.simulator = simulator or StateSimulator()
        self.output_unit = output_unit

    def _unit(self, state: np.ndarray) -> int:
        if self.output_unit is not None:
            return self.output_unit
        return int(state.size).bit_length() - 2

    def _run(self, state, structure: CircuitSpec, parameters) -> np.ndarray:
        return self.simulator.apply_structure(state, structure, parameters)

    def prepare(self, model: Model, features, tolerance: float = 0.0) -> np.ndarray:
        """Encoded and rotated state for ``features``."""
        state = self.simulator.encode(features, tolerance)
        return self._run(state, model.structure, model.parameters)

    def _estimate(
        self,
        state: np.ndarray,
        measurements_per_sample: Optional[int],
        rng: Optional[np.random.Generator],
    ) -> float:
        unit = self._unit(state)
        if measurements_per_sample is None:
            return self.simulator.measurement_probability(state, unit, 1)
        if measurements_per_sample < 1:
            raise ValueError(
                f"measurements_per_sample must be positive, got {measurements_per_sample}"
            )
        if rng is None:
            rng = np.random.default_rng()
        outcomes = self.simulator.sample_measurements(
            state, unit, rng, measurements_per_sample
        )
        return float(outcomes.mean())

    def probability(
        self,
        model: Model,
        features,
        measurements_per_sample: Optional[int],
        rng: Optional[np.random.Generator] = None,
        tolerance: float = 0.0,
    ) -> float:
        """Estimated probability that the output unit reads 1."""
        state = self.prepare(model, features, tolerance)
        return self._estimate(state, measurements_per_sample, rng)

    def classify(
        self,
        model: Model,
        features,
        measurements_per_sample: Optional[int],
        rng: Optional[np.random.Generator] = None,
        tolerance: float = 0.0,
    ) -> Tuple[float, int]:
        """Return ``(probability_estimate, predicted_label)`` for one sample."""
        p = self.probability(model, features, measurements_per_sample, rng, tolerance)
        return p, infer_label(p, model.bias)

    def estimate_probabilities(
        self,
        structure: CircuitSpec,
        parameters: Sequence[float],
        samples,
        indices: Sequence[int],
        measurements_per_sample: Optional[int],
        seed: int = 0,
        stream_key: Tuple[int, ...] = (),
        tolerance: float = 0.0,
        cache: Optional[EncodingCache] = None,
    ) -> np.ndarray:
        """Probability estimates for ``samples[i]`` for every ``i`` in ``indices``.

        Each position draws from ``random_stream(seed, *stream_key, position, i)``,
        so calling twice with the same key reuses the same random numbers.
        """
        probs = np.empty(len(indices), dtype=float)
        for position, i in enumerate(indices):
            if cache is not None:
                state = cache[i]
            else:
                state = self.simulator.encode(samples[i].features, tolerance)
            state = self._run(state, structure, parameters)
            rng = None
            if measurements_per_sample is not None:
                rng = random_stream(seed, *stream_key, position, i)
            probs[position] = self._estimate(state, measurements_per_sample, rng)
        return probs
