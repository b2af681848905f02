"""Local-search strategies for the parameter vector.

The trainer scores parameter vectors by misclassification count, which has
no useful gradient. A strategy only proposes the next vector to try; the
trainer measures it and decides whether to keep it. New strategies subclass
:class:`LocalSearchStrategy` and can be passed to :func:`ccqc.trainer.train`.
"""

from __future__ import annotations

import abc

import numpy as np

__all__ = [
    "LocalSearchStrategy",
    "RandomPerturbation",
    "CoordinatePerturbation",
    "get_strategy",
]


class LocalSearchStrategy(abc.ABC):
    """Proposes a nearby parameter vector."""

    name = "base"

    @abc.abstractmethod
    def propose(
        self,
        parameters: np.ndarray,
        learning_rate: float,
        rng: np.random.Generator,
        step: int,
    ) -> np.ndarray:
        """Return a new vector; ``parameters`` must not be modified.

        ``step`` counts proposals made so far for the current candidate.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class RandomPerturbation(LocalSearchStrategy):
    """Gaussian step of scale ``learning_rate`` on every parameter."""

    name = "random"

    def propose(self, parameters, learning_rate, rng, step):
        return parameters + learning_rate * rng.standard_normal(parameters.shape)


class CoordinatePerturbation(LocalSearchStrategy):
    """Moves one parameter per step by ``+/- learning_rate``.

    Coordinates are visited cyclically; the sign of each move is random.
    """

    name = "coordinate"

    def propose(self, parameters, learning_rate, rng, step):
        proposal = np.array(parameters, dtype=float, copy=True)
        if proposal.size == 0:
            return proposal
        j = step % proposal.size
        proposal[j] += learning_rate if rng.random() < 0.5 else -learning_rate
        return proposal


_STRATEGIES = {
    RandomPerturbation.name: RandomPerturbation,
    CoordinatePerturbation.name: CoordinatePerturbation,
}


def get_strategy(name: str | LocalSearchStrategy | None) -> LocalSearchStrategy:
    """Resolve a strategy by name; instances pass through unchanged."""
    if name is None:
        return RandomPerturbation()
    if isinstance(name, LocalSearchStrategy):
        return name
    try:
        return _STRATEGIES[str(name).lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown search strategy {name!r}, expected one of {sorted(_STRATEGIES)}"
        ) from None
