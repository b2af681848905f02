"""Circuit-centric classifier model.

A model pairs a shared :class:`~ccqc.structure.CircuitSpec` with the learned
values: one angle per parameter slot and a bias that shifts the 0.5 decision
threshold on the measured probability.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence, Tuple

import numpy as np

from .structure import CircuitSpec

__all__ = ["Model", "infer_label"]


def infer_label(probability: float, bias: float) -> int:
    """Predicted label for an estimated probability of reading 1.

    The label is 1 when ``probability > 0.5 - bias``. A bias outside
    ``[-0.5, 0.5]`` pushes the threshold out of ``[0, 1]`` and the model then
    always answers the same label.
    """
    return int(probability > 0.5 - bias)


@dataclass(frozen=True)
class Model:
    """Frozen classifier: circuit geometry, parameters and bias.

    Parameters
    ----------
    structure : CircuitSpec
        Circuit geometry. Shared between models, never copied.
    parameters : tuple of float
        One rotation angle per parameter slot of ``structure``.
    bias : float
        Threshold shift used by :func:`infer_label`.
    """

    structure: CircuitSpec
    parameters: Tuple[float, ...]
    bias: float = 0.0

    def __post_init__(self) -> None:
        params = tuple(float(p) for p in np.asarray(self.parameters, dtype=float).reshape(-1))
        if len(params) != self.structure.n_parameters:
            raise ValueError(
                f"Model needs {self.structure.n_parameters} parameters, got {len(params)}"
            )
        object.__setattr__(self, "parameters", params)
        object.__setattr__(self, "bias", float(self.bias))

    def with_updates(
        self, parameters: Sequence[float] | None = None, bias: float | None = None
    ) -> "Model":
        changes = {}
        if parameters is not None:
            changes["parameters"] = tuple(parameters)
        if bias is not None:
            changes["bias"] = bias
        return replace(self, **changes)
