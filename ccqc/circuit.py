"""PennyLane rendition of classifier circuits.

The engine simulates circuits itself (see :mod:`ccqc.simulator`). The
functions here build the same circuit out of PennyLane operations so that a
model can be checked against an independent simulator, ``default.qubit``.

PennyLane orders wires big-endian (wire 0 is the most significant bit of the
basis index) while units are little-endian, so unit ``k`` of an ``n``-unit
state lives on wire ``n - 1 - k``.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pennylane as qml

from .encoder import encode
from .model import Model
from .structure import Axis, CircuitSpec

__all__ = [
    "unit_to_wire",
    "amplitude_embedding",
    "apply_structure",
    "reference_probability",
]

_OPERATIONS = {Axis.X: qml.RX, Axis.Y: qml.RY, Axis.Z: qml.RZ}


def unit_to_wire(unit: int, n_units: int) -> int:
    return n_units - 1 - unit


def amplitude_embedding(x, tolerance: float = 0.0) -> int:
    """Embed feature vector ``x`` into the amplitudes of the device wires.

    The vector is padded and normalised exactly as :func:`ccqc.encoder.encode`
    does. Returns the number of wires used.
    """
    amplitudes = encode(x, tolerance=tolerance)
    n_wires = int(np.log2(len(amplitudes)))
    qml.AmplitudeEmbedding(amplitudes, wires=range(n_wires), normalize=True)
    return n_wires


def apply_structure(
    structure: CircuitSpec, parameters: Sequence[float], n_units: int
) -> None:
    """Queue every gate of ``structure``, controlled gates through ``qml.ctrl``."""
    for gate in structure:
        op = _OPERATIONS[gate.axis]
        value = parameters[gate.parameter_index]
        wire = unit_to_wire(gate.target, n_units)
        if gate.controls:
            controls = [unit_to_wire(c, n_units) for c in gate.controls]
            qml.ctrl(op, control=controls)(value, wires=wire)
        else:
            op(value, wires=wire)


def reference_probability(
    model: Model,
    features,
    output_unit: Optional[int] = None,
    tolerance: float = 0.0,
    device: str = "default.qubit",
) -> float:
    """Exact probability that ``output_unit`` reads 1, computed by PennyLane.

    ``output_unit=None`` selects the highest unit, as the estimator does.
    """
    n_units = int(np.log2(len(encode(features, tolerance=tolerance))))
    unit = n_units - 1 if output_unit is None else output_unit
    dev = qml.device(device, wires=n_units)

    @qml.qnode(dev)
    def circuit():
        amplitude_embedding(features, tolerance)
        apply_structure(model.structure, model.parameters, n_units)
        return qml.probs(wires=[unit_to_wire(unit, n_units)])

    probs = circuit()
    return float(probs[1])
