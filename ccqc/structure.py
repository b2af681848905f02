"""Circuit geometry for circuit-centric classifiers.

A :class:`CircuitSpec` is an ordered, immutable list of :class:`RotationGate`
entries. Each gate names the unit it rotates, the units it is controlled on,
the rotation axis and the parameter slot whose value supplies the angle. The
geometry is shared by every model trained on it; learned values live in
:class:`ccqc.model.Model`.

The layer builders mirror the usual layouts for these classifiers: a layer of
local rotations on every unit, a layer on a subset of units, and a cyclic
entangling layer where every unit controls a rotation on its neighbour at a
given stride. Layers are joined with :func:`combined_structure`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

__all__ = [
    "Axis",
    "RotationGate",
    "CircuitSpec",
    "local_rotations_layer",
    "partial_rotations_layer",
    "cyclic_entangling_layer",
    "combined_structure",
]


class Axis(enum.Enum):
    """Rotation axis of a gate."""

    X = "X"
    Y = "Y"
    Z = "Z"

    @classmethod
    def parse(cls, value: "Axis | str") -> "Axis":
        if isinstance(value, Axis):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unknown rotation axis: {value!r}") from None


@dataclass(frozen=True)
class RotationGate:
    """One rotation in a circuit.

    Parameters
    ----------
    target : int
        Index of the unit being rotated.
    controls : tuple of int
        Units that must all read 1 for the rotation to act. Empty for an
        unconditional rotation.
    axis : Axis
        Rotation axis. Strings such as ``"Y"`` are accepted.
    parameter_index : int
        Slot in the model's parameter vector holding the rotation angle.
    """

    target: int
    controls: Tuple[int, ...] = ()
    axis: Axis = Axis.Y
    parameter_index: int = 0

    def __post_init__(self) -> None:
        controls = tuple(int(c) for c in self.controls)
        object.__setattr__(self, "controls", controls)
        object.__setattr__(self, "axis", Axis.parse(self.axis))
        if self.target < 0:
            raise ValueError(f"Gate target must be non-negative, got {self.target}")
        if self.parameter_index < 0:
            raise ValueError(
                f"Gate parameter index must be non-negative, got {self.parameter_index}"
            )
        if any(c < 0 for c in controls):
            raise ValueError(f"Gate controls must be non-negative, got {controls}")
        if len(set(controls)) != len(controls):
            raise ValueError(f"Gate controls must be distinct, got {controls}")
        if self.target in controls:
            raise ValueError(f"Unit {self.target} cannot control its own rotation")

    @property
    def units(self) -> Tuple[int, ...]:
        return (self.target,) + self.controls


@dataclass(frozen=True)
class CircuitSpec:
    """Ordered, immutable sequence of rotation gates."""

    gates: Tuple[RotationGate, ...] = ()

    def __post_init__(self) -> None:
        gates = tuple(self.gates)
        for gate in gates:
            if not isinstance(gate, RotationGate):
                raise TypeError(f"CircuitSpec entries must be RotationGate, got {gate!r}")
        object.__setattr__(self, "gates", gates)

    def __len__(self) -> int:
        return len(self.gates)

    def __iter__(self):
        return iter(self.gates)

    @property
    def n_parameters(self) -> int:
        """Length of the parameter vector a model on this circuit needs."""
        if not self.gates:
            return 0
        return max(g.parameter_index for g in self.gates) + 1

    @property
    def n_units(self) -> int:
        """Smallest number of units that covers every gate."""
        if not self.gates:
            return 0
        return max(max(g.units) for g in self.gates) + 1


def local_rotations_layer(n_units: int, axis: Axis | str = Axis.Y) -> CircuitSpec:
    """One uncontrolled rotation on each of ``n_units`` units."""
    return partial_rotations_layer(range(n_units), axis)


def partial_rotations_layer(
    units: Iterable[int], axis: Axis | str = Axis.Y
) -> CircuitSpec:
    """Uncontrolled rotations on the given units, one parameter slot each."""
    gates = [
        RotationGate(target=u, axis=axis, parameter_index=i)
        for i, u in enumerate(units)
    ]
    return CircuitSpec(tuple(gates))


def cyclic_entangling_layer(
    n_units: int, axis: Axis | str = Axis.X, stride: int = 1
) -> CircuitSpec:
    """Rotation on unit ``(k + stride) % n_units`` controlled by unit ``k``.

    Requires at least two units; a stride that maps a unit onto itself is
    rejected.
    """
    if n_units < 2:
        raise ValueError("A cyclic entangling layer needs at least two units")
    gates = []
    for k in range(n_units):
        target = (k + stride) % n_units
        if target == k:
            raise ValueError(f"Stride {stride} maps unit {k} onto itself")
        gates.append(
            RotationGate(target=target, controls=(k,), axis=axis, parameter_index=k)
        )
    return CircuitSpec(tuple(gates))


def combined_structure(*layers: CircuitSpec | Sequence[RotationGate]) -> CircuitSpec:
    """Concatenate layers, giving every gate its own consecutive slot."""
    gates = []
    for layer in layers:
        for gate in layer:
            gates.append(
                RotationGate(
                    target=gate.target,
                    controls=gate.controls,
                    axis=gate.axis,
                    parameter_index=len(gates),
                )
            )
    return CircuitSpec(tuple(gates))
