"""Error kinds raised by the classifier engine."""

from __future__ import annotations

__all__ = [
    "CcqcError",
    "DegenerateInputError",
    "EmptyDatasetError",
    "ScheduleRangeError",
    "NumericalInvariantViolation",
]


class CcqcError(Exception):
    """Base class for all errors raised by :mod:`ccqc`."""


class DegenerateInputError(CcqcError, ValueError):
    """A feature vector has no direction (zero or non-finite norm)."""


class EmptyDatasetError(CcqcError, ValueError):
    """Training or validation was asked to run on zero samples."""


class ScheduleRangeError(CcqcError, IndexError):
    """A sampling schedule refers to a sample index outside the dataset."""


class NumericalInvariantViolation(CcqcError, ArithmeticError):
    """The simulated state drifted away from unit norm.

    This is never a recoverable condition: it means the simulator produced a
    non-unitary update.
    """
