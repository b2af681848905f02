"""Amplitude encoding of real feature vectors.

Feature ``i`` becomes the amplitude of computational basis state ``i`` after
the vector is scaled to unit length. Only the direction of the feature vector
survives; its magnitude is discarded.
"""

from __future__ import annotations

import math

import numpy as np

from .errors import DegenerateInputError

__all__ = ["encode", "n_units_for"]


def n_units_for(n_features: int) -> int:
    """Number of units needed to hold ``n_features`` amplitudes (at least one)."""
    if n_features < 1:
        raise ValueError("A feature vector needs at least one component")
    return max(1, int(math.ceil(math.log2(n_features))))


def encode(features, tolerance: float = 0.0) -> np.ndarray:
    """Encode ``features`` into a normalised complex amplitude vector.

    Parameters
    ----------
    features : array_like
        Real feature vector of length ``M``. It is padded with zeros up to
        ``2**n_units_for(M)``.
    tolerance : float
        Normalised coefficients with magnitude below ``tolerance`` are
        dropped and the rest renormalised. ``0`` keeps the exact state.

    Returns
    -------
    ndarray
        ``complex128`` amplitude vector with unit L2 norm.

    Raises
    ------
    DegenerateInputError
        If the vector has zero norm, contains non-finite values, or nothing
        is left after dropping small coefficients.
    """
    x = np.asarray(features, dtype=float).reshape(-1)
    if not np.all(np.isfinite(x)):
        raise DegenerateInputError("Feature vector contains non-finite values")
    dim = 2 ** n_units_for(x.size)
    padded = np.zeros(dim, dtype=float)
    padded[: x.size] = x
    norm = np.linalg.norm(padded)
    if norm == 0:
        raise DegenerateInputError("Feature vector has zero norm")
    amplitudes = padded / norm
    if tolerance > 0:
        amplitudes[np.abs(amplitudes) < tolerance] = 0.0
        norm = np.linalg.norm(amplitudes)
        if norm == 0:
            raise DegenerateInputError(
                f"No coefficient of the feature vector exceeds tolerance {tolerance}"
            )
        amplitudes = amplitudes / norm
    return amplitudes.astype(np.complex128)
