"""Labelled samples and synthetic datasets for the classifier engine.

This module contains the :class:`Sample` record, generators for small
binary classification datasets, constant-column padding, and a helper that
splits a dataset into training and validation schedules. Labels always come
from a fixed rule given the seed, so datasets are reproducible.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
from sklearn.datasets import make_moons
from sklearn.model_selection import train_test_split

from .schedule import SamplingSchedule

__all__ = [
    "Sample",
    "generate_data",
    "to_samples",
    "pad_features",
    "split_schedules",
]


@dataclass(frozen=True, eq=False)
class Sample:
    """Feature vector with its ground-truth label (0 or 1).

    Samples compare by identity; the feature array is read-only.
    """

    features: np.ndarray
    label: int

    def __post_init__(self) -> None:
        features = np.array(self.features, dtype=float).reshape(-1)
        features.setflags(write=False)
        object.__setattr__(self, "features", features)
        if self.label not in (0, 1):
            raise ValueError(f"Sample label must be 0 or 1, got {self.label!r}")
        object.__setattr__(self, "label", int(self.label))


def generate_data(
    n: int,
    noise: float = 0.2,
    seed: int = 0,
    kind: str = "wedge",
    boundary: float = np.pi / 4,
    margin: float = 0.1,
) -> Tuple[np.ndarray, np.ndarray]:
    """Generate a two-dimensional binary classification dataset.

    Available kinds:

    * ``wedge`` – points in the first quadrant labelled 1 when their angle
      exceeds ``boundary``. No point lies within ``margin`` radians of the
      boundary, so the set is angularly separable. ``noise`` scales the
      radius spread only.
    * ``constant`` – points as for ``wedge``, every label 0.
    * ``moons`` – two interleaving half circles (scikit-learn ``make_moons``).

    Returns
    -------
    X : ndarray
        Feature matrix of shape ``(n, 2)``.
    y : ndarray
        Binary labels of shape ``(n,)``.
    """
    rng = np.random.default_rng(seed)
    kind = kind.lower()
    if kind in ("wedge", "constant"):
        if not 0 < boundary < np.pi / 2:
            raise ValueError("boundary must lie strictly inside (0, pi/2)")
        lower = rng.uniform(0.0, max(boundary - margin, 0.0), n)
        upper = rng.uniform(min(boundary + margin, np.pi / 2), np.pi / 2, n)
        y = (rng.random(n) < 0.5).astype(int)
        theta = np.where(y == 1, upper, lower)
        r = 1.0 + noise * rng.random(n)
        X = np.stack([r * np.cos(theta), r * np.sin(theta)], axis=1)
        if kind == "constant":
            y = np.zeros(n, dtype=int)
    elif kind == "moons":
        X, y = make_moons(n_samples=n, noise=noise, random_state=seed)
    else:
        raise ValueError(f"Unknown dataset kind: {kind}")
    return X.astype(np.float64), y.astype(np.int64)


def to_samples(X: np.ndarray, y: np.ndarray) -> List[Sample]:
    if len(X) != len(y):
        raise ValueError(f"Got {len(X)} feature rows but {len(y)} labels")
    return [Sample(x, int(label)) for x, label in zip(X, y)]


def pad_features(X: np.ndarray, d: int, value: float = 1.0) -> np.ndarray:
    """Append constant columns until ``X`` has ``d`` features.

    Amplitude encoding keeps only the direction of a vector; a constant
    column lets the direction carry part of the original magnitude.
    """
    m = X.shape[1]
    if m > d:
        raise ValueError(f"Cannot pad {m} features down to {d}")
    if m == d:
        return X
    pad = np.full((X.shape[0], d - m), value, dtype=float)
    return np.hstack([X, pad])


def split_schedules(
    n: int,
    test_size: float = 0.25,
    batch_size: int | None = None,
    seed: int = 0,
) -> Tuple[SamplingSchedule, SamplingSchedule]:
    """Split ``range(n)`` into a training and a validation schedule.

    The training schedule is cut into batches of ``batch_size`` (one batch
    when ``None``); the validation schedule is a single batch.
    """
    train_idx, test_idx = train_test_split(
        np.arange(n), test_size=test_size, random_state=seed
    )
    train_idx = [int(i) for i in train_idx]
    test_idx = [int(i) for i in test_idx]
    training = SamplingSchedule.single_batch(train_idx)
    if batch_size is not None:
        training = training.minibatches(batch_size)
    return training, SamplingSchedule.single_batch(test_idx)
