"""Validation of frozen models against labelled samples."""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from .errors import EmptyDatasetError
from .estimator import EncodingCache, Estimator
from .model import Model
from .schedule import SamplingSchedule

__all__ = ["count_misclassifications", "validate"]

logger = logging.getLogger(__name__)

_VALIDATE_STREAM = 3


def count_misclassifications(
    model: Model,
    samples: Sequence,
    tolerance: float,
    measurements_per_sample: Optional[int],
    schedule: SamplingSchedule,
    seed: int = 0,
    stream_key: Tuple[int, ...] = (_VALIDATE_STREAM,),
    estimator: Optional[Estimator] = None,
    cache: Optional[EncodingCache] = None,
) -> int:
    """Misclassified occurrences over every index ``schedule`` enumerates.

    A sample listed several times by the schedule is classified and counted
    once per occurrence.
    """
    if len(samples) == 0:
        raise EmptyDatasetError("Cannot validate on an empty dataset")
    schedule.validate(len(samples))
    estimator = estimator or Estimator()
    misses = 0
    for b, batch in enumerate(schedule):
        if not batch:
            continue
        probs = estimator.estimate_probabilities(
            model.structure,
            model.parameters,
            samples,
            batch,
            measurements_per_sample,
            seed=seed,
            stream_key=tuple(stream_key) + (b,),
            tolerance=tolerance,
            cache=cache,
        )
        predicted = (probs > 0.5 - model.bias).astype(np.int64)
        labels = np.array([samples[i].label for i in batch], dtype=np.int64)
        misses += int(np.sum(predicted != labels))
    return misses


def validate(
    model: Model,
    samples: Sequence,
    tolerance: float,
    measurements_per_sample: Optional[int],
    schedule: SamplingSchedule,
    seed: int = 0,
    estimator: Optional[Estimator] = None,
) -> float:
    """Miss rate of ``model`` over ``schedule``.

    Parameters
    ----------
    model : Model
        Frozen model; never modified.
    samples : sequence of Sample
        Labelled dataset the schedule indexes into.
    tolerance : float
        Encoding tolerance; normalised coefficients below it are dropped.
    measurements_per_sample : int or None
        Trials per probability estimate, ``None`` for exact probabilities.
    schedule : SamplingSchedule
        Indices to evaluate.
    seed : int
        Root seed of the measurement streams.

    Returns
    -------
    float
        Misclassifications divided by evaluated occurrences, ``0.0`` for a
        schedule that enumerates nothing.
    """
    misses = count_misclassifications(
        model,
        samples,
        tolerance,
        measurements_per_sample,
        schedule,
        seed=seed,
        estimator=estimator,
    )
    total = schedule.n_evaluations
    rate = misses / total if total else 0.0
    logger.info("Validation: %d of %d misclassified (%.4f)", misses, total, rate)
    return rate
