"""Training of circuit-centric classifiers.

Training is a local search run independently from every starting parameter
vector. The score of a parameter vector on a batch is its misclassification
count at the best bias for that batch, so every step is:

1. estimate probabilities on the batch with the current parameters,
2. ask the strategy for a proposal and estimate again on the same batch,
   with the same random streams,
3. keep the proposal unless it misclassifies more samples,
4. refit the bias for the parameters that were kept.

At the end of an epoch the bias is refitted on the whole training schedule.
A candidate stops once an epoch improves the training miss rate by less
than ``tolerance`` (``max_stalls`` times in a row), once it classifies every
training sample correctly, or after ``max_epochs``. The best state seen by
each candidate is scored on the validation schedule and the candidate with
the fewest misclassifications wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from joblib import Parallel, delayed

from .encoder import n_units_for
from .errors import EmptyDatasetError, NumericalInvariantViolation
from .estimator import EncodingCache, Estimator, random_stream
from .model import Model
from .optimizers import LocalSearchStrategy, get_strategy
from .options import TrainingOptions
from .schedule import SamplingSchedule
from .structure import CircuitSpec
from .validator import count_misclassifications

__all__ = ["TrainingResult", "Trainer", "train", "best_bias", "count_misses"]

logger = logging.getLogger(__name__)

# first element of every random-stream key
_SEARCH_STREAM = 0
_TRAIN_STREAM = 1
_VALIDATION_STREAM = 2

# distance kept from a probability of exactly 0 or 1 when placing outer thresholds
_EDGE = 0.01


def count_misses(probabilities, labels, bias: float) -> int:
    """Number of labels that ``bias`` gets wrong for the given probabilities."""
    probs = np.asarray(probabilities, dtype=float)
    predicted = (probs > 0.5 - bias).astype(np.int64)
    return int(np.sum(predicted != np.asarray(labels, dtype=np.int64)))


def best_bias(probabilities, labels, current_bias: float = 0.0) -> Tuple[float, int]:
    """Bias that minimises misclassifications for fixed probability estimates.

    Only the ordering of the probabilities matters, so the search tries one
    threshold between every pair of consecutive distinct values plus one
    below and one above them all. Among equally good thresholds the one
    whose bias is closest to ``current_bias`` wins.

    Returns
    -------
    bias : float
    misses : int
        Misclassifications at the returned bias.
    """
    probs = np.asarray(probabilities, dtype=float)
    labels = np.asarray(labels, dtype=np.int64)
    if probs.size == 0:
        return float(current_bias), 0
    values = np.unique(probs)
    lo = 0.0 if values[0] > 0 else values[0] - 2 * _EDGE
    hi = 1.0 if values[-1] < 1 else values[-1] + 2 * _EDGE
    edges = np.concatenate(([lo], values, [hi]))
    thresholds = (edges[:-1] + edges[1:]) / 2
    predicted = probs[None, :] > thresholds[:, None]
    misses = np.sum(predicted != labels[None, :].astype(bool), axis=1)
    biases = 0.5 - thresholds
    fewest = misses == misses.min()
    choice = np.flatnonzero(fewest)[np.argmin(np.abs(biases[fewest] - current_bias))]
    return float(biases[choice]), int(misses[choice])


@dataclass(frozen=True)
class TrainingResult:
    """Outcome of :func:`train`.

    Attributes
    ----------
    model : Model
        Best model over all starting vectors.
    n_misclassifications : int
        Misclassifications of ``model`` on the validation schedule.
    candidate_index : int
        Index of the starting vector ``model`` grew from.
    history : tuple of tuple of float
        Training miss rate after every epoch (the first entry is the
        starting point), per candidate. Empty for excluded candidates.
    """

    model: Model
    n_misclassifications: int
    candidate_index: int = 0
    history: Tuple[Tuple[float, ...], ...] = field(default=(), compare=False)


@dataclass
class _Candidate:
    parameters: np.ndarray
    bias: float
    training_misses: int
    history: List[float]


class _Context:
    """Read-only state shared by every candidate of one training run."""

    def __init__(self, structure, samples, options, schedule, estimator, strategy):
        self.structure = structure
        self.samples = samples
        self.options = options
        self.schedule = schedule
        self.estimator = estimator
        self.strategy = strategy
        self.labels = np.array([s.label for s in samples], dtype=np.int64)
        self.full_indices = schedule.indices()
        self.cache = EncodingCache(samples, estimator.simulator, options.encoding_tolerance)

    def probabilities(self, parameters, indices, key) -> np.ndarray:
        return self.estimator.estimate_probabilities(
            self.structure,
            parameters,
            self.samples,
            indices,
            self.options.measurements_per_sample,
            seed=self.options.seed,
            stream_key=key,
            cache=self.cache,
        )

    def epoch_batches(self, rng: np.random.Generator) -> List[Tuple[int, ...]]:
        strategy = self.options.minibatch_strategy
        if strategy == "full":
            return [tuple(self.full_indices)]
        batches = list(self.schedule)
        if strategy == "shuffled":
            order = rng.permutation(len(batches))
            batches = [batches[i] for i in order]
        return batches


class Trainer:
    """Trains models by misclassification-driven local search.

    Parameters
    ----------
    strategy : LocalSearchStrategy or str or None
        Proposal rule; see :mod:`ccqc.optimizers`. Defaults to
        :class:`~ccqc.optimizers.RandomPerturbation`.
    estimator : Estimator or None
        Estimator shared by all candidates.
    """

    def __init__(
        self,
        strategy: LocalSearchStrategy | str | None = None,
        estimator: Optional[Estimator] = None,
    ) -> None:
        self.strategy = get_strategy(strategy)
        self.estimator = estimator or Estimator()

    def train(
        self,
        structure: CircuitSpec,
        samples: Sequence,
        initial_parameters: Sequence[Sequence[float]],
        options: Optional[TrainingOptions] = None,
        training_schedule: Optional[SamplingSchedule] = None,
        validation_schedule: Optional[SamplingSchedule] = None,
    ) -> TrainingResult:
        """Train from every starting vector and return the best model.

        ``training_schedule=None`` uses every sample in one batch;
        ``validation_schedule=None`` reuses the training schedule.

        Raises
        ------
        EmptyDatasetError
            If ``samples`` is empty.
        ScheduleRangeError
            If either schedule refers to a sample outside ``samples``.
        NumericalInvariantViolation
            If every candidate hit a numerical violation.
        """
        options = options or TrainingOptions()
        samples = list(samples)
        if not samples:
            raise EmptyDatasetError("Cannot train on an empty dataset")
        if training_schedule is None:
            training_schedule = SamplingSchedule.from_range(0, len(samples))
        if validation_schedule is None:
            validation_schedule = training_schedule
        training_schedule.validate(len(samples))
        validation_schedule.validate(len(samples))
        starts = self._check_starts(structure, initial_parameters)
        n_units = n_units_for(np.asarray(samples[0].features).size)
        if structure.n_units > n_units:
            raise ValueError(
                f"Circuit uses {structure.n_units} units, features encode into {n_units}"
            )

        schedule = training_schedule
        if options.minibatch_size is not None:
            schedule = schedule.minibatches(options.minibatch_size)
        ctx = _Context(structure, samples, options, schedule, self.estimator, self.strategy)

        if options.n_jobs == 1:
            outcomes = [self._run_candidate(ctx, c, p) for c, p in enumerate(starts)]
        else:
            outcomes = Parallel(n_jobs=options.n_jobs, prefer="threads")(
                delayed(self._run_candidate)(ctx, c, p) for c, p in enumerate(starts)
            )

        failures = [o for o in outcomes if isinstance(o, NumericalInvariantViolation)]
        if len(failures) == len(outcomes):
            raise failures[-1]

        best: Optional[Tuple[int, int, Model]] = None
        for c, outcome in enumerate(outcomes):
            if isinstance(outcome, NumericalInvariantViolation):
                continue
            model = Model(structure, tuple(outcome.parameters), outcome.bias)
            misses = count_misclassifications(
                model,
                samples,
                options.encoding_tolerance,
                options.measurements_per_sample,
                validation_schedule,
                seed=options.seed,
                stream_key=(_VALIDATION_STREAM, c),
                estimator=self.estimator,
                cache=ctx.cache,
            )
            logger.info(
                "Candidate %d: %d training misses, %d validation misses, bias %.4f",
                c,
                outcome.training_misses,
                misses,
                outcome.bias,
            )
            if best is None or misses < best[0]:
                best = (misses, c, model)

        misses, c, model = best
        history = tuple(
            () if isinstance(o, NumericalInvariantViolation) else tuple(o.history)
            for o in outcomes
        )
        logger.info("Selected candidate %d with %d validation misses", c, misses)
        return TrainingResult(model, misses, c, history)

    @staticmethod
    def _check_starts(structure: CircuitSpec, initial_parameters) -> List[np.ndarray]:
        starts = [np.asarray(p, dtype=float).reshape(-1) for p in initial_parameters]
        if not starts:
            raise ValueError("At least one initial parameter vector is required")
        for c, start in enumerate(starts):
            if start.size != structure.n_parameters:
                raise ValueError(
                    f"Initial vector {c} has {start.size} entries, "
                    f"circuit needs {structure.n_parameters}"
                )
        return starts

    def _run_candidate(self, ctx: _Context, c: int, start: np.ndarray):
        try:
            return self._search(ctx, c, start)
        except NumericalInvariantViolation as exc:
            logger.warning("Candidate %d excluded: %s", c, exc)
            return exc

    def _search(self, ctx: _Context, c: int, start: np.ndarray) -> _Candidate:
        options = ctx.options
        rng = random_stream(options.seed, _SEARCH_STREAM, c)
        full = ctx.full_indices
        full_labels = ctx.labels[full]

        params = np.array(start, dtype=float, copy=True)
        probs = ctx.probabilities(params, full, (_TRAIN_STREAM, c, 0, 1))
        bias, misses = best_bias(probs, full_labels, 0.0)
        rate = misses / len(full) if full else 0.0
        best = _Candidate(params.copy(), bias, misses, [rate])
        stalls = 0
        step = 0

        for epoch in range(1, options.max_epochs + 1):
            if misses == 0:
                break
            for b, batch in enumerate(ctx.epoch_batches(rng)):
                if not batch:
                    continue
                labels = ctx.labels[list(batch)]
                key = (_TRAIN_STREAM, c, epoch, 0, b)
                current = ctx.probabilities(params, batch, key)
                _, current_misses = best_bias(current, labels, bias)
                proposal = ctx.strategy.propose(params, options.learning_rate, rng, step)
                step += 1
                proposed = ctx.probabilities(proposal, batch, key)
                proposed_bias, proposed_misses = best_bias(proposed, labels, bias)
                if proposed_misses <= current_misses:
                    params, bias = proposal, proposed_bias
                else:
                    bias, _ = best_bias(current, labels, bias)

            probs = ctx.probabilities(params, full, (_TRAIN_STREAM, c, epoch, 1))
            bias, epoch_misses = best_bias(probs, full_labels, bias)
            epoch_rate = epoch_misses / len(full)
            best.history.append(epoch_rate)
            logger.debug(
                "Candidate %d epoch %d: miss rate %.4f, bias %.4f", c, epoch, epoch_rate, bias
            )
            if epoch_misses < best.training_misses:
                best.parameters, best.bias = params.copy(), bias
                best.training_misses = epoch_misses

            improvement = rate - epoch_rate
            rate, misses = epoch_rate, epoch_misses
            if improvement < options.tolerance:
                stalls += 1
                if stalls >= options.max_stalls:
                    logger.debug("Candidate %d stopped after %d stalled epochs", c, stalls)
                    break
                factor = options.stochastic_rescale_factor
                params = params * rng.uniform(1.0 / factor, factor, size=params.shape)
            else:
                stalls = 0
        return best


def train(
    structure: CircuitSpec,
    samples: Sequence,
    initial_parameters: Sequence[Sequence[float]],
    options: Optional[TrainingOptions] = None,
    training_schedule: Optional[SamplingSchedule] = None,
    validation_schedule: Optional[SamplingSchedule] = None,
    strategy: LocalSearchStrategy | str | None = None,
) -> TrainingResult:
    """Functional form of :meth:`Trainer.train`."""
    return Trainer(strategy).train(
        structure,
        samples,
        initial_parameters,
        options,
        training_schedule,
        validation_schedule,
    )
