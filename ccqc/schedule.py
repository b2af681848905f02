"""Sampling schedules: which samples take part in an epoch or a validation pass."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Tuple

from .errors import ScheduleRangeError

__all__ = ["SamplingSchedule"]


@dataclass(frozen=True)
class SamplingSchedule:
    """Ordered batches of indices into a fixed dataset.

    Indices may repeat, both within and across batches; every occurrence is
    evaluated. Empty batches are allowed and contribute nothing.
    """

    batches: Tuple[Tuple[int, ...], ...] = ()

    def __post_init__(self) -> None:
        batches = tuple(tuple(int(i) for i in batch) for batch in self.batches)
        object.__setattr__(self, "batches", batches)

    @classmethod
    def single_batch(cls, indices: Iterable[int]) -> "SamplingSchedule":
        return cls((tuple(indices),))

    @classmethod
    def from_range(cls, start: int, stop: int, step: int = 1) -> "SamplingSchedule":
        """One batch holding ``range(start, stop, step)``."""
        return cls.single_batch(range(start, stop, step))

    @classmethod
    def contiguous(cls, n_samples: int, batch_size: int) -> "SamplingSchedule":
        """Split ``range(n_samples)`` into consecutive batches of ``batch_size``."""
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        return cls(
            tuple(
                tuple(range(i, min(i + batch_size, n_samples)))
                for i in range(0, n_samples, batch_size)
            )
        )

    def __len__(self) -> int:
        return len(self.batches)

    def __iter__(self) -> Iterator[Tuple[int, ...]]:
        return iter(self.batches)

    def indices(self) -> List[int]:
        """All indices in schedule order, repeats kept."""
        return [i for batch in self.batches for i in batch]

    @property
    def n_evaluations(self) -> int:
        return sum(len(batch) for batch in self.batches)

    def validate(self, n_samples: int) -> "SamplingSchedule":
        """Raise :class:`ScheduleRangeError` if any index falls outside the dataset."""
        for b, batch in enumerate(self.batches):
            for i in batch:
                if not 0 <= i < n_samples:
                    raise ScheduleRangeError(
                        f"Batch {b} refers to sample {i}, dataset has {n_samples} samples"
                    )
        return self

    def minibatches(self, size: int) -> "SamplingSchedule":
        """Re-chunk every batch into pieces of at most ``size`` indices."""
        if size < 1:
            raise ValueError(f"Minibatch size must be positive, got {size}")
        chunks = []
        for batch in self.batches:
            if not batch:
                chunks.append(batch)
            for i in range(0, len(batch), size):
                chunks.append(batch[i : i + size])
        return SamplingSchedule(tuple(chunks))
