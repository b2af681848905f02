"""Training configuration."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

__all__ = ["MINIBATCH_STRATEGIES", "TrainingOptions", "load_options"]

logger = logging.getLogger(__name__)

MINIBATCH_STRATEGIES = ("sequential", "shuffled", "full")


@dataclass(frozen=True)
class TrainingOptions:
    """Options recognised by :func:`ccqc.trainer.train`.

    Parameters
    ----------
    learning_rate : float
        Scale of each parameter proposal.
    tolerance : float
        Smallest drop of the training miss rate that counts as progress at
        the end of an epoch.
    max_epochs : int
        Hard cap on epochs per starting vector.
    measurements_per_sample : int or None
        Monte Carlo trials per probability estimate. ``None`` uses the exact
        probability instead of sampling.
    minibatch_strategy : str
        ``"sequential"`` walks the schedule's batches in order,
        ``"shuffled"`` permutes them every epoch and ``"full"`` merges them
        into one batch.
    minibatch_size : int or None
        When set, every schedule batch is cut into pieces of this size, so
        each epoch makes one proposal per piece. ``None`` keeps the batches.
    max_stalls : int
        Consecutive epochs without progress tolerated before halting.
    stochastic_rescale_factor : float
        On a stall, every parameter is multiplied by a factor drawn
        uniformly from ``[1 / f, f]``. ``1.0`` disables the kick.
    encoding_tolerance : float
        Passed to the encoder; normalised coefficients below it are dropped.
    seed : int
        Root seed of every random stream used during training.
    n_jobs : int
        Starting vectors trained concurrently.
    """

    learning_rate: float = 0.1
    tolerance: float = 0.005
    max_epochs: int = 16
    measurements_per_sample: Optional[int] = 10000
    minibatch_strategy: str = "sequential"
    minibatch_size: Optional[int] = 10
    max_stalls: int = 8
    stochastic_rescale_factor: float = 1.01
    encoding_tolerance: float = 0.0
    seed: int = 0
    n_jobs: int = 1

    def __post_init__(self) -> None:
        if self.learning_rate <= 0:
            raise ValueError(f"learning_rate must be positive, got {self.learning_rate}")
        if self.tolerance < 0:
            raise ValueError(f"tolerance must be non-negative, got {self.tolerance}")
        if self.max_epochs < 0:
            raise ValueError(f"max_epochs must be non-negative, got {self.max_epochs}")
        if self.measurements_per_sample is not None and self.measurements_per_sample < 1:
            raise ValueError(
                "measurements_per_sample must be positive or None for exact mode, "
                f"got {self.measurements_per_sample}"
            )
        if self.minibatch_strategy not in MINIBATCH_STRATEGIES:
            raise ValueError(
                f"Unknown minibatch_strategy {self.minibatch_strategy!r}, "
                f"expected one of {MINIBATCH_STRATEGIES}"
            )
        if self.minibatch_size is not None and self.minibatch_size < 1:
            raise ValueError(f"minibatch_size must be positive, got {self.minibatch_size}")
        if self.max_stalls < 1:
            raise ValueError(f"max_stalls must be at least 1, got {self.max_stalls}")
        if self.stochastic_rescale_factor < 1.0:
            raise ValueError(
                "stochastic_rescale_factor must be >= 1, "
                f"got {self.stochastic_rescale_factor}"
            )
        if self.encoding_tolerance < 0:
            raise ValueError(
                f"encoding_tolerance must be non-negative, got {self.encoding_tolerance}"
            )
        if self.seed < 0:
            raise ValueError(f"seed must be non-negative, got {self.seed}")
        if self.n_jobs == 0:
            raise ValueError("n_jobs must be non-zero")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrainingOptions":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown training options: {', '.join(unknown)}")
        return cls(**dict(data))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def with_updates(self, **changes: Any) -> "TrainingOptions":
        return replace(self, **changes)


def load_options(path: Path | str) -> TrainingOptions:
    """Read training options from a JSON file.

    The file must hold an object with a ``description`` string; an optional
    ``training`` object carries the option values.
    """
    path = Path(path)
    logger.info("Loading config file: %s", path)
    if path.suffix.lower() != ".json":
        raise ValueError(f"Unsupported config extension (JSON required): {path.suffix}")
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    description = data.get("description")
    if description is None:
        raise ValueError("Config files must provide a 'description' field")
    logger.info("Config description: %s", description)
    return TrainingOptions.from_dict(data.get("training", {}))
