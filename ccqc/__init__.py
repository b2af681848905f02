"""Top-level package for the circuit-centric quantum classifier engine.

This package simulates small amplitude-encoded rotation circuits, estimates
the probability that the output unit reads 1, and trains the rotation angles
and decision bias by misclassification-driven local search. To run a training
session from the command line use

```
python -m ccqc.train --help
```

or import and use the classes/functions programmatically.
"""

from .data import Sample, generate_data, split_schedules, to_samples  # noqa: F401
from .encoder import encode  # noqa: F401
from .errors import (  # noqa: F401
    DegenerateInputError,
    EmptyDatasetError,
    NumericalInvariantViolation,
    ScheduleRangeError,
)
from .estimator import Estimator  # noqa: F401
from .model import Model, infer_label  # noqa: F401
from .options import TrainingOptions  # noqa: F401
from .schedule import SamplingSchedule  # noqa: F401
from .simulator import StateSimulator  # noqa: F401
from .structure import Axis, CircuitSpec, RotationGate  # noqa: F401
from .trainer import Trainer, TrainingResult, train  # noqa: F401
from .validator import validate  # noqa: F401

__version__ = "0.1.0"
