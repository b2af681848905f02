"""Train a circuit-centric classifier on a synthetic dataset."""

import argparse
import logging

import numpy as np

from ccqc.circuit import reference_probability
from ccqc.data import generate_data, pad_features, split_schedules, to_samples
from ccqc.encoder import n_units_for
from ccqc.estimator import Estimator
from ccqc.logging_utils import configure_logging
from ccqc.options import TrainingOptions, load_options
from ccqc.structure import (
    Axis,
    combined_structure,
    cyclic_entangling_layer,
    local_rotations_layer,
)
from ccqc.trainer import Trainer
from ccqc.validator import validate

logger = logging.getLogger("ccqc.train")


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        description="Train a circuit-centric quantum classifier on synthetic data"
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument(
        "--dataset",
        type=str,
        default="wedge",
        choices=["wedge", "constant", "moons"],
        help="Type of dataset to generate",
    )
    parser.add_argument("--n-samples", type=int, default=120, help="Dataset size")
    parser.add_argument("--noise", type=float, default=0.2, help="Noise level for data")
    parser.add_argument(
        "--test-size", type=float, default=0.25, help="Fraction held out for validation"
    )
    parser.add_argument(
        "--n-features",
        type=int,
        default=2,
        help="Pad features with a constant column up to this length",
    )
    parser.add_argument("--layers", type=int, default=1, help="Number of circuit layers")
    parser.add_argument("--candidates", type=int, default=2, help="Starting vectors")
    parser.add_argument(
        "--strategy",
        type=str,
        default="random",
        choices=["random", "coordinate"],
        help="Local search strategy",
    )
    parser.add_argument("--config", type=str, default=None, help="JSON options file")
    parser.add_argument("--epochs", type=int, default=None, help="Maximum epochs")
    parser.add_argument("--lr", type=float, default=None, help="Learning rate")
    parser.add_argument(
        "--shots",
        type=int,
        default=None,
        help="Measurements per sample (0 for exact probabilities)",
    )
    parser.add_argument("--batch-size", type=int, default=None, help="Minibatch size")
    parser.add_argument("--n-jobs", type=int, default=1, help="Candidates trained in parallel")
    parser.add_argument(
        "--cross-check",
        action="store_true",
        help="Compare exact probabilities against PennyLane default.qubit",
    )
    parser.add_argument("--log-level", type=str, default="info", help="Logging level")
    return parser.parse_args(argv)


def build_options(args) -> TrainingOptions:
    options = load_options(args.config) if args.config else TrainingOptions()
    overrides = {"seed": args.seed, "n_jobs": args.n_jobs}
    if args.epochs is not None:
        overrides["max_epochs"] = args.epochs
    if args.lr is not None:
        overrides["learning_rate"] = args.lr
    if args.shots is not None:
        overrides["measurements_per_sample"] = args.shots or None
    if args.batch_size is not None:
        overrides["minibatch_size"] = args.batch_size
    return options.with_updates(**overrides)


def build_structure(n_units: int, layers: int):
    parts = []
    for _ in range(layers):
        parts.append(local_rotations_layer(n_units, Axis.Y))
        if n_units > 1:
            parts.append(cyclic_entangling_layer(n_units, Axis.X, stride=1))
    return combined_structure(*parts)


def train_model(args):
    options = build_options(args)
    logger.info("Training options: %s", options.to_dict())
    print(f"Generating {args.dataset} dataset with {args.n_samples} samples...")
    X, y = generate_data(n=args.n_samples, noise=args.noise, seed=args.seed, kind=args.dataset)
    X = pad_features(X, args.n_features)
    samples = to_samples(X, y)
    training, validation = split_schedules(
        len(samples), test_size=args.test_size, seed=args.seed
    )

    structure = build_structure(n_units_for(args.n_features), args.layers)
    rng = np.random.default_rng(args.seed)
    starts = [
        rng.uniform(-np.pi, np.pi, structure.n_parameters) for _ in range(args.candidates)
    ]
    print(
        f"Training on {len(structure)} gates, {structure.n_parameters} parameters, "
        f"{args.candidates} starting vectors..."
    )
    trainer = Trainer(args.strategy)
    result = trainer.train(structure, samples, starts, options, training, validation)

    train_rate = validate(
        result.model, samples, options.encoding_tolerance, None, training, seed=args.seed
    )
    valid_rate = validate(
        result.model, samples, options.encoding_tolerance, None, validation, seed=args.seed
    )
    print(f"Selected candidate {result.candidate_index}, bias {result.model.bias:.4f}")
    print(f"Validation misclassifications during selection: {result.n_misclassifications}")
    print(f"Final Results - Train Miss Rate: {train_rate:.4f}, Validation Miss Rate: {valid_rate:.4f}")

    if args.cross_check:
        estimator = Estimator()
        deviation = max(
            abs(
                estimator.probability(result.model, s.features, None)
                - reference_probability(result.model, s.features)
            )
            for s in samples
        )
        print(f"Largest deviation from PennyLane: {deviation:.2e}")
    return result


def main(argv=None):
    args = parse_arguments(argv)
    configure_logging(args.log_level)
    train_model(args)


if __name__ == "__main__":
    main()
