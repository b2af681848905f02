"""Tests for datasets, options and the command-line entry point."""

import json

import numpy as np
import pytest

from ccqc.data import (
    Sample,
    generate_data,
    pad_features,
    split_schedules,
    to_samples,
)
from ccqc.options import TrainingOptions, load_options
from ccqc.train import main


@pytest.mark.parametrize("kind", ["wedge", "constant", "moons"])
def test_generate_data_shapes(kind):
    X, y = generate_data(30, seed=1, kind=kind)
    assert X.shape == (30, 2)
    assert y.shape == (30,)
    assert set(np.unique(y)) <= {0, 1}


def test_wedge_is_angularly_separable():
    X, y = generate_data(200, seed=2, kind="wedge", boundary=0.6, margin=0.05)
    angles = np.arctan2(X[:, 1], X[:, 0])
    assert np.all(angles[y == 1] >= 0.65 - 1e-12)
    assert np.all(angles[y == 0] <= 0.55 + 1e-12)
    X2, y2 = generate_data(200, seed=2, kind="wedge", boundary=0.6, margin=0.05)
    assert np.array_equal(X, X2) and np.array_equal(y, y2)


def test_unknown_kind():
    with pytest.raises(ValueError):
        generate_data(10, kind="spirals")


def test_samples_are_immutable_and_checked():
    sample = Sample([1.0, 2.0], 1)
    with pytest.raises(ValueError):
        sample.features[0] = 3.0
    with pytest.raises(ValueError):
        Sample([1.0], 2)
    with pytest.raises(ValueError):
        to_samples(np.ones((3, 2)), np.zeros(2))


def test_samples_compare_by_identity():
    a = Sample([1.0, 2.0, 3.0], 0)
    b = Sample([1.0, 2.0, 3.0], 0)
    assert a == a
    assert a != b
    assert len({a, b}) == 2
    assert [a, b].index(b) == 1


def test_pad_features():
    X = np.array([[0.0, 2.0], [1.0, 4.0]])
    padded = pad_features(X, 4, value=0.5)
    assert padded.shape == (2, 4)
    assert np.all(padded[:, 2:] == 0.5)
    with pytest.raises(ValueError):
        pad_features(padded, 2)


def test_split_schedules_partition_the_dataset():
    training, validation = split_schedules(20, test_size=0.25, batch_size=4, seed=0)
    train_idx = training.indices()
    valid_idx = validation.indices()
    assert sorted(train_idx + valid_idx) == list(range(20))
    assert len(valid_idx) == 5
    assert all(len(batch) <= 4 for batch in training)


def test_option_defaults_allow_several_proposals_per_epoch():
    options = TrainingOptions()
    assert options.minibatch_size == 10
    assert options.max_stalls == 8


def test_options_validation():
    with pytest.raises(ValueError):
        TrainingOptions(minibatch_strategy="random")
    with pytest.raises(ValueError):
        TrainingOptions(measurements_per_sample=0)
    with pytest.raises(ValueError):
        TrainingOptions.from_dict({"learning_rate": 0.1, "momentum": 0.9})
    options = TrainingOptions.from_dict({"max_epochs": 3, "measurements_per_sample": None})
    assert options.max_epochs == 3
    assert options.to_dict()["measurements_per_sample"] is None


def test_load_options(tmp_path):
    path = tmp_path / "options.json"
    path.write_text(json.dumps({"description": "quick run", "training": {"max_epochs": 2}}))
    assert load_options(path).max_epochs == 2
    path.write_text(json.dumps({"training": {}}))
    with pytest.raises(ValueError):
        load_options(path)
    with pytest.raises(ValueError):
        load_options(tmp_path / "options.yaml")


def test_cli_runs_end_to_end(capsys):
    main(
        [
            "--n-samples", "40",
            "--epochs", "1",
            "--shots", "0",
            "--candidates", "1",
            "--log-level", "warning",
        ]
    )
    out = capsys.readouterr().out
    assert "Final Results" in out
