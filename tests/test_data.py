# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import numpy as np
import pytest

from tinynet.data import MinMaxScaler, classes_of, one_hot, read_csv, split_features
from tinynet.errors import ConfigurationError
from tinynet.network import Network
from tinynet.pipeline import Pipeline


@pytest.fixture
def csv_path(tmp_path):
    path = tmp_path / "points.csv"
    path.write_text("a;b;label\n0;1;x\n1;0;y\n2;4;x\n", encoding="utf-8")
    return path


class RecordingStep:
    def __init__(self):
        self.X = None
        self.Y = None

    def fit(self, X, Y):
        self.X, self.Y = X, Y

    def predict(self, x):
        return x


def test_read_csv_and_split(csv_path):
    frame = read_csv(csv_path)
    assert list(frame.columns) == ["a", "b", "label"]

    X, labels = split_features(frame, "label")
    np.testing.assert_array_equal(X, [[0.0, 1.0], [1.0, 0.0], [2.0, 4.0]])
    assert labels == ["x", "y", "x"]


def test_read_csv_with_explicit_header(tmp_path):
    path = tmp_path / "raw.csv"
    path.write_text("1,2,up\n3,4,down\n", encoding="utf-8")
    frame = read_csv(path, sep=",", header=["f0", "f1", "dir"])
    X, labels = split_features(frame, "dir")
    assert X.shape == (2, 2)
    assert labels == ["up", "down"]


def test_read_csv_rejects_other_extensions(tmp_path):
    path = tmp_path / "points.txt"
    path.write_text("a;b\n1;2\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        read_csv(path)


def test_split_features_errors(csv_path):
    frame = read_csv(csv_path)
    with pytest.raises(ConfigurationError):
        split_features(frame, "missing")
    # "a" as label leaves the non-numeric "label" column among the features
    with pytest.raises(ConfigurationError):
        split_features(frame, "a")


def test_one_hot_and_classes():
    labels = ["y", "x", "y"]
    classes = classes_of(labels)
    assert classes == ["x", "y"]
    np.testing.assert_array_equal(one_hot(labels, classes), [[0, 1], [1, 0], [0, 1]])
    with pytest.raises(ConfigurationError):
        one_hot(["z"], classes)


def test_min_max_scaler():
    X = np.array([[0.0, 5.0], [10.0, 5.0], [5.0, 5.0]])
    scaler = MinMaxScaler().fit(X)
    np.testing.assert_allclose(scaler.transform(X), [[0.0, 0.0], [1.0, 0.0], [0.5, 0.0]])

    clone = MinMaxScaler.from_record(scaler.to_record())
    np.testing.assert_allclose(clone.transform([2.0, 5.0]), [0.2, 0.0])


def test_min_max_scaler_requires_fit():
    with pytest.raises(ConfigurationError):
        MinMaxScaler().transform([[1.0]])
    with pytest.raises(ConfigurationError):
        MinMaxScaler().fit(np.zeros((0, 2)))


def test_pipeline_validates_steps():
    with pytest.raises(ConfigurationError):
        Pipeline([])
    with pytest.raises(ConfigurationError):
        Pipeline([object()])


def test_pipeline_feeds_transformed_features_forward():
    X = np.array([[0.0, 2.0], [4.0, 6.0]])
    Y = np.array([[1.0, 0.0], [0.0, 1.0]])
    last = RecordingStep()
    Pipeline([MinMaxScaler(), last], verbose=True).fit(X, Y)

    np.testing.assert_allclose(last.X, [[0.0, 0.0], [1.0, 1.0]])
    np.testing.assert_array_equal(last.Y, Y)


def test_pipeline_predict_applies_transforms():
    X = np.array([[0.0, 0.0], [10.0, 20.0]])
    pipe = Pipeline([MinMaxScaler(), RecordingStep()])
    pipe.fit(X, None)
    np.testing.assert_allclose(pipe.predict([5.0, 5.0]), [0.5, 0.25])


def test_pipeline_trains_network(csv_path):
    X, labels = split_features(read_csv(csv_path), "label")
    classes = classes_of(labels)
    net = Network([2, len(classes)], output_labels=classes, seed=0)
    before = net.weights[0].copy()

    Pipeline([MinMaxScaler(), net]).fit(X, one_hot(labels, classes))

    assert not np.allclose(before, net.weights[0])
