# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import json
import logging
import math

import numpy as np
import pytest

from tinynet.activations import dsigmoid, dtanh
from tinynet.errors import ConfigurationError, NetworkRecordError
from tinynet.network import Network

TEST_ITERATIONS = 50
ACTIVATION_NAMES = ["SIGMOID", "RELU", "CAPPED RELU", "TANH"]
logger = logging.getLogger(__name__)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"layer_sizes": [3]},
        {"layer_sizes": []},
        {"layer_sizes": [2, 0, 2]},
        {"layer_sizes": [2, 3], "output_labels": ["a", "b"]},
        {"layer_sizes": [2, 2], "learning_rate": 0.0},
        {"layer_sizes": [2, 2], "learning_rate": -0.5},
        {"layer_sizes": [2, 2], "activation": "SOFTPLUS"},
    ],
)
def test_invalid_construction_raises(kwargs):
    with pytest.raises(ConfigurationError):
        Network(**kwargs)


def test_default_labels():
    net = Network([4, 3])
    assert net.output_labels == ["0", "1", "2"]


@pytest.mark.parametrize(
    "activation, low, high",
    [
        ("SIGMOID", -1.0, 1.0),
        ("TANH", -1.0, 1.0),
        ("RELU", 0.0, 0.1),
        ("CAPPED RELU", 0.0, 0.1),
    ],
)
def test_weight_init_ranges(activation, low, high):
    net = Network([50, 50, 50], activation=activation, seed=1)
    for W in net.weights:
        assert np.all(W >= low) and np.all(W <= high)
        assert W.min() < (low + high) / 2 < W.max()


def test_weight_shapes():
    net = Network([3, 5, 2])
    assert [W.shape for W in net.weights] == [(3, 5), (5, 2)]
    assert [b.shape for b in net.biases] == [(3,), (5,), (2,)]


@pytest.mark.parametrize("activation", ACTIVATION_NAMES)
def test_output_is_a_distribution(activation):
    rng = np.random.default_rng(7)
    net = Network([4, 6, 3], activation=activation, seed=3)
    for _ in range(TEST_ITERATIONS):
        x = rng.normal(size=4)
        label = net.predict(x)
        out = net.output
        logger.debug(f"{activation}: {x} -> {out} ({label})")
        assert math.isclose(out.sum(), 1.0, abs_tol=1e-9)
        assert label in net.output_labels


def test_forward_is_deterministic():
    net = Network([3, 4, 2], seed=0)
    x = [0.2, -0.4, 1.0]
    np.testing.assert_array_equal(net.forward(x), net.forward(x))
    assert net.predict(x) == net.predict(x)


def test_predict_ties_keep_first_label():
    net = Network([2, 3], output_labels=["a", "b", "c"])
    net.weights[0][:] = 0.0
    assert net.predict([1.0, 1.0]) == "a"


def test_predict_returns_most_activated_label():
    net = Network([2, 2], output_labels=["no", "yes"], activation="RELU")
    net.weights[0][:] = 0.0
    net.biases[1][:] = [0.0, 5.0]
    assert net.predict([0.3, 0.3]) == "yes"


def test_wrong_input_length_raises():
    net = Network([3, 2])
    with pytest.raises(ConfigurationError):
        net.forward([1.0, 2.0])
    with pytest.raises(ConfigurationError):
        net.backpropagate([1.0, 0.0, 0.0])


def test_backpropagate_single_connection_by_hand():
    net = Network([1, 1], activation="TANH", learning_rate=0.5)
    net.weights[0][:] = 0.4
    lr, w = 0.5, 0.4

    net.train([1.0], [0.0])

    # softmax over one node is always 1
    out = 1.0
    out_err = dsigmoid(out) * (0.0 - out)
    total = w * out_err
    new_w = w + lr * 1.0 * out_err * w
    in_err = dtanh(1.0) * total

    assert net.biases[1][0] == pytest.approx(lr * out_err)
    assert net.weights[0][0, 0] == pytest.approx(new_w)
    assert net.biases[0][0] == pytest.approx(lr * in_err)
    assert net.errors[0][0] == pytest.approx(in_err)


def test_backpropagate_uses_pre_update_weights_for_error():
    net = Network([2, 2, 2], activation="SIGMOID", learning_rate=0.3, seed=11)
    x, t = np.array([0.5, -1.0]), np.array([1.0, 0.0])
    W_before = [W.copy() for W in net.weights]

    net.train(x, t)

    downstream = net.errors[2]
    hidden = net.values[1]
    expected_total = W_before[1] @ downstream
    expected_W1 = W_before[1] + 0.3 * np.outer(hidden, downstream) * W_before[1]
    np.testing.assert_allclose(net.weights[1], expected_W1)
    np.testing.assert_allclose(net.errors[1], dsigmoid(hidden) * expected_total)


def test_relu_scenario_round_trip(tmp_path):
    net = Network([2, 2], activation="RELU", learning_rate=0.1, seed=5)
    net.train([1, 0], [1, 0])
    assert net.learning_rate == 0.1

    path = net.dump(tmp_path / "relu.json")
    loaded = Network.load(path)

    assert loaded.predict([1, 0]) == net.predict([1, 0])
    assert loaded.learning_rate == 0.1
    assert loaded.activation == net.activation


@pytest.mark.parametrize("activation", ACTIVATION_NAMES)
def test_dump_load_preserves_parameters(tmp_path, activation):
    net = Network([3, 4, 2], output_labels=["cat", "dog"], activation=activation, seed=2)
    X = np.random.default_rng(0).normal(size=(10, 3))
    Y = np.tile([[1.0, 0.0], [0.0, 1.0]], (5, 1))
    net.fit(X, Y)

    loaded = Network.load(net.dump(tmp_path / "net.json"))

    assert loaded.layer_sizes == net.layer_sizes
    assert loaded.output_labels == ["cat", "dog"]
    for W0, W1 in zip(net.weights, loaded.weights):
        assert np.allclose(W0, W1)
    for b0, b1 in zip(net.biases, loaded.biases):
        assert np.allclose(b0, b1)
    for x in X:
        np.testing.assert_allclose(loaded.forward(x), net.forward(x))


def test_record_layout():
    net = Network([2, 3], output_labels=["x", "y", "z"], activation="CAPPED RELU")
    record = net.to_record()
    assert record["method"] == "CAPPED RELU"
    assert record["layers"] == [2, 3]
    assert record["outputLabels"] == ["x", "y", "z"]
    # weights[layer][from][to]
    assert len(record["weights"]) == 1
    assert len(record["weights"][0]) == 2
    assert len(record["weights"][0][0]) == 3
    json.dumps(record)


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(NetworkRecordError) as info:
        Network.load(tmp_path / "absent.json")
    assert isinstance(info.value, IOError)


def test_load_malformed_json_raises(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(NetworkRecordError):
        Network.load(path)


def test_load_incomplete_record_raises(tmp_path):
    record = Network([2, 2]).to_record()
    del record["weights"]
    path = tmp_path / "partial.json"
    path.write_text(json.dumps(record), encoding="utf-8")
    with pytest.raises(NetworkRecordError):
        Network.load(path)


def test_load_shape_mismatch_raises():
    record = Network([2, 2]).to_record()
    record["layers"] = [2, 3]
    record["outputLabels"] = ["0", "1", "2"]
    with pytest.raises(NetworkRecordError):
        Network.from_record(record)


def test_fit_length_mismatch_mutates_nothing():
    net = Network([2, 2], seed=4)
    weights = [W.copy() for W in net.weights]
    biases = [b.copy() for b in net.biases]

    with pytest.raises(ConfigurationError):
        net.fit([[0, 1], [1, 0]], [[1, 0]])

    for W0, W1 in zip(weights, net.weights):
        np.testing.assert_array_equal(W0, W1)
    for b0, b1 in zip(biases, net.biases):
        np.testing.assert_array_equal(b0, b1)


def test_fit_trains_each_example_once():
    net = Network([1, 2], seed=9)
    seen = []
    original_train = net.train

    def recording_train(x, y):
        seen.append((x[0], y[0]))
        original_train(x, y)

    net.train = recording_train
    X = [[float(i)] for i in range(8)]
    Y = [[float(i), 0.0] for i in range(8)]
    net.fit(X, Y)

    assert sorted(seen) == [(float(i), float(i)) for i in range(8)]


def test_fit_shuffles_with_the_network_generator():
    net = Network([1, 2], rng=np.random.default_rng(9))
    seen = []
    original_train = net.train

    def recording_train(x, y):
        seen.append(int(x[0]))
        original_train(x, y)

    net.train = recording_train
    X = [[float(i)] for i in range(8)]
    Y = [[float(i), 0.0] for i in range(8)]
    net.fit(X, Y)

    # same draws as the network: weight init first, then the permutation
    twin_rng = np.random.default_rng(9)
    Network([1, 2], rng=twin_rng)
    expected = twin_rng.permutation(8).tolist()
    logger.debug(f"fit order {seen}")
    assert seen == expected
    assert seen != list(range(8))


def test_predict_proba_matches_forward():
    net = Network([3, 4, 2], seed=5)
    x = [0.1, 0.7, -0.3]
    np.testing.assert_array_equal(net.predict_proba(x), net.forward(x))


def test_evaluate():
    net = Network([2, 3], seed=0)
    X = np.random.default_rng(1).normal(size=(6, 2))
    labels = [net.predict(x) for x in X]
    assert net.evaluate(X, labels) == 1.0
    assert net.evaluate([], []) == 0.0
    with pytest.raises(ConfigurationError):
        net.evaluate(X, labels[:-1])
