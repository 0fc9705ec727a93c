# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Dense feedforward network trained one example at a time.

Layer l holds three vectors (values, biases, errors); the connections
between layer l and l+1 are a dense (|l|, |l+1|) weight matrix, so
weights[l][i, j] is the edge from node i of layer l to node j of layer l+1.
The output layer is always passed through a softmax after the configured
activation.
"""

import json
import logging
import pathlib
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from .activations import Activation, dsigmoid, get_activation, parse_activation, softmax
from .errors import ConfigurationError, NetworkRecordError
from .utils import make_rng, shuffled_pairs

logger = logging.getLogger(__name__)

# Saturating activations start from symmetric weights, the ReLU family
# from small positive ones.
_INIT_RANGES = {
    Activation.SIGMOID: (-1.0, 1.0),
    Activation.TANH: (-1.0, 1.0),
    Activation.RELU: (0.0, 0.1),
    Activation.CAPPED_RELU: (0.0, 0.1),
}

RECORD_KEYS = ("method", "learningRate", "layers", "outputLabels", "biases", "weights")


class Network:
    """
    Fully connected network with per-node bias and per-edge weight.

    Attributes:
        layer_sizes: Node count per layer, input first.
        output_labels: One label per output node.
        activation: The `Activation` applied after every weighted sum.
        learning_rate: Step size used by `backpropagate`.
        weights: List of (|l|, |l+1|) matrices.
        biases, values, errors: One vector per layer.
    """

    def __init__(
        self,
        layer_sizes: Sequence[int] = (1, 1),
        output_labels: Optional[Sequence[str]] = None,
        activation: Union[str, Activation] = Activation.SIGMOID,
        learning_rate: float = 0.01,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        """
        Args:
            layer_sizes: At least two positive layer sizes.
            output_labels: Labels for the output nodes; defaults to "0", "1", ...
            activation: 'SIGMOID', 'RELU', 'CAPPED RELU' or 'TANH'.
            learning_rate: Positive step size.
            seed: RNG seed for reproducible init (ignored if `rng` is given).
            rng: Generator to draw weights and shuffles from.

        Raises:
            ConfigurationError: On any invalid argument; nothing is built.
        """
        sizes = [int(n) for n in layer_sizes]
        if len(sizes) < 2:
            raise ConfigurationError("Invalid layer sizes: must have at least two layers")
        if any(n < 1 for n in sizes):
            raise ConfigurationError(f"Layer sizes must be positive, got {sizes}")

        if output_labels is None:
            labels = [str(i) for i in range(sizes[-1])]
        else:
            labels = [str(label) for label in output_labels]
        if len(labels) != sizes[-1]:
            raise ConfigurationError(
                f"Output layer has {sizes[-1]} nodes but {len(labels)} labels were given"
            )
        if not learning_rate > 0:
            raise ConfigurationError(f"Learning rate must be positive, got {learning_rate}")

        try:
            self.activation = parse_activation(activation)
        except KeyError as e:
            raise ConfigurationError(str(e)) from e
        self._phi, self._phi_prime = get_activation(self.activation)

        self.layer_sizes: List[int] = sizes
        self.output_labels: List[str] = labels
        self.learning_rate = float(learning_rate)
        self.rng = make_rng(seed, rng)

        low, high = _INIT_RANGES[self.activation]
        self.weights: List[np.ndarray] = [
            self.rng.uniform(low, high, size=(n_in, n_out))
            for n_in, n_out in zip(sizes[:-1], sizes[1:])
        ]
        self.biases: List[np.ndarray] = [np.zeros(n) for n in sizes]
        self.values: List[np.ndarray] = [np.zeros(n) for n in sizes]
        self.errors: List[np.ndarray] = [np.zeros(n) for n in sizes]

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.layer_sizes}, "
            f"activation={self.activation.value!r}, learning_rate={self.learning_rate})"
        )

    @property
    def n_inputs(self) -> int:
        return self.layer_sizes[0]

    @property
    def n_outputs(self) -> int:
        return self.layer_sizes[-1]

    @property
    def output(self) -> np.ndarray:
        """Output distribution from the most recent forward pass."""
        return self.values[-1].copy()

    # ------------------------------------------------------------------
    # inference
    # ------------------------------------------------------------------

    def forward(self, x) -> np.ndarray:
        """
        Forward pass.

        Each node's value is act(sum of weighted inputs + bias); the output
        layer is then replaced by its softmax.

        Returns:
            Copy of the output distribution, shape (n_outputs,).
        """
        x = np.array(x, dtype=float).ravel()
        if x.size != self.n_inputs:
            raise ConfigurationError(
                f"Expected {self.n_inputs} input values, got {x.size}"
            )

        self.values[0] = x
        for l in range(1, len(self.layer_sizes)):
            pre = self.values[l - 1] @ self.weights[l - 1] + self.biases[l]
            self.values[l] = np.asarray(self._phi(pre), dtype=float)
        self.values[-1] = softmax(self.values[-1])
        return self.output

    predict_proba = forward

    def predict(self, x) -> str:
        """
        Return the label of the most activated output node.

        Ties go to the earliest node.
        """
        probs = self.forward(x)
        # argmax keeps the first maximum
        return self.output_labels[int(np.argmax(probs))]

    # ------------------------------------------------------------------
    # training
    # ------------------------------------------------------------------

    def backpropagate(self, target) -> None:
        """
        Single-example backward pass against the last forward pass.

        The output error always uses the sigmoid derivative. Each weight
        moves by lr * value * downstream_error * old_weight, and the error
        sent back through an edge also uses the old weight.
        """
        t = np.asarray(target, dtype=float).ravel()
        if t.size != self.n_outputs:
            raise ConfigurationError(
                f"Expected {self.n_outputs} target values, got {t.size}"
            )
        lr = self.learning_rate

        out = self.values[-1]
        self.errors[-1] = dsigmoid(out) * (t - out)
        self.biases[-1] += lr * self.errors[-1]

        for l in reversed(range(len(self.layer_sizes) - 1)):
            W = self.weights[l]
            v = self.values[l]
            downstream = self.errors[l + 1]

            total = W @ downstream
            W += lr * np.outer(v, downstream) * W

            self.errors[l] = np.asarray(self._phi_prime(v), dtype=float) * total
            self.biases[l] += lr * self.errors[l]

    def train(self, x, y) -> None:
        """One forward pass followed by one backward pass."""
        self.forward(x)
        self.backpropagate(y)

    def fit(self, X, Y) -> None:
        """
        One epoch: shuffle the (x, y) pairs once and train on each.

        Raises:
            ConfigurationError: If X and Y differ in length. Raised before
            any training happens.
        """
        if len(X) != len(Y):
            raise ConfigurationError(
                f"fit() needs as many targets as inputs, got {len(X)} and {len(Y)}"
            )
        for x, y in shuffled_pairs(X, Y, self.rng):
            self.train(x, y)
        logger.debug(f"fit(): trained {len(X)} examples on {self!r}")

    def evaluate(self, X, labels: Sequence[str]) -> float:
        """Fraction of inputs whose predicted label equals the expected one."""
        if len(X) != len(labels):
            raise ConfigurationError(
                f"evaluate() needs as many labels as inputs, got {len(X)} and {len(labels)}"
            )
        if len(X) == 0:
            return 0.0
        hits = sum(self.predict(x) == str(label) for x, label in zip(X, labels))
        return hits / len(X)

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------

    def to_record(self) -> Dict[str, Any]:
        """Topology and parameters as a JSON-serialisable dict."""
        return {
            "method": self.activation.value,
            "learningRate": self.learning_rate,
            "layers": list(self.layer_sizes),
            "outputLabels": list(self.output_labels),
            "biases": [b.tolist() for b in self.biases],
            "weights": [W.tolist() for W in self.weights],
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Network":
        """
        Rebuild a network from `to_record()` output.

        The topology comes from the recorded layer sizes; biases and
        weights are then overwritten with the recorded values.

        Raises:
            NetworkRecordError: If keys are missing or shapes disagree.
        """
        if not isinstance(record, dict):
            raise NetworkRecordError(f"Network record must be an object, got {type(record)}")
        missing = [k for k in RECORD_KEYS if k not in record]
        if missing:
            raise NetworkRecordError(f"Network record is missing {missing}")

        try:
            net = cls(
                record["layers"],
                output_labels=record["outputLabels"],
                activation=record["method"],
                learning_rate=record["learningRate"],
            )
        except (ValueError, TypeError) as e:
            raise NetworkRecordError(f"Invalid network record: {e}") from e

        try:
            biases = [np.asarray(b, dtype=float) for b in record["biases"]]
            weights = [np.asarray(W, dtype=float) for W in record["weights"]]
        except (ValueError, TypeError) as e:
            raise NetworkRecordError(f"Invalid parameters in network record: {e}") from e
        expected_b = [(n,) for n in net.layer_sizes]
        expected_w = [W.shape for W in net.weights]
        if [b.shape for b in biases] != expected_b:
            raise NetworkRecordError(
                f"Bias shapes {[b.shape for b in biases]} do not match layers {net.layer_sizes}"
            )
        if [W.shape for W in weights] != expected_w:
            raise NetworkRecordError(
                f"Weight shapes {[W.shape for W in weights]} do not match {expected_w}"
            )

        net.biases = biases
        net.weights = weights
        return net

    def dump(self, path: Union[str, pathlib.Path]) -> pathlib.Path:
        """Write the network record to `path` as JSON."""
        path = pathlib.Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_record(), f)
        logger.info(f"Saved network {self.layer_sizes} to {path}")
        return path

    @classmethod
    def load(cls, path: Union[str, pathlib.Path]) -> "Network":
        """
        Read a network written by `dump`.

        Raises:
            NetworkRecordError: If the file is missing, is not JSON or does
            not describe a valid network.
        """
        path = pathlib.Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                record = json.load(f)
        except OSError as e:
            raise NetworkRecordError(f"Cannot read network record {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise NetworkRecordError(f"Malformed network record {path}: {e}") from e

        net = cls.from_record(record)
        logger.info(f"Loaded network {net.layer_sizes} from {path}")
        return net
