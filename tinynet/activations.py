# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Activation functions for the dense networks and recurrent cells.

Currently implemented:
- SIGMOID: logistic function
- RELU: rectified linear unit
- CAPPED RELU: ReLU clipped to [0, 1]
- TANH: hyperbolic tangent

Every function works on Python floats and on NumPy arrays (element-wise).
The derivatives are evaluated on the *activated* node value, which is how
the network's backward pass calls them.
"""

from enum import Enum
from typing import Callable, Dict, Tuple, Union

import numpy as np


class Activation(str, Enum):
    """Closed set of activations; the values are the persisted names."""

    SIGMOID = "SIGMOID"
    RELU = "RELU"
    CAPPED_RELU = "CAPPED RELU"
    TANH = "TANH"


def sigmoid(x):
    """
    Logistic function 1 / (1 + e^-x).

    Written through tanh so large negative inputs do not overflow exp().
    """
    return 0.5 * (1.0 + np.tanh(0.5 * x))


def dsigmoid(x):
    """Derivative of the sigmoid: s(x) * (1 - s(x))."""
    s = sigmoid(x)
    return s * (1.0 - s)


def relu(x):
    """max(0, x)."""
    return np.maximum(0.0, x)


def drelu(x):
    """1 if x > 0 else 0."""
    return np.where(np.asarray(x) > 0.0, 1.0, 0.0)


def capped_relu(x):
    """ReLU clipped to the unit interval."""
    return np.clip(x, 0.0, 1.0)


def dcapped_relu(x):
    """1 on (0, 1], 0 elsewhere."""
    x = np.asarray(x)
    return np.where((x > 0.0) & (x <= 1.0), 1.0, 0.0)


def tanh(x):
    return np.tanh(x)


def dtanh(x):
    """1 - tanh(x)^2."""
    t = np.tanh(x)
    return 1.0 - t * t


def softmax(logits) -> np.ndarray:
    """
    Numerically stable softmax over a 1-D vector.

    The maximum is subtracted before exponentiation so large logits
    cannot overflow; the result sums to 1.
    """
    z = np.asarray(logits, dtype=float)
    e = np.exp(z - z.max())
    return e / e.sum()


ActivationPair = Tuple[Callable, Callable]

# Registry for lookup by name
ACTIVATIONS: Dict[Activation, ActivationPair] = {
    Activation.SIGMOID: (sigmoid, dsigmoid),
    Activation.RELU: (relu, drelu),
    Activation.CAPPED_RELU: (capped_relu, dcapped_relu),
    Activation.TANH: (tanh, dtanh),
}


def parse_activation(name: Union[str, Activation]) -> Activation:
    """
    Resolve an activation name to its enum member.

    Raises:
        KeyError: If the name is not one of the known activations.
    """
    try:
        return Activation(name)
    except ValueError:
        raise KeyError(
            f"Unknown activation: {name}. Available: {[a.value for a in Activation]}"
        ) from None


def get_activation(name: Union[str, Activation]) -> ActivationPair:
    """
    Get activation function and its derivative by name.

    Args:
        name: An `Activation` member or one of 'SIGMOID', 'RELU',
              'CAPPED RELU', 'TANH'.

    Returns:
        Tuple of (forward_fn, derivative_fn).

    Raises:
        KeyError: If activation name is not recognized.
    """
    return ACTIVATIONS[parse_activation(name)]
