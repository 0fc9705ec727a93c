# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
tinynet
=======

A small, educational neural-network stack trained one example at a time
with hand-derived gradients.

Public API
~~~~~~~~~~
- Dense networks
    - `Network` (forward, `train`, `fit`, `predict`, `dump`/`load`)
- Recurrent units
    - `RecurrentCell`
- Sequence models
    - `SequenceModel`, `Encoder`, `Decoder`, `vectorize`
- Text
    - `tokenize`, `Vocabulary`, `ThresholdVocabulary`
- Data
    - `read_csv`, `split_features`, `one_hot`, `MinMaxScaler`, `Pipeline`
- Activations
    - `Activation`, `get_activation`, `softmax`

Everything else lives in sub-modules and is **not** considered part of the
stable interface.

Example
-------
>>> import tinynet as tn
>>> net = tn.Network([2, 2], activation="RELU", learning_rate=0.1)
>>> net.train([1, 0], [1, 0])
>>> net.predict([1, 0]) in ("0", "1")
True
"""

from importlib.metadata import version as _pkg_version

# ---------------------------------------------------------------------
# Re-export the high-level names users are expected to call.
# Each of these names is implemented in one of the internal sub-modules.
# ---------------------------------------------------------------------
from .activations import (
    ACTIVATIONS,
    Activation,
    get_activation,
    softmax,
)
from .data import MinMaxScaler, one_hot, read_csv, split_features
from .errors import ConfigurationError, NetworkRecordError, TinynetError
from .network import Network
from .pipeline import Pipeline
from .recurrent import RecurrentCell
from .sequence import (
    ENCODED_BITS,
    VECTOR_WIDTH,
    Decoder,
    Encoder,
    SequenceModel,
    vectorize,
)
from .vocabulary import ThresholdVocabulary, Vocabulary, tokenize

__all__ = [
    "Activation",
    "ACTIVATIONS",
    "get_activation",
    "softmax",
    "Network",
    "RecurrentCell",
    "Encoder",
    "Decoder",
    "SequenceModel",
    "vectorize",
    "VECTOR_WIDTH",
    "ENCODED_BITS",
    "tokenize",
    "Vocabulary",
    "ThresholdVocabulary",
    "read_csv",
    "split_features",
    "one_hot",
    "MinMaxScaler",
    "Pipeline",
    "TinynetError",
    "ConfigurationError",
    "NetworkRecordError",
]

# ---------------------------------------------------------------------
# Version string (helps "pip show tinynet", Sphinx, etc.)
# ---------------------------------------------------------------------
try:  # installed via pip / build backend
    __version__ = _pkg_version(__name__)
except Exception:  # running from a checkout
    __version__ = "0.0.0.dev0"

# ---------------------------------------------------------------------
# Optional: lightweight default logging config so users see warnings
# only if they deliberately enable them.
# ---------------------------------------------------------------------
import logging as _logging

_logging.getLogger(__name__).addHandler(_logging.NullHandler())
