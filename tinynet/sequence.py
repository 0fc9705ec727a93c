# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Encoder-decoder over recurrent cell grids.

Shapes: L = recurrent layers, D = cells per layer (depth), W = VECTOR_WIDTH.

    token ids --vectorize--> (T, W)
              --Encoder: embedding Network [W, D] + L x D cells--> memory (L, D, 2)
              --Decoder: seed cells with memory, one step on the start
                vector, classifier Network [D, n_labels]--> distribution

Only the decoder's classifier is trained; embeddings and cells keep their
initial parameters.
"""

import json
import logging
import pathlib
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from .errors import ConfigurationError, NetworkRecordError
from .network import Network
from .recurrent import RecurrentCell
from .utils import make_rng, one_hot_index
from .vocabulary import Vocabulary

logger = logging.getLogger(__name__)

VECTOR_WIDTH = 32
ENCODED_BITS = 25
START_TOKEN = 0


def vectorize(token_id: int) -> np.ndarray:
    """
    Fixed-width binary encoding of a token id.

    The id is written as a 32-digit, zero-padded binary string and only
    the first ENCODED_BITS digits are copied; the remaining slots stay 0.
    Ids below 2**7 therefore encode to the zero vector.
    """
    token_id = int(token_id)
    if token_id < 0:
        raise ValueError(f"token ids must be non-negative, got {token_id}")
    bits = format(token_id, f"0{VECTOR_WIDTH}b")
    v = np.zeros(VECTOR_WIDTH, dtype=float)
    v[:ENCODED_BITS] = [int(b) for b in bits[:ENCODED_BITS]]
    return v


def vectorize_sequence(token_ids: Sequence[int]) -> np.ndarray:
    """Stack `vectorize` over a sequence, shape (T, VECTOR_WIDTH)."""
    if len(token_ids) == 0:
        return np.zeros((0, VECTOR_WIDTH))
    return np.stack([vectorize(i) for i in token_ids])


def _make_grid(layers: int, depth: int, rng: np.random.Generator) -> List[List[RecurrentCell]]:
    return [[RecurrentCell(rng=rng) for _ in range(depth)] for _ in range(layers)]


def _step_grid(grid: List[List[RecurrentCell]], inputs: np.ndarray) -> np.ndarray:
    """
    Step every cell once.

    Cell j of layer 0 reads inputs[j]; cell j of layer i > 0 reads the STM
    just committed by cell j of layer i - 1.

    Returns:
        STMs of the last layer, shape (D,).
    """
    xs = np.asarray(inputs, dtype=float)
    for row in grid:
        if len(xs) != len(row):
            raise ConfigurationError(f"Grid layer has {len(row)} cells but got {len(xs)} inputs")
        # STM flows down to the same position in the next layer
        xs = np.array([cell.step(x)[0] for cell, x in zip(row, xs)])
    return xs


def _grid_memory(grid: List[List[RecurrentCell]]) -> np.ndarray:
    """(L, D, 2) array of (ltm, stm) per cell."""
    return np.array([[[cell.ltm, cell.stm] for cell in row] for row in grid], dtype=float)


class Encoder:
    """Embedding network followed by a grid of recurrent cells."""

    def __init__(self, layers: int = 1, depth: int = 4, seed=None, rng=None) -> None:
        rng = make_rng(seed, rng)
        self.layers = layers
        self.depth = depth
        self.embedding = Network([VECTOR_WIDTH, depth], rng=rng)
        self.cells = _make_grid(layers, depth, rng)

    def reset(self) -> None:
        for row in self.cells:
            for cell in row:
                cell.reset()

    def encode(self, vectors: np.ndarray) -> np.ndarray:
        """
        Run a whole sequence through the grid from a zero state.

        Args:
            vectors: (T, VECTOR_WIDTH) encoded tokens; T may be 0.

        Returns:
            memory: (L, D, 2) final (ltm, stm) of every cell.
        """
        self.reset()
        for v in vectors:
            _step_grid(self.cells, self.embedding.forward(v))
        return _grid_memory(self.cells)


class Decoder:
    """Embedding network, recurrent grid and classifier network."""

    def __init__(
        self,
        layers: int = 1,
        depth: int = 4,
        output_labels: Optional[Sequence[str]] = None,
        seed=None,
        rng=None,
    ) -> None:
        rng = make_rng(seed, rng)
        self.layers = layers
        self.depth = depth
        self.embedding = Network([VECTOR_WIDTH, depth], rng=rng)
        self.cells = _make_grid(layers, depth, rng)
        n_out = len(output_labels) if output_labels is not None else depth
        self.classifier = Network([depth, n_out], output_labels=output_labels, rng=rng)

    def seed_memory(self, memory: np.ndarray) -> None:
        """
        Copy encoder memory into the cells.

        Raises:
            ConfigurationError: If memory is not shaped (L, D, 2).
        """
        memory = np.asarray(memory, dtype=float)
        if memory.shape != (self.layers, self.depth, 2):
            raise ConfigurationError(
                f"Memory shape {memory.shape} does not fit a "
                f"{self.layers} x {self.depth} decoder"
            )
        for row, row_mem in zip(self.cells, memory):
            for cell, (ltm, stm) in zip(row, row_mem):
                cell.set_state(stm=stm, ltm=ltm)

    def decode(self, vector: np.ndarray) -> np.ndarray:
        """One grid step on `vector`, then classify the last layer's STMs."""
        stms = _step_grid(self.cells, self.embedding.forward(vector))
        return self.classifier.forward(stms)


class SequenceModel:
    """
    Maps text to a distribution over `output_labels`.

    Example
    -------
    >>> model = SequenceModel(layers=1, depth=4, output_labels=["A", "B"])
    >>> probs = model.respond("the cat sat", "en")
    >>> probs.shape
    (2,)
    """

    def __init__(
        self,
        layers: int = 1,
        depth: int = 4,
        output_labels: Optional[Sequence[str]] = None,
        vocabulary_dir: Union[str, pathlib.Path] = "vocabulary",
        seed: Optional[int] = None,
    ) -> None:
        if layers < 1 or depth < 1:
            raise ConfigurationError(
                f"layers and depth must be positive, got {layers} and {depth}"
            )
        rng = make_rng(seed)
        self.vocabulary_dir = pathlib.Path(vocabulary_dir)
        self.encoder = Encoder(layers, depth, rng=rng)
        self.decoder = Decoder(layers, depth, output_labels, rng=rng)

    @property
    def labels(self) -> List[str]:
        return list(self.decoder.classifier.output_labels)

    def vocabulary(self, vocabulary_id: str) -> Vocabulary:
        return Vocabulary.for_language(self.vocabulary_dir, vocabulary_id)

    def respond(self, text: str, vocabulary_id: str, extend: bool = True) -> np.ndarray:
        """
        Classify `text`.

        Args:
            text: Raw input text.
            vocabulary_id: Name of the vocabulary file to use (e.g. "en").
            extend: Let the vocabulary grow with unseen tokens and persist
                    it (True), or treat it as frozen (False).

        Returns:
            Probability per label, shape (n_labels,).
        """
        ids = self.vocabulary(vocabulary_id).encode(text, extend=extend)
        memory = self.encoder.encode(vectorize_sequence(ids))
        self.decoder.seed_memory(memory)
        probs = self.decoder.decode(vectorize(START_TOKEN))
        logger.debug(f"respond(): {len(ids)} token(s) -> {np.round(probs, 4)}")
        return probs

    def backpropagate(self, expected_output) -> None:
        """Train the decoder's classifier against the last `respond`."""
        self.decoder.classifier.backpropagate(expected_output)

    def train(self, text: str, label: str, vocabulary_id: str) -> np.ndarray:
        """`respond` followed by `backpropagate` towards the one-hot `label`."""
        labels = self.labels
        if label not in labels:
            raise ConfigurationError(f"Unknown label {label!r}, expected one of {labels}")
        probs = self.respond(text, vocabulary_id)
        self.backpropagate(one_hot_index(labels.index(label), len(labels)))
        return probs

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------

    def to_record(self) -> Dict[str, Any]:
        enc, dec = self.encoder, self.decoder
        return {
            "layers": enc.layers,
            "depth": enc.depth,
            "encoder": {
                "embedding": enc.embedding.to_record(),
                "cells": [[c.to_record() for c in row] for row in enc.cells],
            },
            "decoder": {
                "embedding": dec.embedding.to_record(),
                "cells": [[c.to_record() for c in row] for row in dec.cells],
                "classifier": dec.classifier.to_record(),
            },
        }

    @classmethod
    def from_record(
        cls, record: Dict[str, Any], vocabulary_dir: Union[str, pathlib.Path] = "vocabulary"
    ) -> "SequenceModel":
        try:
            layers, depth = int(record["layers"]), int(record["depth"])
            classifier = Network.from_record(record["decoder"]["classifier"])
            model = cls(layers, depth, classifier.output_labels, vocabulary_dir)
            model.encoder.embedding = Network.from_record(record["encoder"]["embedding"])
            model.decoder.embedding = Network.from_record(record["decoder"]["embedding"])
            model.decoder.classifier = classifier
            model.encoder.cells = cls._cells_from_record(record["encoder"]["cells"], layers, depth)
            model.decoder.cells = cls._cells_from_record(record["decoder"]["cells"], layers, depth)
            cls._check_topology(model, depth)
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkRecordError(f"Invalid sequence model record: {e}") from e
        return model

    @staticmethod
    def _check_topology(model: "SequenceModel", depth: int) -> None:
        for name, net in (("encoder", model.encoder.embedding), ("decoder", model.decoder.embedding)):
            if net.layer_sizes != [VECTOR_WIDTH, depth]:
                raise ValueError(
                    f"{name} embedding is {net.layer_sizes}, expected {[VECTOR_WIDTH, depth]}"
                )
        if model.decoder.classifier.layer_sizes[0] != depth:
            raise ValueError(
                f"classifier takes {model.decoder.classifier.layer_sizes[0]} inputs, expected {depth}"
            )

    @staticmethod
    def _cells_from_record(rows, layers: int, depth: int) -> List[List[RecurrentCell]]:
        if len(rows) != layers or any(len(row) != depth for row in rows):
            raise ValueError(f"cell grid is not {layers} x {depth}")
        return [[RecurrentCell.from_record(c) for c in row] for row in rows]

    def dump(self, path: Union[str, pathlib.Path]) -> pathlib.Path:
        path = pathlib.Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_record(), f)
        logger.info(f"Saved sequence model to {path}")
        return path

    @classmethod
    def load(
        cls, path: Union[str, pathlib.Path], vocabulary_dir: Union[str, pathlib.Path] = "vocabulary"
    ) -> "SequenceModel":
        path = pathlib.Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                record = json.load(f)
        except OSError as e:
            raise NetworkRecordError(f"Cannot read sequence model {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise NetworkRecordError(f"Malformed sequence model {path}: {e}") from e
        model = cls.from_record(record, vocabulary_dir)
        logger.info(f"Loaded sequence model from {path}")
        return model
