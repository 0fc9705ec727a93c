# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Tabular data loading for `Network.fit`.

CSV files are read with pandas; features become a float matrix with one
row per example and the label column becomes a list of strings.
"""

import logging
import pathlib
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = ";"


def read_csv(
    path: Union[str, pathlib.Path],
    sep: str = DEFAULT_SEPARATOR,
    header: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Read a delimited text file.

    Parameters
    ----------
    path : str | Path
        Must end in ``.csv``.
    sep : str
        Field separator, ``;`` by default.
    header : sequence of str | None
        Column names. If None the first line of the file is the header.

    Raises
    ------
    ConfigurationError : if the file is not a ``.csv`` file.
    """
    path = pathlib.Path(path)
    if path.suffix.lower() != ".csv":
        raise ConfigurationError(f"Imported file is not a CSV file: {path}")
    if header is None:
        frame = pd.read_csv(path, sep=sep)
    else:
        frame = pd.read_csv(path, sep=sep, header=None, names=list(header))
    logger.debug(f"Read {len(frame)} row(s) x {len(frame.columns)} column(s) from {path}")
    return frame


def split_features(
    frame: pd.DataFrame, label_column: str
) -> Tuple[np.ndarray, List[str]]:
    """
    Separate the label column from the numeric features.

    Returns
    -------
    X      : (n, k) float ndarray
    labels : list[str] of length n
    """
    if label_column not in frame.columns:
        raise ConfigurationError(
            f"Label column {label_column!r} not in {list(frame.columns)}"
        )
    features = frame.drop(columns=[label_column])
    try:
        X = features.to_numpy(dtype=float)
    except ValueError as e:
        raise ConfigurationError(f"Feature columns must be numeric: {e}") from e
    labels = [str(v) for v in frame[label_column].tolist()]
    return X, labels


def one_hot(labels: Sequence[str], classes: Sequence[str]) -> np.ndarray:
    """Return one-hot rows for `labels` in the order given by `classes`."""
    index = {str(c): i for i, c in enumerate(classes)}
    unknown = sorted({str(l) for l in labels} - set(index))
    if unknown:
        raise ConfigurationError(f"Labels {unknown} not in classes {list(classes)}")
    Y = np.zeros((len(labels), len(classes)), dtype=float)
    Y[np.arange(len(labels)), [index[str(l)] for l in labels]] = 1.0
    return Y


def classes_of(labels: Sequence[str]) -> List[str]:
    """Distinct labels, sorted."""
    return sorted({str(l) for l in labels})


class MinMaxScaler:
    """Rescale every feature column to [0, 1] using the fitted range."""

    def __init__(self) -> None:
        self.low: Optional[np.ndarray] = None
        self.span: Optional[np.ndarray] = None

    def fit(self, X, Y=None) -> "MinMaxScaler":
        X = np.asarray(X, dtype=float)
        if X.ndim != 2 or X.shape[0] == 0:
            raise ConfigurationError(f"MinMaxScaler needs a non-empty 2-D array, got {X.shape}")
        self.low = X.min(axis=0)
        span = X.max(axis=0) - self.low
        # constant columns map to 0
        span[span == 0.0] = 1.0
        self.span = span
        return self

    def transform(self, X) -> np.ndarray:
        if self.low is None:
            raise ConfigurationError("MinMaxScaler.transform() called before fit()")
        return (np.asarray(X, dtype=float) - self.low) / self.span

    def to_record(self) -> dict:
        return {"low": self.low.tolist(), "span": self.span.tolist()}

    @classmethod
    def from_record(cls, record: dict) -> "MinMaxScaler":
        scaler = cls()
        scaler.low = np.asarray(record["low"], dtype=float)
        scaler.span = np.asarray(record["span"], dtype=float)
        return scaler
