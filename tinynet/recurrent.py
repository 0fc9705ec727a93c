# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Scalar gated recurrent cell.

Each cell keeps one short-term (STM) and one long-term (LTM) scalar and
owns twelve parameters: four input weights, four recurrent weights and
four biases, one of each per gate.

    g_n  = x * wi[n] + stm * wstm[n] + bstm[n]
    ltm' = ltm * sigmoid(g0) + sigmoid(g1) * tanh(g2)
    stm' = tanh(ltm') * sigmoid(g3)
"""

from typing import Any, Dict, Iterable, Optional, Tuple

import numpy as np

from .activations import sigmoid, tanh
from .utils import make_rng

N_GATES = 4
PARAM_HIGH = 5.0


class RecurrentCell:
    """
    One gated unit with scalar state.

    Attributes:
        wi:   Input weights, shape (4,).
        wstm: Recurrent (STM) weights, shape (4,).
        bstm: Gate biases, shape (4,).
        stm, ltm: Current short- and long-term memory.
    """

    def __init__(
        self, seed: Optional[int] = None, rng: Optional[np.random.Generator] = None
    ) -> None:
        rng = make_rng(seed, rng)
        self.wi = rng.uniform(0.0, PARAM_HIGH, size=N_GATES)
        self.wstm = rng.uniform(0.0, PARAM_HIGH, size=N_GATES)
        self.bstm = rng.uniform(0.0, PARAM_HIGH, size=N_GATES)
        self.stm = 0.0
        self.ltm = 0.0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(stm={self.stm:.4f}, ltm={self.ltm:.4f})"

    @property
    def state(self) -> Tuple[float, float]:
        """(stm, ltm)."""
        return self.stm, self.ltm

    def set_state(self, stm: float, ltm: float) -> None:
        self.stm = float(stm)
        self.ltm = float(ltm)

    def reset(self) -> None:
        self.set_state(0.0, 0.0)

    def transition(self, x: float, stm: float, ltm: float) -> Tuple[float, float]:
        """
        Pure state update for input x from (stm, ltm).

        Returns:
            (new_stm, new_ltm). The cell itself is not touched.
        """
        g = x * self.wi + stm * self.wstm + self.bstm
        new_ltm = ltm * sigmoid(g[0]) + sigmoid(g[1]) * tanh(g[2])
        new_stm = tanh(new_ltm) * sigmoid(g[3])
        return float(new_stm), float(new_ltm)

    def predict(self, x: float) -> float:
        """Output the cell would produce for x, without committing state."""
        new_stm, _ = self.transition(x, self.stm, self.ltm)
        return new_stm

    def step(self, x: float) -> Tuple[float, float]:
        """Advance the cell by one input and commit the new state."""
        self.stm, self.ltm = self.transition(x, self.stm, self.ltm)
        return self.stm, self.ltm

    def run(self, xs: Iterable[float]) -> Tuple[float, float]:
        """Fold `step` over a sequence, returning the final (stm, ltm)."""
        for x in xs:
            self.step(x)
        return self.state

    def to_record(self) -> Dict[str, Any]:
        return {
            "wi": self.wi.tolist(),
            "wstm": self.wstm.tolist(),
            "bstm": self.bstm.tolist(),
            "stm": self.stm,
            "ltm": self.ltm,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "RecurrentCell":
        cell = cls.__new__(cls)
        cell.wi = np.asarray(record["wi"], dtype=float)
        cell.wstm = np.asarray(record["wstm"], dtype=float)
        cell.bstm = np.asarray(record["bstm"], dtype=float)
        for name in ("wi", "wstm", "bstm"):
            if getattr(cell, name).shape != (N_GATES,):
                raise ValueError(f"{name} must have {N_GATES} values")
        cell.set_state(record.get("stm", 0.0), record.get("ltm", 0.0))
        return cell
