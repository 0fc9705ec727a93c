# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging
from typing import Any, Sequence

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class Pipeline:
    """
    Chain of estimators fitted in order.

    Every step needs a ``fit(X, Y)`` method. A step that also has
    ``transform(X)`` and is not the last one passes its transformed X on
    to the next step.
    """

    def __init__(self, steps: Sequence[Any], verbose: bool = False) -> None:
        if not steps:
            raise ConfigurationError("Pipeline needs at least one step")
        for step in steps:
            if not callable(getattr(step, "fit", None)):
                raise ConfigurationError(f"Pipeline step {step!r} has no fit() method")
        self.steps = list(steps)
        self.verbose = verbose

    def fit(self, X, Y) -> "Pipeline":
        last = len(self.steps) - 1
        for i, step in enumerate(self.steps):
            if self.verbose:
                logger.info(f"[Pipeline] ({i + 1} of {len(self.steps)}) fitting {step!r}")
            step.fit(X, Y)
            if i < last and callable(getattr(step, "transform", None)):
                X = step.transform(X)
        return self

    def predict(self, x):
        """Push one input through the transforms, then predict with the last step."""
        for step in self.steps[:-1]:
            if callable(getattr(step, "transform", None)):
                x = step.transform([x])[0]
        return self.steps[-1].predict(x)
