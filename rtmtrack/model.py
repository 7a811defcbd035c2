"""Common base for models driven by an inference runner."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Optional

import numpy as np

logger = logging.getLogger(__name__)

Outputs = list[tuple[str, np.ndarray]]
Runner = Callable[[np.ndarray], Any]


class ModelNotLoadedError(Exception):
    """Raised when inference is requested before a runner has been loaded."""


class ModelBase:
    """Holds an inference runner and normalises what it returns.

    A runner is any callable that takes an NCHW input tensor and returns its
    outputs, either as a mapping of output name to array or as a sequence of
    arrays in output order.
    """

    def __init__(self, runner: Optional[Runner] = None):
        self.runner: Optional[Runner] = None
        if runner is not None:
            self.load(runner)

    def load(self, runner: Runner) -> None:
        """Install the runner that performs inference."""
        if not callable(runner):
            raise TypeError("a runner must be callable")
        self.runner = runner
        logger.debug("model loaded: %r", runner)

    def run(self, tensor: np.ndarray) -> Outputs:
        """Run inference and return the outputs as ``(name, array)`` pairs in order."""
        if self.runner is None:
            raise ModelNotLoadedError("no model has been loaded")
        raw = self.runner(tensor)
        if isinstance(raw, Mapping):
            return [(str(name), np.asarray(value)) for name, value in raw.items()]
        return [(f"output{i}", np.asarray(value)) for i, value in enumerate(raw)]