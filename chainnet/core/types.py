"""Core typing contracts for chainnet."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Tuple

import numpy as np

Array = np.ndarray

ParamGrad = Tuple[Array, Array]
ParamGradIterator = Iterator[ParamGrad]


class Mode(str, Enum):
    """Execution mode threaded from the top-level call to every operation."""

    TRAINING = "training"
    INFERENCE = "inference"


@dataclass(frozen=True)
class Batch:
    """A single mini-batch of paired rows."""

    inputs: Array
    targets: Array

    def __len__(self) -> int:
        return int(self.inputs.shape[0])


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`chainnet.training.pipelines.run_pipeline`."""

    epochs: int
    best_loss: float
    stopped_early: bool
    metrics_path: str
    manifest_path: str
    summary_path: str = ""


__all__ = ["Array", "Batch", "Mode", "ParamGrad", "ParamGradIterator", "RunResult"]
