"""Utility helpers for dataset factories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping

import numpy as np

from ..core.types import Array


@dataclass(frozen=True)
class SplitIndices:
    """Row indices for the train/test partitions."""

    train: np.ndarray
    test: np.ndarray

    @property
    def sizes(self) -> Mapping[str, int]:
        return {"train": int(self.train.size), "test": int(self.test.size)}


def deterministic_split(n_samples: int, *, test_split: float = 0.2, seed: int = 0) -> SplitIndices:
    """Return deterministic shuffled indices for the requested test ratio."""

    if not 0 < test_split < 1:
        raise ValueError("test_split must be in (0, 1)")

    rng = np.random.default_rng(seed)
    indices = np.arange(n_samples)
    rng.shuffle(indices)

    test_size = min(max(int(round(n_samples * test_split)), 1), n_samples - 1)
    if test_size < 1:
        raise ValueError("Not enough samples for a train/test split")
    return SplitIndices(train=indices[test_size:], test=indices[:test_size])


def split_arrays(
    inputs: Array, targets: Array, splits: SplitIndices
) -> Dict[str, tuple[Array, Array]]:
    return {
        "train": (inputs[splits.train], targets[splits.train]),
        "test": (inputs[splits.test], targets[splits.test]),
    }


def standardize(array: Array) -> tuple[Array, Array, Array]:
    """Apply standard scaling returning the scaled array and its parameters."""

    mean = array.mean(axis=0, keepdims=True)
    std = array.std(axis=0, keepdims=True)
    std = np.where(std == 0, 1.0, std)
    return (array - mean) / std, mean, std


__all__ = ["SplitIndices", "deterministic_split", "split_arrays", "standardize"]
