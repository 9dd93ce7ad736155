"""Rank-2 tensor helpers: construction, shape contracts, permutation, batching."""

from __future__ import annotations

from typing import Iterator

import numpy as np

from .errors import require
from .types import Array, Batch


def as_tensor(values, *, what: str = "tensor") -> Array:
    """Return ``values`` as a ``float64`` array with exactly two dimensions."""

    array = np.array(values, dtype=np.float64)
    require(array.ndim == 2, f"{what} must be two-dimensional, got shape {array.shape}")
    return array


def matmul(left: Array, right: Array) -> Array:
    """Matrix product that insists on equal inner dimensions."""

    require(
        left.shape[1] == right.shape[0],
        f"matmul: inner dimensions differ for {left.shape} @ {right.shape}",
    )
    return left @ right


def column_sums(gradient: Array) -> Array:
    """Sum ``gradient`` over rows and keep the result as a single row."""

    return gradient.sum(axis=0).reshape(1, -1)


def permute_rows(
    inputs: Array, targets: Array, rng: np.random.Generator
) -> tuple[Array, Array]:
    """Shuffle ``inputs`` and ``targets`` together, keeping rows paired.

    The two arrays are zipped column-wise, the paired rows are shuffled by
    ``rng`` and the result is split back into two arrays.
    """

    require(
        inputs.shape[0] == targets.shape[0],
        f"permute_rows: {inputs.shape[0]} input rows but {targets.shape[0]} target rows",
    )
    paired = np.concatenate([inputs, targets], axis=1)
    rng.shuffle(paired, axis=0)
    split = inputs.shape[1]
    return paired[:, :split].copy(), paired[:, split:].copy()


def iter_batches(inputs: Array, targets: Array, batch_size: int) -> Iterator[Batch]:
    """Yield row-preserving chunks of ``batch_size``; the last may be smaller."""

    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    require(
        inputs.shape[0] == targets.shape[0],
        f"iter_batches: {inputs.shape[0]} input rows but {targets.shape[0]} target rows",
    )
    for start in range(0, inputs.shape[0], batch_size):
        end = start + batch_size
        yield Batch(inputs=inputs[start:end], targets=targets[start:end])


__all__ = ["as_tensor", "column_sums", "iter_batches", "matmul", "permute_rows"]
