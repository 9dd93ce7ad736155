"""Pure in-memory synthetic datasets."""

from __future__ import annotations

import numpy as np

from .registry import DataSpec, DatasetSpec, register_dataset
from .utils import deterministic_split, split_arrays, standardize


@register_dataset("sine")
def make_sine(
    freq: float = 1.0,
    n_points: int = 256,
    noise: float = 0.05,
    seed: int = 0,
    test_split: float = 0.2,
) -> DatasetSpec:
    """``y = sin(freq * pi * x)`` plus Gaussian noise on ``x`` in ``[-1, 1]``."""

    rng = np.random.default_rng(seed)
    x = np.linspace(-1.0, 1.0, n_points).reshape(-1, 1)
    y = np.sin(freq * np.pi * x) + noise * rng.standard_normal(size=x.shape)
    splits = deterministic_split(n_points, test_split=test_split, seed=seed)
    return DatasetSpec(
        name="sine",
        data_spec=DataSpec(d_in=1, d_out=1, task_type="regression"),
        provenance={
            "type": "synthetic",
            "freq": freq,
            "n_points": n_points,
            "noise": noise,
            "seed": seed,
            "test_split": test_split,
        },
        arrays=split_arrays(x, y, splits),
    )


@register_dataset("xor")
def make_xor(
    n_points: int = 200,
    noise: float = 0.1,
    seed: int = 0,
    test_split: float = 0.2,
) -> DatasetSpec:
    """Noisy copies of the four XOR corners with binary targets."""

    rng = np.random.default_rng(seed)
    corners = rng.integers(0, 2, size=(n_points, 2))
    x = corners + noise * rng.standard_normal(size=corners.shape)
    y = np.logical_xor(corners[:, 0], corners[:, 1]).astype(np.float64).reshape(-1, 1)
    splits = deterministic_split(n_points, test_split=test_split, seed=seed)
    return DatasetSpec(
        name="xor",
        data_spec=DataSpec(d_in=2, d_out=1, task_type="binary"),
        provenance={
            "type": "synthetic",
            "n_points": n_points,
            "noise": noise,
            "seed": seed,
            "test_split": test_split,
        },
        arrays=split_arrays(x, y, splits),
    )


@register_dataset("blobs")
def make_blobs(
    n_points: int = 256,
    d_in: int = 4,
    separation: float = 1.5,
    seed: int = 0,
    test_split: float = 0.2,
) -> DatasetSpec:
    """Two standardised Gaussian clusters, one per binary class."""

    rng = np.random.default_rng(seed)
    half = n_points // 2
    centre = np.full(d_in, separation / 2.0)
    x0 = rng.normal(-centre, 1.0, size=(half, d_in))
    x1 = rng.normal(centre, 1.0, size=(n_points - half, d_in))
    x, mean, std = standardize(np.vstack([x0, x1]))
    y = np.concatenate([np.zeros(half), np.ones(n_points - half)]).reshape(-1, 1)
    splits = deterministic_split(n_points, test_split=test_split, seed=seed)
    return DatasetSpec(
        name="blobs",
        data_spec=DataSpec(
            d_in=d_in,
            d_out=1,
            task_type="binary",
            extra={"mean": mean.ravel().tolist(), "std": std.ravel().tolist()},
        ),
        provenance={
            "type": "synthetic",
            "n_points": n_points,
            "d_in": d_in,
            "separation": separation,
            "seed": seed,
            "test_split": test_split,
        },
        arrays=split_arrays(x, y, splits),
    )
