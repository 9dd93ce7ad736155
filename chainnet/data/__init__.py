"""Dataset registry and synthetic datasets."""

# Ensure built-in datasets register themselves when the package is imported.
from . import synthetic as _synthetic  # noqa: F401
from .registry import DatasetSpec, DataSpec, available_datasets, get_dataset, register_dataset

__all__ = [
    "DataSpec",
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
