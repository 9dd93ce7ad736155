"""chainnet public API."""

from .core import activations, strategies, types  # noqa: F401
from .core.errors import (
    ChainNetError,
    ContractViolation,
    LifecycleError,
    ParameterCountMismatch,
    ShapeMismatch,
)
from .training.lifecycle import LayerSpec, declare
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer

__version__ = "0.1.0"

__all__ = [
    "ChainNetError",
    "ContractViolation",
    "LayerSpec",
    "LifecycleError",
    "ParameterCountMismatch",
    "ShapeMismatch",
    "Trainer",
    "activations",
    "declare",
    "load_preset",
    "presets",
    "run_pipeline",
    "strategies",
    "types",
]
