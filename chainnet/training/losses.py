"""Loss strategies, the caching :class:`Loss` wrapper and the loss registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Protocol

import numpy as np

from ..core.errors import require, require_same_shape
from ..core.strategies import Duplicable
from ..core.types import Array


class LossStrategy(Protocol):
    """Scalar error and its gradient with respect to the predictions."""

    def output(self, prediction: Array, target: Array) -> float:
        """Return the scalar loss."""

    def gradient(self, prediction: Array, target: Array) -> Array:
        """Return dL/d(prediction)."""

    def duplicate(self) -> "LossStrategy":
        """Return an independent copy of the same concrete type."""


@dataclass
class MeanSquaredError(Duplicable):
    """``mean((target - prediction)^2)``; gradient scaled by the row count."""

    def output(self, prediction: Array, target: Array) -> float:
        return float(np.mean(np.square(target - prediction)))

    def gradient(self, prediction: Array, target: Array) -> Array:
        return 2.0 * (prediction - target) / prediction.shape[0]


@dataclass
class MeanAbsoluteError(Duplicable):
    def output(self, prediction: Array, target: Array) -> float:
        return float(np.mean(np.abs(target - prediction)))

    def gradient(self, prediction: Array, target: Array) -> Array:
        return np.sign(prediction - target) / prediction.shape[0]


@dataclass
class Huber(Duplicable):
    """Quadratic near zero, linear beyond ``delta``."""

    delta: float = 1.0

    def output(self, prediction: Array, target: Array) -> float:
        abs_diff = np.abs(prediction - target)
        quadratic = np.minimum(abs_diff, self.delta)
        linear = abs_diff - quadratic
        return float(np.mean(0.5 * quadratic**2 + self.delta * linear))

    def gradient(self, prediction: Array, target: Array) -> Array:
        diff = prediction - target
        clipped = np.where(np.abs(diff) <= self.delta, diff, self.delta * np.sign(diff))
        return clipped / prediction.shape[0]


@dataclass
class BinaryCrossEntropy(Duplicable):
    """Cross-entropy on probabilities (e.g. sigmoid outputs)."""

    eps: float = 1e-9

    def output(self, prediction: Array, target: Array) -> float:
        probs = np.clip(prediction, self.eps, 1.0 - self.eps)
        return float(-np.mean(target * np.log(probs) + (1.0 - target) * np.log(1.0 - probs)))

    def gradient(self, prediction: Array, target: Array) -> Array:
        probs = np.clip(prediction, self.eps, 1.0 - self.eps)
        return (probs - target) / (probs * (1.0 - probs)) / prediction.shape[0]


class Loss:
    """Caches the last prediction/target pair so backward can seed the network."""

    def __init__(self, strategy: LossStrategy | None = None) -> None:
        self.strategy = strategy if strategy is not None else MeanSquaredError()
        self._prediction: Array | None = None
        self._target: Array | None = None

    def forward(self, prediction: Array, target: Array) -> float:
        require_same_shape(prediction.shape, target.shape, "loss forward")
        self._prediction = np.array(prediction, dtype=np.float64)
        self._target = np.array(target, dtype=np.float64)
        return self.strategy.output(self._prediction, self._target)

    def backward(self) -> Array:
        require(
            self._prediction is not None and self._target is not None,
            "loss backward called before forward",
        )
        gradient = self.strategy.gradient(self._prediction, self._target)
        require_same_shape(self._prediction.shape, gradient.shape, "loss gradient")
        return gradient

    def duplicate(self) -> "Loss":
        clone = Loss(self.strategy.duplicate())
        if self._prediction is not None:
            clone._prediction = self._prediction.copy()
            clone._target = self._target.copy()
        return clone

    def __repr__(self) -> str:
        return f"Loss({self.strategy!r})"


LossFactory = Callable[..., LossStrategy]


class LossRegistry:
    """Central registry for loss strategies."""

    def __init__(self) -> None:
        self._registry: Dict[str, LossFactory] = {}

    def register(self, name: str, factory: LossFactory) -> None:
        self._registry[name] = factory

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, name: str, **options: object) -> Loss:
        """Return a fresh :class:`Loss` for ``name``."""

        key = name.lower()
        if key not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown loss {name!r}. Available losses: {available}")
        return Loss(self._registry[key](**options))


REGISTRY = LossRegistry()
REGISTRY.register("mse", MeanSquaredError)
REGISTRY.register("mae", MeanAbsoluteError)
REGISTRY.register("huber", Huber)
REGISTRY.register("bce", BinaryCrossEntropy)

__all__ = [
    "BinaryCrossEntropy",
    "Huber",
    "Loss",
    "LossRegistry",
    "LossStrategy",
    "MeanAbsoluteError",
    "MeanSquaredError",
    "REGISTRY",
]
