"""Optimisers update network parameters in place from their gradients."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Protocol

import numpy as np

from ..core.errors import require
from ..core.network import Network
from ..core.strategies import Duplicable
from ..core.types import Array


class Optimiser(Protocol):
    """Consumes ``(parameter, gradient)`` pairs and mutates the parameters.

    An optimiser is bound to one network for its whole training run so it can
    keep per-parameter state (velocities) and per-run state (schedules).
    """

    def init(self, epoch_count: int) -> None:
        """Reset state before a run of ``epoch_count`` epochs."""

    def step(self, network: Network) -> None:
        """Apply one update to every parameter of ``network``."""

    def end_epoch(self) -> None:
        """Advance per-epoch schedules."""

    def duplicate(self) -> "Optimiser":
        """Return an independent copy of the same concrete type."""


@dataclass
class SGD(Duplicable):
    """``parameter -= learning_rate * gradient``."""

    learning_rate: float = 0.01

    def init(self, epoch_count: int) -> None:
        return None

    def step(self, network: Network) -> None:
        for parameter, gradient in network.parameters_and_gradients():
            parameter -= self.learning_rate * gradient

    def end_epoch(self) -> None:
        return None


@dataclass(eq=False)
class Momentum(Duplicable):
    """SGD with an exponentially averaged velocity per parameter."""

    learning_rate: float = 0.01
    momentum: float = 0.9
    velocities: List[Array] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if not 0.0 <= self.momentum < 1.0:
            raise ValueError(f"momentum must be in [0, 1), got {self.momentum}")

    def init(self, epoch_count: int) -> None:
        self.velocities = []

    def step(self, network: Network) -> None:
        for index, (parameter, gradient) in enumerate(network.parameters_and_gradients()):
            if index == len(self.velocities):
                self.velocities.append(np.zeros_like(parameter))
            velocity = self.velocities[index]
            require(
                velocity.shape == parameter.shape,
                f"momentum state {velocity.shape} does not match parameter {parameter.shape}",
            )
            velocity *= self.momentum
            velocity -= self.learning_rate * gradient
            parameter += velocity

    def end_epoch(self) -> None:
        return None


@dataclass
class DecayingSGD(Duplicable):
    """SGD whose learning rate decays from ``learning_rate`` to ``final_learning_rate``.

    ``init`` spreads the decay over the announced epoch count; ``end_epoch``
    moves one epoch along the schedule. ``decay`` is ``"linear"`` or
    ``"exponential"``.
    """

    learning_rate: float = 0.01
    final_learning_rate: float = 0.001
    decay: str = "linear"
    current_learning_rate: float = field(init=False)
    _per_epoch: float = field(init=False, default=0.0, repr=False)

    def __post_init__(self) -> None:
        if self.decay not in {"linear", "exponential"}:
            raise ValueError(f"decay must be 'linear' or 'exponential', got {self.decay!r}")
        if self.final_learning_rate > self.learning_rate:
            raise ValueError("final_learning_rate must not exceed learning_rate")
        if self.decay == "exponential" and min(self.learning_rate, self.final_learning_rate) <= 0:
            raise ValueError("exponential decay requires positive learning rates")
        self.current_learning_rate = self.learning_rate

    def init(self, epoch_count: int) -> None:
        self.current_learning_rate = self.learning_rate
        steps = max(1, epoch_count - 1)
        if self.decay == "linear":
            self._per_epoch = (self.learning_rate - self.final_learning_rate) / steps
        else:
            ratio = self.final_learning_rate / self.learning_rate
            self._per_epoch = math.pow(ratio, 1.0 / steps)

    def step(self, network: Network) -> None:
        for parameter, gradient in network.parameters_and_gradients():
            parameter -= self.current_learning_rate * gradient

    def end_epoch(self) -> None:
        if self.decay == "linear":
            updated = self.current_learning_rate - self._per_epoch
            self.current_learning_rate = max(updated, self.final_learning_rate)
        elif self._per_epoch:
            updated = self.current_learning_rate * self._per_epoch
            self.current_learning_rate = max(updated, self.final_learning_rate)


_OPTIMISERS: Dict[str, Callable[..., Optimiser]] = {
    "sgd": SGD,
    "momentum": Momentum,
    "decay": DecayingSGD,
}


def build_optimiser(name: str, **options: object) -> Optimiser:
    """Return a fresh optimiser registered under ``name``."""

    key = name.lower()
    if key not in _OPTIMISERS:
        available = ", ".join(sorted(_OPTIMISERS))
        raise KeyError(f"Unknown optimiser {name!r}. Available optimisers: {available}")
    return _OPTIMISERS[key](**options)


__all__ = ["DecayingSGD", "Momentum", "Optimiser", "SGD", "build_optimiser"]
