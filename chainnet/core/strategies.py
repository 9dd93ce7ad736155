"""Calculation strategies wrapped by :class:`chainnet.core.operation.Operation`.

Two kinds exist. A *basic* calculation maps one tensor to one tensor (an
activation, dropout). A *parameterized* calculation also receives a trainable
weight tensor and must be able to compute the gradient with respect to it.
Strategies only compute; caching and shape checks belong to the operation.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Protocol, TypeVar, runtime_checkable

import numpy as np

from .activations import relu, sigmoid, tanh
from .errors import require
from .tensor import column_sums, matmul
from .types import Array, Mode

_D = TypeVar("_D", bound="Duplicable")


class Duplicable:
    """Mixin giving a concrete class a same-type ``duplicate``.

    Containers only know their parts through an interface; they call
    ``duplicate`` on each part and receive an independent copy of the same
    concrete type.
    """

    def duplicate(self: _D) -> _D:
        return copy.deepcopy(self)


@runtime_checkable
class BasicCalculation(Protocol):
    """Single tensor in, single tensor out."""

    def output(self, inputs: Array, mode: Mode) -> Array:
        """Return the forward result for ``inputs``."""

    def input_gradient(self, output_gradient: Array, inputs: Array, output: Array) -> Array:
        """Return dL/d(inputs) given dL/d(output)."""

    def duplicate(self) -> "BasicCalculation":
        """Return an independent copy of the same concrete type."""


@runtime_checkable
class ParameterizedCalculation(Protocol):
    """Tensor plus trainable parameter in, tensor out."""

    def output(self, inputs: Array, parameter: Array) -> Array:
        """Return the forward result for ``inputs`` and ``parameter``."""

    def input_gradient(self, output_gradient: Array, inputs: Array, parameter: Array) -> Array:
        """Return dL/d(inputs) given dL/d(output)."""

    def parameter_gradient(
        self, output_gradient: Array, inputs: Array, parameter: Array
    ) -> Array:
        """Return dL/d(parameter) given dL/d(output)."""

    def duplicate(self) -> "ParameterizedCalculation":
        """Return an independent copy of the same concrete type."""


# ----------------------------------------------------------------------
# Parameterized calculations


@dataclass
class WeightedSum(Duplicable):
    """``inputs @ weights``."""

    def output(self, inputs: Array, parameter: Array) -> Array:
        return matmul(inputs, parameter)

    def input_gradient(self, output_gradient: Array, inputs: Array, parameter: Array) -> Array:
        return matmul(output_gradient, parameter.T)

    def parameter_gradient(
        self, output_gradient: Array, inputs: Array, parameter: Array
    ) -> Array:
        return matmul(inputs.T, output_gradient)


@dataclass
class BiasAdd(Duplicable):
    """Adds a single bias row to every input row."""

    def output(self, inputs: Array, parameter: Array) -> Array:
        require(
            parameter.shape == (1, inputs.shape[1]),
            f"bias of shape {parameter.shape} cannot be added to inputs of shape {inputs.shape}",
        )
        return inputs + parameter

    def input_gradient(self, output_gradient: Array, inputs: Array, parameter: Array) -> Array:
        return np.ones_like(inputs) * output_gradient

    def parameter_gradient(
        self, output_gradient: Array, inputs: Array, parameter: Array
    ) -> Array:
        return column_sums(output_gradient)


# ----------------------------------------------------------------------
# Basic calculations


@dataclass
class Sigmoid(Duplicable):
    def output(self, inputs: Array, mode: Mode) -> Array:
        return sigmoid(inputs)

    def input_gradient(self, output_gradient: Array, inputs: Array, output: Array) -> Array:
        return output * (1.0 - output) * output_gradient


@dataclass
class Tanh(Duplicable):
    def output(self, inputs: Array, mode: Mode) -> Array:
        return tanh(inputs)

    def input_gradient(self, output_gradient: Array, inputs: Array, output: Array) -> Array:
        return (1.0 - output**2) * output_gradient


@dataclass
class ReLU(Duplicable):
    def output(self, inputs: Array, mode: Mode) -> Array:
        return relu(inputs)

    def input_gradient(self, output_gradient: Array, inputs: Array, output: Array) -> Array:
        return (inputs > 0).astype(np.float64) * output_gradient


@dataclass
class Linear(Duplicable):
    """Passthrough used when a layer should stay linear."""

    def output(self, inputs: Array, mode: Mode) -> Array:
        return inputs

    def input_gradient(self, output_gradient: Array, inputs: Array, output: Array) -> Array:
        return output_gradient


@dataclass(eq=False)
class Dropout(Duplicable):
    """Randomly silences entries while training.

    Each entry is kept with probability ``keep_probability``. In inference
    mode no randomness is used: the input is scaled by ``keep_probability``
    to match the expected training-time magnitude and the mask is all ones.
    """

    keep_probability: float
    rng: np.random.Generator = field(default_factory=np.random.default_rng, repr=False)
    mask: Array | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if not 0.0 < self.keep_probability <= 1.0:
            raise ValueError(
                f"keep_probability must be in (0, 1], got {self.keep_probability}"
            )

    def output(self, inputs: Array, mode: Mode) -> Array:
        if mode is Mode.TRAINING:
            draws = self.rng.uniform(0.0, 1.0, size=inputs.shape)
            self.mask = (draws < self.keep_probability).astype(np.float64)
            return inputs * self.mask
        self.mask = np.ones_like(inputs)
        return inputs * self.keep_probability

    def input_gradient(self, output_gradient: Array, inputs: Array, output: Array) -> Array:
        require(self.mask is not None, "dropout backward called before forward")
        return output_gradient * self.mask


_ACTIVATIONS = {
    "sigmoid": Sigmoid,
    "tanh": Tanh,
    "relu": ReLU,
    "linear": Linear,
}


def get_activation(name: str) -> BasicCalculation:
    """Return a fresh activation strategy registered under ``name``."""

    try:
        return _ACTIVATIONS[name.lower()]()
    except KeyError as exc:
        available = ", ".join(sorted(_ACTIVATIONS))
        raise KeyError(f"Unknown activation {name!r}. Available activations: {available}") from exc


__all__ = [
    "BasicCalculation",
    "BiasAdd",
    "Dropout",
    "Duplicable",
    "Linear",
    "ParameterizedCalculation",
    "ReLU",
    "Sigmoid",
    "Tanh",
    "WeightedSum",
    "get_activation",
]
