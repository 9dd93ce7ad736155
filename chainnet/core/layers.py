"""Layers: lazily built, fixed sequences of operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Protocol

import numpy as np

from .errors import require, require_same_shape
from .operation import Operation
from .strategies import (
    BasicCalculation,
    BiasAdd,
    Dropout,
    Duplicable,
    Sigmoid,
    WeightedSum,
    get_activation,
)
from .types import Array, Mode, ParamGradIterator

logger = logging.getLogger(__name__)


class LayerSetup(Protocol):
    """Builds the concrete operations of a layer from its first input."""

    def build(self, neurons: int, inputs: Array, seed: int | None) -> List[Operation]:
        """Return the operation sequence for a layer of ``neurons`` units."""

    def duplicate(self) -> "LayerSetup":
        """Return an independent copy of the same concrete type."""


@dataclass
class Dense(Duplicable):
    """Fully connected setup: weighted sum, bias, then ``activation``."""

    activation: BasicCalculation = field(default_factory=Sigmoid)

    def build(self, neurons: int, inputs: Array, seed: int | None) -> List[Operation]:
        rng = np.random.default_rng(seed)
        features = int(inputs.shape[1])
        weights = rng.standard_normal((features, neurons))
        bias = rng.standard_normal((1, neurons))
        return [
            Operation.parameterized(WeightedSum(), weights),
            Operation.parameterized(BiasAdd(), bias),
            Operation.basic(self.activation.duplicate()),
        ]


@dataclass
class WithDropout(Duplicable):
    """Decorates another setup by appending a dropout operation."""

    inner: LayerSetup
    keep_probability: float

    def __post_init__(self) -> None:
        if not 0.0 < self.keep_probability <= 1.0:
            raise ValueError(
                f"keep_probability must be in (0, 1], got {self.keep_probability}"
            )

    def build(self, neurons: int, inputs: Array, seed: int | None) -> List[Operation]:
        operations = self.inner.build(neurons, inputs, seed)
        # Child stream of the layer seed, never equal to another layer's seed.
        dropout_seed = None if seed is None else np.random.SeedSequence(seed).spawn(1)[0]
        dropout = Dropout(self.keep_probability, rng=np.random.default_rng(dropout_seed))
        operations.append(Operation.basic(dropout))
        return operations


class Layer:
    """A group of operations forming one network layer.

    The operations are created on the first forward call from the observed
    input feature count and are never rebuilt afterwards.
    """

    def __init__(self, neurons: int, setup: LayerSetup | None = None, seed: int | None = None):
        if neurons < 1:
            raise ValueError(f"a layer needs at least one neuron, got {neurons}")
        self.neurons = int(neurons)
        self.setup = setup if setup is not None else Dense()
        self.seed = seed
        self._operations: List[Operation] | None = None
        self._output: Array | None = None

    @property
    def is_built(self) -> bool:
        return self._operations is not None

    @property
    def operations(self) -> List[Operation]:
        require(self._operations is not None, "layer operations accessed before first forward")
        return self._operations

    @property
    def input_features(self) -> int:
        first = self.operations[0]
        if first.is_parameterized:
            return int(first.parameter.shape[0])
        return int(first.input.shape[1])

    @property
    def output(self) -> Array:
        require(self._output is not None, "layer output read before forward")
        return self._output

    def forward(self, inputs: Array, mode: Mode = Mode.INFERENCE) -> Array:
        if self._operations is None:
            self._operations = list(self.setup.build(self.neurons, inputs, self.seed))
            require(len(self._operations) > 0, "layer setup produced no operations")
            logger.debug(
                "built layer of %d neurons for %d input features: %s",
                self.neurons,
                inputs.shape[1],
                self._operations,
            )
        x = inputs
        for operation in self._operations:
            x = operation.forward(x, mode)
        self._output = x
        return x

    def backward(self, output_gradient: Array) -> Array:
        require_same_shape(self.output.shape, output_gradient.shape, "layer backward")
        gradient = output_gradient
        for operation in reversed(self.operations):
            gradient = operation.backward(gradient)
        return gradient

    def parameters_and_gradients(self) -> ParamGradIterator:
        for operation in self.operations:
            if operation.is_parameterized:
                yield operation.parameter, operation.parameter_gradient

    def parameters(self) -> Iterator[Array]:
        for operation in self.operations:
            if operation.is_parameterized:
                yield operation.parameter

    def duplicate(self) -> "Layer":
        clone = Layer(self.neurons, self.setup.duplicate(), self.seed)
        if self._operations is not None:
            clone._operations = [operation.duplicate() for operation in self._operations]
        if self._output is not None:
            clone._output = self._output.copy()
        return clone

    def __repr__(self) -> str:
        return f"Layer(neurons={self.neurons}, setup={self.setup!r}, built={self.is_built})"


def dense_layer(
    neurons: int, activation: str | BasicCalculation = "sigmoid", seed: int | None = None
) -> Layer:
    """Return a fully connected layer."""

    if isinstance(activation, str):
        activation = get_activation(activation)
    return Layer(neurons, Dense(activation=activation), seed=seed)


def dropout_layer(
    neurons: int,
    keep_probability: float,
    activation: str | BasicCalculation = "sigmoid",
    seed: int | None = None,
) -> Layer:
    """Return a fully connected layer followed by dropout."""

    if isinstance(activation, str):
        activation = get_activation(activation)
    setup = WithDropout(Dense(activation=activation), keep_probability=keep_probability)
    return Layer(neurons, setup, seed=seed)


__all__ = ["Dense", "Layer", "LayerSetup", "WithDropout", "dense_layer", "dropout_layer"]
