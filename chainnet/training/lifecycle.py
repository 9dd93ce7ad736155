"""Typestate wrappers that govern how a network may be used.

A network moves through explicit states, each represented by its own class::

    UninitialisedNetwork --initialise()--> InitialisedNetwork
    InitialisedNetwork --with_optimiser()--> TrainableNetwork
    TrainableNetwork --forward()--> ForwardState --backward()--> BackwardState
    BackwardState --optimise()--> (back to the TrainableNetwork)
    TrainableNetwork --into_initialised()--> InitialisedNetwork

Transitions that change representation *consume* the wrapper they are called
on: the network is moved into the new wrapper and any further use of the old
one raises :class:`~chainnet.core.errors.LifecycleError`. A training step
*borrows* the trainable network instead: while a ``ForwardState`` or
``BackwardState`` is outstanding the trainable is busy and rejects a second
step, evaluation, snapshots and epoch bookkeeping.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Sequence

import numpy as np

from ..core.errors import LifecycleError, ParameterCountMismatch, ShapeMismatch, require
from ..core.layers import Layer, dense_layer, dropout_layer
from ..core.network import Network
from ..core.types import Array, Mode
from .losses import REGISTRY as LOSS_REGISTRY
from .losses import Loss
from .optimisers import Optimiser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayerSpec:
    """Architecture description of one layer."""

    neurons: int
    activation: str = "sigmoid"
    keep_probability: float | None = None

    def build(self, seed: int | None = None) -> Layer:
        if self.keep_probability is None:
            return dense_layer(self.neurons, self.activation, seed=seed)
        return dropout_layer(self.neurons, self.keep_probability, self.activation, seed=seed)


def declare(
    layers: Sequence[LayerSpec | Layer],
    *,
    loss: str | Loss = "mse",
    seed: int | None = None,
) -> "UninitialisedNetwork":
    """Declare a network architecture without materialising any parameters.

    When ``seed`` is given, layer ``i`` built from a :class:`LayerSpec` is
    seeded with ``seed + i``; otherwise every layer draws fresh entropy.
    """

    built: List[Layer] = []
    for index, layer in enumerate(layers):
        if isinstance(layer, LayerSpec):
            layer = layer.build(None if seed is None else seed + index)
        built.append(layer)
    loss_instance = LOSS_REGISTRY.resolve(loss) if isinstance(loss, str) else loss
    return UninitialisedNetwork(Network(built, loss_instance))


# ----------------------------------------------------------------------
# Shared helpers


def _checked_inputs(network: Network, inputs: Array) -> Array:
    array = np.asarray(inputs, dtype=np.float64)
    expected = network.input_features
    if array.ndim != 2 or array.shape[1] != expected:
        raise ShapeMismatch((None, expected), array.shape)
    return array


def _checked_targets(predictions: Array, targets: Array) -> Array:
    array = np.asarray(targets, dtype=np.float64)
    if array.shape != predictions.shape:
        raise ShapeMismatch(predictions.shape, array.shape)
    return array


def _predict(network: Network, inputs: Array) -> Array:
    return network.forward(_checked_inputs(network, inputs), Mode.INFERENCE)


def _evaluate(network: Network, inputs: Array, targets: Array) -> float:
    predictions = _predict(network, inputs)
    return network.loss.forward(predictions, _checked_targets(predictions, targets))


def _iterate_parameters(network: Network) -> Iterator[float]:
    for parameter in network.parameters():
        for value in parameter.ravel(order="C"):
            yield float(value)


def _load_parameters(network: Network, values: Iterable[float]) -> None:
    expected = network.parameter_count
    stream = iter(values)
    staged: List[float] = []
    for value in stream:
        if len(staged) == expected:
            raise ParameterCountMismatch(expected, expected + 1)
        staged.append(float(value))
    if len(staged) != expected:
        raise ParameterCountMismatch(expected, len(staged))
    offset = 0
    for parameter in network.parameters():
        size = parameter.size
        parameter[...] = np.asarray(staged[offset : offset + size]).reshape(parameter.shape)
        offset += size


class _NetworkState:
    """Owns a network until a consuming transition moves it out."""

    def __init__(self, network: Network) -> None:
        self._network: Network | None = network

    @property
    def consumed(self) -> bool:
        return self._network is None

    def _live(self) -> Network:
        if self._network is None:
            raise LifecycleError(
                f"this {type(self).__name__} was consumed by an earlier transition"
            )
        return self._network

    def _take(self) -> Network:
        network = self._live()
        self._network = None
        return network


# ----------------------------------------------------------------------
# States


class UninitialisedNetwork(_NetworkState):
    """Declared architecture; no operations or parameters exist yet."""

    def __init__(self, network: Network) -> None:
        require(
            not any(layer.is_built for layer in network.layers),
            "an uninitialised network must not contain built layers",
        )
        super().__init__(network)

    @property
    def layers(self) -> Sequence[Layer]:
        return tuple(self._live().layers)

    def initialise(self, n_features: int) -> "InitialisedNetwork":
        """Materialise every layer for inputs with ``n_features`` columns."""

        if n_features < 1:
            raise ValueError(f"n_features must be positive, got {n_features}")
        network = self._take()
        network.forward(np.zeros((1, n_features)), Mode.INFERENCE)
        logger.debug(
            "initialised network for %d features with %d parameters",
            n_features,
            network.parameter_count,
        )
        return InitialisedNetwork(network)

    def predict(self, inputs: Array) -> Array:
        raise LifecycleError("cannot predict with an uninitialised network; call initialise()")


class InitialisedNetwork(_NetworkState):
    """Parameters exist; supports prediction and parameter save/restore."""

    def __init__(self, network: Network) -> None:
        require(network.is_built, "an initialised network must have every layer built")
        super().__init__(network)

    @classmethod
    def with_iterator(
        cls,
        uninitialised: UninitialisedNetwork,
        n_features: int,
        values: Iterable[float],
    ) -> "InitialisedNetwork":
        """Initialise ``uninitialised`` and overwrite its parameters from ``values``.

        ``values`` must follow :meth:`iterate_parameters` order and supply
        exactly one value per parameter, otherwise
        :class:`ParameterCountMismatch` is raised.
        """

        initialised = uninitialised.initialise(n_features)
        _load_parameters(initialised._live(), values)
        return initialised

    @property
    def input_features(self) -> int:
        return self._live().input_features

    @property
    def parameter_count(self) -> int:
        return self._live().parameter_count

    @property
    def layers(self) -> Sequence[Layer]:
        return tuple(self._live().layers)

    def predict(self, inputs: Array) -> Array:
        return _predict(self._live(), inputs)

    def evaluate(self, inputs: Array, targets: Array) -> float:
        return _evaluate(self._live(), inputs, targets)

    def iterate_parameters(self) -> Iterator[float]:
        """Yield every parameter value: layer, then operation, then row-major."""

        return _iterate_parameters(self._live())

    def with_optimiser(self, optimiser: Optimiser) -> "TrainableNetwork":
        return TrainableNetwork(self._take(), optimiser)


class TrainableNetwork(_NetworkState):
    """An initialised network bound to one optimiser instance."""

    def __init__(self, network: Network, optimiser: Optimiser) -> None:
        require(network.is_built, "a trainable network must have every layer built")
        super().__init__(network)
        self.optimiser = optimiser
        self._busy = False

    @property
    def in_progress(self) -> bool:
        return self._busy

    @property
    def input_features(self) -> int:
        return self._idle().input_features

    @property
    def parameter_count(self) -> int:
        return self._idle().parameter_count

    def _idle(self) -> Network:
        network = self._live()
        if self._busy:
            raise LifecycleError("a training step is already in progress on this network")
        return network

    def _release(self) -> None:
        self._busy = False

    def init(self, epoch_count: int) -> None:
        self._idle()
        self.optimiser.init(epoch_count)

    def end_epoch(self) -> None:
        self._idle()
        self.optimiser.end_epoch()

    def predict(self, inputs: Array) -> Array:
        return _predict(self._idle(), inputs)

    def evaluate(self, inputs: Array, targets: Array) -> float:
        return _evaluate(self._idle(), inputs, targets)

    def iterate_parameters(self) -> Iterator[float]:
        return _iterate_parameters(self._idle())

    def forward(self, inputs: Array, targets: Array) -> "ForwardState":
        """Start a training step; the network stays busy until it is optimised."""

        network = self._idle()
        inputs = _checked_inputs(network, inputs)
        self._busy = True
        try:
            predictions = network.forward(inputs, Mode.TRAINING)
            loss = network.loss.forward(predictions, _checked_targets(predictions, targets))
        except BaseException:
            self._busy = False
            raise
        return ForwardState(self, network, predictions, loss)

    def train_step(self, inputs: Array, targets: Array) -> float:
        return self.forward(inputs, targets).backward().optimise()

    def duplicate(self) -> "TrainableNetwork":
        network = self._idle()
        return TrainableNetwork(network.duplicate(), self.optimiser.duplicate())

    def into_initialised(self) -> InitialisedNetwork:
        """Drop the optimiser and return a predict-only network."""

        self._idle()
        return InitialisedNetwork(self._take())


class _StepState:
    def __init__(self, owner: TrainableNetwork, network: Network, loss: float) -> None:
        self._owner = owner
        self._network = network
        self.loss = loss
        self._consumed = False

    def _consume(self) -> Network:
        if self._consumed:
            raise LifecycleError(
                f"this {type(self).__name__} was consumed by an earlier transition"
            )
        self._consumed = True
        return self._network

    def abandon(self) -> None:
        """Give up on the step and release the trainable network."""

        self._consume()
        self._owner._release()


class ForwardState(_StepState):
    """Forward pass done; holds predictions and the batch loss."""

    def __init__(
        self, owner: TrainableNetwork, network: Network, predictions: Array, loss: float
    ) -> None:
        super().__init__(owner, network, loss)
        self._predictions = predictions

    @property
    def predictions(self) -> Array:
        return self._predictions.copy()

    def backward(self) -> "BackwardState":
        network = self._consume()
        try:
            network.backward()
        except BaseException:
            self._owner._release()
            raise
        return BackwardState(self._owner, network, self.loss)


class BackwardState(_StepState):
    """Gradients computed; ready to optimise."""

    def optimise(self) -> float:
        network = self._consume()
        try:
            self._owner.optimiser.step(network)
        finally:
            self._owner._release()
        return self.loss


__all__ = [
    "BackwardState",
    "ForwardState",
    "InitialisedNetwork",
    "LayerSpec",
    "TrainableNetwork",
    "UninitialisedNetwork",
    "declare",
]
