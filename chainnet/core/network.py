"""Networks: an ordered chain of layers plus a loss."""

from __future__ import annotations

from itertools import chain
from typing import TYPE_CHECKING, Iterator, List, Sequence

from .errors import require
from .layers import Layer
from .types import Array, Mode, ParamGradIterator

if TYPE_CHECKING:
    from ..training.losses import Loss


class Network:
    """Composes layer-level passes into network-level passes.

    Layer boundaries are not checked up front; every operation asserts the
    shapes it receives, so a mismatch surfaces at the first offending layer.
    """

    def __init__(self, layers: Sequence[Layer], loss: "Loss") -> None:
        if not layers:
            raise ValueError("a network needs at least one layer")
        self.layers: List[Layer] = list(layers)
        self.loss = loss

    @property
    def is_built(self) -> bool:
        return all(layer.is_built for layer in self.layers)

    @property
    def input_features(self) -> int:
        return self.layers[0].input_features

    @property
    def parameter_count(self) -> int:
        return int(sum(parameter.size for parameter in self.parameters()))

    def forward(self, batch: Array, mode: Mode = Mode.INFERENCE) -> Array:
        x = batch
        for layer in self.layers:
            x = layer.forward(x, mode)
        return x

    def train(self, batch: Array, targets: Array) -> float:
        """Run one training-mode data pass and return the batch loss."""

        predictions = self.forward(batch, Mode.TRAINING)
        loss = self.loss.forward(predictions, targets)
        self.backward()
        return loss

    def backward(self) -> None:
        gradient = self.loss.backward()
        for layer in reversed(self.layers):
            gradient = layer.backward(gradient)

    def parameters_and_gradients(self) -> ParamGradIterator:
        return chain.from_iterable(layer.parameters_and_gradients() for layer in self.layers)

    def parameters(self) -> Iterator[Array]:
        require(self.is_built, "network parameters accessed before initialisation")
        return chain.from_iterable(layer.parameters() for layer in self.layers)

    def duplicate(self) -> "Network":
        return Network([layer.duplicate() for layer in self.layers], self.loss.duplicate())

    def __repr__(self) -> str:
        return f"Network(layers={self.layers!r}, loss={self.loss!r})"


__all__ = ["Network"]
