"""Core numerical primitives for chainnet."""

from . import activations, errors, strategies, tensor, types
from .layers import Dense, Layer, WithDropout, dense_layer, dropout_layer
from .network import Network
from .operation import Operation

__all__ = [
    "Dense",
    "Layer",
    "Network",
    "Operation",
    "WithDropout",
    "activations",
    "dense_layer",
    "dropout_layer",
    "errors",
    "strategies",
    "tensor",
    "types",
]
