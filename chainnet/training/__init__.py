"""Losses, optimisers, the network lifecycle and the training loop."""

from .lifecycle import (
    BackwardState,
    ForwardState,
    InitialisedNetwork,
    LayerSpec,
    TrainableNetwork,
    UninitialisedNetwork,
    declare,
)
from .losses import REGISTRY as LOSSES
from .losses import Loss
from .optimisers import SGD, DecayingSGD, Momentum, build_optimiser
from .trainer import EpochRecord, Trainer, TrainResult

__all__ = [
    "BackwardState",
    "DecayingSGD",
    "EpochRecord",
    "ForwardState",
    "InitialisedNetwork",
    "LOSSES",
    "LayerSpec",
    "Loss",
    "Momentum",
    "SGD",
    "TrainResult",
    "TrainableNetwork",
    "Trainer",
    "UninitialisedNetwork",
    "build_optimiser",
    "declare",
]
