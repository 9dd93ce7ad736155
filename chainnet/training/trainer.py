"""Epoch loop with paired permutation, batching and snapshot-based early stopping."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Sequence

import numpy as np

from ..core.tensor import as_tensor, iter_batches, permute_rows
from ..core.types import Array
from .lifecycle import TrainableNetwork

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpochRecord:
    """Metrics captured at the end of one epoch."""

    epoch: int
    train_loss: float
    test_loss: float | None = None


@dataclass
class TrainResult:
    """Outcome of :meth:`Trainer.fit`."""

    network: TrainableNetwork
    epochs: int
    best_loss: float | None
    stopped_early: bool
    history: List[EpochRecord] = field(default_factory=list)


class Trainer:
    """Run the training loop for a :class:`TrainableNetwork`.

    Every ``eval_every`` epochs the network is snapshotted *before* training,
    and evaluated on the test set *after* training. If the test loss is not
    strictly better than the best seen so far, the snapshot replaces the
    network and training stops.
    """

    def __init__(
        self,
        max_epochs: int,
        eval_every: int = 1,
        batch_size: int = 32,
        seed: int | None = None,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        if max_epochs < 1:
            raise ValueError(f"max_epochs must be positive, got {max_epochs}")
        if eval_every < 1:
            raise ValueError(f"eval_every must be positive, got {eval_every}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.max_epochs = int(max_epochs)
        self.eval_every = int(eval_every)
        self.batch_size = int(batch_size)
        self.seed = seed
        self.callbacks = list(callbacks or [])

    def fit(
        self,
        trainable: TrainableNetwork,
        train_inputs: Array,
        train_targets: Array,
        test_inputs: Array,
        test_targets: Array,
    ) -> TrainResult:
        train_inputs = as_tensor(train_inputs, what="train inputs")
        train_targets = as_tensor(train_targets, what="train targets")
        test_inputs = as_tensor(test_inputs, what="test inputs")
        test_targets = as_tensor(test_targets, what="test targets")
        if train_inputs.shape[0] == 0:
            raise ValueError("training data has no rows")
        if train_inputs.shape[0] != train_targets.shape[0]:
            raise ValueError(
                f"{train_inputs.shape[0]} training inputs but {train_targets.shape[0]} targets"
            )

        rng = np.random.default_rng(self.seed)
        trainable.init(self.max_epochs)
        best_loss: float | None = None
        stopped_early = False
        history: List[EpochRecord] = []
        epoch = 0

        for epoch in range(1, self.max_epochs + 1):
            evaluating = epoch % self.eval_every == 0
            snapshot = trainable.duplicate() if evaluating else None

            inputs, targets = permute_rows(train_inputs, train_targets, rng)
            losses = [
                trainable.forward(batch.inputs, batch.targets).backward().optimise()
                for batch in iter_batches(inputs, targets, self.batch_size)
            ]
            trainable.end_epoch()
            train_loss = float(np.mean(losses))
            self._emit("on_epoch", epoch, {"loss": train_loss})

            if not evaluating:
                history.append(EpochRecord(epoch, train_loss))
                continue

            test_loss = trainable.evaluate(test_inputs, test_targets)
            history.append(EpochRecord(epoch, train_loss, test_loss))
            self._emit("on_evaluate", epoch, {"loss": test_loss})
            if best_loss is None or test_loss < best_loss:
                logger.debug("epoch %d: test loss improved to %.6g", epoch, test_loss)
                best_loss = test_loss
                continue

            logger.info(
                "epoch %d: test loss %.6g did not improve on %.6g; restoring snapshot",
                epoch,
                test_loss,
                best_loss,
            )
            trainable = snapshot
            stopped_early = True
            break

        return TrainResult(
            network=trainable,
            epochs=epoch,
            best_loss=best_loss,
            stopped_early=stopped_early,
            history=history,
        )

    def _emit(self, hook: str, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            handler = getattr(callback, hook, None)
            if handler is not None:
                handler(epoch, metrics)


__all__ = ["EpochRecord", "TrainResult", "Trainer"]
