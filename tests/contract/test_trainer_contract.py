import numpy as np
import pytest

from chainnet.reporting.metrics import MetricsCapture
from chainnet.training.lifecycle import InitialisedNetwork, LayerSpec, declare
from chainnet.training.optimisers import SGD
from chainnet.training.trainer import Trainer


def _linear_trainable(lr=0.1):
    network = declare([LayerSpec(1, "linear")], seed=0)
    return InitialisedNetwork.with_iterator(network, 1, [1.0, 1.0]).with_optimiser(SGD(lr))


def test_early_stopping_restores_snapshot():
    # Training pulls the prediction towards 0 while the test target is 1:
    # predictions go 2.0 -> 1.2 -> 0.72, so the test loss is 0.04 after
    # epoch 1 and 0.0784 after epoch 2.
    capture = MetricsCapture()
    trainer = Trainer(max_epochs=5, eval_every=1, batch_size=1, seed=0, callbacks=[capture])
    result = trainer.fit(
        _linear_trainable(),
        np.array([[1.0]]),
        np.array([[0.0]]),
        np.array([[1.0]]),
        np.array([[1.0]]),
    )
    assert result.stopped_early
    assert result.epochs == 2
    assert result.best_loss == pytest.approx(0.04)
    np.testing.assert_allclose(list(result.network.iterate_parameters()), [0.6, 0.6])
    assert [epoch for epoch, _ in capture.test] == [1, 2]
    assert capture.test[1][1]["loss"] == pytest.approx(0.0784)


def test_runs_all_epochs_while_improving():
    trainer = Trainer(max_epochs=4, eval_every=2, batch_size=1, seed=0)
    result = trainer.fit(
        _linear_trainable(lr=0.05),
        np.array([[1.0]]),
        np.array([[0.0]]),
        np.array([[1.0]]),
        np.array([[0.0]]),
    )
    assert not result.stopped_early
    assert result.epochs == 4
    assert [record.epoch for record in result.history] == [1, 2, 3, 4]
    assert [record.test_loss is not None for record in result.history] == [
        False,
        True,
        False,
        True,
    ]
    assert not result.network.in_progress


def test_training_is_reproducible_with_seed():
    rng = np.random.default_rng(0)
    x = rng.standard_normal((32, 2))
    y = x[:, :1] - x[:, 1:]

    def run():
        trainable = declare([LayerSpec(4, "tanh"), LayerSpec(1, "linear")], seed=3).initialise(2)
        trainer = Trainer(max_epochs=3, eval_every=3, batch_size=5, seed=11)
        result = trainer.fit(trainable.with_optimiser(SGD(0.05)), x, y, x, y)
        return list(result.network.iterate_parameters())

    assert run() == run()


def test_trainer_validates_arguments():
    with pytest.raises(ValueError):
        Trainer(max_epochs=0)
    with pytest.raises(ValueError):
        Trainer(max_epochs=1, batch_size=0)
    trainer = Trainer(max_epochs=1)
    with pytest.raises(ValueError):
        trainer.fit(
            _linear_trainable(),
            np.ones((3, 1)),
            np.ones((2, 1)),
            np.ones((1, 1)),
            np.ones((1, 1)),
        )
