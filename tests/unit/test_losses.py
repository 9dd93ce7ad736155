import numpy as np
import pytest

from chainnet.core.errors import ContractViolation
from chainnet.training.losses import (
    REGISTRY,
    BinaryCrossEntropy,
    Huber,
    Loss,
    MeanAbsoluteError,
    MeanSquaredError,
)


def test_mse_single_value():
    loss = Loss(MeanSquaredError())
    assert loss.forward(np.array([[1.0]]), np.array([[0.0]])) == pytest.approx(1.0)
    np.testing.assert_allclose(loss.backward(), [[2.0]])


def test_mse_gradient_scales_with_rows():
    loss = Loss()
    loss.forward(np.array([[1.0], [3.0]]), np.array([[0.0], [0.0]]))
    np.testing.assert_allclose(loss.backward(), [[1.0], [3.0]])


def test_loss_rejects_shape_mismatch():
    with pytest.raises(ContractViolation):
        Loss().forward(np.zeros((2, 1)), np.zeros((2, 2)))


def test_backward_requires_forward():
    with pytest.raises(ContractViolation):
        Loss().backward()


@pytest.mark.parametrize(
    "strategy", [MeanSquaredError(), MeanAbsoluteError(), Huber(delta=0.5), BinaryCrossEntropy()]
)
def test_gradients_match_finite_differences(strategy):
    prediction = np.array([[0.2, 0.7], [0.9, 0.4]])
    target = np.array([[0.0, 1.0], [1.0, 0.0]])
    analytic = strategy.gradient(prediction, target)
    eps = 1e-6
    for index in np.ndindex(prediction.shape):
        up = prediction.copy()
        down = prediction.copy()
        up[index] += eps
        down[index] -= eps
        numeric = (strategy.output(up, target) - strategy.output(down, target)) / (2 * eps)
        # Mean over every entry, gradient divides by rows only.
        assert analytic[index] / prediction.shape[1] == pytest.approx(numeric, rel=1e-4, abs=1e-6)


def test_registry_resolves_fresh_instances():
    first = REGISTRY.resolve("mse")
    second = REGISTRY.resolve("MSE")
    assert isinstance(first.strategy, MeanSquaredError)
    assert first is not second
    assert set(REGISTRY.names()) >= {"mse", "mae", "huber", "bce"}
    assert REGISTRY.resolve("huber", delta=2.0).strategy.delta == 2.0


def test_registry_unknown_loss():
    with pytest.raises(KeyError, match="Available losses"):
        REGISTRY.resolve("hinge")


def test_duplicate_keeps_concrete_strategy():
    loss = Loss(Huber(delta=0.3))
    loss.forward(np.ones((1, 1)), np.zeros((1, 1)))
    clone = loss.duplicate()
    assert isinstance(clone.strategy, Huber)
    assert clone.strategy is not loss.strategy
    np.testing.assert_allclose(clone.backward(), loss.backward())
