import numpy as np
import pytest

from chainnet.core.errors import ContractViolation
from chainnet.core.layers import Dense, Layer, WithDropout, dense_layer, dropout_layer
from chainnet.core.network import Network
from chainnet.core.strategies import BiasAdd, Dropout, Linear, WeightedSum, get_activation
from chainnet.core.types import Mode
from chainnet.training.losses import Loss


def test_layer_builds_lazily_from_first_input():
    layer = dense_layer(4, "tanh", seed=0)
    assert not layer.is_built
    out = layer.forward(np.ones((3, 5)))
    assert layer.is_built
    assert out.shape == (3, 4)
    assert layer.input_features == 5
    kinds = [type(op.calculation) for op in layer.operations]
    assert kinds[:2] == [WeightedSum, BiasAdd]
    assert [p.shape for p in layer.parameters()] == [(5, 4), (1, 4)]


def test_layer_is_never_rebuilt():
    layer = dense_layer(2, seed=1)
    layer.forward(np.ones((1, 3)))
    first = [p.copy() for p in layer.parameters()]
    with pytest.raises(ContractViolation):
        layer.forward(np.ones((1, 4)))
    for before, after in zip(first, layer.parameters()):
        np.testing.assert_allclose(before, after)


def test_seeded_layers_are_reproducible():
    a = dense_layer(3, seed=7)
    b = dense_layer(3, seed=7)
    np.testing.assert_allclose(a.forward(np.ones((2, 2))), b.forward(np.ones((2, 2))))


def test_operations_require_build():
    with pytest.raises(ContractViolation):
        _ = Layer(2).operations


def test_zero_neurons_rejected():
    with pytest.raises(ValueError):
        Layer(0)


def test_layer_backward_checks_shape():
    layer = dense_layer(2, seed=0)
    layer.forward(np.ones((3, 2)))
    with pytest.raises(ContractViolation):
        layer.backward(np.ones((3, 3)))


def test_dropout_setup_appends_dropout():
    layer = dropout_layer(3, 0.5, "relu", seed=0)
    layer.forward(np.ones((2, 2)), Mode.INFERENCE)
    assert isinstance(layer.operations[-1].calculation, Dropout)
    with pytest.raises(ValueError):
        WithDropout(Dense(), keep_probability=0.0)


def test_layer_duplicate_is_deep():
    layer = Layer(1, Dense(activation=Linear()), seed=3)
    layer.forward(np.ones((1, 2)))
    clone = layer.duplicate()
    for param in clone.parameters():
        param[...] = 0.0
    assert all(np.any(p != 0.0) for p in layer.parameters())
    assert isinstance(clone.setup, Dense)
    assert isinstance(clone.setup.activation, Linear)


def test_network_backward_reaches_every_parameter():
    network = Network([dense_layer(3, seed=0), dense_layer(1, "linear", seed=1)], Loss())
    loss = network.train(np.ones((4, 2)), np.zeros((4, 1)))
    assert loss >= 0.0
    grads = [grad for _, grad in network.parameters_and_gradients()]
    assert [g.shape for g in grads] == [(2, 3), (1, 3), (3, 1), (1, 1)]
    assert network.parameter_count == 6 + 3 + 3 + 1


def test_network_requires_layers():
    with pytest.raises(ValueError):
        Network([], Loss())


def test_get_activation_unknown():
    with pytest.raises(KeyError, match="Available activations"):
        get_activation("softsign")
