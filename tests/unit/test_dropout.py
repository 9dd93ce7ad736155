import numpy as np
import pytest

from chainnet.core.errors import ContractViolation
from chainnet.core.operation import Operation
from chainnet.core.strategies import Dropout
from chainnet.core.types import Mode


def test_inference_scales_without_randomness():
    op = Operation.basic(Dropout(0.8, rng=np.random.default_rng(0)))
    inputs = np.arange(6, dtype=float).reshape(2, 3)
    first = op.forward(inputs, Mode.INFERENCE)
    second = op.forward(inputs, Mode.INFERENCE)
    np.testing.assert_allclose(first, inputs * 0.8)
    np.testing.assert_allclose(first, second)
    np.testing.assert_allclose(op.backward(np.ones_like(first)), np.ones_like(first))


def test_training_keeps_roughly_keep_probability():
    dropout = Dropout(0.3, rng=np.random.default_rng(1))
    out = dropout.output(np.ones((200, 50)), Mode.TRAINING)
    assert set(np.unique(out)) <= {0.0, 1.0}
    assert out.mean() == pytest.approx(0.3, abs=0.02)


def test_training_gradient_uses_mask():
    op = Operation.basic(Dropout(0.5, rng=np.random.default_rng(2)))
    out = op.forward(np.full((4, 4), 2.0), Mode.TRAINING)
    grad = op.backward(np.full((4, 4), 3.0))
    mask = out / 2.0
    np.testing.assert_allclose(grad, 3.0 * mask)


def test_keep_probability_one_is_identity_in_training():
    dropout = Dropout(1.0, rng=np.random.default_rng(3))
    inputs = np.random.default_rng(4).standard_normal((5, 5))
    np.testing.assert_allclose(dropout.output(inputs, Mode.TRAINING), inputs)


@pytest.mark.parametrize("p", [0.0, -0.1, 1.5])
def test_invalid_keep_probability(p):
    with pytest.raises(ValueError):
        Dropout(p)


def test_gradient_before_forward():
    dropout = Dropout(0.5)
    with pytest.raises(ContractViolation):
        dropout.input_gradient(np.ones((1, 1)), np.ones((1, 1)), np.ones((1, 1)))


def test_duplicate_copies_generator_state():
    dropout = Dropout(0.5, rng=np.random.default_rng(5))
    clone = dropout.duplicate()
    inputs = np.ones((3, 7))
    np.testing.assert_allclose(
        dropout.output(inputs, Mode.TRAINING), clone.output(inputs, Mode.TRAINING)
    )
