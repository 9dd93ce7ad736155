import numpy as np
import pytest

from chainnet.core.activations import sigmoid
from chainnet.core.errors import ContractViolation
from chainnet.core.operation import Operation
from chainnet.core.strategies import BiasAdd, Sigmoid, Tanh, WeightedSum
from chainnet.core.types import Mode


def _numeric_gradient(func, array, eps=1e-6):
    grad = np.zeros_like(array)
    for index in np.ndindex(array.shape):
        original = array[index]
        array[index] = original + eps
        upper = func()
        array[index] = original - eps
        lower = func()
        array[index] = original
        grad[index] = (upper - lower) / (2 * eps)
    return grad


def test_weighted_sum_bias_sigmoid_chain():
    inputs = np.array([[0.5, 0.0, 3.0], [0.0, 0.25, 0.0]])
    ops = [
        Operation.parameterized(WeightedSum(), np.ones((3, 1))),
        Operation.parameterized(BiasAdd(), np.ones((1, 1))),
        Operation.basic(Sigmoid()),
    ]
    x = inputs
    for op in ops:
        x = op.forward(x)
    # Row sums are 3.5 and 0.25; the bias adds 1.0 to each.
    np.testing.assert_allclose(x, sigmoid(np.array([[4.5], [1.25]])))


def test_weighted_sum_gradients_match_finite_differences():
    rng = np.random.default_rng(0)
    inputs = rng.standard_normal((4, 3))
    weights = rng.standard_normal((3, 2))
    upstream = rng.standard_normal((4, 2))
    op = Operation.parameterized(WeightedSum(), weights)

    op.forward(inputs)
    input_grad = op.backward(upstream)

    numeric_w = _numeric_gradient(
        lambda: float(np.sum(op.calculation.output(inputs, op.parameter) * upstream)),
        op.parameter,
    )
    numeric_x = _numeric_gradient(
        lambda: float(np.sum(op.calculation.output(inputs, op.parameter) * upstream)),
        inputs,
    )
    np.testing.assert_allclose(op.parameter_gradient, numeric_w, atol=1e-6)
    np.testing.assert_allclose(input_grad, numeric_x, atol=1e-6)


def test_bias_gradient_is_column_sum():
    upstream = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
    op = Operation.parameterized(BiasAdd(), np.zeros((1, 2)))
    op.forward(np.zeros((3, 2)))
    input_grad = op.backward(upstream)
    np.testing.assert_allclose(op.parameter_gradient, [[9.0, 12.0]])
    np.testing.assert_allclose(input_grad, upstream)


def test_activation_gradients_use_cached_output():
    inputs = np.array([[-1.0, 0.0, 2.0]])
    for calculation in (Sigmoid(), Tanh()):
        op = Operation.basic(calculation)
        out = op.forward(inputs)
        grad = op.backward(np.ones_like(out))
        probe = inputs.copy()
        numeric = _numeric_gradient(
            lambda: float(np.sum(calculation.output(probe, Mode.INFERENCE))), probe
        )
        np.testing.assert_allclose(grad, numeric, atol=1e-6)


def test_backward_rejects_wrong_gradient_shape():
    op = Operation.parameterized(WeightedSum(), np.ones((3, 2)))
    op.forward(np.ones((4, 3)))
    with pytest.raises(ContractViolation):
        op.backward(np.ones((4, 3)))


def test_backward_before_forward_is_rejected():
    op = Operation.basic(Sigmoid())
    with pytest.raises(ContractViolation):
        op.backward(np.ones((1, 1)))


def test_matmul_inner_dimension_is_checked():
    op = Operation.parameterized(WeightedSum(), np.ones((2, 2)))
    with pytest.raises(ContractViolation):
        op.forward(np.ones((1, 3)))


def test_bias_shape_is_checked():
    op = Operation.parameterized(BiasAdd(), np.ones((1, 3)))
    with pytest.raises(ContractViolation):
        op.forward(np.ones((2, 2)))


def test_basic_operation_has_no_parameter():
    op = Operation.basic(Sigmoid())
    assert not op.is_parameterized
    with pytest.raises(ContractViolation):
        _ = op.parameter


def test_forward_returns_copy_of_cache():
    op = Operation.basic(Tanh())
    out = op.forward(np.zeros((1, 2)))
    out[0, 0] = 5.0
    assert op.output[0, 0] == 0.0


def test_duplicate_is_independent():
    op = Operation.parameterized(WeightedSum(), np.ones((2, 1)))
    op.forward(np.ones((1, 2)))
    clone = op.duplicate()
    clone.parameter[...] = 0.0
    assert isinstance(clone.calculation, WeightedSum)
    np.testing.assert_allclose(op.parameter, np.ones((2, 1)))
    np.testing.assert_allclose(clone.output, op.output)


def test_sigmoid_derivative_identity():
    x = np.linspace(-6.0, 6.0, 25).reshape(5, 5)
    s = sigmoid(x)
    eps = 1e-6
    numeric = (sigmoid(x + eps) - sigmoid(x - eps)) / (2 * eps)
    np.testing.assert_allclose(s * (1.0 - s), numeric, atol=1e-8)
    assert np.all(np.isfinite(sigmoid(np.array([[-1000.0, 1000.0]]))))


def test_basic_operation_rejects_parameterized_calculation():
    with pytest.raises(ContractViolation, match="needs a parameter"):
        Operation.basic(WeightedSum())
    with pytest.raises(ContractViolation):
        Operation(BiasAdd())


def test_parameterized_operation_rejects_basic_calculation():
    with pytest.raises(ContractViolation, match="takes no parameter"):
        Operation.parameterized(Sigmoid(), np.ones((3, 1)))
