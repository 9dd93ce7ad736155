"""Shape-checked wrapper around a single calculation strategy."""

from __future__ import annotations

from typing import Union

import numpy as np

from .errors import require, require_same_shape
from .strategies import BasicCalculation, ParameterizedCalculation
from .types import Array, Mode

Calculation = Union[BasicCalculation, ParameterizedCalculation]


class Operation:
    """One differentiable step of a network.

    An operation is either *basic* (no parameter) or *parameterized* (owns a
    trainable tensor). Use :meth:`basic` and :meth:`parameterized` to build
    one. The forward/backward protocol, caching and every shape check live
    here; only the calculation itself is pluggable.
    """

    __slots__ = (
        "calculation",
        "_parameter",
        "_input",
        "_output",
        "_input_gradient",
        "_parameter_gradient",
    )

    def __init__(self, calculation: Calculation, parameter: Array | None = None) -> None:
        parameterized = isinstance(calculation, ParameterizedCalculation)
        if parameter is None:
            require(
                not parameterized,
                f"{type(calculation).__name__} needs a parameter; use Operation.parameterized",
            )
        else:
            require(
                parameterized,
                f"{type(calculation).__name__} takes no parameter; use Operation.basic",
            )
        self.calculation = calculation
        self._parameter = None if parameter is None else np.array(parameter, dtype=np.float64)
        if self._parameter is not None:
            require(
                self._parameter.ndim == 2,
                f"parameter must be two-dimensional, got shape {self._parameter.shape}",
            )
        self._input: Array | None = None
        self._output: Array | None = None
        self._input_gradient: Array | None = None
        self._parameter_gradient: Array | None = None

    @classmethod
    def basic(cls, calculation: BasicCalculation) -> "Operation":
        return cls(calculation)

    @classmethod
    def parameterized(cls, calculation: ParameterizedCalculation, parameter: Array) -> "Operation":
        return cls(calculation, parameter)

    # ------------------------------------------------------------------
    # Cached state

    @property
    def is_parameterized(self) -> bool:
        return self._parameter is not None

    @property
    def parameter(self) -> Array:
        require(self._parameter is not None, "basic operations have no parameter")
        return self._parameter

    @property
    def input(self) -> Array:
        require(self._input is not None, "operation input read before forward")
        return self._input

    @property
    def output(self) -> Array:
        require(self._output is not None, "operation output read before forward")
        return self._output

    @property
    def input_gradient(self) -> Array:
        require(self._input_gradient is not None, "input gradient read before backward")
        return self._input_gradient

    @property
    def parameter_gradient(self) -> Array:
        require(self._parameter is not None, "basic operations have no parameter gradient")
        require(
            self._parameter_gradient is not None, "parameter gradient read before backward"
        )
        return self._parameter_gradient

    # ------------------------------------------------------------------
    # Protocol

    def forward(self, inputs: Array, mode: Mode = Mode.INFERENCE) -> Array:
        self._input = np.array(inputs, dtype=np.float64)
        if self._parameter is not None:
            output = self.calculation.output(self._input, self._parameter)
        else:
            output = self.calculation.output(self._input, mode)
        self._output = np.asarray(output, dtype=np.float64)
        self._input_gradient = None
        self._parameter_gradient = None
        return self._output.copy()

    def backward(self, output_gradient: Array) -> Array:
        output = self.output
        require_same_shape(output.shape, output_gradient.shape, "operation backward")
        inputs = self._input
        if self._parameter is not None:
            input_gradient = self.calculation.input_gradient(
                output_gradient, inputs, self._parameter
            )
            parameter_gradient = self.calculation.parameter_gradient(
                output_gradient, inputs, self._parameter
            )
            require_same_shape(
                self._parameter.shape, parameter_gradient.shape, "parameter gradient"
            )
            self._parameter_gradient = parameter_gradient
        else:
            input_gradient = self.calculation.input_gradient(output_gradient, inputs, output)
        require_same_shape(inputs.shape, input_gradient.shape, "input gradient")
        self._input_gradient = input_gradient
        return input_gradient.copy()

    def duplicate(self) -> "Operation":
        clone = Operation(self.calculation.duplicate(), self._parameter)
        for name in ("_input", "_output", "_input_gradient", "_parameter_gradient"):
            value = getattr(self, name)
            setattr(clone, name, None if value is None else value.copy())
        return clone

    def __repr__(self) -> str:
        kind = "parameterized" if self.is_parameterized else "basic"
        shape = f", parameter={self._parameter.shape}" if self._parameter is not None else ""
        return f"Operation({kind}, {type(self.calculation).__name__}{shape})"


__all__ = ["Calculation", "Operation"]
