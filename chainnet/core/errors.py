"""Exception hierarchy for chainnet.

Two tiers are distinguished:

* :class:`ContractViolation` signals a usage bug inside the engine (shape
  mismatches at a forward/backward boundary, reading a cache before the pass
  that fills it). It derives from :class:`AssertionError` and is not meant to
  be caught by callers.
* :class:`ChainNetError` and its subclasses signal bad user input or
  wrong-state use of the training lifecycle. Callers are expected to handle
  them.
"""

from __future__ import annotations

from typing import Sequence


class ContractViolation(AssertionError):
    """An internal invariant of the engine was broken by its caller."""


class ChainNetError(Exception):
    """Base class for recoverable chainnet errors."""


class ShapeMismatch(ChainNetError, ValueError):
    """User-supplied data does not match the network architecture."""

    def __init__(self, expected: Sequence[int | None], actual: Sequence[int]) -> None:
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        shown = tuple("*" if dim is None else dim for dim in self.expected)
        super().__init__(f"expected input of shape {shown}, got {self.actual}")


class ParameterCountMismatch(ChainNetError, ValueError):
    """A parameter stream does not have one value per network parameter."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = int(expected)
        self.actual = int(actual)
        qualifier = "at least " if actual > expected else ""
        super().__init__(
            f"network has {self.expected} parameters but the stream supplied "
            f"{qualifier}{self.actual}"
        )


class LifecycleError(ChainNetError, RuntimeError):
    """A network was used in a lifecycle state that does not allow it."""


def require(condition: bool, message: str) -> None:
    """Raise :class:`ContractViolation` with ``message`` unless ``condition``."""

    if not condition:
        raise ContractViolation(message)


def require_same_shape(expected: Sequence[int], actual: Sequence[int], what: str) -> None:
    require(
        tuple(expected) == tuple(actual),
        f"{what}: shape {tuple(actual)} does not match {tuple(expected)}",
    )


__all__ = [
    "ChainNetError",
    "ContractViolation",
    "LifecycleError",
    "ParameterCountMismatch",
    "ShapeMismatch",
    "require",
    "require_same_shape",
]
