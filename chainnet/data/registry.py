"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping

from ..core.types import Array

TASK_TYPES = frozenset({"regression", "binary"})


@dataclass(frozen=True)
class DataSpec:
    """Structural information about a dataset.

    Attributes
    ----------
    d_in:
        Number of input features.
    d_out:
        Number of target columns.
    task_type:
        ``"regression"`` or ``"binary"``.
    extra:
        Free-form metadata preserved for reproducibility.
    """

    d_in: int
    d_out: int
    task_type: str
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DatasetSpec:
    """A fully materialised dataset split into ``train`` and ``test``."""

    name: str
    data_spec: DataSpec
    provenance: Dict[str, Any]
    arrays: Dict[str, tuple[Array, Array]]

    def split(self, name: str) -> tuple[Array, Array]:
        """Return ``(inputs, targets)`` for split ``name``."""

        try:
            inputs, targets = self.arrays[name]
        except KeyError as exc:
            raise ValueError(f"Unsupported split: {name}") from exc
        return inputs.copy(), targets.copy()

    @property
    def splits(self) -> Dict[str, int]:
        return {name: int(inputs.shape[0]) for name, (inputs, _) in self.arrays.items()}


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("sine")
        def make_sine(**kwargs):
            ...

    or directly::

        register_dataset("sine", make_sine)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(name: str, **options: Any) -> DatasetSpec:
    """Build and validate the dataset registered under ``name``."""

    if name not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset {name!r}. Available datasets: {available}")
    spec = _REGISTRY[name](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if spec.data_spec.task_type not in TASK_TYPES:
        raise ValueError(f"Invalid task type: {spec.data_spec.task_type}")
    for split in ("train", "test"):
        if split not in spec.arrays:
            raise ValueError(f"Dataset {spec.name!r} is missing the {split!r} split")
        inputs, targets = spec.arrays[split]
        if inputs.ndim != 2 or targets.ndim != 2:
            raise ValueError(f"Split {split!r} of {spec.name!r} must hold 2-D arrays")
        if inputs.shape[0] != targets.shape[0]:
            raise ValueError(f"Split {split!r} of {spec.name!r} pairs unequal row counts")
        if inputs.shape[1] != spec.data_spec.d_in or targets.shape[1] != spec.data_spec.d_out:
            raise ValueError(f"Split {split!r} of {spec.name!r} disagrees with its DataSpec")


__all__ = [
    "DataSpec",
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
