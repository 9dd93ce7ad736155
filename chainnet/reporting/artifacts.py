"""Run manifest describing how a training run was produced."""

from __future__ import annotations

import json
import platform
import subprocess
import time
from pathlib import Path
from typing import Mapping, Sequence

import numpy as np


def _git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def describe_layers(layers: Sequence[object]) -> list[dict]:
    """Return a JSON-friendly description of built layers."""

    description = []
    for layer in layers:
        operations = [
            {
                "calculation": type(op.calculation).__name__,
                "parameter_shape": list(op.parameter.shape) if op.is_parameterized else None,
            }
            for op in layer.operations
        ]
        description.append({"neurons": layer.neurons, "operations": operations})
    return description


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    architecture: Sequence[Mapping[str, object]] = (),
    parameter_count: int | None = None,
    deterministic: bool = True,
) -> str:
    """Write a manifest JSON file capturing reproducibility metadata."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "git_sha": _git_sha(),
        "config": config,
        "dataset": dict(dataset_provenance),
        "architecture": list(architecture),
        "parameter_count": parameter_count,
        "environment": {
            "python": platform.python_version(),
            "numpy": np.__version__,
        },
    }
    if not deterministic:
        manifest["generated_at"] = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
    path.write_text(json.dumps(manifest, indent=2, sort_keys=True))
    return str(path)


__all__ = ["describe_layers", "write_manifest"]
