"""Evaluation metrics reported alongside the loss."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping

import numpy as np

from ..core.types import Array


def default_metrics(task_type: str) -> List[str]:
    if task_type == "regression":
        return ["mae", "rmse", "r2"]
    if task_type == "binary":
        return ["accuracy", "f1"]
    raise ValueError(f"Unknown task type: {task_type}")


def compute_metric(name: str, predictions: Array, targets: Array) -> float:
    """Return metric ``name``; classification metrics threshold probabilities at 0.5."""

    key = name.lower()
    if key == "mae":
        return float(np.mean(np.abs(predictions - targets)))
    if key == "rmse":
        return float(np.sqrt(np.mean((predictions - targets) ** 2)))
    if key == "r2":
        mean = np.mean(targets, axis=0, keepdims=True)
        ss_res = float(np.sum((targets - predictions) ** 2))
        ss_tot = float(np.sum((targets - mean) ** 2))
        return 1.0 if ss_tot == 0 else float(1 - ss_res / (ss_tot + 1e-9))

    predicted = (predictions >= 0.5).astype(int)
    actual = (targets >= 0.5).astype(int)
    if key == "accuracy":
        return float(np.mean(predicted == actual))
    if key == "f1":
        tp = float(np.sum((predicted == 1) & (actual == 1)))
        fp = float(np.sum((predicted == 1) & (actual == 0)))
        fn = float(np.sum((predicted == 0) & (actual == 1)))
        precision = tp / (tp + fp + 1e-9)
        recall = tp / (tp + fn + 1e-9)
        return float(2 * precision * recall / (precision + recall + 1e-9))
    raise KeyError(f"Unknown metric: {name}")


def compute_metrics(names: Iterable[str], predictions: Array, targets: Array) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        results[name.lower()] = compute_metric(name, predictions, targets)
    return results


__all__ = ["compute_metric", "compute_metrics", "default_metrics"]
