"""Deterministic run summarisation."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Mapping

import numpy as np


def _read_records(path: Path) -> list[Mapping[str, object]]:
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


def _numeric_columns(records: Iterable[Mapping[str, object]]) -> Mapping[str, list[float]]:
    columns: dict[str, list[float]] = {}
    for record in records:
        for key, value in record.items():
            if key in {"epoch", "seed"} or isinstance(value, bool):
                continue
            if isinstance(value, (int, float)):
                columns.setdefault(key, []).append(float(value))
    return columns


def summarise_records(records: list[Mapping[str, object]]) -> Mapping[str, object]:
    metrics: dict[str, Mapping[str, float]] = {}
    for name, values in _numeric_columns(records).items():
        arr = np.asarray(values, dtype=np.float64)
        metrics[name] = {
            "min": float(np.min(arr)),
            "max": float(np.max(arr)),
            "mean": float(np.mean(arr)),
            "last": float(arr[-1]),
            "best_epoch": int(records[int(np.argmin(arr))]["epoch"]),
        }
    return {"records": len(records), "metrics": metrics}


def write_summary(
    metrics_paths: Mapping[str, str | Path],
    out_summary_json: str | Path,
    *,
    extra: Mapping[str, object] | None = None,
) -> str:
    """Summarise every split's JSONL metrics file into one JSON document."""

    out_path = Path(out_summary_json)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    summary: dict[str, object] = {"version": 1}
    for split, path in sorted(metrics_paths.items()):
        summary[split] = summarise_records(_read_records(Path(path)))
    if extra:
        summary.update(extra)
    out_path.write_text(json.dumps(summary, sort_keys=True, indent=2))
    return str(out_path)


__all__ = ["summarise_records", "write_summary"]
