"""Metric sinks that receive trainer callbacks."""

from __future__ import annotations

import csv
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping


class _SplitSink(ABC):
    """Routes ``on_epoch`` (train) or ``on_evaluate`` (test) records to ``_write``."""

    def __init__(self, path: str | Path, *, split: str = "train") -> None:
        if split not in {"train", "test"}:
            raise ValueError(f"split must be 'train' or 'test', got {split!r}")
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.split = split

    @abstractmethod
    def _write(self, epoch: int, metrics: Mapping[str, float]) -> None:
        """Persist one record for this sink's split."""

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if self.split == "train":
            self._write(epoch, metrics)

    def on_evaluate(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if self.split == "test":
            self._write(epoch, metrics)


class JsonlSink(_SplitSink):
    """Append-only JSON-lines writer, one record per epoch."""

    def __init__(
        self,
        path: str | Path,
        *,
        split: str = "train",
        seed: int | None = None,
    ) -> None:
        super().__init__(path, split=split)
        self.seed = seed

    def _write(self, epoch: int, metrics: Mapping[str, float]) -> None:
        record = {"epoch": int(epoch), "split": self.split, "seed": self.seed}
        record.update({k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))})
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")


class CsvSink(_SplitSink):
    """CSV writer whose header is fixed by the first record."""

    def __init__(self, path: str | Path, *, split: str = "train") -> None:
        super().__init__(path, split=split)
        self._fieldnames: list[str] | None = None

    def _write(self, epoch: int, metrics: Mapping[str, float]) -> None:
        row = {"epoch": int(epoch), "split": self.split}
        row.update({k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))})
        if self._fieldnames is None:
            self._fieldnames = ["epoch", "split"] + sorted(set(row) - {"epoch", "split"})
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=self._fieldnames, extrasaction="ignore")
            if handle.tell() == 0:
                writer.writeheader()
            writer.writerow(row)


class MetricsCapture:
    """Keeps every train and test record in memory."""

    def __init__(self) -> None:
        self.train: list[tuple[int, Mapping[str, float]]] = []
        self.test: list[tuple[int, Mapping[str, float]]] = []

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self.train.append((int(epoch), {k: float(v) for k, v in metrics.items()}))

    def on_evaluate(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self.test.append((int(epoch), {k: float(v) for k, v in metrics.items()}))


__all__ = ["CsvSink", "JsonlSink", "MetricsCapture"]
