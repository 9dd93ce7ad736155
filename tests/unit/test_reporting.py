import csv
import json
import logging

import numpy as np
import pytest

from chainnet.reporting import CsvSink, JsonlSink, MetricsCapture, describe_layers, write_manifest
from chainnet.reporting.summary import write_summary
from chainnet.training.lifecycle import LayerSpec, declare
from chainnet.training.metrics import compute_metrics, default_metrics
from chainnet.utils import configure_logging, get_logger


def test_sinks_route_by_split(tmp_path):
    train = JsonlSink(tmp_path / "train.jsonl", split="train", seed=3)
    test = CsvSink(tmp_path / "test.csv", split="test")
    capture = MetricsCapture()
    for sink in (train, test, capture):
        sink.on_epoch(1, {"loss": 0.5})
        sink.on_evaluate(1, {"loss": 0.25})
        sink.on_epoch(2, {"loss": 0.4})

    records = [json.loads(line) for line in train.path.read_text().splitlines()]
    assert records == [
        {"epoch": 1, "split": "train", "seed": 3, "loss": 0.5},
        {"epoch": 2, "split": "train", "seed": 3, "loss": 0.4},
    ]
    rows = list(csv.DictReader(test.path.open()))
    assert rows == [{"epoch": "1", "split": "test", "loss": "0.25"}]
    assert len(capture.train) == 2 and len(capture.test) == 1
    with pytest.raises(ValueError):
        JsonlSink(tmp_path / "x.jsonl", split="valid")


def test_summary_reports_best_epoch(tmp_path):
    path = tmp_path / "m.jsonl"
    losses = [(1, 3.0), (2, 1.0), (3, 2.0)]
    path.write_text(
        "\n".join(json.dumps({"epoch": epoch, "seed": 0, "loss": loss}) for epoch, loss in losses)
    )
    out = write_summary({"train": path}, tmp_path / "summary.json", extra={"epochs": 3})
    summary = json.loads(open(out).read())
    assert summary["train"]["metrics"]["loss"]["best_epoch"] == 2
    assert summary["train"]["metrics"]["loss"]["last"] == 2.0
    assert summary["epochs"] == 3


def test_manifest_describes_architecture(tmp_path):
    initialised = declare([LayerSpec(3, "relu", keep_probability=0.5), LayerSpec(1)], seed=0).initialise(2)
    out = write_manifest(
        tmp_path / "manifest.json",
        config={"seed": 1},
        dataset_provenance={"type": "synthetic"},
        architecture=describe_layers(initialised.layers),
        parameter_count=initialised.parameter_count,
    )
    manifest = json.loads(open(out).read())
    assert "generated_at" not in manifest
    assert manifest["parameter_count"] == 2 * 3 + 3 + 3 + 1
    names = [op["calculation"] for op in manifest["architecture"][0]["operations"]]
    assert names == ["WeightedSum", "BiasAdd", "ReLU", "Dropout"]


def test_metrics():
    preds = np.array([[0.9], [0.2], [0.7]])
    targets = np.array([[1.0], [0.0], [0.0]])
    results = compute_metrics(default_metrics("binary"), preds, targets)
    assert results["accuracy"] == pytest.approx(2 / 3)
    regression = compute_metrics(["MAE"], preds, targets)
    assert regression["mae"] == pytest.approx((0.1 + 0.2 + 0.7) / 3)
    with pytest.raises(ValueError):
        default_metrics("multiclass")


def test_configure_logging_is_idempotent():
    logger = configure_logging("DEBUG")
    configure_logging(logging.WARNING)
    handlers = [h for h in logger.handlers if h.get_name() == "chainnet-console"]
    assert len(handlers) == 1
    assert logger.level == logging.WARNING
    assert get_logger("cli").name == "chainnet.cli"
    with pytest.raises(ValueError):
        configure_logging("LOUD")


def test_split_sink_requires_write_implementation(tmp_path):
    from chainnet.reporting.metrics import _SplitSink

    with pytest.raises(TypeError):
        _SplitSink(tmp_path / "x.jsonl")
