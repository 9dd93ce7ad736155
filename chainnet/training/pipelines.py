"""Config-driven assembly of datasets, networks, optimisers and the trainer."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

from ..core.types import RunResult
from ..data import get_dataset
from ..reporting.artifacts import describe_layers, write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .lifecycle import LayerSpec, declare
from .metrics import compute_metrics, default_metrics
from .optimisers import build_optimiser
from .trainer import Trainer

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "sine-basic": {
        "data": {"name": "sine", "options": {"freq": 1.0, "n_points": 128, "seed": 0}},
        "model": {
            "hidden": [8],
            "activation": "tanh",
            "output_activation": "linear",
            "loss": "mse",
            "seed": 0,
        },
        "train": {
            "epochs": 200,
            "eval_every": 10,
            "batch_size": 16,
            "seed": 0,
            "optimiser": "sgd",
            "lr": 0.05,
            "run_dir": "runs/sine-basic",
            "enable_plots": False,
        },
    },
    "xor-dropout": {
        "data": {"name": "xor", "options": {"n_points": 200, "seed": 1}},
        "model": {
            "hidden": [8],
            "activation": "tanh",
            "output_activation": "sigmoid",
            "dropout": 0.9,
            "loss": "bce",
            "seed": 1,
        },
        "train": {
            "epochs": 300,
            "eval_every": 25,
            "batch_size": 20,
            "seed": 1,
            "optimiser": "momentum",
            "lr": 0.1,
            "momentum": 0.9,
            "run_dir": "runs/xor-dropout",
            "enable_plots": False,
        },
    },
    "blobs-decay": {
        "data": {"name": "blobs", "options": {"n_points": 256, "d_in": 4, "seed": 2}},
        "model": {
            "hidden": [6],
            "activation": "sigmoid",
            "output_activation": "sigmoid",
            "loss": "mse",
            "seed": 2,
        },
        "train": {
            "epochs": 60,
            "eval_every": 5,
            "batch_size": 32,
            "seed": 2,
            "optimiser": "decay",
            "lr": 0.5,
            "final_lr": 0.05,
            "decay": "exponential",
            "run_dir": "runs/blobs-decay",
            "enable_plots": False,
        },
    },
    "sine-seed-sweep": {
        "sweep": {"seeds": [0, 1, 2], "hidden": [[4], [8]]},
        "data": {"name": "sine", "options": {"freq": 1.0, "n_points": 64, "seed": 0}},
        "model": {"activation": "tanh", "output_activation": "linear", "loss": "mse"},
        "train": {
            "epochs": 40,
            "eval_every": 10,
            "batch_size": 16,
            "optimiser": "sgd",
            "lr": 0.05,
            "run_dir": "runs/sine-sweep",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[1] / "presets"
_REQUIRED_SECTIONS = {"data", "model", "train"}


def read_config_file(path: str | Path) -> Mapping[str, object]:
    """Load a JSON or YAML mapping from ``path``."""

    path = Path(path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    presets: Dict[str, Mapping[str, object]] = {}
    if not _PRESET_DIR.exists():
        return presets
    for file in sorted(_PRESET_DIR.iterdir()):
        if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
            continue
        data = read_config_file(file)
        missing = _REQUIRED_SECTIONS - set(data)
        if missing:
            missing_str = ", ".join(sorted(missing))
            raise KeyError(f"Preset {file.name} is missing required sections: {missing_str}")
        presets[file.stem] = json.loads(json.dumps(data))
    return presets


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Dict[str, object]:
    available = presets()
    if name not in available:
        raise KeyError(f"Unknown preset {name!r}. Available presets: {', '.join(sorted(available))}")
    return deepcopy(dict(available[name]))


def merge_config(base: Mapping[str, object], override: Mapping[str, object]) -> Dict[str, object]:
    """Recursively merge ``override`` into a copy of ``base``."""

    merged: Dict[str, object] = deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_config(merged[key], value)  # type: ignore[arg-type]
        else:
            merged[key] = deepcopy(value)
    return merged


def run_pipeline(config: Mapping[str, object]) -> RunResult | List[RunResult]:
    if "sweep" in config:
        return _run_sweep(config)
    return _train_single(config)


def _run_sweep(config: Mapping[str, object]) -> List[RunResult]:
    sweep_cfg = config["sweep"]
    seeds = list(sweep_cfg.get("seeds", [0]))
    hidden_options = list(sweep_cfg.get("hidden", [config["model"].get("hidden", [8])]))
    base_dir = Path(config["train"].get("run_dir", "runs/sweep"))
    results: List[RunResult] = []
    for hidden in hidden_options:
        for seed in seeds:
            cfg = deepcopy(dict(config))
            cfg.pop("sweep", None)
            cfg["model"] = dict(cfg["model"], hidden=list(hidden), seed=seed)
            tag = "x".join(str(h) for h in hidden) or "linear"
            cfg["train"] = dict(
                cfg["train"], seed=seed, run_dir=str(base_dir / f"h{tag}_s{seed}")
            )
            results.append(_train_single(cfg))
    return results


def _layer_specs(model_cfg: Mapping[str, object], d_out: int) -> List[LayerSpec]:
    activation = str(model_cfg.get("activation", "sigmoid"))
    keep = model_cfg.get("dropout")
    keep_probability = float(keep) if keep is not None else None
    specs = [
        LayerSpec(int(neurons), activation, keep_probability)
        for neurons in model_cfg.get("hidden", [])
    ]
    specs.append(LayerSpec(d_out, str(model_cfg.get("output_activation", "linear"))))
    return specs


def _build_optimiser(train_cfg: Mapping[str, object]):
    name = str(train_cfg.get("optimiser", "sgd")).lower()
    lr = float(train_cfg.get("lr", 0.01))
    if name == "momentum":
        return build_optimiser(name, learning_rate=lr, momentum=float(train_cfg.get("momentum", 0.9)))
    if name == "decay":
        return build_optimiser(
            name,
            learning_rate=lr,
            final_learning_rate=float(train_cfg.get("final_lr", lr / 10.0)),
            decay=str(train_cfg.get("decay", "linear")),
        )
    return build_optimiser(name, learning_rate=lr)


def _train_single(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config["data"])
    model_cfg = dict(config["model"])
    train_cfg = dict(config["train"])

    dataset = get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    data_spec = dataset.data_spec
    train_inputs, train_targets = dataset.split("train")
    test_inputs, test_targets = dataset.split("test")

    d_out = int(model_cfg.get("d_out", data_spec.d_out))
    if d_out != data_spec.d_out:
        raise ValueError(f"Configured d_out={d_out} but dataset provides {data_spec.d_out}")

    model_seed = model_cfg.get("seed")
    uninitialised = declare(
        _layer_specs(model_cfg, d_out),
        loss=str(model_cfg.get("loss", "mse")),
        seed=int(model_seed) if model_seed is not None else None,
    )
    initialised = uninitialised.initialise(data_spec.d_in)
    architecture = describe_layers(initialised.layers)
    parameter_count = initialised.parameter_count
    trainable = initialised.with_optimiser(_build_optimiser(train_cfg))

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)
    seed = train_cfg.get("seed")
    seed = int(seed) if seed is not None else None

    _print_startup_summary(
        dataset_name=dataset.name,
        dims=[data_spec.d_in] + [int(h) for h in model_cfg.get("hidden", [])] + [d_out],
        loss=str(model_cfg.get("loss", "mse")),
        optimiser=str(train_cfg.get("optimiser", "sgd")),
        dropout=model_cfg.get("dropout"),
        param_count=parameter_count,
    )

    train_jsonl = JsonlSink(run_dir / "metrics_train.jsonl", split="train", seed=seed)
    test_jsonl = JsonlSink(run_dir / "metrics_test.jsonl", split="test", seed=seed)
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))
    callbacks = [
        train_jsonl,
        test_jsonl,
        CsvSink(run_dir / "metrics_train.csv", split="train"),
        CsvSink(run_dir / "metrics_test.csv", split="test"),
        plots,
    ]

    trainer = Trainer(
        max_epochs=int(train_cfg.get("epochs", 1)),
        eval_every=int(train_cfg.get("eval_every", 1)),
        batch_size=int(train_cfg.get("batch_size", 32)),
        seed=seed,
        callbacks=callbacks,
    )
    result = trainer.fit(trainable, train_inputs, train_targets, test_inputs, test_targets)
    plots.close()

    final = result.network.into_initialised()
    predictions = final.predict(test_inputs)
    metric_names = train_cfg.get("metrics") or default_metrics(data_spec.task_type)
    test_metrics = dict(compute_metrics(metric_names, predictions, test_targets))
    test_metrics["loss"] = final.evaluate(test_inputs, test_targets)
    (run_dir / "metrics_final.json").write_text(json.dumps(test_metrics, indent=2, sort_keys=True))
    logger.info(
        "finished %s after %d epochs (stopped early: %s), test loss %.6g",
        dataset.name,
        result.epochs,
        result.stopped_early,
        test_metrics["loss"],
    )

    manifest = write_manifest(
        run_dir / "manifest.json",
        config=json.loads(json.dumps(config)),
        dataset_provenance=dataset.provenance,
        architecture=architecture,
        parameter_count=parameter_count,
    )
    summary_path = write_summary(
        {"train": train_jsonl.path, "test": test_jsonl.path},
        run_dir / "summary.json",
        extra={
            "epochs": result.epochs,
            "stopped_early": result.stopped_early,
            "best_loss": result.best_loss,
            "final": test_metrics,
        },
    )

    return RunResult(
        epochs=result.epochs,
        best_loss=float("nan") if result.best_loss is None else float(result.best_loss),
        stopped_early=result.stopped_early,
        metrics_path=str(train_jsonl.path),
        manifest_path=manifest,
        summary_path=summary_path,
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _print_startup_summary(
    *,
    dataset_name: str,
    dims: Sequence[int],
    loss: str,
    optimiser: str,
    dropout: object,
    param_count: int,
) -> None:
    print("=== chainnet run ===")
    print(f"Dataset       : {dataset_name}")
    print(f"Dimensions    : {list(dims)}")
    print(f"Loss          : {loss}")
    print(f"Optimiser     : {optimiser}")
    print(f"Dropout keep  : {dropout if dropout is not None else 'off'}")
    print(f"Parameters    : {param_count}")
    print("====================")


__all__ = ["load_preset", "merge_config", "presets", "read_config_file", "run_pipeline"]
