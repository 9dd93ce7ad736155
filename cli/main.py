"""Command line entry point for chainnet training runs."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable

from chainnet.training import pipelines
from chainnet.utils import configure_logging, get_logger

logger = get_logger("cli")


def _format_result(result) -> str:
    payload = {
        "epochs": result.epochs,
        "best_loss": result.best_loss,
        "stopped_early": result.stopped_early,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    if getattr(result, "summary_path", ""):
        payload["summary"] = result.summary_path
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="sine-basic",
        help="Preset configuration to execute",
    )
    parser.add_argument(
        "--config", type=Path, help="Optional JSON/YAML config override"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed used for dataset generation, initialisation and shuffling",
    )
    parser.add_argument("--epochs", type=int, help="Override the maximum epoch count")
    parser.add_argument(
        "--enable-plots", action="store_true", help="Write a loss curve to the run directory"
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Verbosity of the chainnet loggers",
    )
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> dict:
    """Build the run config from the preset, an override file and flags."""

    config = pipelines.load_preset(args.preset)

    if args.config:
        override = pipelines.read_config_file(args.config)
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = pipelines.merge_config(config, override)

    if args.enable_plots:
        config.setdefault("train", {})["enable_plots"] = True
    if args.epochs is not None:
        config.setdefault("train", {})["epochs"] = int(args.epochs)
    if args.seed is not None:
        seed = int(args.seed)
        config.setdefault("train", {})["seed"] = seed
        config.setdefault("model", {})["seed"] = seed
        config.setdefault("data", {}).setdefault("options", {})["seed"] = seed

    return json.loads(json.dumps(config))


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = resolve_config(args)
    logger.debug("resolved config: %s", json.dumps(config, sort_keys=True))

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    result = pipelines.run_pipeline(config)

    if isinstance(result, list):
        for item in result:
            print(_format_result(item))
    else:
        print(_format_result(result))


if __name__ == "__main__":
    main()
