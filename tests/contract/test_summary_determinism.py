from pathlib import Path

from chainnet.training import pipelines


def _config(run_dir):
    return {
        "data": {"name": "sine", "options": {"n_points": 48, "seed": 123}},
        "model": {"hidden": [4], "activation": "tanh", "output_activation": "linear", "seed": 5},
        "train": {
            "epochs": 6,
            "eval_every": 2,
            "batch_size": 8,
            "seed": 55,
            "lr": 0.05,
            "run_dir": str(run_dir),
            "enable_plots": False,
        },
    }


def test_summary_outputs_are_deterministic(tmp_path):
    first = pipelines.run_pipeline(_config(tmp_path / "run_a"))
    second = pipelines.run_pipeline(_config(tmp_path / "run_b"))

    assert Path(first.metrics_path).read_bytes() == Path(second.metrics_path).read_bytes()
    assert Path(first.summary_path).read_bytes() == Path(second.summary_path).read_bytes()
