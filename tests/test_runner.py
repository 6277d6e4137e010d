import glob
import json
import os

import yaml

from run_experiment import main


def _write_config(tmp_path, cfg):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return str(path)


def _summary(results_dir):
    paths = glob.glob(os.path.join(results_dir, "*", "summaries", "*_final_summary.json"))
    assert len(paths) == 1
    with open(paths[0], encoding="utf-8") as f:
        return json.load(f)


def test_full_run_writes_records_and_summary(make_config, tmp_path):
    cfg = make_config(num_clients=2, **{"evaluation.save_plots": True})

    assert main(["--config", _write_config(tmp_path, cfg)]) == 0

    assert os.path.isfile(os.path.join(cfg["output"]["params_dir"], "client_0_params.txt"))
    assert os.path.isfile(os.path.join(cfg["output"]["params_dir"], "client_1_params.txt"))

    summary = _summary(cfg["output"]["results_dir"])
    assert summary["role"] == "all"
    assert len(summary["clients"]) == 2
    assert summary["federated_rmse"] >= 0.0
    assert summary["centralized_rmse"] >= 0.0
    assert all(v is not None for v in summary["dataset_checksums"].values())

    pngs = glob.glob(os.path.join(cfg["output"]["results_dir"], "*", "summaries", "*.png"))
    assert len(pngs) == 3


def test_client_then_server_roles(make_config, tmp_path):
    cfg = make_config(num_clients=2)
    config_path = _write_config(tmp_path, cfg)

    assert main(["--config", config_path, "--role", "client"]) == 0
    assert main(["--config", config_path, "--role", "server", "--log-level", "DEBUG"]) == 0


def test_server_without_client_records_fails(make_config, tmp_path):
    cfg = make_config(num_clients=2)

    assert main(["--config", _write_config(tmp_path, cfg), "--role", "server"]) == 1


def test_invalid_override_fails(make_config, tmp_path):
    cfg = make_config(num_clients=1)

    assert main(["--config", _write_config(tmp_path, cfg), "--client-lr", "0"]) == 1


def test_nan_train_ratio_fails(make_config, tmp_path):
    cfg = make_config(num_clients=1)
    config_path = _write_config(tmp_path, cfg)

    assert main(["--config", config_path, "--train-ratio", "nan", "--role", "client"]) == 1


def test_fractional_num_clients_in_yaml_fails(make_config, tmp_path):
    cfg = make_config(num_clients=1, **{"experiment.num_clients": 1.0})

    assert main(["--config", _write_config(tmp_path, cfg)]) == 1
