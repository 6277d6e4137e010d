import math
import os

import pytest

from fedlinreg.data.loader import read_dataset
from fedlinreg.data.preprocess import split_dataset
from fedlinreg.fl.client import run_client
from fedlinreg.fl.exchange import FileParameterExchange
from fedlinreg.fl.strategies import run_all_clients
from fedlinreg.utils.exceptions import EmptyDatasetError, ResourceUnavailableError
from fedlinreg.utils.serialization import read_parameters


def test_run_client_publishes_train_statistics(make_config):
    cfg = make_config(num_clients=1)
    exchange = FileParameterExchange.from_config(cfg)
    train_path = cfg["data"]["train_file_pattern"].format(n=1)

    report = run_client(0, train_path, cfg, exchange)

    assert report["params_path"] == exchange.path_for(0)
    assert (report["n_samples"], report["n_train"], report["n_val"]) == (10, 8, 2)
    assert report["train_rmse"] == pytest.approx(0.0, abs=1e-2)
    assert len(report["loss_history"]) == cfg["client"]["epochs"]

    stored = read_parameters(exchange.path_for(0))
    assert stored == report["params"]

    train, _ = split_dataset(read_dataset(train_path), 0.8, seed=42)
    assert stored.mean == pytest.approx(train["feature"].mean())
    assert stored.std_dev == pytest.approx(train["feature"].std(ddof=0))


def test_reusing_train_statistics_for_validation(make_config):
    cfg = make_config(num_clients=1, **{"normalization.reuse_train_stats": True})
    exchange = FileParameterExchange.from_config(cfg)

    report = run_client(0, cfg["data"]["train_file_pattern"].format(n=1), cfg, exchange)

    # the data lie on one line, so consistent scaling makes validation exact too
    assert report["val_rmse"] == pytest.approx(0.0, abs=5e-2)


def test_empty_client_file(make_config, tmp_path):
    empty = tmp_path / "empty.txt"
    empty.write_text("not a sample\n", encoding="utf-8")

    cfg = make_config(num_clients=1)
    exchange = FileParameterExchange.from_config(cfg)
    with pytest.raises(EmptyDatasetError):
        run_client(0, str(empty), cfg, exchange)
    assert not os.path.exists(exchange.path_for(0))

    legacy_cfg = make_config(num_clients=1, **{"experiment.numeric_mode": "legacy"})
    report = run_client(0, str(empty), legacy_cfg, exchange)
    assert math.isnan(report["train_rmse"])
    assert math.isnan(read_parameters(exchange.path_for(0)).weight)


def test_single_point_validation_is_undefined_not_fatal(make_config, tmp_path):
    small = tmp_path / "small.txt"
    small.write_text("1 2\n2 4\n3 6\n", encoding="utf-8")
    cfg = make_config(num_clients=1)

    report = run_client(0, str(small), cfg, FileParameterExchange.from_config(cfg))

    assert report["n_val"] == 1
    assert math.isnan(report["val_rmse"])
    assert report["train_rmse"] == pytest.approx(0.0, abs=1e-2)


def test_run_all_clients_in_order(make_config):
    cfg = make_config(num_clients=3)
    exchange = FileParameterExchange.from_config(cfg)

    reports = run_all_clients(cfg, exchange)

    assert [r["client_index"] for r in reports] == [0, 1, 2]
    assert exchange.missing([0, 1, 2]) == []


def test_failure_aborts_remaining_clients(make_config):
    cfg = make_config(num_clients=3)
    os.remove(cfg["data"]["train_file_pattern"].format(n=2))
    exchange = FileParameterExchange.from_config(cfg)

    with pytest.raises(ResourceUnavailableError):
        run_all_clients(cfg, exchange)

    assert exchange.missing([0, 1, 2]) == [exchange.path_for(1), exchange.path_for(2)]
