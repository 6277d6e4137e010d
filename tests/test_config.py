import os

import pytest

from fedlinreg.utils.config import (
    DEFAULT_CONFIG,
    is_strict,
    load_config,
    override_config,
    validate_config,
)
from fedlinreg.utils.exceptions import ConfigurationError

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def test_defaults_carry_the_reference_constants():
    cfg = load_config()
    assert cfg["experiment"]["seed"] == 42
    assert cfg["experiment"]["train_ratio"] == 0.8
    assert cfg["experiment"]["num_clients"] == 9
    assert cfg["client"] == {"learning_rate": 0.1, "lr_decay": 0.99, "epochs": 10000}
    assert cfg["centralized"] == {"learning_rate": 0.01, "epochs": 1000}
    assert is_strict(cfg)
    validate_config(cfg)


def test_shipped_yaml_matches_defaults():
    assert load_config(os.path.join(REPO_ROOT, "configs", "default.yaml")) == DEFAULT_CONFIG


def test_partial_yaml_is_merged_onto_defaults(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("client:\n  epochs: 50\nexperiment:\n  numeric_mode: legacy\n", encoding="utf-8")

    cfg = load_config(str(path))

    assert cfg["client"]["epochs"] == 50
    assert cfg["client"]["learning_rate"] == 0.1
    assert not is_strict(cfg)


def test_override_does_not_mutate_base():
    base = load_config()
    cfg = override_config(base, {"experiment.seed": 7, "new.section.key": 1})
    assert cfg["experiment"]["seed"] == 7
    assert cfg["new"]["section"]["key"] == 1
    assert base["experiment"]["seed"] == 42


@pytest.mark.parametrize(
    "key, value",
    [
        ("experiment.numeric_mode", "lenient"),
        ("experiment.role", "observer"),
        ("client.learning_rate", 0.0),
        ("centralized.epochs", -1),
        ("client.lr_decay", -0.5),
        ("experiment.train_ratio", float("nan")),
        ("experiment.train_ratio", "0.8"),
        ("experiment.num_clients", 9.0),
        ("experiment.num_clients", -1),
        ("client.epochs", 100.5),
    ],
)
def test_invalid_values_rejected(key, value):
    cfg = override_config(load_config(), {key: value})
    with pytest.raises(ConfigurationError) as excinfo:
        validate_config(cfg)
    assert excinfo.value.config_key == key


def test_out_of_range_train_ratio_is_accepted():
    # the splitter clamps it to a degenerate split
    validate_config(override_config(load_config(), {"experiment.train_ratio": 1.5}))
