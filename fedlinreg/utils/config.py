import copy
import math
from typing import Any, Dict, Optional

import yaml

from .exceptions import ConfigurationError

NUMERIC_MODES = ("strict", "legacy")
ROLES = ("client", "server", "all")

DEFAULT_CONFIG: Dict[str, Any] = {
    "experiment": {
        "name": "fedlinreg",
        "role": "all",
        # shared by client and server roles; changing it changes every split
        "seed": 42,
        "train_ratio": 0.8,
        "num_clients": 9,
        "numeric_mode": "strict",
    },
    "client": {
        "learning_rate": 0.1,
        "lr_decay": 0.99,
        "epochs": 10000,
    },
    "centralized": {
        "learning_rate": 0.01,
        "epochs": 1000,
    },
    "normalization": {
        "reuse_train_stats": False,
    },
    "data": {
        "train_files": [],
        "train_file_pattern": "dataset/trainset_{n}.txt",
        "test_file": "dataset/testset_10.txt",
    },
    "output": {
        "results_dir": "results",
        "params_dir": ".",
        "params_file_pattern": "client_{index}_params.txt",
    },
    "evaluation": {
        "save_plots": False,
    },
    "logging": {
        "log_level": "INFO",
    },
}


def deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge `overlay` onto a copy of `base`.
    """
    merged = copy.deepcopy(base)
    for k, v in overlay.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k] = deep_merge(merged[k], v)
        else:
            merged[k] = copy.deepcopy(v)
    return merged


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load YAML config into a nested dict, on top of DEFAULT_CONFIG.
    """
    if path is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return deep_merge(DEFAULT_CONFIG, cfg)


def deep_set(d: Dict[str, Any], key_path: str, value: Any) -> None:
    """
    Set nested dict item using dotted path.
    Example: deep_set(cfg, "client.learning_rate", 0.05)
    """
    parts = key_path.split(".")
    cur = d
    for p in parts[:-1]:
        if p not in cur or not isinstance(cur[p], dict):
            cur[p] = {}
        cur = cur[p]
    cur[parts[-1]] = value


def override_config(
    base_cfg: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Override nested config keys with CLI-provided values.
    """
    cfg = copy.deepcopy(base_cfg)
    for k, v in overrides.items():
        deep_set(cfg, k, v)
    return cfg


def is_strict(config: Dict[str, Any]) -> bool:
    return config["experiment"]["numeric_mode"] == "strict"


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> None:
    exp = config["experiment"]
    if exp["numeric_mode"] not in NUMERIC_MODES:
        raise ConfigurationError(
            f"experiment.numeric_mode must be one of {NUMERIC_MODES}, got {exp['numeric_mode']!r}",
            config_key="experiment.numeric_mode",
        )
    if exp["role"] not in ROLES:
        raise ConfigurationError(
            f"experiment.role must be one of {ROLES}, got {exp['role']!r}",
            config_key="experiment.role",
        )
    if not _is_integer(exp["seed"]):
        raise ConfigurationError("experiment.seed must be an integer", config_key="experiment.seed")
    if not _is_integer(exp["num_clients"]) or exp["num_clients"] < 0:
        raise ConfigurationError(
            "experiment.num_clients must be an integer >= 0", config_key="experiment.num_clients"
        )
    # out-of-range ratios are clamped by the splitter, non-numbers are not
    ratio = exp["train_ratio"]
    if isinstance(ratio, bool) or not isinstance(ratio, (int, float)) or not math.isfinite(ratio):
        raise ConfigurationError(
            f"experiment.train_ratio must be a finite number, got {ratio!r}",
            config_key="experiment.train_ratio",
        )

    for section in ("client", "centralized"):
        lr = config[section]["learning_rate"]
        epochs = config[section]["epochs"]
        if not lr > 0.0:
            raise ConfigurationError(
                f"{section}.learning_rate must be > 0", config_key=f"{section}.learning_rate"
            )
        if not _is_integer(epochs) or epochs < 0:
            raise ConfigurationError(
                f"{section}.epochs must be an integer >= 0", config_key=f"{section}.epochs"
            )

    decay = config["client"].get("lr_decay")
    if decay is not None and not decay > 0.0:
        raise ConfigurationError("client.lr_decay must be > 0 or null", config_key="client.lr_decay")
