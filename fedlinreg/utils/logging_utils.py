import logging
import os
import json
import hashlib
from typing import Any, Dict, Optional


# package name, so every module logger (logging.getLogger(__name__)) is a child
_LOGGER_NAME = "fedlinreg"

_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def init_logging(log_level: str, log_file: Optional[str] = None) -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter(_FORMAT, _DATE_FORMAT))
    logger.addHandler(ch)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(_FORMAT, _DATE_FORMAT))
        logger.addHandler(fh)


def get_logger(name: str) -> logging.Logger:
    if name == _LOGGER_NAME or name.startswith(_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(_LOGGER_NAME).getChild(name)


def create_run_dirs(base_results_dir: str, exp_name: str) -> Dict[str, str]:
    run_root = os.path.join(base_results_dir, exp_name)
    run_logs = os.path.join(run_root, "logs")
    run_summaries = os.path.join(run_root, "summaries")
    run_artifacts = os.path.join(run_root, "artifacts")

    os.makedirs(run_root, exist_ok=True)
    os.makedirs(run_logs, exist_ok=True)
    os.makedirs(run_summaries, exist_ok=True)
    os.makedirs(run_artifacts, exist_ok=True)

    return {
        "root_dir": run_root,
        "logs_dir": run_logs,
        "summaries_dir": run_summaries,
        "artifacts_dir": run_artifacts,
    }


def save_run_metadata(
    run_dirs: Dict[str, str],
    config: Dict[str, Any],
    exp_name: str,
) -> None:
    meta_path = os.path.join(run_dirs["artifacts_dir"], "run_config.json")
    with open(meta_path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)

    repro_path = os.path.join(run_dirs["artifacts_dir"], "README_reproducibility.txt")
    with open(repro_path, "w", encoding="utf-8") as f:
        f.write(
            "Reproducibility Notes\n"
            "=====================\n\n"
            f"Experiment name: {exp_name}\n"
            f"Shuffle seed:    {config['experiment']['seed']}\n"
            f"Numeric mode:    {config['experiment']['numeric_mode']}\n\n"
            "To reproduce this run:\n"
            "1. Use the same client training files and test file (see checksums in the summary)\n"
            "2. Use the saved config snapshot run_config.json\n"
            "3. Run `python run_experiment.py --config <copied_config.yaml>`\n"
            "4. Keep the shuffle seed identical for the client and server roles.\n"
        )


def hash_file(path: str) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def write_client_summary_txt(
    summaries_dir: str,
    client_index: int,
    metrics: Dict[str, Any],
) -> str:
    """
    Per-client text summary: data sizes, RMSEs and the published parameters.
    """
    path = os.path.join(summaries_dir, f"client_{client_index}_summary.txt")
    with open(path, "w", encoding="utf-8") as f:
        f.write("Client summary\n")
        f.write("==============\n\n")
        f.write(f"Client: {client_index}\n\n")
        for k, v in metrics.items():
            f.write(f"  {k}: {v}\n")
    return path
