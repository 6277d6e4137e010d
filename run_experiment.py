import argparse
import os
import sys
import time
from typing import Any, Dict, List, Optional

from fedlinreg.utils.config import load_config, override_config, validate_config
from fedlinreg.utils.exceptions import FedLinRegError
from fedlinreg.utils.logging_utils import (
    init_logging,
    create_run_dirs,
    get_logger,
    save_run_metadata,
)
from fedlinreg.experiments.runner import run_full_experiment


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Simulate federated linear regression across per-client text datasets."
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML config file (defaults are used for missing keys).",
    )
    parser.add_argument(
        "--role",
        type=str,
        default=None,
        choices=["client", "server", "all"],
        help="Override: run the client role, the server role, or both.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override: shuffle seed (must match between client and server runs).",
    )
    parser.add_argument(
        "--train-ratio",
        type=float,
        default=None,
        dest="train_ratio",
        help="Override: train/validation split ratio.",
    )
    parser.add_argument(
        "--num-clients",
        type=int,
        default=None,
        dest="num_clients",
        help="Override: number of simulated clients.",
    )
    parser.add_argument(
        "--client-lr",
        type=float,
        default=None,
        dest="client_lr",
        help="Override: client learning rate.",
    )
    parser.add_argument(
        "--lr-decay",
        type=float,
        default=None,
        dest="lr_decay",
        help="Override: client per-epoch learning-rate decay.",
    )
    parser.add_argument(
        "--client-epochs",
        type=int,
        default=None,
        dest="client_epochs",
        help="Override: client epochs.",
    )
    parser.add_argument(
        "--central-lr",
        type=float,
        default=None,
        dest="central_lr",
        help="Override: centralized learning rate.",
    )
    parser.add_argument(
        "--central-epochs",
        type=int,
        default=None,
        dest="central_epochs",
        help="Override: centralized epochs.",
    )
    parser.add_argument(
        "--numeric-mode",
        type=str,
        default=None,
        dest="numeric_mode",
        choices=["strict", "legacy"],
        help="Override: raise on degenerate data (strict) or propagate NaN (legacy).",
    )
    parser.add_argument(
        "--reuse-train-stats",
        type=str,
        default=None,
        dest="reuse_train_stats",
        help="Override: 'true' or 'false' (normalize validation with train statistics?).",
    )
    parser.add_argument(
        "--test-file",
        type=str,
        default=None,
        dest="test_file",
        help="Override: held-out test file.",
    )
    parser.add_argument(
        "--params-dir",
        type=str,
        default=None,
        dest="params_dir",
        help="Override: directory for client parameter records.",
    )
    parser.add_argument(
        "--save-plots",
        type=str,
        default=None,
        dest="save_plots",
        help="Override: 'true' or 'false'.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        help="Override: logging level (DEBUG, INFO, ...).",
    )

    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    cli_overrides: Dict[str, Any] = {}
    if args.role is not None:
        cli_overrides["experiment.role"] = args.role
    if args.seed is not None:
        cli_overrides["experiment.seed"] = args.seed
    if args.train_ratio is not None:
        cli_overrides["experiment.train_ratio"] = args.train_ratio
    if args.num_clients is not None:
        cli_overrides["experiment.num_clients"] = args.num_clients
    if args.numeric_mode is not None:
        cli_overrides["experiment.numeric_mode"] = args.numeric_mode
    if args.client_lr is not None:
        cli_overrides["client.learning_rate"] = args.client_lr
    if args.lr_decay is not None:
        cli_overrides["client.lr_decay"] = args.lr_decay
    if args.client_epochs is not None:
        cli_overrides["client.epochs"] = args.client_epochs
    if args.central_lr is not None:
        cli_overrides["centralized.learning_rate"] = args.central_lr
    if args.central_epochs is not None:
        cli_overrides["centralized.epochs"] = args.central_epochs
    if args.reuse_train_stats is not None:
        cli_overrides["normalization.reuse_train_stats"] = (
            args.reuse_train_stats.lower() == "true"
        )
    if args.test_file is not None:
        cli_overrides["data.test_file"] = args.test_file
    if args.params_dir is not None:
        cli_overrides["output.params_dir"] = args.params_dir
    if args.save_plots is not None:
        cli_overrides["evaluation.save_plots"] = args.save_plots.lower() == "true"
    if args.log_level is not None:
        cli_overrides["logging.log_level"] = args.log_level
    return cli_overrides


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    # 1. load base config
    config = load_config(args.config)

    # 2. apply overrides
    config = override_config(config, build_overrides(args))

    # 3. prepare output dirs
    ts = time.strftime("%Y%m%d_%H%M%S")
    exp_name = f"{config['experiment']['name']}_{config['experiment']['role']}_seed{config['experiment']['seed']}_{ts}"

    run_dirs = create_run_dirs(
        base_results_dir=config["output"]["results_dir"],
        exp_name=exp_name,
    )

    # 4. init logger
    init_logging(
        log_level=config["logging"]["log_level"],
        log_file=os.path.join(run_dirs["logs_dir"], f"{exp_name}.log"),
    )
    logger = get_logger(__name__)

    try:
        validate_config(config)

        logger.info("Starting federated regression run.")
        logger.info("Resolved configuration:")
        logger.info(config)

        # 5. write run metadata for reproducibility
        save_run_metadata(
            run_dirs=run_dirs,
            config=config,
            exp_name=exp_name,
        )

        # 6. run experiment orchestration
        run_full_experiment(
            config=config,
            run_dirs=run_dirs,
            exp_name=exp_name,
        )
    except FedLinRegError as exc:
        logger.error(f"Run aborted: {exc}")
        return 1

    logger.info("Experiment complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
