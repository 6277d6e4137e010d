import os
import csv
import json
from typing import Dict, Any, List, Optional
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from ..data.loader import client_file_mapping
from ..fl.exchange import FileParameterExchange
from ..fl.server import run_server
from ..fl.strategies import run_all_clients
from ..utils.logging_utils import get_logger, hash_file, write_client_summary_txt
from ..utils.metrics import summarize_rmse


def _dataset_checksums(config: Dict[str, Any]) -> Dict[str, Optional[str]]:
    paths = [path for _, path in client_file_mapping(config)]
    paths.append(config["data"]["test_file"])
    return {p: (hash_file(p) if os.path.isfile(p) else None) for p in paths}


def _params_dict(params) -> Dict[str, float]:
    return {
        "weight": params.weight,
        "bias": params.bias,
        "mean": params.mean,
        "std_dev": params.std_dev,
    }


def run_full_experiment(
    config: Dict[str, Any],
    run_dirs: Dict[str, str],
    exp_name: str,
) -> Dict[str, Any]:
    """
    Run the client role, the server role, or both (experiment.role) and
    write per-client CSV, JSON/text summaries and optional plots.
    """
    logger = get_logger(__name__)

    role = config["experiment"]["role"]
    exchange = FileParameterExchange.from_config(config)

    client_reports: List[Dict[str, Any]] = []
    server_report: Optional[Dict[str, Any]] = None

    if role in ("client", "all"):
        logger.info("Running client role...")
        client_reports = run_all_clients(config, exchange)
        _write_client_csv(
            client_reports,
            out_path=os.path.join(run_dirs["logs_dir"], f"{exp_name}_clients.csv"),
        )
        for rep in client_reports:
            write_client_summary_txt(
                summaries_dir=run_dirs["summaries_dir"],
                client_index=rep["client_index"],
                metrics={
                    "train_path": rep["train_path"],
                    "params_path": rep["params_path"],
                    "n_samples": rep["n_samples"],
                    "n_train": rep["n_train"],
                    "n_val": rep["n_val"],
                    "train_rmse": rep["train_rmse"],
                    "val_rmse": rep["val_rmse"],
                    **_params_dict(rep["params"]),
                },
            )

    if role in ("server", "all"):
        logger.info("Running server role...")
        server_report = run_server(config, exchange)

    summary_obj: Dict[str, Any] = {
        "experiment_name": exp_name,
        "role": role,
        "seed": config["experiment"]["seed"],
        "numeric_mode": config["experiment"]["numeric_mode"],
        "dataset_checksums": _dataset_checksums(config),
        "config_snapshot": config,
    }
    if client_reports:
        summary_obj["clients"] = [
            {
                "client_index": rep["client_index"],
                "train_rmse": rep["train_rmse"],
                "val_rmse": rep["val_rmse"],
                "params": _params_dict(rep["params"]),
            }
            for rep in client_reports
        ]
        summary_obj["train_rmse_summary"] = summarize_rmse(client_reports, "train_rmse")
        summary_obj["val_rmse_summary"] = summarize_rmse(client_reports, "val_rmse")
    if server_report is not None:
        summary_obj["federated_rmse"] = server_report["federated_rmse"]
        summary_obj["centralized_rmse"] = server_report["centralized_rmse"]
        summary_obj["global_params"] = _params_dict(server_report["global_params"])
        summary_obj["centralized_params"] = _params_dict(server_report["centralized_params"])

    final_json_path = os.path.join(
        run_dirs["summaries_dir"],
        f"{exp_name}_final_summary.json",
    )
    with open(final_json_path, "w", encoding="utf-8") as f_json:
        # NaN metrics are written as the JSON extension token NaN
        json.dump(summary_obj, f_json, indent=2)

    final_txt_path = os.path.join(
        run_dirs["summaries_dir"],
        f"{exp_name}_final_summary.txt",
    )
    with open(final_txt_path, "w", encoding="utf-8") as f_txt:
        f_txt.write("FINAL EVALUATION SUMMARY\n")
        f_txt.write("========================\n\n")
        f_txt.write(f"Experiment:   {exp_name}\n")
        f_txt.write(f"Role:         {role}\n")
        f_txt.write(f"Seed:         {config['experiment']['seed']}\n")
        f_txt.write(f"Numeric mode: {config['experiment']['numeric_mode']}\n\n")

        if client_reports:
            f_txt.write("Per-client RMSE:\n")
            for rep in client_reports:
                f_txt.write(
                    f"  client {rep['client_index']}: "
                    f"train={rep['train_rmse']:.6g} val={rep['val_rmse']:.6g}\n"
                )
            f_txt.write("\nValidation RMSE spread:\n")
            f_txt.write(json.dumps(summary_obj["val_rmse_summary"], indent=2))
            f_txt.write("\n\n")

        if server_report is not None:
            f_txt.write(f"Federated global model RMSE: {server_report['federated_rmse']:.6g}\n")
            f_txt.write(f"Centralized model RMSE:      {server_report['centralized_rmse']:.6g}\n")

    if config["evaluation"]["save_plots"]:
        if client_reports:
            _plot_client_rmse(
                client_reports,
                out_path=os.path.join(run_dirs["summaries_dir"], f"{exp_name}_client_rmse.png"),
                title="Per-Client Train / Validation RMSE",
            )
            _plot_loss_curves(
                client_reports,
                out_path=os.path.join(run_dirs["summaries_dir"], f"{exp_name}_loss_curves.png"),
                title="Client Training MSE vs Epoch",
            )
        if server_report is not None:
            _plot_model_comparison(
                server_report,
                out_path=os.path.join(run_dirs["summaries_dir"], f"{exp_name}_model_comparison.png"),
                title="Federated vs Centralized Test RMSE",
            )

    return {"clients": client_reports, "server": server_report, "summary_path": final_json_path}


def _write_client_csv(client_reports: List[Dict[str, Any]], out_path: str) -> None:
    fieldnames = [
        "client_index",
        "train_path",
        "params_path",
        "n_samples",
        "n_train",
        "n_val",
        "train_rmse",
        "val_rmse",
        "weight",
        "bias",
        "mean",
        "std_dev",
    ]
    with open(out_path, "w", newline="", encoding="utf-8") as f_csv:
        writer = csv.DictWriter(f_csv, fieldnames=fieldnames)
        writer.writeheader()
        for rep in client_reports:
            row = {k: rep[k] for k in fieldnames if k in rep}
            row.update(_params_dict(rep["params"]))
            writer.writerow(row)


def _plot_client_rmse(client_reports, out_path, title) -> None:
    rows = []
    for rep in client_reports:
        rows.append({"client": str(rep["client_index"]), "split": "train", "rmse": rep["train_rmse"]})
        rows.append({"client": str(rep["client_index"]), "split": "validation", "rmse": rep["val_rmse"]})
    df = pd.DataFrame(rows)

    plt.figure()
    sns.barplot(data=df, x="client", y="rmse", hue="split")
    plt.xlabel("Client")
    plt.ylabel("RMSE")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_path)
    plt.close()


def _plot_loss_curves(client_reports, out_path, title) -> None:
    plt.figure()
    for rep in client_reports:
        hist = rep["loss_history"]
        plt.plot(range(1, len(hist) + 1), hist, label=f"client {rep['client_index']}")
    plt.xlabel("Epoch")
    plt.ylabel("Train MSE")
    plt.yscale("log")
    plt.title(title)
    plt.legend()
    plt.tight_layout()
    plt.savefig(out_path)
    plt.close()


def _plot_model_comparison(server_report, out_path, title) -> None:
    df = pd.DataFrame(
        {
            "model": ["federated", "centralized"],
            "rmse": [server_report["federated_rmse"], server_report["centralized_rmse"]],
        }
    )

    plt.figure()
    sns.barplot(data=df, x="model", y="rmse")
    plt.ylabel("Test RMSE")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_path)
    plt.close()
