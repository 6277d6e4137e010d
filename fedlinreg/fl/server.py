import logging
from typing import Any, Dict, List, Tuple

import numpy as np

from ..data.loader import client_file_mapping, combine_datasets, read_dataset
from ..models.model_zoo import ModelParams
from ..utils.config import is_strict
from ..utils.exceptions import EmptyAggregationSetError, EmptyDatasetError
from ..utils.metrics import compute_rmse
from .client import train_model
from .exchange import ParameterExchange

LOGGER = logging.getLogger(__name__)


def aggregate_params(records: List[ModelParams], strict: bool = True) -> ModelParams:
    """
    Unweighted element-wise mean of client parameter records.

    Every field (weight, bias, mean, std_dev) of the result is the arithmetic
    mean of that field over all records. With zero records, strict mode
    raises EmptyAggregationSetError; legacy mode returns an all-NaN record.
    """
    if not records:
        if strict:
            raise EmptyAggregationSetError("Cannot aggregate zero parameter records")
        LOGGER.warning("[aggregate_params] zero records, global parameters are NaN")
        nan = float("nan")
        return ModelParams(weight=nan, bias=nan, mean=nan, std_dev=nan)

    for i, rec in enumerate(records):
        LOGGER.debug(f"[aggregate_params] record {i}: {rec}")

    if len(records) == 1:
        return records[0]

    stacked = np.array([rec.as_tuple() for rec in records], dtype=np.float64)
    avg = stacked.mean(axis=0)
    return ModelParams(
        weight=float(avg[0]),
        bias=float(avg[1]),
        mean=float(avg[2]),
        std_dev=float(avg[3]),
    )


def train_centralized(config: Dict[str, Any]) -> Tuple[ModelParams, int]:
    """
    Pool every client's training file and fit one model on the raw
    (unnormalized) features with the centralized learning rate, no decay.
    """
    strict = is_strict(config)
    mapping = client_file_mapping(config)
    combined = combine_datasets([read_dataset(path) for _, path in mapping])
    LOGGER.info(f"[train_centralized] pooled {len(combined)} samples from {len(mapping)} client file(s)")

    if len(combined) == 0 and strict:
        raise EmptyDatasetError("Pooled centralized dataset is empty")

    result = train_model(
        combined,
        learning_rate=config["centralized"]["learning_rate"],
        epochs=config["centralized"]["epochs"],
        decay=None,
        strict=strict,
    )
    return ModelParams.unnormalized(result.weight, result.bias), len(combined)


def run_server(config: Dict[str, Any], exchange: ParameterExchange) -> Dict[str, Any]:
    """
    Benchmark the federated global model against the centralized baseline
    on the held-out test file.

    All client records must be present; a partial set is reported as an
    error instead of being aggregated.
    """
    strict = is_strict(config)
    test_path = config["data"]["test_file"]

    # records first, so a missing client fails before the centralized run
    client_indices = [idx for idx, _ in client_file_mapping(config)]
    client_params = exchange.collect(client_indices)
    global_params = aggregate_params(client_params, strict=strict)
    LOGGER.info(f"[run_server] aggregated {len(client_params)} client record(s): {global_params}")

    centralized_params, n_combined = train_centralized(config)

    testset = read_dataset(test_path)
    if len(testset) == 0 and strict:
        raise EmptyDatasetError("No usable samples in test dataset", path=test_path)

    federated_rmse = compute_rmse(testset, global_params)
    LOGGER.info(f"Federated Learning Global Model RMSE: {federated_rmse:.6g}")

    centralized_rmse = compute_rmse(testset, centralized_params)
    LOGGER.info(f"Centralized Model RMSE: {centralized_rmse:.6g}")

    return {
        "federated_rmse": federated_rmse,
        "centralized_rmse": centralized_rmse,
        "global_params": global_params,
        "centralized_params": centralized_params,
        "client_params": client_params,
        "n_combined": n_combined,
        "n_test": len(testset),
    }
