import logging
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import torch

from ..data.loader import FEATURE_COLUMN, LABEL_COLUMN, read_dataset
from ..data.preprocess import apply_normalization, normalize_features, split_dataset
from ..models.model_zoo import ModelParams, build_model
from ..utils.config import is_strict
from ..utils.exceptions import EmptyDatasetError
from ..utils.metrics import compute_rmse
from .exchange import ParameterExchange

LOGGER = logging.getLogger(__name__)

_LOG_EVERY = 1000


class TrainResult:
    """Fitted weight/bias plus the MSE seen at every epoch (before its update)."""

    def __init__(self, weight: float, bias: float, loss_history: List[float]):
        self.weight = weight
        self.bias = bias
        self.loss_history = loss_history

    def __repr__(self) -> str:
        return f"TrainResult(weight={self.weight}, bias={self.bias}, epochs={len(self.loss_history)})"


def _half_mse_loss(model: torch.nn.Module, x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
    """
    0.5 * mean((pred - y)^2). The 0.5 makes the gradient exactly
    dw = mean((pred - y) * x), db = mean(pred - y).
    """
    residual = model(x) - y
    return 0.5 * (residual ** 2).mean()


def train_model(
    dataset: pd.DataFrame,
    learning_rate: float,
    epochs: int,
    decay: Optional[float] = None,
    strict: bool = True,
) -> TrainResult:
    """
    Full-batch gradient descent for y = w * x + b, starting from w = b = 0.

    Runs exactly `epochs` updates with no convergence check. When `decay` is
    set the learning rate is multiplied by it after every epoch (client
    configuration); with decay=None it stays constant (centralized
    configuration).

    Arguments:
        dataset: samples to fit, features used as-is
        learning_rate: initial step size, must be > 0
        epochs: number of full-batch updates, must be >= 0
        decay: optional per-epoch learning-rate multiplier
        strict: raise EmptyDatasetError on an empty dataset instead of
            returning NaN parameters

    Returns:
        TrainResult with the fitted weight/bias and per-epoch MSE history
    """
    if learning_rate <= 0.0:
        raise ValueError("Learning rate must be > 0.")
    if epochs < 0:
        raise ValueError("Epochs must be >= 0.")

    if len(dataset) == 0:
        if strict:
            raise EmptyDatasetError("Cannot train on an empty dataset")
        LOGGER.warning("[train_model] empty dataset, parameters are NaN")
        # mean gradient over zero samples is 0/0
        undefined = float("nan") if epochs > 0 else 0.0
        return TrainResult(weight=undefined, bias=undefined, loss_history=[float("nan")] * epochs)

    x = torch.tensor(dataset[FEATURE_COLUMN].to_numpy(dtype=np.float64), dtype=torch.float64)
    y = torch.tensor(dataset[LABEL_COLUMN].to_numpy(dtype=np.float64), dtype=torch.float64)

    model = build_model()
    model.train()
    optimizer = torch.optim.SGD(model.parameters(), lr=learning_rate)
    scheduler = None
    if decay is not None:
        scheduler = torch.optim.lr_scheduler.ExponentialLR(optimizer, gamma=decay)

    loss_history: List[float] = []
    for epoch in range(epochs):
        optimizer.zero_grad()
        loss = _half_mse_loss(model, x, y)
        loss.backward()
        optimizer.step()
        if scheduler is not None:
            scheduler.step()

        mse = 2.0 * loss.item()
        loss_history.append(mse)

        if (epoch + 1) % _LOG_EVERY == 0 or epoch + 1 == epochs:
            LOGGER.debug(
                f"[train_model] Epoch {epoch+1}/{epochs} "
                f"mse={mse:.6f} lr={optimizer.param_groups[0]['lr']:.6g}"
            )

    weight, bias = model.get_params()
    if not (np.isfinite(weight) and np.isfinite(bias)):
        LOGGER.warning(
            f"[train_model] training produced non-finite parameters "
            f"(weight={weight}, bias={bias}); learning rate {learning_rate} may be too large"
        )
    return TrainResult(weight=weight, bias=bias, loss_history=loss_history)


def run_client(
    client_index: int,
    train_path: str,
    config: Dict[str, Any],
    exchange: ParameterExchange,
) -> Dict[str, Any]:
    """
    Load, split, normalize, train and evaluate one client, then publish its
    parameters (trained weight/bias plus the TRAIN split's mean/std_dev).

    The validation split is normalized with its own statistics unless
    normalization.reuse_train_stats is set, in which case the train
    statistics are applied to it.
    """
    strict = is_strict(config)

    dataset = read_dataset(train_path)
    if len(dataset) == 0:
        if strict:
            raise EmptyDatasetError("No usable samples in client dataset", path=train_path)
        LOGGER.warning(f"[run_client][client {client_index}] no usable samples in {train_path}")

    train_set, val_set = split_dataset(
        dataset,
        train_ratio=config["experiment"]["train_ratio"],
        seed=config["experiment"]["seed"],
    )
    if strict and len(train_set) == 0:
        raise EmptyDatasetError("Train split is empty", path=train_path)

    train_stats = normalize_features(train_set, strict=strict)
    if config["normalization"]["reuse_train_stats"]:
        apply_normalization(val_set, train_stats)
    elif len(val_set) > 0:
        # a degenerate validation column only makes val RMSE undefined
        normalize_features(val_set, strict=False)

    result = train_model(
        train_set,
        learning_rate=config["client"]["learning_rate"],
        epochs=config["client"]["epochs"],
        decay=config["client"].get("lr_decay"),
        strict=strict,
    )

    # train/val features are already normalized, so evaluate with identity stats
    fitted = ModelParams.unnormalized(result.weight, result.bias)
    train_rmse = compute_rmse(train_set, fitted)
    val_rmse = compute_rmse(val_set, fitted)

    LOGGER.info(f"Client {client_index} - Train RMSE: {train_rmse:.6g}, Validation RMSE: {val_rmse:.6g}")

    params = ModelParams(
        weight=result.weight,
        bias=result.bias,
        mean=train_stats.mean,
        std_dev=train_stats.std_dev,
    )
    params_path = exchange.publish(client_index, params)

    return {
        "client_index": client_index,
        "train_path": train_path,
        "params_path": params_path,
        "n_samples": len(dataset),
        "n_train": len(train_set),
        "n_val": len(val_set),
        "train_rmse": train_rmse,
        "val_rmse": val_rmse,
        "params": params,
        "loss_history": result.loss_history,
    }
