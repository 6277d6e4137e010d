import logging
from typing import Any, Dict, List

import numpy as np
import pandas as pd
from sklearn.metrics import mean_squared_error

from ..data.loader import FEATURE_COLUMN, LABEL_COLUMN
from ..models.model_zoo import ModelParams

LOGGER = logging.getLogger(__name__)


def compute_rmse(dataset: pd.DataFrame, params: ModelParams) -> float:
    """
    Root-mean-squared error of `params` on `dataset`.

    Raw features are rescaled with the model's mean/std_dev first when it
    carries a non-identity normalization. An empty dataset or non-finite
    predictions make the metric undefined: NaN is returned, never raised.
    """
    if len(dataset) == 0:
        LOGGER.warning("[compute_rmse] empty dataset, RMSE is undefined")
        return float("nan")

    y_true = dataset[LABEL_COLUMN].to_numpy(dtype=np.float64)
    y_pred = params.predict(dataset[FEATURE_COLUMN].to_numpy(dtype=np.float64))

    if not np.all(np.isfinite(y_pred)):
        LOGGER.warning(
            f"[compute_rmse] non-finite predictions for params={params}, RMSE is undefined"
        )
        return float("nan")

    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def summarize_rmse(
    reports: List[Dict[str, Any]],
    metric_key: str = "val_rmse",
) -> Dict[str, float]:
    """
    Spread of a per-client RMSE across clients. Undefined (NaN) values are
    ignored; if nothing is left every statistic is NaN.
    """
    vals = [r[metric_key] for r in reports if metric_key in r]
    arr = np.array(vals, dtype=float)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        nan = float("nan")
        return {"mean": nan, "std": nan, "min": nan, "max": nan, "disparity": nan}
    return {
        "mean": float(arr.mean()),
        "std": float(arr.std(ddof=0)),
        "min": float(arr.min()),
        "max": float(arr.max()),
        "disparity": float(arr.max() - arr.min()),
    }
