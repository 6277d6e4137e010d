import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd

from .loader import FEATURE_COLUMN
from ..utils.exceptions import DegenerateNormalizationError, EmptyDatasetError

LOGGER = logging.getLogger(__name__)

DEFAULT_TRAIN_RATIO = 0.8
DEFAULT_SPLIT_SEED = 42


@dataclass(frozen=True)
class NormalizationStats:
    mean: float
    std_dev: float


def split_dataset(
    dataset: pd.DataFrame,
    train_ratio: float = DEFAULT_TRAIN_RATIO,
    seed: int = DEFAULT_SPLIT_SEED,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Shuffle with a fixed seed, then take the first floor(n * ratio) rows as
    train and the remainder as validation.

    The partition depends only on len(dataset), train_ratio and seed, so
    client and server roles see the same split on every run. A ratio outside
    [0, 1] or an empty dataset gives a degenerate split (one side empty).
    Both halves are independent copies of the original rows.
    """
    n = len(dataset)
    order = np.random.default_rng(seed).permutation(n)

    train_size = int(np.floor(n * train_ratio))
    train_size = min(max(train_size, 0), n)
    if n == 0 or train_size in (0, n):
        LOGGER.warning(
            f"[split_dataset] degenerate split: n={n} ratio={train_ratio} "
            f"-> train={train_size} val={n - train_size}"
        )

    train = dataset.iloc[order[:train_size]].reset_index(drop=True)
    val = dataset.iloc[order[train_size:]].reset_index(drop=True)
    return train, val


def _feature_stats(x: np.ndarray) -> NormalizationStats:
    """
    Sum and sum of squares over the column; variance = E[x^2] - E[x]^2.
    A slightly negative variance from cancellation gives NaN, as before.
    """
    n = x.size
    if n == 0:
        return NormalizationStats(mean=float("nan"), std_dev=float("nan"))
    with np.errstate(invalid="ignore"):
        mean = x.sum() / n
        variance = np.dot(x, x) / n - mean * mean
        std_dev = np.sqrt(variance)
    return NormalizationStats(mean=float(mean), std_dev=float(std_dev))


def apply_normalization(dataset: pd.DataFrame, stats: NormalizationStats) -> None:
    """
    Rescale the feature column in place to (x - mean) / std_dev using the
    given statistics. Zero std_dev yields inf/NaN values, not an exception.
    """
    x = dataset[FEATURE_COLUMN].to_numpy(dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        dataset[FEATURE_COLUMN] = (x - stats.mean) / stats.std_dev


def normalize_features(dataset: pd.DataFrame, strict: bool = True) -> NormalizationStats:
    """
    Compute mean/std_dev of the feature column, rescale the column in place,
    and return the statistics of the ORIGINAL values.

    strict=True raises EmptyDatasetError for an empty dataset and
    DegenerateNormalizationError for a zero-variance column. strict=False
    keeps the legacy behaviour: the division silently produces inf/NaN and
    only a warning is logged.
    """
    x = dataset[FEATURE_COLUMN].to_numpy(dtype=np.float64)
    stats = _feature_stats(x)

    if x.size == 0:
        if strict:
            raise EmptyDatasetError("Cannot normalize an empty dataset")
        LOGGER.warning("[normalize_features] empty dataset, statistics are NaN")
        return stats

    degenerate = (
        np.ptp(x) == 0
        or not np.isfinite(stats.std_dev)
        or stats.std_dev <= 0.0
    )
    if degenerate:
        if strict:
            raise DegenerateNormalizationError(
                f"Feature column has zero variance (mean={stats.mean}, std_dev={stats.std_dev})",
                mean=stats.mean,
                std_dev=stats.std_dev,
            )
        LOGGER.warning(
            f"[normalize_features] degenerate feature column "
            f"(mean={stats.mean}, std_dev={stats.std_dev}); values become inf/NaN"
        )

    apply_normalization(dataset, stats)
    return stats
