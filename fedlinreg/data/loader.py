import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..utils.exceptions import ResourceUnavailableError

LOGGER = logging.getLogger(__name__)

FEATURE_COLUMN = "feature"
LABEL_COLUMN = "label"

_LABEL_LIMIT = 2.0 ** 63


def empty_dataset() -> pd.DataFrame:
    return pd.DataFrame(
        {
            FEATURE_COLUMN: pd.Series([], dtype=np.float64),
            LABEL_COLUMN: pd.Series([], dtype=np.int64),
        }
    )


def _tokenize_lines(lines: List[str]) -> List[Tuple[str, str]]:
    """
    Keep the first two whitespace-separated tokens of every line.
    Lines with fewer than two tokens (including blank ones) are dropped here.
    """
    pairs = []
    for line in lines:
        tokens = line.split()
        if len(tokens) >= 2:
            pairs.append((tokens[0], tokens[1]))
    return pairs


def _clean_sample_columns(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Coerce both columns to numbers (invalid entries -> NaN) and drop the rows
    that are not a finite feature with an integral label.
    """
    feature = pd.to_numeric(raw[FEATURE_COLUMN], errors="coerce")
    label = pd.to_numeric(raw[LABEL_COLUMN], errors="coerce")

    valid = np.isfinite(feature.to_numpy(dtype=np.float64))
    label_vals = label.to_numpy(dtype=np.float64)
    valid &= np.isfinite(label_vals)
    valid &= np.floor(np.where(np.isfinite(label_vals), label_vals, 0.0)) == label_vals
    # labels must fit an int64; 2**63 is the first float64 that does not
    valid &= np.abs(np.where(np.isfinite(label_vals), label_vals, 0.0)) < _LABEL_LIMIT

    return pd.DataFrame(
        {
            FEATURE_COLUMN: feature[valid].astype(np.float64).to_numpy(),
            LABEL_COLUMN: label[valid].astype(np.int64).to_numpy(),
        }
    )


def read_dataset(path: str) -> pd.DataFrame:
    """
    Parse a whitespace-delimited "<feature> <label>" text file.

    Lenient: lines whose first two tokens are not (decimal, integer) are
    skipped. An empty or fully unparsable file yields an empty dataset, not
    an error. A missing or unreadable file raises ResourceUnavailableError.
    """
    if not os.path.isfile(path):
        raise ResourceUnavailableError("Dataset file not found", path=path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise ResourceUnavailableError(f"Could not read dataset file: {exc}", path=path) from exc

    pairs = _tokenize_lines(lines)
    if not pairs:
        LOGGER.debug(f"[read_dataset] {path}: no parsable lines")
        return empty_dataset()

    raw = pd.DataFrame(pairs, columns=[FEATURE_COLUMN, LABEL_COLUMN])
    dataset = _clean_sample_columns(raw)

    n_nonblank = sum(1 for line in lines if line.strip())
    skipped = n_nonblank - len(dataset)
    if skipped:
        LOGGER.debug(f"[read_dataset] {path}: skipped {skipped} malformed line(s)")
    LOGGER.debug(f"[read_dataset] {path}: loaded {len(dataset)} samples")

    return dataset


def combine_datasets(datasets: List[pd.DataFrame]) -> pd.DataFrame:
    """
    Concatenate datasets in the order given (used for the centralized pool).
    """
    non_empty = [d for d in datasets if len(d) > 0]
    if not non_empty:
        return empty_dataset()
    return pd.concat(non_empty, ignore_index=True)


def client_file_mapping(config: Dict[str, Any]) -> List[Tuple[int, str]]:
    """
    Ordered client -> training file mapping.

    If data.train_files is a non-empty list it is used as-is, in order.
    Otherwise data.train_file_pattern is expanded for
    experiment.num_clients clients; the pattern's {n} counts from 1 while
    client indices count from 0:

    client 0 -> dataset/trainset_1.txt
    client 1 -> dataset/trainset_2.txt
    ...
    """
    explicit: Optional[List[str]] = config["data"].get("train_files")
    if explicit:
        return [(i, path) for i, path in enumerate(explicit)]

    pattern = config["data"]["train_file_pattern"]
    num_clients = config["experiment"]["num_clients"]
    return [(i, pattern.format(n=i + 1, index=i)) for i in range(num_clients)]
