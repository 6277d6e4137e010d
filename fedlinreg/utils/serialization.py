import os
from typing import List, Optional

from ..models.model_zoo import ModelParams
from .exceptions import MalformedRecordError, ResourceUnavailableError

N_FIELDS = 4


def format_parameters(params: ModelParams) -> str:
    """
    Single line "<weight> <bias> <mean> <std_dev>" with round-trip precision.
    """
    return " ".join(repr(float(v)) for v in params.as_tuple())


def parse_parameters(text: str, path: Optional[str] = None) -> ModelParams:
    tokens = text.split()
    if len(tokens) < N_FIELDS:
        raise MalformedRecordError(
            f"Expected {N_FIELDS} values (weight bias mean std_dev), found {len(tokens)}",
            path=path,
        )
    values: List[float] = []
    for tok in tokens[:N_FIELDS]:
        try:
            values.append(float(tok))
        except ValueError as exc:
            raise MalformedRecordError(f"Unparsable parameter value '{tok}'", path=path) from exc
    return ModelParams(weight=values[0], bias=values[1], mean=values[2], std_dev=values[3])


def write_parameters(path: str, params: ModelParams) -> None:
    parent = os.path.dirname(path)
    try:
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(format_parameters(params) + "\n")
    except OSError as exc:
        raise ResourceUnavailableError(f"Could not write parameter record: {exc}", path=path) from exc


def read_parameters(path: str) -> ModelParams:
    if not os.path.isfile(path):
        raise ResourceUnavailableError("Parameter record not found", path=path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ResourceUnavailableError(f"Could not read parameter record: {exc}", path=path) from exc
    return parse_parameters(text, path=path)
