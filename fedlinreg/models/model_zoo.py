from dataclasses import dataclass
from typing import Tuple

import numpy as np
import torch
import torch.nn as nn


class UnivariateLinearModel(nn.Module):
    """
    Single-feature linear regressor: y = weight * x + bias.
    Both parameters are float64 scalars initialised to zero.
    """

    def __init__(self):
        super().__init__()
        self.weight = nn.Parameter(torch.zeros((), dtype=torch.float64))
        self.bias = nn.Parameter(torch.zeros((), dtype=torch.float64))

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.weight * x + self.bias

    def get_params(self) -> Tuple[float, float]:
        return float(self.weight.item()), float(self.bias.item())


def build_model() -> UnivariateLinearModel:
    return UnivariateLinearModel()


@dataclass(frozen=True)
class ModelParams:
    """
    A fitted linear model plus the normalization its input expects.

    prediction = weight * ((x - mean) / std_dev) + bias

    mean=0, std_dev=1 is the identity normalization (unnormalized model).
    """

    weight: float
    bias: float
    mean: float = 0.0
    std_dev: float = 1.0

    @classmethod
    def unnormalized(cls, weight: float, bias: float) -> "ModelParams":
        return cls(weight=weight, bias=bias, mean=0.0, std_dev=1.0)

    @property
    def is_normalized(self) -> bool:
        return not (self.mean == 0.0 and self.std_dev == 1.0)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.weight, self.bias, self.mean, self.std_dev)

    def predict(self, features: np.ndarray) -> np.ndarray:
        x = np.asarray(features, dtype=np.float64)
        if self.is_normalized:
            with np.errstate(divide="ignore", invalid="ignore"):
                x = (x - self.mean) / self.std_dev
        return self.weight * x + self.bias
