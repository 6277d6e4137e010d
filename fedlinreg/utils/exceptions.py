"""
Exceptions raised by the federated regression pipeline.

Every error carries an optional path so the CLI can report which file
caused a client or server run to abort.
"""

from typing import Optional


class FedLinRegError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} (path: {self.path})"
        return self.message


class ResourceUnavailableError(FedLinRegError):
    """A dataset or parameter file is missing or cannot be read/written."""


class MalformedRecordError(FedLinRegError):
    """A parameter record has fewer than four parsable values."""


class EmptyDatasetError(FedLinRegError):
    """No usable samples remain after lenient parsing or splitting."""


class DegenerateNormalizationError(FedLinRegError):
    """The feature column has zero variance, so it cannot be rescaled."""

    def __init__(self, message: str, mean: float, std_dev: float, path: Optional[str] = None):
        self.mean = mean
        self.std_dev = std_dev
        super().__init__(message, path)


class EmptyAggregationSetError(FedLinRegError):
    """Aggregation was requested over zero parameter records."""


class ConfigurationError(FedLinRegError):
    """Raised when a configuration value is missing or invalid."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        super().__init__(message)
