"""Parameter exchange between clients and the server.

Clients publish their fitted ModelParams; the server collects them all
before aggregating. The file-backed exchange stands in for a network
transport: any other transport only needs to implement the same three
methods.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ..models.model_zoo import ModelParams
from ..utils.exceptions import ResourceUnavailableError
from ..utils.serialization import read_parameters, write_parameters

LOGGER = logging.getLogger(__name__)


class ParameterExchange(ABC):
    """Abstract hand-off channel for client parameter records."""

    @abstractmethod
    def publish(self, client_index: int, params: ModelParams) -> str:
        """Make one client's parameters available to the server; return where they went."""

    @abstractmethod
    def missing(self, client_indices: List[int]) -> List[str]:
        """Return a locator for every expected record that is not available."""

    @abstractmethod
    def collect(self, client_indices: List[int]) -> List[ModelParams]:
        """Return the records of all given clients, in the given order.

        Raises:
            ResourceUnavailableError: if any expected record is absent.
        """


class FileParameterExchange(ParameterExchange):
    """One parameter file per client under `params_dir`."""

    def __init__(self, params_dir: str = ".", filename_pattern: str = "client_{index}_params.txt"):
        self.params_dir = params_dir
        self.filename_pattern = filename_pattern

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "FileParameterExchange":
        return cls(
            params_dir=config["output"]["params_dir"],
            filename_pattern=config["output"]["params_file_pattern"],
        )

    def path_for(self, client_index: int) -> str:
        return os.path.join(self.params_dir, self.filename_pattern.format(index=client_index))

    def publish(self, client_index: int, params: ModelParams) -> str:
        path = self.path_for(client_index)
        write_parameters(path, params)
        LOGGER.info(f"[exchange] client {client_index} parameters written to {path}")
        return path

    def missing(self, client_indices: List[int]) -> List[str]:
        return [
            self.path_for(i) for i in client_indices if not os.path.isfile(self.path_for(i))
        ]

    def collect(self, client_indices: List[int]) -> List[ModelParams]:
        absent = self.missing(client_indices)
        if absent:
            raise ResourceUnavailableError(
                f"{len(absent)} of {len(client_indices)} client parameter record(s) missing; "
                f"run the client role first: {', '.join(absent)}",
                path=absent[0],
            )
        return [read_parameters(self.path_for(i)) for i in client_indices]
