from typing import Any, Dict, List
import logging

from ..data.loader import client_file_mapping
from .client import run_client
from .exchange import ParameterExchange


LOGGER = logging.getLogger(__name__)


def run_all_clients(
    config: Dict[str, Any],
    exchange: ParameterExchange,
) -> List[Dict[str, Any]]:
    """
    Run every client one after another, in client-index order.

    Clients share nothing but the exchange; each publishes exactly one
    record. The first failure aborts the loop, so records of the clients
    that already finished stay in place and the server will report the
    missing ones.
    """
    mapping = client_file_mapping(config)
    LOGGER.info(f"[run_all_clients] {len(mapping)} client(s) to train")

    reports: List[Dict[str, Any]] = []
    for client_index, train_path in mapping:
        LOGGER.info(f"[run_all_clients][client {client_index}] training on {train_path}")
        try:
            report = run_client(
                client_index=client_index,
                train_path=train_path,
                config=config,
                exchange=exchange,
            )
        except Exception:
            LOGGER.error(
                f"[run_all_clients][client {client_index}] aborted; "
                f"{len(reports)} of {len(mapping)} client(s) completed"
            )
            raise
        reports.append(report)

    return reports
