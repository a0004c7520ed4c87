"""
Chunks wire records into batches and sends each batch to Blueflood.

Every batch is posted from a worker thread. Callers never wait on, retry
or learn the outcome of a send; failures are only logged.
"""
import json
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from enum import Enum
from typing import Iterable, List, Optional, Sequence

import requests

from . import config
from .measurement import WireRecord


class DispatchOutcome(str, Enum):
    """How a single ingest request ended."""
    INGESTED = "ingested"
    REJECTED = "rejected"
    UNDELIVERED = "undelivered"


class BatchDispatcher:
    """Sends batches of wire records to a Blueflood ingest endpoint."""

    def __init__(self, executor: Optional[Executor] = None,
                 max_workers: Optional[int] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize the dispatcher.

        Args:
            executor (Executor, optional): Where batches are sent from. Defaults
                to a thread pool owned by the dispatcher.
            max_workers (int, optional): Size of the owned thread pool.
                Defaults to config.MAX_WORKERS.
            logger (logging.Logger, optional): Logger for send outcomes.
                Defaults to this module's logger.
        """
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers or config.MAX_WORKERS,
            thread_name_prefix='blueflood-ingest',
        )
        self.logger = logger or logging.getLogger(__name__)

    def accumulate(self, records: Iterable[WireRecord], rollup_num: int,
                   server: str, timeout: int) -> int:
        """
        Group records into batches of rollup_num and send each one.

        Records are consumed in order. A full batch is handed off as soon as
        it fills up; whatever is left at the end goes out as a final, smaller
        batch.

        Args:
            records (Iterable[WireRecord]): Records to send
            rollup_num (int): Maximum number of records per request
            server (str): Blueflood ingest URL
            timeout (int): Request timeout in seconds, 0 for none

        Returns:
            int: Number of batches handed off
        """
        if rollup_num < 1:
            raise ValueError(f"rollup_num must be at least 1, got {rollup_num}")

        sent = 0
        batch: List[WireRecord] = []
        for record in records:
            batch.append(record)
            if len(batch) == rollup_num:
                self.submit(batch, server, timeout)
                sent += 1
                batch = []

        if batch:
            self.submit(batch, server, timeout)
            sent += 1

        return sent

    def submit(self, batch: Sequence[WireRecord], server: str, timeout: int) -> None:
        """Hand a batch to the executor without waiting for it."""
        future = self.executor.submit(self.dispatch, tuple(batch), server, timeout)
        future.add_done_callback(self._log_crash)

    def dispatch(self, batch: Sequence[WireRecord], server: str, timeout: int) -> DispatchOutcome:
        """
        POST one batch to the ingest endpoint.

        Args:
            batch (Sequence[WireRecord]): Records to send
            server (str): Blueflood ingest URL
            timeout (int): Request timeout in seconds, 0 for none

        Returns:
            DispatchOutcome: Whether the batch was ingested, rejected or never delivered
        """
        try:
            body = json.dumps([record.to_json() for record in batch], allow_nan=False)
        except (TypeError, ValueError) as e:
            self.logger.warning("Error marshalling json data: %s", e)
            return DispatchOutcome.UNDELIVERED

        headers = {'Content-Type': 'application/json'}

        try:
            response = requests.post(
                server,
                data=body,
                headers=headers,
                timeout=timeout or None
            )
        except requests.exceptions.RequestException as e:
            self.logger.warning("Ingest request to %s failed: %s", server, e)
            return DispatchOutcome.UNDELIVERED

        try:
            if response.status_code != 200:
                self.logger.warning("Metrics not ingested, status: %s", response.status_code)
                return DispatchOutcome.REJECTED
            self.logger.info("Ingested %d metrics, status - %s", len(batch), response.status_code)
            return DispatchOutcome.INGESTED
        finally:
            response.close()

    def _log_crash(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self.logger.error("Ingest task crashed: %s", error, exc_info=error)

    def close(self, wait: bool = True) -> None:
        """
        Stop accepting batches.

        Args:
            wait (bool): Block until in-flight batches have been sent
        """
        if self._owns_executor:
            self.executor.shutdown(wait=wait)
