"""Callback inbox: randomness fulfillments as queued messages.

The provider never calls into the ledger directly. It submits a
RandomnessFulfillment, and the inbox applies queued fulfillments one at a
time through RequestLedger.on_randomness_received, either on demand
(drain) or on a background worker thread (start/stop).
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Tuple

from seedmint.codes import ErrorCode
from seedmint.errors import SeedmintError

if TYPE_CHECKING:
    from .ledger import RequestLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RandomnessFulfillment:
    """One provider callback: the seed for a request handle, and who sent it."""
    request_handle: str
    seed: int
    sender: str


@dataclass
class DrainReport:
    """Outcome of applying queued fulfillments."""
    applied: List[Tuple[RandomnessFulfillment, int]] = field(default_factory=list)  # (fulfillment, item_id)
    rejected: List[Tuple[RandomnessFulfillment, ErrorCode]] = field(default_factory=list)
    failed: List[Tuple[RandomnessFulfillment, Exception]] = field(default_factory=list)

    def merge(self, other: "DrainReport") -> None:
        self.applied.extend(other.applied)
        self.rejected.extend(other.rejected)
        self.failed.extend(other.failed)


class CallbackInbox:
    """Queue feeding provider callbacks to the ledger's serialized mutator.

    Rejected fulfillments (unknown handle, duplicate, unauthorized sender,
    malformed seed) are logged and reported, never retried. A collaborator
    failure, such as the owner registry raising, is logged with its traceback
    and reported under `failed`. The item stays REQUESTED and the inbox keeps
    running.
    """

    def __init__(self, ledger: "RequestLedger", poll_interval: float = 0.1):
        self._ledger = ledger
        self._queue: "queue.Queue[RandomnessFulfillment]" = queue.Queue()
        self._poll_interval = poll_interval
        self._worker: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._report_lock = threading.Lock()
        self._worker_report = DrainReport()

    def submit(self, fulfillment: RandomnessFulfillment) -> None:
        """Enqueue a fulfillment. Never blocks."""
        self._queue.put_nowait(fulfillment)
        logger.debug("Queued fulfillment for %s", fulfillment.request_handle)

    def __call__(self, fulfillment: RandomnessFulfillment) -> None:
        self.submit(fulfillment)

    @property
    def backlog(self) -> int:
        return self._queue.qsize()

    def _apply(self, fulfillment: RandomnessFulfillment, report: DrainReport) -> None:
        try:
            item_id = self._ledger.on_randomness_received(
                fulfillment.request_handle, fulfillment.seed, fulfillment.sender
            )
        except SeedmintError as e:
            logger.warning(
                "Dropped fulfillment for %s: %s (%s)",
                fulfillment.request_handle, e.code.value, e,
            )
            report.rejected.append((fulfillment, e.code))
        except Exception as e:
            logger.exception("Failed to apply fulfillment for %s", fulfillment.request_handle)
            report.failed.append((fulfillment, e))
        else:
            report.applied.append((fulfillment, item_id))

    def drain(self) -> DrainReport:
        """Apply every fulfillment queued so far, in arrival order."""
        report = DrainReport()
        while True:
            try:
                fulfillment = self._queue.get_nowait()
            except queue.Empty:
                break
            try:
                self._apply(fulfillment, report)
            finally:
                self._queue.task_done()
        return report

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                fulfillment = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            report = DrainReport()
            try:
                self._apply(fulfillment, report)
            finally:
                self._queue.task_done()
            with self._report_lock:
                self._worker_report.merge(report)

    def start(self) -> None:
        """Apply fulfillments on a daemon worker thread as they arrive."""
        if self._worker is not None and self._worker.is_alive():
            raise RuntimeError("CallbackInbox worker already running")
        self._stop.clear()
        self._worker = threading.Thread(target=self._run, name="seedmint-callback-inbox", daemon=True)
        self._worker.start()

    def join(self) -> None:
        """Block until every submitted fulfillment has been applied."""
        self._queue.join()

    def stop(self) -> DrainReport:
        """Stop the worker and return everything it applied or rejected."""
        self._stop.set()
        if self._worker is not None:
            self._worker.join()
            self._worker = None
        with self._report_lock:
            report, self._worker_report = self._worker_report, DrainReport()
        return report
