# src/bulk/processor.py — v1
"""Bulk processor: buffer operations and flush them through a transport.

The processor knows nothing about the wire protocol. It is given an engine,
a callable turning a BulkRequest into a BulkResponse, and flushes the current
request when it reaches `bulk_actions` operations or `byte_size` bytes, on
every `flush_interval` tick of a background thread, on flush() and on close().

Flushing swaps the current request for a new empty one under the buffer lock
before calling the engine, so producers keep adding while a flush is in
flight. Engine calls themselves are serialized per processor.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable

from fsingest.bulk.listeners import BulkListener, LoggingBulkListener
from fsingest.bulk.models import BulkOperation, BulkRequest, BulkResponse
from fsingest.core.errors import BulkProcessorClosedError

logger = logging.getLogger(__name__)

BulkEngine = Callable[[BulkRequest], BulkResponse]

DEFAULT_CLOSE_TIMEOUT_S = 10.0


def _not_empty(request: BulkRequest) -> bool:
    return request.number_of_actions() > 0


def _over_the_limit(request: BulkRequest) -> bool:
    return request.is_over_the_limit()


class BulkProcessor:
    """Thread-safe batching front-end to a bulk transport."""

    def __init__(
        self,
        engine: BulkEngine,
        listener: BulkListener | None = None,
        bulk_actions: int = 100,
        flush_interval: float | None = None,
        byte_size: int | None = None,
        request_factory: Callable[[], BulkRequest] = BulkRequest,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT_S,
    ) -> None:
        """Create the processor and start its flush thread if needed.

        Args:
            engine: Executes one request against the document store.
            listener: Hooks called around each execution. Defaults to logging.
            bulk_actions: Flush once this many operations are buffered (0 = no limit).
            flush_interval: Seconds between background flushes (None = disabled).
            byte_size: Flush once buffered operations reach this many bytes.
            request_factory: Builds an empty request after each flush.
            close_timeout: How long close() waits for the flush thread.
        """
        self._engine = engine
        self._listener = listener if listener is not None else LoggingBulkListener()
        self._bulk_actions = bulk_actions
        self._byte_size = byte_size
        self._flush_interval = flush_interval
        self._request_factory = request_factory
        self._close_timeout = close_timeout

        self._lock = threading.Lock()
        self._execution_lock = threading.Lock()
        self._executing_thread: int | None = None
        self._execution_ids = itertools.count(1)
        self._closed = False
        self._stop_event = threading.Event()
        self._request = self._new_request()

        self._listener.bind(self)

        self._flush_thread: threading.Thread | None = None
        if flush_interval:
            self._flush_thread = threading.Thread(
                target=self._flush_loop, name="bulk-flush", daemon=True,
            )
            self._flush_thread.start()

    # --- Public API ---

    @property
    def listener(self) -> BulkListener:
        return self._listener

    @property
    def closed(self) -> bool:
        return self._closed

    def pending_actions(self) -> int:
        """Number of operations buffered and not yet handed to the engine."""
        with self._lock:
            return self._request.number_of_actions()

    def add(self, operation: BulkOperation) -> BulkProcessor:
        """Buffer an operation, flushing if the request is now full.

        Raises:
            BulkProcessorClosedError: If close() was already called.
        """
        with self._lock:
            if self._closed:
                raise BulkProcessorClosedError()
            self._request.add(operation)
            full = self._request.is_over_the_limit()

        # A listener re-adding from inside an execution never triggers a
        # nested flush; the operation waits for the next trigger.
        if full and self._executing_thread != threading.get_ident():
            logger.debug("Bulk request is full, flushing")
            self._execute(_over_the_limit)
        return self

    def flush(self) -> None:
        """Execute the buffered operations now, whatever the thresholds."""
        self._execute(_not_empty)

    def close(self) -> None:
        """Stop the flush thread and execute the remaining operations once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        if self._flush_thread is not None:
            logger.debug("Closing bulk processor")
            self._stop_event.set()
            if self._flush_thread is not threading.current_thread():
                self._flush_thread.join(timeout=self._close_timeout)
                if self._flush_thread.is_alive():
                    logger.warning(
                        "Bulk processor flush thread did not stop within %.1fs. "
                        "Some operations might be missing.",
                        self._close_timeout,
                    )
            logger.debug("Bulk processor is now closed")

        remaining = self.pending_actions()
        if remaining > 0:
            logger.debug("Executing [%d] remaining actions", remaining)
            self._execute(_not_empty)

    def __enter__(self) -> BulkProcessor:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- Internals ---

    def _new_request(self) -> BulkRequest:
        request = self._request_factory()
        request.max_actions = self._bulk_actions or None
        request.max_bytes = self._byte_size or None
        return request

    def _flush_loop(self) -> None:
        while not self._stop_event.wait(self._flush_interval):
            try:
                self._execute(_not_empty)
            except Exception:
                logger.exception("Periodic bulk flush failed")

    def _execute(self, should_execute: Callable[[BulkRequest], bool]) -> None:
        with self._execution_lock:
            with self._lock:
                request = self._request
                if not should_execute(request):
                    return
                self._request = self._new_request()

            execution_id = next(self._execution_ids)
            self._executing_thread = threading.get_ident()
            try:
                self._notify(self._listener.before_bulk, execution_id, request)
                try:
                    response = self._engine(request)
                except Exception as e:
                    self._notify(
                        self._listener.after_bulk_failure, execution_id, request, e,
                    )
                    return
                self._notify(self._listener.after_bulk, execution_id, request, response)
            finally:
                self._executing_thread = None

    @staticmethod
    def _notify(hook: Callable[..., None], *args: object) -> None:
        try:
            hook(*args)
        except Exception:
            logger.exception("Bulk listener %s raised", getattr(hook, "__qualname__", hook))
