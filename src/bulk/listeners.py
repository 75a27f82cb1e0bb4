# src/bulk/listeners.py — v1
"""Bulk listeners: logging, successive-error accounting and retry.

Listeners compose by wrapping. Each one does its own work and then forwards
the call to the listener it wraps:

    RetryBulkListener -> ErrorCountingBulkListener -> LoggingBulkListener
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Iterable

from fsingest.bulk.models import BulkItemResponse, BulkRequest, BulkResponse
from fsingest.core.errors import BulkProcessorClosedError

if TYPE_CHECKING:
    from fsingest.bulk.processor import BulkProcessor

logger = logging.getLogger(__name__)


class BulkListener:
    """Callbacks invoked around every transport call.

    The base implementation forwards to an optional delegate, so subclasses
    only override the hooks they care about and call super().
    """

    def __init__(self, delegate: BulkListener | None = None) -> None:
        self._delegate = delegate
        self.processor: BulkProcessor | None = None

    def bind(self, processor: BulkProcessor) -> None:
        """Attach the processor this listener serves (and its delegates)."""
        self.processor = processor
        if self._delegate is not None:
            self._delegate.bind(processor)

    def before_bulk(self, execution_id: int, request: BulkRequest) -> None:
        if self._delegate is not None:
            self._delegate.before_bulk(execution_id, request)

    def after_bulk(
        self, execution_id: int, request: BulkRequest, response: BulkResponse
    ) -> None:
        if self._delegate is not None:
            self._delegate.after_bulk(execution_id, request, response)

    def after_bulk_failure(
        self, execution_id: int, request: BulkRequest, error: BaseException
    ) -> None:
        if self._delegate is not None:
            self._delegate.after_bulk_failure(execution_id, request, error)


class LoggingBulkListener(BulkListener):
    """Log bulk executions and their failures."""

    def before_bulk(self, execution_id: int, request: BulkRequest) -> None:
        logger.debug(
            "Going to execute bulk #%d composed of %d actions",
            execution_id, request.number_of_actions(),
        )
        super().before_bulk(execution_id, request)

    def after_bulk(
        self, execution_id: int, request: BulkRequest, response: BulkResponse
    ) -> None:
        logger.debug(
            "Executed bulk #%d composed of %d actions",
            execution_id, request.number_of_actions(),
        )
        if response.has_failures():
            logger.warning(
                "There were failures while executing bulk #%d: %d failures",
                execution_id, len(response.failures()),
            )
            for item in response.failures():
                logger.debug("Error for [%s]: %s", item.operation, item.failure_message)
        super().after_bulk(execution_id, request, response)

    def after_bulk_failure(
        self, execution_id: int, request: BulkRequest, error: BaseException
    ) -> None:
        logger.warning(
            "Error executing bulk #%d (%d actions): %s",
            execution_id, request.number_of_actions(), error,
            exc_info=(type(error), error, error.__traceback__),
        )
        super().after_bulk_failure(execution_id, request, error)


class ErrorCountingBulkListener(BulkListener):
    """Track successive failing bulk responses.

    Producers can read `successive_errors` to throttle while the document
    store keeps rejecting operations.
    """

    def __init__(self, delegate: BulkListener | None = None) -> None:
        super().__init__(delegate if delegate is not None else LoggingBulkListener())
        self._successive_errors = 0
        self._lock = threading.Lock()

    @property
    def successive_errors(self) -> int:
        with self._lock:
            return self._successive_errors

    def after_bulk(
        self, execution_id: int, request: BulkRequest, response: BulkResponse
    ) -> None:
        with self._lock:
            if response.has_failures():
                previous = self._successive_errors
                self._successive_errors += 1
                logger.warning(
                    "Throttling is activated. Got [%d] successive errors so far.",
                    previous,
                )
            elif self._successive_errors > 0:
                previous = self._successive_errors
                self._successive_errors = 0
                logger.debug(
                    "Back to normal behavior after [%d] errors.", previous,
                )
        super().after_bulk(execution_id, request, response)


class RetryBulkListener(BulkListener):
    """Re-submit individually failed operations with a retryable error.

    An item is retryable when its structured failure type equals one of the
    configured markers, or when its failure message contains one. The
    operation is looked up in the executed request by equality and re-added
    to the processor.
    """

    def __init__(
        self,
        retryable_errors: Iterable[str] = ("es_rejected_execution_exception",),
        delegate: BulkListener | None = None,
    ) -> None:
        super().__init__(
            delegate if delegate is not None else ErrorCountingBulkListener()
        )
        self._retryable_errors = tuple(retryable_errors)

    @property
    def successive_errors(self) -> int:
        return getattr(self._delegate, "successive_errors", 0)

    def is_retryable(self, item: BulkItemResponse) -> bool:
        if not item.failed:
            return False
        if item.failure_type and item.failure_type in self._retryable_errors:
            return True
        message = item.failure_message or ""
        return any(marker in message for marker in self._retryable_errors)

    def after_bulk(
        self, execution_id: int, request: BulkRequest, response: BulkResponse
    ) -> None:
        super().after_bulk(execution_id, request, response)
        if not response.has_failures():
            return

        for item in response.failures():
            if not self.is_retryable(item):
                continue
            logger.debug(
                "Going to retry [%s] because of [%s]",
                item.operation, item.failure_message,
            )
            original = next(
                (op for op in request.operations if op == item.operation), None
            )
            if original is None:
                logger.warning(
                    "Cannot retry [%s]: it is not part of bulk #%d anymore.",
                    item.operation, execution_id,
                )
                continue
            self._resubmit(original)

    def _resubmit(self, operation) -> None:
        if self.processor is None:
            logger.warning("Cannot retry [%s]: listener is not bound.", operation)
            return
        try:
            self.processor.add(operation)
        except BulkProcessorClosedError:
            logger.warning(
                "Cannot retry [%s]: bulk processor is closed.", operation,
            )
