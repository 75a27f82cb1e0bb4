# src/bulk/models.py — v1
"""Bulk domain models: operations, requests and responses.

The bulk processor only relies on these shapes; how a request is turned into
a wire payload is up to the transport that executes it.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class BulkOperation(BaseModel):
    """One unit of work destined for the document store.

    Two operations are equal when they target the same document with the same
    action, whatever their payload. The retry listener relies on this to find
    a failed operation back in the request that was executed.
    """

    model_config = ConfigDict(frozen=True)

    op_type: str
    index: str
    id: str

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.op_type, self.index, self.id)

    def estimated_size(self) -> int:
        """Approximate serialized size in bytes, used for byte-size flushes."""
        return len(self.model_dump_json().encode("utf-8"))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BulkOperation):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def __str__(self) -> str:
        return f"{self.op_type} {self.index}/{self.id}"


class IndexOperation(BulkOperation):
    """Index (create or replace) a document."""

    op_type: Literal["index"] = "index"
    document: dict[str, Any] = Field(default_factory=dict)
    pipeline: str | None = None

    def estimated_size(self) -> int:
        return len(json.dumps(self.document, default=str).encode("utf-8"))


class DeleteOperation(BulkOperation):
    """Delete a document by id."""

    op_type: Literal["delete"] = "delete"


class BulkRequest:
    """Ordered, append-only batch of operations."""

    def __init__(
        self,
        max_actions: int | None = None,
        max_bytes: int | None = None,
    ) -> None:
        self._operations: list[BulkOperation] = []
        self._total_bytes = 0
        self.max_actions = max_actions
        self.max_bytes = max_bytes

    def add(self, operation: BulkOperation) -> None:
        self._operations.append(operation)
        # Serialization has a cost, only pay it when a byte limit is set.
        if self.max_bytes:
            self._total_bytes += operation.estimated_size()

    @property
    def operations(self) -> list[BulkOperation]:
        return list(self._operations)

    def number_of_actions(self) -> int:
        return len(self._operations)

    def total_byte_size(self) -> int:
        return self._total_bytes

    def is_over_the_limit(self) -> bool:
        """True when either the action count or the byte limit is reached."""
        if self.max_bytes and self._total_bytes >= self.max_bytes:
            return True
        return bool(self.max_actions) and len(self._operations) >= self.max_actions

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self):
        return iter(self._operations)

    def __repr__(self) -> str:
        return f"BulkRequest(actions={len(self._operations)}, bytes={self._total_bytes})"


class BulkItemResponse(BaseModel):
    """Outcome of one operation in an executed bulk."""

    model_config = ConfigDict(frozen=True)

    operation: BulkOperation
    failed: bool = False
    failure_message: str | None = None
    failure_type: str | None = None


class BulkResponse(BaseModel):
    """Result of executing a bulk request. Read-only once built."""

    model_config = ConfigDict(frozen=True)

    items: tuple[BulkItemResponse, ...] = ()
    errors: bool = False
    took_ms: int | None = None

    def has_failures(self) -> bool:
        return self.errors or any(item.failed for item in self.items)

    def failures(self) -> list[BulkItemResponse]:
        return [item for item in self.items if item.failed]

    def build_failure_message(self) -> str:
        """Summarize failed items for logging."""
        failed = self.failures()
        lines = [f"{item.operation}: {item.failure_message}" for item in failed]
        lines.append(f"{len(failed)} failures")
        return "\n".join(lines)
