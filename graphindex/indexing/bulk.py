"""
Bounded bulk write buffer.

Operations are buffered in order and sent as newline delimited JSON
(one action line plus one payload line per operation). Delivery is at most
once: whatever happens during a flush, the buffer is empty afterwards and
failed operations are only logged and counted.

The buffer flushes every ``batch_size`` processed nodes, and earlier when the
pending operations reach ``max_bulk_bytes``.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from graphindex.shared.exceptions import BackendError, SerializationError
from graphindex.shared.observability import get_logger
from graphindex.shared.observability import metrics

from .context import IndexingContext

logger = get_logger(__name__)

ACTION_INDEX = "index"
ACTION_FULLTEXT = "fulltext"
ACTION_DELETE = "delete"


def _dumps(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise SerializationError(str(exc)) from exc


def _lines_bytes(lines: List[str]) -> int:
    return sum(len(line.encode("utf-8")) + 1 for line in lines)


@dataclass
class BulkOperation:
    """One pending write, tagged with the dimension hash of its target generation."""

    dimension_hash: str
    action: str
    document_id: str
    payload: Optional[Dict[str, Any]] = None

    @classmethod
    def index(cls, dimension_hash: str, document_id: str, body: Dict[str, Any]) -> "BulkOperation":
        return cls(dimension_hash, ACTION_INDEX, document_id, body)

    @classmethod
    def fulltext(
        cls, dimension_hash: str, document_id: str, fulltext: Dict[str, str]
    ) -> "BulkOperation":
        return cls(dimension_hash, ACTION_FULLTEXT, document_id, fulltext)

    @classmethod
    def delete(cls, dimension_hash: str, document_id: str) -> "BulkOperation":
        return cls(dimension_hash, ACTION_DELETE, document_id)

    def to_lines(self, index_name: str) -> List[str]:
        meta = {"_index": index_name, "_id": self.document_id}
        if self.action == ACTION_INDEX:
            return [_dumps({"index": meta}), _dumps(self.payload)]
        if self.action == ACTION_FULLTEXT:
            return [
                _dumps({"update": meta}),
                _dumps({"doc": {"__fulltext": self.payload}, "doc_as_upsert": True}),
            ]
        if self.action == ACTION_DELETE:
            return [_dumps({"delete": meta})]
        raise SerializationError(f"Unknown bulk action: {self.action}")


class BulkWriteBuffer:
    def __init__(self, context: IndexingContext):
        self.context = context
        self._pending: List[BulkOperation] = []
        self._nodes_since_last_flush = 0
        self._pending_bytes = 0
        self.flush_count = 0

    @property
    def pending(self) -> List[BulkOperation]:
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def add(self, operation: BulkOperation) -> None:
        """Buffer one operation; flushes early once pending bytes reach the ceiling."""
        self._pending.append(operation)
        self._pending_bytes += self._estimate_bytes(operation)
        metrics.documents_buffered_total.labels(operation=operation.action).inc()
        if self._pending_bytes >= self.context.max_bulk_bytes:
            logger.debug(
                "bulk_byte_ceiling_reached",
                pending=len(self._pending),
                pending_bytes=self._pending_bytes,
            )
            self._flush_pending()

    def _estimate_bytes(self, operation: BulkOperation) -> int:
        index_name = self.context.target_index(operation.dimension_hash) or ""
        try:
            return _lines_bytes(operation.to_lines(index_name))
        except SerializationError:
            # dropped and reported on flush
            return 0

    def mark_node_processed(self) -> None:
        """Count one processed node; flush when the batch size is reached."""
        self._nodes_since_last_flush += 1
        if self._nodes_since_last_flush >= self.context.batch_size:
            self.flush()

    def flush(self) -> None:
        self._nodes_since_last_flush = 0
        self._flush_pending()

    def _flush_pending(self) -> None:
        self._pending_bytes = 0
        if not self._pending:
            return

        started = time.monotonic()
        operations, self._pending = self._pending, []
        try:
            grouped: Dict[str, List[BulkOperation]] = {}
            for operation in operations:
                grouped.setdefault(operation.dimension_hash, []).append(operation)
            for dimension_hash, group in grouped.items():
                self._flush_group(dimension_hash, group)
        finally:
            self.flush_count += 1
            metrics.flush_duration_seconds.observe(time.monotonic() - started)

    def _flush_group(self, dimension_hash: str, operations: List[BulkOperation]) -> None:
        index_name = self.context.target_index(dimension_hash)
        if index_name is None:
            message = f"No target index for dimension hash {dimension_hash}"
            logger.error(
                "bulk_target_missing", dimension_hash=dimension_hash, dropped=len(operations)
            )
            self.context.errors.record(message)
            return

        chunk: List[str] = []
        chunk_bytes = 0
        for operation in operations:
            try:
                lines = operation.to_lines(index_name)
            except SerializationError as exc:
                logger.warning(
                    "bulk_operation_not_serializable",
                    document_id=operation.document_id,
                    action=operation.action,
                    error=str(exc),
                )
                self.context.errors.record(f"{operation.document_id}: {exc}")
                metrics.serialization_errors_total.inc()
                continue

            operation_bytes = _lines_bytes(lines)
            if chunk and chunk_bytes + operation_bytes > self.context.max_bulk_bytes:
                self._send(index_name, chunk)
                chunk, chunk_bytes = [], 0
            chunk.extend(lines)
            chunk_bytes += operation_bytes

        if chunk:
            self._send(index_name, chunk)

    def _send(self, index_name: str, lines: List[str]) -> None:
        try:
            response = self.context.backend.bulk(lines)
        except BackendError as exc:
            logger.error(
                "bulk_request_failed",
                index=index_name,
                lines=len(lines),
                status=exc.status,
                error=str(exc),
            )
            self.context.errors.record(f"bulk request to {index_name} failed: {exc}")
            metrics.bulk_requests_total.labels(status="failed").inc()
            return

        metrics.bulk_requests_total.labels(status="sent").inc()
        if not response.get("errors"):
            return

        for item in response.get("items", []):
            for action, result in item.items():
                error = result.get("error")
                if not error:
                    continue
                if isinstance(error, dict):
                    reason = f"{error.get('type')}: {error.get('reason')}"
                else:
                    reason = str(error)
                logger.error(
                    "bulk_item_failed",
                    index=index_name,
                    action=action,
                    document_id=result.get("_id"),
                    status=result.get("status"),
                    reason=reason,
                )
                self.context.errors.record(f"{action} {result.get('_id')}: {reason}")
                metrics.bulk_item_errors_total.inc()
