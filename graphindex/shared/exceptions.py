"""
Error taxonomy for index rebuilds.

Fatal errors (ConfigurationError, BackendError, LifecycleError) abort the
run. SerializationError is raised per bulk operation and handled by the
buffer, which drops the operation and continues. A missing subgraph for an
occupied dimension point is not an error at all; the point is skipped.
"""

from collections import deque
from threading import Lock
from typing import Deque, List, Optional


class GraphIndexError(Exception):
    """Base class for all indexing errors."""


class ConfigurationError(GraphIndexError):
    """Invalid configuration or invocation; aborts the run."""


class WorkspaceIndexingModeIsInvalid(ConfigurationError):
    @classmethod
    def because_it_is_none_of_the_defined_values(
        cls, attempted_value: str
    ) -> "WorkspaceIndexingModeIsInvalid":
        return cls(
            f'Given value "{attempted_value}" is no valid workspace indexing mode, '
            "must be one of onlyLive, onlyOrigin, full."
        )


class BackendError(GraphIndexError):
    """
    Search backend API failure.

    Attributes:
        status: HTTP status reported by the backend (None for transport errors)
        error_type: Backend error type, e.g. ``index_not_found_exception``
        reason: Human readable reason
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        error_type: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.error_type = error_type
        self.reason = reason

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    def describe(self) -> str:
        message = f"Search backend responded with status {self.status}"
        if self.error_type:
            return f'{message}, saying "{self.error_type}: {self.reason}"'
        return f'{message}, saying "{self.reason or self}"'


class SerializationError(GraphIndexError):
    """A single bulk operation could not be encoded."""


class LifecycleError(GraphIndexError):
    """Invalid index generation state transition."""


class LegacyOperationIsUnsupported(GraphIndexError):
    """A mutating node operation was called on a read-only node variant."""


class IndexingErrors:
    """
    Thread-safe collector of non-fatal indexing errors.

    Flushes never raise on partial failures; the collector keeps the count
    and the most recent messages so a run can report them at the end.
    """

    def __init__(self, keep_last: int = 50):
        self._lock = Lock()
        self._count = 0
        self._messages: Deque[str] = deque(maxlen=keep_last)

    def record(self, message: str) -> None:
        with self._lock:
            self._count += 1
            self._messages.append(message)

    def has_error(self) -> bool:
        return self._count > 0

    @property
    def count(self) -> int:
        return self._count

    @property
    def messages(self) -> List[str]:
        with self._lock:
            return list(self._messages)
