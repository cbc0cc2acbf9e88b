"""
Elasticsearch implementation of SearchBackend (elasticsearch-py 8.x).

Client errors are translated into BackendError so callers never depend on
the client's exception hierarchy.
"""

import functools
from typing import Any, Dict, List, Optional

from elasticsearch import ApiError, Elasticsearch, TransportError

from graphindex.shared.exceptions import BackendError
from graphindex.shared.observability import get_logger

from .base import SearchBackend

logger = get_logger(__name__)


def _error_details(body: Any) -> tuple:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("type"), error.get("reason")
        if error is not None:
            return None, str(error)
    return None, str(body) if body else None


def translate_errors(operation: str):
    """Wrap a backend method so client exceptions surface as BackendError."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ApiError as exc:
                error_type, reason = _error_details(exc.body)
                raise BackendError(
                    f"{operation} failed: {exc.message}",
                    status=exc.meta.status,
                    error_type=error_type,
                    reason=reason,
                ) from exc
            except TransportError as exc:
                raise BackendError(
                    f"{operation} failed: {exc.message}", reason=str(exc)
                ) from exc

        return wrapper

    return decorator


class ElasticsearchBackend(SearchBackend):
    def __init__(self, client: Elasticsearch):
        self.es = client

    @translate_errors("index exists check")
    def index_exists(self, name: str) -> bool:
        return bool(self.es.indices.exists(index=name))

    @translate_errors("index creation")
    def create_index(self, name: str, settings: Optional[Dict[str, Any]] = None) -> None:
        self.es.indices.create(index=name, settings=settings or {})

    @translate_errors("index deletion")
    def delete_index(self, name: str) -> None:
        self.es.indices.delete(index=name)

    @translate_errors("mapping update")
    def put_mapping(self, name: str, mapping: Dict[str, Any]) -> None:
        self.es.indices.put_mapping(index=name, **mapping)

    @translate_errors("index listing")
    def list_indices(self, pattern: str) -> List[str]:
        rows = self.es.cat.indices(index=pattern, format="json", h="index")
        return sorted(row["index"] for row in rows)

    @translate_errors("bulk request")
    def bulk(self, lines: List[str]) -> Dict[str, Any]:
        # Lines are already serialized JSON; the ndjson serializer passes them through
        response = self.es.bulk(operations=lines)
        return response.body

    @translate_errors("index refresh")
    def refresh(self, name: str) -> None:
        self.es.indices.refresh(index=name)

    @translate_errors("alias lookup")
    def get_alias(self, name: str) -> List[str]:
        response = self.es.indices.get_alias(name=name)
        return sorted(response.body.keys())

    @translate_errors("alias update")
    def update_aliases(self, actions: List[Dict[str, Dict[str, str]]]) -> None:
        self.es.indices.update_aliases(actions=actions)
