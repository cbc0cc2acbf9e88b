from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class SearchBackend(ABC):
    """
    Index, alias and bulk operations the rebuild needs from a search backend.

    Implementations raise BackendError for API failures; a missing alias or
    index is reported as BackendError with status 404.
    """

    # Index API
    @abstractmethod
    def index_exists(self, name: str) -> bool: ...

    @abstractmethod
    def create_index(self, name: str, settings: Optional[Dict[str, Any]] = None) -> None: ...

    @abstractmethod
    def delete_index(self, name: str) -> None: ...

    @abstractmethod
    def put_mapping(self, name: str, mapping: Dict[str, Any]) -> None: ...

    @abstractmethod
    def list_indices(self, pattern: str) -> List[str]: ...

    # Bulk API
    @abstractmethod
    def bulk(self, lines: List[str]) -> Dict[str, Any]:
        """
        Send newline delimited action/payload lines.

        Returns:
            Backend response with ``errors`` (bool) and ``items`` (one entry
            per action, ``{action: {"status": ..., "error": ...}}``)
        """

    @abstractmethod
    def refresh(self, name: str) -> None: ...

    # Alias API
    @abstractmethod
    def get_alias(self, name: str) -> List[str]:
        """Index names the alias points to; BackendError(404) if it does not exist."""

    @abstractmethod
    def update_aliases(self, actions: List[Dict[str, Dict[str, str]]]) -> None:
        """Apply add/remove alias actions in one atomic request."""
