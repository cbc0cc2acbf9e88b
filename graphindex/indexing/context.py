"""
Indexing context threaded through orchestrator, builder and buffer.

Everything a single population pass needs (backend, limits, the dimension
hash to index name routing, and the error collector) lives here instead of
in module level state, so isolated workers can each own one.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from graphindex.backend import SearchBackend
from graphindex.dimensions import LIVE_WORKSPACE, WORKSPACE_DIMENSION, DimensionSpacePoint
from graphindex.graph import Node
from graphindex.shared.exceptions import IndexingErrors, WorkspaceIndexingModeIsInvalid


class WorkspaceIndexingMode:
    """
    Which workspace variants of a node get documents.

    onlyLive:   only points in workspace ``live``; fast, ignores unpublished changes
    onlyOrigin: only points in the node's own origin workspace
    full:       every occupied point in every workspace
    """

    MODE_ONLY_LIVE = "onlyLive"
    MODE_ONLY_ORIGIN = "onlyOrigin"
    MODE_FULL = "full"

    def __init__(self, value: str):
        self.value = value

    @classmethod
    def from_string(cls, value: str) -> "WorkspaceIndexingMode":
        if value not in (cls.MODE_ONLY_LIVE, cls.MODE_ONLY_ORIGIN, cls.MODE_FULL):
            raise WorkspaceIndexingModeIsInvalid.because_it_is_none_of_the_defined_values(
                value
            )
        return cls(value)

    def accepts(self, point: DimensionSpacePoint, node: Node) -> bool:
        workspace = point.coordinate(WORKSPACE_DIMENSION) or LIVE_WORKSPACE
        if self.value == self.MODE_ONLY_LIVE:
            return workspace == LIVE_WORKSPACE
        if self.value == self.MODE_ONLY_ORIGIN:
            origin_workspace = (
                node.origin_point.coordinate(WORKSPACE_DIMENSION) or LIVE_WORKSPACE
            )
            return workspace == origin_workspace
        return True

    def __eq__(self, other: object) -> bool:
        return isinstance(other, WorkspaceIndexingMode) and other.value == self.value

    def __repr__(self) -> str:
        return f"WorkspaceIndexingMode({self.value!r})"


@dataclass
class IndexingContext:
    backend: SearchBackend
    # dimension hash (workspace stripped) -> index or alias name receiving writes
    targets: Dict[str, str]
    batch_size: int = 100
    max_bulk_bytes: int = 10 * 1024 * 1024
    workspace_mode: WorkspaceIndexingMode = field(
        default_factory=lambda: WorkspaceIndexingMode(WorkspaceIndexingMode.MODE_ONLY_LIVE)
    )
    # Restrict indexing to one workspace (None: every workspace the mode allows)
    workspace: Optional[str] = None
    errors: IndexingErrors = field(default_factory=IndexingErrors)

    def target_index(self, dimension_hash: str) -> Optional[str]:
        return self.targets.get(dimension_hash)

    def accepts_point(self, point: DimensionSpacePoint, node: Node) -> bool:
        if self.workspace is not None:
            workspace = point.coordinate(WORKSPACE_DIMENSION) or LIVE_WORKSPACE
            if workspace != self.workspace:
                return False
        if self.target_index(point.without_workspace().hash) is None:
            return False
        return self.workspace_mode.accepts(point, node)
