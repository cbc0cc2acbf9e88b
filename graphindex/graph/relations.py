from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from graphindex.dimensions import ContentStreamIdentity, DimensionSpacePoint

if TYPE_CHECKING:
    from .nodes import Node


@dataclass(frozen=True)
class ContentSubgraph:
    """One (content stream, dimension space point) view of the graph."""

    content_stream: ContentStreamIdentity
    dimension_point: DimensionSpacePoint

    @property
    def identifier(self) -> str:
        raw = f"{self.content_stream.value}|{self.dimension_point.to_json()}"
        return hashlib.md5(raw.encode("utf-8")).hexdigest()

    def matches_combination(self, combination: DimensionSpacePoint) -> bool:
        """True if this subgraph's point equals ``combination`` ignoring the workspace."""
        return self.dimension_point.without_workspace() == combination.without_workspace()


@dataclass(eq=False)
class HierarchyRelation:
    """Directed parent -> child edge within one subgraph."""

    parent: Optional["Node"]
    child: "Node"
    subgraph: ContentSubgraph
    position: int = 0
    hidden: bool = False
    hidden_before: Optional[datetime] = None
    hidden_after: Optional[datetime] = None
    hidden_in_index: bool = False
    access_roles: List[str] = field(default_factory=list)

    @property
    def subgraph_hash(self) -> str:
        return self.subgraph.identifier


@dataclass(eq=False)
class ReferenceRelation:
    """Named, non hierarchical edge between two nodes."""

    source: "Node"
    target: "Node"
    name: str
    position: int = 0
