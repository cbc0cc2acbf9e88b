"""
Node capability interface and its implementations.

Indexing code depends only on ``Node``. ``GraphNode`` is the data node held
by a ContentGraph; ``NodeVariant`` binds a node to a single subgraph. The
document builder indexes variants, and fulltext aggregation walks their
children so it never leaves that subgraph.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from graphindex.dimensions import ContentStreamIdentity, DimensionSpacePoint
from graphindex.shared.exceptions import LegacyOperationIsUnsupported

from .node_types import NodeType
from .relations import ContentSubgraph, HierarchyRelation, ReferenceRelation


class Node(ABC):
    @property
    @abstractmethod
    def aggregate_id(self) -> str: ...

    @property
    @abstractmethod
    def origin_point(self) -> DimensionSpacePoint: ...

    @property
    @abstractmethod
    def node_type(self) -> NodeType: ...

    @property
    @abstractmethod
    def name(self) -> Optional[str]: ...

    @property
    @abstractmethod
    def properties(self) -> Dict[str, Any]: ...

    @property
    @abstractmethod
    def incoming_hierarchy_relations(self) -> List[HierarchyRelation]: ...

    @property
    @abstractmethod
    def outgoing_hierarchy_relations(self) -> List[HierarchyRelation]: ...

    @property
    @abstractmethod
    def incoming_reference_relations(self) -> List[ReferenceRelation]: ...

    @property
    @abstractmethod
    def outgoing_reference_relations(self) -> List[ReferenceRelation]: ...

    @property
    def is_fulltext_root(self) -> bool:
        return self.node_type.is_fulltext_root

    def get_property(self, name: str, default: Any = None) -> Any:
        return self.properties.get(name, default)

    def has_property(self, name: str) -> bool:
        return name in self.properties


class GraphNode(Node):
    """A node of the in-memory content graph."""

    def __init__(
        self,
        aggregate_id: str,
        origin_point: DimensionSpacePoint,
        node_type: NodeType,
        properties: Optional[Mapping[str, Any]] = None,
        name: Optional[str] = None,
    ):
        self._aggregate_id = aggregate_id
        self._origin_point = origin_point
        self._node_type = node_type
        self._properties = dict(properties or {})
        self._name = name
        self._incoming_hierarchy: List[HierarchyRelation] = []
        self._outgoing_hierarchy: List[HierarchyRelation] = []
        self._incoming_references: List[ReferenceRelation] = []
        self._outgoing_references: List[ReferenceRelation] = []

    @property
    def aggregate_id(self) -> str:
        return self._aggregate_id

    @property
    def origin_point(self) -> DimensionSpacePoint:
        return self._origin_point

    @property
    def node_type(self) -> NodeType:
        return self._node_type

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def properties(self) -> Dict[str, Any]:
        return dict(self._properties)

    @property
    def incoming_hierarchy_relations(self) -> List[HierarchyRelation]:
        return list(self._incoming_hierarchy)

    @property
    def outgoing_hierarchy_relations(self) -> List[HierarchyRelation]:
        return sorted(self._outgoing_hierarchy, key=lambda r: r.position)

    @property
    def incoming_reference_relations(self) -> List[ReferenceRelation]:
        return list(self._incoming_references)

    @property
    def outgoing_reference_relations(self) -> List[ReferenceRelation]:
        return sorted(self._outgoing_references, key=lambda r: (r.name, r.position))

    # Wiring, used by ContentGraph only
    def _attach_incoming_hierarchy(self, relation: HierarchyRelation) -> None:
        self._incoming_hierarchy.append(relation)

    def _attach_outgoing_hierarchy(self, relation: HierarchyRelation) -> None:
        self._outgoing_hierarchy.append(relation)

    def _attach_incoming_reference(self, relation: ReferenceRelation) -> None:
        self._incoming_references.append(relation)

    def _attach_outgoing_reference(self, relation: ReferenceRelation) -> None:
        self._outgoing_references.append(relation)

    def __repr__(self) -> str:
        return f"GraphNode({self._aggregate_id!r}, {self._origin_point!r})"


class NodeVariant(Node):
    """
    A node as seen from one subgraph.

    Read-only: mutating calls raise LegacyOperationIsUnsupported.
    """

    def __init__(self, node: Node, subgraph: ContentSubgraph):
        self._node = node
        self.subgraph = subgraph

    @property
    def aggregate_id(self) -> str:
        return self._node.aggregate_id

    @property
    def origin_point(self) -> DimensionSpacePoint:
        return self._node.origin_point

    @property
    def node_type(self) -> NodeType:
        return self._node.node_type

    @property
    def name(self) -> Optional[str]:
        return self._node.name

    @property
    def properties(self) -> Dict[str, Any]:
        return self._node.properties

    @property
    def incoming_hierarchy_relations(self) -> List[HierarchyRelation]:
        return self._node.incoming_hierarchy_relations

    @property
    def outgoing_hierarchy_relations(self) -> List[HierarchyRelation]:
        return self._node.outgoing_hierarchy_relations

    @property
    def incoming_reference_relations(self) -> List[ReferenceRelation]:
        return self._node.incoming_reference_relations

    @property
    def outgoing_reference_relations(self) -> List[ReferenceRelation]:
        return self._node.outgoing_reference_relations

    @property
    def content_stream(self) -> ContentStreamIdentity:
        return self.subgraph.content_stream

    @property
    def dimension_point(self) -> DimensionSpacePoint:
        return self.subgraph.dimension_point

    @property
    def workspace_name(self) -> str:
        return self.content_stream.value

    def find_parent(self) -> Optional[Node]:
        for relation in self.incoming_hierarchy_relations:
            if relation.subgraph == self.subgraph:
                return relation.parent
        return None

    def find_child_nodes(self) -> List["NodeVariant"]:
        return [
            NodeVariant(relation.child, self.subgraph)
            for relation in self.outgoing_hierarchy_relations
            if relation.subgraph == self.subgraph
        ]

    @property
    def path(self) -> str:
        segments: List[str] = []
        current: Optional[Node] = self._node
        seen = set()
        while current is not None and current.aggregate_id not in seen:
            seen.add(current.aggregate_id)
            segments.append(current.name or current.aggregate_id)
            current = NodeVariant(current, self.subgraph).find_parent()
        return "/" + "/".join(reversed(segments))

    @property
    def context_path(self) -> str:
        """``<path>@<workspace>;<dim>=<value>&...`` like a legacy node context path."""
        dimensions = self.dimension_point.without_workspace().coordinates
        suffix = "&".join(f"{k}={v}" for k, v in sorted(dimensions.items()))
        context_path = f"{self.path}@{self.workspace_name}"
        return f"{context_path};{suffix}" if suffix else context_path

    def set_property(self, name: str, value: Any) -> None:
        raise LegacyOperationIsUnsupported(
            f'Legacy operation "set_property" is not supported on {self.aggregate_id}'
        )

    def remove(self) -> None:
        raise LegacyOperationIsUnsupported(
            f'Legacy operation "remove" is not supported on {self.aggregate_id}'
        )

    def __repr__(self) -> str:
        return f"NodeVariant({self.aggregate_id!r}, {self.dimension_point!r})"
