from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Set, Tuple

from graphindex.dimensions import ContentStreamIdentity, DimensionSpacePoint
from graphindex.shared.observability import get_logger

from .nodes import GraphNode, Node
from .relations import ContentSubgraph, HierarchyRelation, ReferenceRelation

logger = get_logger(__name__)


class ContentGraph:
    """
    In-memory content graph.

    Nodes are keyed by ``(aggregate id, origin point)``; hierarchy relations
    register the subgraph they belong to, so ``get_subgraph`` only answers
    for subgraphs that actually contain nodes.
    """

    def __init__(self):
        self._nodes: Dict[Tuple[str, DimensionSpacePoint], GraphNode] = {}
        self._subgraphs: Dict[Tuple[str, DimensionSpacePoint], ContentSubgraph] = {}

    def add_node(self, node: GraphNode) -> GraphNode:
        key = (node.aggregate_id, node.origin_point)
        if key in self._nodes:
            raise ValueError(
                f"Node {node.aggregate_id} already exists for origin {node.origin_point!r}"
            )
        self._nodes[key] = node
        return node

    def get_node(
        self, aggregate_id: str, origin_point: DimensionSpacePoint
    ) -> Optional[GraphNode]:
        return self._nodes.get((aggregate_id, origin_point))

    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes())

    def __len__(self) -> int:
        return len(self._nodes)

    def _register_subgraph(self, point: DimensionSpacePoint) -> ContentSubgraph:
        content_stream = ContentStreamIdentity.for_point(point)
        key = (content_stream.value, point)
        subgraph = self._subgraphs.get(key)
        if subgraph is None:
            subgraph = ContentSubgraph(content_stream, point)
            self._subgraphs[key] = subgraph
        return subgraph

    def get_subgraph(
        self, content_stream: ContentStreamIdentity, point: DimensionSpacePoint
    ) -> Optional[ContentSubgraph]:
        return self._subgraphs.get((content_stream.value, point))

    def subgraphs(self) -> List[ContentSubgraph]:
        return list(self._subgraphs.values())

    def workspaces(self) -> Set[str]:
        return {subgraph.content_stream.value for subgraph in self._subgraphs.values()}

    def connect(
        self,
        parent: Optional[GraphNode],
        child: GraphNode,
        subgraph_point: DimensionSpacePoint,
        position: int = 0,
        **flags,
    ) -> HierarchyRelation:
        """Attach ``child`` below ``parent`` (None for a root) in one subgraph."""
        subgraph = self._register_subgraph(subgraph_point)
        relation = HierarchyRelation(
            parent=parent, child=child, subgraph=subgraph, position=position, **flags
        )
        child._attach_incoming_hierarchy(relation)
        if parent is not None:
            parent._attach_outgoing_hierarchy(relation)
        return relation

    def reference(
        self, source: GraphNode, target: GraphNode, name: str, position: int = 0
    ) -> ReferenceRelation:
        relation = ReferenceRelation(
            source=source, target=target, name=name, position=position
        )
        source._attach_outgoing_reference(relation)
        target._attach_incoming_reference(relation)
        return relation
