from dataclasses import dataclass
from typing import Iterable, List, Optional

from graphindex.dimensions import DimensionSpacePoint
from graphindex.graph import ContentGraph, Node
from graphindex.shared.observability import get_logger

from .bulk import BulkWriteBuffer
from .document import DocumentBuilder

logger = get_logger(__name__)


@dataclass
class WalkResult:
    nodes_indexed: int = 0
    documents: int = 0


class GraphWalker:
    """
    Single pass over the content graph feeding one bulk buffer.

    Traversal, document building and buffering run strictly in order; a
    flush blocks the walk, so the walk can never outrun the batch size.
    """

    def __init__(
        self,
        graph: ContentGraph,
        builder: DocumentBuilder,
        buffer: BulkWriteBuffer,
        limit: Optional[int] = None,
    ):
        self.graph = graph
        self.builder = builder
        self.buffer = buffer
        self.limit = limit

    @staticmethod
    def _in_combinations(node: Node, combinations: List[DimensionSpacePoint]) -> bool:
        return any(
            relation.subgraph.matches_combination(combination)
            for relation in node.incoming_hierarchy_relations
            for combination in combinations
        )

    def walk(self, combinations: Optional[Iterable[DimensionSpacePoint]] = None) -> WalkResult:
        """
        Index every node of the graph.

        Args:
            combinations: Only nodes placed in one of these dimension
                combinations are indexed (None: every node). With exactly
                one combination, documents are restricted to it as well.

        Returns:
            WalkResult with node and document counts
        """
        restrict = None
        only = None
        if combinations is not None:
            restrict = [c.without_workspace() for c in combinations]
            if len(restrict) == 1:
                only = restrict[0]
        result = WalkResult()

        for node in self.graph.nodes():
            if self.limit is not None and result.nodes_indexed >= self.limit:
                logger.info("walk_limit_reached", limit=self.limit)
                break
            if restrict is not None and not self._in_combinations(node, restrict):
                continue

            result.documents += self.builder.index_node(node, self.buffer, only)
            result.nodes_indexed += 1
            self.buffer.mark_node_processed()

        self.buffer.flush()
        logger.debug(
            "walk_completed",
            nodes_indexed=result.nodes_indexed,
            documents=result.documents,
        )
        return result
