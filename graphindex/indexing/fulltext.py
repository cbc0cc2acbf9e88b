from typing import Dict, List, Optional, Set, Tuple

from graphindex.dimensions import DimensionSpacePoint
from graphindex.graph import ContentSubgraph, Node, NodeVariant

from .properties import PropertyExtractor, UnmappedPropertyCallback


class FulltextAggregator:
    """
    Rolls descendant text up into a fulltext root.

    The walk stops at descendants that are fulltext roots themselves; their
    subtree is aggregated into their own document instead.
    """

    def __init__(self, extractor: PropertyExtractor):
        self.extractor = extractor

    @staticmethod
    def _children(node: Node, subgraph: Optional[ContentSubgraph]) -> List[Node]:
        if subgraph is None:
            return [relation.child for relation in node.outgoing_hierarchy_relations]
        return list(NodeVariant(node, subgraph).find_child_nodes())

    def aggregate(
        self,
        root: Node,
        subgraph: Optional[ContentSubgraph] = None,
        on_unmapped_property: Optional[UnmappedPropertyCallback] = None,
    ) -> Dict[str, str]:
        """
        Collect fulltext buckets of ``root`` and its non-root descendants.

        Args:
            root: Fulltext root node
            subgraph: Only follow hierarchy relations of exactly this
                subgraph, workspace included (any subgraph if None)
            on_unmapped_property: Passed through to the property extractor

        Returns:
            Mapping of bucket to concatenated text; empty for non-roots
        """
        if not root.is_fulltext_root:
            return {}

        parts: Dict[str, List[str]] = {}
        visited: Set[Tuple[str, DimensionSpacePoint]] = set()
        stack: List[Node] = [root]
        while stack:
            node = stack.pop()
            key = (node.aggregate_id, node.origin_point)
            if key in visited:
                continue
            visited.add(key)

            _, fulltext = self.extractor.extract(node, on_unmapped_property)
            for bucket, text in fulltext.items():
                if text:
                    parts.setdefault(bucket, []).append(text)

            children = [
                child for child in self._children(node, subgraph) if not child.is_fulltext_root
            ]
            # reversed so the stack pops children in sort order
            stack.extend(reversed(children))

        return {bucket: " ".join(texts) for bucket, texts in parts.items()}
