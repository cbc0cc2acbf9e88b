from typing import List, Set, Tuple

from graphindex.dimensions import DimensionSpacePoint, DimensionSpacePointSet
from graphindex.graph import Node


class DimensionVariantResolver:
    """
    Computes the dimension space points a node needs documents for.

    A node always occupies its own origin point. A fulltext root also
    occupies the origin points of every descendant reachable without
    crossing another fulltext root, because the root's aggregated text
    differs in each of those variants.
    """

    def resolve(self, node: Node) -> DimensionSpacePointSet:
        points = DimensionSpacePointSet([node.origin_point])
        if not node.is_fulltext_root:
            return points

        visited: Set[Tuple[str, DimensionSpacePoint]] = set()
        stack: List[Node] = [node]
        while stack:
            current = stack.pop()
            key = (current.aggregate_id, current.origin_point)
            if key in visited:
                continue
            visited.add(key)
            if not points.contains(current.origin_point):
                points.add(current.origin_point)

            for relation in reversed(current.outgoing_hierarchy_relations):
                child = relation.child
                if child.is_fulltext_root:
                    continue
                if (child.aggregate_id, child.origin_point) not in visited:
                    stack.append(child)

        return points
