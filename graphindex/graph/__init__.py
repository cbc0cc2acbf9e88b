from .content_graph import ContentGraph
from .loaders import build_graph, load_graph_file
from .node_types import NodeType, NodeTypeManager
from .nodes import GraphNode, Node, NodeVariant
from .relations import ContentSubgraph, HierarchyRelation, ReferenceRelation

__all__ = [
    "ContentGraph",
    "ContentSubgraph",
    "GraphNode",
    "HierarchyRelation",
    "Node",
    "NodeType",
    "NodeTypeManager",
    "NodeVariant",
    "ReferenceRelation",
    "build_graph",
    "load_graph_file",
]
