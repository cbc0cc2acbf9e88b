"""
Build a ContentGraph from plain records.

Records are the shape found in graph dump files (YAML or JSON) and the shape
returned by the Neo4j loader:

    nodes:
      - key: page-en            # optional, defaults to id
        id: page                # node aggregate id
        type: Acme:Page
        origin: {_workspace: live, language: en}
        name: page
        properties: {title: Hello}
    hierarchy:
      - parent: site-en         # null for root nodes
        child: page-en
        subgraph: {_workspace: live, language: en}
        position: 100
        hidden: false
        hiddenBeforeDateTime: 2024-01-01T00:00:00+00:00
        hiddenAfterDateTime: null
        hiddenInIndex: false
        accessRoles: [Neos.Flow:Everybody]
    references:
      - source: page-en
        target: other-en
        name: related
        position: 0
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

import yaml

from graphindex.dimensions import DimensionSpacePoint
from graphindex.shared.exceptions import ConfigurationError
from graphindex.shared.observability import get_logger

from .content_graph import ContentGraph
from .node_types import NodeTypeManager
from .nodes import GraphNode

logger = get_logger(__name__)


def _as_point(raw: Any) -> DimensionSpacePoint:
    if raw is None:
        return DimensionSpacePoint()
    if isinstance(raw, str):
        return DimensionSpacePoint.from_json(raw)
    return DimensionSpacePoint(raw)


def _as_datetime(raw: Any) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    if hasattr(raw, "to_native"):
        # neo4j.time.DateTime
        return raw.to_native()
    if isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(str(raw))


def build_graph(
    data: Mapping[str, Iterable[Mapping[str, Any]]], node_types: NodeTypeManager
) -> ContentGraph:
    graph = ContentGraph()
    by_key: Dict[str, GraphNode] = {}

    for record in data.get("nodes") or []:
        key = record.get("key") or record["id"]
        if key in by_key:
            raise ConfigurationError(f"Duplicate node key in graph records: {key}")
        node = GraphNode(
            aggregate_id=record["id"],
            origin_point=_as_point(record.get("origin")),
            node_type=node_types.get_node_type(record.get("type") or "unstructured"),
            properties=record.get("properties") or {},
            name=record.get("name"),
        )
        by_key[key] = graph.add_node(node)

    def lookup(key: str, kind: str) -> GraphNode:
        try:
            return by_key[key]
        except KeyError:
            raise ConfigurationError(f"{kind} references unknown node key: {key}") from None

    hierarchy_count = 0
    for record in data.get("hierarchy") or []:
        parent_key = record.get("parent")
        parent = lookup(parent_key, "Hierarchy relation") if parent_key else None
        child = lookup(record["child"], "Hierarchy relation")
        graph.connect(
            parent,
            child,
            _as_point(record.get("subgraph")),
            position=int(record.get("position") or 0),
            hidden=bool(record.get("hidden", False)),
            hidden_before=_as_datetime(record.get("hiddenBeforeDateTime")),
            hidden_after=_as_datetime(record.get("hiddenAfterDateTime")),
            hidden_in_index=bool(record.get("hiddenInIndex", False)),
            access_roles=list(record.get("accessRoles") or []),
        )
        hierarchy_count += 1

    reference_count = 0
    for record in data.get("references") or []:
        graph.reference(
            lookup(record["source"], "Reference relation"),
            lookup(record["target"], "Reference relation"),
            record["name"],
            position=int(record.get("position") or 0),
        )
        reference_count += 1

    logger.info(
        "content_graph_built",
        nodes=len(graph),
        hierarchy_relations=hierarchy_count,
        reference_relations=reference_count,
        subgraphs=len(graph.subgraphs()),
    )
    return graph


def load_graph_file(path: str | Path, node_types: NodeTypeManager) -> ContentGraph:
    """Load a graph dump in YAML (``.yaml``/``.yml``) or JSON format."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Graph file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f) or {}
    return build_graph(data, node_types)
