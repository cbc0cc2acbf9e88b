"""
Reads the content graph from Neo4j.

Expected schema:
    (:ContentNode {key, aggregate_id, node_type, origin, name, ...properties})
    (:ContentNode|:ContentRoot)-[:HIERARCHY {subgraph, position, hidden,
        hidden_before, hidden_after, hidden_in_index, access_roles}]->(:ContentNode)
    (:ContentNode)-[:REFERENCE {name, position}]->(:ContentNode)

``origin`` and ``subgraph`` hold dimension space points as JSON strings.
"""

from typing import Any, Dict, List, Optional

from neo4j import Driver

from graphindex.shared.observability import get_logger

from .content_graph import ContentGraph
from .loaders import build_graph
from .node_types import NodeTypeManager

logger = get_logger(__name__)

RESERVED_NODE_KEYS = {"key", "aggregate_id", "node_type", "origin", "name"}

NODES_CYPHER = """
MATCH (n:ContentNode)
RETURN n.key AS key, n.aggregate_id AS id, n.node_type AS type,
       n.origin AS origin, n.name AS name, properties(n) AS properties
ORDER BY n.key
"""

HIERARCHY_CYPHER = """
MATCH (p)-[r:HIERARCHY]->(c:ContentNode)
RETURN CASE WHEN p:ContentNode THEN p.key ELSE null END AS parent,
       c.key AS child, r.subgraph AS subgraph, r.position AS position,
       coalesce(r.hidden, false) AS hidden,
       r.hidden_before AS hiddenBeforeDateTime,
       r.hidden_after AS hiddenAfterDateTime,
       coalesce(r.hidden_in_index, false) AS hiddenInIndex,
       coalesce(r.access_roles, []) AS accessRoles
ORDER BY child, position
"""

REFERENCES_CYPHER = """
MATCH (s:ContentNode)-[r:REFERENCE]->(t:ContentNode)
RETURN s.key AS source, t.key AS target, r.name AS name,
       coalesce(r.position, 0) AS position
ORDER BY source, name, position
"""


class Neo4jGraphLoader:
    """Loads all content nodes and edges in three read queries."""

    def __init__(
        self,
        driver: Driver,
        node_types: NodeTypeManager,
        database: Optional[str] = None,
    ):
        self.driver = driver
        self.node_types = node_types
        self.database = database

    def _fetch(self, cypher: str) -> List[Dict[str, Any]]:
        with self.driver.session(database=self.database) as sess:
            result = sess.run(cypher)
            return [dict(record) for record in result]

    def load(self) -> ContentGraph:
        logger.info("Loading content graph from Neo4j")
        nodes = self._fetch(NODES_CYPHER)
        for record in nodes:
            record["properties"] = {
                k: v
                for k, v in (record.get("properties") or {}).items()
                if k not in RESERVED_NODE_KEYS
            }
        data = {
            "nodes": nodes,
            "hierarchy": self._fetch(HIERARCHY_CYPHER),
            "references": self._fetch(REFERENCES_CYPHER),
        }
        return build_graph(data, self.node_types)
