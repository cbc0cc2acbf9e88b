"""
Document building for one node variant.

A node produces one document per occupied dimension space point. The
document id is a pure function of (content stream, aggregate id, point), so
rebuilding an unchanged graph overwrites documents instead of duplicating
them.
"""

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from graphindex.dimensions import ContentStreamIdentity, DimensionSpacePoint
from graphindex.graph import ContentGraph, ContentSubgraph, Node, NodeVariant
from graphindex.shared.observability import get_logger
from graphindex.shared.observability import metrics

from .bulk import BulkOperation, BulkWriteBuffer
from .context import IndexingContext
from .fulltext import FulltextAggregator
from .properties import PropertyExtractor, format_datetime
from .variants import DimensionVariantResolver

logger = get_logger(__name__)


@dataclass(frozen=True)
class DocumentIdentifier:
    content_stream: ContentStreamIdentity
    aggregate_id: str
    point: DimensionSpacePoint

    @classmethod
    def for_variant(cls, variant: NodeVariant) -> "DocumentIdentifier":
        return cls(variant.content_stream, variant.aggregate_id, variant.dimension_point)

    def __str__(self) -> str:
        raw = json.dumps(
            {
                "contentStreamIdentifier": self.content_stream.value,
                "dimensionSpacePoint": self.point.without_workspace().coordinates,
                "nodeAggregateIdentifier": self.aggregate_id,
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha1(raw.encode("utf-8")).hexdigest()


@dataclass
class Document:
    id: str
    node_type: str
    dimension_hash: str
    fields: Dict[str, Any] = field(default_factory=dict)
    fulltext: Dict[str, str] = field(default_factory=dict)
    is_fulltext_root: bool = False

    def body(self) -> Dict[str, Any]:
        return dict(self.fields)


def _format_date(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return format_datetime(value)


class DocumentBuilder:
    """Turns nodes into documents and feeds them into a bulk buffer."""

    def __init__(
        self,
        graph: ContentGraph,
        extractor: Optional[PropertyExtractor] = None,
        resolver: Optional[DimensionVariantResolver] = None,
        aggregator: Optional[FulltextAggregator] = None,
    ):
        self.graph = graph
        self.extractor = extractor or PropertyExtractor()
        self.resolver = resolver or DimensionVariantResolver()
        self.aggregator = aggregator or FulltextAggregator(self.extractor)

    @staticmethod
    def _report_unmapped(node: Node):
        def callback(property_name: str) -> None:
            logger.debug(
                "property_not_mapped",
                node=node.aggregate_id,
                node_type=node.node_type.name,
                property=property_name,
            )
            metrics.unmapped_properties_total.inc()

        return callback

    def hierarchy_relations(self, node: Node, point: DimensionSpacePoint) -> List[Dict[str, Any]]:
        combination = point.without_workspace()
        return [
            {
                "subgraph": relation.subgraph_hash,
                "sortIndex": relation.position,
                "accessRoles": list(relation.access_roles),
                "hidden": relation.hidden,
                "hiddenBeforeDateTime": _format_date(relation.hidden_before),
                "hiddenAfterDateTime": _format_date(relation.hidden_after),
                "hiddenInIndex": relation.hidden_in_index,
            }
            for relation in node.incoming_hierarchy_relations
            if relation.subgraph.matches_combination(combination)
        ]

    @staticmethod
    def reference_relations(node: Node) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "__incomingReferenceRelations": [
                {"source": relation.source.aggregate_id, "name": relation.name}
                for relation in node.incoming_reference_relations
            ],
            "__outgoingReferenceRelations": [
                {
                    "target": relation.target.aggregate_id,
                    "name": relation.name,
                    "sortIndex": relation.position,
                }
                for relation in node.outgoing_reference_relations
            ],
        }

    def build(self, node: Node, point: DimensionSpacePoint, subgraph: ContentSubgraph) -> Document:
        """
        Build the document of ``node`` as seen from ``subgraph``.

        Args:
            node: Node to index
            point: Occupied dimension space point (including the workspace)
            subgraph: Subgraph resolved for ``point``

        Returns:
            Document with reserved fields, extracted properties and, for
            fulltext roots, the aggregated fulltext
        """
        variant = NodeVariant(node, subgraph)
        on_unmapped = self._report_unmapped(variant)
        fields, _ = self.extractor.extract(variant, on_unmapped)
        combination = point.without_workspace()

        fields.update(
            {
                "__identifier": node.aggregate_id,
                "__nodeType": node.node_type.name,
                "__typeAndSupertypes": node.node_type.type_and_supertypes(),
                "__workspace": variant.workspace_name,
                "__dimensionCombinations": combination.coordinates,
                "__dimensionCombinationHash": combination.hash,
                "__hierarchyRelations": self.hierarchy_relations(node, point),
            }
        )
        fields.update(self.reference_relations(node))

        fulltext: Dict[str, str] = {}
        if node.is_fulltext_root:
            fulltext = self.aggregator.aggregate(variant, subgraph, on_unmapped)

        return Document(
            id=str(DocumentIdentifier.for_variant(variant)),
            node_type=node.node_type.name,
            dimension_hash=combination.hash,
            fields=fields,
            fulltext=fulltext,
            is_fulltext_root=node.is_fulltext_root,
        )

    def index_node(
        self,
        node: Node,
        buffer: BulkWriteBuffer,
        combination: Optional[DimensionSpacePoint] = None,
    ) -> int:
        """
        Buffer the documents of every variant ``node`` occupies.

        Args:
            node: Node to index
            buffer: Buffer receiving the operations
            combination: Restrict to one dimension combination (workspace
                ignored); None indexes every combination with a target

        Returns:
            Number of documents buffered
        """
        context: IndexingContext = buffer.context
        documents = 0

        for point in self.resolver.resolve(node):
            if combination is not None and (
                point.without_workspace() != combination.without_workspace()
            ):
                continue
            if not context.accepts_point(point, node):
                continue

            subgraph = self.graph.get_subgraph(ContentStreamIdentity.for_point(point), point)
            if subgraph is None:
                logger.debug(
                    "subgraph_not_found",
                    node=node.aggregate_id,
                    dimension_point=point.to_json(),
                )
                metrics.consistency_gaps_total.inc()
                continue

            document = self.build(node, point, subgraph)
            buffer.add(BulkOperation.index(document.dimension_hash, document.id, document.body()))
            if document.is_fulltext_root:
                buffer.add(
                    BulkOperation.fulltext(document.dimension_hash, document.id, document.fulltext)
                )
            documents += 1

        metrics.nodes_indexed_total.inc()
        return documents
