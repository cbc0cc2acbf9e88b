"""
Elasticsearch mappings for node types.

Every concrete node type contributes one mapping body: the reserved system
fields shared by all documents plus one entry per configured property. The
property mapping comes from ``search.elasticSearchMapping`` on the property,
falling back to the default mapping of the property's type. Properties with
neither are reported as warnings and left to dynamic mapping.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping as TypingMapping, Optional

from graphindex.graph import NodeType, NodeTypeManager
from graphindex.graph.node_types import FALLBACK_NODE_TYPE
from graphindex.indexing.properties import FULLTEXT_BUCKETS
from graphindex.shared.config import DEFAULT_CONFIGURATION_PER_TYPE
from graphindex.shared.observability import get_logger

logger = get_logger(__name__)

KEYWORD = {"type": "keyword"}

SYSTEM_PROPERTIES: Dict[str, Dict[str, Any]] = {
    "__identifier": KEYWORD,
    "__nodeType": KEYWORD,
    "__typeAndSupertypes": KEYWORD,
    "__workspace": KEYWORD,
    "__dimensionCombinationHash": KEYWORD,
    "__hierarchyRelations": {
        "type": "nested",
        "properties": {
            "subgraph": KEYWORD,
            "sortIndex": {"type": "integer"},
            "accessRoles": KEYWORD,
            "hidden": {"type": "boolean"},
            "hiddenBeforeDateTime": {"type": "date", "format": "date_time_no_millis"},
            "hiddenAfterDateTime": {"type": "date", "format": "date_time_no_millis"},
            "hiddenInIndex": {"type": "boolean"},
        },
    },
    "__incomingReferenceRelations": {
        "type": "nested",
        "properties": {"source": KEYWORD, "name": KEYWORD},
    },
    "__outgoingReferenceRelations": {
        "type": "nested",
        "properties": {
            "target": KEYWORD,
            "name": KEYWORD,
            "sortIndex": {"type": "integer"},
        },
    },
    "__fulltext": {
        "type": "object",
        "properties": {bucket: {"type": "text"} for bucket in FULLTEXT_BUCKETS},
    },
}

DIMENSIONS_TEMPLATE = {
    "dimensions": {
        "path_match": "__dimensionCombinations.*",
        "match_mapping_type": "string",
        "mapping": KEYWORD,
    }
}


def convert_node_type_name_to_mapping_name(node_type_name: str) -> str:
    """``Acme.Site:Page`` -> ``Acme-Site-Page``"""
    return node_type_name.replace(".", "-").replace(":", "-")


@dataclass
class Mapping:
    name: str
    node_type: str
    properties: Dict[str, Any] = field(default_factory=dict)
    dynamic_templates: List[Dict[str, Any]] = field(default_factory=list)
    full_mapping: Dict[str, Any] = field(default_factory=dict)

    def set_property(self, path: str, configuration: TypingMapping) -> None:
        """Set a property mapping; dots in ``path`` address object sub-fields."""
        parts = path.split(".")
        target = self.properties
        for part in parts[:-1]:
            target = target.setdefault(part, {"type": "object", "properties": {}})
            target = target.setdefault("properties", {})
        target[parts[-1]] = copy.deepcopy(dict(configuration))

    def add_dynamic_template(self, name: str, template: TypingMapping) -> None:
        self.dynamic_templates.append({name: copy.deepcopy(dict(template))})

    def body(self) -> Dict[str, Any]:
        """Request body for the put mapping API."""
        body: Dict[str, Any] = copy.deepcopy(self.full_mapping)
        properties = body.setdefault("properties", {})
        for name, configuration in self.properties.items():
            properties.setdefault(name, copy.deepcopy(configuration))
        if self.dynamic_templates:
            body.setdefault("dynamic_templates", []).extend(copy.deepcopy(self.dynamic_templates))
        return body


class MappingCollection:
    def __init__(self):
        self._mappings: List[Mapping] = []

    def add(self, mapping: Mapping) -> None:
        self._mappings.append(mapping)

    def get(self, node_type: str) -> Optional[Mapping]:
        for mapping in self._mappings:
            if mapping.node_type == node_type:
                return mapping
        return None

    def __iter__(self) -> Iterator[Mapping]:
        return iter(self._mappings)

    def __len__(self) -> int:
        return len(self._mappings)


class NodeTypeMappingBuilder:
    def __init__(
        self,
        node_types: NodeTypeManager,
        default_configuration_per_type: Optional[TypingMapping[str, TypingMapping[str, Any]]] = None,
    ):
        self.node_types = node_types
        if default_configuration_per_type is None:
            default_configuration_per_type = DEFAULT_CONFIGURATION_PER_TYPE
        self.default_configuration_per_type = dict(default_configuration_per_type)
        self.last_mapping_warnings: List[str] = []

    def _default_mapping(self, property_type: Optional[str]) -> Optional[Dict[str, Any]]:
        if property_type is None:
            return None
        default = self.default_configuration_per_type.get(property_type) or {}
        mapping = default.get("elasticSearchMapping")
        return mapping if isinstance(mapping, dict) else None

    def build_for_node_type(self, node_type: NodeType) -> Mapping:
        mapping = Mapping(
            name=convert_node_type_name_to_mapping_name(node_type.name),
            node_type=node_type.name,
        )
        full_mapping = node_type.get_configuration("search.elasticSearchMapping")
        if isinstance(full_mapping, dict):
            mapping.full_mapping = copy.deepcopy(full_mapping)

        for name, template in DIMENSIONS_TEMPLATE.items():
            mapping.add_dynamic_template(name, template)
        for name, configuration in SYSTEM_PROPERTIES.items():
            mapping.set_property(name, configuration)

        for property_name, configuration in node_type.properties.items():
            configuration = configuration or {}
            search = configuration.get("search") or {}
            if "elasticSearchMapping" in search:
                # a non-dict value disables the mapping of this property
                if isinstance(search["elasticSearchMapping"], dict):
                    mapping.set_property(property_name, search["elasticSearchMapping"])
                continue

            default = self._default_mapping(configuration.get("type"))
            if default is not None:
                mapping.set_property(property_name, default)
            else:
                self.last_mapping_warnings.append(
                    f'Node Type "{node_type.name}" - property "{property_name}": '
                    "No ElasticSearch Mapping found."
                )

        return mapping

    def build_mapping_information(self) -> MappingCollection:
        """
        Build mappings for every concrete node type.

        Abstract types and the ``unstructured`` fallback are skipped.
        Warnings of the previous call are discarded.
        """
        self.last_mapping_warnings = []
        mappings = MappingCollection()
        for name, node_type in sorted(self.node_types.get_node_types().items()):
            if name == FALLBACK_NODE_TYPE or node_type.is_abstract:
                continue
            mappings.add(self.build_for_node_type(node_type))

        logger.debug(
            "mapping_information_built",
            mappings=len(mappings),
            warnings=len(self.last_mapping_warnings),
        )
        return mappings
