"""
Property and fulltext extraction driven by node type configuration.

    properties:
      title:
        type: string
        search:
          fulltextExtractor: h1     # text | h1..h6 | html
      internalNotes:
        type: string
        search:
          indexing: false           # not stored as a field

Fulltext buckets are the keys of the ``__fulltext`` object in the index
(``h1``..``h6`` and ``text``).
"""

from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from graphindex.graph import Node, NodeTypeManager
from graphindex.shared.exceptions import ConfigurationError

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
FULLTEXT_BUCKETS = HEADING_TAGS + ("text",)

UnmappedPropertyCallback = Callable[[str], None]


def strip_html(value: str) -> str:
    return BeautifulSoup(value, "html.parser").get_text(" ", strip=True)


def extract_html_tags(value: str) -> Dict[str, str]:
    """Split HTML into heading buckets; everything else goes to ``text``."""
    soup = BeautifulSoup(value, "html.parser")
    buckets: Dict[str, List[str]] = {}
    for tag in soup.find_all(list(HEADING_TAGS)):
        text = tag.get_text(" ", strip=True)
        if text:
            buckets.setdefault(tag.name, []).append(text)
        tag.decompose()
    remainder = soup.get_text(" ", strip=True)
    if remainder:
        buckets.setdefault("text", []).append(remainder)
    return {bucket: " ".join(parts) for bucket, parts in buckets.items()}


def format_datetime(value: datetime) -> str:
    """ISO 8601 with seconds and a UTC offset; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat(timespec="seconds")


def normalize_value(value: Any) -> Any:
    """Convert a property value into something JSON serializable where possible."""
    if isinstance(value, Node):
        return value.aggregate_id
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple, set, frozenset)):
        return [normalize_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): normalize_value(v) for k, v in value.items()}
    return value


class PropertyExtractor:
    def extract_fulltext(self, extractor: str, value: Any) -> Dict[str, str]:
        if value is None:
            return {}
        if isinstance(value, (list, tuple)):
            value = " ".join(str(v) for v in value if v is not None)
        value = str(value)
        if extractor == "html":
            return extract_html_tags(value)
        if extractor in FULLTEXT_BUCKETS:
            text = strip_html(value)
            return {extractor: text} if text else {}
        raise ConfigurationError(f"Unknown fulltext extractor: {extractor}")

    def check_node_types(self, node_types: NodeTypeManager) -> None:
        """Reject fulltext extractors this extractor cannot handle."""
        for node_type in node_types.get_node_types().values():
            for name, configuration in node_type.properties.items():
                search = (configuration or {}).get("search") or {}
                extractor = search.get("fulltextExtractor")
                if extractor and extractor != "html" and extractor not in FULLTEXT_BUCKETS:
                    raise ConfigurationError(
                        f'Node Type "{node_type.name}" - property "{name}": '
                        f"unknown fulltext extractor {extractor!r}"
                    )

    def extract(
        self,
        node: Node,
        on_unmapped_property: Optional[UnmappedPropertyCallback] = None,
    ) -> Tuple[Dict[str, Any], Dict[str, str]]:
        """
        Extract indexable fields and fulltext buckets of one node.

        Args:
            node: Node to extract from
            on_unmapped_property: Called with the property name for every
                property without configuration on the node type

        Returns:
            (fields, fulltext) where fulltext maps bucket to text
        """
        configured = node.node_type.properties
        fields: Dict[str, Any] = {}
        fulltext: Dict[str, List[str]] = {}

        for name, value in node.properties.items():
            if name.startswith("_"):
                continue
            configuration = configured.get(name)
            if configuration is None:
                if on_unmapped_property is not None:
                    on_unmapped_property(name)
                continue

            search = configuration.get("search") or {}
            if search.get("indexing", True) is not False:
                fields[name] = normalize_value(value)

            extractor = search.get("fulltextExtractor")
            if extractor:
                for bucket, text in self.extract_fulltext(extractor, value).items():
                    fulltext.setdefault(bucket, []).append(text)

        return fields, {bucket: " ".join(parts) for bucket, parts in fulltext.items()}
