"""Tests for the node type mapping builder."""

from graphindex.graph import NodeTypeManager
from graphindex.mapping import NodeTypeMappingBuilder, convert_node_type_name_to_mapping_name
from tests.graphs import NODE_TYPES


def _builder():
    return NodeTypeMappingBuilder(NodeTypeManager(NODE_TYPES))


class TestNodeTypeMappingBuilder:
    def test_skips_abstract_and_unstructured(self):
        mappings = _builder().build_mapping_information()
        names = sorted(m.node_type for m in mappings)
        assert names == ["Test:Html", "Test:Page", "Test:Text"]

    def test_system_fields(self):
        body = _builder().build_mapping_information().get("Test:Text").body()
        properties = body["properties"]

        assert properties["__dimensionCombinationHash"] == {"type": "keyword"}
        assert properties["__hierarchyRelations"]["type"] == "nested"
        assert properties["__hierarchyRelations"]["properties"]["hiddenBeforeDateTime"] == {
            "type": "date",
            "format": "date_time_no_millis",
        }
        assert properties["__incomingReferenceRelations"]["type"] == "nested"
        assert set(properties["__outgoingReferenceRelations"]["properties"]) == {
            "target",
            "name",
            "sortIndex",
        }
        assert "h1" in properties["__fulltext"]["properties"]
        template = body["dynamic_templates"][0]["dimensions"]
        assert template["path_match"] == "__dimensionCombinations.*"

    def test_property_mapping_sources(self):
        body = _builder().build_mapping_information().get("Test:Page").body()
        properties = body["properties"]

        # explicit elasticSearchMapping
        assert properties["slug"] == {"type": "keyword"}
        # type defaults, including inherited properties
        assert properties["title"] == {"type": "text"}
        assert properties["publishedAt"] == {"type": "date", "format": "date_time_no_millis"}

    def test_missing_mapping_is_a_warning(self):
        builder = _builder()
        mappings = builder.build_mapping_information()

        assert "layout" not in mappings.get("Test:Html").body()["properties"]
        assert builder.last_mapping_warnings == [
            'Node Type "Test:Html" - property "layout": No ElasticSearch Mapping found.'
        ]

    def test_full_mapping_override(self):
        manager = NodeTypeManager(
            {
                "Test:Custom": {
                    "search": {"elasticSearchMapping": {"_source": {"enabled": False}}},
                    "properties": {"count": {"type": "integer"}},
                }
            }
        )
        body = NodeTypeMappingBuilder(manager).build_mapping_information().get("Test:Custom").body()
        assert body["_source"] == {"enabled": False}
        assert body["properties"]["count"] == {"type": "integer"}

    def test_custom_default_table(self):
        builder = NodeTypeMappingBuilder(
            NodeTypeManager(NODE_TYPES),
            {"CustomLayout": {"elasticSearchMapping": {"type": "keyword"}}},
        )
        body = builder.build_mapping_information().get("Test:Html").body()
        assert body["properties"]["layout"] == {"type": "keyword"}
        # 'content' is a string, which the custom table does not cover
        assert len(builder.last_mapping_warnings) == 1

    def test_mapping_name(self):
        assert convert_node_type_name_to_mapping_name("Acme.Site:Page") == "Acme-Site-Page"
