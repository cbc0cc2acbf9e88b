from .builder import (
    Mapping,
    MappingCollection,
    NodeTypeMappingBuilder,
    convert_node_type_name_to_mapping_name,
)

__all__ = [
    "Mapping",
    "MappingCollection",
    "NodeTypeMappingBuilder",
    "convert_node_type_name_to_mapping_name",
]
