# Document pipeline. The orchestrator lives in graphindex.indexing.orchestrator;
# it is not re-exported here because it depends on graphindex.mapping, which
# itself reads the fulltext buckets from this package.
from .bulk import BulkOperation, BulkWriteBuffer
from .context import IndexingContext, WorkspaceIndexingMode
from .document import Document, DocumentBuilder, DocumentIdentifier
from .fulltext import FulltextAggregator
from .properties import PropertyExtractor
from .variants import DimensionVariantResolver
from .walker import GraphWalker, WalkResult

__all__ = [
    "BulkOperation",
    "BulkWriteBuffer",
    "DimensionVariantResolver",
    "Document",
    "DocumentBuilder",
    "DocumentIdentifier",
    "FulltextAggregator",
    "GraphWalker",
    "IndexingContext",
    "PropertyExtractor",
    "WalkResult",
    "WorkspaceIndexingMode",
]
