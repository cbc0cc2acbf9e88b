# Shared fixtures: node types, small content graphs, in-memory backend

import os
import sys
from pathlib import Path

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set test environment
os.environ["ENV"] = "development"
os.environ.setdefault("GRAPHINDEX_PLAIN_LOGS", "1")

from graphindex.graph import NodeTypeManager  # noqa: E402
from graphindex.indexing import IndexingContext  # noqa: E402
from tests.fakes import FakeBackend  # noqa: E402
from tests.graphs import NODE_TYPES  # noqa: E402


@pytest.fixture
def node_types() -> NodeTypeManager:
    return NodeTypeManager(NODE_TYPES)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def make_context(backend):
    """Factory for an IndexingContext routing every given point to an index."""

    def factory(points, index_prefix="idx", **kwargs) -> IndexingContext:
        targets = {}
        for point in points:
            combination = point.without_workspace()
            name = f"{index_prefix}-{combination.hash}"
            if not backend.index_exists(name):
                backend.create_index(name)
            targets[combination.hash] = name
        return IndexingContext(backend=backend, targets=targets, **kwargs)

    return factory
