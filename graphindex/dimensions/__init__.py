from .space import (
    LIVE_WORKSPACE,
    WORKSPACE_DIMENSION,
    ContentStreamIdentity,
    DimensionCombinator,
    DimensionSpacePoint,
    DimensionSpacePointSet,
)

__all__ = [
    "LIVE_WORKSPACE",
    "WORKSPACE_DIMENSION",
    "ContentStreamIdentity",
    "DimensionCombinator",
    "DimensionSpacePoint",
    "DimensionSpacePointSet",
]
