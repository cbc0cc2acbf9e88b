# Prometheus metrics for index rebuild runs

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
    write_to_textfile,
)

from .logging import get_logger

logger = get_logger(__name__)

# ===== Document pipeline metrics =====
documents_buffered_total = Counter(
    "graphindex_documents_buffered_total",
    "Documents appended to the bulk buffer",
    ["operation"],
)

nodes_indexed_total = Counter(
    "graphindex_nodes_indexed_total",
    "Graph nodes passed through the document builder",
)

consistency_gaps_total = Counter(
    "graphindex_consistency_gaps_total",
    "Occupied dimension points skipped because no subgraph matched",
)

unmapped_properties_total = Counter(
    "graphindex_unmapped_properties_total",
    "Properties skipped because no indexing configuration exists",
)

# ===== Bulk write metrics =====
bulk_requests_total = Counter(
    "graphindex_bulk_requests_total",
    "Bulk requests sent to the search backend",
    ["status"],
)

bulk_item_errors_total = Counter(
    "graphindex_bulk_item_errors_total",
    "Bulk items reported as failed by the search backend",
)

serialization_errors_total = Counter(
    "graphindex_serialization_errors_total",
    "Bulk operations dropped because they could not be encoded",
)

flush_duration_seconds = Histogram(
    "graphindex_flush_duration_seconds",
    "Duration of a bulk buffer flush in seconds",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# ===== Lifecycle metrics =====
generations_created_total = Counter(
    "graphindex_generations_created_total",
    "Index generations created",
)

generations_deleted_total = Counter(
    "graphindex_generations_deleted_total",
    "Index generations deleted",
    ["reason"],
)

alias_updates_total = Counter(
    "graphindex_alias_updates_total",
    "Atomic alias mutations",
    ["scope"],
)

rebuild_duration_seconds = Gauge(
    "graphindex_rebuild_duration_seconds",
    "Duration of the last rebuild run in seconds",
)

service_info = Info(
    "graphindex_service",
    "Index rebuild service information",
)


def setup_metrics(env: str, version: str) -> None:
    """
    Setup Prometheus metrics collection.

    Args:
        env: Deployment environment name
        version: Package version
    """
    service_info.info({"version": version, "environment": env})
    logger.info("prometheus_metrics_enabled", environment=env)


def get_metrics() -> bytes:
    """
    Get current metrics in Prometheus exposition format.

    Returns:
        Metrics as bytes
    """
    return generate_latest()


def export_metrics(path: str) -> None:
    """Write current metrics to a node-exporter textfile."""
    write_to_textfile(path, REGISTRY)
    logger.info("metrics_exported", path=path)
