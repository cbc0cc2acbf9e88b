"""
Command line entry point.

Usage:
    graphindex build [--limit N] [--update] [--workspace NAME] [--postfix P]
    graphindex cleanup

Configuration is read from config/<ENV>.yaml (or CONFIG_PATH); connection
settings come from the environment.
"""

import argparse
import sys
from typing import List, Optional

from graphindex import __version__
from graphindex.backend.elasticsearch_backend import ElasticsearchBackend
from graphindex.graph import ContentGraph, NodeTypeManager, load_graph_file
from graphindex.graph.neo4j_loader import Neo4jGraphLoader
from graphindex.indexing.orchestrator import IndexingOrchestrator
from graphindex.shared.config import Config, init_config
from graphindex.shared.connections import ConnectionManager
from graphindex.shared.exceptions import BackendError, ConfigurationError
from graphindex.shared.observability import (
    export_metrics,
    get_logger,
    setup_logging,
    setup_metrics,
)

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graphindex",
        description="Rebuild the fulltext search index from the content graph",
    )
    parser.add_argument(
        "--metrics-file",
        default=None,
        help="Write Prometheus metrics to this textfile when the command finishes",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser(
        "build",
        help="Index all nodes into new generations and switch the aliases",
    )
    build.add_argument("--limit", type=int, default=None, help="Index at most N nodes")
    build.add_argument(
        "--update",
        action="store_true",
        help="Populate the live generations in place (development only)",
    )
    build.add_argument("--workspace", default=None, help="Only index this workspace")
    build.add_argument(
        "--postfix",
        default=None,
        help="Generation postfix without \"-\"; a generation with the same postfix is replaced",
    )

    subparsers.add_parser("cleanup", help="Remove generations no alias points to")
    return parser


def load_content_graph(
    config: Config, node_types: NodeTypeManager, connections: ConnectionManager
) -> ContentGraph:
    if config.graph.source == "neo4j":
        loader = Neo4jGraphLoader(connections.get_neo4j_driver(), node_types)
        return loader.load()
    if not config.graph.path:
        raise ConfigurationError("graph.path is required when graph.source is 'file'")
    return load_graph_file(config.graph.path, node_types)


def run(args: argparse.Namespace) -> int:
    config, settings = init_config()
    setup_logging(settings.log_level)
    setup_metrics(settings.env, __version__)

    node_types = NodeTypeManager.from_file(config.node_types.path)
    with ConnectionManager(settings) as connections:
        backend = ElasticsearchBackend(connections.get_elasticsearch_client())

        if args.command == "cleanup":
            graph = ContentGraph()
        else:
            graph = load_content_graph(config, node_types, connections)

        orchestrator = IndexingOrchestrator(graph, node_types, backend, config)
        if args.command == "build":
            report = orchestrator.build(
                postfix=args.postfix,
                update=args.update,
                workspace=args.workspace,
                limit=args.limit,
            )
            print(
                f"Indexed {report.nodes_indexed} nodes into {report.documents} documents "
                f"in {report.duration_seconds}s ({report.error_count} errors)"
            )
        else:
            removed = orchestrator.cleanup()
            for alias, names in removed.items():
                for name in names:
                    print(f"Removed old index {name} (alias {alias})")

    if args.metrics_file:
        export_metrics(args.metrics_file)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except ConfigurationError as exc:
        logger.error("configuration_error", error=str(exc))
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    except BackendError as exc:
        logger.error("backend_error", error=exc.describe())
        print(f"Search backend error: {exc.describe()}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
