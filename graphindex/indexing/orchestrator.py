"""
Full index rebuild.

    build:   create + map generations -> (first run) set up aliases ->
             populate -> final flush -> refresh -> swap aliases -> report
    cleanup: remove generations no alias points to

Population either walks the graph once and routes every operation to the
generation of its dimension combination, or, with workers enabled, runs one
isolated worker per combination. Workers share nothing but the backend, and
no alias moves until every worker has finished.
"""

import contextvars
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from graphindex.backend import SearchBackend
from graphindex.dimensions import DimensionCombinator, DimensionSpacePoint
from graphindex.graph import ContentGraph, NodeTypeManager
from graphindex.lifecycle import IndexGeneration, IndexLifecycleManager
from graphindex.mapping import NodeTypeMappingBuilder
from graphindex.shared.config import Config
from graphindex.shared.exceptions import ConfigurationError, IndexingErrors
from graphindex.shared.observability import get_logger, set_run_id
from graphindex.shared.observability import metrics

from .bulk import BulkWriteBuffer
from .context import IndexingContext, WorkspaceIndexingMode
from .document import DocumentBuilder
from .properties import PropertyExtractor
from .run_stats import RebuildReport
from .walker import GraphWalker, WalkResult

logger = get_logger(__name__)


@dataclass
class WorkerResult:
    """Outcome of populating one dimension combination."""

    combination: DimensionSpacePoint
    index_name: str
    nodes_indexed: int = 0
    documents: int = 0
    error_count: int = 0
    error_messages: List[str] = field(default_factory=list)


class IndexingOrchestrator:
    def __init__(
        self,
        graph: ContentGraph,
        node_types: NodeTypeManager,
        backend: SearchBackend,
        config: Optional[Config] = None,
        lifecycle: Optional[IndexLifecycleManager] = None,
        extractor: Optional[PropertyExtractor] = None,
    ):
        self.graph = graph
        self.node_types = node_types
        self.backend = backend
        self.config = config or Config()
        self.workspace_mode = WorkspaceIndexingMode.from_string(
            self.config.indexing.workspace_mode
        )
        self.combinations = DimensionCombinator(
            self.config.dimensions.presets
        ).get_all_allowed_combinations()
        self.extractor = extractor or PropertyExtractor()
        self.lifecycle = lifecycle or IndexLifecycleManager(
            backend,
            self.config.index.name,
            mapping_builder=NodeTypeMappingBuilder(
                node_types, self.config.mapping.default_configuration_per_type
            ),
            index_settings={
                "number_of_shards": self.config.index.number_of_shards,
                "number_of_replicas": self.config.index.number_of_replicas,
            },
        )

    def _new_context(self, targets: Dict[str, str], workspace: Optional[str]) -> IndexingContext:
        return IndexingContext(
            backend=self.backend,
            targets=targets,
            batch_size=self.config.indexing.batch_size,
            max_bulk_bytes=self.config.indexing.max_bulk_bytes,
            workspace_mode=self.workspace_mode,
            workspace=workspace,
            errors=IndexingErrors(),
        )

    def _new_walker(self, context: IndexingContext, limit: Optional[int]) -> GraphWalker:
        builder = DocumentBuilder(self.graph, self.extractor)
        return GraphWalker(self.graph, builder, BulkWriteBuffer(context), limit=limit)

    def _validate_workspace(self, workspace: Optional[str]) -> None:
        if workspace is None:
            return
        known = self.graph.workspaces()
        if workspace not in known:
            raise ConfigurationError(
                f'Workspace "{workspace}" does not exist, known workspaces: {sorted(known)}'
            )

    # ===== Generations =====

    def _create_generation(self, combination: DimensionSpacePoint, postfix: str) -> IndexGeneration:
        generation = self.lifecycle.create(combination, postfix)
        self.lifecycle.apply_mapping(generation)
        return generation

    def _create_generations(self, postfix: str) -> Dict[str, IndexGeneration]:
        if self.config.indexing.use_workers and len(self.combinations) > 1:
            with ThreadPoolExecutor(max_workers=self.config.indexing.max_workers) as executor:
                futures = [
                    executor.submit(
                        contextvars.copy_context().run,
                        self._create_generation,
                        combination,
                        postfix,
                    )
                    for combination in self.combinations
                ]
                generations = [future.result() for future in futures]
        else:
            generations = [self._create_generation(c, postfix) for c in self.combinations]
        return {generation.dimension_point.hash: generation for generation in generations}

    # ===== Population =====

    def _populate_combination(
        self,
        combination: DimensionSpacePoint,
        index_name: str,
        workspace: Optional[str],
        limit: Optional[int],
    ) -> WorkerResult:
        """Worker body: own context, own buffer, own walker."""
        context = self._new_context({combination.hash: index_name}, workspace)
        walker = self._new_walker(context, limit)
        logger.info(
            "worker_started",
            index=index_name,
            dimensions=combination.coordinates,
        )
        walk = walker.walk([combination])
        self.backend.refresh(index_name)
        logger.info(
            "worker_finished",
            index=index_name,
            nodes_indexed=walk.nodes_indexed,
            documents=walk.documents,
            errors=context.errors.count,
        )
        return WorkerResult(
            combination=combination,
            index_name=index_name,
            nodes_indexed=walk.nodes_indexed,
            documents=walk.documents,
            error_count=context.errors.count,
            error_messages=context.errors.messages,
        )

    def _populate_with_workers(
        self,
        targets: Dict[str, str],
        workspace: Optional[str],
        limit: Optional[int],
    ) -> List[WorkerResult]:
        with ThreadPoolExecutor(max_workers=self.config.indexing.max_workers) as executor:
            futures = [
                executor.submit(
                    contextvars.copy_context().run,
                    self._populate_combination,
                    combination,
                    targets[combination.hash],
                    workspace,
                    limit,
                )
                for combination in self.combinations
            ]
        # leaving the executor joins every worker
        results: List[WorkerResult] = []
        failures: List[BaseException] = []
        for future in futures:
            exc = future.exception()
            if exc is not None:
                failures.append(exc)
            else:
                results.append(future.result())
        if failures:
            raise failures[0]
        return results

    def _populate_single_walk(
        self,
        targets: Dict[str, str],
        workspace: Optional[str],
        limit: Optional[int],
    ) -> List[WorkerResult]:
        context = self._new_context(targets, workspace)
        walker = self._new_walker(context, limit)
        walk: WalkResult = walker.walk()

        for name in targets.values():
            self.backend.refresh(name)

        results: List[WorkerResult] = []
        for index, combination in enumerate(self.combinations):
            # node counts belong to the walk, not to a single combination
            result = WorkerResult(combination=combination, index_name=targets[combination.hash])
            if index == 0:
                result.nodes_indexed = walk.nodes_indexed
                result.documents = walk.documents
                result.error_count = context.errors.count
                result.error_messages = context.errors.messages
            results.append(result)
        return results

    # ===== Commands =====

    def build(
        self,
        postfix: Optional[str] = None,
        update: bool = False,
        workspace: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> RebuildReport:
        """
        Rebuild the index.

        Args:
            postfix: Generation postfix (defaults to the current unix time);
                a generation with the same postfix is replaced
            update: Populate the live generations in place; no generation is
                created and no alias moves
            workspace: Only index this workspace
            limit: Maximum number of nodes per walk

        Returns:
            RebuildReport with counts per combination

        Raises:
            ConfigurationError: Unknown workspace, invalid postfix, unknown
                fulltext extractor or invalid alias target
            BackendError: Non recoverable backend failure
        """
        set_run_id(str(uuid.uuid4()))
        self._validate_workspace(workspace)
        postfix = str(postfix) if postfix is not None else str(int(time.time()))
        self.lifecycle.check_postfix(postfix)
        self.extractor.check_node_types(self.node_types)
        report = RebuildReport.start_new(postfix=postfix, update=update)
        started = time.monotonic()

        if update:
            logger.info("update_mode_active", postfix=postfix)
            generations: Dict[str, IndexGeneration] = {}
            targets = {c.hash: self.lifecycle.alias_name(c) for c in self.combinations}
        else:
            generations = self._create_generations(postfix)
            targets = {h: generation.name for h, generation in generations.items()}
            if not self.lifecycle.aliases_exist():
                logger.info("aliases_set_up", combinations=len(generations))
                for generation in generations.values():
                    self.lifecycle.update_alias(generation)

        logger.info(
            "population_started",
            combinations=len(self.combinations),
            workers=self.config.indexing.use_workers,
            limit=limit,
            workspace=workspace,
        )
        if self.config.indexing.use_workers and len(self.combinations) > 1:
            results = self._populate_with_workers(targets, workspace, limit)
        else:
            results = self._populate_single_walk(targets, workspace, limit)

        for result in results:
            report.record_combination(
                result.combination,
                result.index_name,
                nodes_indexed=result.nodes_indexed,
                documents=result.documents,
            )
            report.record_errors(result.error_count, result.error_messages)

        if not update:
            for generation in generations.values():
                self.lifecycle.mark_populated(generation)
                self.lifecycle.update_alias(generation)
                report.aliases_updated.append(generation.alias)
            self.lifecycle.update_main_alias(g.alias for g in generations.values())

        metrics.rebuild_duration_seconds.set(time.monotonic() - started)
        report.emit_summary()
        return report

    def cleanup(self) -> Dict[str, List[str]]:
        """
        Remove every generation no per-dimension alias points to.

        Returns:
            Deleted generation names per alias
        """
        removed = self.lifecycle.cleanup_all(self.combinations)
        if not any(removed.values()):
            logger.info("Nothing to remove.")
        return removed
