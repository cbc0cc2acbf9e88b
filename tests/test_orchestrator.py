"""End-to-end rebuild tests against the in-memory backend."""

import pytest

from graphindex.dimensions import DimensionSpacePoint
from graphindex.graph import ContentGraph, NodeTypeManager
from graphindex.indexing.orchestrator import IndexingOrchestrator
from graphindex.shared.config import Config
from graphindex.shared.exceptions import ConfigurationError, WorkspaceIndexingModeIsInvalid
from graphindex.shared.observability import get_run_id
from tests.graphs import bilingual_graph, nested_roots_graph

EN = DimensionSpacePoint({"language": "en"})
DE = DimensionSpacePoint({"language": "de"})


def _config(**indexing):
    return Config(
        dimensions={"presets": {"language": ["en", "de"]}},
        indexing=indexing,
    )


@pytest.fixture
def orchestrator(node_types, backend):
    return IndexingOrchestrator(bilingual_graph(node_types), node_types, backend, _config())


class TestBuild:
    def test_full_rebuild(self, orchestrator, backend):
        report = orchestrator.build(postfix="1")

        en_alias = orchestrator.lifecycle.alias_name(EN)
        de_alias = orchestrator.lifecycle.alias_name(DE)
        assert backend.get_alias(en_alias) == [f"{en_alias}-1"]
        assert backend.get_alias(de_alias) == [f"{de_alias}-1"]
        assert backend.get_alias("content") == sorted([f"{en_alias}-1", f"{de_alias}-1"])

        # en: page, text, extra; de: page, text
        assert len(backend.documents(en_alias)) == 3
        assert len(backend.documents(de_alias)) == 2
        assert report.nodes_indexed == 5
        assert report.documents == 5
        assert report.error_count == 0
        assert sorted(backend.refreshed) == sorted([f"{en_alias}-1", f"{de_alias}-1"])

    def test_fulltext_rolled_up_into_page(self, orchestrator, backend):
        orchestrator.build(postfix="1")
        documents = backend.documents(orchestrator.lifecycle.alias_name(EN))
        page = next(d for d in documents.values() if d["__identifier"] == "page")
        assert page["__fulltext"] == {"h1": "Page en", "text": "text en only english"}

    def test_document_ids_are_stable_across_rebuilds(self, orchestrator, backend):
        alias = orchestrator.lifecycle.alias_name(EN)
        orchestrator.build(postfix="1")
        first = set(backend.documents(alias))
        orchestrator.build(postfix="1")
        assert set(backend.documents(alias)) == first

    def test_second_rebuild_swaps_aliases(self, orchestrator, backend):
        orchestrator.build(postfix="1")
        orchestrator.build(postfix="2")

        en_alias = orchestrator.lifecycle.alias_name(EN)
        assert backend.get_alias(en_alias) == [f"{en_alias}-2"]
        assert backend.index_exists(f"{en_alias}-1")
        assert f"{en_alias}-1" not in backend.get_alias("content")

    def test_workers_produce_the_same_index(self, node_types, backend):
        single_backend = type(backend)()
        IndexingOrchestrator(
            bilingual_graph(node_types), node_types, single_backend, _config()
        ).build(postfix="1")

        orchestrator = IndexingOrchestrator(
            bilingual_graph(node_types),
            node_types,
            backend,
            _config(use_workers=True, max_workers=2),
        )
        report = orchestrator.build(postfix="1")

        for combination in (EN, DE):
            alias = orchestrator.lifecycle.alias_name(combination)
            assert backend.documents(alias) == single_backend.documents(alias)
        assert report.documents == 5
        assert len(report.combinations) == 2

    def test_update_mode_writes_into_live_generation(self, orchestrator, backend):
        orchestrator.build(postfix="1")
        alias_requests = len(backend.alias_requests)
        indices = set(backend.indices)

        report = orchestrator.build(update=True)

        assert set(backend.indices) == indices
        assert len(backend.alias_requests) == alias_requests
        assert report.update is True
        assert report.documents == 5

    def test_limit_caps_nodes(self, orchestrator):
        report = orchestrator.build(postfix="1", limit=2)
        assert report.nodes_indexed == 2

    def test_workspace_filter(self, orchestrator):
        report = orchestrator.build(postfix="1", workspace="live")
        assert report.documents == 5
        with pytest.raises(ConfigurationError):
            orchestrator.build(postfix="2", workspace="missing")

    def test_dashed_postfix_is_rejected_before_any_index(self, orchestrator, backend):
        with pytest.raises(ConfigurationError):
            orchestrator.build(postfix="2024-10-19")
        assert backend.indices == {}

    def test_unknown_extractor_is_rejected_before_any_index(self, backend):
        node_types = NodeTypeManager(
            {"Test:Broken": {"properties": {"body": {"search": {"fulltextExtractor": "h9"}}}}}
        )
        orchestrator = IndexingOrchestrator(ContentGraph(), node_types, backend, _config())
        with pytest.raises(ConfigurationError):
            orchestrator.build(postfix="1")
        assert backend.indices == {}

    def test_report_carries_the_logged_run_id(self, orchestrator):
        first = orchestrator.build(postfix="1")
        assert first.run_id == get_run_id()
        assert orchestrator.build(postfix="2").run_id != first.run_id

    def test_no_dimensions(self, node_types, backend):
        graph, *_ = nested_roots_graph(node_types)
        # nodes carry a language coordinate; without dimensions nothing targets them
        orchestrator = IndexingOrchestrator(graph, node_types, backend, Config())
        report = orchestrator.build(postfix="7")

        assert backend.get_alias("content") == ["content-7"]
        assert report.documents == 0

    def test_invalid_workspace_mode(self, node_types, backend):
        config = Config()
        config.indexing.workspace_mode = "sometimes"
        with pytest.raises(WorkspaceIndexingModeIsInvalid):
            IndexingOrchestrator(bilingual_graph(node_types), node_types, backend, config)


class TestCleanup:
    def test_removes_only_orphaned_generations(self, orchestrator, backend):
        """Only 'en' was ever aliased; cleanup removes the orphaned 'de' generation."""
        lifecycle = orchestrator.lifecycle
        en = lifecycle.create(EN, "1")
        lifecycle.apply_mapping(en)
        lifecycle.mark_populated(en)
        lifecycle.update_alias(en)
        de = lifecycle.create(DE, "1")
        lifecycle.apply_mapping(de)

        removed = orchestrator.cleanup()

        assert removed[lifecycle.alias_name(DE)] == [de.name]
        assert removed[lifecycle.alias_name(EN)] == []
        assert backend.index_exists(en.name)
        assert not backend.index_exists(de.name)

    def test_nothing_to_remove(self, orchestrator):
        orchestrator.build(postfix="1")
        assert orchestrator.cleanup() == {
            orchestrator.lifecycle.alias_name(EN): [],
            orchestrator.lifecycle.alias_name(DE): [],
        }

    def test_removes_previous_generations_after_rebuild(self, orchestrator, backend):
        orchestrator.build(postfix="1")
        orchestrator.build(postfix="2")

        removed = orchestrator.cleanup()

        en_alias = orchestrator.lifecycle.alias_name(EN)
        assert removed[en_alias] == [f"{en_alias}-1"]
        assert backend.index_exists(f"{en_alias}-2")
