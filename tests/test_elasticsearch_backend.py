"""Tests for the Elasticsearch backend adapter (client mocked)."""

from unittest.mock import MagicMock

import pytest
from elasticsearch import ApiError, TransportError

from graphindex.backend.elasticsearch_backend import ElasticsearchBackend
from graphindex.shared.exceptions import BackendError


def _api_error(status, body):
    return ApiError("api error", meta=MagicMock(status=status), body=body)


class TestElasticsearchBackend:
    def test_get_alias_returns_index_names(self):
        client = MagicMock()
        client.indices.get_alias.return_value.body = {"content-b-2": {}, "content-a-1": {}}
        backend = ElasticsearchBackend(client)

        assert backend.get_alias("content") == ["content-a-1", "content-b-2"]
        client.indices.get_alias.assert_called_once_with(name="content")

    def test_missing_alias_is_404(self):
        client = MagicMock()
        client.indices.get_alias.side_effect = _api_error(
            404, {"error": "alias [content] missing", "status": 404}
        )

        with pytest.raises(BackendError) as exc_info:
            ElasticsearchBackend(client).get_alias("content")
        assert exc_info.value.is_not_found
        assert exc_info.value.reason == "alias [content] missing"

    def test_api_error_details(self):
        client = MagicMock()
        client.indices.create.side_effect = _api_error(
            400,
            {"error": {"type": "resource_already_exists_exception", "reason": "exists"}},
        )

        with pytest.raises(BackendError) as exc_info:
            ElasticsearchBackend(client).create_index("content-1", {"number_of_shards": 1})
        error = exc_info.value
        assert error.status == 400
        assert error.error_type == "resource_already_exists_exception"
        assert "resource_already_exists_exception: exists" in error.describe()

    def test_transport_error(self):
        client = MagicMock()
        client.bulk.side_effect = TransportError("connection refused")

        with pytest.raises(BackendError) as exc_info:
            ElasticsearchBackend(client).bulk(["{}"])
        assert exc_info.value.status is None

    def test_bulk_passes_lines_through(self):
        client = MagicMock()
        client.bulk.return_value.body = {"errors": False, "items": []}
        lines = ['{"index":{"_index":"i","_id":"1"}}', "{}"]

        assert ElasticsearchBackend(client).bulk(lines) == {"errors": False, "items": []}
        client.bulk.assert_called_once_with(operations=lines)

    def test_update_aliases_and_listing(self):
        client = MagicMock()
        client.cat.indices.return_value = [{"index": "content-2"}, {"index": "content-1"}]
        backend = ElasticsearchBackend(client)
        actions = [{"add": {"index": "content-2", "alias": "content"}}]

        backend.update_aliases(actions)
        assert backend.list_indices("content-*") == ["content-1", "content-2"]
        client.indices.update_aliases.assert_called_once_with(actions=actions)
        client.cat.indices.assert_called_once_with(index="content-*", format="json", h="index")
