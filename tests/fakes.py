"""In-memory search backend for tests."""

import copy
import fnmatch
import json
from typing import Any, Dict, List, Optional, Set

from graphindex.backend import SearchBackend
from graphindex.shared.exceptions import BackendError


def _not_found(kind: str, name: str) -> BackendError:
    return BackendError(
        f"{kind} {name} not found",
        status=404,
        error_type=f"{kind}_not_found_exception",
        reason=f"no such {kind} [{name}]",
    )


class FakeBackend(SearchBackend):
    """
    Keeps indices, aliases and documents in dicts.

    Hooks for failure injection:
        fail_bulk: raise BackendError on every bulk request
        failing_ids: document ids reported as failed items
        alias_read_error: status used to fail every get_alias call
        delete_errors: index names whose deletion fails
    """

    def __init__(self):
        self.indices: Dict[str, Dict[str, Any]] = {}
        self.aliases: Dict[str, Set[str]] = {}
        self.bulk_requests: List[List[str]] = []
        self.alias_requests: List[List[Dict[str, Dict[str, str]]]] = []
        self.refreshed: List[str] = []
        self.deleted: List[str] = []
        self.fail_bulk = False
        self.failing_ids: Set[str] = set()
        self.alias_read_error: Optional[int] = None
        self.delete_errors: Set[str] = set()

    # Index API
    def index_exists(self, name: str) -> bool:
        return name in self.indices

    def create_index(self, name: str, settings: Optional[Dict[str, Any]] = None) -> None:
        if name in self.indices:
            raise BackendError(
                f"index {name} exists",
                status=400,
                error_type="resource_already_exists_exception",
                reason=f"index [{name}] already exists",
            )
        self.indices[name] = {"settings": dict(settings or {}), "mappings": [], "docs": {}}

    def delete_index(self, name: str) -> None:
        if name in self.delete_errors:
            raise BackendError(f"cannot delete {name}", status=500, reason="boom")
        if name not in self.indices:
            raise _not_found("index", name)
        del self.indices[name]
        for targets in self.aliases.values():
            targets.discard(name)
        self.deleted.append(name)

    def put_mapping(self, name: str, mapping: Dict[str, Any]) -> None:
        self._resolve(name)["mappings"].append(copy.deepcopy(mapping))

    def list_indices(self, pattern: str) -> List[str]:
        return sorted(name for name in self.indices if fnmatch.fnmatch(name, pattern))

    def _resolve(self, name: str) -> Dict[str, Any]:
        if name in self.indices:
            return self.indices[name]
        targets = self.aliases.get(name) or set()
        if len(targets) == 1:
            return self.indices[next(iter(targets))]
        raise _not_found("index", name)

    # Bulk API
    def bulk(self, lines: List[str]) -> Dict[str, Any]:
        if self.fail_bulk:
            raise BackendError("bulk request failed", reason="connection refused")
        self.bulk_requests.append(list(lines))

        items = []
        errors = False
        position = 0
        while position < len(lines):
            action_line = json.loads(lines[position])
            action, meta = next(iter(action_line.items()))
            payload = None
            if action != "delete":
                payload = json.loads(lines[position + 1])
                position += 2
            else:
                position += 1

            document_id = meta["_id"]
            if document_id in self.failing_ids:
                errors = True
                items.append(
                    {
                        action: {
                            "_id": document_id,
                            "status": 400,
                            "error": {"type": "mapper_parsing_exception", "reason": "bad field"},
                        }
                    }
                )
                continue

            docs = self._resolve(meta["_index"])["docs"]
            if action == "index":
                docs[document_id] = payload
            elif action == "update":
                if payload.get("doc_as_upsert"):
                    merged = docs.get(document_id, {})
                else:
                    merged = docs[document_id]
                merged.update(payload["doc"])
                docs[document_id] = merged
            elif action == "delete":
                docs.pop(document_id, None)
            items.append({action: {"_id": document_id, "status": 200}})

        return {"errors": errors, "items": items}

    def refresh(self, name: str) -> None:
        self._resolve(name)
        self.refreshed.append(name)

    # Alias API
    def get_alias(self, name: str) -> List[str]:
        if self.alias_read_error is not None:
            raise BackendError("alias read failed", status=self.alias_read_error, reason="boom")
        targets = self.aliases.get(name)
        if not targets:
            raise _not_found("alias", name)
        return sorted(targets)

    def update_aliases(self, actions: List[Dict[str, Dict[str, str]]]) -> None:
        aliases = copy.deepcopy(self.aliases)
        for action in actions:
            verb, spec = next(iter(action.items()))
            if spec["index"] not in self.indices:
                raise _not_found("index", spec["index"])
            if verb == "add":
                aliases.setdefault(spec["alias"], set()).add(spec["index"])
            elif verb == "remove":
                aliases.get(spec["alias"], set()).discard(spec["index"])
        self.aliases = {alias: targets for alias, targets in aliases.items() if targets}
        self.alias_requests.append(copy.deepcopy(actions))

    # Helpers
    def documents(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._resolve(name)["docs"]
