"""
Index generation lifecycle.

A rebuild never writes into the index that is being served. It creates a
fresh generation per dimension combination, populates it, and then moves the
stable alias over in one atomic request:

    <base>-<dimensionHash>              per-dimension alias
    <base>-<dimensionHash>-<postfix>    generation
    <base>                              top level alias over all dimensions

Stale generations stay in place until ``cleanup`` removes them.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from graphindex.backend import SearchBackend
from graphindex.dimensions import DimensionSpacePoint
from graphindex.mapping import NodeTypeMappingBuilder
from graphindex.shared.exceptions import BackendError, ConfigurationError, LifecycleError
from graphindex.shared.observability import get_logger
from graphindex.shared.observability import metrics

logger = get_logger(__name__)


class GenerationState(str, enum.Enum):
    ABSENT = "absent"
    CREATED = "created"
    MAPPED = "mapped"
    POPULATED = "populated"
    ALIASED = "aliased"
    STALE = "stale"
    DELETED = "deleted"


ALLOWED_TRANSITIONS = {
    GenerationState.ABSENT: {GenerationState.CREATED},
    GenerationState.CREATED: {GenerationState.MAPPED, GenerationState.DELETED},
    GenerationState.MAPPED: {GenerationState.POPULATED, GenerationState.DELETED},
    GenerationState.POPULATED: {
        GenerationState.POPULATED,
        GenerationState.ALIASED,
        GenerationState.DELETED,
    },
    GenerationState.ALIASED: {GenerationState.STALE},
    GenerationState.STALE: {GenerationState.DELETED},
    GenerationState.DELETED: set(),
}


@dataclass
class IndexGeneration:
    name: str
    alias: str
    dimension_point: DimensionSpacePoint
    state: GenerationState = GenerationState.ABSENT
    history: List[GenerationState] = field(default_factory=list)

    def transition(self, state: GenerationState) -> None:
        if state not in ALLOWED_TRANSITIONS[self.state]:
            raise LifecycleError(
                f"Generation {self.name} cannot move from {self.state.value} to {state.value}"
            )
        self.history.append(self.state)
        self.state = state


class IndexLifecycleManager:
    """Creates, maps, aliases and prunes index generations of one base name."""

    def __init__(
        self,
        backend: SearchBackend,
        base_name: str,
        mapping_builder: Optional[NodeTypeMappingBuilder] = None,
        index_settings: Optional[Dict[str, Any]] = None,
    ):
        self.backend = backend
        self.base_name = base_name
        self.mapping_builder = mapping_builder
        self.index_settings = index_settings or {}

    # ===== Naming =====

    def alias_name(self, dimension_point: DimensionSpacePoint) -> str:
        combination = dimension_point.without_workspace()
        if len(combination) == 0:
            return self.base_name
        return f"{self.base_name}-{combination.hash}"

    @staticmethod
    def check_postfix(postfix: str) -> None:
        # cleanup tells generations of one alias apart by a dash free postfix
        if not postfix or "-" in postfix:
            raise ConfigurationError(
                f'Invalid postfix "{postfix}": must be non-empty and must not contain "-"'
            )

    def generation_name(self, dimension_point: DimensionSpacePoint, postfix: str) -> str:
        self.check_postfix(postfix)
        return f"{self.alias_name(dimension_point)}-{postfix}"

    # ===== Generations =====

    def create(self, dimension_point: DimensionSpacePoint, postfix: str) -> IndexGeneration:
        """Create a fresh generation, replacing one with the same postfix."""
        generation = IndexGeneration(
            name=self.generation_name(dimension_point, postfix),
            alias=self.alias_name(dimension_point),
            dimension_point=dimension_point.without_workspace(),
        )
        if self.backend.index_exists(generation.name):
            logger.warning(
                "generation_replaced",
                index=generation.name,
                postfix=postfix,
            )
            self.backend.delete_index(generation.name)
            metrics.generations_deleted_total.labels(reason="replaced").inc()

        self.backend.create_index(generation.name, self.index_settings)
        generation.transition(GenerationState.CREATED)
        metrics.generations_created_total.inc()
        logger.info("generation_created", index=generation.name, alias=generation.alias)
        return generation

    def apply_mapping(self, generation: IndexGeneration) -> List[str]:
        """
        Push the mapping of every concrete node type into ``generation``.

        Returns:
            Mapping warnings (properties without any mapping)
        """
        warnings: List[str] = []
        if self.mapping_builder is not None:
            mappings = self.mapping_builder.build_mapping_information()
            for mapping in mappings:
                self.backend.put_mapping(generation.name, mapping.body())
            warnings = list(self.mapping_builder.last_mapping_warnings)
            for warning in warnings:
                logger.warning("mapping_warning", index=generation.name, warning=warning)
            logger.info("mapping_applied", index=generation.name, mappings=len(mappings))
        generation.transition(GenerationState.MAPPED)
        return warnings

    def refresh(self, generation: IndexGeneration) -> None:
        self.backend.refresh(generation.name)

    def mark_populated(self, generation: IndexGeneration) -> None:
        generation.transition(GenerationState.POPULATED)

    # ===== Aliases =====

    def get_alias_targets(self, alias: str) -> List[str]:
        """Index names the alias points to; empty if the alias does not exist."""
        try:
            return self.backend.get_alias(alias)
        except BackendError as exc:
            if exc.is_not_found:
                return []
            raise

    def aliases_exist(self) -> bool:
        return len(self.get_alias_targets(self.base_name)) > 0

    def update_alias(self, generation: IndexGeneration) -> List[str]:
        """
        Point the generation's alias at it, and only at it.

        Returns:
            Generations the alias was removed from
        """
        if generation.name == generation.alias or generation.name == self.base_name:
            raise ConfigurationError(
                f'Index name "{generation.name}" must differ from the alias name '
                f'"{generation.alias}". Set a postfix to build a new generation.'
            )

        previous = self.get_alias_targets(generation.alias)
        if not previous and self.backend.index_exists(generation.alias):
            # a plain index occupies the alias name
            logger.warning("index_named_like_alias_deleted", index=generation.alias)
            self.backend.delete_index(generation.alias)
            metrics.generations_deleted_total.labels(reason="alias_conflict").inc()

        actions: List[Dict[str, Dict[str, str]]] = [
            {"remove": {"index": name, "alias": generation.alias}}
            for name in previous
            if name != generation.name
        ]
        actions.append({"add": {"index": generation.name, "alias": generation.alias}})
        self.backend.update_aliases(actions)
        metrics.alias_updates_total.labels(scope="dimension").inc()

        # aliases set up before the first population leave the state alone
        if generation.state == GenerationState.POPULATED:
            generation.transition(GenerationState.ALIASED)
        logger.info(
            "alias_updated",
            alias=generation.alias,
            index=generation.name,
            previous=previous,
        )
        return [name for name in previous if name != generation.name]

    def update_main_alias(self, aliases: Iterable[str]) -> List[str]:
        """
        Point the top level alias at the current targets of ``aliases``.

        Returns:
            Index names the top level alias points to afterwards
        """
        targets: List[str] = []
        for alias in aliases:
            if alias == self.base_name:
                continue
            for name in self.get_alias_targets(alias):
                if name not in targets:
                    targets.append(name)

        if not targets:
            logger.info("main_alias_skipped", alias=self.base_name)
            return []

        current = self.get_alias_targets(self.base_name)
        actions: List[Dict[str, Dict[str, str]]] = [
            {"remove": {"index": name, "alias": self.base_name}}
            for name in current
            if name not in targets
        ]
        actions.extend({"add": {"index": name, "alias": self.base_name}} for name in targets)
        self.backend.update_aliases(actions)
        metrics.alias_updates_total.labels(scope="main").inc()
        logger.info("main_alias_updated", alias=self.base_name, indices=targets)
        return targets

    # ===== Cleanup =====

    def cleanup(self, alias: str) -> List[str]:
        """
        Delete every generation of ``alias`` the alias does not point to.

        Backend errors are logged and end the cleanup of this alias early;
        they are never raised.

        Returns:
            Names of the deleted generations
        """
        try:
            current = self.get_alias_targets(alias)
            candidates = self.backend.list_indices(f"{alias}-*")
        except BackendError as exc:
            logger.error("cleanup_failed", alias=alias, error=exc.describe())
            return []

        prefix = f"{alias}-"
        # '<alias>-<postfix>' only; other dimension aliases share the base prefix
        stale = [
            name
            for name in sorted(candidates)
            if name.startswith(prefix)
            and "-" not in name[len(prefix):]
            and name not in current
        ]

        deleted: List[str] = []
        for name in stale:
            try:
                self.backend.delete_index(name)
            except BackendError as exc:
                logger.error("generation_delete_failed", index=name, error=exc.describe())
                continue
            deleted.append(name)
            metrics.generations_deleted_total.labels(reason="stale").inc()
            logger.info("generation_removed", index=name, alias=alias)
        return deleted

    def cleanup_all(self, combinations: Iterable[DimensionSpacePoint]) -> Dict[str, List[str]]:
        """Run ``cleanup`` per combination; one failing combination never stops the others."""
        removed: Dict[str, List[str]] = {}
        for combination in combinations:
            alias = self.alias_name(combination)
            try:
                removed[alias] = self.cleanup(alias)
            except Exception as exc:
                logger.error("cleanup_combination_failed", alias=alias, error=str(exc))
                removed[alias] = []
        return removed
