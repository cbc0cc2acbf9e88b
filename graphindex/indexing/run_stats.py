"""
Rebuild run statistics.

Accumulates per-combination counts while a rebuild runs and emits one
consolidated summary log line when it completes:

    report = RebuildReport.start_new(postfix="1700000000", update=False)
    report.record_combination(combination, walk_result, index_name)
    report.emit_summary()
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from graphindex.dimensions import DimensionSpacePoint
from graphindex.shared.observability import get_run_id

logger = structlog.get_logger(__name__)


@dataclass
class CombinationStats:
    """Counts for one dimension combination."""

    dimension_hash: str
    coordinates: Dict[str, str]
    index_name: str
    nodes_indexed: int = 0
    documents: int = 0


@dataclass
class RebuildReport:
    run_id: str
    postfix: str
    update: bool
    start_time: float
    end_time: Optional[float] = None

    nodes_indexed: int = 0
    documents: int = 0
    error_count: int = 0
    error_messages: List[str] = field(default_factory=list)
    combinations: Dict[str, CombinationStats] = field(default_factory=dict)
    aliases_updated: List[str] = field(default_factory=list)

    @classmethod
    def start_new(cls, postfix: str, update: bool = False) -> "RebuildReport":
        return cls(
            run_id=get_run_id(),
            postfix=postfix,
            update=update,
            start_time=time.monotonic(),
        )

    def record_combination(
        self,
        combination: DimensionSpacePoint,
        index_name: str,
        nodes_indexed: int = 0,
        documents: int = 0,
    ) -> CombinationStats:
        """
        Add counts for one dimension combination.

        Calling it again for the same combination accumulates.
        """
        stats = self.combinations.get(combination.hash)
        if stats is None:
            stats = CombinationStats(
                dimension_hash=combination.hash,
                coordinates=combination.coordinates,
                index_name=index_name,
            )
            self.combinations[combination.hash] = stats
        stats.nodes_indexed += nodes_indexed
        stats.documents += documents
        self.nodes_indexed += nodes_indexed
        self.documents += documents
        return stats

    def record_errors(self, count: int, messages: List[str]) -> None:
        self.error_count += count
        self.error_messages.extend(messages)

    @property
    def duration_seconds(self) -> float:
        end = self.end_time if self.end_time is not None else time.monotonic()
        return round(end - self.start_time, 2)

    def finalize(self) -> Dict[str, Any]:
        self.end_time = time.monotonic()
        return {
            "run_id": self.run_id,
            "postfix": self.postfix,
            "update": self.update,
            "duration_seconds": self.duration_seconds,
            "nodes_indexed": self.nodes_indexed,
            "documents": self.documents,
            "errors": self.error_count,
            "combinations": [
                {
                    "dimension_hash": stats.dimension_hash,
                    "dimensions": stats.coordinates,
                    "index": stats.index_name,
                    "nodes_indexed": stats.nodes_indexed,
                    "documents": stats.documents,
                }
                for stats in self.combinations.values()
            ],
            "aliases_updated": list(self.aliases_updated),
        }

    def emit_summary(self) -> Dict[str, Any]:
        """
        Emit the run summary as a structured log event.

        Returns:
            The summary dict that was logged
        """
        summary = self.finalize()

        logger.info(
            "rebuild_run_summary",
            run_id=summary["run_id"],
            postfix=summary["postfix"],
            update=summary["update"],
            duration_seconds=summary["duration_seconds"],
            nodes_indexed=summary["nodes_indexed"],
            documents=summary["documents"],
            combinations=summary["combinations"],
        )

        if self.error_count > 0:
            logger.warning(
                "rebuild_run_had_errors",
                run_id=self.run_id,
                error_count=self.error_count,
                last_errors=self.error_messages[-10:],
            )

        return summary
