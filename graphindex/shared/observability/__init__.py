# Observability package
from .logging import get_logger, get_run_id, set_run_id, setup_logging
from .metrics import export_metrics, get_metrics, setup_metrics

__all__ = [
    "get_logger",
    "setup_logging",
    "get_run_id",
    "set_run_id",
    "setup_metrics",
    "get_metrics",
    "export_metrics",
]
