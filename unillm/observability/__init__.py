"""
unillm - Observability Module

- Structured JSON logging with context injection
- Prometheus metrics for the streaming engine
"""

from .logging import (
    LogContext,
    StructuredLogger,
    TimedOperation,
    get_logger,
    setup_logging,
)
from .metrics import (
    StreamMetrics,
    get_metrics,
)

__all__ = [
    # Logging
    "LogContext",
    "StructuredLogger",
    "TimedOperation",
    "get_logger",
    "setup_logging",
    # Metrics
    "StreamMetrics",
    "get_metrics",
]
