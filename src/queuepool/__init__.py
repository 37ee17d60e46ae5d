"""queuepool - bounded-concurrency work processor."""

from queuepool.processor import BoundedWorkProcessor, ProgressSnapshot
from queuepool.shared.context import WorkerContext, get_optional_worker_context, get_worker_context
from queuepool.shared.exceptions import (
    HandlerFailure,
    InvalidConfigurationError,
    ProcessingFailedError,
    ProcessorAlreadyRunningError,
    QueuePoolError,
)

__version__ = "0.1.0"

__all__ = [
    "BoundedWorkProcessor",
    "HandlerFailure",
    "InvalidConfigurationError",
    "ProcessingFailedError",
    "ProcessorAlreadyRunningError",
    "ProgressSnapshot",
    "QueuePoolError",
    "WorkerContext",
    "get_optional_worker_context",
    "get_worker_context",
]
