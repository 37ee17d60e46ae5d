"""Custom exception hierarchy for queuepool."""

from typing import Any


class QueuePoolError(Exception):
    """Base exception for all queuepool errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ----- Configuration Errors -----


class InvalidConfigurationError(QueuePoolError):
    """Processor was constructed with invalid arguments."""

    pass


# ----- Lifecycle Errors -----


class ProcessorAlreadyRunningError(QueuePoolError):
    """run() was called while a previous run is still draining."""

    def __init__(self, processor_name: str) -> None:
        super().__init__(
            message=f"Processor '{processor_name}' is already running",
            details={"processor": processor_name},
        )


# ----- Processing Errors -----


class HandlerFailure(QueuePoolError):
    """The per-item handler raised.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self, item: Any, sequence_number: int, worker_id: int, error: BaseException) -> None:
        self.item = item
        self.sequence_number = sequence_number
        self.worker_id = worker_id
        self.error = error
        super().__init__(
            message=f"Handler failed for item #{sequence_number}: {error!r}",
            details={
                "sequence_number": sequence_number,
                "worker_id": worker_id,
                "error_type": type(error).__name__,
            },
        )


class ProcessingFailedError(QueuePoolError):
    """One or more worker loops ended with a handler failure."""

    def __init__(self, failures: list[HandlerFailure]) -> None:
        self.failures = failures
        super().__init__(
            message=f"{len(failures)} worker loop(s) failed",
            details={"sequence_numbers": [f.sequence_number for f in failures]},
        )
