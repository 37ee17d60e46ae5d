"""Per-task worker context for code running inside a handler."""

from contextvars import ContextVar, Token
from dataclasses import dataclass

import structlog


@dataclass(frozen=True)
class WorkerContext:
    """Identifies the worker loop and item currently being handled."""

    processor_name: str
    worker_id: int
    sequence_number: int


# Each worker loop is its own asyncio task, so each sees its own value
_worker_context: ContextVar[WorkerContext | None] = ContextVar("worker_context", default=None)


def set_worker_context(ctx: WorkerContext) -> Token[WorkerContext | None]:
    """Set the worker context and bind it into structlog contextvars."""
    structlog.contextvars.bind_contextvars(
        processor=ctx.processor_name,
        worker_id=ctx.worker_id,
        sequence_number=ctx.sequence_number,
    )
    return _worker_context.set(ctx)


def get_worker_context() -> WorkerContext:
    """Get the worker context of the running handler.

    Raises:
        RuntimeError: If called outside a handler invocation.
    """
    ctx = _worker_context.get()
    if ctx is None:
        raise RuntimeError("No worker context available outside a handler.")
    return ctx


def get_optional_worker_context() -> WorkerContext | None:
    """Get the worker context if available, None otherwise."""
    return _worker_context.get()


def clear_worker_context(token: Token[WorkerContext | None]) -> None:
    """Restore the previous worker context."""
    structlog.contextvars.unbind_contextvars("processor", "worker_id", "sequence_number")
    _worker_context.reset(token)
