"""Per-operation submit state: Idle | Submitting | Succeeded | Failed(error).

Each form or modal owns one OperationState. The reducer is the only place
that moves it, and a Submitting state doubles as the busy gate that keeps a
control from firing twice.
"""
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, TypeVar

import structlog

from admin_console.errors import AdminConsoleError, user_message
from admin_console.models.enums import OperationEvent, OperationStatus

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class OperationState:
    status: OperationStatus = OperationStatus.IDLE
    error: str | None = None

    @property
    def busy(self) -> bool:
        return self.status == OperationStatus.SUBMITTING


_TRANSITIONS: dict[OperationStatus, dict[OperationEvent, OperationStatus]] = {
    OperationStatus.IDLE: {OperationEvent.SUBMIT: OperationStatus.SUBMITTING},
    OperationStatus.SUBMITTING: {
        OperationEvent.SUCCEED: OperationStatus.SUCCEEDED,
        OperationEvent.FAIL: OperationStatus.FAILED,
    },
    OperationStatus.SUCCEEDED: {OperationEvent.SUBMIT: OperationStatus.SUBMITTING},
    OperationStatus.FAILED: {OperationEvent.SUBMIT: OperationStatus.SUBMITTING},
}


def reduce_operation(
    state: OperationState,
    event: OperationEvent,
    error: str | None = None,
) -> OperationState:
    if event == OperationEvent.RESET:
        return OperationState()
    if event == OperationEvent.SUBMIT and state.busy:
        # Second click while in flight: nothing happens
        return state
    target = _TRANSITIONS[state.status].get(event)
    if target is None:
        raise ValueError(f"Cannot apply '{event.value}' to an operation that is '{state.status.value}'")
    if target == OperationStatus.FAILED:
        return OperationState(status=target, error=error or "Something went wrong")
    # Submitting and succeeding both clear the previous error
    return OperationState(status=target)


class HasOperation(Protocol):
    operation: OperationState


async def run_operation(
    holder: HasOperation,
    call: Callable[[], Awaitable[T]],
    fallback: str,
) -> T | None:
    """Run ``call`` under ``holder.operation``; failures land in the error slot.

    Returns None without calling anything while the holder is already busy, or
    when the call failed. Input fields on the holder are never touched.
    """
    if holder.operation.busy:
        logger.info("operation_already_in_flight", holder=type(holder).__name__)
        return None
    holder.operation = reduce_operation(holder.operation, OperationEvent.SUBMIT)
    try:
        result = await call()
    except AdminConsoleError as exc:
        message = user_message(exc, fallback)
        logger.warning("operation_failed", holder=type(holder).__name__, error=message)
        holder.operation = reduce_operation(holder.operation, OperationEvent.FAIL, error=message)
        return None
    except Exception:
        # Unexpected failures still release the busy gate before propagating
        holder.operation = reduce_operation(holder.operation, OperationEvent.FAIL, error=fallback)
        raise
    holder.operation = reduce_operation(holder.operation, OperationEvent.SUCCEED)
    return result
