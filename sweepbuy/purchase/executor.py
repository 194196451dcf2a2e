"""Drives one purchase request through the execution process.

Callbacks from the execution process are published into a ``ProgressChannel``
(an ``asyncio.Queue``) and consumed in arrival order by a single task that
runs the submission state machine:

    idle -> submitting -> in_progress* -> succeeded | failed

The observer receives ``"InProgress: <message>"`` for every step update and
exactly one terminal message, ``"Success"`` or ``"Error: <reason>"``.
"""

import asyncio
from typing import Any, AsyncIterator, Callable, Optional

import structlog

from sweepbuy.errors import SubmissionInProgressError
from sweepbuy.logging import EventCategory, LogTimer, log_purchase_event
from sweepbuy.purchase.execution import ExecutionProcess
from sweepbuy.state.models import (
    ExecutionStep,
    ProgressPhase,
    ProgressState,
    PurchaseRequest,
    Signer,
    StepStatus,
)

logger = structlog.get_logger()

Observer = Callable[[str], Any]

SUCCESS_MESSAGE = "Success"

_CLOSED = object()


def error_reason(error: Any) -> str:
    """Text of an error reported by the execution process."""
    if isinstance(error, BaseException):
        return getattr(error, "message", None) or str(error) or type(error).__name__
    return str(error)


class ProgressChannel:
    """Ordered notification channel fed by execution process callbacks."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()

    def publish_steps(self, steps: Optional[list[ExecutionStep]]) -> None:
        if steps:
            self._queue.put_nowait(("steps", list(steps)))

    def publish_success(self) -> None:
        self._queue.put_nowait(("success", None))

    def publish_error(self, error: Any) -> None:
        self._queue.put_nowait(("error", error_reason(error)))

    def close(self) -> None:
        self._queue.put_nowait(_CLOSED)

    async def events(self) -> AsyncIterator[tuple[str, Any]]:
        while True:
            event = await self._queue.get()
            if event is _CLOSED:
                return
            yield event


class PurchaseExecutor:
    """Runs one submission at a time and relays its progress."""

    def __init__(self, process: ExecutionProcess, api_base: str):
        self.process = process
        self.api_base = api_base
        self._state = ProgressState.idle()
        self._history: list[ProgressPhase] = []
        self._running = False

    @property
    def state(self) -> ProgressState:
        return self._state

    @property
    def history(self) -> tuple[ProgressPhase, ...]:
        """Phases entered by the current or last submission, in order."""
        return tuple(self._history)

    @property
    def is_running(self) -> bool:
        return self._running

    def _set_state(self, state: ProgressState) -> None:
        self._state = state
        self._history.append(state.phase)

    async def submit(
        self,
        request: PurchaseRequest,
        signer: Signer,
        observer: Optional[Observer] = None,
    ) -> ProgressState:
        """Execute a request and return its terminal progress state.

        If the execution process itself raises, the submission is recorded as
        failed, the observer gets the error message and the original exception
        is re-raised.

        Raises:
            SubmissionInProgressError: Another submission is still running
        """
        if self._running:
            raise SubmissionInProgressError()

        self._running = True
        self._history = []
        self._set_state(ProgressState.idle())
        self._set_state(ProgressState(phase=ProgressPhase.SUBMITTING))

        channel = ProgressChannel()
        consumer = asyncio.create_task(self._consume(channel, observer))
        log_purchase_event("submitted", buyer=request.buyer, items=len(request.items))

        try:
            try:
                with LogTimer("purchase_execution", EventCategory.PURCHASE, items=len(request.items)):
                    await self.process.execute(
                        request,
                        signer,
                        self.api_base,
                        on_steps=channel.publish_steps,
                        on_success=channel.publish_success,
                        on_error=channel.publish_error,
                    )
            except Exception as e:
                logger.error(
                    "Execution process raised",
                    error=error_reason(e),
                    error_type=type(e).__name__,
                    buyer=request.buyer,
                )
                channel.publish_error(e)
                channel.close()
                await consumer
                raise

            channel.close()
            await consumer
        finally:
            if not consumer.done():
                consumer.cancel()
            self._running = False

        return self._state

    async def _consume(self, channel: ProgressChannel, observer: Optional[Observer]) -> None:
        """Apply channel events to the state machine, in order."""
        async for kind, payload in channel.events():
            if self._state.is_terminal:
                logger.debug("Ignoring event after terminal state", kind=kind)
                continue

            if kind == "steps":
                await self._on_steps(payload, observer)
            elif kind == "success":
                await self._finish(ProgressState(phase=ProgressPhase.SUCCEEDED), observer)
            elif kind == "error":
                await self._finish(ProgressState.failed(payload), observer)

        # The process returned without reporting an outcome
        if not self._state.is_terminal:
            await self._finish(ProgressState(phase=ProgressPhase.SUCCEEDED), observer)

    async def _on_steps(self, steps: list[ExecutionStep], observer: Optional[Observer]) -> None:
        failed = next((step for step in steps if step.status == StepStatus.ERROR), None)
        if failed is not None:
            await self._finish(ProgressState.failed(failed.message or "Step failed"), observer)
            return

        current = next((step for step in steps if step.status == StepStatus.INCOMPLETE), None)
        if current is None:
            return

        self._set_state(ProgressState.in_progress(current.message))
        await self._emit(observer, f"InProgress: {current.message}")

    async def _finish(self, state: ProgressState, observer: Optional[Observer]) -> None:
        self._set_state(state)
        if state.phase == ProgressPhase.SUCCEEDED:
            log_purchase_event("succeeded")
            await self._emit(observer, SUCCESS_MESSAGE)
        else:
            log_purchase_event("failed", reason=state.reason)
            await self._emit(observer, f"Error: {state.reason}")

    @staticmethod
    async def _emit(observer: Optional[Observer], message: str) -> None:
        if observer is None:
            return
        try:
            result = observer(message)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error("Progress observer error", error=str(e))
