"""Tests for the purchase executor state machine."""

import asyncio

import pytest

from sweepbuy.errors import ExecutionFailedError, SubmissionInProgressError
from sweepbuy.purchase.execution import ExecutionProcess
from sweepbuy.purchase.executor import ProgressChannel, PurchaseExecutor
from sweepbuy.purchase.request_builder import build_purchase_request
from sweepbuy.state.models import ExecutionStep, ProgressPhase, Signer, StepStatus
from tests.fakes import API_BASE, BUYER, CONTRACT, ScriptedExecutionProcess, complete, incomplete


@pytest.fixture
def request_():
    return build_purchase_request(BUYER, ["1", "3"], CONTRACT)


@pytest.fixture
def signer():
    return Signer(address=BUYER)


async def run(process, request, signer):
    executor = PurchaseExecutor(process=process, api_base=API_BASE)
    messages: list[str] = []
    state = await executor.submit(request, signer, observer=messages.append)
    return executor, state, messages


class TestProgressRelay:
    """Tests for step notifications reaching the observer."""

    @pytest.mark.asyncio
    async def test_steps_then_success(self, request_, signer):
        process = ScriptedExecutionProcess([
            ("steps", [incomplete("Approving")]),
            ("steps", [complete("Approving"), incomplete("Confirming")]),
            ("success",),
        ])

        executor, state, messages = await run(process, request_, signer)

        assert messages == ["InProgress: Approving", "InProgress: Confirming", "Success"]
        assert state.phase == ProgressPhase.SUCCEEDED
        assert executor.state == state

    @pytest.mark.asyncio
    async def test_process_receives_request_and_signer(self, request_, signer):
        process = ScriptedExecutionProcess()

        await run(process, request_, signer)

        assert process.calls == [{"request": request_, "signer": signer, "api_base": API_BASE}]

    @pytest.mark.asyncio
    async def test_first_incomplete_step_is_shown(self, request_, signer):
        process = ScriptedExecutionProcess([
            ("steps", [complete("Wrap"), incomplete("Approve"), incomplete("Buy")]),
            ("success",),
        ])

        _, _, messages = await run(process, request_, signer)

        assert messages == ["InProgress: Approve", "Success"]

    @pytest.mark.asyncio
    async def test_repeated_updates_are_all_relayed(self, request_, signer):
        process = ScriptedExecutionProcess([
            ("steps", [incomplete("Confirming")]),
            ("steps", [incomplete("Confirming")]),
            ("success",),
        ])

        _, _, messages = await run(process, request_, signer)

        assert messages == ["InProgress: Confirming", "InProgress: Confirming", "Success"]

    @pytest.mark.asyncio
    async def test_snapshots_without_incomplete_step_are_silent(self, request_, signer):
        process = ScriptedExecutionProcess([
            ("steps", []),
            ("steps", [complete("Approving")]),
            ("success",),
        ])

        _, _, messages = await run(process, request_, signer)

        assert messages == ["Success"]

    @pytest.mark.asyncio
    async def test_latest_message_is_kept_in_state(self, request_, signer):
        seen = []
        process = ScriptedExecutionProcess([
            ("steps", [incomplete("Approving")]),
            ("steps", [incomplete("Confirming")]),
            ("success",),
        ])
        executor = PurchaseExecutor(process=process, api_base=API_BASE)

        def observer(message):
            seen.append(executor.state)

        await executor.submit(request_, signer, observer=observer)

        assert seen[0].message == "Approving"
        assert seen[1].message == "Confirming"
        assert seen[1].phase == ProgressPhase.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_async_observer_is_awaited(self, request_, signer):
        messages = []

        async def observer(message):
            await asyncio.sleep(0)
            messages.append(message)

        executor = PurchaseExecutor(
            process=ScriptedExecutionProcess([("steps", [incomplete("Approving")]), ("success",)]),
            api_base=API_BASE,
        )
        await executor.submit(request_, signer, observer=observer)

        assert messages == ["InProgress: Approving", "Success"]

    @pytest.mark.asyncio
    async def test_failing_observer_does_not_break_submission(self, request_, signer):
        def observer(message):
            raise RuntimeError("sink down")

        executor = PurchaseExecutor(process=ScriptedExecutionProcess(), api_base=API_BASE)
        state = await executor.submit(request_, signer, observer=observer)

        assert state.phase == ProgressPhase.SUCCEEDED


class TestFailures:
    """Tests for failed submissions."""

    @pytest.mark.asyncio
    async def test_immediate_raise(self, request_, signer):
        """A process that rejects before any step emits one error message."""
        process = ScriptedExecutionProcess([("raise", RuntimeError("User denied transaction"))])
        executor = PurchaseExecutor(process=process, api_base=API_BASE)
        messages = []

        with pytest.raises(RuntimeError, match="User denied transaction"):
            await executor.submit(request_, signer, observer=messages.append)

        assert messages == ["Error: User denied transaction"]
        assert executor.state.phase == ProgressPhase.FAILED
        assert executor.state.reason == "User denied transaction"
        assert not executor.is_running

    @pytest.mark.asyncio
    async def test_error_callback(self, request_, signer):
        process = ScriptedExecutionProcess([
            ("steps", [incomplete("Approving")]),
            ("error", ExecutionFailedError("Price changed")),
        ])

        _, state, messages = await run(process, request_, signer)

        assert messages == ["InProgress: Approving", "Error: Price changed"]
        assert state.phase == ProgressPhase.FAILED
        assert state.reason == "Price changed"

    @pytest.mark.asyncio
    async def test_error_step_is_terminal(self, request_, signer):
        process = ScriptedExecutionProcess([
            ("steps", [ExecutionStep(status=StepStatus.ERROR, message="Order expired")]),
            ("success",),
        ])

        _, state, messages = await run(process, request_, signer)

        assert messages == ["Error: Order expired"]
        assert state.phase == ProgressPhase.FAILED

    @pytest.mark.asyncio
    async def test_error_callback_then_raise_has_one_terminal_message(self, request_, signer):
        process = ScriptedExecutionProcess([
            ("error", ExecutionFailedError("Insufficient funds")),
            ("raise", ExecutionFailedError("Insufficient funds")),
        ])
        executor = PurchaseExecutor(process=process, api_base=API_BASE)
        messages = []

        with pytest.raises(ExecutionFailedError):
            await executor.submit(request_, signer, observer=messages.append)

        assert messages == ["Error: Insufficient funds"]

    @pytest.mark.asyncio
    async def test_events_after_success_are_ignored(self, request_, signer):
        process = ScriptedExecutionProcess([
            ("success",),
            ("steps", [incomplete("Late")]),
            ("error", RuntimeError("late")),
        ])

        _, state, messages = await run(process, request_, signer)

        assert messages == ["Success"]
        assert state.phase == ProgressPhase.SUCCEEDED

    @pytest.mark.asyncio
    async def test_return_without_outcome_is_success(self, request_, signer):
        process = ScriptedExecutionProcess([("steps", [incomplete("Approving")])])

        _, state, messages = await run(process, request_, signer)

        assert messages == ["InProgress: Approving", "Success"]
        assert state.phase == ProgressPhase.SUCCEEDED


class BlockingProcess(ExecutionProcess):
    """Process that waits until released."""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def execute(self, request, signer, api_base, on_steps, on_success, on_error):
        on_steps([ExecutionStep(status=StepStatus.INCOMPLETE, message="Waiting")])
        self.started.set()
        await self.release.wait()
        on_success()


class TestSubmissionGuard:
    """Tests for one-submission-at-a-time."""

    @pytest.mark.asyncio
    async def test_concurrent_submit_rejected(self, request_, signer):
        process = BlockingProcess()
        executor = PurchaseExecutor(process=process, api_base=API_BASE)

        first = asyncio.create_task(executor.submit(request_, signer))
        await process.started.wait()

        assert executor.is_running
        with pytest.raises(SubmissionInProgressError):
            await executor.submit(request_, signer)

        process.release.set()
        state = await first

        assert state.phase == ProgressPhase.SUCCEEDED
        assert not executor.is_running

    @pytest.mark.asyncio
    async def test_new_submission_starts_fresh(self, request_, signer):
        process = ScriptedExecutionProcess([("error", RuntimeError("boom"))])
        executor = PurchaseExecutor(process=process, api_base=API_BASE)
        await executor.submit(request_, signer)
        assert executor.state.phase == ProgressPhase.FAILED

        process.script = [("success",)]
        messages = []
        state = await executor.submit(request_, signer, observer=messages.append)

        assert state.phase == ProgressPhase.SUCCEEDED
        assert messages == ["Success"]


class TestProgressChannel:
    """Tests for the ordered notification channel."""

    @pytest.mark.asyncio
    async def test_events_arrive_in_order(self):
        channel = ProgressChannel()
        channel.publish_steps([incomplete("a")])
        channel.publish_steps(None)
        channel.publish_error(ExecutionFailedError("nope"))
        channel.publish_success()
        channel.close()

        events = [event async for event in channel.events()]

        assert [kind for kind, _ in events] == ["steps", "error", "success"]
        assert events[1][1] == "nope"


class TestStateHistory:
    """Tests for the phases a submission passes through."""

    @pytest.mark.asyncio
    async def test_submission_starts_from_idle(self, request_, signer):
        process = ScriptedExecutionProcess([("steps", [incomplete("Approving")]), ("success",)])

        executor, _, _ = await run(process, request_, signer)

        assert executor.history == (
            ProgressPhase.IDLE,
            ProgressPhase.SUBMITTING,
            ProgressPhase.IN_PROGRESS,
            ProgressPhase.SUCCEEDED,
        )

    @pytest.mark.asyncio
    async def test_history_is_per_submission(self, request_, signer):
        process = ScriptedExecutionProcess([("error", RuntimeError("boom"))])
        executor = PurchaseExecutor(process=process, api_base=API_BASE)
        await executor.submit(request_, signer)

        process.script = [("success",)]
        await executor.submit(request_, signer)

        assert executor.history == (
            ProgressPhase.IDLE,
            ProgressPhase.SUBMITTING,
            ProgressPhase.SUCCEEDED,
        )
