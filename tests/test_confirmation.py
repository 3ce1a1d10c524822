"""Tests for the confirmation gate and cancellation token."""

import asyncio

import pytest

from tickassist.models.llm import PendingConfirmation, ToolCall, ToolDefinition
from tickassist.services.confirmation import CancellationToken, ConfirmationGate

DELETE_TASK = ToolDefinition(
    name="delete_task",
    description="Delete a task",
    parameters={"type": "object", "properties": {}},
    requires_confirmation=True,
)


def pending(call_id: str = "toolu_1") -> PendingConfirmation:
    return PendingConfirmation(
        tool_call=ToolCall(id=call_id, name="delete_task", arguments={"taskId": "t1"}),
        tool_definition=DELETE_TASK,
    )


class TestConfirmationGate:
    """Tests for the one-shot confirmation channel."""

    @pytest.mark.asyncio
    async def test_resolve_returns_decision(self):
        """Test that the waiting caller gets the user's answer."""
        gate = ConfirmationGate()
        waiter = asyncio.create_task(gate.request_confirmation(pending()))
        await asyncio.sleep(0)

        assert gate.pending is not None
        assert gate.pending.tool_call.id == "toolu_1"

        gate.resolve("toolu_1", False)

        assert await waiter is False
        assert gate.pending is None

    @pytest.mark.asyncio
    async def test_on_pending_is_notified(self):
        """Test that the observer sees the pending call."""
        seen = []
        gate = ConfirmationGate(on_pending=seen.append)
        waiter = asyncio.create_task(gate.request_confirmation(pending()))
        await asyncio.sleep(0)

        gate.resolve("toolu_1", True)

        assert await waiter is True
        assert [p.tool_call.name for p in seen] == ["delete_task"]

    @pytest.mark.asyncio
    async def test_second_request_is_rejected(self):
        """Test that only one confirmation may be outstanding."""
        gate = ConfirmationGate()
        waiter = asyncio.create_task(gate.request_confirmation(pending()))
        await asyncio.sleep(0)

        with pytest.raises(RuntimeError):
            await gate.request_confirmation(pending("toolu_2"))

        gate.resolve("toolu_1", True)
        await waiter

    @pytest.mark.asyncio
    async def test_unknown_id_raises(self):
        """Test that answering the wrong call is an error."""
        gate = ConfirmationGate()
        waiter = asyncio.create_task(gate.request_confirmation(pending()))
        await asyncio.sleep(0)

        with pytest.raises(KeyError):
            gate.resolve("toolu_other", True)

        gate.resolve("toolu_1", True)
        await waiter

    def test_resolve_without_pending_raises(self):
        """Test that answering with nothing pending is an error."""
        with pytest.raises(KeyError):
            ConfirmationGate().resolve("toolu_1", True)

    @pytest.mark.asyncio
    async def test_cancelled_waiter_clears_pending(self):
        """Test that cancelling the waiter frees the gate."""
        gate = ConfirmationGate()
        waiter = asyncio.create_task(gate.request_confirmation(pending()))
        await asyncio.sleep(0)

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert gate.pending is None


class TestCancellationToken:
    """Tests for the stop signal."""

    @pytest.mark.asyncio
    async def test_cancel_wakes_waiters(self):
        """Test that waiting returns once the token fires."""
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)

        assert not token.cancelled
        token.cancel()
        await asyncio.wait_for(waiter, timeout=1)

        assert token.cancelled
