"""User-facing control channels for a running turn: confirmation and stop."""

import asyncio
from collections.abc import Callable

from tickassist.models.llm import PendingConfirmation
from tickassist.utils.logging import get_logger

logger = get_logger(__name__)


class CancellationToken:
    """Signals that the user asked to stop the current turn."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class ConfirmationGate:
    """One-shot request/response channel between the tool loop and the user.

    ``request_confirmation`` is meant to be used as the loop's
    ``on_confirmation_needed`` callback: it publishes the pending call,
    notifies ``on_pending`` and suspends until ``resolve`` is called with the
    same tool call id. Only one confirmation can be outstanding at a time and
    there is no timeout.
    """

    def __init__(self, on_pending: Callable[[PendingConfirmation], None] | None = None):
        self.on_pending = on_pending
        self._pending: PendingConfirmation | None = None
        self._future: asyncio.Future[bool] | None = None

    @property
    def pending(self) -> PendingConfirmation | None:
        """The confirmation currently waiting for an answer, if any."""
        return self._pending

    async def request_confirmation(self, pending: PendingConfirmation) -> bool:
        """Wait for the user to approve or reject ``pending``.

        Raises:
            RuntimeError: If another confirmation is already outstanding
        """
        if self._future is not None:
            raise RuntimeError("A confirmation is already pending")

        self._future = asyncio.get_running_loop().create_future()
        self._pending = pending
        logger.info(f"Awaiting confirmation for {pending.tool_call.name} ({pending.tool_call.id})")
        if self.on_pending:
            self.on_pending(pending)

        try:
            return await self._future
        finally:
            self._future = None
            self._pending = None

    def resolve(self, tool_call_id: str, confirmed: bool) -> None:
        """Answer the outstanding confirmation.

        Raises:
            KeyError: If no confirmation is pending for ``tool_call_id``
        """
        if self._pending is None or self._future is None or self._pending.tool_call.id != tool_call_id:
            raise KeyError(tool_call_id)

        logger.info(f"Confirmation for {tool_call_id}: {'confirmed' if confirmed else 'cancelled'}")
        if not self._future.done():
            self._future.set_result(confirmed)
