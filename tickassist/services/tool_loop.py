"""Provider-agnostic tool loop: model request, tool execution, repeat."""

import asyncio
import json
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from tickassist.models.llm import (
    Credentials,
    FeatureLevel,
    LLMRequest,
    LoopState,
    PendingConfirmation,
    ToolCall,
    ToolDefinition,
    ToolLoopCallbacks,
    ToolLoopResult,
    TranscriptEntry,
)
from tickassist.providers.base import LLMProvider
from tickassist.services.confirmation import CancellationToken
from tickassist.tools.registry import ToolCatalog
from tickassist.utils.logging import get_logger, sanitize_arguments

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ITERATIONS = 10
REQUEST_STOPPED_TEXT = "Request stopped."
MAX_ITERATIONS_TEXT = "Reached maximum tool call iterations."
USER_CANCELLED_RESULT = json.dumps({"cancelled": True, "message": "User cancelled this action"})
STOPPED_BEFORE_RUN_RESULT = json.dumps({"cancelled": True, "message": "Request stopped before this action ran"})


class LLMTransport(Protocol):
    """Anything that can deliver a provider-built request and return its JSON."""

    async def send(self, request: LLMRequest) -> dict[str, Any]: ...


class OperationCancelled(Exception):
    """The cancellation token fired while an operation was in flight."""


async def run_cancellable(awaitable: Awaitable[T], cancellation: CancellationToken | None) -> T:
    """Await ``awaitable`` unless ``cancellation`` fires first.

    Raises:
        OperationCancelled: If the token fired before the operation finished
    """
    if cancellation is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancellation.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task.done():
        return task.result()
    task.cancel()
    # Let the operation unwind before the caller moves on
    await asyncio.wait({task})
    raise OperationCancelled()


@dataclass
class ConversationRunState:
    """Mutable state of one turn of the tool loop."""

    messages: list[TranscriptEntry]
    cancellation: CancellationToken | None = None
    iterations: int = 0
    state: LoopState = LoopState.BUILDING_REQUEST

    @property
    def cancelled(self) -> bool:
        return self.cancellation is not None and self.cancellation.cancelled

    def transition(self, state: LoopState) -> None:
        logger.debug(f"Tool loop state {self.state} -> {state}")
        self.state = state

    def finish(self, state: LoopState, text: str) -> ToolLoopResult:
        self.transition(state)
        return ToolLoopResult(text=text, messages=self.messages, state=state, iterations=self.iterations)


class ToolLoop:
    """Drives a conversation turn until the model stops calling tools."""

    def __init__(
        self,
        catalog: ToolCatalog,
        transport: LLMTransport,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        """Initialize the tool loop.

        Args:
            catalog: Tool catalog used to execute tool calls
            transport: Sends request descriptors to the model endpoint
            max_iterations: Default cap on model requests per turn
        """
        self.catalog = catalog
        self.transport = transport
        self.max_iterations = max_iterations

    async def run(
        self,
        provider: LLMProvider,
        messages: Sequence[TranscriptEntry],
        tools: list[ToolDefinition],
        model: str,
        api_key: str,
        credentials: Credentials,
        callbacks: ToolLoopCallbacks | None = None,
        cancellation: CancellationToken | None = None,
        feature_level: FeatureLevel = "v1",
        max_iterations: int | None = None,
    ) -> ToolLoopResult:
        """Run one assistant turn with tool calling.

        Args:
            provider: Adapter for the vendor wire format
            messages: Transcript so far; copied, never mutated
            tools: Tool definitions offered to the model
            model: Model identifier
            api_key: Vendor API key
            credentials: TickTick credentials for tool execution
            callbacks: Optional observers and confirmation hook
            cancellation: Optional stop signal
            feature_level: Tool catalog level used for execution
            max_iterations: Per-call override of the iteration cap

        Returns:
            Final text, the extended transcript and the terminal state

        Raises:
            LLMAPIError: If the model endpoint fails
            MalformedResponseError: If the model reply cannot be parsed
        """
        limit = self.max_iterations if max_iterations is None else max_iterations
        callbacks = callbacks or ToolLoopCallbacks()
        run = ConversationRunState(messages=list(messages), cancellation=cancellation)

        logger.info(
            f"Starting tool loop with {provider.name}/{model}, {len(run.messages)} messages, "
            f"{len(tools)} tools, max_iterations: {limit}"
        )

        try:
            while run.iterations < limit:
                if run.cancelled:
                    logger.warning("Tool loop stopped before model request")
                    return run.finish(LoopState.CANCELLED, REQUEST_STOPPED_TEXT)

                run.iterations += 1
                run.transition(LoopState.BUILDING_REQUEST)
                request = provider.build_request(run.messages, tools, model, api_key)

                run.transition(LoopState.AWAITING_RESPONSE)
                logger.debug(f"Tool loop iteration {run.iterations}/{limit}: {len(run.messages)} messages")
                try:
                    response = await run_cancellable(self.transport.send(request), cancellation)
                except OperationCancelled:
                    logger.warning("Tool loop stopped while waiting for the model")
                    return run.finish(LoopState.CANCELLED, REQUEST_STOPPED_TEXT)

                parsed = provider.parse_response(response)
                run.messages.append(parsed.raw_assistant_message)

                if not parsed.tool_calls:
                    text = parsed.text or ""
                    if callbacks.on_text:
                        callbacks.on_text(text)
                    logger.info(f"Tool loop completed in {run.iterations} iteration(s)")
                    return run.finish(LoopState.DONE, text)

                logger.info(f"Model requested {len(parsed.tool_calls)} tool call(s)")
                run.transition(LoopState.EXECUTING_TOOLS)
                stopped = await self._execute_tool_calls(
                    run, provider, parsed.tool_calls, tools, credentials, callbacks, feature_level
                )
                if stopped:
                    logger.warning("Tool loop stopped during tool execution")
                    return run.finish(LoopState.CANCELLED, REQUEST_STOPPED_TEXT)
        except Exception as e:
            logger.error(f"Tool loop failed at iteration {run.iterations}: {e}")
            run.transition(LoopState.ERROR)
            raise

        logger.warning(f"Tool loop reached max iterations ({limit})")
        return run.finish(LoopState.MAX_ITERATIONS_REACHED, MAX_ITERATIONS_TEXT)

    async def _execute_tool_calls(
        self,
        run: ConversationRunState,
        provider: LLMProvider,
        tool_calls: list[ToolCall],
        tools: list[ToolDefinition],
        credentials: Credentials,
        callbacks: ToolLoopCallbacks,
        feature_level: FeatureLevel,
    ) -> bool:
        """Execute tool calls in order. Returns True if the turn was stopped."""
        definitions = {tool.name: tool for tool in tools}

        for index, tool_call in enumerate(tool_calls):
            if run.cancelled:
                self._skip_remaining(run, provider, tool_calls[index:])
                return True

            if callbacks.on_tool_call:
                callbacks.on_tool_call(tool_call)

            definition = definitions.get(tool_call.name)
            if definition is not None and definition.requires_confirmation:
                try:
                    confirmed = await self._confirm(run, tool_call, definition, callbacks)
                except OperationCancelled:
                    self._skip_remaining(run, provider, tool_calls[index:])
                    return True

                if not confirmed:
                    logger.info(f"Tool {tool_call.name} was not confirmed")
                    self._append_result(run, provider, tool_call, USER_CANCELLED_RESULT, callbacks)
                    continue

            logger.debug(f"Executing tool: {tool_call.name} with input: {sanitize_arguments(tool_call.arguments)}")
            result = await self.catalog.execute(feature_level, tool_call.name, tool_call.arguments, credentials)
            logger.debug(f"Tool {tool_call.name} returned: {result[:100]}")
            self._append_result(run, provider, tool_call, result, callbacks)

        return False

    async def _confirm(
        self,
        run: ConversationRunState,
        tool_call: ToolCall,
        definition: ToolDefinition,
        callbacks: ToolLoopCallbacks,
    ) -> bool:
        if callbacks.on_confirmation_needed is None:
            logger.warning(f"No confirmation handler registered, denying {tool_call.name}")
            return False

        pending = PendingConfirmation(tool_call=tool_call, tool_definition=definition)
        return await run_cancellable(callbacks.on_confirmation_needed(pending), run.cancellation)

    def _append_result(
        self,
        run: ConversationRunState,
        provider: LLMProvider,
        tool_call: ToolCall,
        result: str,
        callbacks: ToolLoopCallbacks | None = None,
    ) -> None:
        correlation_id = tool_call.name if provider.correlate_results_by_name else tool_call.id
        run.messages.append(provider.format_tool_result(correlation_id, result))
        if callbacks and callbacks.on_tool_result:
            callbacks.on_tool_result(tool_call.id, tool_call.name, result)

    def _skip_remaining(self, run: ConversationRunState, provider: LLMProvider, tool_calls: list[ToolCall]) -> None:
        # Vendors expect one result per requested call
        for tool_call in tool_calls:
            self._append_result(run, provider, tool_call, STOPPED_BEFORE_RUN_RESULT)
