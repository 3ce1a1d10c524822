"""Conversation service: one assistant turn per user message."""

import asyncio
from dataclasses import dataclass
from typing import Protocol

import tiktoken
from cuid2 import cuid_wrapper

from tickassist.clients.llm import LLMClientConfig, LLMHttpClient
from tickassist.clients.ticktick import TickTickClient
from tickassist.clients.ticktick_v2 import TickTickV2Client
from tickassist.config import Settings, get_settings
from tickassist.errors import (
    ConversationBusyError,
    ConversationNotFoundError,
    CredentialsNotConfiguredError,
    ProviderNotConfiguredError,
)
from tickassist.models.llm import (
    Credentials,
    Message,
    PendingConfirmation,
    ToolCall,
    ToolLoopCallbacks,
    ToolLoopResult,
    TranscriptEntry,
)
from tickassist.models.session import ConfirmationRecord, Conversation, StoredMessage, ToolCallRecord
from tickassist.providers import get_provider
from tickassist.services.confirmation import CancellationToken, ConfirmationGate
from tickassist.services.prompts import build_system_prompt
from tickassist.services.session_manager import InMemoryConversationStore
from tickassist.services.tool_loop import ToolLoop
from tickassist.tools.cache import TTLCache
from tickassist.tools.registry import ToolCatalog
from tickassist.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


class Closeable(Protocol):
    async def aclose(self) -> None: ...


class SessionSignIn(Protocol):
    async def sign_in(self, username: str, password: str) -> str: ...


@dataclass
class ActiveTurn:
    """Control channels of a turn that is currently running."""

    gate: ConfirmationGate
    cancellation: CancellationToken


class ConversationService:
    """Runs assistant turns and keeps the conversation history.

    At most one turn runs per conversation. While it runs, its pending
    confirmation can be answered and the turn can be stopped.
    """

    def __init__(
        self,
        settings: Settings,
        tool_loop: ToolLoop,
        store: InMemoryConversationStore | None = None,
        session_sign_in: SessionSignIn | None = None,
        resources: list[Closeable] | None = None,
    ):
        """Initialize conversation service.

        Args:
            settings: Runtime configuration
            tool_loop: Tool loop used to run turns
            store: Conversation store (defaults to a fresh in-memory store)
            session_sign_in: Client used to obtain a v2 session token from account credentials
            resources: Clients to close on shutdown
        """
        self.settings = settings
        self.tool_loop = tool_loop
        self.catalog = tool_loop.catalog
        self.store = store or InMemoryConversationStore()
        self.session_sign_in = session_sign_in
        self._resources = resources or []
        self._active: dict[str, ActiveTurn] = {}
        self._session_token: str | None = settings.ticktick_session_token

        self.tokenizer: tiktoken.Encoding | None
        try:
            # Close approximation for every supported vendor
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception as e:
            logger.warning(f"Tokenizer unavailable, estimating tokens from length: {e}")
            self.tokenizer = None

    async def send(
        self,
        message: str,
        conversation_id: str | None = None,
        provider_name: str | None = None,
        model: str | None = None,
    ) -> tuple[Conversation, ToolLoopResult]:
        """Process a user message and run one assistant turn.

        Args:
            message: User's message
            conversation_id: Existing conversation, or None to start one
            provider_name: Provider override for this turn
            model: Model override for this turn

        Returns:
            The conversation and the tool loop result

        Raises:
            ValueError: If the message exceeds the token limit
            ConversationNotFoundError: If conversation_id is unknown
            ConversationBusyError: If a turn is already running
            ProviderNotConfiguredError: If the provider is unknown or has no API key
            CredentialsNotConfiguredError: If no TickTick token is configured
            LLMAPIError: If the model endpoint fails
            MalformedResponseError: If a model reply cannot be parsed
            TickTickAPIError: If signing in for a session token fails
        """
        self.validate_message_tokens(message)
        provider_name = provider_name or self.settings.provider
        provider = get_provider(provider_name, self.settings.proxy_url)
        api_key = self.settings.api_keys.get(provider_name)
        if not api_key:
            raise ProviderNotConfiguredError(f"No API key configured for provider {provider_name}")
        if model is None:
            model = self.settings.model if provider_name == self.settings.provider else None
        model = model or provider.models.default

        feature_level = self.settings.feature_level
        if not self.settings.ticktick_access_token:
            raise CredentialsNotConfiguredError("TickTick access token is not configured")

        # No await between the busy check and registering the turn
        conversation = self._get_or_create(conversation_id)
        if conversation.conversation_id in self._active:
            raise ConversationBusyError(f"A turn is already running for conversation {conversation.conversation_id}")

        if not conversation.transcript or conversation.transcript_vendor != provider.family:
            conversation.transcript = self._rebuild_transcript(conversation)
            conversation.transcript_vendor = provider.family

        conversation.add_message(StoredMessage(id=cuid(), role="user", content=message))
        reply = StoredMessage(id=cuid(), role="assistant", content="", provider=provider.name, model=model)
        conversation.add_message(reply)

        turn = ActiveTurn(gate=ConfirmationGate(), cancellation=CancellationToken())
        self._active[conversation.conversation_id] = turn

        logger.info(
            f"Processing message for conversation {conversation.conversation_id} with {provider.name}/{model}"
        )
        transcript: list[TranscriptEntry] = [*conversation.transcript, Message(role="user", content=message)]
        try:
            credentials = await self._credentials()
            result = await self.tool_loop.run(
                provider,
                transcript,
                self.catalog.list_tools(feature_level),
                model,
                api_key,
                credentials,
                callbacks=self._callbacks(reply, turn),
                cancellation=turn.cancellation,
                feature_level=feature_level,
                max_iterations=self.settings.max_iterations,
            )
        except Exception as e:
            logger.error(f"Turn failed for conversation {conversation.conversation_id}: {e}")
            reply.content = f"Error: {e}"
            reply.error = True
            conversation.reset_transcript()
            raise
        finally:
            del self._active[conversation.conversation_id]

        conversation.transcript = result.messages
        reply.content = result.text
        conversation.update_activity()
        logger.info(
            f"Turn finished for conversation {conversation.conversation_id}: "
            f"{result.state} after {result.iterations} iteration(s)"
        )
        return conversation, result

    def _callbacks(self, reply: StoredMessage, turn: ActiveTurn) -> ToolLoopCallbacks:
        def on_tool_call(tool_call: ToolCall) -> None:
            reply.tool_calls.append(ToolCallRecord(id=tool_call.id, name=tool_call.name, args=tool_call.arguments))

        def on_tool_result(tool_call_id: str, name: str, result: str) -> None:
            reply.record_tool_result(tool_call_id, result)

        async def on_confirmation_needed(pending: PendingConfirmation) -> bool:
            tool_call = pending.tool_call
            reply.confirmations.append(
                ConfirmationRecord(id=tool_call.id, tool_name=tool_call.name, args=tool_call.arguments)
            )
            try:
                confirmed = await turn.gate.request_confirmation(pending)
            except asyncio.CancelledError:
                reply.resolve_confirmation(tool_call.id, "cancelled")
                raise
            reply.resolve_confirmation(tool_call.id, "confirmed" if confirmed else "cancelled")
            return confirmed

        return ToolLoopCallbacks(
            on_tool_call=on_tool_call,
            on_tool_result=on_tool_result,
            on_confirmation_needed=on_confirmation_needed,
        )

    def _rebuild_transcript(self, conversation: Conversation) -> list[TranscriptEntry]:
        """Plain-text transcript from the stored history with a fresh system prompt."""
        logger.debug(f"Rebuilding transcript for conversation {conversation.conversation_id}")
        system_prompt = build_system_prompt(self.settings.feature_level, timezone=self.settings.timezone)
        transcript: list[TranscriptEntry] = [Message(role="system", content=system_prompt)]
        transcript += [
            Message(role=stored.role, content=stored.content)
            for stored in conversation.messages
            if stored.content and not stored.error
        ]
        return transcript

    async def _credentials(self) -> Credentials:
        """TickTick credentials for tool execution, signing in for a session token on first use.

        Raises:
            TickTickAPIError: If the sign-in is rejected
        """
        if (
            self.settings.feature_level == "v2"
            and self._session_token is None
            and self.session_sign_in is not None
            and self.settings.ticktick_username
            and self.settings.ticktick_password
        ):
            logger.info("Signing in to TickTick for a session token")
            self._session_token = await self.session_sign_in.sign_in(
                self.settings.ticktick_username, self.settings.ticktick_password
            )

        return Credentials(access_token=self.settings.ticktick_access_token, session_token=self._session_token)

    def create_conversation(self) -> Conversation:
        """Start an empty conversation."""
        conversation = self.store.create_conversation()
        logger.info(f"Created conversation {conversation.conversation_id}")
        return conversation

    def list_conversations(self) -> list[Conversation]:
        return self.store.list_conversations()

    def _get_or_create(self, conversation_id: str | None) -> Conversation:
        if conversation_id is None:
            return self.create_conversation()
        return self.get_conversation(conversation_id)

    def get_conversation(self, conversation_id: str) -> Conversation:
        """Get a stored conversation.

        Raises:
            ConversationNotFoundError: If the id is unknown
        """
        conversation = self.store.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return conversation

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation, stopping its running turn first."""
        self.cancel(conversation_id)
        return self.store.delete_conversation(conversation_id)

    def is_busy(self, conversation_id: str) -> bool:
        return conversation_id in self._active

    def cancel(self, conversation_id: str) -> bool:
        """Ask the running turn of a conversation to stop.

        Returns:
            True if a turn was running, False otherwise
        """
        turn = self._active.get(conversation_id)
        if turn is None:
            return False
        logger.info(f"Stopping turn for conversation {conversation_id}")
        turn.cancellation.cancel()
        return True

    def pending_confirmation(self, conversation_id: str) -> PendingConfirmation | None:
        """The confirmation the running turn is waiting for, if any."""
        turn = self._active.get(conversation_id)
        return turn.gate.pending if turn else None

    def resolve_confirmation(self, conversation_id: str, tool_call_id: str, confirmed: bool) -> None:
        """Answer the pending confirmation of a conversation.

        Raises:
            KeyError: If nothing is pending for ``tool_call_id``
        """
        turn = self._active.get(conversation_id)
        if turn is None:
            raise KeyError(tool_call_id)
        turn.gate.resolve(tool_call_id, confirmed)

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message."""
        if self.tokenizer is None:
            # Roughly 4 characters per token
            return len(message) // 4
        return len(self.tokenizer.encode(message))

    def validate_message_tokens(self, message: str) -> None:
        """Validate that a message doesn't exceed the token limit.

        Raises:
            ValueError: If message exceeds token limit
        """
        limit = self.settings.max_message_tokens
        tokens = self.estimate_message_tokens(message)
        if tokens > limit:
            raise ValueError(f"Message exceeds token limit ({tokens} > {limit} tokens)")

    async def aclose(self) -> None:
        """Close the HTTP clients owned by the service."""
        for resource in self._resources:
            await resource.aclose()


def create_conversation_service(settings: Settings | None = None) -> ConversationService:
    """Wire the service with HTTP clients built from settings."""
    settings = settings or get_settings()

    ticktick = TickTickClient.for_proxy(settings.proxy_url)
    ticktick_v2 = TickTickV2Client.for_proxy(settings.proxy_url)
    transport = LLMHttpClient(LLMClientConfig(requests_per_minute=settings.requests_per_minute))

    catalog = ToolCatalog(ticktick, ticktick_v2, cache=TTLCache(ttl=settings.cache_ttl))
    tool_loop = ToolLoop(catalog, transport, max_iterations=settings.max_iterations)
    return ConversationService(
        settings,
        tool_loop,
        session_sign_in=ticktick_v2,
        resources=[transport, ticktick, ticktick_v2],
    )


_conversation_service: ConversationService | None = None


def get_conversation_service() -> ConversationService:
    """Get or create conversation service instance."""
    global _conversation_service
    if _conversation_service is None:
        _conversation_service = create_conversation_service()
    return _conversation_service


async def close_conversation_service() -> None:
    """Close and forget the shared service instance, if one was created."""
    global _conversation_service
    if _conversation_service is not None:
        await _conversation_service.aclose()
        _conversation_service = None
