"""API endpoints for the task assistant service."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException

from tickassist import __version__
from tickassist.errors import (
    ConversationBusyError,
    ConversationNotFoundError,
    CredentialsNotConfiguredError,
    LLMAPIError,
    MalformedResponseError,
    ProviderNotConfiguredError,
    TickTickAPIError,
)
from tickassist.models.conversation import (
    ConfirmationDecision,
    ConversationCreatedResponse,
    ConversationHistoryResponse,
    ConversationRequest,
    ConversationResponse,
    ConversationSummary,
    HealthResponse,
    PendingConfirmationResponse,
    ProviderInfo,
    ToolListResponse,
)
from tickassist.models.llm import FeatureLevel
from tickassist.providers import PROVIDER_CLASSES
from tickassist.services.conversation import ConversationService, get_conversation_service
from tickassist.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _get_conversation_or_404(service: ConversationService, conversation_id: str):
    try:
        return service.get_conversation(conversation_id)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/conversation", response_model=ConversationResponse, tags=["Conversation"])
async def handle_conversation(
    request: ConversationRequest,
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationResponse:
    """Handle a conversation message and return the assistant's reply.

    Tools that need approval suspend the turn until the confirmation
    endpoint is answered, so this request stays open meanwhile.
    """
    logger.info(f"Processing message for conversation {request.conversation_id or '<new>'}: {request.message[:50]}...")
    try:
        conversation, result = await service.send(
            request.message,
            conversation_id=request.conversation_id,
            provider_name=request.provider,
            model=request.model,
        )
    except ValueError as e:
        # Handle token validation errors with specific HTTP status
        logger.warning(f"Message validation error: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e
    except (ConversationNotFoundError, ProviderNotConfiguredError, CredentialsNotConfiguredError) as e:
        logger.warning(f"Rejected conversation request: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ConversationBusyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except (LLMAPIError, MalformedResponseError, TickTickAPIError) as e:
        logger.error(f"Upstream request failed: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e

    logger.info(f"Generated response for conversation {conversation.conversation_id}: {result.text[:50]}...")
    return ConversationResponse(
        response=result.text,
        conversation_id=conversation.conversation_id,
        state=result.state,
    )


@router.post("/conversations", response_model=ConversationCreatedResponse, tags=["Conversation"])
async def create_conversation(
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationCreatedResponse:
    """Start an empty conversation so its id is known before the first message."""
    conversation = service.create_conversation()
    return ConversationCreatedResponse(conversation_id=conversation.conversation_id)


@router.get("/conversations", response_model=list[ConversationSummary], tags=["Conversation"])
async def list_conversations(
    service: ConversationService = Depends(get_conversation_service),
) -> list[ConversationSummary]:
    """List stored conversations, most recently active first."""
    return [ConversationSummary.model_validate(c.as_dict()) for c in service.list_conversations()]


@router.get("/conversation/{conversation_id}", response_model=ConversationHistoryResponse, tags=["Conversation"])
async def get_conversation(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationHistoryResponse:
    """Return the stored messages of a conversation."""
    conversation = _get_conversation_or_404(service, conversation_id)
    return ConversationHistoryResponse(
        conversation_id=conversation.conversation_id,
        title=conversation.title,
        messages=conversation.messages,
    )


@router.delete("/conversation/{conversation_id}", tags=["Conversation"])
async def delete_conversation(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service),
) -> dict[str, bool]:
    """Delete a conversation, stopping its running turn."""
    if not service.delete_conversation(conversation_id):
        raise HTTPException(status_code=404, detail=f"Conversation {conversation_id} not found")
    return {"deleted": True}


@router.get(
    "/conversation/{conversation_id}/confirmation",
    response_model=PendingConfirmationResponse,
    tags=["Confirmation"],
)
async def get_pending_confirmation(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service),
) -> PendingConfirmationResponse:
    """Return the tool call waiting for the user's approval."""
    _get_conversation_or_404(service, conversation_id)
    pending = service.pending_confirmation(conversation_id)
    if pending is None:
        raise HTTPException(status_code=404, detail="No confirmation pending")

    return PendingConfirmationResponse(
        conversation_id=conversation_id,
        tool_call_id=pending.tool_call.id,
        tool_name=pending.tool_call.name,
        arguments=pending.tool_call.arguments,
        description=pending.tool_definition.description,
    )


@router.post("/conversation/{conversation_id}/confirmation", tags=["Confirmation"])
async def resolve_confirmation(
    conversation_id: str,
    decision: ConfirmationDecision,
    service: ConversationService = Depends(get_conversation_service),
) -> dict[str, str]:
    """Approve or reject the pending tool call."""
    _get_conversation_or_404(service, conversation_id)
    try:
        service.resolve_confirmation(conversation_id, decision.tool_call_id, decision.confirmed)
    except KeyError as e:
        raise HTTPException(
            status_code=404, detail=f"No confirmation pending for tool call {decision.tool_call_id}"
        ) from e
    return {"status": "confirmed" if decision.confirmed else "cancelled"}


@router.post("/conversation/{conversation_id}/cancel", tags=["Conversation"])
async def cancel_turn(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service),
) -> dict[str, bool]:
    """Stop the running turn of a conversation."""
    _get_conversation_or_404(service, conversation_id)
    return {"cancelled": service.cancel(conversation_id)}


@router.get("/tools", response_model=ToolListResponse, tags=["Tools"])
async def list_tools(
    feature_level: FeatureLevel = "v1",
    service: ConversationService = Depends(get_conversation_service),
) -> ToolListResponse:
    """List the tools offered to the model."""
    return ToolListResponse(feature_level=feature_level, tools=service.catalog.list_tools(feature_level))


@router.get("/providers", response_model=list[ProviderInfo], tags=["Providers"])
async def list_providers(
    service: ConversationService = Depends(get_conversation_service),
) -> list[ProviderInfo]:
    """List the model providers, their models and whether an API key is configured."""
    settings = service.settings
    return [
        ProviderInfo(
            name=name,
            default_model=provider_class.models.default,
            models=list(provider_class.models.options),
            configured=bool(settings.api_keys.get(name)),
            active=name == settings.provider,
        )
        for name, provider_class in PROVIDER_CLASSES.items()
    ]


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
