"""Exception types shared across the assistant."""


class TickAssistError(Exception):
    """Base class for all assistant errors."""


class LLMAPIError(TickAssistError):
    """The model endpoint was unreachable or returned a non-2xx status."""

    def __init__(self, status_code: int | None, body: str):
        self.status_code = status_code
        self.body = body
        if status_code is None:
            super().__init__(f"LLM API request failed: {body}")
        else:
            super().__init__(f"LLM API error ({status_code}): {body}")


class MalformedResponseError(TickAssistError):
    """A vendor response did not have the shape its adapter expects."""


class TickTickAPIError(TickAssistError):
    """The TickTick API returned a non-success status or an unreadable body."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ConversationNotFoundError(TickAssistError):
    """No conversation exists for the given id."""


class ConversationBusyError(TickAssistError):
    """A turn is already running for the conversation."""


class ProviderNotConfiguredError(TickAssistError):
    """The requested provider is unknown or has no API key."""


class CredentialsNotConfiguredError(TickAssistError):
    """No TickTick access token is available for tool execution."""
