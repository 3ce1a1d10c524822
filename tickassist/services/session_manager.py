"""Conversation storage for in-memory use."""

from datetime import UTC, datetime, timedelta

from cuid2 import cuid_wrapper

from tickassist.models.session import Conversation

cuid = cuid_wrapper()


class InMemoryConversationStore:
    """In-memory conversation store with idle expiry."""

    def __init__(self, conversation_timeout_minutes: int = 24 * 60):
        """Initialize conversation store.

        Args:
            conversation_timeout_minutes: Idle minutes before a conversation expires
        """
        self.conversations: dict[str, Conversation] = {}
        self.conversation_timeout = timedelta(minutes=conversation_timeout_minutes)

    def create_conversation(self) -> Conversation:
        """Create and store a new conversation with a fresh id."""
        self._cleanup_expired_conversations()

        conversation = Conversation(conversation_id=self._generate_conversation_id())
        self.conversations[conversation.conversation_id] = conversation
        return conversation

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Get existing conversation by ID.

        Args:
            conversation_id: Conversation identifier

        Returns:
            Conversation if found and not expired, None otherwise
        """
        self._cleanup_expired_conversations()

        conversation = self.conversations.get(conversation_id)
        if conversation:
            conversation.update_activity()
        return conversation

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation.

        Returns:
            True if the conversation was deleted, False if not found
        """
        if conversation_id in self.conversations:
            del self.conversations[conversation_id]
            return True
        return False

    def list_conversations(self) -> list[Conversation]:
        """Conversations ordered by most recent activity."""
        self._cleanup_expired_conversations()
        return sorted(self.conversations.values(), key=lambda c: c.last_activity, reverse=True)

    def _generate_conversation_id(self) -> str:
        """Generate a new CUID-based conversation ID."""
        return cuid()

    def _cleanup_expired_conversations(self) -> None:
        """Remove expired conversations from memory."""
        current_time = datetime.now(UTC)
        expired = [
            conversation_id
            for conversation_id, conversation in self.conversations.items()
            if current_time - conversation.last_activity > self.conversation_timeout
        ]
        for conversation_id in expired:
            del self.conversations[conversation_id]

    def get_conversation_count(self) -> int:
        """Get current number of stored conversations."""
        self._cleanup_expired_conversations()
        return len(self.conversations)
