"""Bounded per-user conversation state.

Responsibilities:
- Fetch or create the conversation for a (user, purpose) pair.
- Keep the system instruction at index 0 in sync with the latest learning goal.
- Trim history to [system, last user, last assistant] after every exchange.
- Serialize read-modify-write cycles per key with a lock.
"""

from __future__ import annotations

import threading
import weakref

from ..io.storage import KeyValueStore
from ..models.datatypes import Conversation, Message, PurposeType, conversation_storage_key
from .prompts import PromptLibrary


WINDOW_SIZE = 3


class ConversationStore:
    """Key-value-backed store for sliding-window conversations."""

    def __init__(self, storage: KeyValueStore, prompts: PromptLibrary | None = None) -> None:
        """Initialize the store with its storage collaborator and prompt library."""

        self.storage = storage
        self.prompts = prompts if prompts is not None else PromptLibrary()
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    def lock_for(self, user_id: str, purpose: PurposeType) -> threading.Lock:
        """Return the lock guarding the conversation for (user, purpose).

        Locks are held weakly, so a key no caller is using drops out of the
        registry instead of accumulating for the life of the process.
        """

        key = conversation_storage_key(user_id, purpose)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def get_or_create(
        self,
        user_id: str,
        purpose: PurposeType,
        learning_goal: str,
    ) -> Conversation:
        """Return the stored conversation with a refreshed system message.

        A missing conversation is created holding only the system message and
        persisted immediately. An existing one keeps its last exchange.
        """

        key = conversation_storage_key(user_id, purpose)
        system_message = Message("system", self.prompts.system_prompt(purpose, learning_goal))
        record = self.storage.get([key]).get(key)

        if isinstance(record, dict):
            stored = Conversation.from_record(user_id, purpose, record)
            history = stored.messages
            if history and history[0].role == "system":
                history = history[1:]
            return stored.with_messages((system_message, *history))

        conversation = Conversation(user_id=user_id, purpose=purpose, messages=(system_message,))
        self.save(conversation)
        return conversation

    def append_exchange(
        self,
        conversation: Conversation,
        user_message: str,
        assistant_message: str,
    ) -> Conversation:
        """Append one user/assistant pair and trim to the sliding window."""

        messages = (
            *conversation.messages,
            Message("user", user_message),
            Message("assistant", assistant_message),
        )
        return conversation.with_messages(self._trim(messages))

    def save(self, conversation: Conversation) -> None:
        """Persist `conversation` under its storage key."""

        self.storage.set({conversation.storage_key: conversation.to_record()})

    @staticmethod
    def _trim(messages: tuple[Message, ...]) -> tuple[Message, ...]:
        if messages and messages[0].role == "system":
            return (messages[0], *messages[1:][-(WINDOW_SIZE - 1):])
        return messages[-(WINDOW_SIZE - 1):]
