"""Domain datatypes for the provider gateway."""

from .datatypes import (
    ClassifiedError,
    Conversation,
    ErrorKind,
    GatewayResult,
    Message,
    ProviderKind,
    PurposeType,
    UserPreferences,
    conversation_storage_key,
)

__all__ = [
    "ClassifiedError",
    "Conversation",
    "ErrorKind",
    "GatewayResult",
    "Message",
    "ProviderKind",
    "PurposeType",
    "UserPreferences",
    "conversation_storage_key",
]
