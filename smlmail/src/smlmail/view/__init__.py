"""Inbound side: structured view of received messages."""

from .message_view import (
    MessageView,
    MessageViewResult,
    derive_verification_code,
    load_cards_link,
    whitelisted_urls,
)

__all__ = [
    "MessageView",
    "MessageViewResult",
    "derive_verification_code",
    "load_cards_link",
    "whitelisted_urls",
]
