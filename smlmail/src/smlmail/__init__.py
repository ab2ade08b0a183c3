"""smlmail: structured email (SML) for mail clients.

Interfaces:
  ``compose`` and ``MessageAssembler`` for outbound messages,
  ``extract_with_fallback`` for inbound markup, ``CardRenderer`` for cards.
  The action dispatcher lives in :mod:`smlmail.protocol.dispatcher`.
"""

from .compose import ComposedMessageBuilder, MessageAssembler, SmlVariant, compose
from .extract import extract, extract_with_fallback
from .render import CardRenderer

__version__ = "0.1.0"

__all__ = [
    "CardRenderer",
    "ComposedMessageBuilder",
    "MessageAssembler",
    "SmlVariant",
    "__version__",
    "compose",
    "extract",
    "extract_with_fallback",
]
