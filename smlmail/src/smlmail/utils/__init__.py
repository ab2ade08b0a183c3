"""Expose the public utility surface for smlmail.

Interfaces:
  ``JsonLogger``, ``get_logger``, ``content_digest``,
  ``to_crlf``, ``parse_message``, ``part_text``.
"""

from .ids import content_digest
from .logging import JsonLogger, get_logger
from .mime import parse_message, part_text, to_crlf

__all__ = [
    "JsonLogger",
    "content_digest",
    "get_logger",
    "parse_message",
    "part_text",
    "to_crlf",
]
