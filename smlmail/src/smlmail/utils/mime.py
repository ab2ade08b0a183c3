"""MIME helpers shared by the composer, assembler, and message view.

What:
  Normalise line endings, parse raw RFC822 bytes, and pull text out of
  individual MIME parts regardless of their declared type.

Why:
  Outbound bodies must be CRLF-normalised before they are placed on the
  builder, and inbound messages may carry structured data in ``text/html`` or
  ``application/ld+json`` parts whose payloads decode to either ``str`` or
  ``bytes`` depending on the content manager.

How:
  Use the ``email`` package's :class:`~email.parser.BytesParser` with the
  default policy and decode leaf parts with their declared charset (UTF-8
  fallback, ``errors="replace"``).

Interfaces:
  :func:`to_crlf`, :func:`parse_message`, :func:`part_text`,
  :func:`iter_leaf_parts`.
"""
from __future__ import annotations

from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from typing import Iterator


def to_crlf(text: str) -> str:
    """Normalise every line ending in ``text`` to ``\\r\\n``.

    Existing CRLF pairs are kept as-is; bare ``\\n`` and bare ``\\r`` become
    CRLF.
    """

    return text.replace("\r\n", "\n").replace("\r", "\n").replace("\n", "\r\n")


def parse_message(raw: bytes) -> EmailMessage:
    """Parse raw message bytes into an :class:`EmailMessage`."""

    return BytesParser(policy=policy.default).parsebytes(raw)


def iter_leaf_parts(message: EmailMessage) -> Iterator[EmailMessage]:
    """Yield every non-multipart part of ``message`` depth-first."""

    for part in message.walk():
        if part.is_multipart():
            continue
        yield part


def part_text(part: EmailMessage) -> str:
    """Return the decoded text of a leaf part.

    ``text/*`` parts come back from the content manager as ``str``; other
    types (``application/ld+json``) come back as ``bytes`` and are decoded with
    the declared charset. An unknown charset falls back to UTF-8.
    """

    try:
        payload = part.get_content()
        if isinstance(payload, bytes):
            return payload.decode(part.get_content_charset("utf-8"), errors="replace")
        return payload
    except LookupError:
        raw = part.get_payload(decode=True) or b""
        return raw.decode("utf-8", errors="replace")
