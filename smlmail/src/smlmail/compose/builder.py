"""Mutable draft of an outbound structured message.

What:
  Hold everything the assembler needs to produce an :class:`EmailMessage`:
  header fields set by the caller (identity, recipients, subject) and body
  fields set by :func:`smlmail.compose.composer.compose`.

Why:
  Encoding and addressing happen at different times and in different places.
  The composer fills the body while the caller completes the headers, and the
  draft only becomes a message once :class:`MessageAssembler` finalises it.

How:
  A plain dataclass with list defaults; no validation happens here. The
  assembler checks the fields it requires and reports problems as
  :class:`~smlmail.errors.BuildError`.

Interfaces:
  :class:`MessageFormat`, :class:`Identity`, :class:`Attachment`,
  :class:`ComposedMessageBuilder`.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from email.message import MIMEPart
from typing import List, Optional, Sequence


class MessageFormat(str, enum.Enum):
    """Body format the draft will be sent with."""

    TEXT = "text"
    HTML = "html"


@dataclass(frozen=True)
class Identity:
    """Sender identity of an account."""

    email: str
    name: Optional[str] = None


@dataclass(frozen=True)
class Attachment:
    """File attached next to the composed body."""

    filename: str
    content_type: str
    data: bytes


@dataclass
class ComposedMessageBuilder:
    """Draft fields consumed by :class:`~smlmail.compose.assembler.MessageAssembler`."""

    identity: Optional[Identity] = None
    to: List[str] = field(default_factory=list)
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)
    reply_to: List[str] = field(default_factory=list)
    subject: str = ""
    in_reply_to: Optional[str] = None
    references: Optional[str] = None
    sent_date: Optional[datetime] = None
    hide_timezone: bool = False
    message_format: MessageFormat = MessageFormat.TEXT
    plain_text: str = ""
    html_text: Optional[str] = None
    additional_alternate_part: Optional[MIMEPart] = None
    attachments: List[Attachment] = field(default_factory=list)
    request_read_receipt: bool = False
    is_draft: bool = False

    def address(
        self,
        to: Sequence[str] = (),
        *,
        cc: Sequence[str] = (),
        bcc: Sequence[str] = (),
        subject: Optional[str] = None,
        identity: Optional[Identity] = None,
    ) -> "ComposedMessageBuilder":
        """Fill in the caller-owned header fields and return ``self``."""

        self.to.extend(to)
        self.cc.extend(cc)
        self.bcc.extend(bcc)
        if subject is not None:
            self.subject = subject
        if identity is not None:
            self.identity = identity
        return self
