"""Build the structured view of an inbound message.

What:
  Collect every structured object an inbound :class:`EmailMessage` carries
  (JSON-LD or Microdata in the HTML body, dedicated ``application/ld+json``
  parts, ``.ics`` attachments, a verification code derived from the body) and
  render them as cards above the original HTML.

Why:
  Senders use every layout there is, and many mails carry no markup at all.
  The view has to find what exists, fall back to a "Load Cards" link for
  known publisher URLs, and otherwise show the mail unchanged with a notice.

How:
  :class:`MessageView` walks the leaf parts with :mod:`smlmail.utils.mime`,
  delegates HTML extraction to the injected extractor and rendering to
  :func:`~smlmail.render.renderer.render_all` with
  :func:`~smlmail.render.buttons.buttons_for`. Boilerplate types are skipped
  only when more than one object was found.

Interfaces:
  :class:`MessageView`, :class:`MessageViewResult`,
  :func:`derive_verification_code`, :func:`whitelisted_urls`,
  :func:`load_cards_link`.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..config import RuntimeConfig, get_runtime_config
from ..extract.structured import (
    JSON_LD_MIME_TYPE,
    HtmlStructuredDataExtractor,
    parse_json_ld,
    type_name,
)
from ..protocol.calendar import event_objects
from ..protocol.hosts import StructuredDataExtractor
from ..protocol.uri import b64url_encode
from ..render.buttons import buttons_for, show_source_button
from ..render.renderer import CARD_PAGE_HEAD, ActionButton, CardRenderer, TemplateRenderer, render_all
from ..utils.logging import JsonLogger, get_logger
from ..utils.mime import iter_leaf_parts, part_text


NO_DATA_NOTICE = "<b>NO STRUCTURED DATA FOUND</b><br>"
ORIGINAL_MAIL_DIVIDER = "<br><b>ACTUAL HTML MAIL BELOW</b><br>"

_BOLD_CODE = re.compile(r"<b>([0-9]{4,})</b>")
_WEB_URL = re.compile(r"https?://[^\s\"<>^]+", re.IGNORECASE)


def derive_verification_code(subject: str, text: str, html: str) -> Optional[Dict[str, Any]]:
    """Derive a copyable code card from a "your code is" style mail.

    Only applies when the subject mentions a code; the bold number in the
    HTML must also appear in the plain text.
    """

    if "code" not in subject.lower():
        return None
    for match in _BOLD_CODE.finditer(html):
        code = match.group(1)
        if code in text:
            return {
                "@context": "https://schema.org",
                "@type": "EmailMessage",
                "description": f"Confirmation code: {code}",
                "potentialAction": {
                    "@type": "CopyToClipboardAction",
                    "name": code,
                    "description": code,
                },
            }
    return None


def whitelisted_urls(text: str, html: str, whitelist: Sequence[str]) -> List[str]:
    """Return distinct URLs from ``text`` then ``html`` that match ``whitelist``."""

    urls: List[str] = []
    for source in (text, html):
        for match in _WEB_URL.finditer(source):
            url = match.group(0)
            if any(entry in url for entry in whitelist) and url not in urls:
                urls.append(url)
    return urls


def load_cards_link(urls: Sequence[str]) -> str:
    tokens = ",".join(b64url_encode(url.encode("utf-8")) for url in urls)
    return f'<a href="xloadcards://{tokens}">Load Cards</a><br><hr><br><br>'


@dataclass
class MessageViewResult:
    """Display HTML plus the objects it was built from."""

    display_html: str
    items: List[Dict[str, Any]] = field(default_factory=list)
    derived: Optional[Dict[str, Any]] = None
    failed: int = 0


class MessageView:
    """Render the structured content of inbound messages."""

    def __init__(
        self,
        *,
        renderer: Optional[TemplateRenderer] = None,
        extractor: Optional[StructuredDataExtractor] = None,
        config: Optional[RuntimeConfig] = None,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._logger = logger or get_logger("smlmail.view")
        self._renderer = renderer or CardRenderer()
        self._extractor = extractor or HtmlStructuredDataExtractor(self._logger.child("smlmail.extract"))
        self._config = config or get_runtime_config(allow_default=True)

    def structured_items(self, message: EmailMessage) -> List[Dict[str, Any]]:
        """Return every structured object found in ``message``, in view order.

        Dedicated ``application/ld+json`` parts come first, then markup in the
        HTML body, then events from calendar attachments.
        """

        items: List[Dict[str, Any]] = []
        calendars: List[Dict[str, Any]] = []
        for part in iter_leaf_parts(message):
            content_type = part.get_content_type()
            filename = (part.get_filename() or "").lower()
            if content_type == JSON_LD_MIME_TYPE:
                items.extend(parse_json_ld(part_text(part)))
            elif content_type == "text/calendar" or filename.endswith(".ics"):
                calendars.extend(event_objects(part.get_payload(decode=True) or b"", logger=self._logger))
        html = _body_text(message, "html")
        if html:
            items.extend(item.data for item in self._extractor.extract_with_fallback(html))
        return items + calendars

    def render(self, message: EmailMessage) -> MessageViewResult:
        text = _body_text(message, "plain")
        html = _body_text(message, "html")
        subject = str(message.get("Subject", ""))
        derived = derive_verification_code(subject, text, html)
        items = self.structured_items(message)

        if not items and derived is None:
            urls = whitelisted_urls(text, html, self._config.view.url_whitelist)
            if urls:
                return MessageViewResult(display_html=CARD_PAGE_HEAD + load_cards_link(urls) + html)
            return MessageViewResult(display_html=NO_DATA_NOTICE + html)

        if len(items) > 1:
            skip_types = set(self._config.cards.skip_types)
            items = [obj for obj in items if type_name(obj) not in skip_types]
        to_render = items + ([derived] if derived is not None else [])
        batch = render_all(self._renderer, to_render, buttons_for=self._buttons, logger=self._logger)
        self._logger.info("message_view_rendered", cards=len(batch.fragments), failed=len(batch.failures))
        return MessageViewResult(
            display_html=CARD_PAGE_HEAD + batch.joined("\n") + ORIGINAL_MAIL_DIVIDER + html,
            items=items,
            derived=derived,
            failed=len(batch.failures),
        )

    def _buttons(self, obj: Mapping[str, Any]) -> List[ActionButton]:
        buttons = buttons_for(obj)
        if self._config.view.show_source_buttons:
            buttons.append(show_source_button(obj))
        return buttons


def _body_text(message: EmailMessage, subtype: str) -> str:
    part = message.get_body(preferencelist=(subtype,))
    if part is None or part.get_content_subtype() != subtype:
        return ""
    return part_text(part)
