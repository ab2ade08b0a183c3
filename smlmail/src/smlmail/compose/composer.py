"""Encode structured payloads into the body of a composed message.

What:
  Turn an ordered, non-empty list of structured objects into the plain text,
  HTML and optional ``application/ld+json`` part of a
  :class:`~smlmail.compose.builder.ComposedMessageBuilder`.

Why:
  Two layouts exist in the wild. Older receivers read the payload from a
  ``<script type="application/ld+json">`` block at the top of the HTML
  (:attr:`SmlVariant.EMBEDDED_IN_HTML`); newer ones expect a dedicated MIME
  alternative (:attr:`SmlVariant.DEDICATED_PART`). The sender's account decides
  which one is produced.

How:
  1. Canonicalise the payload: one object becomes its two-space indented JSON,
     several objects become ``[`` + comma-joined texts + ``]``.
  2. Use ``html_body`` verbatim when given, otherwise render every object with
     the injected :class:`~smlmail.render.renderer.TemplateRenderer` and keep
     the fragments that rendered.
  3. Splice the fragments between the fixed HTML boundary literals, adding the
     script block or building the dedicated part depending on the variant.
  4. CRLF-normalise both bodies and populate the builder.

Interfaces:
  :class:`SmlVariant`, :func:`canonical_json`, :func:`build_structured_part`,
  :func:`compose`, :func:`approve_deny_payload`.

Invariants & Safety:
  - An empty payload raises :class:`~smlmail.errors.EmptyPayloadError` before
    anything is rendered.
  - The renderer is never called when ``html_body`` is supplied.
  - The returned builder has no recipients, subject or identity filled in by
    this module.
"""
from __future__ import annotations

import enum
import json
from datetime import datetime, timezone
from email.message import MIMEPart
from typing import Any, Dict, Mapping, Optional, Sequence

from ..config import get_runtime_config
from ..errors import EmptyPayloadError
from ..render.renderer import CardRenderer, TemplateRenderer, render_all
from ..utils.logging import JsonLogger, get_logger
from ..utils.mime import to_crlf
from .builder import ComposedMessageBuilder, MessageFormat


HTML_AND_BODY_START = "<!DOCTYPE html><html><body>"
HTML_AND_BODY_END = "</body></html>"
STRUCTURED_PART_CONTENT_TYPE = "application/ld+json; charset=utf-8"


class SmlVariant(str, enum.Enum):
    """Where the encoded payload travels inside the message."""

    EMBEDDED_IN_HTML = "embedded_in_html"
    DEDICATED_PART = "dedicated_part"


def canonical_json(payload: Sequence[Mapping[str, Any]]) -> str:
    """Return the canonical text form of ``payload``.

    Raises:
      EmptyPayloadError: If ``payload`` holds no object.
    """

    texts = [json.dumps(obj, indent=2, ensure_ascii=False) for obj in payload]
    if not texts:
        raise EmptyPayloadError("structured payload must not be empty")
    if len(texts) == 1:
        return texts[0]
    return "[" + ",".join(texts) + "]"


def build_structured_part(canonical: str) -> MIMEPart:
    """Build the dedicated ``application/ld+json`` alternative."""

    part = MIMEPart()
    part.set_content(
        to_crlf(canonical).encode("utf-8"),
        maintype="application",
        subtype="ld+json",
        cte="8bit",
    )
    del part["Content-Type"]
    part["Content-Type"] = STRUCTURED_PART_CONTENT_TYPE
    return part


def compose(
    payload: Sequence[Mapping[str, Any]],
    variant: SmlVariant,
    html_body: Optional[str] = None,
    plain_text: Optional[str] = None,
    builder: Optional[ComposedMessageBuilder] = None,
    *,
    hide_timezone: Optional[bool] = None,
    renderer: Optional[TemplateRenderer] = None,
    logger: Optional[JsonLogger] = None,
    now: Optional[datetime] = None,
) -> ComposedMessageBuilder:
    """Populate a builder with the body of a structured message.

    Args:
      payload: Ordered structured objects; must not be empty.
      variant: Layout to produce.
      html_body: HTML used verbatim instead of rendering the payload.
      plain_text: Plain text alternative; the configured fallback otherwise.
      builder: Draft to populate; a new one is created when omitted.
      hide_timezone: Send the date in UTC. Defaults to ``compose.hide_timezone``
        from the runtime configuration.
      renderer: Card renderer used when ``html_body`` is omitted.
      logger: Destination for render failure counts.
      now: Sent date override.

    Returns:
      The populated, still unaddressed builder.
    """

    canonical = canonical_json(payload)
    variant = SmlVariant(variant)
    config = None
    if hide_timezone is None or plain_text is None:
        config = get_runtime_config(allow_default=True).compose
    log = logger or get_logger("smlmail.compose")

    if html_body is None:
        batch = render_all(renderer or CardRenderer(), payload, logger=log)
        fragments = batch.joined("\n")
        if variant is SmlVariant.EMBEDDED_IN_HTML:
            script = f'<script type="application/ld+json">{canonical}</script>'
            html_body = f"<!DOCTYPE html><html>{script}</head><body>{fragments}{HTML_AND_BODY_END}"
        else:
            html_body = f"{HTML_AND_BODY_START}{fragments}{HTML_AND_BODY_END}"

    if plain_text is None:
        plain_text = config.fallback_plain_text
    if hide_timezone is None:
        hide_timezone = config.hide_timezone

    draft = builder if builder is not None else ComposedMessageBuilder()
    draft.sent_date = now or datetime.now(timezone.utc).astimezone()
    draft.hide_timezone = hide_timezone
    draft.message_format = MessageFormat.HTML
    draft.plain_text = to_crlf(plain_text)
    draft.html_text = to_crlf(html_body)
    if variant is SmlVariant.DEDICATED_PART:
        draft.additional_alternate_part = build_structured_part(canonical)
    log.debug("composed", variant=variant.value, objects=len(payload))
    return draft


_APPROVE_DENY_NAMES = {"ConfirmAction": "Approved", "CancelAction": "Denied"}


def approve_deny_payload(token: str) -> Optional[Dict[str, Any]]:
    """Return the reply payload for an approve/deny action token."""

    name = _APPROVE_DENY_NAMES.get(token)
    if name is None:
        return None
    return {"@context": "http://schema.org", "@type": token, "name": name}
