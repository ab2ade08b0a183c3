"""Finalise composed drafts into RFC 5322 messages.

What:
  Convert a :class:`~smlmail.compose.builder.ComposedMessageBuilder` into an
  :class:`email.message.EmailMessage`, synchronously with
  :meth:`MessageAssembler.build` or on an executor with
  :meth:`MessageAssembler.build_async`.

Why:
  Building may involve slow or interactive steps (signing, key lookup) that
  must not block the caller. Callers need a single result type covering every
  way a build can end, instead of a callback interface per outcome.

How:
  - The body is ``text/plain`` alone when the draft has neither HTML nor an
    alternate part, otherwise a ``multipart/alternative`` holding plain text,
    HTML and the structured part in that order. Attachments wrap the result in
    ``multipart/mixed``.
  - Boundaries come from a per-instance counter (``----Boundary{n}``).
  - :class:`BuildJob` wraps the executor future and a cancel flag; its
    :meth:`BuildJob.outcome` is one of :class:`BuildSuccess`,
    :class:`BuildCancelled`, :class:`BuildFailed` or
    :class:`BuildPendingAuthorization`.

Interfaces:
  :class:`MessageAssembler`, :class:`BuildJob`, :data:`BuildOutcome` and the
  four outcome classes.

Invariants & Safety:
  - The boundary counter is monotonic per instance and not synchronised; one
    assembler instance serves one caller.
  - A cancelled job never hands a message to anyone.
  - :meth:`MessageAssembler.build_async` never raises for build problems;
    they surface as :class:`BuildFailed`.
"""
from __future__ import annotations

import threading
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from email.headerregistry import Address
from email.errors import MessageError
from email.message import EmailMessage
from email.utils import format_datetime, make_msgid
from typing import Callable, Optional, Union

from ..errors import BuildError
from ..utils.logging import JsonLogger, get_logger
from .builder import ComposedMessageBuilder, Identity


@dataclass(frozen=True)
class BuildSuccess:
    message: EmailMessage
    is_draft: bool


@dataclass(frozen=True)
class BuildCancelled:
    pass


@dataclass(frozen=True)
class BuildFailed:
    error: BuildError


@dataclass(frozen=True)
class BuildPendingAuthorization:
    """The build needs an external approval before it can continue.

    ``token`` is opaque to the assembler; the host resumes the flow with it
    once the request identified by ``request_code`` completes.
    """

    token: object
    request_code: int


BuildOutcome = Union[BuildSuccess, BuildCancelled, BuildFailed, BuildPendingAuthorization]
AuthorizationGate = Callable[[ComposedMessageBuilder], Optional[BuildPendingAuthorization]]


class BuildJob:
    """Handle on one asynchronous build."""

    def __init__(self, future: "Future[BuildOutcome]", cancel_event: threading.Event) -> None:
        self._future = future
        self._cancel_event = cancel_event

    def cancel(self) -> None:
        self._cancel_event.set()
        self._future.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future.done()

    def outcome(self, timeout: Optional[float] = None) -> BuildOutcome:
        """Wait for the build and return its outcome."""

        try:
            return self._future.result(timeout)
        except CancelledError:
            return BuildCancelled()

    def add_done_callback(self, callback: Callable[[BuildOutcome], None]) -> None:
        """Call ``callback`` with the outcome once the build ends."""

        self._future.add_done_callback(lambda _future: callback(self.outcome()))


class MessageAssembler:
    """Turn composed drafts into :class:`EmailMessage` objects."""

    def __init__(
        self,
        *,
        executor: Optional[Executor] = None,
        authorize: Optional[AuthorizationGate] = None,
        user_agent: Optional[str] = None,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._executor = executor
        self._owns_executor = executor is None
        self._authorize = authorize
        self._user_agent = user_agent
        self._logger = logger or get_logger("smlmail.assembler")
        self._boundary_counter = 0

    def next_boundary(self) -> str:
        boundary = f"----Boundary{self._boundary_counter}"
        self._boundary_counter += 1
        return boundary

    def build(self, builder: ComposedMessageBuilder) -> EmailMessage:
        """Build synchronously.

        Raises:
          BuildError: If the draft lacks an identity or cannot be encoded.
        """

        if builder.identity is None:
            raise BuildError("message has no sender identity")
        message = EmailMessage()
        try:
            self._build_header(message, builder, builder.identity)
            self._build_body(message, builder)
        except (TypeError, ValueError, IndexError, MessageError) as exc:
            raise BuildError(f"cannot assemble message: {exc}") from exc
        return message

    def build_async(self, builder: ComposedMessageBuilder) -> BuildJob:
        """Start a build on the executor and return its job handle."""

        cancel_event = threading.Event()
        future = self._get_executor().submit(self._run, builder, cancel_event)
        return BuildJob(future, cancel_event)

    def close(self) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _get_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="smlmail-build")
        return self._executor

    def _run(self, builder: ComposedMessageBuilder, cancel_event: threading.Event) -> BuildOutcome:
        if cancel_event.is_set():
            return BuildCancelled()
        try:
            if self._authorize is not None:
                pending = self._authorize(builder)
                if pending is not None:
                    self._logger.info("build_pending_authorization", request_code=pending.request_code)
                    return pending
            message = self.build(builder)
        except BuildError as exc:
            self._logger.warning("build_failed", error=str(exc))
            return BuildFailed(exc)
        except Exception as exc:  # outcomes are reported, never raised from the worker
            self._logger.error("build_crashed", error=repr(exc))
            error = BuildError(f"unexpected build failure: {exc!r}")
            error.__cause__ = exc
            return BuildFailed(error)
        if cancel_event.is_set():
            return BuildCancelled()
        return BuildSuccess(message=message, is_draft=builder.is_draft)

    def _build_header(
        self, message: EmailMessage, builder: ComposedMessageBuilder, identity: Identity
    ) -> None:
        sent = builder.sent_date or datetime.now(timezone.utc)
        if builder.hide_timezone:
            sent = sent.astimezone(timezone.utc)
        message["Date"] = format_datetime(sent)
        sender = Address(display_name=identity.name or "", addr_spec=identity.email)
        message["From"] = sender
        for header, addresses in (("To", builder.to), ("Cc", builder.cc), ("Bcc", builder.bcc)):
            if addresses:
                message[header] = ", ".join(addresses)
        message["Subject"] = builder.subject
        if builder.request_read_receipt:
            message["Disposition-Notification-To"] = str(sender)
        if self._user_agent:
            message["User-Agent"] = self._user_agent
        if builder.reply_to:
            message["Reply-To"] = ", ".join(builder.reply_to)
        if builder.in_reply_to:
            message["In-Reply-To"] = builder.in_reply_to
        if builder.references:
            message["References"] = builder.references
        message["Message-ID"] = make_msgid(domain=identity.email.rpartition("@")[2] or None)

    def _build_body(self, message: EmailMessage, builder: ComposedMessageBuilder) -> None:
        message.set_content(builder.plain_text)
        if builder.html_text is not None:
            message.add_alternative(builder.html_text, subtype="html")
        if builder.additional_alternate_part is not None:
            if not message.is_multipart():
                message.make_alternative()
            message.attach(builder.additional_alternate_part)
        for attachment in builder.attachments:
            maintype, _, subtype = attachment.content_type.partition("/")
            message.add_attachment(
                attachment.data,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        for part in message.walk():
            if part.is_multipart():
                part.set_boundary(self.next_boundary())
