"""Collaborator contracts consumed by the action dispatcher.

What:
  Structural protocols for every service the dispatcher and message view call
  into: attachment resolution, accounts, delivery, HTTP, extraction,
  clipboard, sharing, barcodes and the hosting UI.

Why:
  The dispatcher runs inside very different hosts (a console, a desktop mail
  client, tests). Depending on protocols instead of concrete classes lets each
  host inject its own implementations through the constructor.

How:
  :class:`typing.Protocol` classes with the minimal method surface each call
  site uses. Nothing here has behaviour.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Callable, List, Optional, Protocol, Sequence

from ..extract.structured import ExtractedItem, StructuredSyntax

if TYPE_CHECKING:
    from email.message import EmailMessage

    from ..compose.builder import Identity
    from ..compose.composer import SmlVariant


@dataclass(frozen=True)
class ResolvedAttachment:
    """Attachment content found for a ``cid:`` reference."""

    mime_type: str
    stream: BinaryIO


class AttachmentResolver(Protocol):
    def resolve(self, content_id: str) -> Optional[ResolvedAttachment]:
        """Return the attachment for ``content_id`` or ``None``."""


class Account(Protocol):
    uuid: str
    identities: Sequence["Identity"]
    sml_variant: "SmlVariant"


class AccountStore(Protocol):
    def default_account(self) -> Optional[Account]:
        """Return the account used for actions without a mail context."""


class MessageDelivery(Protocol):
    def send(self, account: Account, message: "EmailMessage") -> None:
        """Queue ``message`` for delivery from ``account``."""


@dataclass(frozen=True)
class FetchedResource:
    content: bytes
    content_type: str


class HttpFetcher(Protocol):
    """Blocking single-shot HTTP GET.

    Both methods raise :class:`~smlmail.errors.NetworkFetchError` on
    transport failures and unusable responses.
    """

    def fetch(self, url: str) -> str:
        """Return the decoded response body of ``url``."""

    def fetch_binary(self, url: str) -> FetchedResource:
        """Return the raw response body of ``url`` with its media type."""


class StructuredDataExtractor(Protocol):
    def extract(self, html: str, syntax: StructuredSyntax) -> List[ExtractedItem]:
        """Return the objects found in ``html``; never raises."""

    def extract_with_fallback(self, html: str) -> List[ExtractedItem]:
        """Try JSON-LD, then Microdata."""


class Clipboard(Protocol):
    def set_text(self, label: str, text: str) -> None:
        """Place ``text`` on the clipboard."""


class ShareService(Protocol):
    def share_file(self, path: Path, mime_type: str, title: str) -> None:
        """Offer ``path`` to other applications."""


class BarcodeService(Protocol):
    def render(self, content: str, barcode_format: str, width: int, height: int) -> bytes:
        """Return ``content`` encoded as a PNG barcode image."""


class HostUi(Protocol):
    """Everything the dispatcher shows or opens."""

    def show_message(self, text: str) -> None:
        """Show a short, non-blocking notice."""

    def show_alert(self, text: str) -> None:
        """Show a dialog with ``text``."""

    def show_cards(self, html: str) -> None:
        """Show a popup with a rendered page of cards."""

    def show_image(self, image: bytes) -> None:
        """Show an image popup."""

    def show_source(self, text: str, on_copy: Callable[[], None]) -> None:
        """Show raw text with a control that calls ``on_copy``."""

    def open_url(self, url: str) -> None:
        """Let the system handle ``url``."""

    def open_file(self, path: Path, mime_type: str) -> None:
        """Open a local file with the system viewer for ``mime_type``."""

    def launch_account_setup(self) -> None:
        """Start the host's account setup flow."""

    def open_composer(self, account: Account, payload_text: str) -> None:
        """Open a compose window pre-filled with a structured payload."""

    def evaluate_script(self, script: str) -> Optional[str]:
        """Evaluate ``script`` in the page and return its result."""
