"""In-memory collaborators used by unit tests.

What:
  Provide stand-ins for every host contract the dispatcher, view and compose
  session depend on (UI, clipboard, accounts, delivery, HTTP, share, barcode,
  attachment resolution) plus a synchronous executor and a recording renderer.

Why:
  Unit tests must exercise action handling and message assembly without a GUI,
  network access or background threads. Recording every call keeps assertions
  explicit and deterministic.

How:
  Each fake appends ``(name, args)`` tuples or values to a list attribute.
  :class:`InlineExecutor` runs submitted callables immediately so build jobs
  complete before ``submit`` returns.

Interfaces:
  :class:`InlineExecutor`, :class:`FakeUi`, :class:`FakeClipboard`,
  :class:`FakeAccount`, :class:`FakeAccountStore`, :class:`FakeDelivery`,
  :class:`FakeFetcher`, :class:`FakeShare`, :class:`FakeBarcode`,
  :class:`FakeResolver`, :class:`RecordingRenderer`.
"""

from __future__ import annotations

import io
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from smlmail.compose.builder import Identity
from smlmail.compose.composer import SmlVariant
from smlmail.errors import NetworkFetchError, TemplateRenderError
from smlmail.protocol.hosts import FetchedResource, ResolvedAttachment


class InlineExecutor(Executor):
    """Executor that runs work on the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


@dataclass
class FakeUi:
    calls: List[Tuple[str, Tuple[Any, ...]]] = field(default_factory=list)
    script_result: Optional[str] = "this"
    last_on_copy: Optional[Callable[[], None]] = None

    def named(self, name: str) -> List[Tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    def show_message(self, text: str) -> None:
        self.calls.append(("show_message", (text,)))

    def show_alert(self, text: str) -> None:
        self.calls.append(("show_alert", (text,)))

    def show_cards(self, html: str) -> None:
        self.calls.append(("show_cards", (html,)))

    def show_image(self, image: bytes) -> None:
        self.calls.append(("show_image", (image,)))

    def show_source(self, text: str, on_copy: Callable[[], None]) -> None:
        self.last_on_copy = on_copy
        self.calls.append(("show_source", (text,)))

    def open_url(self, url: str) -> None:
        self.calls.append(("open_url", (url,)))

    def open_file(self, path: Path, mime_type: str) -> None:
        self.calls.append(("open_file", (path, mime_type)))

    def launch_account_setup(self) -> None:
        self.calls.append(("launch_account_setup", ()))

    def open_composer(self, account: Any, payload_text: str) -> None:
        self.calls.append(("open_composer", (account, payload_text)))

    def evaluate_script(self, script: str) -> Optional[str]:
        self.calls.append(("evaluate_script", (script,)))
        return self.script_result


@dataclass
class FakeClipboard:
    entries: List[Tuple[str, str]] = field(default_factory=list)

    def set_text(self, label: str, text: str) -> None:
        self.entries.append((label, text))


@dataclass
class FakeAccount:
    uuid: str = "account-1"
    identities: Sequence[Identity] = (Identity(email="me@example.org", name="Me"),)
    sml_variant: SmlVariant = SmlVariant.DEDICATED_PART


@dataclass
class FakeAccountStore:
    account: Optional[FakeAccount] = None

    def default_account(self) -> Optional[FakeAccount]:
        return self.account


@dataclass
class FakeDelivery:
    sent: List[Tuple[Any, Any]] = field(default_factory=list)
    error: Optional[Exception] = None

    def send(self, account: Any, message: Any) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((account, message))


@dataclass
class FakeFetcher:
    """Serve canned pages; unknown URLs fail like an unreachable host."""

    pages: Dict[str, str] = field(default_factory=dict)
    binaries: Dict[str, FetchedResource] = field(default_factory=dict)
    requested: List[str] = field(default_factory=list)

    def fetch(self, url: str) -> str:
        self.requested.append(url)
        if url not in self.pages:
            raise NetworkFetchError(url, "unreachable")
        return self.pages[url]

    def fetch_binary(self, url: str) -> FetchedResource:
        self.requested.append(url)
        if url not in self.binaries:
            raise NetworkFetchError(url, "unreachable")
        return self.binaries[url]


@dataclass
class FakeShare:
    shared: List[Tuple[Path, str, str, bytes]] = field(default_factory=list)

    def share_file(self, path: Path, mime_type: str, title: str) -> None:
        self.shared.append((path, mime_type, title, path.read_bytes()))


@dataclass
class FakeBarcode:
    requests: List[Tuple[str, str, int, int]] = field(default_factory=list)

    def render(self, content: str, barcode_format: str, width: int, height: int) -> bytes:
        self.requests.append((content, barcode_format, width, height))
        return b"\x89PNG-fake"


@dataclass
class FakeResolver:
    attachments: Dict[str, Tuple[str, bytes]] = field(default_factory=dict)
    error: Optional[OSError] = None

    def resolve(self, content_id: str) -> Optional[ResolvedAttachment]:
        if self.error is not None:
            raise self.error
        if content_id not in self.attachments:
            return None
        mime_type, data = self.attachments[content_id]
        return ResolvedAttachment(mime_type=mime_type, stream=io.BytesIO(data))


@dataclass
class RecordingRenderer:
    """Renderer that records its inputs and fails for selected types."""

    fail_types: Sequence[str] = ()
    rendered: List[Mapping[str, Any]] = field(default_factory=list)

    def render(self, obj: Mapping[str, Any], buttons=None) -> str:
        self.rendered.append(obj)
        kind = obj.get("@type")
        if kind in self.fail_types:
            raise TemplateRenderError(f"cannot render {kind}")
        targets = " ".join(button.target for button in buttons or ())
        return f'<div class="card" data-type="{kind}">{targets}</div>'
