"""smlmail command-line interface for structured email workflows.

What:
  Provide a Typer-based entry point that exercises the library outside a mail
  client: ``compose`` encodes a JSON-LD payload file into an ``.eml`` message,
  ``extract`` prints the structured objects of an HTML page as JSON lines,
  ``view`` renders the card view of a received message, and ``dispatch`` runs
  one action URI against a console host.

Why:
  Operators and integrators need to check what a payload encodes to, what a
  page exposes, and what an action link does, without a GUI host. Wiring the
  CLI to the same components the client uses keeps those answers faithful.

How:
  Each command resolves the runtime configuration (``--config`` or the usual
  discovery with defaults), builds the components with a JSON logger on
  ``stderr`` so ``stdout`` stays parseable, and maps known failures onto exit
  code ``1`` through :class:`typer.Exit`.

Interfaces:
  ``app`` (Typer application), ``compose``, ``extract``, ``view``,
  ``dispatch``, :class:`ConsoleHost`.

Invariants & Safety:
  - Exit codes follow shell expectations (``0`` success, ``1`` failure).
  - ``dispatch`` never writes outside ``paths.temp_dir`` and ``--outbox``.
"""
from __future__ import annotations

import json
import logging
import sys
from email.message import EmailMessage
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import typer

from .compose.assembler import MessageAssembler
from .compose.builder import Identity
from .compose.composer import SmlVariant, compose as compose_payload
from .config import RuntimeConfig, RuntimeConfigError, get_runtime_config, load_runtime_config
from .errors import SmlError
from .extract.structured import HtmlStructuredDataExtractor, StructuredSyntax, parse_json_ld
from .protocol.dispatcher import ActionDispatcher
from .protocol.fetch import RequestsFetcher
from .utils.logging import JsonLogger
from .utils.mime import parse_message
from .view.message_view import MessageView


app = typer.Typer(help="Structured email (SML) tooling")

LOGGER = logging.getLogger("smlmail.cli")


def _runtime(config_path: Optional[Path]) -> RuntimeConfig:
    try:
        if config_path is not None:
            return load_runtime_config(config_path, reload=True)
        return get_runtime_config(allow_default=True)
    except RuntimeConfigError as exc:
        LOGGER.error("config_invalid: %s", exc)
        raise typer.Exit(code=1) from exc


def _component_logger(component: str) -> JsonLogger:
    return JsonLogger(stream=sys.stderr, component=component)


@dataclass
class ConsoleAccount:
    """Account built from ``--from`` for console dispatch."""

    uuid: str
    identities: Sequence[Identity]
    sml_variant: SmlVariant


@dataclass
class ConsoleHost:
    """Host collaborators that print their effects instead of showing UI.

    One object satisfies the UI, clipboard, share, barcode, account and
    delivery contracts of :class:`~smlmail.protocol.dispatcher.ActionDispatcher`.
    Sent messages are written to ``outbox`` as ``.eml`` files.
    """

    echo: Callable[[str], None] = typer.echo
    account: Optional[ConsoleAccount] = None
    outbox: Optional[Path] = None
    sent: List[Path] = field(default_factory=list)

    # HostUi
    def show_message(self, text: str) -> None:
        self.echo(f"message: {text}")

    def show_alert(self, text: str) -> None:
        self.echo(f"alert: {text}")

    def show_cards(self, html: str) -> None:
        self.echo(html)

    def show_image(self, image: bytes) -> None:
        self.echo(f"image: {len(image)} bytes")

    def show_source(self, text: str, on_copy: Callable[[], None]) -> None:
        self.echo(text)

    def open_url(self, url: str) -> None:
        self.echo(f"open: {url}")

    def open_file(self, path: Path, mime_type: str) -> None:
        self.echo(f"open file: {path} ({mime_type})")

    def launch_account_setup(self) -> None:
        self.echo("no account configured; pass --from to act as a sender")

    def open_composer(self, account: ConsoleAccount, payload_text: str) -> None:
        self.echo(payload_text)

    def evaluate_script(self, script: str) -> Optional[str]:
        return None

    # Clipboard
    def set_text(self, label: str, text: str) -> None:
        self.echo(f"clipboard ({label}): {text}")

    # ShareService
    def share_file(self, path: Path, mime_type: str, title: str) -> None:
        self.echo(f"{title}: {path} ({mime_type})")

    # BarcodeService
    def render(self, content: str, barcode_format: str, width: int, height: int) -> bytes:
        self.echo(f"barcode {barcode_format} {width}x{height}: {content}")
        return content.encode("utf-8")

    # AccountStore
    def default_account(self) -> Optional[ConsoleAccount]:
        return self.account

    # MessageDelivery
    def send(self, account: ConsoleAccount, message: EmailMessage) -> None:
        if self.outbox is None:
            self.echo(message.as_string())
            return
        self.outbox.mkdir(parents=True, exist_ok=True)
        path = self.outbox / f"{len(self.sent):04d}.eml"
        path.write_bytes(bytes(message))
        self.sent.append(path)
        self.echo(f"sent: {path}")


@app.command("compose")
def compose(
    payload_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON-LD payload file"),
    out: Path = typer.Option(..., "--out", "-o", help="Destination .eml file"),
    sender: str = typer.Option(..., "--from", help="Sender address"),
    to: List[str] = typer.Option([], "--to", help="Recipient address (repeatable)"),
    subject: str = typer.Option("", help="Subject line"),
    variant: Optional[SmlVariant] = typer.Option(None, help="Placement of the payload"),
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
) -> None:
    """Encode a payload file into a structured ``.eml`` message."""

    runtime = _runtime(config)
    payload = parse_json_ld(payload_file.read_text(encoding="utf-8"))
    logger = _component_logger("smlmail.compose")
    try:
        builder = compose_payload(
            payload,
            variant or SmlVariant(runtime.compose.variant),
            hide_timezone=runtime.compose.hide_timezone,
            plain_text=runtime.compose.fallback_plain_text,
            logger=logger,
        )
        builder.address(to, subject=subject, identity=Identity(email=sender))
        message = MessageAssembler(user_agent=runtime.http.user_agent, logger=logger).build(builder)
    except SmlError as exc:
        LOGGER.error("compose_failed: %s", exc)
        raise typer.Exit(code=1) from exc
    out.write_bytes(bytes(message))
    LOGGER.info("compose_written path=%s objects=%d", out, len(payload))


@app.command("extract")
def extract(
    html_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="HTML document"),
    syntax: Optional[StructuredSyntax] = typer.Option(
        None, help="Only this syntax; default tries JSON-LD then Microdata"
    ),
) -> None:
    """Print the structured objects of an HTML page, one JSON object per line."""

    extractor = HtmlStructuredDataExtractor(_component_logger("smlmail.extract"))
    html = html_file.read_text(encoding="utf-8", errors="replace")
    items = extractor.extract(html, syntax) if syntax else extractor.extract_with_fallback(html)
    for item in items:
        typer.echo(json.dumps(item.data, ensure_ascii=False, sort_keys=True))


@app.command("view")
def view(
    eml_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Received .eml file"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write HTML here instead of stdout"),
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
) -> None:
    """Render the card view of a received message."""

    runtime = _runtime(config)
    message = parse_message(eml_file.read_bytes())
    result = MessageView(config=runtime, logger=_component_logger("smlmail.view")).render(message)
    if out is None:
        typer.echo(result.display_html)
    else:
        out.write_text(result.display_html, encoding="utf-8")
    LOGGER.info("view_rendered objects=%d failed=%d", len(result.items), result.failed)


@app.command("dispatch")
def dispatch(
    uri: str = typer.Argument(..., help="Action URI as found in a rendered card"),
    sender: Optional[str] = typer.Option(None, "--from", help="Sender address for reply actions"),
    outbox: Optional[Path] = typer.Option(None, help="Directory receiving sent messages"),
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
) -> None:
    """Run one action URI against a console host."""

    runtime = _runtime(config)
    logger = _component_logger("smlmail.dispatcher")
    account = None
    if sender:
        account = ConsoleAccount(
            uuid="console",
            identities=[Identity(email=sender)],
            sml_variant=SmlVariant(runtime.compose.variant),
        )
    host = ConsoleHost(account=account, outbox=outbox)
    assembler = MessageAssembler(user_agent=runtime.http.user_agent, logger=logger)
    dispatcher = ActionDispatcher(
        ui=host,
        clipboard=host,
        accounts=host,
        delivery=host,
        fetcher=RequestsFetcher(runtime.http, logger=logger),
        share=host,
        barcode=host,
        assembler=assembler,
        config=runtime,
        logger=logger,
    )
    try:
        handled = dispatcher.dispatch(uri)
    finally:
        assembler.close()
    if not handled:
        typer.echo(f"host loads: {uri}")


def main() -> None:
    """Execute the Typer application entry point."""

    logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="%(levelname)s %(name)s %(message)s")
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
