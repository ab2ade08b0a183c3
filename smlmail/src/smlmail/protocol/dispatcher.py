"""Route action URIs activated in rendered messages to their handlers.

What:
  :class:`ActionDispatcher` receives one URI per activation (a link or button
  inside a rendered card), decodes its payload and performs the matching side
  effect through injected collaborators. :meth:`ActionDispatcher.intercept_request`
  additionally serves ``cid:`` resources to the hosting view.

Why:
  Rendered HTML is untrusted input: payloads may be truncated, mis-encoded or
  crafted. Every activation has to end in a handled effect, a deliberate
  no-op, or a user notice. Nothing may escape into the host's event loop.

How:
  - The URI scheme is mapped onto the closed :class:`Scheme` enumeration, with
    :attr:`Scheme.OTHER` as the single default arm. The handler table is
    checked against the enumeration when the dispatcher is constructed, so a
    new scheme without a handler fails immediately.
  - Base64url payloads are decoded through :mod:`smlmail.protocol.uri`;
    :class:`~smlmail.errors.DecodeError` turns into a no-op plus an optional
    notice.
  - Failures are contained per URI: known :class:`~smlmail.errors.SmlError`
    and :class:`OSError` are reported, anything else is logged as an error and
    reported with a generic notice.

Interfaces:
  :class:`Scheme`, :class:`ActionDispatcher`, :class:`AttachmentResponse`,
  :data:`BARCODE_DEMO_PAYLOAD`, :data:`SCRIPT_PROBE`.

Invariants & Safety:
  - :meth:`ActionDispatcher.dispatch` never raises.
  - ``xloadcards`` renders at most ``cards.max_cards`` cards; the cap is
    checked before each fetch and before each item.
  - Files are written only below ``paths.temp_dir``; caller supplied file
    names are reduced to their final path component.
"""
from __future__ import annotations

import enum
import io
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, List, Mapping, Optional
from urllib.parse import unquote

from ..compose.assembler import (
    BuildCancelled,
    BuildFailed,
    BuildOutcome,
    BuildPendingAuthorization,
    BuildSuccess,
    MessageAssembler,
)
from ..compose.composer import approve_deny_payload, compose
from ..config import RuntimeConfig, get_runtime_config
from ..errors import DecodeError, MissingAccountError, NetworkFetchError, SmlError
from ..extract.structured import HtmlStructuredDataExtractor, parse_json_ld
from ..render.buttons import share_as_mail_button
from ..render.renderer import CardRenderer, TemplateRenderer, render_all, wrap_cards_page
from ..utils.ids import content_digest
from ..utils.logging import JsonLogger, get_logger
from .calendar import event_calendar, to_ical_text
from .hosts import (
    Account,
    AccountStore,
    AttachmentResolver,
    BarcodeService,
    Clipboard,
    HostUi,
    HttpFetcher,
    MessageDelivery,
    ShareService,
    StructuredDataExtractor,
)
from .uri import ActionUri, b64url_decode, b64url_decode_text


BARCODE_DEMO_PAYLOAD = (
    "M1TEST/HIDDEN E8OQ6FU FRARLGLH 4010 012C004D0001 35C>2180WM6012BLH "
    "2922023642241060 LH *30600000K09"
)
SCRIPT_PROBE = "(function() { return 'this'; })();"
DEFAULT_SHARE_FILE_NAME = "sml.json"
STRUCTURED_DATA_MIME_TYPE = "application/ld+json"
CALENDAR_MIME_TYPE = "text/calendar"


class Scheme(str, enum.Enum):
    """URI schemes with dedicated handling; everything else is ``OTHER``."""

    CID = "cid"
    MAILTO = "mailto"
    XSHAREASFILE = "xshareasfile"
    XSHAREASCALENDAR = "xshareascalendar"
    XSHAREASMAIL = "xshareasmail"
    XLOADCARDS = "xloadcards"
    XREQUEST = "xrequest"
    XRELOAD = "xreload"
    XBARCODE = "xbarcode"
    XSHOWSOURCE = "xshowsource"
    XJS = "xjs"
    XALERT = "xalert"
    XCLIPBOARD = "xclipboard"
    FILE = "file"
    OTHER = "*"

    @classmethod
    def from_token(cls, token: str) -> "Scheme":
        try:
            return cls(token.lower())
        except ValueError:
            return cls.OTHER


@dataclass
class AttachmentResponse:
    """Content served to the view for an intercepted ``cid:`` request."""

    mime_type: Optional[str]
    stream: BinaryIO
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def dummy(cls) -> "AttachmentResponse":
        return cls(mime_type=None, stream=io.BytesIO(b""))


Handler = Callable[[ActionUri], bool]


class ActionDispatcher:
    """Decode action URIs and perform their effects."""

    def __init__(
        self,
        *,
        ui: HostUi,
        clipboard: Clipboard,
        accounts: AccountStore,
        delivery: MessageDelivery,
        fetcher: HttpFetcher,
        share: ShareService,
        barcode: BarcodeService,
        assembler: Optional[MessageAssembler] = None,
        renderer: Optional[TemplateRenderer] = None,
        extractor: Optional[StructuredDataExtractor] = None,
        attachments: Optional[AttachmentResolver] = None,
        config: Optional[RuntimeConfig] = None,
        logger: Optional[JsonLogger] = None,
        notify_decode_failures: bool = True,
    ) -> None:
        self._ui = ui
        self._clipboard = clipboard
        self._accounts = accounts
        self._delivery = delivery
        self._fetcher = fetcher
        self._share = share
        self._barcode = barcode
        self._logger = logger or get_logger("smlmail.dispatcher")
        self._assembler = assembler or MessageAssembler(logger=self._logger.child("smlmail.assembler"))
        self._renderer = renderer or CardRenderer()
        self._extractor = extractor or HtmlStructuredDataExtractor(self._logger.child("smlmail.extract"))
        self._attachments = attachments
        self._config = config or get_runtime_config(allow_default=True)
        self._notify_decode_failures = notify_decode_failures
        self._handlers: Dict[Scheme, Handler] = {
            Scheme.CID: self._handle_cid,
            Scheme.MAILTO: self._handle_mailto,
            Scheme.XSHAREASFILE: self._handle_share_as_file,
            Scheme.XSHAREASCALENDAR: self._handle_share_as_calendar,
            Scheme.XSHAREASMAIL: self._handle_share_as_mail,
            Scheme.XLOADCARDS: self._handle_load_cards,
            Scheme.XREQUEST: self._handle_request,
            Scheme.XRELOAD: self._handle_reload,
            Scheme.XBARCODE: self._handle_barcode,
            Scheme.XSHOWSOURCE: self._handle_show_source,
            Scheme.XJS: self._handle_script,
            Scheme.XALERT: self._handle_alert,
            Scheme.XCLIPBOARD: self._handle_clipboard,
            Scheme.FILE: self._handle_file,
            Scheme.OTHER: self._handle_other,
        }
        missing = set(Scheme) - set(self._handlers)
        if missing:
            raise RuntimeError(f"no handler for schemes: {sorted(s.value for s in missing)}")

    def dispatch(self, uri: str) -> bool:
        """Handle one activated URI.

        Returns:
          ``False`` when the host should load the URI itself (``cid:``),
          ``True`` otherwise, including for no-ops and reported failures.
        """

        try:
            action = ActionUri.parse(uri)
        except ValueError as exc:
            self._logger.warning("uri_unparsable", error=str(exc))
            self._notify("Could not open link")
            return True
        scheme = Scheme.from_token(action.scheme)
        try:
            return self._handlers[scheme](action)
        except DecodeError as exc:
            self._logger.warning("payload_undecodable", scheme=scheme.value, error=str(exc))
            if self._notify_decode_failures:
                self._notify("Could not read action payload")
        except NetworkFetchError as exc:
            self._notify(f"Got no content ({exc.reason})")
        except MissingAccountError:
            self._logger.info("account_setup_required", scheme=scheme.value)
            self._ui.launch_account_setup()
        except (SmlError, OSError) as exc:
            self._logger.warning("action_failed", scheme=scheme.value, error=str(exc))
            self._notify(f"Action failed: {exc}")
        except Exception as exc:
            self._logger.error("action_crashed", scheme=scheme.value, error=repr(exc))
            self._notify("Action failed")
        return True

    def intercept_request(self, uri: str) -> Optional[AttachmentResponse]:
        """Serve ``cid:`` resources; return ``None`` for every other scheme."""

        try:
            action = ActionUri.parse(uri)
        except ValueError:
            return None
        if Scheme.from_token(action.scheme) is not Scheme.CID:
            return None
        if self._attachments is None:
            return AttachmentResponse.dummy()
        content_id = unquote(action.scheme_specific_part)
        try:
            resolved = self._attachments.resolve(content_id)
        except OSError as exc:
            self._logger.error("cid_resolve_failed", content_id=content_id, error=str(exc))
            return AttachmentResponse.dummy()
        if resolved is None:
            return AttachmentResponse.dummy()
        return AttachmentResponse(
            mime_type=resolved.mime_type,
            stream=resolved.stream,
            headers={"Cache-Control": "no-store"},
        )

    # Handlers

    def _handle_cid(self, action: ActionUri) -> bool:
        return False

    def _handle_mailto(self, action: ActionUri) -> bool:
        request_action = action.param("action")
        if not request_action:
            self._ui.open_url(action.raw)
            return True
        payload = approve_deny_payload(request_action)
        if payload is None:
            self._logger.debug("mailto_action_unknown", action=request_action)
            return True
        account = self._default_account()
        if not account.identities:
            raise MissingAccountError("default account has no identity")
        recipient = unquote(action.path)
        builder = compose(
            [payload],
            account.sml_variant,
            hide_timezone=self._config.compose.hide_timezone,
            plain_text=self._config.compose.fallback_plain_text,
            renderer=self._renderer,
            logger=self._logger,
        )
        builder.address([recipient], subject=request_action, identity=account.identities[0])
        job = self._assembler.build_async(builder)
        job.add_done_callback(lambda outcome: self._on_reply_built(account, request_action, outcome))
        return True

    def _on_reply_built(self, account: Account, request_action: str, outcome: BuildOutcome) -> None:
        if isinstance(outcome, BuildSuccess):
            try:
                self._delivery.send(account, outcome.message)
            except (SmlError, OSError) as exc:
                self._logger.warning("reply_send_failed", action=request_action, error=str(exc))
                self._notify(f"Could not send {request_action}")
                return
            self._notify(f"Sent {request_action}")
        elif isinstance(outcome, BuildFailed):
            self._logger.warning("reply_build_failed", action=request_action, error=str(outcome.error))
            self._notify(f"Could not send {request_action}")
        elif isinstance(outcome, BuildPendingAuthorization):
            self._logger.info("reply_pending_authorization", request_code=outcome.request_code)
        elif isinstance(outcome, BuildCancelled):
            self._logger.info("reply_cancelled", action=request_action)

    def _handle_share_as_file(self, action: ActionUri) -> bool:
        data = b64url_decode(action.authority or action.scheme_specific_part)
        file_name = Path(action.param("fileName") or "").name or DEFAULT_SHARE_FILE_NAME
        path = self._temp_file(file_name)
        path.write_bytes(data)
        self._logger.info("share_file_written", file=path.name, size=len(data))
        self._share.share_file(path, STRUCTURED_DATA_MIME_TYPE, "Share SML")
        return True

    def _handle_share_as_calendar(self, action: ActionUri) -> bool:
        obj = _decode_object(action.authority or action.scheme_specific_part)
        text = to_ical_text(event_calendar(obj, logger=self._logger))
        path = self._temp_file(f"{content_digest(text.encode('utf-8'))}.ical")
        path.write_text(text, encoding="utf-8")
        self._ui.open_file(path, CALENDAR_MIME_TYPE)
        return True

    def _handle_share_as_mail(self, action: ActionUri) -> bool:
        text = b64url_decode_text(action.authority or action.scheme_specific_part)
        account = self._default_account()
        self._ui.open_composer(account, text)
        return True

    def _handle_load_cards(self, action: ActionUri) -> bool:
        urls = [b64url_decode_text(token) for token in action.payload_tokens()]
        cards = self._config.cards
        skip_types = set(cards.skip_types)
        fragments: List[str] = []
        for url in urls:
            if len(fragments) >= cards.max_cards:
                break
            if not url.lower().startswith(("http://", "https://")):
                self._logger.warning("load_cards_url_rejected", url=url)
                continue
            try:
                html = self._fetcher.fetch(url)
            except NetworkFetchError as exc:
                self._logger.info("load_cards_fetch_failed", url=url, error=exc.reason)
                continue
            for item in self._extractor.extract_with_fallback(html):
                if len(fragments) >= cards.max_cards:
                    break
                if item.type_name in skip_types:
                    continue
                batch = render_all(
                    self._renderer,
                    [item.data],
                    buttons_for=lambda obj: [share_as_mail_button(obj)],
                    logger=self._logger,
                )
                fragments.extend(batch.fragments)
        if fragments:
            self._ui.show_cards(wrap_cards_page(fragments))
        else:
            self._logger.info("load_cards_empty", urls=len(urls))
        return True

    def _handle_request(self, action: ActionUri) -> bool:
        self._fetcher.fetch(action.with_scheme("https"))
        return True

    def _handle_reload(self, action: ActionUri) -> bool:
        text = self._fetcher.fetch(action.with_scheme("https"))
        objects = parse_json_ld(text)
        batch = render_all(self._renderer, objects, logger=self._logger)
        self._ui.show_cards(wrap_cards_page(batch.fragments))
        return True

    def _handle_barcode(self, action: ActionUri) -> bool:
        image = self._barcode.render(BARCODE_DEMO_PAYLOAD, "PDF_417", 600, 400)
        self._ui.show_image(image)
        return True

    def _handle_show_source(self, action: ActionUri) -> bool:
        texts = [b64url_decode_text(token) for token in action.payload_tokens()]
        if not texts:
            raise DecodeError("no source payload")
        source = texts[0]
        self._ui.show_source(source, lambda: self._clipboard.set_text("Copied jsonld", source))
        return True

    def _handle_script(self, action: ActionUri) -> bool:
        result = self._ui.evaluate_script(SCRIPT_PROBE)
        self._ui.show_alert(str(result))
        return True

    def _handle_alert(self, action: ActionUri) -> bool:
        self._ui.show_alert(action.raw)
        return True

    def _handle_clipboard(self, action: ActionUri) -> bool:
        content = action.scheme_specific_part
        if action.query:
            content += "?" + action.query
        content = unquote(content)
        self._clipboard.set_text(f"Copied {content}", content)
        return True

    def _handle_file(self, action: ActionUri) -> bool:
        self._clipboard.set_text("Link URL", action.raw)
        return True

    def _handle_other(self, action: ActionUri) -> bool:
        self._ui.open_url(action.raw)
        return True

    # Helpers

    def _default_account(self) -> Account:
        account = self._accounts.default_account()
        if account is None:
            raise MissingAccountError()
        return account

    def _temp_file(self, name: str) -> Path:
        directory = Path(self._config.paths.temp_dir)
        directory.mkdir(parents=True, exist_ok=True)
        return directory / name

    def _notify(self, text: str) -> None:
        self._ui.show_message(text)


def _decode_object(token: str) -> Mapping[str, Any]:
    text = b64url_decode_text(token)
    try:
        obj = json.loads(text)
    except ValueError as exc:
        raise DecodeError("payload is not JSON") from exc
    if not isinstance(obj, dict):
        raise DecodeError("payload is not a JSON object")
    return obj
