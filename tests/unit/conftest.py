"""Pytest fixtures for unit tests.

What:
  Make ``tests/unit`` importable for :mod:`fakes` and expose a configuration
  rooted in a per-test temporary directory plus a fully faked dispatcher host.

Why:
  Share and calendar actions write files below ``paths.temp_dir``; each test
  needs its own directory so assertions never see another test's files.

Interfaces:
  :func:`runtime`, :func:`host`.
"""

import io
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

from smlmail.compose.assembler import MessageAssembler
from smlmail.config import RuntimeConfig
from smlmail.protocol.dispatcher import ActionDispatcher
from smlmail.utils.logging import JsonLogger

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import (
    FakeAccountStore,
    FakeBarcode,
    FakeClipboard,
    FakeDelivery,
    FakeFetcher,
    FakeResolver,
    FakeShare,
    FakeUi,
    InlineExecutor,
    RecordingRenderer,
)


@pytest.fixture
def runtime(tmp_path: Path) -> RuntimeConfig:
    return RuntimeConfig.default(str(tmp_path / "share"))


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def host(runtime: RuntimeConfig, log_stream):
    """Yield a dispatcher wired to in-memory fakes.

    The namespace exposes every fake by role so tests can prime inputs
    (``host.fetcher.pages``, ``host.accounts.account``) and inspect effects.
    """

    logger = JsonLogger(stream=log_stream, component="test")
    fakes = SimpleNamespace(
        ui=FakeUi(),
        clipboard=FakeClipboard(),
        accounts=FakeAccountStore(),
        delivery=FakeDelivery(),
        fetcher=FakeFetcher(),
        share=FakeShare(),
        barcode=FakeBarcode(),
        renderer=RecordingRenderer(),
        attachments=FakeResolver(),
        config=runtime,
        logger=logger,
    )
    fakes.assembler = MessageAssembler(executor=InlineExecutor(), logger=logger)
    fakes.dispatcher = ActionDispatcher(
        ui=fakes.ui,
        clipboard=fakes.clipboard,
        accounts=fakes.accounts,
        delivery=fakes.delivery,
        fetcher=fakes.fetcher,
        share=fakes.share,
        barcode=fakes.barcode,
        assembler=fakes.assembler,
        renderer=fakes.renderer,
        attachments=fakes.attachments,
        config=runtime,
        logger=logger,
    )
    return fakes
