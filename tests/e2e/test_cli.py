"""End-to-end tests for the ``smlmail`` command-line interface.

What:
  Run the Typer commands against files in a temporary directory: encode a
  payload into an ``.eml``, view it back, extract markup from HTML and
  dispatch action URIs through the console host.

Why:
  The CLI wires configuration, composer, assembler, view and dispatcher the
  way a host application does; these tests catch wiring regressions unit
  tests cannot see.

How:
  Most tests use :class:`typer.testing.CliRunner`. One test launches
  ``python -m smlmail.cli`` in a subprocess with ``PYTHONPATH`` pointing at the
  source tree, mirroring operator usage.

Invariants & Safety:
  - No test needs network access.
"""

from __future__ import annotations

import json
import os
import pathlib
import subprocess
import sys

from typer.testing import CliRunner

from smlmail.cli import app
from smlmail.protocol.uri import build_action_uri
from smlmail.utils.mime import iter_leaf_parts, parse_message, part_text

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
runner = CliRunner()

LAUNCH = {
    "@context": "https://schema.org",
    "@type": "Event",
    "name": "Launch",
    "startDate": "2024-05-01T18:00:00+02:00",
    "location": {"@type": "Place", "name": "Pad 39A"},
}


def _json_lines(output: str):
    records = []
    for line in output.splitlines():
        line = line.strip()
        if not line.startswith("{"):
            continue
        record = json.loads(line)
        if "@type" in record:
            records.append(record)
    return records


def test_compose_writes_dedicated_part_message(tmp_path: pathlib.Path) -> None:
    payload = tmp_path / "launch.json"
    payload.write_text(json.dumps(LAUNCH), encoding="utf-8")
    out = tmp_path / "launch.eml"

    result = runner.invoke(
        app,
        ["compose", str(payload), "--out", str(out), "--from", "alice@example.org", "--to", "bob@example.net", "--subject", "Launch"],
    )

    assert result.exit_code == 0, result.output
    message = parse_message(out.read_bytes())
    assert message["Subject"] == "Launch"
    structured = [part for part in iter_leaf_parts(message) if part.get_content_type() == "application/ld+json"]
    assert json.loads(part_text(structured[0])) == LAUNCH


def test_compose_embedded_then_view(tmp_path: pathlib.Path) -> None:
    payload = tmp_path / "launch.json"
    payload.write_text(json.dumps(LAUNCH), encoding="utf-8")
    eml = tmp_path / "launch.eml"
    page = tmp_path / "view.html"

    composed = runner.invoke(
        app,
        ["compose", str(payload), "-o", str(eml), "--from", "alice@example.org", "--variant", "embedded_in_html"],
    )
    viewed = runner.invoke(app, ["view", str(eml), "--out", str(page)])

    assert composed.exit_code == 0, composed.output
    assert viewed.exit_code == 0, viewed.output
    html = page.read_text(encoding="utf-8")
    assert "ACTUAL HTML MAIL BELOW" in html
    assert "xshareascalendar://" in html


def test_compose_rejects_empty_payload(tmp_path: pathlib.Path) -> None:
    payload = tmp_path / "empty.json"
    payload.write_text("[]", encoding="utf-8")

    result = runner.invoke(app, ["compose", str(payload), "-o", str(tmp_path / "x.eml"), "--from", "a@example.org"])

    assert result.exit_code == 1
    assert not (tmp_path / "x.eml").exists()


def test_extract_prints_json_lines(tmp_path: pathlib.Path) -> None:
    page = tmp_path / "page.html"
    page.write_text(
        '<div itemscope itemtype="https://schema.org/Recipe"><span itemprop="name">Pie</span></div>',
        encoding="utf-8",
    )

    result = runner.invoke(app, ["extract", str(page)])

    assert result.exit_code == 0, result.output
    assert _json_lines(result.output) == [{"@context": "https://schema.org", "@type": "Recipe", "name": "Pie"}]


def test_dispatch_clipboard_and_share(tmp_path: pathlib.Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(f"paths:\n  temp_dir: {tmp_path / 'share'}\n", encoding="utf-8")
    uri = build_action_uri("xshareasfile", json.dumps(LAUNCH).encode("utf-8"), {"fileName": "launch.json"})

    copied = runner.invoke(app, ["dispatch", "xclipboard:482913"])
    shared = runner.invoke(app, ["dispatch", uri, "--config", str(config)])

    assert "clipboard (Copied 482913): 482913" in copied.output
    assert shared.exit_code == 0, shared.output
    assert json.loads((tmp_path / "share" / "launch.json").read_text(encoding="utf-8")) == LAUNCH


def test_dispatch_confirm_sends_to_outbox(tmp_path: pathlib.Path) -> None:
    outbox = tmp_path / "outbox"

    result = runner.invoke(
        app,
        ["dispatch", "mailto:shop@example.org?action=ConfirmAction", "--from", "me@example.org", "--outbox", str(outbox)],
    )

    assert result.exit_code == 0, result.output
    assert "message: Sent ConfirmAction" in result.output
    (sent,) = sorted(outbox.glob("*.eml"))
    message = parse_message(sent.read_bytes())
    assert message["To"] == "shop@example.org"


def test_dispatch_without_account_asks_for_setup() -> None:
    result = runner.invoke(app, ["dispatch", "mailto:shop@example.org?action=CancelAction"])

    assert "no account configured" in result.output


def test_cli_module_runs_as_script(tmp_path: pathlib.Path) -> None:
    page = tmp_path / "page.html"
    page.write_text(f'<script type="application/ld+json">{json.dumps(LAUNCH)}</script>', encoding="utf-8")
    env = dict(os.environ)
    env["PYTHONPATH"] = f"{PROJECT_ROOT / 'smlmail' / 'src'}{os.pathsep}{env.get('PYTHONPATH', '')}"

    completed = subprocess.run(
        [sys.executable, "-m", "smlmail.cli", "extract", str(page)],
        text=True,
        capture_output=True,
        cwd=PROJECT_ROOT,
        env=env,
    )

    assert completed.returncode == 0, completed.stderr
    assert _json_lines(completed.stdout)[0]["name"] == "Launch"
