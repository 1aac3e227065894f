from __future__ import annotations

import json

import httpx
from click.testing import CliRunner

from threadview import client as client_mod
from threadview.cli import cli

from .utils import DISCLOSED_TEXT, history_payload, raw_message

_RealClient = client_mod.HistoryClient

PAYLOAD = history_payload(
    raw_message("human", "h1", "Any news from the seller?"),
    raw_message("ai", "a1", DISCLOSED_TEXT),
    raw_message("ai", "a2", "Shall I arrange a viewing?"),
)


def _patch_client(monkeypatch, handler):
    class _MockedClient(_RealClient):
        def __init__(self, *args, **kwargs):
            kwargs["transport"] = httpx.MockTransport(handler)
            super().__init__(*args, **kwargs)

    monkeypatch.setattr(client_mod, "HistoryClient", _MockedClient)


def test_show_prints_transcript_and_summary(monkeypatch):
    _patch_client(monkeypatch, lambda request: httpx.Response(200, json=PAYLOAD))
    result = CliRunner().invoke(cli, ["show", "t1"])

    assert result.exit_code == 0, result.output
    assert "Any news from the seller?" in result.output
    assert "Shall I arrange a viewing?" in result.output
    assert "Vetting answers from the matched seller (2):" in result.output
    assert "Yes, cats only." in result.output
    # The Q&A block itself only appears in the summary
    assert "Here are 2 vetting answers" not in result.output


def test_show_summary_only(monkeypatch):
    _patch_client(monkeypatch, lambda request: httpx.Response(200, json=PAYLOAD))
    result = CliRunner().invoke(cli, ["show", "t1", "--summary-only"])

    assert result.exit_code == 0, result.output
    assert "Any news from the seller?" not in result.output
    assert "Are pets allowed?" in result.output


def test_show_unknown_thread_fails(monkeypatch):
    _patch_client(monkeypatch, lambda request: httpx.Response(404))
    result = CliRunner().invoke(cli, ["show", "missing"])

    assert result.exit_code == 1
    assert "No messages found for thread missing" in result.output


def test_watch_prints_new_messages(monkeypatch):
    _patch_client(monkeypatch, lambda request: httpx.Response(200, json=PAYLOAD))
    result = CliRunner().invoke(cli, ["watch", "t1", "--interval", "0", "--max-polls", "2"])

    assert result.exit_code == 0, result.output
    assert result.output.count("Any news from the seller?") == 1
    assert "Vetting summary updated" in result.output


def test_check(monkeypatch):
    _patch_client(monkeypatch, lambda request: httpx.Response(200, json={}))
    result = CliRunner().invoke(cli, ["check"])
    assert result.exit_code == 0
    assert "is reachable" in result.output

    _patch_client(monkeypatch, lambda request: httpx.Response(500))
    result = CliRunner().invoke(cli, ["check"])
    assert result.exit_code == 1
    assert "Failed to connect" in result.output


def test_config_prints_mcp_snippet():
    result = CliRunner().invoke(cli, ["config"])
    assert result.exit_code == 0
    start = result.output.index("{")
    end = result.output.rindex("}") + 1
    snippet = json.loads(result.output[start:end])
    assert "threadview" in snippet["mcpServers"]
