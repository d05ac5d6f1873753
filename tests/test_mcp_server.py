"""Tests for the MCP tool functions, called directly."""

from __future__ import annotations

import asyncio
import json

import pytest

from weaveboard import mcp_server
from weaveboard.analysis.finder import RelationshipFinder
from weaveboard.core.models import Connection, Layer
from weaveboard.core.registry import BoardRegistry
from weaveboard.session import WeaveSession
from weaveboard.storage.binary import MemoryBinaryStore
from weaveboard.storage.metadata import MemoryMetadataStore
from weaveboard.storage.persistence import DualTierPersistence


class ChainFinder(RelationshipFinder):
    async def find(self, items, layer, prior_connections=()):
        return [
            Connection(from_id=a.id, to_id=b.id, label=f"{a.id}->{b.id}", category="thematic")
            for a, b in zip(items, items[1:])
        ]


@pytest.fixture
def session(monkeypatch) -> WeaveSession:
    registry = BoardRegistry(DualTierPersistence(MemoryMetadataStore(), MemoryBinaryStore()))
    s = WeaveSession(registry, ChainFinder(), save_debounce_s=60)
    monkeypatch.setattr(mcp_server, "_session", s)
    return s


def test_add_analyze_and_read_back(session: WeaveSession) -> None:
    async def scenario() -> None:
        await session.load_active()
        for text in ("first", "second", "third"):
            out = await mcp_server.weave_add_text(mcp_server.AddTextInput(text=f"  {text} "))
            assert out.startswith("Added text item")
        assert [i.fields["text"] for i in session.items] == ["first", "second", "third"]
        assert not session.save_pending

        out = await mcp_server.weave_analyze(mcp_server.AnalyzeInput(layer=Layer.DEEPER))
        assert "Added 2 connection(s) to 'deeper'" in out

        again = await mcp_server.weave_analyze(mcp_server.AnalyzeInput(layer=Layer.DEEPER))
        assert again == "No new connections found for 'deeper'."

        raw = await mcp_server.weave_connections(
            mcp_server.ConnectionsInput(response_format=mcp_server.ResponseFormat.JSON)
        )
        data = json.loads(raw)
        assert data["count"] == 2
        assert [c["mode"] for c in data["connections"]] == ["deeper", "deeper"]

        empty = await mcp_server.weave_connections(mcp_server.ConnectionsInput(layer=Layer.TENSIONS))
        assert empty.startswith("No connections yet")
        await session.close()

    asyncio.run(scenario())


def test_list_and_switch_boards(session: WeaveSession) -> None:
    async def scenario() -> None:
        await session.load_active()
        first = session.registry.active_board_id
        await session.create_board("Second")

        raw = await mcp_server.weave_list_boards(
            mcp_server.ListBoardsInput(response_format=mcp_server.ResponseFormat.JSON)
        )
        boards = json.loads(raw)["boards"]
        assert {b["name"] for b in boards} == {"Untitled Board", "Second"}
        assert [b["id"] for b in boards if b["active"]] != [first]

        out = await mcp_server.weave_switch_board(mcp_server.SwitchBoardInput(board_id=first))
        assert out.startswith("Switched to 'Untitled Board'")
        missing = await mcp_server.weave_switch_board(mcp_server.SwitchBoardInput(board_id="nope"))
        assert missing.startswith("Error:")
        await session.close()

    asyncio.run(scenario())


def test_inputs_reject_unknown_fields() -> None:
    with pytest.raises(ValueError):
        mcp_server.AddTextInput(text="x", colour="red")
    with pytest.raises(ValueError):
        mcp_server.AddTextInput(text="   ")


def test_truncate_response() -> None:
    long = "x" * (mcp_server.CHARACTER_LIMIT + 10)
    out = mcp_server._truncate_response(long, "Filter by layer.")
    assert len(out) < len(long)
    assert out.endswith("Filter by layer.")
    assert mcp_server._truncate_response("short") == "short"
