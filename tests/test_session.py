"""Tests for the editing session: debounced saves, board switching, items."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from pypdf import PdfWriter

from weaveboard.analysis.controller import AnalysisStatus
from weaveboard.analysis.finder import RelationshipFinder
from weaveboard.config import WeaveConfig
from weaveboard.core.debounce import Debouncer
from weaveboard.core.models import Connection, ItemKind, Layer
from weaveboard.core.registry import BoardRegistry
from weaveboard.errors import WeaveError
from weaveboard.session import WeaveSession, extract_domain, link_type_for, normalize_url
from weaveboard.storage.binary import MemoryBinaryStore
from weaveboard.storage.metadata import MemoryMetadataStore
from weaveboard.storage.persistence import DualTierPersistence

# 1x1 transparent PNG
PNG = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


class PairFinder(RelationshipFinder):
    """Connects the first two items it is given."""

    def __init__(self) -> None:
        self.calls = 0

    async def find(self, items, layer, prior_connections=()):
        self.calls += 1
        if len(items) < 2:
            return []
        return [Connection(from_id=items[0].id, to_id=items[1].id, label="Linked", category="thematic")]


def _session(metadata=None, binary=None, **kw) -> WeaveSession:
    registry = BoardRegistry(DualTierPersistence(metadata or MemoryMetadataStore(), binary or MemoryBinaryStore()))
    return WeaveSession(registry, PairFinder(), **kw)


def _write_pdf(path: Path, pages: int) -> Path:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    with path.open("wb") as f:
        writer.write(f)
    return path


def _stored(metadata: MemoryMetadataStore) -> dict:
    return json.loads(metadata.read() or "{}")


def test_debouncer_coalesces_bursts() -> None:
    async def scenario() -> None:
        fired = []
        d = Debouncer(0.01, lambda: fired.append(1))
        for _ in range(5):
            d.trigger()
        assert d.pending
        await asyncio.sleep(0.05)
        assert fired == [1]
        assert not d.pending

        d.trigger()
        assert d.flush()
        assert fired == [1, 1]
        assert not d.flush()

    asyncio.run(scenario())


def test_debouncer_survives_failing_callback() -> None:
    async def scenario() -> None:
        def boom() -> None:
            raise RuntimeError("nope")

        d = Debouncer(0.01, boom)
        d.trigger()
        assert d.flush()
        assert d.fired == 1

    asyncio.run(scenario())


def test_items_hidden_and_edits_refused_while_hydrating() -> None:
    session = _session()
    assert session.hydrating
    assert session.items == []
    with pytest.raises(WeaveError):
        session.add_text("too early")


def test_edits_are_saved_once_after_quiet_window() -> None:
    async def scenario() -> None:
        metadata = MemoryMetadataStore()
        session = _session(metadata, save_debounce_s=0.01)
        await session.load_active()
        before = metadata.writes

        session.add_text("one")
        session.add_text("two")
        session.add_text("three")
        assert metadata.writes == before
        assert session.save_pending

        await asyncio.sleep(0.05)
        assert metadata.writes == before + 1
        board = _stored(metadata)["boards"][session.registry.active_board_id]
        assert [n["data"]["text"] for n in board["nodes"]] == ["one", "two", "three"]
        assert board["nodeIdCounter"] == 4
        await session.close()

    asyncio.run(scenario())


def test_create_board_flushes_pending_save() -> None:
    async def scenario() -> None:
        metadata = MemoryMetadataStore()
        session = _session(metadata, save_debounce_s=60)
        await session.load_active()
        first = session.registry.active_board_id
        session.add_text("keep me")

        second = await session.create_board("Second")

        assert second != first
        assert session.items == []
        assert not session.save_pending
        stored = _stored(metadata)
        assert stored["lastActiveBoard"] == second
        assert stored["boards"][first]["nodes"][0]["data"]["text"] == "keep me"

        # The counter of the new board starts over; the old one is restored on return.
        assert session.add_text("fresh").id == "2"
        assert await session.switch_board(first)
        assert [i.fields["text"] for i in session.items] == ["keep me"]
        assert session.add_text("later").id == "3"
        await session.close()

    asyncio.run(scenario())


def test_switch_to_unknown_board_is_a_no_op() -> None:
    async def scenario() -> None:
        session = _session()
        await session.load_active()
        session.add_text("x")
        assert not await session.switch_board("missing")
        assert len(session.items) == 1
        await session.close()

    asyncio.run(scenario())


def test_remove_item_drops_binary_data_and_keeps_connections() -> None:
    async def scenario() -> None:
        binary = MemoryBinaryStore()
        session = _session(binary=binary, save_debounce_s=0.01)
        await session.load_active()
        board_id = session.registry.active_board_id
        image = session.add_item(ItemKind.IMAGE, {"image_data_url": "data:image/png;base64,AA"})
        text = session.add_text("caption")
        await session.analyze(Layer.STANDARD)
        session.flush()
        await session.registry.drain()
        assert f"{board_id}:{image.id}:image_data_url" in binary.data

        assert session.remove_item(f"node-{image.id}")
        await session.close()

        assert not [k for k in binary.data if k.startswith(f"{board_id}:{image.id}:")]
        assert [i.id for i in session.items] == [text.id]
        assert len(session.graph) == 1
        assert session.edges() == []
        assert not session.remove_item("404")

    asyncio.run(scenario())


def test_analyze_appends_and_schedules_save() -> None:
    async def scenario() -> None:
        metadata = MemoryMetadataStore()
        session = _session(metadata, save_debounce_s=0.01)
        await session.load_active()
        session.add_text("a")
        session.add_text("b")

        out = await session.analyze(Layer.STANDARD)
        assert out.status is AnalysisStatus.IDLE
        assert len(session.edges(Layer.STANDARD)) == 1

        await asyncio.sleep(0.05)
        conns = _stored(metadata)["boards"][session.registry.active_board_id]["connections"]
        assert conns[0]["label"] == "Linked"
        assert conns[0]["mode"] == "standard"

        again = await session.analyze(Layer.STANDARD)
        assert again.status is AnalysisStatus.NO_NEW
        assert session.controller.finder.calls == 1
        await session.close()

    asyncio.run(scenario())


def test_clear_connections_empties_graph() -> None:
    async def scenario() -> None:
        session = _session(save_debounce_s=0.01)
        await session.load_active()
        session.add_text("a")
        session.add_text("b")
        await session.analyze(Layer.TENSIONS)
        session.clear_connections()
        assert len(session.graph) == 0
        await session.close()

    asyncio.run(scenario())


def test_delete_active_board_loads_the_next_one() -> None:
    async def scenario() -> None:
        session = _session(save_debounce_s=60)
        await session.load_active()
        first = session.registry.active_board_id
        session.add_text("survivor")
        second = await session.create_board("Doomed")
        session.add_text("gone")

        assert await session.delete_board(second)

        assert session.registry.active_board_id == first
        assert [i.fields["text"] for i in session.items] == ["survivor"]
        assert not await session.delete_board(first)
        await session.close()

    asyncio.run(scenario())


def test_session_reopens_from_disk(tmp_path: Path) -> None:
    config = WeaveConfig(data_dir=str(tmp_path), save_debounce_s=0.01)

    async def write() -> str:
        session = WeaveSession.open(config, finder=PairFinder())
        await session.load_active()
        session.rename_board(session.registry.active_board_id, "Desk")
        img = tmp_path / "dot.png"
        img.write_bytes(PNG)
        session.add_image(img)
        session.add_link("example.com/post", title="Post")
        await session.close()
        return session.registry.active_board_id

    async def read(board_id: str) -> None:
        session = WeaveSession.open(config, finder=PairFinder())
        await session.load_active()
        assert session.registry.active_board_id == board_id
        assert session.board.name == "Desk"
        kinds = [i.kind for i in session.items]
        assert kinds == [ItemKind.IMAGE, ItemKind.LINK]
        assert session.items[0].fields["image_data_url"].startswith("data:image/png;base64,")
        assert session.items[1].fields["url"] == "https://example.com/post"

    asyncio.run(read(asyncio.run(write())))


def test_url_helpers() -> None:
    assert normalize_url("example.com") == "https://example.com"
    assert normalize_url("http://a.org/x") == "http://a.org/x"
    assert normalize_url("   ") is None
    assert extract_domain("https://www.youtube.com/watch?v=1") == "youtube.com"
    assert link_type_for("https://x.com/a/status/1") == "twitter"
    assert link_type_for("https://youtu.be/abc") == "youtube"
    assert link_type_for("https://example.com") == "generic"


class SlowBinaryStore(MemoryBinaryStore):
    """Writes land a little after they are requested."""

    async def set(self, key: str, value: str) -> None:
        await asyncio.sleep(0.01)
        await super().set(key, value)


def test_removing_an_item_right_after_a_save_leaves_no_binary_data(tmp_path: Path) -> None:
    async def scenario() -> None:
        binary = SlowBinaryStore()
        session = _session(binary=binary, save_debounce_s=60)
        await session.load_active()
        board_id = session.registry.active_board_id
        img = tmp_path / "dot.png"
        img.write_bytes(PNG)

        image = session.add_image(img)
        session.flush()
        assert session.remove_item(image.id)
        await session.close()

        assert [k for k in binary.data if k.startswith(f"{board_id}:{image.id}:")] == []

    asyncio.run(scenario())


def test_pdf_item_survives_reopen(tmp_path: Path) -> None:
    config = WeaveConfig(data_dir=str(tmp_path / "data"), save_debounce_s=0.01)
    pdf = _write_pdf(tmp_path / "notes.pdf", pages=2)

    async def write() -> None:
        session = WeaveSession.open(config, finder=PairFinder())
        await session.load_active()
        item = session.add_pdf(pdf)
        assert item.kind is ItemKind.PDF
        assert item.fields["page_count"] == 2
        assert item.fields["label"] == "notes"
        await session.close()

    async def read() -> None:
        session = WeaveSession.open(config, finder=PairFinder())
        await session.load_active()
        (item,) = session.items
        assert item.fields["file_name"] == "notes.pdf"
        assert item.fields["pdf_data_url"].startswith("data:application/pdf;base64,")

    asyncio.run(write())
    asyncio.run(read())
