"""End-to-end tests for the weaveboard command line."""

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest
from pypdf import PdfWriter

from weaveboard import cli
from weaveboard.analysis import finder as finder_mod
from weaveboard.storage.metadata import STORE_KEY


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.setenv("WEAVE_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("WEAVE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    monkeypatch.delenv("WEAVE_MODEL", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path / "data"


def _stored(data_dir: Path) -> dict:
    return json.loads((data_dir / f"{STORE_KEY}.json").read_text(encoding="utf-8"))


def _active(data_dir: Path) -> dict:
    stored = _stored(data_dir)
    return stored["boards"][stored["lastActiveBoard"]]


def test_no_command_prints_help(data_dir: Path, capsys) -> None:
    assert cli.main([]) == 1
    assert "usage" in capsys.readouterr().out.lower()


def test_board_lifecycle(data_dir: Path, capsys) -> None:
    assert cli.main(["new", "Reading list"]) == 0
    assert _active(data_dir)["name"] == "Reading list"
    new_id = _stored(data_dir)["lastActiveBoard"]

    assert cli.main(["rename", "Shelf"]) == 0
    assert _active(data_dir)["name"] == "Shelf"

    assert cli.main(["boards"]) == 0
    out = capsys.readouterr().out
    assert "Shelf" in out and "Untitled" in out

    other = next(b for b in _stored(data_dir)["boards"] if b != new_id)
    assert cli.main(["switch", other]) == 0
    assert _stored(data_dir)["lastActiveBoard"] == other

    assert cli.main(["delete", new_id]) == 0
    assert list(_stored(data_dir)["boards"]) == [other]
    assert cli.main(["delete", other]) == 1
    assert cli.main(["switch", "nope"]) == 1


def test_items_and_weave(data_dir: Path, monkeypatch, capsys) -> None:
    payload = {
        "connections": [
            {
                "from": "2",
                "to": "3",
                "label": "Slow change",
                "explanation": "Both describe gradual accumulation.",
                "type": "metaphorical",
                "strength": 0.8,
                "surprise": 0.6,
            }
        ]
    }

    async def fake_acompletion(**kwargs):
        message = SimpleNamespace(content=json.dumps(payload))
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    monkeypatch.setattr(finder_mod, "acompletion", fake_acompletion)

    assert cli.main(["add-text", "Rivers carve canyons"]) == 0
    assert cli.main(["add-link", "example.com/habits", "--title", "Habits"]) == 0
    assert cli.main(["items"]) == 0
    assert "Habits" in capsys.readouterr().out

    assert cli.main(["weave", "--layer", "standard"]) == 0
    assert "Added 1 connection" in capsys.readouterr().out
    conns = _active(data_dir)["connections"]
    assert [(c["from"], c["to"], c["mode"]) for c in conns] == [("2", "3", "standard")]

    # Everything is connected now, so the model is not asked again.
    monkeypatch.setattr(finder_mod, "acompletion", None)
    assert cli.main(["weave"]) == 0
    assert "No new connections" in capsys.readouterr().out

    assert cli.main(["edges"]) == 0
    assert "Slow" in capsys.readouterr().out
    assert cli.main(["edges", "--paths", "--focus", "deeper"]) == 0
    assert "M " in capsys.readouterr().out

    out_svg = data_dir.parent / "board.svg"
    assert cli.main(["render", "-o", str(out_svg)]) == 0
    assert "Slow change" in out_svg.read_text(encoding="utf-8")

    assert cli.main(["remove", "3"]) == 0
    assert [n["id"] for n in _active(data_dir)["nodes"]] == ["2"]
    assert cli.main(["remove", "3"]) == 1

    assert cli.main(["clear"]) == 0
    assert _active(data_dir)["connections"] == []


def test_weave_failure_returns_error_code(data_dir: Path, monkeypatch, capsys) -> None:
    async def failing(**kwargs):
        raise TimeoutError("model timed out")

    monkeypatch.setattr(finder_mod, "acompletion", failing)
    cli.main(["add-text", "a"])
    cli.main(["add-text", "b"])

    assert cli.main(["weave", "--layer", "tensions"]) == 1
    assert "model timed out" in capsys.readouterr().out


def test_add_link_rejects_garbage(data_dir: Path, capsys) -> None:
    assert cli.main(["add-link", "not a url at all"]) == 1
    assert "Not a valid URL" in capsys.readouterr().err


def test_add_image_requires_file(data_dir: Path, capsys) -> None:
    assert cli.main(["add-image", "missing.png"]) == 1
    assert "File not found" in capsys.readouterr().err


def test_add_pdf(data_dir: Path, capsys) -> None:
    pdf = data_dir.parent / "paper.pdf"
    writer = PdfWriter()
    for _ in range(4):
        writer.add_blank_page(width=72, height=72)
    with pdf.open("wb") as f:
        writer.write(f)

    assert cli.main(["add-pdf", str(pdf), "--label", "Paper"]) == 0
    assert "4 pages" in capsys.readouterr().out
    (node,) = _active(data_dir)["nodes"]
    assert node["type"] == "pdf"
    assert "pdfDataUrl" not in node["data"] and "pdf_data_url" not in node["data"]

    assert cli.main(["add-pdf", "missing.pdf"]) == 1
    fake = data_dir.parent / "fake.pdf"
    fake.write_bytes(b"hello")
    assert cli.main(["add-pdf", str(fake)]) == 1
    assert "Not a readable PDF" in capsys.readouterr().err
