#!/usr/bin/env python3
"""
WeaveBoard CLI - boards of items woven together by an LLM

Usage:
    weaveboard boards                      List boards (active marked *)
    weaveboard new [name]                  Create a board and switch to it
    weaveboard add-text "some idea"        Add a text item to the active board
    weaveboard add-pdf paper.pdf           Add a PDF item
    weaveboard weave --layer deeper        Find connections for one layer
    weaveboard edges                       List connections with their layout
    weaveboard render -o board.png         Render the active board
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import WeaveConfig, load_config
from .core.models import Layer
from .errors import WeaveError

LAYER_CHOICES = [layer.value for layer in Layer]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weaveboard",
        description="WeaveBoard: find and lay out connections between items on a board",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    weaveboard new "Reading list"
    weaveboard add-text "The map is not the territory"
    weaveboard add-link https://example.com/essay --title "On maps"
    weaveboard weave --layer standard
    weaveboard edges --focus standard
    weaveboard render -o board.png
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--data-dir", help="Board storage directory (overrides config)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("boards", help="List boards")

    new_parser = subparsers.add_parser("new", help="Create a board and make it active")
    new_parser.add_argument("name", nargs="?", help="Board name")

    switch_parser = subparsers.add_parser("switch", help="Make another board active")
    switch_parser.add_argument("board_id", help="Board id")

    rename_parser = subparsers.add_parser("rename", help="Rename a board")
    rename_parser.add_argument("name", help="New name")
    rename_parser.add_argument("--board", "-b", help="Board id (default: active board)")

    delete_parser = subparsers.add_parser("delete", help="Delete a board and its stored data")
    delete_parser.add_argument("board_id", help="Board id")

    subparsers.add_parser("items", help="List items on the active board")

    text_parser = subparsers.add_parser("add-text", help="Add a text item")
    text_parser.add_argument("text", help="Item text")
    _add_position_args(text_parser)

    link_parser = subparsers.add_parser("add-link", help="Add a link item")
    link_parser.add_argument("url", help="URL (https:// is added when missing)")
    link_parser.add_argument("--title", "-t", default="", help="Link title")
    link_parser.add_argument("--description", "-d", default="", help="Link description")
    _add_position_args(link_parser)

    image_parser = subparsers.add_parser("add-image", help="Add an image item from a file")
    image_parser.add_argument("path", help="Image file")
    image_parser.add_argument("--label", "-l", default="", help="Image label")
    _add_position_args(image_parser)

    pdf_parser = subparsers.add_parser("add-pdf", help="Add a PDF item from a file")
    pdf_parser.add_argument("path", help="PDF file")
    pdf_parser.add_argument("--label", "-l", default="", help="PDF label")
    _add_position_args(pdf_parser)

    remove_parser = subparsers.add_parser("remove", help="Remove an item")
    remove_parser.add_argument("item_id", help="Item id")

    weave_parser = subparsers.add_parser("weave", help="Find connections between items")
    weave_parser.add_argument("--layer", "-l", choices=LAYER_CHOICES, default=Layer.STANDARD.value)

    subparsers.add_parser("clear", help="Remove every connection on the active board")

    edges_parser = subparsers.add_parser("edges", help="List connections and their edge layout")
    edges_parser.add_argument("--focus", "-f", choices=LAYER_CHOICES, help="Layer drawn in front")
    edges_parser.add_argument("--paths", action="store_true", help="Show SVG path data")

    render_parser = subparsers.add_parser("render", help="Render the active board as SVG or PNG")
    render_parser.add_argument("--output", "-o", default="weaveboard.png", help="Output file (.svg or .png)")
    render_parser.add_argument("--focus", "-f", choices=LAYER_CHOICES, help="Layer drawn in front")

    return parser


def _add_position_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--x", type=float, help="X position")
    p.add_argument("--y", type=float, help="Y position")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    config = load_config()
    if args.data_dir:
        config.data_dir = args.data_dir

    level = logging.DEBUG if args.verbose else getattr(logging, str(config.log_level).upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        return asyncio.run(run(args, config))
    except WeaveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


async def run(args: argparse.Namespace, config: WeaveConfig) -> int:
    # Import here to avoid slow startup for --help
    from .session import WeaveSession

    session = WeaveSession.open(config)
    await session.load_active()
    try:
        handler = COMMANDS[args.command]
        return await handler(session, args)
    finally:
        await session.close()
        warning = session.registry.storage_warning
        if warning is not None:
            from .display import print_warning

            print_warning(warning.message)


async def cmd_boards(session, args) -> int:
    from .display import print_boards

    print_boards(session.registry.all_boards(), session.registry.active_board_id)
    return 0


async def cmd_new(session, args) -> int:
    board_id = await session.create_board(args.name)
    print(f"Created board {board_id} ({session.board.name})")
    return 0


async def cmd_switch(session, args) -> int:
    if not await session.switch_board(args.board_id):
        print(f"Board not found: {args.board_id}", file=sys.stderr)
        return 1
    print(f"Switched to {session.board.name}")
    return 0


async def cmd_rename(session, args) -> int:
    board_id = args.board or session.registry.active_board_id
    if session.registry.get_board(board_id) is None:
        print(f"Board not found: {board_id}", file=sys.stderr)
        return 1
    session.rename_board(board_id, args.name)
    print(f"Renamed {board_id} to {args.name}")
    return 0


async def cmd_delete(session, args) -> int:
    if not await session.delete_board(args.board_id):
        print(f"Cannot delete {args.board_id} (unknown id or last board)", file=sys.stderr)
        return 1
    print(f"Deleted {args.board_id}; active board is {session.board.name}")
    return 0


async def cmd_items(session, args) -> int:
    from .display import print_items

    items = session.items
    if not items:
        print("No items on this board")
        return 0
    print_items(items)
    return 0


async def cmd_add_text(session, args) -> int:
    item = session.add_text(args.text, x=args.x, y=args.y)
    print(f"Added text item {item.id}")
    return 0


async def cmd_add_link(session, args) -> int:
    item = session.add_link(args.url, title=args.title, description=args.description, x=args.x, y=args.y)
    print(f"Added link item {item.id} ({item.fields['domain']})")
    return 0


async def cmd_add_image(session, args) -> int:
    path = Path(args.path)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 1
    item = session.add_image(path, label=args.label, x=args.x, y=args.y)
    print(f"Added image item {item.id}")
    return 0


async def cmd_add_pdf(session, args) -> int:
    path = Path(args.path)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 1
    item = session.add_pdf(path, label=args.label, x=args.x, y=args.y)
    print(f"Added pdf item {item.id} ({item.fields['page_count']} pages)")
    return 0


async def cmd_remove(session, args) -> int:
    if not session.remove_item(args.item_id):
        print(f"Item not found: {args.item_id}", file=sys.stderr)
        return 1
    print(f"Removed item {args.item_id}")
    return 0


async def cmd_weave(session, args) -> int:
    from .analysis.controller import AnalysisStatus
    from .display import print_outcome

    outcome = await session.analyze(Layer(args.layer))
    print_outcome(outcome)
    return 1 if outcome.status is AnalysisStatus.ERROR else 0


async def cmd_clear(session, args) -> int:
    n = len(session.graph)
    session.clear_connections()
    print(f"Cleared {n} connection(s)")
    return 0


async def cmd_edges(session, args) -> int:
    from .display import print_edges

    focus = Layer(args.focus) if args.focus else None
    edges = session.edges(focus)
    if not edges:
        print("No connections to draw")
        return 0
    print_edges(edges, focus=focus, show_paths=args.paths)
    return 0


async def cmd_render(session, args) -> int:
    focus = Layer(args.focus) if args.focus else None
    view = session.view(focus)
    out = Path(args.output)
    if out.suffix.lower() == ".svg":
        view.render(out)
    else:
        view.render_png(out)
    print(f"Board rendered to: {out}")
    return 0


COMMANDS = {
    "boards": cmd_boards,
    "new": cmd_new,
    "switch": cmd_switch,
    "rename": cmd_rename,
    "delete": cmd_delete,
    "items": cmd_items,
    "add-text": cmd_add_text,
    "add-link": cmd_add_link,
    "add-image": cmd_add_image,
    "add-pdf": cmd_add_pdf,
    "remove": cmd_remove,
    "weave": cmd_weave,
    "clear": cmd_clear,
    "edges": cmd_edges,
    "render": cmd_render,
}


if __name__ == "__main__":
    sys.exit(main())
