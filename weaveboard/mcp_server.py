#!/usr/bin/env python3
"""
WeaveBoard MCP Server - let an agent place items and weave connections

Primary workflow:
1. List boards and switch to the one to work on
2. Add text items
3. Run an analysis layer (standard, deeper, tensions)
4. Read back the connections that were found
"""

import json
from enum import Enum
from typing import Optional

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel, ConfigDict, Field

from .analysis.controller import AnalysisStatus
from .config import load_config
from .core.models import Layer
from .errors import WeaveError
from .session import WeaveSession

# Initialize MCP server
mcp = FastMCP("weaveboard_mcp")

# Opened on first use
_session: Optional[WeaveSession] = None

# Constants
CHARACTER_LIMIT = 25000


class ResponseFormat(str, Enum):
    """Output format for tool responses."""
    MARKDOWN = "markdown"
    JSON = "json"


# ============================================================================
# Input Models
# ============================================================================

class ListBoardsInput(BaseModel):
    """Input for listing boards."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' for a readable table, 'json' for structured data"
    )


class AddTextInput(BaseModel):
    """Input for adding a text item."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    text: str = Field(..., description="Text content of the item", min_length=1, max_length=5000)
    x: Optional[float] = Field(default=None, description="X position on the board (optional)")
    y: Optional[float] = Field(default=None, description="Y position on the board (optional)")


class AnalyzeInput(BaseModel):
    """Input for running an analysis layer."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    layer: Layer = Field(
        default=Layer.STANDARD,
        description="'standard' for direct relationships, 'deeper' for subtler ones beyond those "
                    "already found, 'tensions' for contradictions"
    )


class ConnectionsInput(BaseModel):
    """Input for reading connections."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    layer: Optional[Layer] = Field(default=None, description="Only this layer (default: all layers)")
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' for a readable list, 'json' for structured data"
    )


class SwitchBoardInput(BaseModel):
    """Input for switching boards."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    board_id: str = Field(..., description="Id of the board to activate", min_length=1, max_length=100)


# ============================================================================
# Helper Functions
# ============================================================================

async def _get_session() -> WeaveSession:
    global _session
    if _session is None:
        session = WeaveSession.open(load_config())
        await session.load_active()
        _session = session
    return _session


def _storage_note(session: WeaveSession) -> str:
    warning = session.registry.storage_warning
    return f"\n\n**Warning:** {warning.message}" if warning else ""


def _truncate_response(response: str, message: str = "") -> str:
    """Truncate response if too long."""
    if len(response) <= CHARACTER_LIMIT:
        return response

    truncated = response[:CHARACTER_LIMIT - 200]
    truncated += f"\n\n---\n**TRUNCATED**: Response exceeded {CHARACTER_LIMIT} characters. {message}"
    return truncated


# ============================================================================
# MCP Tools
# ============================================================================

@mcp.tool(
    name="weave_list_boards",
    annotations={
        "title": "List Boards",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def weave_list_boards(params: ListBoardsInput) -> str:
    """
    List every board, most recently updated first.

    Returns:
        Board ids, names and update times; the active board is marked.
    """
    session = await _get_session()
    boards = session.registry.all_boards()
    active = session.registry.active_board_id

    if params.response_format == ResponseFormat.JSON:
        data = [{"id": b.id, "name": b.name, "updatedAt": b.updated_at, "active": b.id == active} for b in boards]
        return json.dumps({"boards": data, "count": len(data)}, indent=2)

    lines = ["# Boards", "", "| Active | Id | Name | Updated |", "|---|---|---|---|"]
    for b in boards:
        lines.append(f"| {'*' if b.id == active else ''} | {b.id} | {b.name} | {b.updated_at} |")
    return "\n".join(lines)


@mcp.tool(
    name="weave_add_text",
    annotations={
        "title": "Add Text Item",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": False
    }
)
async def weave_add_text(params: AddTextInput) -> str:
    """
    Add a text item to the active board.

    Args:
        params: Item text and optional position

    Returns:
        The new item's id, or an error message

    Example:
        weave_add_text(text="Memory is reconstructive")
    """
    session = await _get_session()
    try:
        item = session.add_text(params.text, x=params.x, y=params.y)
    except WeaveError as e:
        return f"Error: {e}"
    session.flush()
    return f"Added text item {item.id} to '{session.board.name}'." + _storage_note(session)


@mcp.tool(
    name="weave_analyze",
    annotations={
        "title": "Weave Connections",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True
    }
)
async def weave_analyze(params: AnalyzeInput) -> str:
    """
    Ask the model for connections between items on the active board.

    Re-running a layer only keeps connections that touch items not yet
    connected in that layer, and skips the model call entirely when every
    item is already connected.

    Args:
        params: Which analysis layer to run

    Returns:
        Summary of connections added, or why none were
    """
    session = await _get_session()
    try:
        outcome = await session.analyze(params.layer)
    except WeaveError as e:
        return f"Error: {e}"
    session.flush()

    layer = params.layer.value
    if outcome.rejected:
        return f"Analysis for '{layer}' is already running."
    if outcome.status is AnalysisStatus.ERROR:
        return f"Error: analysis failed: {outcome.error}"
    if outcome.discarded:
        return "Connections were cleared while analysis ran; the result was dropped."
    if outcome.status is AnalysisStatus.NO_NEW:
        return f"No new connections found for '{layer}'."

    lines = [f"# Added {len(outcome.kept)} connection(s) to '{layer}'", ""]
    for c in outcome.kept:
        lines.append(f"- **{c.label}** ({c.from_id} <-> {c.to_id}, {c.category}): {c.explanation}")
    return _truncate_response("\n".join(lines) + _storage_note(session))


@mcp.tool(
    name="weave_connections",
    annotations={
        "title": "Get Connections",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def weave_connections(params: ConnectionsInput) -> str:
    """
    List connections on the active board, in the order they were found.

    Args:
        params: Optional layer filter and response format
    """
    session = await _get_session()
    conns = session.graph.connections(params.layer)

    if params.response_format == ResponseFormat.JSON:
        data = [c.to_dict() for c in conns]
        return _truncate_response(json.dumps({"connections": data, "count": len(data)}, indent=2))

    if not conns:
        return "No connections yet. Use weave_analyze to find some."

    lines = [f"# Connections on '{session.board.name}' ({len(conns)})", ""]
    for c in conns:
        mode = c.layer.value if c.layer else ""
        lines.append(
            f"- [{mode}] {c.from_id} <-> {c.to_id}: **{c.label}** ({c.category}, "
            f"strength {c.strength:.2f}, surprise {c.surprise:.2f})"
        )
    return _truncate_response("\n".join(lines), "Filter by layer.")


@mcp.tool(
    name="weave_switch_board",
    annotations={
        "title": "Switch Board",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def weave_switch_board(params: SwitchBoardInput) -> str:
    """
    Make another board active. Pending edits to the current board are saved first.
    """
    session = await _get_session()
    if not await session.switch_board(params.board_id):
        return f"Error: Board '{params.board_id}' not found. Use weave_list_boards to see ids."
    return f"Switched to '{session.board.name}' ({len(session.items)} items, {len(session.graph)} connections)."


# Entry point for running the server
def main():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
