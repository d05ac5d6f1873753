"""Relationship finder: the external collaborator that proposes connections.

`RelationshipFinder` is the interface the controller depends on.
`LLMRelationshipFinder` implements it on top of litellm, so any provider
litellm supports can be configured with a `provider/model` string.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Sequence

from litellm import acompletion

from ..core.models import Connection, Item, ItemKind, Layer, canonical_item_id
from ..errors import MissingApiKeyError, RelationshipFinderError
from .eligibility import eligible_items
from .prompts import format_prior_connections, system_prompt
from .response import parse_connections_payload

logger = logging.getLogger(__name__)

_PROVIDER_KEYS = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


class RelationshipFinder:
    async def find(
        self,
        items: Sequence[Item],
        layer: Layer,
        prior_connections: Sequence[Connection] = (),
    ) -> List[Connection]:
        """Return candidate connections. Raises `RelationshipFinderError` on failure."""
        raise NotImplementedError


def _describe_item(item: Item) -> List[Dict[str, Any]]:
    f = item.fields
    iid = canonical_item_id(item.id)

    if item.kind == ItemKind.TEXT:
        return [{"type": "text", "text": f'[Item {iid} - Text]:\n"{f.get("text", "")}"\n'}]

    if item.kind == ItemKind.IMAGE:
        label = f.get("label") or f.get("file_name") or ""
        return [
            {"type": "text", "text": f'[Item {iid} - Image] (label: "{label}"):\n'},
            {"type": "image_url", "image_url": {"url": f.get("image_data_url", "")}},
        ]

    if item.kind == ItemKind.LINK:
        text = f"[Item {iid} - Link] ({f.get('domain', '')}):\n"
        text += f"Title: {f.get('title', '')}\n"
        if f.get("description"):
            text += f"Description: {f['description']}\n"
        text += f"URL: {f.get('url', '')}\n"
        if f.get("link_type") == "twitter" and f.get("tweet_text"):
            author = f"{f.get('author_name') or ''} {f.get('author_handle') or ''}".strip()
            text += f'Tweet by {author}: "{f["tweet_text"]}"\n'
        if f.get("link_type") == "youtube" and f.get("author_name"):
            text += f"Channel: {f['author_name']}\n"
        return [{"type": "text", "text": text}]

    if item.kind == ItemKind.PDF:
        label = f.get("label") or f.get("file_name") or ""
        pages = int(f.get("page_count") or 0)
        unit = "page" if pages == 1 else "pages"
        blocks: List[Dict[str, Any]] = [
            {"type": "text", "text": f'[Item {iid} - PDF] (label: "{label}", {pages} {unit}):\n'}
        ]
        if f.get("thumbnail_data_url"):
            blocks.append({"type": "image_url", "image_url": {"url": f["thumbnail_data_url"]}})
        return blocks

    return []


def build_user_content(
    items: Sequence[Item],
    layer: Layer,
    prior_connections: Sequence[Connection] = (),
) -> List[Dict[str, Any]]:
    content: List[Dict[str, Any]] = [
        {
            "type": "text",
            "text": (
                f"There are {len(items)} items on the board. Analyze them and identify meaningful, "
                "non-obvious relationships between pairs.\n"
            ),
        }
    ]
    for item in items:
        content.extend(_describe_item(item))
    if layer.uses_prior_connections and prior_connections:
        content.append({"type": "text", "text": format_prior_connections(prior_connections)})
    return content


class LLMRelationshipFinder(RelationshipFinder):
    def __init__(self, model: str, *, max_tokens: int = 4096, api_key: Optional[str] = None):
        self.model = model
        self.max_tokens = max_tokens
        self.api_key = api_key

    def _check_api_key(self) -> None:
        if self.api_key:
            return
        provider = self.model.split("/", 1)[0] if "/" in self.model else ""
        env_name = _PROVIDER_KEYS.get(provider)
        if env_name and not os.getenv(env_name):
            raise MissingApiKeyError(f"Missing {env_name}. Add it to your environment or .env file.")

    async def find(
        self,
        items: Sequence[Item],
        layer: Layer,
        prior_connections: Sequence[Connection] = (),
    ) -> List[Connection]:
        content_items = eligible_items(items)
        if len(content_items) < 2:
            return []

        self._check_api_key()
        kwargs: Dict[str, Any] = {}
        if self.api_key:
            kwargs["api_key"] = self.api_key

        try:
            response = await acompletion(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt(layer)},
                    {"role": "user", "content": build_user_content(content_items, layer, prior_connections)},
                ],
                **kwargs,
            )
        except Exception as e:
            raise RelationshipFinderError(f"Finder request failed: {e}") from e

        try:
            raw = response.choices[0].message.content or ""
        except (AttributeError, IndexError) as e:
            raise RelationshipFinderError("No text content in finder response") from e
        if not raw.strip():
            raise RelationshipFinderError("No text content in finder response")

        candidates = parse_connections_payload(raw)
        logger.debug("Finder returned %d candidate(s) for layer %s", len(candidates), layer.value)
        return candidates
