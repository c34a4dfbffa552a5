"""Structured views over positional search replies.

``FT.SEARCH`` answers with a flat array ``[total, id1, score1?, payload1?,
fields1?, id2, ...]``. Which of the optional slots are present depends on
the request flags, so parsing replays the ``ReplyLayout`` of the Query that
produced the reply.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ftsearch.search.query import ReplyLayout


class Document(BaseModel):
    """Value object for a single search hit."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float | None = None
    payload: Any = None
    fields: dict[str, Any] = Field(default_factory=dict)


class SearchResult(BaseModel):
    """Total hit count plus the documents of the requested page."""

    model_config = ConfigDict(frozen=True)

    total: int
    documents: list[Document] = Field(default_factory=list)

    @property
    def ids(self) -> list[str]:
        return [doc.id for doc in self.documents]


def _text(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def pairs_to_dict(values: Sequence[Any] | None) -> dict[str, Any]:
    """Convert a flat ``[k1, v1, k2, v2, ...]`` reply into a dict."""
    if not values:
        return {}
    return {str(_text(values[i])): values[i + 1] for i in range(0, len(values) - 1, 2)}


def document_id_positions(reply: Sequence[Any], layout: ReplyLayout) -> range:
    """Indexes of the document-identifier slots in a search reply."""
    return range(1, len(reply), layout.stride)


def parse_search_reply(reply: Sequence[Any], layout: ReplyLayout) -> SearchResult:
    """Rebuild per-document records from a flat search reply."""
    if not reply:
        return SearchResult(total=0)

    documents: list[Document] = []
    for position in document_id_positions(reply, layout):
        cursor = position + 1
        score = None
        payload = None
        fields: dict[str, Any] = {}
        if layout.with_scores:
            score = float(_text(reply[cursor]))
            cursor += 1
        if layout.with_payloads:
            payload = _text(reply[cursor])
            cursor += 1
        if not layout.no_content and cursor < len(reply):
            fields = {key: _text(value) for key, value in pairs_to_dict(reply[cursor]).items()}
        documents.append(Document(id=str(_text(reply[position])), score=score, payload=payload, fields=fields))

    return SearchResult(total=int(reply[0]), documents=documents)
