"""
Wire and result models for the Cortex agent stream.

Tool results arrive as loosely shaped JSON. ``decode_tool_result`` turns each
one into explicit payload variants so the aggregator never digs through raw dicts.
"""

from dataclasses import dataclass, field
from typing import Any, List, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = structlog.get_logger()

ERROR_ANSWER_TEXT = "An error occurred."


class SearchResult(BaseModel):
    """One document snippet returned by the search tool."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    text: str = ""
    doc_id: str = ""

    @field_validator("text", "doc_id", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class SqlStatement(BaseModel):
    """SQL generated by the text-to-SQL tool."""

    sql: str


class SearchResults(BaseModel):
    """Snippets retrieved by the search tool, in delivery order."""

    results: List[SearchResult] = Field(default_factory=list)


ToolPayload = Union[SqlStatement, SearchResults]


def decode_tool_result(tool_result: Any) -> List[ToolPayload]:
    """
    Decode one opaque tool result into its SQL and search payloads.

    Only content items carrying a ``json`` object contribute. An object with
    both ``sql`` and ``searchResults`` yields both, SQL first. Empty SQL is
    ignored.
    """
    payloads: List[ToolPayload] = []
    if not isinstance(tool_result, dict):
        return payloads

    content = tool_result.get("content")
    if not isinstance(content, list):
        return payloads

    for item in content:
        if not isinstance(item, dict):
            continue
        body = item.get("json")
        if not isinstance(body, dict):
            continue

        sql = body.get("sql")
        if isinstance(sql, str) and sql:
            payloads.append(SqlStatement(sql=sql))

        raw_results = body.get("searchResults")
        if isinstance(raw_results, list) and raw_results:
            results = []
            for raw in raw_results:
                try:
                    results.append(SearchResult.model_validate(raw))
                except ValidationError as e:
                    logger.warning(
                        "Skipping unreadable search result",
                        search_result=raw,
                        error=str(e),
                    )
                    continue
            payloads.append(SearchResults(results=results))

    return payloads


def has_content_list(tool_result: Any) -> bool:
    return isinstance(tool_result, dict) and isinstance(tool_result.get("content"), list)


class FinalAnswer(BaseModel):
    """The answer reconstructed from one agent response stream."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    sql: str = ""
    citations: str = ""

    @classmethod
    def failure(cls) -> "FinalAnswer":
        return cls(text=ERROR_ANSWER_TEXT)


@dataclass
class MessageDelta:
    """Text and tool results carried by a single ``message.delta`` event."""

    text: str = ""
    tool_results: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class MessageEvent:
    delta: MessageDelta


@dataclass(frozen=True)
class DoneEvent:
    pass


@dataclass(frozen=True)
class OtherEvent:
    data: Any


@dataclass(frozen=True)
class MalformedEvent:
    reason: str
    raw: str = ""


StreamEvent = Union[MessageEvent, DoneEvent, OtherEvent, MalformedEvent]


@dataclass
class Accumulation:
    """Running text and tool results for one request. Append-only."""

    text: str = ""
    tool_results: List[Any] = field(default_factory=list)
