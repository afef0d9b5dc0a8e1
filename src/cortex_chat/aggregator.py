"""Folds parsed stream events into the final answer for one agent request."""

import re
from enum import Enum
from typing import Iterable, Tuple

import structlog

from .models import (
    Accumulation,
    DoneEvent,
    FinalAnswer,
    MalformedEvent,
    MessageEvent,
    OtherEvent,
    SearchResult,
    SearchResults,
    SqlStatement,
    StreamEvent,
    decode_tool_result,
    has_content_list,
)

logger = structlog.get_logger()

# Footnote markers the search tool leaves in the answer text, e.g. 【†1†】
FOOTNOTE_MARKER = re.compile(r"【†[1-3]†】")


class AggregatorState(str, Enum):
    ACCUMULATING = "accumulating"
    FINALIZING = "finalizing"
    DONE = "done"


def apply_search_result(
    text: str, citations: str, search_result: SearchResult
) -> Tuple[str, str]:
    """
    Fold one search result into the answer text and the citations string.

    The citations string is rebuilt around everything collected so far, so
    earlier ``[Source: ...]`` tags end up nested inside later ones.
    """
    citations += search_result.text
    text = FOOTNOTE_MARKER.sub("", text).replace(" .", ".", 1) + "+"
    citations = f" \n {citations} \n\n[Source: {search_result.doc_id}]"
    return text, citations


class ResponseAggregator:
    """
    Accumulates message deltas for a single request, then extracts the answer.

    Lifecycle: accumulating -> finalizing -> done. Finalization happens when
    the byte stream ends, whether or not a done event was seen.
    """

    def __init__(self) -> None:
        self.accumulation = Accumulation()
        self.state = AggregatorState.ACCUMULATING
        self.malformed_count = 0
        self.saw_done = False

    def add(self, event: StreamEvent) -> None:
        if self.state is not AggregatorState.ACCUMULATING:
            raise RuntimeError(f"Cannot add events while {self.state.value}")

        if isinstance(event, MessageEvent):
            self.accumulation.text += event.delta.text
            self.accumulation.tool_results.extend(event.delta.tool_results)
        elif isinstance(event, MalformedEvent):
            self.malformed_count += 1
            logger.warning(
                "Skipping malformed SSE record",
                reason=event.reason,
                malformed_count=self.malformed_count,
            )
        elif isinstance(event, DoneEvent):
            self.saw_done = True
        elif isinstance(event, OtherEvent):
            logger.debug("Ignoring non-delta stream event", event_data=event.data)

    def add_all(self, events: Iterable[StreamEvent]) -> None:
        for event in events:
            self.add(event)

    def finalize(self) -> FinalAnswer:
        """Single extraction pass over the accumulated tool results."""
        if self.state is not AggregatorState.ACCUMULATING:
            raise RuntimeError(f"Aggregator already {self.state.value}")
        self.state = AggregatorState.FINALIZING

        text = self.accumulation.text
        sql = ""
        citations = ""

        for tool_result in self.accumulation.tool_results:
            if not has_content_list(tool_result):
                logger.warning(
                    "Unexpected structure in tool result content",
                    tool_result=tool_result,
                )
                continue

            for payload in decode_tool_result(tool_result):
                if isinstance(payload, SqlStatement):
                    sql = payload.sql
                elif isinstance(payload, SearchResults):
                    for search_result in payload.results:
                        text, citations = apply_search_result(
                            text, citations, search_result
                        )

        self.state = AggregatorState.DONE
        logger.info(
            "Finalized agent response",
            text_length=len(text),
            tool_results=len(self.accumulation.tool_results),
            has_sql=bool(sql),
            has_citations=bool(citations),
            saw_done=self.saw_done,
            malformed_records=self.malformed_count,
        )
        return FinalAnswer(text=text, sql=sql, citations=citations)
