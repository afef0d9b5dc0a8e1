"""Tests for rendering agent answers in the chat front end."""

from unittest.mock import AsyncMock, MagicMock, patch

import pandas as pd
import pytest

from cortex_chat.chat import GENERATING_NOTICE, CortexChatCLI, render_text_answer
from cortex_chat.errors import QueryExecutionError
from cortex_chat.models import FinalAnswer


def make_chat(answer: FinalAnswer, executor=None) -> CortexChatCLI:
    agent_client = MagicMock()
    agent_client.agent_url = "https://example.invalid/agent:run"
    agent_client.ask = AsyncMock(return_value=answer)
    agent_client.close = AsyncMock()

    if executor is None:
        executor = MagicMock()
    executor.__enter__.return_value = executor
    executor.__exit__.return_value = False
    return CortexChatCLI(agent_client, executor_factory=lambda: executor)


class TestRespond:
    """Tests for CortexChatCLI.respond()."""

    @pytest.mark.asyncio
    async def test_text_only(self):
        chat = make_chat(FinalAnswer(text="Hello there"))
        assert await chat.respond("  hi  ") == "Hello there"
        chat.agent_client.ask.assert_awaited_once_with("hi")

    @pytest.mark.asyncio
    async def test_citations_are_appended(self):
        answer = FinalAnswer(text="X.+", citations=" \n Doc \n\n[Source: D1]")
        chat = make_chat(answer)
        assert await chat.respond("q") == "X.+\nCitation:  \n Doc \n\n[Source: D1]"

    @pytest.mark.asyncio
    async def test_sql_is_executed_and_rendered(self):
        executor = MagicMock()
        executor.run_query.return_value = pd.DataFrame({"TOTAL": [42]})
        chat = make_chat(FinalAnswer(text="", sql="SELECT 42 AS total"), executor)

        reply = await chat.respond("q")

        executor.run_query.assert_called_once_with("SELECT 42 AS total")
        executor.__exit__.assert_called_once()
        assert reply.startswith("```\n")
        assert reply.endswith("\n```")
        assert "TOTAL" in reply and "42" in reply

    @pytest.mark.asyncio
    async def test_sql_failure_is_reported(self):
        executor = MagicMock()
        executor.run_query.side_effect = QueryExecutionError("Query failed: boom")
        chat = make_chat(FinalAnswer(sql="SELECT 1"), executor)

        assert await chat.respond("q") == "Error running generated SQL: Query failed: boom"

    @pytest.mark.asyncio
    async def test_failure_answer_is_rendered_as_text(self):
        chat = make_chat(FinalAnswer.failure())
        assert await chat.respond("q") == "An error occurred."


def test_render_text_answer_without_citations():
    assert render_text_answer(FinalAnswer(text="plain")) == "plain"


@pytest.mark.asyncio
async def test_chat_loop(capsys):
    chat = make_chat(FinalAnswer(text="Twelve trucks."))
    with patch("builtins.input", side_effect=["how many trucks?", "", "quit"]):
        await chat.chat_loop()

    out = capsys.readouterr().out
    assert GENERATING_NOTICE in out
    assert "agent: Twelve trucks." in out
    chat.agent_client.ask.assert_awaited_once_with("how many trucks?")
    chat.agent_client.close.assert_awaited_once()
