"""
Command-line chat front end for the Cortex agent.

Turns each ``FinalAnswer`` into a reply: generated SQL is executed and shown as
a table, search answers carry their citations, anything else is plain text.
"""

import asyncio
from typing import Callable, Optional

import pandas as pd
import structlog

from .client import CortexAgentClient
from .errors import QueryExecutionError
from .models import FinalAnswer
from .query_executor import SnowflakeQueryExecutor

logger = structlog.get_logger()

GENERATING_NOTICE = "Snowflake Cortex AI is generating a response..."


def render_table(df: pd.DataFrame) -> str:
    return f"```\n{df.to_string(index=False)}\n```"


def render_text_answer(answer: FinalAnswer) -> str:
    if answer.citations:
        return f"{answer.text}\nCitation: {answer.citations}"
    return answer.text


class CortexChatCLI:
    """Interactive chat loop backed by the Cortex agent client."""

    def __init__(
        self,
        agent_client: CortexAgentClient,
        executor_factory: Callable[[], SnowflakeQueryExecutor] = SnowflakeQueryExecutor,
    ):
        self.agent_client = agent_client
        self.executor_factory = executor_factory

    def _run_sql(self, sql: str) -> pd.DataFrame:
        with self.executor_factory() as executor:
            return executor.run_query(sql)

    async def respond(self, prompt: str) -> str:
        """Ask the agent and render its answer as a single reply."""
        answer = await self.agent_client.ask(prompt.strip())

        if answer.sql:
            try:
                df = await asyncio.to_thread(self._run_sql, answer.sql)
            except (QueryExecutionError, ValueError) as e:
                logger.error("Failed to run generated SQL", error=str(e))
                return f"Error running generated SQL: {e}"
            return render_table(df)

        return render_text_answer(answer)

    async def chat_loop(self, initial_message: Optional[str] = None, debug: bool = False):
        """
        Run an interactive chat loop.

        Args:
            initial_message: Optional first question to send
            debug: Whether to print debug information
        """
        print("Cortex Chat - Type 'quit' to exit")
        print(f"Using agent at: {self.agent_client.agent_url}")

        if initial_message:
            await self._answer(initial_message, debug)

        while True:
            try:
                message = input("> ")
                if message.lower() in ["quit", "exit", "q"]:
                    break
                if message.strip():
                    await self._answer(message, debug)
            except (KeyboardInterrupt, EOFError):
                break

        await self.agent_client.close()
        print("\nbye!")

    async def _answer(self, message: str, debug: bool) -> None:
        if debug:
            print(f"DEBUG: Sending request to {self.agent_client.agent_url}")
            print(f"DEBUG: Payload: {message}")
        print(GENERATING_NOTICE)
        print(f"agent: {await self.respond(message)}")
