#!/usr/bin/env python3
"""
Chat with a Snowflake Cortex agent from the command line.

Usage:
    cortex-chat                         # interactive
    cortex-chat --query "Which parts are late?"
"""

import argparse
import asyncio
import sys
from typing import Optional

from .chat import CortexChatCLI
from .client import CortexAgentClient
from .config import AgentConfig
from .errors import CredentialError
from .logging_config import configure_logging


async def run(query: Optional[str] = None, debug: bool = False) -> int:
    logger = configure_logging("cortex-chat")

    try:
        config = AgentConfig()
        agent_client = CortexAgentClient.from_config(config)
    except (ValueError, CredentialError) as e:
        logger.error("Failed to start Cortex chat", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    chat = CortexChatCLI(agent_client)
    if query:
        async with agent_client:
            print(await chat.respond(query))
        return 0

    await chat.chat_loop(debug=debug)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with a Snowflake Cortex agent")
    parser.add_argument("--query", help="Ask a single question and exit")
    parser.add_argument(
        "--debug", action="store_true", help="Print request debug information"
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(run(args.query, args.debug)))


if __name__ == "__main__":
    main()
