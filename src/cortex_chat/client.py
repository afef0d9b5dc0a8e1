"""
Cortex agent client.

Sends a single user question to the agent endpoint together with the search
and text-to-SQL tool declarations, consumes the SSE response body as it
arrives and folds it into a ``FinalAnswer``.
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from .aggregator import ResponseAggregator
from .auth import KeyPairJWTGenerator
from .errors import TransportError
from .models import FinalAnswer
from .sse import aiter_stream_events

logger = structlog.get_logger()

SEARCH_TOOL_TYPE = "cortex_search"
ANALYST_TOOL_TYPE = "cortex_analyst_text_to_sql"
DEFAULT_SEARCH_TOOL_NAME = "vehicles_info_search"
DEFAULT_ANALYST_TOOL_NAME = "supply_chain"


class CortexAgentClient:
    """Async client for the Snowflake Cortex agent endpoint."""

    def __init__(
        self,
        agent_url: str,
        model: str,
        search_service: str,
        semantic_model: str,
        jwt_generator: KeyPairJWTGenerator,
        search_max_results: int = 1,
        timeout: float = 120.0,
        search_tool_name: str = DEFAULT_SEARCH_TOOL_NAME,
        analyst_tool_name: str = DEFAULT_ANALYST_TOOL_NAME,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the agent client.

        Args:
            agent_url: Full URL of the agent endpoint
            model: Model the agent should answer with
            search_service: Cortex search service backing the search tool
            semantic_model: Semantic model file reference for text-to-SQL
            jwt_generator: Signer that supplies the bearer token
            search_max_results: Maximum number of search results per answer
            timeout: HTTP client timeout in seconds
            search_tool_name: Name the search tool is declared under
            analyst_tool_name: Name the text-to-SQL tool is declared under
            transport: Optional httpx transport, mainly for tests
        """
        self.agent_url = agent_url
        self.model = model
        self.search_service = search_service
        self.semantic_model = semantic_model
        self.jwt_generator = jwt_generator
        self.search_max_results = search_max_results
        self.timeout = timeout
        self.search_tool_name = search_tool_name
        self.analyst_tool_name = analyst_tool_name
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_config(
        cls, config, jwt_generator: Optional[KeyPairJWTGenerator] = None
    ) -> "CortexAgentClient":
        return cls(
            agent_url=config.agent_url,
            model=config.model,
            search_service=config.search_service,
            semantic_model=config.semantic_model,
            jwt_generator=jwt_generator or KeyPairJWTGenerator.from_config(config),
            search_max_results=config.search_max_results,
            timeout=config.timeout,
        )

    def build_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        headers.update(self.jwt_generator.get_headers())
        return headers

    def build_request_body(
        self, query: str, limit: Optional[int] = None
    ) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "user", "content": [{"type": "text", "text": query}]}
            ],
            "tools": [
                {
                    "tool_spec": {
                        "type": SEARCH_TOOL_TYPE,
                        "name": self.search_tool_name,
                    }
                },
                {
                    "tool_spec": {
                        "type": ANALYST_TOOL_TYPE,
                        "name": self.analyst_tool_name,
                    }
                },
            ],
            "tool_resources": {
                self.search_tool_name: {
                    "name": self.search_service,
                    "max_results": limit or self.search_max_results,
                    "title_column": "title",
                    "id_column": "relative_path",
                },
                self.analyst_tool_name: {"semantic_model_file": self.semantic_model},
            },
        }

    async def ask(self, query: str, limit: Optional[int] = None) -> FinalAnswer:
        """
        Ask the agent a question.

        Transport failures are logged and collapse into the generic failure
        answer, so callers never see an exception from the network.
        """
        try:
            return await self.retrieve_response(query, limit)
        except TransportError as e:
            logger.error(
                "Error fetching response from agent",
                agent_url=self.agent_url,
                status_code=e.status_code,
                error=e.message,
            )
            return FinalAnswer.failure()

    async def retrieve_response(
        self, query: str, limit: Optional[int] = None
    ) -> FinalAnswer:
        """
        Send the query and parse the streamed answer.

        Raises:
            TransportError: On connection errors, timeouts or a non-success status
        """
        logger.info(
            "Sending query to agent",
            agent_url=self.agent_url,
            model=self.model,
            query_length=len(query),
        )

        try:
            async with self.client.stream(
                "POST",
                self.agent_url,
                headers=self.build_headers(),
                json=self.build_request_body(query, limit),
            ) as response:
                if not response.is_success:
                    body = await response.aread()
                    logger.error(
                        "Agent endpoint returned error",
                        status_code=response.status_code,
                        response_text=body[:500].decode("utf-8", errors="replace"),
                    )
                    raise TransportError(
                        f"Response status: {response.status_code}",
                        status_code=response.status_code,
                    )
                return await self._parse_response(response)

        except httpx.TimeoutException as e:
            raise TransportError(
                f"Timeout after {self.timeout}s waiting for agent: {e}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

    async def _parse_response(self, response: httpx.Response) -> FinalAnswer:
        aggregator = ResponseAggregator()
        async for event in aiter_stream_events(response.aiter_bytes()):
            aggregator.add(event)
        return aggregator.finalize()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "CortexAgentClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
