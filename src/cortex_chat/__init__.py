"""
Client library for the Snowflake Cortex agent API.

Signs key-pair JWTs, streams the agent's SSE answer and reconstructs the final
text, generated SQL and search citations from it.
"""

__version__ = "0.1.0"

from .aggregator import ResponseAggregator
from .auth import Credential, KeyPairJWTGenerator, Principal, prepare_account_name
from .client import CortexAgentClient
from .errors import (
    CortexChatError,
    CredentialError,
    ParseError,
    QueryExecutionError,
    TransportError,
)
from .models import FinalAnswer
from .sse import SSERecordBuffer, parse_sse_record

__all__ = [
    "CortexAgentClient",
    "KeyPairJWTGenerator",
    "Principal",
    "Credential",
    "prepare_account_name",
    "ResponseAggregator",
    "SSERecordBuffer",
    "parse_sse_record",
    "FinalAnswer",
    "CortexChatError",
    "CredentialError",
    "TransportError",
    "ParseError",
    "QueryExecutionError",
]
