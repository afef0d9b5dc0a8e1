"""Environment-driven configuration for the agent client and query executor."""

import os
from typing import Optional

DEFAULT_MODEL = "claude-3-5-sonnet"
DEFAULT_TOKEN_SECONDS = 180 * 60


def _required(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"{name} environment variable is required")
    return value


class AgentConfig:
    """Configuration for the Cortex agent client."""

    def __init__(self) -> None:
        self.account = _required("ACCOUNT")
        self.user = _required("DEMO_USER")
        self.private_key_path = _required("PRIVATE_KEY_PATH")
        self.private_key_passphrase: Optional[str] = (
            os.getenv("PRIVATE_KEY_PASSPHRASE") or None
        )

        self.agent_url = _required("AGENT_ENDPOINT")
        self.model = os.getenv("MODEL", DEFAULT_MODEL).strip() or DEFAULT_MODEL
        self.search_service = _required("SEARCH_SERVICE")
        self.semantic_model = _required("SEMANTIC_MODEL")
        self.search_max_results = int(os.getenv("SEARCH_MAX_RESULTS", "1"))

        # Lifetime is enforced by the remote verifier, the renewal delay locally
        self.token_lifetime = int(
            os.getenv("JWT_LIFETIME_SECONDS", str(DEFAULT_TOKEN_SECONDS))
        )
        self.token_renewal_delay = int(
            os.getenv("JWT_RENEWAL_DELAY_SECONDS", str(DEFAULT_TOKEN_SECONDS))
        )
        self.timeout = float(os.getenv("AGENT_TIMEOUT", "120"))


class QueryExecutorConfig:
    """Warehouse connection settings for running generated SQL."""

    def __init__(self) -> None:
        self.account = _required("ACCOUNT")
        self.user = _required("DEMO_USER")
        self.password = _required("DEMO_USER_PASSWORD")
        self.warehouse = os.getenv("WAREHOUSE")
        self.database = os.getenv("DEMO_DATABASE")
        self.schema = os.getenv("DEMO_SCHEMA")

    def connection_params(self) -> dict:
        params = {
            "account": self.account,
            "user": self.user,
            "password": self.password,
            "warehouse": self.warehouse,
            "database": self.database,
            "schema": self.schema,
        }
        return {key: value for key, value in params.items() if value}
