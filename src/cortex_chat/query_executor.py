"""Runs agent-generated SQL against Snowflake and returns a DataFrame."""

from typing import Any, Callable, List, Optional, Tuple

import pandas as pd
import snowflake.connector
import structlog

from .config import QueryExecutorConfig
from .errors import QueryExecutionError

logger = structlog.get_logger()


class SnowflakeQueryExecutor:
    """
    Lazily connects on first use and keeps one connection until closed.

    Not thread safe; create one executor per task.
    """

    def __init__(
        self,
        config: Optional[QueryExecutorConfig] = None,
        connect: Callable[..., Any] = snowflake.connector.connect,
    ):
        self.config = config or QueryExecutorConfig()
        self._connect = connect
        self.connection = None

    def connect(self):
        if self.connection is not None:
            return self.connection
        try:
            self.connection = self._connect(**self.config.connection_params())
        except snowflake.connector.Error as e:
            raise QueryExecutionError(f"Could not connect to Snowflake: {e}") from e

        logger.info(
            "Connected to Snowflake",
            account=self.config.account,
            warehouse=self.config.warehouse,
        )
        return self.connection

    def execute_query(self, sql: str) -> Tuple[List[tuple], List[str]]:
        """Execute a statement and return its rows and column names."""
        cursor = self.connect().cursor()
        try:
            cursor.execute(sql)
            rows = cursor.fetchall()
            columns = [column[0] for column in cursor.description or []]
        except snowflake.connector.Error as e:
            logger.error("Query failed", error=str(e), sql=sql)
            raise QueryExecutionError(f"Query failed: {e}") from e
        finally:
            cursor.close()

        logger.info("Query executed", row_count=len(rows), column_count=len(columns))
        return rows, columns

    def run_query(self, sql: str) -> pd.DataFrame:
        rows, columns = self.execute_query(sql)
        return pd.DataFrame(rows, columns=columns or None)

    def close(self) -> None:
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def __enter__(self) -> "SnowflakeQueryExecutor":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
