"""Structured logging setup shared by the client and the CLI."""

import logging
import os
import sys

import structlog


def configure_logging(service_name: str = "cortex-chat"):
    """Configure stdlib logging and structlog, return a bound logger."""
    logging.basicConfig(
        level=(
            logging.DEBUG if os.getenv("LOG_LEVEL", "INFO") == "DEBUG" else logging.INFO
        ),
        format="%(message)s",
        stream=sys.stdout,
    )

    # Remove logging we otherwise get by default
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("snowflake.connector").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger().bind(service=service_name)
