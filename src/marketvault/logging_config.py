"""Structured logging configuration with multiple output streams."""

import logging
import logging.handlers
from pathlib import Path

import structlog

from marketvault.config import LoggingConfig


def configure_logging(config: LoggingConfig) -> None:
    """Set up structured logging with console + file outputs."""
    for log_path in [config.app_log, config.rebalance_log, config.event_log]:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    json_formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )

    console_formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=True),
        foreign_pre_chain=shared_processors,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper()))

    logging.getLogger("redis").setLevel(logging.WARNING)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    app_handler = logging.handlers.RotatingFileHandler(
        config.app_log,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
    )
    app_handler.setFormatter(json_formatter)
    root_logger.addHandler(app_handler)

    # Rebalance outcomes get their own file
    rebalance_logger = logging.getLogger("marketvault.rebalances")
    rebalance_handler = logging.handlers.RotatingFileHandler(
        config.rebalance_log,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
    )
    rebalance_handler.setFormatter(json_formatter)
    rebalance_logger.addHandler(rebalance_handler)
    rebalance_logger.propagate = True

    # Weight and rebalance notifications
    event_logger = logging.getLogger("marketvault.events")
    event_handler = logging.handlers.RotatingFileHandler(
        config.event_log,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
    )
    event_handler.setFormatter(json_formatter)
    event_logger.addHandler(event_handler)
    event_logger.propagate = True


def get_rebalance_logger() -> structlog.stdlib.BoundLogger:
    """Get the rebalance-outcome logger."""
    return structlog.get_logger("marketvault.rebalances")


def get_event_logger() -> structlog.stdlib.BoundLogger:
    """Get the vault-notification logger."""
    return structlog.get_logger("marketvault.events")
