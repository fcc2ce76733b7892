"""
Centralized logging configuration for the spotbot trading system.

This module provides standardized logging configuration using structlog
for all components. Every subsystem (governor, venue layer, planner, sell
engine) obtains its logger from here so output stays uniformly structured.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    # stdout is reserved for command output (book/agg tables)
    logging.basicConfig(
        level=log_level,
        stream=sys.stderr,
        format="%(message)s"
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_governor_logger(name: str, venue: Optional[str] = None) -> FilteringBoundLogger:
    """
    Get a logger for request pacing decisions.

    Args:
        name: Logger name (typically __name__)
        venue: Venue code the governor is pacing, if already known

    Returns:
        Logger bound with the governor subsystem context
    """
    logger = structlog.get_logger(name).bind(subsystem="governor")
    if venue:
        logger = logger.bind(venue=venue)
    return logger


def get_venue_logger(name: str, venue: Optional[str] = None) -> FilteringBoundLogger:
    """Get a logger for venue adapter calls, bound with the venue code."""
    logger = structlog.get_logger(name).bind(subsystem="venue")
    if venue:
        logger = logger.bind(venue=venue)
    return logger


def get_planner_logger(name: str) -> FilteringBoundLogger:
    """Get a logger for the aggregation resolver and buy planner."""
    return structlog.get_logger(name).bind(subsystem="planner")


def get_engine_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for the sell strategy engine.

    Order lifecycle events emitted through this logger carry
    ``audit_trail=True`` so they can be filtered into a trade journal.
    """
    return structlog.get_logger(name).bind(
        subsystem="sell_engine",
        audit_trail=True
    )


def log_order_event(
    logger: FilteringBoundLogger,
    event_type: str,
    market: str,
    side: str,
    size: float,
    price: float,
    order_id: Optional[str] = None,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log an order lifecycle event with standardized format.

    Args:
        logger: Structlog logger instance
        event_type: One of placed, cancelled, filled, skipped
        market: Venue market name
        side: BUY or SELL
        size: Order quantity
        price: Order price (0 for market orders)
        order_id: Venue order id, when known
        context: Additional context data
    """
    bound_logger = logger.bind(
        event_type=event_type,
        market=market,
        side=side,
        size=size,
        price=price,
        order_id=order_id,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if event_type == "skipped":
        bound_logger.warning("Order skipped")
    else:
        bound_logger.info(f"Order {event_type}")


def log_governor_wait(
    logger: FilteringBoundLogger,
    endpoint: str,
    weight: int,
    rps: float,
    wait_seconds: float,
    cooled: bool = False
) -> None:
    """
    Log a pacing decision taken before an outbound request.

    Args:
        logger: Structlog logger instance
        endpoint: Endpoint path (query string already stripped)
        weight: Weight of this call
        rps: Effective requests-per-second for this call
        wait_seconds: How long the caller is about to sleep
        cooled: True when a one-shot cooldown forced the wait
    """
    if wait_seconds <= 0:
        return

    logger.debug(
        "Pacing outbound request",
        endpoint=endpoint,
        weight=weight,
        rps=rps,
        wait_seconds=round(wait_seconds, 3),
        cooldown=cooled,
    )
