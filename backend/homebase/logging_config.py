"""structlog configuration module."""

import logging
import sys

import structlog

# Event keys that may carry raw chat text
CONTENT_KEYS = ("message", "content", "reply")


def redact_message_content(_logger, _method_name: str, event_dict: dict) -> dict:
    """Replace chat text with its length so logs never hold user messages."""
    for key in CONTENT_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = f"<redacted {len(value)} chars>"
    return event_dict


def setup_logging(debug: bool = False, log_message_content: bool = False) -> None:
    """
    Configure structlog and stdlib logging.

    In debug mode: colored, human-readable console output.
    In production mode: JSON output for log aggregation.

    Args:
        debug: If True, use ConsoleRenderer; otherwise use JSONRenderer.
        log_message_content: If False, chat text in message/content/reply
            keys is replaced with its length before rendering.
    """

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,  # request_id, session_id, user_id
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if not log_message_content:
        shared_processors.append(redact_message_content)

    if debug:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # Route stdlib logging (httpx, supabase, openai) to stdout as well.
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
    )
