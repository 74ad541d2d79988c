"""
Logging configuration for the Moodify catalog backend using eliot.

This module provides structured logging throughout the ingestion engine using
eliot, which gives context-aware logging with support for nested actions
(e.g. a bulk insert transaction and the messages emitted inside it).
"""

import eliot
import logging
import sys
from eliot import log_message, write_traceback
from eliot.stdlib import EliotHandler
from pathlib import Path

_configured = False


class HumanReadableDestination:
    """Destination that formats eliot messages as single readable lines."""

    def __init__(self, file):
        self.file = file

    def __call__(self, message):
        """Format and write log message."""
        # Skip internal Eliot messages (action start/status messages)
        if message.get("action_type") and not message.get("message_type"):
            return

        msg_type = message.get("message_type", "")
        description = message.get("message", "")

        if msg_type == "database_operation":
            output = f"[DB] {message.get('operation', '')} {message.get('table', '')}".rstrip()
        elif msg_type == "api_request":
            output = f"[API] {message.get('action', '')}"
            if description:
                output += f": {description}"
        elif msg_type == "error_occurred":
            output = f"[ERROR] {message.get('error_type', '')}: {message.get('error_message', '')}"
        elif msg_type.startswith("ingest_"):
            spotify_id = message.get("spotify_id")
            output = f"[INGEST] {msg_type.removeprefix('ingest_')}"
            if spotify_id:
                output += f" {spotify_id}"
            if description:
                output += f": {description}"
        elif description:
            output = description
        else:
            return

        if output and output.strip():
            self.file.write(output + "\n")
            self.file.flush()


def setup_logging(log_level: str = "INFO", log_file: str | None = None) -> None:
    """
    Set up eliot logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write raw JSON logs to (stdout always gets readable logs)
    """
    global _configured
    if _configured:
        return
    _configured = True

    eliot.add_destination(HumanReadableDestination(sys.stdout))

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        eliot.to_file(open(log_file, "a"))

    # Route stdlib logging (uvicorn, fastapi) through eliot
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.addHandler(EliotHandler())

    log_message(message_type="logging_setup", log_level=log_level, log_file=log_file or "stdout", message="Eliot logging configured")


def get_logger(name: str):
    """
    Get an eliot logger instance for a specific component.

    The returned Logger is meant for start_action() and write_traceback();
    use log_message() for plain messages.

    Args:
        name: Component name

    Returns:
        Eliot Logger instance
    """
    from eliot import Logger

    return Logger()


# Global logger instances for different components
ingest_logger = get_logger("moodify_ingest")
enrichment_logger = get_logger("moodify_enrichment")
api_logger = get_logger("moodify_api")


def log_database_operation(operation: str, table: str | None = None, **context):
    """
    Log database operations with context.

    Args:
        operation: Type of database operation (SELECT, INSERT, UPDATE)
        table: Database table name
        **context: Additional context data
    """
    log_message(message_type="database_operation", operation=operation, table=table, **context)


def log_ingest_event(event: str, **context):
    """
    Log an ingestion engine event (track_created, bulk_committed, ...).

    Args:
        event: Event name, prefixed with ``ingest_`` in the message type
        **context: Additional context data
    """
    log_message(message_type=f"ingest_{event}", **context)


def log_api_request(action: str, trigger_source: str = "api", **context):
    """
    Log API requests with context.

    Args:
        action: API action being performed
        trigger_source: Source of the request (default: "api")
        **context: Additional context data
    """
    log_message(message_type="api_request", action=action, trigger_source=trigger_source, **context)


def log_error(logger: eliot.Logger, error: Exception, **context):
    """
    Log errors with full context and traceback.

    Args:
        logger: Eliot logger instance
        error: Exception that occurred
        **context: Additional context data
    """
    write_traceback(logger, exc_info=sys.exc_info())
    log_message(message_type="error_occurred", error_message=str(error), error_type=type(error).__name__, **context)
