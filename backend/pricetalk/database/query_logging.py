"""
Driver-level query logging.

Every command sent through the Mongo client is logged with its duration
and the number of documents it touched or returned.
"""
import logging

from pymongo import monitoring

from pricetalk.config import get_settings

logger = logging.getLogger(__name__)

# Commands that would only add noise
IGNORED_COMMANDS = frozenset({
    "isMaster", "ismaster", "hello", "ping", "buildInfo",
    "endSessions", "saslStart", "saslContinue", "getMore",
})


def reply_row_count(reply: dict) -> int | None:
    """Extract the affected/returned row count from a command reply."""
    if not isinstance(reply, dict):
        return None
    if "cursor" in reply:
        cursor = reply["cursor"]
        return len(cursor.get("firstBatch", cursor.get("nextBatch", [])))
    if "n" in reply:
        return int(reply["n"])
    if "value" in reply:
        # findAndModify
        return 0 if reply["value"] is None else 1
    return None


class QueryLogger(monitoring.CommandListener):
    """Log each database command with duration and row count."""

    def __init__(self, slow_query_ms: int | None = None):
        self.slow_query_ms = (
            slow_query_ms if slow_query_ms is not None else get_settings().slow_query_ms
        )

    def started(self, event: monitoring.CommandStartedEvent) -> None:
        pass

    def succeeded(self, event: monitoring.CommandSucceededEvent) -> None:
        if event.command_name in IGNORED_COMMANDS:
            return
        duration_ms = event.duration_micros / 1000
        rows = reply_row_count(event.reply)
        level = logging.WARNING if duration_ms >= self.slow_query_ms else logging.DEBUG
        logger.log(
            level,
            "Executed %s on %s in %.1fms rows=%s",
            event.command_name,
            event.database_name,
            duration_ms,
            rows,
        )

    def failed(self, event: monitoring.CommandFailedEvent) -> None:
        logger.warning(
            "Command %s on %s failed after %.1fms: %s",
            event.command_name,
            event.database_name,
            event.duration_micros / 1000,
            event.failure.get("errmsg") if isinstance(event.failure, dict) else event.failure,
        )
