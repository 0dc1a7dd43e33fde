"""
Request Logger - Records REST calls made by the API client.

Keeps recent calls in memory so the CLI (and tests) can inspect timings
and failures without a debugger.
"""

from datetime import datetime, timezone
from typing import Optional
from collections import deque
import uuid


class RequestLogger:
    """In-memory log of outgoing API requests."""

    def __init__(self, max_logs: int = 500):
        """
        Initialize the logger.

        Args:
            max_logs: Maximum number of entries to retain in memory
        """
        self._logs: deque = deque(maxlen=max_logs)

    def log_request(self, method: str, path: str) -> str:
        """
        Record an outgoing request.

        Args:
            method: HTTP method
            path: Request path relative to the API base URL

        Returns:
            Log ID for correlating with the response
        """
        log_id = str(uuid.uuid4())[:8]

        self._logs.append({
            "id": log_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": method.upper(),
            "path": path,
            "status": "pending",
            "status_code": None,
            "response_time_ms": None,
            "error": None,
        })
        return log_id

    def log_response(
        self,
        log_id: str,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        """
        Complete an entry with the response outcome.

        Args:
            log_id: The log ID from log_request
            status_code: HTTP status, None if the request never got a response
            error: Error message if the call failed
        """
        for log in reversed(self._logs):
            if log["id"] == log_id:
                request_time = datetime.fromisoformat(log["timestamp"])
                log["response_time_ms"] = int(
                    (datetime.now(timezone.utc) - request_time).total_seconds() * 1000
                )
                log["status_code"] = status_code
                failed = error is not None or status_code is None or status_code >= 400
                log["status"] = "error" if failed else "success"
                if error:
                    log["error"] = error
                break

    def get_logs(self, limit: int = 100) -> list[dict]:
        """Return up to `limit` entries, most recent first."""
        logs = list(self._logs)
        logs.reverse()
        return logs[:limit]

    def clear_logs(self) -> None:
        """Clear all logs."""
        self._logs.clear()
