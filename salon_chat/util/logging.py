"""
Structured operation logging for the chat pipeline.
Every store, index, provider and ingestion step reports through the shared `logger`.
"""

import logging
import os
from typing import Any, Dict, Optional


def truncate(value: Any, limit: int = 50) -> Any:
    """Shorten long strings so message content never floods the log."""
    if isinstance(value, str) and len(value) > limit:
        return value[:limit] + "..."
    return value


class StructuredLogger:
    """Structured logger for session, retrieval, completion and ingestion operations."""

    def __init__(self, name: str = "salon_chat"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "error"):
            self.logger.error(message)
        elif status in ("degraded", "fallback", "retry"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_session_operation(self, operation: str, session_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a session store operation."""
        log_details = {"session_id": session_id}
        if details:
            log_details.update({k: truncate(v) for k, v in details.items()})

        self.log_operation(f"session.{operation}", status, log_details)

    def log_vector_operation(self, operation: str, record_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector operation."""
        log_details = {"record_id": record_id}
        if details:
            log_details.update(details)

        self.log_operation(f"vector.{operation}", status, log_details)

    def log_retrieval(self, query: str, requested: int, matched: int, hydrated: int, status: str = "success"):
        """Log the outcome of a retrieval pass (embed, search, hydrate)."""
        log_details = {
            "query": truncate(query),
            "top_k": requested,
            "matched": matched,
            "hydrated": hydrated,
            "dropped": matched - hydrated
        }
        self.log_operation("retrieval", status, log_details)

    def log_completion(self, model: str, duration_ms: float, status: str = "success", details: Dict[str, Any] = None):
        """Log a completion call."""
        log_details = {"model": model, "duration_ms": round(duration_ms, 2)}
        if details:
            log_details.update(details)

        self.log_operation("completion", status, log_details)

    def log_dependency_failure(self, dependency: str, error: Exception, action: str = "degraded"):
        """Log a failed or timed-out call to an external dependency."""
        log_details = {
            "dependency": dependency,
            "error_type": type(error).__name__,
            "error": truncate(str(error), 100)
        }
        self.log_operation(f"dependency.{dependency}", action, log_details)

    def log_ingestion(self, processed: int, succeeded: int, failed: int, details: Optional[Dict[str, Any]] = None):
        """Log a catalog ingestion run."""
        log_details = {"processed": processed, "succeeded": succeeded, "failed": failed}
        if details:
            log_details.update(details)

        status = "success" if failed == 0 else "partial"
        self.log_operation("catalog.ingest", status, log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
