"""
mysql_persistence.errors

Application error hierarchy for connections and persistence components.

Responsibilities:
- Carry a stable error code and the caller's correlation id with every failure.
- Keep driver errors reachable via exception chaining (`raise ... from exc`).
"""

from __future__ import annotations


class ApplicationError(Exception):
    """
    Base error with a machine-readable `code` and optional `correlation_id`.
    """

    category = "Unknown"

    def __init__(
        self,
        code: str,
        message: str,
        *,
        correlation_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.correlation_id = correlation_id

    def __str__(self) -> str:
        if self.correlation_id:
            return f"[{self.code}] {self.message} (correlation_id={self.correlation_id})"
        return f"[{self.code}] {self.message}"


class ConfigError(ApplicationError):
    category = "Misconfiguration"


class MysqlConnectionError(ApplicationError):
    category = "NoResponse"


class InvalidStateError(ApplicationError):
    category = "InvalidState"


class QueryTerminatedError(ApplicationError):
    category = "Application"

    def __init__(self, *, correlation_id: str | None = None) -> None:
        super().__init__("QUERY_TERMINATED", "query terminated", correlation_id=correlation_id)


# --- Module Notes -----------------------------------------------------------
# Data operations forward sqlalchemy and pydantic errors unchanged; only lifecycle
# operations (open/clear) translate driver failures into `MysqlConnectionError`.
