"""Per-member fallback reporting."""

from __future__ import annotations

from typing import List, Optional

from .errors import ErrorCategory, ErrorRecord, categorise


class ErrorPolicy:
    """Records per-member failures and reports them without stopping the run."""

    def __init__(self) -> None:
        self.records: List[ErrorRecord] = []

    def handle_error(
        self,
        category: ErrorCategory,
        message: str,
        *,
        member: Optional[str] = None,
        details: Optional[str] = None,
    ) -> ErrorRecord:
        """Record a failure and print it."""

        record = ErrorRecord(
            category=category,
            message=message,
            member=member,
            details=details,
        )
        self.records.append(record)
        print(f"  ⚠️ {message}")
        return record

    def handle_exception(
        self,
        member: str,
        error: BaseException,
        *,
        action: str,
    ) -> ErrorRecord:
        """Record an exception raised while processing ``member``."""

        return self.handle_error(
            categorise(error),
            f"{member}: {error} {action}",
            member=member,
            details=type(error).__name__,
        )

    def messages(self) -> List[str]:
        return [record.message for record in self.records]
