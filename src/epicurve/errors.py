from __future__ import annotations


class IngestError(ValueError):
    """Base class for recoverable line-list ingestion failures."""


class MissingRequiredColumnError(IngestError):
    def __init__(self, headers: list[str] | None = None) -> None:
        self.headers = list(headers or [])
        super().__init__(
            "No onset date column found. Please ensure your CSV has a date column "
            "(e.g., onset_date, date, onset)"
        )


class NoValidRowsError(IngestError):
    def __init__(self, dropped: int = 0) -> None:
        self.dropped = dropped
        if dropped:
            message = f"No valid cases found: {dropped} row(s) had no parseable onset date"
        else:
            message = "No valid cases found: the input has a header row but no data rows"
        super().__init__(message)
