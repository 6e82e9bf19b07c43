"""Domain exceptions.

Every error carries a human-readable ``message`` and the HTTP status the API
layer should answer with. Services raise these; ``app.main`` maps them to
JSON responses.
"""


class SprintPilotError(Exception):
    """Base exception for SprintPilot errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class InvalidRequestError(SprintPilotError):
    """Raised before any I/O when required identifiers or fields are missing."""

    status_code = 400


class NotFoundError(SprintPilotError):
    """Raised when a looked-up record does not exist."""

    status_code = 404


class HistoryNotFoundError(NotFoundError):
    """Raised when no suite history record matches a suite.

    Callers should stop offering run tracking for the suite rather than retry.
    """

    def __init__(self, suite_id: str | None) -> None:
        super().__init__(f"No suite history found for suite {suite_id}")
        self.suite_id = suite_id


class ImportParseError(SprintPilotError):
    """Raised once when an import file cannot be read at all."""

    status_code = 400


class UpstreamServiceError(SprintPilotError):
    """Raised when an external HTTP or LLM service call fails."""

    status_code = 502
