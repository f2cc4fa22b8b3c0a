"""Exceptions raised while talking to the reporting service."""


class ReportRejectedError(Exception):
    """Raised when the reporting service answers with an HTTP error status."""

    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(f"({status}) {message}".rstrip())
        self.status = status
        self.message = message
