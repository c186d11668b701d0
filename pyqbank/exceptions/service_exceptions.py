"""
Custom exception classes for upstream services and bulk import.
"""
from typing import Optional

from pyqbank.exceptions.question_exceptions import PYQException


class UpstreamServiceError(PYQException):
    """Exception raised when a backing service cannot answer."""

    def __init__(self, service: str, reason: Optional[str] = None, error_code: str = "UPSTREAM_UNAVAILABLE"):
        self.service = service
        self.reason = reason

        message = f"{service} is unavailable"
        if reason:
            message += f": {reason}"

        super().__init__(
            message=message,
            error_code=error_code,
            details={"service": service, "reason": reason}
        )


class SearchBackendUnavailableError(UpstreamServiceError):
    """Exception raised when a search strategy cannot run against its backend."""

    def __init__(self, strategy: str, reason: Optional[str] = None):
        self.strategy = strategy
        super().__init__(
            service=f"Search backend '{strategy}'",
            reason=reason,
            error_code="SEARCH_UNAVAILABLE"
        )


class ImportFileParseError(PYQException):
    """Exception raised when an uploaded import file cannot be read."""

    def __init__(self, file_name: str, reason: str):
        self.file_name = file_name
        self.reason = reason

        super().__init__(
            message=f"Could not parse '{file_name}': {reason}",
            error_code="IMPORT_PARSE_ERROR",
            details={"file_name": file_name, "reason": reason}
        )


class StagedImportNotFoundError(PYQException):
    """Exception raised when a staged import batch no longer exists."""

    def __init__(self, temp_file_name: str):
        self.temp_file_name = temp_file_name

        super().__init__(
            message="Staged import not found. Please upload the file again.",
            error_code="IMPORT_NOT_FOUND",
            details={"temp_file_name": temp_file_name}
        )
