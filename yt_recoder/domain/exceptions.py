"""
Defines custom exception types for the recoder application.

Every failure a job can meet is expressed as one of these exceptions. They are
all terminal for the job that raised them: the pipeline catches them, reports a
single human-readable line through the job's progress reporter, and carries on
serving other jobs. None of them is allowed to take the process down.

All custom exceptions inherit from the base `RecoderException`.
"""
from typing import Optional


class RecoderException(Exception):
    """Base class for all custom exceptions in the recoder application."""

    pass


class ConfigurationException(RecoderException):
    """Raised when the startup configuration is missing or malformed."""

    pass


class ToolUnavailableException(RecoderException):
    """
    Raised when an external executable cannot be started.

    This covers both a missing binary and any other spawn failure reported by
    the operating system. It is distinct from the tool running and failing.
    """

    pass


# --- Fetch Stage Exceptions ---
class FetchException(RecoderException):
    """Base class for exceptions raised while retrieving a media asset."""

    pass


class InvalidIdentifierException(FetchException):
    """
    Raised when an identifier contains characters outside the safe alphabet.

    It is raised before any subprocess is started.
    """

    pass


class NoMetadataException(FetchException):
    """
    Raised when the fetch tool does not produce its metadata line.

    It is not retried.
    """

    pass


class FetchTimeoutException(FetchException):
    """Raised when the fetch tool stalled on every allowed attempt."""

    pass


class FetchFailedException(FetchException):
    """Raised when the fetch tool exited on its own with a non-zero status."""

    def __init__(self, message: str, return_code: Optional[int] = None):
        super().__init__(message)
        self.return_code = return_code


# --- Transcode Stage Exceptions ---
class TranscodeException(RecoderException):
    """Base class for exceptions raised during the transcode stage."""

    pass


class SourceFileNotFoundException(TranscodeException):
    """
    Raised when neither the reported path nor its alternate container exists.

    No encoder slot is taken when this is raised.
    """

    pass


class EncodeFailedException(TranscodeException):
    """
    Raised when ffmpeg exits with a non-zero status.

    `pass_number` is 1 or 2 for the two pass strategy and None for single pass.
    """

    def __init__(self, message: str, return_code: Optional[int] = None, pass_number: Optional[int] = None):
        super().__init__(message)
        self.return_code = return_code
        self.pass_number = pass_number
