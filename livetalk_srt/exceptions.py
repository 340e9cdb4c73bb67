"""Custom Exceptions for the LiveTalk SubRip converter."""

from typing import Optional


class ConverterError(Exception):
    """Base class for exceptions in this package."""
    pass

class ConfigurationError(ConverterError):
    """Exception raised for errors in configuration loading."""
    pass

class ParseError(ConverterError):
    """Exception raised when a CSV line cannot be turned into a record."""

    def __init__(self, line_number: int, line: str, reason: str):
        self.line_number = line_number
        self.line = line
        self.reason = reason
        super().__init__(f"Line {line_number}: {reason} ({line!r})")

class FormattingError(ConverterError):
    """Exception raised for errors during subtitle formatting."""
    pass

class FileSystemError(ConverterError):
    """Exception raised for file system related errors (permissions, not found etc)."""
    pass

class ConversionCancelled(ConverterError):
    """Exception raised when a running conversion is cancelled."""

    def __init__(self, message: str = "Conversion cancelled.", sequence_number: Optional[int] = None):
        self.sequence_number = sequence_number
        super().__init__(message)
