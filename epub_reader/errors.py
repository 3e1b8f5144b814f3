"""Custom exceptions and error handling for epub_reader.

This module provides custom exception classes with contextual error messages
and suggestions for resolution. Only whole-book failures are raised as
exceptions; per-chapter problems degrade to placeholder content instead.
"""


class EpubReaderError(Exception):
    """Base exception for epub_reader errors.

    Attributes:
        message: Human-readable error message
        suggestion: Optional suggestion for resolving the error
        context: Optional additional context about the error
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        context: str | None = None
    ):
        self.message = message
        self.suggestion = suggestion
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the complete error message."""
        parts = [f"Error: {self.message}"]
        if self.context:
            parts.append(f"Context: {self.context}")
        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")
        return "\n".join(parts)


class EpubReadError(EpubReaderError):
    """Raised when an EPUB archive cannot be opened or parsed at all."""

    def __init__(self, file_path: str, details: str | None = None):
        super().__init__(
            message=f"Could not read EPUB: {file_path}",
            suggestion="Check that the file exists and is a valid EPUB (zip) archive.",
            context=details
        )
        self.file_path = file_path


class NoReadableChaptersError(EpubReaderError):
    """Raised when neither the TOC nor the spine yields a single chapter."""

    def __init__(self, source: str, details: str | None = None):
        super().__init__(
            message=f"No readable chapters found in {source}",
            suggestion="The book has no usable table of contents and an empty spine.",
            context=details
        )
        self.source = source


class ConfigurationError(EpubReaderError):
    """Raised when there's a configuration or argument error."""

    def __init__(self, message: str, parameter: str | None = None):
        suggestion = "Check your command line arguments or configuration file."
        if parameter:
            suggestion = f"Check the value of '{parameter}' parameter."

        super().__init__(
            message=message,
            suggestion=suggestion,
            context=f"Parameter: {parameter}" if parameter else None
        )
        self.parameter = parameter


def format_error_for_user(error: Exception) -> str:
    """Format any exception for user-friendly display.

    Args:
        error: The exception to format

    Returns:
        User-friendly error message string
    """
    if isinstance(error, EpubReaderError):
        return str(error)

    # Handle common exceptions with better messages
    error_type = type(error).__name__
    error_msg = str(error)

    if isinstance(error, FileNotFoundError):
        return f"Error: File not found - {error_msg}\nSuggestion: Check that the file path is correct."

    if isinstance(error, PermissionError):
        return f"Error: Permission denied - {error_msg}\nSuggestion: Check file permissions or run with appropriate privileges."

    # Generic fallback
    return f"Error ({error_type}): {error_msg}"
