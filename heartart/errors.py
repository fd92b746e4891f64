from __future__ import annotations


class HeartArtError(Exception):
    """Base error for the heartart library."""


class CsvParseError(HeartArtError):
    """Raised when a CSV file cannot be turned into a BPM series."""


class EmptyFileError(CsvParseError):
    def __init__(self, message: str = "File is empty.") -> None:
        super().__init__(message)


class MissingHeaderOrDataError(CsvParseError):
    def __init__(
        self, message: str = "CSV must have a header and at least one data row."
    ) -> None:
        super().__init__(message)


class MissingBpmColumnError(CsvParseError):
    def __init__(self, message: str = 'CSV must contain a "BPM" column.') -> None:
        super().__init__(message)


class NoValidDataError(CsvParseError):
    def __init__(self, message: str = "No valid BPM data found in the file.") -> None:
        super().__init__(message)


class FileReadError(CsvParseError):
    """Raised when the CSV file itself cannot be read."""


class EmptySeriesError(HeartArtError, ValueError):
    """Raised when a prompt is requested for an empty BPM series."""


class NonFiniteSeriesError(HeartArtError, ValueError):
    """Raised when a BPM series contains NaN or infinite values."""


class InvalidColorError(HeartArtError, ValueError):
    """Raised when a color name is outside the supported palette."""


class ProviderError(HeartArtError):
    """Base error for hosted model providers."""


class LLMInferenceError(ProviderError):
    """Raised when a model provider fails to produce a response."""


class ExtractionError(ProviderError):
    """Raised when a provider response does not contain a usable BPM series."""


class ImageGenerateError(ProviderError):
    """Raised when a provider fails to return an image."""


class ProviderTimeoutError(ProviderError):
    """Raised when a provider call exceeds the configured timeout."""


class MissingApiKeyError(ProviderError):
    """Raised when no API key is configured for an external provider."""


class InvalidApiKeyError(ProviderError):
    def __init__(
        self, message: str = "Your API Key is invalid. Please check and re-enter it."
    ) -> None:
        super().__init__(message)


class ModelNotAvailableError(ProviderError):
    """Raised when an optional provider dependency is missing."""
