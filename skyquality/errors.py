class SkyQualityError(Exception):
    """Base exception for skyquality errors."""


class ProviderError(SkyQualityError):
    """Raised when an external data provider fails to deliver a value."""

    def __init__(self, message: str, *, provider: str | None = None, key: str | None = None):
        super().__init__(message)
        self.provider = provider
        self.key = key


class InvalidCoordinateError(ValueError, SkyQualityError):
    """Raised by the sanitization boundary for non-finite coordinates."""


class ConfigError(SkyQualityError):
    """Raised for invalid configuration values."""
