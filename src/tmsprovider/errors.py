"""Custom exception hierarchy for tmsprovider."""

from typing import Optional


class TMSProviderError(Exception):
    """Base exception for tmsprovider library."""
    
    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class ConfigurationError(TMSProviderError):
    """Configuration and setup errors."""
    pass


class MissingRequiredOptionError(ConfigurationError):
    """A required option was not supplied."""
    pass


class NetworkError(TMSProviderError):
    """Network-related errors."""
    pass


class ParseError(TMSProviderError):
    """Data parsing errors."""
    pass


class UnsupportedProfileError(TMSProviderError):
    """The capabilities document declares a profile with no known tiling scheme."""

    def __init__(self, message: str, profile: Optional[str] = None, cause: Optional[Exception] = None):
        super().__init__(message, cause)
        self.profile = profile


class ProviderNotReadyError(TMSProviderError):
    """Provider configuration was accessed before it was resolved."""
    pass


class DeferredError(TMSProviderError):
    """Misuse of a single-assignment deferred channel."""
    pass


class DeferredAlreadyCompletedError(DeferredError):
    pass


class DeferredPendingError(DeferredError):
    pass
