from typing import Optional


class ReorderError(RuntimeError):
    """Base class for errors raised while persisting a subject order."""
    pass


class GatewayUnavailable(ReorderError):
    """Raised when the persistence backend cannot be reached."""
    pass


class ReorderRejected(ReorderError):
    """Raised when the backend answers but refuses the submitted order."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.message = message


class ConfigError(ValueError):
    """Raised when a configuration value cannot be used."""
    pass
