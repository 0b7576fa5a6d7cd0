"""Error taxonomy shared by services, adapters and the HTTP layer."""


class GatewayError(Exception):
    """Base class for errors raised by the gateway."""


class ValidationError(GatewayError):
    """Raised when a request is missing required input."""


class AuthError(GatewayError):
    """Raised when the shared secret is missing or wrong."""


class ProviderError(GatewayError):
    """Raised when the linking provider fails to open, pair or send."""


class PersistenceError(GatewayError):
    """Raised when a persistence collaborator write or read fails."""


class SessionNotConnectedError(GatewayError):
    """Raised when an outbound send targets a session that is not connected."""
