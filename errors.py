"""Exceptions shared by the migration scripts.

Anything derived from MigrationError is fatal once it reaches migrate.main().
Per-connection listener errors and unmatched tracks are handled locally and
never raised through here.
"""


class MigrationError(Exception):
    """Base class for errors that abort the migration."""


class ConfigError(MigrationError):
    """Required configuration is missing or malformed."""


class ListenerBindError(MigrationError):
    """The local callback listener could not bind its socket."""

    def __init__(self, host, port, cause):
        self.host = host
        self.port = port
        self.cause = cause
        super().__init__(f"Could not listen on {host}:{port} ({cause})")


class LoginError(MigrationError):
    """Login to a provider failed."""

    def __init__(self, provider, message):
        self.provider = provider
        super().__init__(message)


class AuthorizationTimeout(LoginError):
    """No authorization code arrived before the poll budget ran out."""

    def __init__(self, provider, seconds):
        self.seconds = seconds
        super().__init__(provider, f"[{format_duration(seconds)} timeout] Failed to login to {provider}")


class TokenExchangeError(LoginError):
    """The provider refused or garbled the code → token exchange."""

    def __init__(self, provider, reason):
        self.reason = reason
        super().__init__(provider, f"Failed to login to {provider} ({reason})")


class ProviderApiError(MigrationError):
    """A REST call to a provider failed."""

    def __init__(self, provider, reason):
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} API error: {reason}")


def format_duration(seconds):
    """Render a timeout like the CLI prints it: 5min, 90s, 1min30s."""
    seconds = int(round(seconds))
    minutes, rest = divmod(seconds, 60)
    if not minutes:
        return f"{rest}s"
    if not rest:
        return f"{minutes}min"
    return f"{minutes}min{rest}s"
