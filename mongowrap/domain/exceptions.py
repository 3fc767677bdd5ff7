"""Domain exceptions for mongowrap.

These exceptions represent failures that abort a service launch before the
caller's task can run. They should be caught at the application boundary
(CLI) and converted to user-facing error messages.
"""


class MongowrapDomainError(Exception):
    """Base exception for all domain errors.

    Attributes:
        message: User-facing error message.
        hint: Optional actionable suggestion.
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class ConfigurationError(MongowrapDomainError):
    """Raised when no installation or workspace can be resolved."""

    pass


class SetupFailure(MongowrapDomainError):
    """Raised when the data directory cannot be cleared or created."""

    pass


class LaunchFailure(MongowrapDomainError):
    """Raised when the OS refuses to start the server process."""

    pass


class RemoteExecutionError(MongowrapDomainError):
    """Raised when a request on the execution host fails.

    Covers both transport failures and errors reported by the host's own
    request handler.
    """

    pass
