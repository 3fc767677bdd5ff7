"""CLI error handling with actionable hints."""

import click


class MongowrapCliError(click.ClickException):
    """CLI error with actionable hint for users.

    Attributes:
        message: The primary error message.
        hint: Optional actionable suggestion for the user.

    Example:
        raise MongowrapCliError(
            "No MongoDB installation available",
            hint="Add one with 'mongowrap installations add'"
        )
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def format_message(self) -> str:
        """Format the error message with hint if present."""
        msg = self.message
        if self.hint:
            msg += f"\nHint: {self.hint}"
        return msg
