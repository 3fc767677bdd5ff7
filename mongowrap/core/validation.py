"""Validation of user-entered service settings.

Each check takes the raw string the user typed and returns a
ValidationResult rather than raising, so a caller can report every
problem at once.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from mongowrap.domain.config import is_port_number

INVALID_PORT = "Port must be empty or a number between 0 and 65535"
INVALID_START_TIMEOUT = "Start timeout must be empty or a non-negative number of milliseconds"
NOT_DIRECTORY = "Data path exists but is not a directory"
NOT_EMPTY_DIRECTORY = "Data directory is not empty; its contents will be deleted"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single field check.

    Attributes:
        kind: "ok", "warning" (allowed but suspicious) or "error"
        message: Explanation for warnings and errors
    """

    kind: Literal["ok", "warning", "error"]
    message: str = ""

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls("ok")

    @classmethod
    def warning(cls, message: str) -> "ValidationResult":
        return cls("warning", message)

    @classmethod
    def error(cls, message: str) -> "ValidationResult":
        return cls("error", message)

    def is_error(self) -> bool:
        return self.kind == "error"


def check_port(value: str | None) -> ValidationResult:
    """Port must be empty or an integer in [0, 65535]."""
    if is_port_number((value or "").strip()):
        return ValidationResult.ok()
    return ValidationResult.error(INVALID_PORT)


def check_start_timeout(value: str | None) -> ValidationResult:
    """Start timeout must be empty or a non-negative integer."""
    if not value:
        return ValidationResult.ok()

    try:
        timeout = int(value)
    except ValueError:
        return ValidationResult.error(INVALID_START_TIMEOUT)
    if timeout < 0:
        return ValidationResult.error(INVALID_START_TIMEOUT)
    return ValidationResult.ok()


def check_dbpath(value: str | None) -> ValidationResult:
    """Data path must be a directory if it exists; warn if it is not empty.

    Checked on the local filesystem, since this runs where the user
    enters the setting.
    """
    if not value:
        return ValidationResult.ok()

    path = Path(value)
    if not path.exists():
        return ValidationResult.ok()
    if not path.is_dir():
        return ValidationResult.error(NOT_DIRECTORY)

    if any(path.iterdir()):
        return ValidationResult.warning(NOT_EMPTY_DIRECTORY)

    return ValidationResult.ok()
