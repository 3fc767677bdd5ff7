"""Domain value objects.

Value objects that provide validation at construction time,
ensuring invalid states are unrepresentable.
"""

from dataclasses import dataclass

PARAMETER_SEPARATOR = "--"


@dataclass(frozen=True)
class ParameterToken:
    """One unit of an extra-parameters string.

    Either a bare flag (``--noprealloc``) or a name/value pair
    (``--syncdelay 0``). The value is kept verbatim so a quoted value with
    embedded spaces survives intact.

    Attributes:
        name: Option name without the leading dashes.
        value: Option value, or None for a bare flag.

    Raises:
        ValueError: If name is empty or contains a space.
    """

    name: str
    value: str | None = None

    def __post_init__(self) -> None:
        """Validate token name."""
        if not self.name:
            raise ValueError("ParameterToken name cannot be empty")
        if " " in self.name:
            raise ValueError(f"ParameterToken name contains a space: {self.name!r}")

    @classmethod
    def parse(cls, fragment: str) -> "ParameterToken | None":
        """Parse one fragment produced by splitting on ``--``.

        Everything before the first space is the name, everything after it
        (trimmed) is the value.

        Args:
            fragment: Raw fragment, possibly padded with whitespace.

        Returns:
            ParameterToken, or None if the fragment carries no name.
        """
        fragment = fragment.strip()
        if not fragment:
            return None

        space = fragment.find(" ")
        if space == -1:
            return cls(name=fragment)

        name = fragment[:space].strip()
        if not name:
            return None
        return cls(name=name, value=fragment[space:].strip())

    def to_args(self) -> list[str]:
        """Render as command-line arguments."""
        flag = f"{PARAMETER_SEPARATOR}{self.name}"
        if self.value is None:
            return [flag]
        return [flag, self.value]

    def __str__(self) -> str:
        return " ".join(self.to_args())


def tokenize_parameters(parameters: str | None) -> list[ParameterToken]:
    """Split an extra-parameters string into tokens.

    Splitting is done on the literal ``--`` separator. Empty and
    whitespace-only fragments are skipped.

    Args:
        parameters: e.g. ``"--noprealloc --syncdelay 0"``

    Returns:
        Tokens in their original order.
    """
    if not parameters:
        return []

    tokens = []
    for fragment in parameters.split(PARAMETER_SEPARATOR):
        token = ParameterToken.parse(fragment)
        if token is not None:
            tokens.append(token)
    return tokens
