"""CLI output assertion helpers for reducing test brittleness.

These helpers prioritize semantic assertions (exit codes) over exact string
matching, and report the command output when an assertion fails.
"""

from click.testing import Result


def assert_command_success(result: Result, *, context: str = "") -> None:
    """Assert that a CLI command succeeded.

    Args:
        result: Click test runner Result object.
        context: Optional context string for error messages.
    """
    ctx = f" ({context})" if context else ""
    assert result.exit_code == 0, (
        f"Command failed{ctx}:\n"
        f"  Exit code: {result.exit_code}\n"
        f"  Output: {result.output[:500]}"
    )


def assert_command_failed(
    result: Result,
    *,
    expected_code: int = 1,
    context: str = "",
) -> None:
    """Assert that a CLI command failed with expected exit code.

    Args:
        result: Click test runner Result object.
        expected_code: Expected non-zero exit code (default: 1).
        context: Optional context string for error messages.
    """
    ctx = f" ({context})" if context else ""
    assert result.exit_code == expected_code, (
        f"Expected command to fail{ctx} with code {expected_code}, "
        f"but got {result.exit_code}:\n"
        f"  Output: {result.output[:500]}"
    )


def assert_output_contains(result: Result, *substrings: str, context: str = "") -> None:
    """Assert that output contains all specified substrings."""
    ctx = f" ({context})" if context else ""
    for substring in substrings:
        assert substring in result.output, (
            f"Substring not found{ctx}:\n"
            f"  Expected: {substring!r}\n"
            f"  Output: {result.output[:500]}"
        )


def assert_error_message(result: Result, *, hint: str | None = None) -> None:
    """Assert that output contains an error, optionally with a hint.

    Args:
        result: Click test runner Result object (should have non-zero exit code).
        hint: Optional substring that should appear after "Hint:".
    """
    assert "Error" in result.output, (
        f"Expected error message in output:\n"
        f"  Output: {result.output[:500]}"
    )

    if hint:
        assert "Hint:" in result.output and hint in result.output, (
            f"Expected hint '{hint}' in error output:\n"
            f"  Output: {result.output[:500]}"
        )
