"""Tests for command library."""

import pytest

from fnops.command import Command, run
from fnops.exceptions import CommandException, HelmException


async def test_command() -> None:
    """Test stdout parsing of a command."""
    result = await run(Command(["echo", "Hello"]))
    assert result == "Hello\n"


async def test_command_stdin() -> None:
    """Test passing stdin to a command."""
    result = await run(Command(["cat"]), stdin=b"Goodbye")
    assert result == "Goodbye"


async def test_failed_command() -> None:
    """Test a failing command."""
    with pytest.raises(CommandException, match="return code 1"):
        await run(Command(["/bin/false"]))


async def test_failed_command_exception_type() -> None:
    """Test the exception raised is the one of the command."""
    with pytest.raises(HelmException):
        await run(Command(["/bin/false"], exc=HelmException))


async def test_command_timeout() -> None:
    """Test a command that does not finish in time."""
    with pytest.raises(CommandException, match="timed out"):
        await run(Command(["sleep", "5"], timeout=0.1))
