"""Tests for command library."""

import pytest

from cpstate.command import Command, run
from cpstate.exceptions import CommandException, KubectlException


async def test_command() -> None:
    """Test stdout parsing of a command."""
    result = await run(Command(["echo", "Hello"]))
    assert result == "Hello\n"


async def test_command_stdin() -> None:
    """Test sending input to a command."""
    result = await run(Command(["cat"]), stdin='{"kind": "Namespace"}')
    assert result == '{"kind": "Namespace"}'


async def test_failed_command() -> None:
    """Test a failing command."""
    with pytest.raises(CommandException, match="return code 1"):
        await run(Command(["/bin/false"]))


async def test_failed_command_exception_type() -> None:
    """Test a failing command raises the configured exception."""
    with pytest.raises(KubectlException, match="return code 1"):
        await run(Command(["/bin/false"], exc=KubectlException))


async def test_allowed_return_code() -> None:
    """Test a non-zero return code that indicates success."""
    result = await run(Command(["/bin/false"], retcodes=[1]))
    assert result == ""


async def test_command_timeout() -> None:
    """Test a command that runs longer than its timeout."""
    with pytest.raises(CommandException, match="timed out"):
        await run(Command(["sleep", "5"], timeout=0.1))


async def test_command_env() -> None:
    """Test environment variables passed to the command."""
    result = await run(Command(["printenv", "CPSTATE_TEST"], env={"CPSTATE_TEST": "x"}))
    assert result == "x\n"
