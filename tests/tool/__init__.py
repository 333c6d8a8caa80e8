"""Test helpers for cpstate tools."""

from cpstate.command import Command, run

CPSTATE_BIN = "cpstate"


async def run_command(args: list[str], env: dict[str, str] | None = None) -> str:
    return await run(Command([CPSTATE_BIN] + args, env=env))
