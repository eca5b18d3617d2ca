"""External command queue for the assembler.

Every side effect that leaves the Python process (``npm init``, package
installs, ``prisma init``, ``git init``) is described as a :class:`Command`
carrying a fatal/recoverable classification.  A :class:`CommandRunner` runs
submitted commands strictly in order through an executor:

* :class:`SubprocessExecutor` spawns the real process and lets it inherit the
  terminal, so npm progress output stays visible.
* :class:`DryRunExecutor` only records and prints what would have run.

A failing fatal command raises :class:`CommandError`; a failing recoverable
command is reported and the run continues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from express_app_init.utils import format_command, print_error, print_info, run_command

from .errors import CommandError


@dataclass(frozen=True)
class Command:
    """A described external side effect."""

    description: str
    argv: tuple[str, ...]
    fatal: bool = True

    @property
    def display(self) -> str:
        return format_command(self.argv)


@dataclass
class CommandResult:
    command: Command
    returncode: int
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandExecutor(Protocol):
    async def execute(self, command: Command, cwd: Path) -> CommandResult: ...


class SubprocessExecutor:
    """Runs commands as child processes without a timeout."""

    async def execute(self, command: Command, cwd: Path) -> CommandResult:
        try:
            returncode, _, stderr = await run_command(
                list(command.argv), cwd=cwd, capture=False
            )
        except OSError as exc:
            return CommandResult(command, 127, str(exc))
        return CommandResult(command, returncode, stderr)


@dataclass
class DryRunExecutor:
    """Records commands instead of running them."""

    recorded: list[Command] = field(default_factory=list)

    async def execute(self, command: Command, cwd: Path) -> CommandResult:
        self.recorded.append(command)
        print_info(f"[dry-run] {command.display}")
        return CommandResult(command, 0)


class CommandRunner:
    """Executes commands in submission order and keeps their history."""

    def __init__(self, executor: CommandExecutor, cwd: Path) -> None:
        self.executor = executor
        self.cwd = Path(cwd)
        self.history: list[CommandResult] = []

    async def submit(self, *commands: Command) -> list[CommandResult]:
        """Run *commands* one after another.

        Raises:
            CommandError: On the first fatal command that fails.  Commands
                after it are not run.
        """
        results: list[CommandResult] = []
        for command in commands:
            print_info(command.description)
            result = await self.executor.execute(command, self.cwd)
            self.history.append(result)
            results.append(result)
            if result.ok:
                continue
            message = f"{command.description} failed (exit {result.returncode}): {command.display}"
            if result.stderr:
                message = f"{message}\n{result.stderr}"
            if command.fatal:
                raise CommandError(
                    message,
                    command=command.display,
                    returncode=result.returncode,
                    stderr=result.stderr,
                )
            print_error(message)
        return results

    @property
    def executed(self) -> list[str]:
        """Display strings of every command run so far."""
        return [result.command.display for result in self.history]
