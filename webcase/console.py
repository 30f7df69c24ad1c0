"""
webcase - Console Command Runner.

Wraps a kernel in a click group so application commands can be run
in-process from tests, with the service container as ``ctx.obj``::

    @click.command("users:count")
    @click.pass_obj
    def count_users(container):
        session = container.get("orm").get_manager()
        click.echo(session.scalar(select(func.count(User.id))))
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Union

import click
from click.testing import CliRunner, Result

from .kernel import Kernel

logger = logging.getLogger("webcase.console")

Arguments = Union[Mapping[str, Any], Iterable[str], None]


class ConsoleApplication:
    """
    A click group bound to one kernel.

    Exceptions raised by a command propagate to the caller; usage errors
    are reported the way click reports them (non-zero exit code and a
    message in the output).
    """

    def __init__(self, kernel: Kernel, name: str = "console"):
        self.kernel = kernel
        self.group = click.Group(name=name)

    def add(self, command: click.Command) -> None:
        self.group.add_command(command)

    def find(self, name: str) -> click.Command:
        command = self.group.commands.get(name)
        if command is None:
            raise LookupError(f"Command {name!r} is not registered")
        return command

    def run(self, name: str, arguments: Arguments = None) -> Result:
        command = self.find(name)
        argv = [command.name, *as_argv(arguments)]
        logger.debug("Running command: %s", " ".join(argv))
        return CliRunner().invoke(
            self.group,
            argv,
            obj=self.kernel.container,
            catch_exceptions=False,
        )


def as_argv(arguments: Arguments) -> List[str]:
    """
    Turn command arguments into an argv list.

    A mapping is read the way console testers usually take input:
    keys starting with ``-`` are options (``True`` becomes a bare flag,
    ``False``/``None`` omit it, lists repeat it); any other key is a
    positional argument whose value is appended in order.
    """
    if arguments is None:
        return []
    if not isinstance(arguments, Mapping):
        return [str(a) for a in arguments]

    argv: List[str] = []
    for key, value in arguments.items():
        if not key.startswith("-"):
            argv.extend(_values(value))
        elif value is True:
            argv.append(key)
        elif value is False or value is None:
            continue
        else:
            for item in _values(value):
                argv.extend([key, item])
    return argv


def _values(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]
