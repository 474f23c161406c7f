# /*
# Copyright 2026 The MLOps Env Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Fail-fast policy applied uniformly to every provisioning step."""

from __future__ import annotations

import traceback
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import NoReturn

import sh
import typer
from rich.markup import escape

from mlops_env import console, logger
from mlops_env.constants import COMMAND_NOT_FOUND_EXIT_CODE, REDACTED, STDERR_TAIL_CHARS

PACKAGE_DIR = Path(__file__).resolve().parent
_WRAPPER_MODULES = {"tools.py", "abort.py"}


class StepFailedError(RuntimeError):
    """An external command failed inside a provisioning step.

    Attributes:
        step: Name of the step that was running.
        location: ``file:line (function)`` that issued the failing command.
        command: The failing command line.
        exit_code: Exit status of the failing command.
        stderr: Tail of the command's standard error.
    """

    def __init__(self, step: str, location: str, command: str, exit_code: int, stderr: str = "") -> None:
        super().__init__(f"step '{step}' failed: '{command}' returned exit status {exit_code}")
        self.step = step
        self.location = location
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr


def _origin(err: BaseException, step: str) -> str:
    """Locate the innermost installer frame that issued the failing command."""
    for frame in reversed(traceback.extract_tb(err.__traceback__)):
        path = Path(frame.filename)
        if path.parent.resolve() == PACKAGE_DIR and path.name not in _WRAPPER_MODULES:
            return f"{path.name}:{frame.lineno} ({frame.name})"
    return step


def _exit_status(exit_code: int) -> int:
    # sh reports signal deaths as negative codes; the shell convention is 128+N.
    return 128 - exit_code if exit_code < 0 else exit_code


def _tail(data: bytes | str | None) -> str:
    if not data:
        return ""
    text = data.decode(errors="replace") if isinstance(data, bytes) else data
    return text.strip()[-STDERR_TAIL_CHARS:]


class AbortController:
    """Converts command failures into ``StepFailedError`` and terminates the run.

    Wrap each step in ``step()``; on failure call ``abort()`` once at the top
    level. Steps never catch command failures themselves.
    """

    def __init__(self, sensitive: Iterable[str] = ()) -> None:
        self.completed: list[str] = []
        self.current: str | None = None
        self._sensitive = [value for value in sensitive if value]

    def redact(self, text: str) -> str:
        """Mask registered secret values in *text*."""
        for value in self._sensitive:
            text = text.replace(value, REDACTED)
        return text

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        """Run the enclosed block as provisioning step *name*.

        Raises:
            StepFailedError: If an external command inside the block fails.
        """
        self.current = name
        logger.debug("Starting step: %s", name)
        try:
            yield
        except sh.ErrorReturnCode as err:
            raise StepFailedError(
                name, _origin(err, name), err.full_cmd, _exit_status(err.exit_code), _tail(err.stderr),
            ) from err
        except sh.CommandNotFound as err:
            raise StepFailedError(
                name, _origin(err, name), str(err), COMMAND_NOT_FOUND_EXIT_CODE,
            ) from err
        self.completed.append(name)
        self.current = None

    def abort(self, err: StepFailedError) -> NoReturn:
        """Report *err* on stderr and exit with the failing command's status."""
        console.print(f"[red]Error on line: {escape(err.location)}[/red]")
        console.print(f"[red]Caused by: {escape(self.redact(err.command))}[/red]")
        console.print(f"[red]That returned exit status: {err.exit_code}[/red]")
        if err.stderr:
            console.print(escape(self.redact(err.stderr)), style="dim")
        if self.completed:
            logger.info("Completed steps before failure: %s", ", ".join(self.completed))
        console.print("[red]Aborting...[/red]")
        raise typer.Exit(code=err.exit_code)
