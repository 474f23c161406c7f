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

"""Thin wrappers over the external CLIs the installer drives.

Every external process goes through ``_execute`` so that a non-zero exit
always surfaces as ``sh.ErrorReturnCode`` for the abort controller to handle.
"""

from __future__ import annotations

from pathlib import Path

import sh

from mlops_env import logger


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.") from err


def _execute(tool: str, args: tuple[str, ...], cwd: Path | None = None, stdin: str | None = None) -> str:
    """Run *tool* with *args*, block until it exits, and return its stdout.

    Raises:
        sh.ErrorReturnCode: If the process exits non-zero.
        sh.CommandNotFound: If *tool* is not on PATH.
    """
    kwargs: dict = {}
    if cwd is not None:
        kwargs["_cwd"] = str(cwd)
    if stdin is not None:
        kwargs["_in"] = stdin
    logger.debug("+ %s %s ...", tool, " ".join(args[:2]))
    return str(getattr(sh, tool)(*args, **kwargs))


def gcloud(*args: str, cwd: Path | None = None) -> str:
    return _execute("gcloud", args, cwd=cwd)


def kubectl(*args: str, cwd: Path | None = None, stdin: str | None = None) -> str:
    return _execute("kubectl", args, cwd=cwd, stdin=stdin)


def terraform(*args: str, cwd: Path | None = None) -> str:
    return _execute("terraform", args, cwd=cwd)


def kustomize(*args: str, cwd: Path | None = None) -> str:
    return _execute("kustomize", args, cwd=cwd)
