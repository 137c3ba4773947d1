from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..errors import ExternalToolFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    inherit_env: bool = True,
    cwd: str | None = None,
    input_text: str | None = None,
    interactive: bool = False,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - interactive commands share the terminal (passphrase prompts, passwd)
      and their output is not captured.
    - inherit_env=False starts from an empty environment; only ``env`` is passed.
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    logger.info("CMD %s", fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    full_env = dict(os.environ, **(env or {})) if inherit_env else dict(env or {})

    if interactive:
        p = subprocess.run(argv_list, cwd=cwd, env=full_env)
        stdout, stderr = "", ""
    else:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
            env=full_env,
        )
        stdout, stderr = p.stdout or "", p.stderr or ""
        if stdout:
            logger.debug("STDOUT %s", stdout.strip())
        if stderr:
            logger.debug("STDERR %s", stderr.strip())

    if check and p.returncode != 0:
        raise ExternalToolFailure(argv_list, p.returncode, stderr)

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=stdout, stderr=stderr)
