from __future__ import annotations

import logging
import os
import shutil
import stat
import time
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)


class DeviceOps(Protocol):
    """Everything the provisioning code does to the machine goes through here.

    The real implementation shells out and touches the filesystem; tests swap in
    a recording fake so layouts and generated files can be checked without a disk.
    """

    dry_run: bool

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        env: Mapping[str, str] | None = None,
        inherit_env: bool = True,
        interactive: bool = False,
    ) -> CmdResult:
        ...

    def exists(self, path: str) -> bool:
        ...

    def is_block_device(self, path: str) -> bool:
        ...

    def which(self, tool: str) -> bool:
        ...

    def read_text(self, path: str) -> Optional[str]:
        ...

    def write_text(self, path: str, contents: str) -> None:
        ...

    def sleep(self, seconds: float) -> None:
        ...


class SystemDeviceOps:
    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        env: Mapping[str, str] | None = None,
        inherit_env: bool = True,
        interactive: bool = False,
    ) -> CmdResult:
        return run_cmd(
            argv,
            check=check,
            env=env,
            inherit_env=inherit_env,
            interactive=interactive,
            dry_run=self.dry_run,
        )

    def exists(self, path: str) -> bool:
        # Be permissive in dry-run: nodes created by skipped commands never appear.
        if self.dry_run:
            return True
        return os.path.exists(path)

    def is_block_device(self, path: str) -> bool:
        try:
            return stat.S_ISBLK(os.stat(path).st_mode)
        except OSError:
            return False

    def which(self, tool: str) -> bool:
        return shutil.which(tool) is not None

    def read_text(self, path: str) -> Optional[str]:
        p = Path(path)
        if not p.exists():
            return None
        return p.read_text(encoding="utf-8")

    def write_text(self, path: str, contents: str) -> None:
        p = Path(path)
        if self.dry_run:
            logger.info("Would write %s", str(p))
            return
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(contents, encoding="utf-8")

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)
