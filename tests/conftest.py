from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

import pytest

from voidcrypt_installer.lib.command import CmdResult


class FakeDeviceOps:
    """Records every command; answers from scripted outputs keyed by argv prefix."""

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run
        self.calls: List[List[str]] = []
        self.kwargs: List[dict] = []
        self.outputs: List[Tuple[Tuple[str, ...], CmdResult]] = []
        self.failing: Set[Tuple[str, ...]] = set()
        self.paths: Set[str] = set()
        self.block_devices: Set[str] = set()
        self.missing_tools: Set[str] = set()
        self.files: Dict[str, str] = {}
        self.sleeps: List[float] = []
        # a path that shows up after this many sleeps
        self.appear_after: Dict[str, int] = {}

    def script(self, prefix: Sequence[str], stdout: str = "", returncode: int = 0, stderr: str = "") -> None:
        self.outputs.append((tuple(prefix), CmdResult(list(prefix), returncode, stdout, stderr)))

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        env: Optional[Mapping[str, str]] = None,
        inherit_env: bool = True,
        interactive: bool = False,
    ) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        self.kwargs.append({"check": check, "env": env, "inherit_env": inherit_env, "interactive": interactive})
        for prefix, res in self.outputs:
            if tuple(argv[: len(prefix)]) == prefix:
                result = CmdResult(argv, res.returncode, res.stdout, res.stderr)
                break
        else:
            result = CmdResult(argv, 0, "", "")
        if check and result.returncode != 0:
            from voidcrypt_installer.errors import ExternalToolFailure

            raise ExternalToolFailure(argv, result.returncode, result.stderr)
        return result

    def exists(self, path: str) -> bool:
        if path in self.appear_after:
            return len(self.sleeps) >= self.appear_after[path]
        return path in self.paths or path in self.files

    def is_block_device(self, path: str) -> bool:
        return path in self.block_devices

    def which(self, tool: str) -> bool:
        return tool not in self.missing_tools

    def read_text(self, path: str) -> Optional[str]:
        return self.files.get(path)

    def write_text(self, path: str, contents: str) -> None:
        self.files[path] = contents

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def index(self, argv: Sequence[str]) -> int:
        return self.calls.index(list(argv))


@pytest.fixture
def ops():
    return FakeDeviceOps()
