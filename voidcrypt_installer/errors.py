from __future__ import annotations

from typing import Sequence


class InstallerError(RuntimeError):
    """Base class for every failure the installer reports to the operator."""


class PreconditionError(InstallerError):
    """Something required before a destructive action is missing or wrong."""


class InvalidSize(PreconditionError):
    def __init__(self, token: str) -> None:
        super().__init__(f"Unsupported size: {token!r} (expected <int>MiB|GiB|MB|GB)")
        self.token = token


class DeviceTimeout(InstallerError):
    def __init__(self, what: str, waited_s: float) -> None:
        super().__init__(f"Timed out waiting for {what} ({waited_s:.1f}s)")
        self.what = what
        self.waited_s = waited_s


class ExternalToolFailure(InstallerError):
    """A system tool exited non-zero. Its output is carried verbatim."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {' '.join(self.argv)}"
        if stderr:
            msg += f"\n{stderr.rstrip()}"
        super().__init__(msg)
