from __future__ import annotations

import logging
from typing import Sequence

from .devops import DeviceOps

logger = logging.getLogger(__name__)

BASE_PACKAGES = (
    "base-system",
    "btrfs-progs",
    "cryptsetup",
    "e2fsprogs",
    "util-linux",
    # stage two is Python
    "python3",
)


def repo_for(repo: str, *, musl: bool) -> str:
    return f"{repo.rstrip('/')}/musl" if musl else repo


def arch_for(arch: str, *, musl: bool) -> str:
    return "x86_64-musl" if musl else arch


def xbps_bootstrap(
    ops: DeviceOps,
    *,
    target_root: str,
    repo: str,
    arch: str,
    packages: Sequence[str] = BASE_PACKAGES,
) -> None:
    """Install the base system into ``target_root`` from the host.

    Interactive: xbps asks to import the repository key on first use.
    """

    ops.run(
        ["xbps-install", "-S", "-R", repo, "-r", target_root, *packages],
        env={"XBPS_ARCH": arch},
        interactive=True,
    )


def xbps_install(ops: DeviceOps, packages: Sequence[str], *, check: bool = True, sync: bool = False) -> bool:
    """Install packages from inside the running target. Returns success.

    ``sync`` refreshes repository indexes first, needed right after a repo
    package has been installed.
    """

    if not packages:
        return True
    r = ops.run(["xbps-install", "-Sy" if sync else "-y", *packages], check=check, interactive=True)
    return r.returncode == 0


def xbps_has_package(ops: DeviceOps, pattern: str) -> bool:
    if ops.dry_run:
        # Be permissive in dry-run so planning doesn't fail.
        return True
    r = ops.run(["xbps-query", "-Rs", pattern], check=False)
    return r.returncode == 0 and bool((r.stdout or "").strip())


def xbps_reconfigure(ops: DeviceOps, *packages: str, check: bool = True) -> None:
    argv = ["xbps-reconfigure", "-f", *packages] if packages else ["xbps-reconfigure", "-fa"]
    ops.run(argv, check=check)
