from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .crypt import EncryptedVolume, VolumeState, close_volume
from .devops import DeviceOps
from .handoff import HandoffMessage

logger = logging.getLogger(__name__)

VIRTUAL_FS = ("dev", "proc", "sys", "run")


def mount_chroot_binds(ops: DeviceOps, target_root: str) -> None:
    # Recursive + slave so unmounting inside the chroot never propagates back
    for d in VIRTUAL_FS:
        dst = f"{target_root}/{d}"
        ops.run(["mkdir", "-p", dst])
        ops.run(["mount", "--rbind", f"/{d}", dst])
        ops.run(["mount", "--make-rslave", dst])


def copy_resolv_conf(ops: DeviceOps, target_root: str) -> None:
    ops.run(["cp", "-f", "/etc/resolv.conf", f"{target_root}/etc/resolv.conf"])


def chroot_cmd(
    ops: DeviceOps,
    target_root: str,
    argv: Sequence[str],
    message: HandoffMessage,
) -> None:
    """Run ``argv`` inside ``target_root`` with only the handoff values set."""

    ops.run(
        ["chroot", target_root, *argv],
        env=message.to_environ(),
        inherit_env=False,
        interactive=True,
    )


def _quiet(ops: DeviceOps, argv: List[str]) -> Optional[str]:
    r = ops.run(argv, check=False)
    return None if r.returncode == 0 else f"exit {r.returncode}"


def teardown(ops: DeviceOps, target_root: str, luks_name: str) -> List[str]:
    """Drop swap, unmount everything, close the mapping.

    The swap file lives on the target, so it goes first or ``umount -R`` is
    busy. Best effort: failures are logged and returned, never raised.
    """

    volume = EncryptedVolume(partition="", name=luks_name, state=VolumeState.OPEN)
    actions: List[Tuple[str, Callable[[], Optional[str]]]] = [
        ("swapoff -a", lambda: _quiet(ops, ["swapoff", "-a"])),
        (f"umount -R {target_root}", lambda: _quiet(ops, ["umount", "-R", target_root])),
        (
            f"cryptsetup close {luks_name}",
            lambda: None if close_volume(ops, volume, check=False).state is VolumeState.CLOSED else "still open",
        ),
    ]

    failures: List[str] = []
    for what, action in actions:
        try:
            problem = action()
        except OSError as e:
            problem = str(e)
        if problem is not None:
            failures.append(f"{what}: {problem}")
            logger.warning("Cleanup step failed: %s (%s)", what, problem)
    return failures
