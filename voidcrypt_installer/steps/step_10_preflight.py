from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from ..errors import PreconditionError
from ..lib.block import disk_partitions_mounted
from ..lib.hwdetect import is_efi_boot
from ..lib.storage import check_capacity, device_size_mib, plan_layout
from ..pipeline import InstallContext

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = (
    "parted",
    "mkfs.vfat",
    "mkfs.ext2",
    "cryptsetup",
    "mkfs.btrfs",
    "btrfs",
    "lsblk",
    "xbps-install",
    "chroot",
    "wipefs",
    "udevadm",
    "findmnt",
    "blockdev",
)


def ask_yes_no(prompt: str) -> bool:
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


class PreflightStep:
    """Refuse to start unless the host and the target disk look sane.

    Nothing is written to the disk before this step has passed.
    """

    step_id = "10_preflight"

    def __init__(
        self,
        confirm: Callable[[str], bool] = ask_yes_no,
        tools: Sequence[str] = REQUIRED_TOOLS,
    ) -> None:
        self.confirm = confirm
        self.tools = tuple(tools)

    def run(self, ctx: InstallContext) -> None:
        cfg = ctx.config
        ops = ctx.ops

        if not ops.is_block_device(cfg.disk):
            raise PreconditionError(f"--disk is required and must be a block device (got {cfg.disk})")

        missing = [t for t in self.tools if not ops.which(t)]
        if missing:
            raise PreconditionError(f"Missing required tools: {', '.join(missing)}")

        if not ops.dry_run and not is_efi_boot(ops):
            raise PreconditionError("Host is not booted in UEFI mode; a GPT/ESP install needs EFI")

        mounted = disk_partitions_mounted(ops, cfg.disk)
        if mounted:
            raise PreconditionError(f"Partitions of {cfg.disk} are mounted: {', '.join(mounted)}")

        layout = plan_layout(cfg.disk, cfg.efi_size, cfg.boot_size)
        size_mib: Optional[int] = None
        if not ops.dry_run:
            size_mib = device_size_mib(ops, cfg.disk)
            check_capacity(layout, size_mib)
            ctx.decisions["bounds_mib"] = [list(b) for b in layout.bounds(size_mib)]

        ctx.decisions["device_mib"] = size_mib
        ctx.decisions["layout"] = [
            {"number": p.number, "role": p.role, "start_mib": p.start_mib, "end": p.end_arg}
            for p in layout.partitions
        ]

        logger.info("Install plan:\n%s", "\n".join(f"  {k}: {v}" for k, v in cfg.summary().items()))
        ops.run(["lsblk", "-dno", "NAME,SIZE,MODEL", cfg.disk], check=False)

        if cfg.force or ops.dry_run:
            return
        if not self.confirm(f"ALL DATA ON {cfg.disk} WILL BE DESTROYED. Continue? [y/N] "):
            raise PreconditionError("Aborted by user")
        ctx.decisions["confirmed"] = True
