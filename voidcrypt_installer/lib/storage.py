from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..errors import PreconditionError
from .devops import DeviceOps
from .sizes import SizeSpec

logger = logging.getLogger(__name__)

# First partition starts here so it lands on a physical-sector boundary.
ALIGNMENT_MIB = 1

# Smallest root partition we are willing to create on top of ESP + /boot.
MIN_ROOT_MIB = 4096


@dataclass(frozen=True)
class Partition:
    number: int
    role: str  # esp|boot|root
    name: str
    fs_hint: str
    start_mib: int
    end_mib: Optional[int]  # None: up to the end of the disk
    flags: Tuple[str, ...] = ()
    encrypted: bool = False

    @property
    def end_arg(self) -> str:
        return "100%" if self.end_mib is None else f"{self.end_mib}MiB"


@dataclass(frozen=True)
class DiskLayout:
    disk: str
    partitions: Tuple[Partition, Partition, Partition]

    @property
    def esp(self) -> Partition:
        return self.partitions[0]

    @property
    def boot(self) -> Partition:
        return self.partitions[1]

    @property
    def root(self) -> Partition:
        return self.partitions[2]

    @property
    def fixed_mib(self) -> int:
        """Space taken before the root partition starts."""

        return self.root.start_mib

    def bounds(self, device_mib: int) -> List[Tuple[int, int]]:
        return [(p.start_mib, device_mib if p.end_mib is None else p.end_mib) for p in self.partitions]


def partition_path(disk: str, index: int) -> str:
    """Device node of partition ``index`` on ``disk``."""

    if "nvme" in disk:
        return f"{disk}p{index}"
    return f"{disk}{index}"


def plan_layout(disk: str, efi_size: SizeSpec, boot_size: SizeSpec) -> DiskLayout:
    """ESP + /boot with fixed sizes, encrypted root takes the rest.

    Capacity is not checked here; see check_capacity().
    """

    efi_mib = efi_size.mib
    boot_mib = boot_size.mib
    for label, size, mib in (("EFI", efi_size, efi_mib), ("boot", boot_size, boot_mib)):
        if mib <= 0:
            raise PreconditionError(f"{label} partition size must be at least 1 MiB, got {size}")

    esp_end = ALIGNMENT_MIB + efi_mib
    boot_end = esp_end + boot_mib

    return DiskLayout(
        disk=disk,
        partitions=(
            Partition(1, "esp", "ESP", "fat32", ALIGNMENT_MIB, esp_end, flags=("esp",)),
            Partition(2, "boot", "boot", "ext2", esp_end, boot_end),
            Partition(3, "root", "root", "btrfs", boot_end, None, encrypted=True),
        ),
    )


def parted_commands(layout: DiskLayout) -> List[List[str]]:
    cmds: List[List[str]] = [["parted", "-s", layout.disk, "mklabel", "gpt"]]
    for p in layout.partitions:
        cmds.append(["parted", "-s", layout.disk, "mkpart", p.name, p.fs_hint, f"{p.start_mib}MiB", p.end_arg])
        for flag in p.flags:
            cmds.append(["parted", "-s", layout.disk, "set", str(p.number), flag, "on"])
    return cmds


def device_size_mib(ops: DeviceOps, disk: str) -> int:
    r = ops.run(["blockdev", "--getsize64", disk])
    try:
        return int((r.stdout or "").strip()) // (1024 * 1024)
    except ValueError:
        raise PreconditionError(f"Unable to determine size of {disk}: {r.stdout!r}") from None


def check_capacity(layout: DiskLayout, device_mib: int) -> None:
    needed = layout.fixed_mib + MIN_ROOT_MIB
    if device_mib < needed:
        raise PreconditionError(
            f"{layout.disk} is {device_mib}MiB; need at least {needed}MiB "
            f"({layout.fixed_mib}MiB for ESP+/boot, {MIN_ROOT_MIB}MiB for root)"
        )


def apply_layout(ops: DeviceOps, layout: DiskLayout) -> Tuple[str, str, str]:
    """Write the GPT and return the three partition device paths."""

    logger.info(
        "Partitioning disk=%s esp=%s boot=%s root=%sMiB..end",
        layout.disk,
        f"{layout.esp.start_mib}-{layout.esp.end_mib}MiB",
        f"{layout.boot.start_mib}-{layout.boot.end_mib}MiB",
        layout.root.start_mib,
    )

    for argv in parted_commands(layout):
        ops.run(argv)

    # Inform kernel / wait for partition nodes
    ops.run(["udevadm", "settle"])

    p1, p2, p3 = (partition_path(layout.disk, p.number) for p in layout.partitions)
    return p1, p2, p3
