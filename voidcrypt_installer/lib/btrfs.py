from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import Tuple

from .devops import DeviceOps

logger = logging.getLogger(__name__)

DEFAULT_BTRFS_OPTIONS = "rw,noatime,ssd,compress=zstd,space_cache,commit=120"
PLAIN_MOUNT_OPTIONS = "rw,noatime"


@dataclass(frozen=True)
class SubvolumeTree:
    root: str = "@"
    # (subvolume, mountpoint) pairs mounted on their own
    mounted: Tuple[Tuple[str, str], ...] = (("@home", "/home"), ("@snapshots", "/.snapshots"))
    # created inside the mounted root tree, inherit the parent mount
    nested: Tuple[str, ...] = ("var/cache/xbps", "var/tmp", "srv", "var/swap")


@dataclass(frozen=True)
class Labels:
    esp: str = "BOOT"
    boot: str = "grub"
    root: str = "void"


def _under(target_root: str, path: str) -> str:
    return posixpath.join(target_root, path.lstrip("/"))


def with_subvol(options: str, subvolume: str) -> str:
    return f"{options},subvol={subvolume}"


def format_filesystems(ops: DeviceOps, *, esp: str, boot: str, mapped: str, labels: Labels) -> None:
    ops.run(["mkfs.vfat", "-n", labels.esp, "-F32", esp])
    ops.run(["mkfs.ext2", "-L", labels.boot, boot])
    ops.run(["mkfs.btrfs", "-f", "-L", labels.root, mapped])


def create_subvolumes(
    ops: DeviceOps,
    mapped: str,
    target_root: str,
    options: str,
    tree: SubvolumeTree = SubvolumeTree(),
) -> None:
    """Create and mount the subvolume tree on a freshly made btrfs.

    A subvolume can only be selected with subvol= once it exists, so the bare
    volume is mounted first to create the top-level ones, then remounted.
    """

    ops.run(["mkdir", "-p", target_root])

    ops.run(["mount", "-o", options, mapped, target_root])
    for sub in (tree.root, *(name for name, _ in tree.mounted)):
        ops.run(["btrfs", "subvolume", "create", _under(target_root, sub)])
    ops.run(["umount", target_root])

    ops.run(["mount", "-o", with_subvol(options, tree.root), mapped, target_root])
    for sub, mountpoint in tree.mounted:
        where = _under(target_root, mountpoint)
        ops.run(["mkdir", "-p", where])
        ops.run(["mount", "-o", with_subvol(options, sub), mapped, where])

    parents = sorted({posixpath.dirname(n) for n in tree.nested if posixpath.dirname(n)})
    for parent in parents:
        ops.run(["mkdir", "-p", _under(target_root, parent)])
    for sub in tree.nested:
        ops.run(["btrfs", "subvolume", "create", _under(target_root, sub)])

    logger.info("Subvolumes ready under %s", target_root)


def mount_boot_partitions(ops: DeviceOps, *, esp: str, boot: str, target_root: str) -> None:
    for dev, mountpoint in ((esp, "/efi"), (boot, "/boot")):
        where = _under(target_root, mountpoint)
        ops.run(["mkdir", "-p", where])
        ops.run(["mount", "-o", PLAIN_MOUNT_OPTIONS, dev, where])


def provision_filesystems(
    ops: DeviceOps,
    *,
    esp: str,
    boot: str,
    mapped: str,
    target_root: str,
    options: str,
    labels: Labels = Labels(),
) -> None:
    format_filesystems(ops, esp=esp, boot=boot, mapped=mapped, labels=labels)
    create_subvolumes(ops, mapped, target_root, options)
    mount_boot_partitions(ops, esp=esp, boot=boot, target_root=target_root)
