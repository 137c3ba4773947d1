from __future__ import annotations

import logging

from ..errors import PreconditionError
from .devops import DeviceOps

logger = logging.getLogger(__name__)


def mounted_uuid(ops: DeviceOps, mountpoint: str) -> str:
    """Return the UUID of the filesystem currently mounted at ``mountpoint``.

    UUIDs come from the formatting tools, so they are read back from the live
    mount table rather than predicted.
    """

    r = ops.run(["findmnt", "-no", "UUID", mountpoint])
    words = (r.stdout or "").split()
    uuid = words[0] if words else ""
    if not uuid and not ops.dry_run:
        raise PreconditionError(f"Unable to determine UUID of filesystem mounted at {mountpoint}")
    return uuid


def mounted_sources(ops: DeviceOps) -> list[str]:
    r = ops.run(["findmnt", "-rno", "SOURCE"], check=False)
    return [line.strip() for line in (r.stdout or "").splitlines() if line.strip()]


def disk_partitions_mounted(ops: DeviceOps, disk: str) -> list[str]:
    """Sources in the mount table that are ``disk`` or one of its partitions."""

    hits = []
    for line in mounted_sources(ops):
        # btrfs subvolume mounts are listed as /dev/sda3[/@]
        src = line.split("[", 1)[0]
        # /dev/sda -> /dev/sda, /dev/sda1; /dev/nvme0n1 -> /dev/nvme0n1p2
        rest = src[len(disk):] if src.startswith(disk) else None
        if rest is None:
            continue
        if rest == "" or rest.lstrip("p").isdigit():
            hits.append(src)
    return hits
