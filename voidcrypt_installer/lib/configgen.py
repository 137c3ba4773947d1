from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .block import mounted_uuid
from .bootloader import GRUB_DEFAULTS, write_resume_directive
from .devops import DeviceOps
from .fstab import render_fstab, target_fstab_entries

logger = logging.getLogger(__name__)

FSTAB_PATH = "/etc/fstab"


@dataclass(frozen=True)
class MountUUIDs:
    root: str
    esp: str
    boot: str


def resolve_uuids(ops: DeviceOps, *, esp_mountpoint: str = "/efi") -> MountUUIDs:
    return MountUUIDs(
        root=mounted_uuid(ops, "/"),
        esp=mounted_uuid(ops, esp_mountpoint),
        boot=mounted_uuid(ops, "/boot"),
    )


def render_target_fstab(uuids: MountUUIDs, btrfs_options: str) -> str:
    return render_fstab(
        target_fstab_entries(
            root_uuid=uuids.root,
            esp_uuid=uuids.esp,
            boot_uuid=uuids.boot,
            btrfs_options=btrfs_options,
        )
    )


def emit_fstab(ops: DeviceOps, btrfs_options: str, *, path: str = FSTAB_PATH) -> MountUUIDs:
    uuids = resolve_uuids(ops)
    ops.write_text(path, render_target_fstab(uuids, btrfs_options))
    logger.info("Wrote %s (root_uuid=%s)", path, uuids.root)
    return uuids


def emit_resume(ops: DeviceOps, offset: Optional[int], *, path: str = GRUB_DEFAULTS) -> bool:
    """Rewrite the kernel command line override for hibernation.

    The root UUID is read again from the live mount. No directive is written
    when either value is unknown, and that is never an error.
    """

    root_uuid = None
    if offset is not None:
        # a findmnt failure only drops the override
        r = ops.run(["findmnt", "-no", "UUID", "/"], check=False)
        words = (r.stdout or "").split() if r.returncode == 0 else []
        root_uuid = words[0] if words else None
    return write_resume_directive(ops, root_uuid, offset, path=path)
