from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .btrfs import with_subvol


@dataclass(frozen=True)
class FstabEntry:
    spec: str
    mountpoint: str
    fstype: str
    options: str
    dump: int = 0
    passno: int = 0

    def render(self) -> str:
        return f"{self.spec} {self.mountpoint} {self.fstype} {self.options} {self.dump} {self.passno}"


def render_fstab(entries: Iterable[FstabEntry]) -> str:
    return "".join(e.render() + "\n" for e in entries)


def target_fstab_entries(*, root_uuid: str, esp_uuid: str, boot_uuid: str, btrfs_options: str) -> List[FstabEntry]:
    """The installed system's mount table, in mount order."""

    root = f"UUID={root_uuid}"
    return [
        FstabEntry(root, "/", "btrfs", with_subvol(btrfs_options, "@"), 0, 1),
        FstabEntry(f"UUID={esp_uuid}", "/efi", "vfat", "defaults,noatime", 0, 2),
        FstabEntry(f"UUID={boot_uuid}", "/boot", "ext2", "defaults,noatime", 0, 2),
        FstabEntry(root, "/home", "btrfs", with_subvol(btrfs_options, "@home"), 0, 2),
        FstabEntry(root, "/.snapshots", "btrfs", with_subvol(btrfs_options, "@snapshots"), 0, 2),
        FstabEntry("tmpfs", "/tmp", "tmpfs", "defaults,nosuid,nodev", 0, 0),
    ]
