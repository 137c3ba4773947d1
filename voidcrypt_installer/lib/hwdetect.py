from __future__ import annotations

import logging
from typing import Optional

from .devops import DeviceOps

logger = logging.getLogger(__name__)

EFI_SYSFS = "/sys/firmware/efi"

_MICROCODE_BY_VENDOR = {
    "GenuineIntel": ("intel", ["void-repo-nonfree"], ["intel-ucode"]),
    "AuthenticAMD": ("amd", [], ["linux-firmware-amd"]),
}


def is_efi_boot(ops: DeviceOps) -> bool:
    """True when the running environment was booted through UEFI."""

    return ops.exists(EFI_SYSFS)


def cpu_vendor(ops: DeviceOps, cpuinfo: str = "/proc/cpuinfo") -> Optional[str]:
    text = ops.read_text(cpuinfo) or ""
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip() == "vendor_id":
            return value.strip() or None
    return None


def microcode_plan(vendor: Optional[str]) -> tuple[str, list[str], list[str]]:
    """(family, repo packages, microcode packages) for a CPU vendor string.

    Anything not Intel is treated like AMD.
    """

    return _MICROCODE_BY_VENDOR.get(vendor or "", _MICROCODE_BY_VENDOR["AuthenticAMD"])
