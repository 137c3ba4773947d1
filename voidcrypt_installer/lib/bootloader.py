from __future__ import annotations

import logging
from typing import Optional

from .devops import DeviceOps

logger = logging.getLogger(__name__)

GRUB_DEFAULTS = "/etc/default/grub"
GRUB_CFG = "/boot/grub/grub.cfg"
CMDLINE_KEY = "GRUB_CMDLINE_LINUX"


def resume_directive(root_uuid: str, offset: int) -> str:
    return f'{CMDLINE_KEY}="resume=UUID={root_uuid} resume_offset={offset}"'


def apply_resume_directive(text: str, root_uuid: Optional[str], offset: Optional[int]) -> str:
    """Drop every GRUB_CMDLINE_LINUX= line, then add the resume one if possible.

    GRUB_CMDLINE_LINUX_DEFAULT is left alone.
    """

    kept = [line for line in text.splitlines() if not line.startswith(f"{CMDLINE_KEY}=")]
    if root_uuid and offset is not None:
        kept.append(resume_directive(root_uuid, offset))
    return "".join(line + "\n" for line in kept)


def write_resume_directive(
    ops: DeviceOps,
    root_uuid: Optional[str],
    offset: Optional[int],
    *,
    path: str = GRUB_DEFAULTS,
) -> bool:
    current = ops.read_text(path) or ""
    ops.write_text(path, apply_resume_directive(current, root_uuid, offset))
    configured = bool(root_uuid) and offset is not None
    if configured:
        logger.info("Hibernation resume: UUID=%s offset=%s", root_uuid, offset)
    else:
        logger.info("No resume directive written (uuid=%r offset=%r)", root_uuid, offset)
    return configured


def install_grub_efi(ops: DeviceOps, *, efi_dir: str = "/efi", bootloader_id: str = "Void Linux") -> None:
    """Install GRUB for x86_64 EFI targets. Runs inside the target root."""

    ops.run(
        [
            "grub-install",
            "--target=x86_64-efi",
            f"--efi-directory={efi_dir}",
            f"--bootloader-id={bootloader_id}",
        ]
    )
    logger.info("GRUB EFI installed")


def write_grub_config(ops: DeviceOps, *, path: str = GRUB_CFG) -> None:
    ops.run(["grub-mkconfig", "-o", path])
