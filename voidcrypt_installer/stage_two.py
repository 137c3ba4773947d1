"""Second stage: finalize the installed system from inside the new root.

Runs as ``/usr/bin/python3 /root/voidcrypt-stage2.pyz`` under chroot with a
cleared environment. Everything it needs from the host arrives as a
HandoffMessage; the kernel filesystems are already bound by the host.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Callable, List, Mapping, Optional

from .errors import InstallerError
from .lib import bootloader, hwdetect, pkg, swap
from .lib.configgen import emit_fstab, emit_resume
from .lib.devops import DeviceOps, SystemDeviceOps
from .lib.env import PATHS
from .lib.handoff import HandoffMessage
from .logging_utils import configure_logging

logger = logging.getLogger(__name__)

RC_CONF = """HARDWARECLOCK="UTC"
TIMEZONE="UTC"
KEYMAP="us"
FONT=""
HARDWAREPROFILE="yes"
"""

LOCALE = "en_US.UTF-8 UTF-8"
LIBC_LOCALES = "/etc/default/libc-locales"
DRACUT_CONF = "/etc/dracut.conf"
DRACUT_HOSTONLY = "hostonly=yes"

DISPLAY_PACKAGES = ["xorg-minimal", "mesa-dri", "xfce4", "xfce4-terminal", "gdm", "dbus", "elogind", "polkit"]
SERVICES = ["dbus", "elogind", "gdm"]

Task = Callable[[DeviceOps, HandoffMessage], None]


def write_hostname(ops: DeviceOps, msg: HandoffMessage) -> None:
    ops.write_text("/etc/hostname", msg.hostname + "\n")


def write_rc_conf(ops: DeviceOps, msg: HandoffMessage) -> None:
    if ops.read_text("/etc/rc.conf") is not None:
        logger.info("/etc/rc.conf exists; leaving it untouched")
        return
    ops.write_text("/etc/rc.conf", RC_CONF)


def enable_locale(text: str, locale: str = LOCALE) -> str:
    out = []
    for line in text.splitlines():
        if line.startswith("#") and line.lstrip("#").strip() == locale:
            line = locale
        out.append(line)
    return "".join(line + "\n" for line in out)


def configure_locales(ops: DeviceOps, msg: HandoffMessage) -> None:
    if not pkg.xbps_has_package(ops, "^glibc-locales$"):
        logger.info("glibc-locales not available (musl?); skipping locale generation")
        return
    current = ops.read_text(LIBC_LOCALES)
    if current is None:
        return
    ops.write_text(LIBC_LOCALES, enable_locale(current))
    pkg.xbps_reconfigure(ops, "glibc-locales")


def set_root_password(ops: DeviceOps, msg: HandoffMessage) -> None:
    ops.run(["passwd"], interactive=True)


def write_fstab(ops: DeviceOps, msg: HandoffMessage) -> None:
    emit_fstab(ops, msg.btrfs_options)


def configure_dracut(ops: DeviceOps, msg: HandoffMessage) -> None:
    current = ops.read_text(DRACUT_CONF) or ""
    if DRACUT_HOSTONLY in (line.strip() for line in current.splitlines()):
        return
    if current and not current.endswith("\n"):
        current += "\n"
    ops.write_text(DRACUT_CONF, current + DRACUT_HOSTONLY + "\n")


def install_microcode(ops: DeviceOps, msg: HandoffMessage) -> None:
    vendor = hwdetect.cpu_vendor(ops)
    family, repos, packages = hwdetect.microcode_plan(vendor)
    logger.info("CPU vendor=%s -> %s microcode", vendor, family)
    if family == "intel":
        pkg.xbps_install(ops, repos)
        pkg.xbps_install(ops, packages, sync=True)
    elif not pkg.xbps_install(ops, packages, check=False):
        logger.warning("Optional firmware install failed: %s", " ".join(packages))


def install_bootloader(ops: DeviceOps, msg: HandoffMessage) -> None:
    pkg.xbps_install(ops, ["grub-x86_64-efi"])
    bootloader.install_grub_efi(ops)


def configure_swap_and_resume(ops: DeviceOps, msg: HandoffMessage) -> None:
    swap.create_swapfile(ops)
    offset = swap.resume_offset(ops)
    emit_resume(ops, offset)


def install_display_stack(ops: DeviceOps, msg: HandoffMessage) -> None:
    pkg.xbps_install(ops, DISPLAY_PACKAGES)


def enable_services(ops: DeviceOps, msg: HandoffMessage) -> None:
    for name in SERVICES:
        r = ops.run(["ln", "-snf", f"/etc/sv/{name}", f"/var/service/{name}"], check=False)
        if r.returncode != 0:
            logger.warning("Could not enable service %s", name)


def reconfigure_all(ops: DeviceOps, msg: HandoffMessage) -> None:
    pkg.xbps_reconfigure(ops)


def generate_grub_config(ops: DeviceOps, msg: HandoffMessage) -> None:
    bootloader.write_grub_config(ops)


TASKS: List[Task] = [
    write_hostname,
    write_rc_conf,
    configure_locales,
    set_root_password,
    write_fstab,
    configure_dracut,
    install_microcode,
    install_bootloader,
    configure_swap_and_resume,
    install_display_stack,
    enable_services,
    reconfigure_all,
    generate_grub_config,
]


def run_stage_two(ops: DeviceOps, msg: HandoffMessage, tasks: Optional[List[Task]] = None) -> None:
    logger.info(
        "Stage two: hostname=%s esp=%s boot=%s luks=%s",
        msg.hostname,
        msg.esp_part,
        msg.boot_part,
        msg.luks_name,
    )
    for task in TASKS if tasks is None else tasks:
        logger.info("Stage two task %s", task.__name__)
        task(ops, msg)


def main(environ: Optional[Mapping[str, str]] = None) -> int:
    try:
        msg = HandoffMessage.from_environ(os.environ if environ is None else environ)
    except InstallerError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    log_paths = configure_logging(log_path=PATHS.stage_two_log)
    try:
        run_stage_two(SystemDeviceOps(), msg)
    except InstallerError as e:
        logger.error("Stage two failed: %s", e)
        print(f"ERROR: {e}", file=sys.stderr)
        print(f"Details: {log_paths.actual} inside the target", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
