from __future__ import annotations

import logging
import re
from typing import Optional

from .devops import DeviceOps

logger = logging.getLogger(__name__)

SWAP_DIR = "/var/swap"
SWAP_FILE = "/var/swap/swapfile"
DEFAULT_SWAP_MIB = 16 * 1024

_BARE_INT_RE = re.compile(r"\s*(\d+)\s*")
_RESUME_LINE_RE = re.compile(r"^\s*resume offset:\s*(\d+)\s*$", re.IGNORECASE | re.MULTILINE)
# " 0:        0..       0:    1234567..   1234567:      1:"
_FIRST_EXTENT_RE = re.compile(r"^\s*0:\s*\d+\.\.\s*\d+:\s*(\d+)\.\.", re.MULTILINE)


def ensure_swap_subvolume(ops: DeviceOps, path: str = SWAP_DIR) -> None:
    if ops.run(["btrfs", "subvolume", "show", path], check=False).returncode == 0:
        return
    ops.run(["btrfs", "subvolume", "create", path])


def create_swapfile(ops: DeviceOps, *, size_mib: int = DEFAULT_SWAP_MIB, path: str = SWAP_FILE) -> None:
    """Allocate and activate a btrfs swap file.

    nodatacow and compression must be off before any data lands in the file,
    hence the zero-length truncate first.
    """

    ensure_swap_subvolume(ops, path.rsplit("/", 1)[0] or "/")
    ops.run(["truncate", "-s", "0", path])
    ops.run(["chattr", "+C", path])
    ops.run(["btrfs", "property", "set", path, "compression", "none"])
    ops.run(["fallocate", "-l", f"{size_mib}M", path])
    ops.run(["chmod", "600", path])
    ops.run(["mkswap", path])
    ops.run(["swapon", path])
    logger.info("Swap file active: %s (%dMiB)", path, size_mib)


def parse_map_swapfile(output: str) -> Optional[int]:
    """Parse ``btrfs inspect-internal map-swapfile`` output (with or without -r)."""

    m = _BARE_INT_RE.fullmatch(output or "")
    if m:
        return int(m.group(1))
    m = _RESUME_LINE_RE.search(output or "")
    if m:
        return int(m.group(1))
    return None


def parse_filefrag(output: str) -> Optional[int]:
    """Physical start block of extent 0 from ``filefrag -v``."""

    m = _FIRST_EXTENT_RE.search(output or "")
    return int(m.group(1)) if m else None


def resume_offset(ops: DeviceOps, path: str = SWAP_FILE) -> Optional[int]:
    """Offset for resume_offset=, or None when neither lookup works.

    Only valid after the file is allocated and active.
    """

    r = ops.run(["btrfs", "inspect-internal", "map-swapfile", "-r", path], check=False)
    if r.returncode == 0:
        offset = parse_map_swapfile(r.stdout)
        if offset is not None:
            return offset
        logger.warning("Unrecognized map-swapfile output: %r", r.stdout)

    r = ops.run(["filefrag", "-v", path], check=False)
    if r.returncode == 0:
        offset = parse_filefrag(r.stdout)
        if offset is not None:
            return offset

    logger.warning("Could not derive resume offset for %s; hibernation will not be configured", path)
    return None
