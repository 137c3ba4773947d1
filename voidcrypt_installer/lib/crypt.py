from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace

from .devops import DeviceOps
from .poll import wait_until

logger = logging.getLogger(__name__)

MAPPER_DIR = "/dev/mapper"
POLL_INTERVAL_S = 0.1
POLL_ATTEMPTS = 40


class VolumeState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"


@dataclass(frozen=True)
class EncryptedVolume:
    partition: str
    name: str
    state: VolumeState = VolumeState.CLOSED

    @property
    def mapped_path(self) -> str:
        return f"{MAPPER_DIR}/{self.name}"


def format_volume(ops: DeviceOps, partition: str, *, key_size: int = 512) -> None:
    """Irreversibly turn ``partition`` into a LUKS2 container.

    cryptsetup asks for confirmation and the passphrase on the terminal. A
    failure here is never retried.
    """

    ops.run(
        ["cryptsetup", "luksFormat", "--type", "luks2", "-s", str(key_size), partition],
        interactive=True,
    )


def open_volume(ops: DeviceOps, partition: str, name: str) -> EncryptedVolume:
    ops.run(["cryptsetup", "open", partition, name], interactive=True)
    return EncryptedVolume(partition=partition, name=name, state=VolumeState.OPEN)


def await_ready(
    ops: DeviceOps,
    volume: EncryptedVolume,
    *,
    interval_s: float = POLL_INTERVAL_S,
    attempts: int = POLL_ATTEMPTS,
) -> str:
    """Wait for the mapped node, then clear stale signatures on it."""

    path = volume.mapped_path
    wait_until(
        lambda: ops.exists(path),
        what=path,
        sleep=ops.sleep,
        interval_s=interval_s,
        attempts=attempts,
    )
    ops.run(["udevadm", "settle"])
    # A reused mapping can still expose an old superblock.
    ops.run(["wipefs", "-a", path])
    logger.info("Encrypted volume ready: %s -> %s", volume.partition, path)
    return path


def close_volume(ops: DeviceOps, volume: EncryptedVolume, *, check: bool = True) -> EncryptedVolume:
    """Close the mapping. With check=False a failed close leaves the state OPEN."""

    r = ops.run(["cryptsetup", "close", volume.name], check=check)
    if r.returncode != 0:
        return volume
    return replace(volume, state=VolumeState.CLOSED)


def provision_encrypted_root(ops: DeviceOps, partition: str, name: str) -> EncryptedVolume:
    format_volume(ops, partition)
    volume = open_volume(ops, partition, name)
    await_ready(ops, volume)
    return volume
