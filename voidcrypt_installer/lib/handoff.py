from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Dict, Mapping

from ..errors import PreconditionError

# The only search path stage two gets.
CHROOT_PATH = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"

_ENV_NAMES = {
    "hostname": "HOSTNAME",
    "btrfs_options": "BTRFS_OPTS",
    "esp_part": "EFI_PART",
    "boot_part": "BOOT_PART",
    "luks_name": "LUKS_NAME",
}


@dataclass(frozen=True)
class HandoffMessage:
    """Configuration carried from the host into stage two, and nothing else."""

    hostname: str
    btrfs_options: str
    esp_part: str
    boot_part: str
    luks_name: str

    def to_environ(self) -> Dict[str, str]:
        env = {_ENV_NAMES[f.name]: getattr(self, f.name) for f in fields(self)}
        env["PATH"] = CHROOT_PATH
        return env

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "HandoffMessage":
        missing = [name for name in _ENV_NAMES.values() if not environ.get(name)]
        if missing:
            raise PreconditionError(f"Stage two missing required values: {', '.join(missing)}")
        return cls(**{attr: environ[name] for attr, name in _ENV_NAMES.items()})
