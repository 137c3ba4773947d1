from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    target_root: str = "/mnt"
    state_default: str = "/var/lib/voidcrypt-installer/run.json"
    log_default: str = "/var/log/voidcrypt-installer.log"
    stage_two_log: str = "/var/log/voidcrypt-stage2.log"


PATHS = Paths()
