from __future__ import annotations

import logging

from ..lib.crypt import provision_encrypted_root
from ..pipeline import InstallContext

logger = logging.getLogger(__name__)


class EncryptStep:
    step_id = "30_encrypt"

    def run(self, ctx: InstallContext) -> None:
        root = ctx.decisions["partitions"]["root"]
        volume = provision_encrypted_root(ctx.ops, root, ctx.config.luks_name)
        ctx.decisions["mapped_device"] = volume.mapped_path
