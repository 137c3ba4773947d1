from __future__ import annotations

import logging

from ..lib.btrfs import Labels, provision_filesystems
from ..pipeline import InstallContext

logger = logging.getLogger(__name__)


class FilesystemStep:
    step_id = "40_filesystems"

    def run(self, ctx: InstallContext) -> None:
        cfg = ctx.config
        parts = ctx.decisions["partitions"]
        provision_filesystems(
            ctx.ops,
            esp=parts["esp"],
            boot=parts["boot"],
            mapped=ctx.decisions["mapped_device"],
            target_root=cfg.target_root,
            options=cfg.btrfs_options,
            labels=Labels(esp=cfg.efi_label, boot=cfg.boot_label, root=cfg.btrfs_label),
        )
        ctx.decisions["target_root"] = cfg.target_root
        logger.info("Filesystems mounted under %s", cfg.target_root)
