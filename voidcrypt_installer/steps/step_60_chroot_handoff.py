from __future__ import annotations

import logging

from ..lib.assets import TARGET_PYTHON, deploy_stage_two
from ..lib.chroot import chroot_cmd, copy_resolv_conf, mount_chroot_binds
from ..lib.handoff import HandoffMessage
from ..pipeline import InstallContext

logger = logging.getLogger(__name__)


class ChrootHandoffStep:
    """Bind the kernel filesystems and run stage two inside the target."""

    step_id = "60_chroot_handoff"

    def run(self, ctx: InstallContext) -> None:
        cfg = ctx.config
        parts = ctx.decisions["partitions"]
        # From here on a failure must tear down mounts and the mapping.
        ctx.decisions["handoff_started"] = True

        mount_chroot_binds(ctx.ops, cfg.target_root)
        copy_resolv_conf(ctx.ops, cfg.target_root)
        archive = deploy_stage_two(cfg.target_root, dry_run=ctx.ops.dry_run)

        message = HandoffMessage(
            hostname=cfg.hostname,
            btrfs_options=cfg.btrfs_options,
            esp_part=parts["esp"],
            boot_part=parts["boot"],
            luks_name=cfg.luks_name,
        )
        logger.info("Entering chroot %s", cfg.target_root)
        chroot_cmd(ctx.ops, cfg.target_root, [TARGET_PYTHON, archive], message)
