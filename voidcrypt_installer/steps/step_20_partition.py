from __future__ import annotations

import logging

from ..lib.storage import apply_layout, plan_layout
from ..pipeline import InstallContext

logger = logging.getLogger(__name__)


class PartitionStep:
    step_id = "20_partition"

    def run(self, ctx: InstallContext) -> None:
        cfg = ctx.config
        layout = plan_layout(cfg.disk, cfg.efi_size, cfg.boot_size)
        esp, boot, root = apply_layout(ctx.ops, layout)

        ctx.decisions["partitions"] = {"esp": esp, "boot": boot, "root": root}
        logger.info("Partitioned %s: esp=%s boot=%s root=%s", cfg.disk, esp, boot, root)
