from __future__ import annotations

import logging

from ..lib.chroot import teardown
from ..pipeline import InstallContext

logger = logging.getLogger(__name__)


class FinalizeRebootStep:
    step_id = "90_finalize_reboot"

    def __init__(self, reboot: bool = True) -> None:
        self.reboot = reboot

    def run(self, ctx: InstallContext) -> None:
        logger.info("Finalize summary: %s", ctx.decisions)

        failures = teardown(ctx.ops, ctx.config.target_root, ctx.config.luks_name)
        ctx.state.setdefault("execution", {}).setdefault("cleanup_failures", []).extend(failures)
        ctx.decisions["handoff_started"] = False

        if self.reboot:
            ctx.ops.run(["sync"])
            ctx.ops.run(["shutdown", "-r", "now"])
