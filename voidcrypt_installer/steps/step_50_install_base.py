from __future__ import annotations

import logging

from ..lib.pkg import xbps_bootstrap
from ..pipeline import InstallContext

logger = logging.getLogger(__name__)


class InstallBaseStep:
    step_id = "50_install_base"

    def run(self, ctx: InstallContext) -> None:
        cfg = ctx.config
        logger.info("Installing base system (arch=%s repo=%s)", cfg.xbps_arch, cfg.xbps_repo)
        xbps_bootstrap(
            ctx.ops,
            target_root=cfg.target_root,
            repo=cfg.xbps_repo,
            arch=cfg.xbps_arch,
            packages=cfg.base_packages,
        )
