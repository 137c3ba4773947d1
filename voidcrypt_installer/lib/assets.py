from __future__ import annotations

import logging
import shutil
import tempfile
import zipapp
from pathlib import Path

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parents[1]
# Exit status of stage two is what the host sees from chroot.
STAGE_TWO_MAIN = """import sys

from voidcrypt_installer.stage_two import main

sys.exit(main())
"""
STAGE_TWO_PATH = "/root/voidcrypt-stage2.pyz"
TARGET_PYTHON = "/usr/bin/python3"


def copy_tree(src: str, dst: str, *, dry_run: bool = False) -> None:
    s = Path(src)
    d = Path(dst)
    if not s.exists():
        raise FileNotFoundError(src)

    if dry_run:
        logger.info("Would copy tree %s -> %s", str(s), str(d))
        return

    d.mkdir(parents=True, exist_ok=True)
    for item in s.rglob("*"):
        rel = item.relative_to(s)
        if "__pycache__" in rel.parts:
            continue
        out = d / rel
        if item.is_dir():
            out.mkdir(parents=True, exist_ok=True)
        else:
            out.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, out)


def deploy_stage_two(target_root: str, *, dry_run: bool = False) -> str:
    """Copy this package into the target as a runnable zipapp.

    Returns the path of the archive as seen from inside the target.
    """

    out = Path(target_root) / STAGE_TWO_PATH.lstrip("/")
    if dry_run:
        logger.info("Would build stage two archive %s", str(out))
        return STAGE_TWO_PATH

    with tempfile.TemporaryDirectory(prefix="voidcrypt-stage2-") as tmp:
        copy_tree(str(PACKAGE_DIR), str(Path(tmp) / PACKAGE_DIR.name))
        (Path(tmp) / "__main__.py").write_text(STAGE_TWO_MAIN, encoding="utf-8")
        out.parent.mkdir(parents=True, exist_ok=True)
        zipapp.create_archive(tmp, target=str(out), interpreter=TARGET_PYTHON)

    out.chmod(0o700)
    logger.info("Stage two deployed: %s", str(out))
    return STAGE_TWO_PATH
