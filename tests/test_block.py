import subprocess
import sys
import zipfile

from voidcrypt_installer.lib import assets
from voidcrypt_installer.lib.block import disk_partitions_mounted


def test_nvme_partitions_detected(ops):
    ops.script(["findmnt"], stdout="/dev/nvme0n1p2\n/dev/nvme0n10p1\n/dev/nvme1n1p1\n")
    assert disk_partitions_mounted(ops, "/dev/nvme0n1") == ["/dev/nvme0n1p2"]


def test_similar_disk_names_ignored(ops):
    ops.script(["findmnt"], stdout="/dev/sdaa1\n/dev/sdb1\ntmpfs\n")
    assert disk_partitions_mounted(ops, "/dev/sda") == []


def test_stage_two_archive_is_self_contained(tmp_path):
    inside = assets.deploy_stage_two(str(tmp_path))
    assert inside == assets.STAGE_TWO_PATH

    archive = tmp_path / "root" / "voidcrypt-stage2.pyz"
    assert archive.read_bytes().startswith(b"#!/usr/bin/python3\n")
    with zipfile.ZipFile(archive) as zf:
        names = zf.namelist()
        main = zf.read("__main__.py").decode()
    assert "voidcrypt_installer/stage_two.py" in names
    assert "voidcrypt_installer/lib/handoff.py" in names
    assert not any("__pycache__" in n for n in names)
    assert "voidcrypt_installer.stage_two" in main


def test_stage_two_archive_dry_run(tmp_path):
    assets.deploy_stage_two(str(tmp_path), dry_run=True)
    assert not (tmp_path / "root").exists()


def test_stage_two_archive_exits_non_zero_on_failure(tmp_path):
    assets.deploy_stage_two(str(tmp_path))
    archive = tmp_path / "root" / "voidcrypt-stage2.pyz"

    p = subprocess.run([sys.executable, str(archive)], env={}, capture_output=True, text=True)

    assert p.returncode == 1
    assert "HOSTNAME" in p.stderr
