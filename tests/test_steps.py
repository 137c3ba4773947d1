import pytest

from voidcrypt_installer.config import build_config
from voidcrypt_installer.errors import PreconditionError
from voidcrypt_installer.lib.handoff import HandoffMessage
from voidcrypt_installer.lib.hwdetect import EFI_SYSFS
from voidcrypt_installer.pipeline import InstallContext
from voidcrypt_installer.state_store import new_state
from voidcrypt_installer.steps import (
    ChrootHandoffStep,
    EncryptStep,
    FilesystemStep,
    FinalizeRebootStep,
    InstallBaseStep,
    PartitionStep,
    PreflightStep,
)
from voidcrypt_installer.steps import step_60_chroot_handoff

GIB = 1024 * 1024 * 1024


def _ctx(ops, **cli):
    cfg = build_config({"disk": "/dev/sda", **cli})
    return InstallContext(config=cfg, ops=ops, state=new_state(cfg.summary()))


@pytest.fixture
def host(ops):
    ops.block_devices.add("/dev/sda")
    ops.paths.add(EFI_SYSFS)
    ops.script(["blockdev", "--getsize64"], stdout=str(20 * GIB))
    ops.script(["findmnt", "-rno", "SOURCE"], stdout="/dev/sdb1\n/dev/sdb2[/@]\n")
    return ops


def test_preflight_passes_and_records_layout(host):
    prompts = []
    ctx = _ctx(host)
    PreflightStep(confirm=lambda p: prompts.append(p) or True).run(ctx)

    assert len(prompts) == 1 and "/dev/sda" in prompts[0]
    assert ctx.decisions["device_mib"] == 20480
    assert [p["start_mib"] for p in ctx.decisions["layout"]] == [1, 201, 701]
    assert ctx.decisions["bounds_mib"] == [[1, 201], [201, 701], [701, 20480]]
    # nothing destructive yet
    assert not any(c[0] in {"parted", "cryptsetup", "mkfs.btrfs", "wipefs"} for c in host.calls)


def test_preflight_declined(host):
    with pytest.raises(PreconditionError, match="Aborted"):
        PreflightStep(confirm=lambda p: False).run(_ctx(host))


def test_preflight_force_skips_prompt(host):
    PreflightStep(confirm=lambda p: pytest.fail("prompted")).run(_ctx(host, force=True))


def test_preflight_requires_block_device(host):
    with pytest.raises(PreconditionError, match="block device"):
        PreflightStep().run(_ctx(host, disk="/dev/sdz"))


def test_preflight_missing_tool(host):
    host.missing_tools.add("cryptsetup")
    with pytest.raises(PreconditionError, match="cryptsetup"):
        PreflightStep().run(_ctx(host))


def test_preflight_requires_uefi(host):
    host.paths.discard(EFI_SYSFS)
    with pytest.raises(PreconditionError, match="UEFI"):
        PreflightStep().run(_ctx(host))


@pytest.mark.parametrize("source", ["/dev/sda2", "/dev/sda3[/@home]", "/dev/sda"])
def test_preflight_refuses_mounted_target(ops, source):
    ops.block_devices.add("/dev/sda")
    ops.paths.add(EFI_SYSFS)
    ops.script(["findmnt", "-rno", "SOURCE"], stdout=f"/dev/sdb1\n{source}\n")
    with pytest.raises(PreconditionError, match="mounted"):
        PreflightStep(confirm=lambda p: True).run(_ctx(ops))


def test_preflight_too_small(ops):
    ops.block_devices.add("/dev/sda")
    ops.paths.add(EFI_SYSFS)
    ops.script(["blockdev", "--getsize64"], stdout=str(2 * GIB))
    with pytest.raises(PreconditionError, match="need at least"):
        PreflightStep(confirm=lambda p: True).run(_ctx(ops))
    assert not any(c[0] == "parted" for c in ops.calls)


def test_partition_encrypt_filesystems(ops):
    ops.paths.add("/dev/mapper/cryptroot")
    ctx = _ctx(ops, disk="/dev/nvme0n1")

    PartitionStep().run(ctx)
    EncryptStep().run(ctx)
    FilesystemStep().run(ctx)

    assert ctx.decisions["partitions"] == {
        "esp": "/dev/nvme0n1p1",
        "boot": "/dev/nvme0n1p2",
        "root": "/dev/nvme0n1p3",
    }
    assert ctx.decisions["mapped_device"] == "/dev/mapper/cryptroot"
    assert ["cryptsetup", "open", "/dev/nvme0n1p3", "cryptroot"] in ops.calls
    assert ["mkfs.vfat", "-n", "BOOT", "-F32", "/dev/nvme0n1p1"] in ops.calls
    assert ops.index(["wipefs", "-a", "/dev/mapper/cryptroot"]) < ops.index(
        ["mkfs.btrfs", "-f", "-L", "void", "/dev/mapper/cryptroot"]
    )


def test_install_base_uses_arch_and_repo(ops):
    InstallBaseStep().run(_ctx(ops, musl="yes"))
    argv = ops.calls[0]
    assert argv[:6] == ["xbps-install", "-S", "-R", "https://alpha.us.repo.voidlinux.org/current/musl", "-r", "/mnt"]
    assert "base-system" in argv and "python3" in argv
    assert ops.kwargs[0]["env"] == {"XBPS_ARCH": "x86_64-musl"}


def test_chroot_handoff(ops, monkeypatch):
    deployed = []
    monkeypatch.setattr(
        step_60_chroot_handoff,
        "deploy_stage_two",
        lambda target, dry_run=False: deployed.append(target) or "/root/voidcrypt-stage2.pyz",
    )
    ctx = _ctx(ops, hostname="box")
    ctx.decisions["partitions"] = {"esp": "/dev/sda1", "boot": "/dev/sda2", "root": "/dev/sda3"}

    ChrootHandoffStep().run(ctx)

    assert ctx.decisions["handoff_started"] is True
    assert deployed == ["/mnt"]
    assert ops.index(["mount", "--make-rslave", "/mnt/run"]) < ops.index(
        ["chroot", "/mnt", "/usr/bin/python3", "/root/voidcrypt-stage2.pyz"]
    )
    env = ops.kwargs[-1]["env"]
    assert HandoffMessage.from_environ(env).hostname == "box"
    assert set(env) == {"HOSTNAME", "BTRFS_OPTS", "EFI_PART", "BOOT_PART", "LUKS_NAME", "PATH"}


def test_finalize_tears_down_then_reboots(ops):
    ctx = _ctx(ops)
    ops.script(["swapoff"], returncode=1)
    FinalizeRebootStep().run(ctx)
    assert ops.calls == [
        ["swapoff", "-a"],
        ["umount", "-R", "/mnt"],
        ["cryptsetup", "close", "cryptroot"],
        ["sync"],
        ["shutdown", "-r", "now"],
    ]
    assert ctx.state["execution"]["cleanup_failures"] == ["swapoff -a: exit 1"]
