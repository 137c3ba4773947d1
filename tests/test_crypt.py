import pytest

from voidcrypt_installer.errors import DeviceTimeout, ExternalToolFailure
from voidcrypt_installer.lib import crypt
from voidcrypt_installer.lib.poll import wait_until


def test_wait_until_counts_sleeps():
    state = {"n": 0}
    slept = []

    def ready():
        state["n"] += 1
        return state["n"] > 3

    assert wait_until(ready, what="x", sleep=slept.append) == 3
    assert slept == [0.1, 0.1, 0.1]


def test_wait_until_times_out_after_attempts():
    slept = []
    with pytest.raises(DeviceTimeout) as exc:
        wait_until(lambda: False, what="/dev/mapper/x", sleep=slept.append, attempts=40)
    assert len(slept) == 40
    assert exc.value.what == "/dev/mapper/x"
    assert exc.value.waited_s == pytest.approx(4.0)


def test_provision_encrypted_root(ops):
    ops.appear_after["/dev/mapper/cryptroot"] = 2

    volume = crypt.provision_encrypted_root(ops, "/dev/sda3", "cryptroot")

    assert volume.state is crypt.VolumeState.OPEN
    assert volume.mapped_path == "/dev/mapper/cryptroot"
    assert ops.calls == [
        ["cryptsetup", "luksFormat", "--type", "luks2", "-s", "512", "/dev/sda3"],
        ["cryptsetup", "open", "/dev/sda3", "cryptroot"],
        ["udevadm", "settle"],
        ["wipefs", "-a", "/dev/mapper/cryptroot"],
    ]
    assert ops.kwargs[0]["interactive"] and ops.kwargs[1]["interactive"]
    assert len(ops.sleeps) == 2


def test_mapped_node_never_appears(ops):
    with pytest.raises(DeviceTimeout):
        crypt.provision_encrypted_root(ops, "/dev/sda3", "cryptroot")
    assert ["wipefs", "-a", "/dev/mapper/cryptroot"] not in ops.calls
    assert len(ops.sleeps) == crypt.POLL_ATTEMPTS


def test_format_failure_is_not_retried(ops):
    ops.script(["cryptsetup", "luksFormat"], returncode=2, stderr="No key available")
    with pytest.raises(ExternalToolFailure) as exc:
        crypt.provision_encrypted_root(ops, "/dev/sda3", "cryptroot")
    assert exc.value.returncode == 2
    assert "No key available" in str(exc.value)
    assert len(ops.calls) == 1


def test_close_volume(ops):
    vol = crypt.EncryptedVolume("/dev/sda3", "cryptroot", crypt.VolumeState.OPEN)
    assert crypt.close_volume(ops, vol).state is crypt.VolumeState.CLOSED
    assert ops.calls == [["cryptsetup", "close", "cryptroot"]]


def test_close_volume_unchecked_failure_stays_open(ops):
    ops.script(["cryptsetup", "close"], returncode=5, stderr="Device cryptroot is still in use")
    vol = crypt.EncryptedVolume("/dev/sda3", "cryptroot", crypt.VolumeState.OPEN)
    assert crypt.close_volume(ops, vol, check=False).state is crypt.VolumeState.OPEN
