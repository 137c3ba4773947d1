import dataclasses

import pytest

from voidcrypt_installer.config import build_config, load_config_file
from voidcrypt_installer.errors import InvalidSize, PreconditionError
from voidcrypt_installer.lib.sizes import SizeSpec


def test_defaults():
    cfg = build_config({"disk": "/dev/sda"})
    assert cfg.efi_size == SizeSpec(200, "MiB")
    assert cfg.boot_size == SizeSpec(500, "MiB")
    assert cfg.hostname == "void-host"
    assert cfg.target_root == "/mnt"
    assert cfg.xbps_arch == "x86_64"
    assert cfg.xbps_repo == "https://alpha.us.repo.voidlinux.org/current"
    assert "python3" in cfg.base_packages


def test_config_is_immutable():
    cfg = build_config({"disk": "/dev/sda"})
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.disk = "/dev/sdb"


def test_musl_switches_arch_and_repo():
    cfg = build_config({"disk": "/dev/sda", "musl": "yes", "repo": "https://repo.example/current/"})
    assert cfg.xbps_arch == "x86_64-musl"
    assert cfg.xbps_repo == "https://repo.example/current/musl"


def test_disk_required():
    with pytest.raises(PreconditionError, match="--disk"):
        build_config({"disk": None})


def test_invalid_size_fails_at_build_time():
    with pytest.raises(InvalidSize):
        build_config({"disk": "/dev/sda", "efi_size": "200K"})


def test_bad_musl_value():
    with pytest.raises(PreconditionError):
        build_config({"disk": "/dev/sda", "musl": "maybe"})


def test_yaml_file_then_cli_wins(tmp_path):
    p = tmp_path / "install.yaml"
    p.write_text("disk: /dev/vda\nhostname: from-file\nboot_size: 1GiB\n", encoding="utf-8")

    values = load_config_file(str(p))
    cfg = build_config({"hostname": "from-cli", "disk": None}, values)

    assert cfg.disk == "/dev/vda"
    assert cfg.hostname == "from-cli"
    assert cfg.boot_size.mib == 1024


def test_yaml_rejects_unknown_keys(tmp_path):
    p = tmp_path / "install.yml"
    p.write_text("disk: /dev/vda\nswap: 8GiB\n", encoding="utf-8")
    with pytest.raises(PreconditionError, match="swap"):
        load_config_file(str(p))


def test_yaml_must_be_mapping(tmp_path):
    p = tmp_path / "install.yaml"
    p.write_text("- /dev/vda\n", encoding="utf-8")
    with pytest.raises(PreconditionError, match="mapping"):
        load_config_file(str(p))


def test_missing_config_file(tmp_path):
    with pytest.raises(PreconditionError, match="not found"):
        load_config_file(str(tmp_path / "nope.yaml"))


def test_summary_is_serializable():
    summary = build_config({"disk": "/dev/sda"}).summary()
    assert summary["efi_size"] == "200MiB"
    assert isinstance(summary["base_packages"], list)


def test_yaml_syntax_error_is_a_precondition(tmp_path):
    p = tmp_path / "install.yaml"
    p.write_text("disk: [/dev/vda\n", encoding="utf-8")
    with pytest.raises(PreconditionError, match="invalid YAML"):
        load_config_file(str(p))
