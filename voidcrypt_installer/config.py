from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import PreconditionError
from .lib.btrfs import DEFAULT_BTRFS_OPTIONS
from .lib.env import PATHS
from .lib.pkg import BASE_PACKAGES, arch_for, repo_for
from .lib.sizes import SizeSpec

DEFAULTS: Dict[str, Any] = {
    "efi_size": "200MiB",
    "boot_size": "500MiB",
    "hostname": "void-host",
    "arch": "x86_64",
    "repo": "https://alpha.us.repo.voidlinux.org/current",
    "musl": "no",
    "force": False,
    "target_root": PATHS.target_root,
    "luks_name": "cryptroot",
    "btrfs_label": "void",
    "efi_label": "BOOT",
    "boot_label": "grub",
    "btrfs_options": DEFAULT_BTRFS_OPTIONS,
    "base_packages": list(BASE_PACKAGES),
}


@dataclass(frozen=True)
class InstallConfig:
    disk: str
    efi_size: SizeSpec
    boot_size: SizeSpec
    hostname: str
    arch: str
    repo: str
    musl: bool
    force: bool
    target_root: str
    luks_name: str
    btrfs_label: str
    efi_label: str
    boot_label: str
    btrfs_options: str
    base_packages: Tuple[str, ...] = field(default=BASE_PACKAGES)
    dry_run: bool = False

    @property
    def xbps_arch(self) -> str:
        return arch_for(self.arch, musl=self.musl)

    @property
    def xbps_repo(self) -> str:
        return repo_for(self.repo, musl=self.musl)

    def summary(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            v = getattr(self, f.name)
            out[f.name] = str(v) if isinstance(v, SizeSpec) else (list(v) if isinstance(v, tuple) else v)
        return out


def _yes_no(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    v = str(value).strip().lower()
    if v in {"yes", "y", "true"}:
        return True
    if v in {"no", "n", "false"}:
        return False
    raise PreconditionError(f"--musl expects yes or no, got {value!r}")


def load_config_file(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise PreconditionError(f"Config file not found: {path}")

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise PreconditionError("config file must be YAML")

    import yaml

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise PreconditionError(f"{path}: invalid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise PreconditionError(f"{path} must contain a mapping/object")

    known = {f.name for f in fields(InstallConfig)} - {"dry_run"}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise PreconditionError(f"{path}: unknown keys: {', '.join(unknown)}")
    return raw


def build_config(
    cli: Mapping[str, Any],
    file_values: Optional[Mapping[str, Any]] = None,
    *,
    dry_run: bool = False,
) -> InstallConfig:
    """Merge defaults < config file < CLI into one immutable InstallConfig.

    ``cli`` values of None mean "not given". Size strings are parsed here, so an
    invalid size fails before anything touches the disk.
    """

    merged: Dict[str, Any] = dict(DEFAULTS)
    merged.update({k: v for k, v in (file_values or {}).items() if v is not None})
    merged.update({k: v for k, v in cli.items() if v is not None})

    disk = merged.get("disk")
    if not disk:
        raise PreconditionError("--disk is required")

    packages = merged["base_packages"]
    if isinstance(packages, str) or not all(isinstance(p, str) for p in packages):
        raise PreconditionError("base_packages must be a list of package names")

    return InstallConfig(
        disk=str(disk),
        efi_size=SizeSpec.parse(str(merged["efi_size"])),
        boot_size=SizeSpec.parse(str(merged["boot_size"])),
        hostname=str(merged["hostname"]).strip() or DEFAULTS["hostname"],
        arch=str(merged["arch"]),
        repo=str(merged["repo"]),
        musl=_yes_no(merged["musl"]),
        force=bool(merged["force"]),
        target_root=str(merged["target_root"]).rstrip("/") or "/",
        luks_name=str(merged["luks_name"]),
        btrfs_label=str(merged["btrfs_label"]),
        efi_label=str(merged["efi_label"]),
        boot_label=str(merged["boot_label"]),
        btrfs_options=str(merged["btrfs_options"]),
        base_packages=tuple(packages),
        dry_run=dry_run,
    )
