from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from .config import InstallConfig, build_config, load_config_file
from .errors import InstallerError
from .lib.chroot import teardown
from .lib.devops import DeviceOps, SystemDeviceOps
from .lib.env import PATHS
from .logging_utils import DEFAULT_LOG_PATH, LogPaths, configure_logging
from .pipeline import InstallContext, Step, run_pipeline
from .state_store import new_state, record_error, save_state
from .steps import (
    ChrootHandoffStep,
    EncryptStep,
    FilesystemStep,
    FinalizeRebootStep,
    InstallBaseStep,
    PartitionStep,
    PreflightStep,
)

logger = logging.getLogger(__name__)

DEFAULT_STATE_PATH = PATHS.state_default

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_steps() -> List[Step]:
    return [
        PreflightStep(),
        PartitionStep(),
        EncryptStep(),
        FilesystemStep(),
        InstallBaseStep(),
        ChrootHandoffStep(),
        FinalizeRebootStep(),
    ]


def _cleanup_after_failure(ctx: InstallContext) -> None:
    if not ctx.decisions.get("handoff_started"):
        return
    logger.warning("Tearing down %s after failure", ctx.config.target_root)
    failures = teardown(ctx.ops, ctx.config.target_root, ctx.config.luks_name)
    ctx.state.setdefault("execution", {}).setdefault("cleanup_failures", []).extend(failures)


def run(
    config: InstallConfig,
    *,
    state_path: str = DEFAULT_STATE_PATH,
    ops: Optional[DeviceOps] = None,
    steps: Optional[List[Step]] = None,
    log_paths: Optional[LogPaths] = None,
) -> Dict[str, Any]:
    """Run the installer pipeline once, start to finish.

    The run record is written whether the run succeeds or not. Errors
    propagate after it has been recorded.
    """

    ctx = InstallContext(
        config=config,
        ops=ops if ops is not None else SystemDeviceOps(dry_run=config.dry_run),
        state=new_state(config.summary()),
    )
    if log_paths is not None:
        ctx.state["execution"]["paths"] = log_paths.as_record()

    try:
        result = run_pipeline(ctx=ctx, steps=build_steps() if steps is None else steps)
        ctx.state.setdefault("execution", {})["ran_steps"] = result.ran_steps
        return ctx.state
    except (Exception, KeyboardInterrupt) as e:
        logger.error("Installer failed at step %s: %s", ctx.state["execution"].get("current_step"), e)
        record_error(ctx.state, e)
        _cleanup_after_failure(ctx)
        raise
    finally:
        save_state(state_path, ctx.state)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="voidcrypt-installer",
        description="Install Void Linux on LUKS2-encrypted btrfs. Erases --disk.",
    )
    p.add_argument("--disk", default=None, help="Target block device (required)")
    p.add_argument("--efi-size", dest="efi_size", default=None, help="ESP size, e.g. 200MiB (default 200MiB)")
    p.add_argument("--boot-size", dest="boot_size", default=None, help="/boot size (default 500MiB)")
    p.add_argument("--hostname", default=None, help="Hostname (default void-host)")
    p.add_argument("--arch", default=None, help="XBPS architecture (default x86_64)")
    p.add_argument("--repo", default=None, help="XBPS repository URL")
    p.add_argument("--musl", default=None, choices=["yes", "no"], help="Install the musl variant")
    p.add_argument("--force", action="store_true", default=None, help="Skip the confirmation prompt")
    p.add_argument("--config", default=None, help="YAML file with defaults (CLI wins)")
    p.add_argument("--target", dest="target_root", default=None, help="Mountpoint for the new system (default /mnt)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Path to run record (json|yaml)")
    p.add_argument("--dry-run", action="store_true", help="Log commands without executing them")
    p.add_argument("--debug", action="store_true", help="Log command output too")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    log_paths = configure_logging(log_path=args.log, level=logging.DEBUG if args.debug else logging.INFO)

    cli = {
        "disk": args.disk,
        "efi_size": args.efi_size,
        "boot_size": args.boot_size,
        "hostname": args.hostname,
        "arch": args.arch,
        "repo": args.repo,
        "musl": args.musl,
        "force": args.force,
        "target_root": args.target_root,
    }

    try:
        file_values = load_config_file(args.config) if args.config else None
        config = build_config(cli, file_values, dry_run=args.dry_run)
        run(config, state_path=args.state, log_paths=log_paths)
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    except (InstallerError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        print(f"Details: {log_paths.actual}", file=sys.stderr)
        return EXIT_FAILURE
    return EXIT_OK
