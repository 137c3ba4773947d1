from .step_10_preflight import PreflightStep
from .step_20_partition import PartitionStep
from .step_30_encrypt import EncryptStep
from .step_40_filesystems import FilesystemStep
from .step_50_install_base import InstallBaseStep
from .step_60_chroot_handoff import ChrootHandoffStep
from .step_90_finalize_reboot import FinalizeRebootStep

__all__ = [
    "PreflightStep",
    "PartitionStep",
    "EncryptStep",
    "FilesystemStep",
    "InstallBaseStep",
    "ChrootHandoffStep",
    "FinalizeRebootStep",
]
