"""Void Linux installer for LUKS2-encrypted btrfs systems.

Core design goals:
- Fail before the first destructive write when anything is missing
- One linear run, never resumed
- Every command and decision logged
- Host side and stage two share one immutable configuration
"""

__all__ = []
