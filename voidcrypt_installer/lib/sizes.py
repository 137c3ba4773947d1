from __future__ import annotations

import re
from dataclasses import dataclass

from ..errors import InvalidSize

_SIZE_RE = re.compile(r"([0-9]+)(MiB|GiB|MB|GB)", re.IGNORECASE)

# Canonical spelling for each unit, keyed by its upper-cased form.
_UNITS = {"MIB": "MiB", "GIB": "GiB", "MB": "MB", "GB": "GB"}


@dataclass(frozen=True)
class SizeSpec:
    value: int
    unit: str

    @classmethod
    def parse(cls, text: str) -> "SizeSpec":
        m = _SIZE_RE.fullmatch(text or "")
        if not m:
            raise InvalidSize(text)
        return cls(value=int(m.group(1)), unit=_UNITS[m.group(2).upper()])

    @property
    def mib(self) -> int:
        """Absolute size in MiB. Decimal units round down."""

        if self.unit == "MiB":
            return self.value
        if self.unit == "GiB":
            return self.value * 1024
        if self.unit == "MB":
            return self.value * 1000 // 1024
        if self.unit == "GB":
            return self.value * 1000 * 1000 // 1024
        raise InvalidSize(self.render())

    def render(self) -> str:
        return f"{self.value}{self.unit}"

    def __str__(self) -> str:
        return self.render()
