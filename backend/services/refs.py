"""Product/location references: either an internal identifier or a human-facing code."""

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class ById:
    id: int

    @property
    def raw(self) -> str:
        return str(self.id)


@dataclass(frozen=True)
class ByCode:
    code: str

    @property
    def raw(self) -> str:
        return self.code


Ref = Union[ById, ByCode]

# Ids are 32-bit integer columns; larger numbers (e.g. EAN barcodes) can only be codes.
MAX_ID = 2**31 - 1


def parse_ref(value: Any) -> Ref:
    """
    Build a reference from request input.

    - ints and purely numeric strings within 1..MAX_ID -> ById
    - anything else (stripped, non-empty) -> ByCode

    Raises ValueError for empty/None/bool input; callers turn that into their own error.
    """
    if isinstance(value, (ById, ByCode)):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError("reference is required")
    if isinstance(value, int):
        return ById(value) if 0 < value <= MAX_ID else ByCode(str(value))
    s = str(value).strip()
    if not s:
        raise ValueError("reference is required")
    if s.isascii() and s.isdigit() and 0 < int(s) <= MAX_ID:
        return ById(int(s))
    return ByCode(s)
