"""
Predicate permission codec.

A permission is a 3-bit integer stored in a group's ACL list on the cluster:

    4  read
    2  write
    1  modify

So 6 grants read and write, 7 grants everything and 0 revokes access.
The integer is what goes over the wire; ``Rights`` is the readable form
used for validation and display.
"""

from __future__ import annotations

from typing import NamedTuple

from dgraph_acl.core.exceptions import InvalidPermission

READ = 4
WRITE = 2
MODIFY = 1
MAX_PERMISSION = READ | WRITE | MODIFY


class Rights(NamedTuple):
    """The three independent rights carried by a permission value."""

    read: bool = False
    write: bool = False
    modify: bool = False

    def __str__(self) -> str:
        return "".join(
            letter if granted else "-"
            for letter, granted in zip("rwm", self, strict=True)
        )


def encode(read: bool, write: bool, modify: bool) -> int:
    """Pack a rights triple into its integer form."""
    return (READ if read else 0) | (WRITE if write else 0) | (MODIFY if modify else 0)


def decode(value: int) -> Rights:
    """Unpack an integer permission; raises InvalidPermission outside [0, 7]."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidPermission(value)
    if not 0 <= value <= MAX_PERMISSION:
        raise InvalidPermission(value)
    return Rights(
        read=bool(value & READ),
        write=bool(value & WRITE),
        modify=bool(value & MODIFY),
    )


def parse_permission(raw: int | str) -> int:
    """Parse command-line or environment input into a validated permission."""
    if isinstance(raw, str):
        try:
            value = int(raw.strip(), 10)
        except ValueError:
            raise InvalidPermission(raw) from None
    else:
        value = raw
    decode(value)
    return value
