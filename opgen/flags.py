"""
Opcode flag bitmasks.

Each opcode row may carry a whitespace-separated list of symbolic flags.
The flag universe and each flag's bit position are fixed:

    reserved = 1 << 0    byte is not a defined opcode
    const    = 1 << 1    valid in constant expressions
    control  = 1 << 2    structured control instruction
    mem      = 1 << 3    memory access
    global   = 1 << 4    global variable access
    local    = 1 << 5    local variable access

Bytes that no opcode set defines get ``{reserved}``.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .bytemap import UNDEFINED
from .errors import UnknownFlagError

__all__ = [
    'Flag', 'FLAG_IDS', 'FLAGS', 'OpFlags', 'NO_FLAGS', 'RESERVED_FLAGS',
    'parse_flags', 'assign_byte_flags',
]


@dataclass(frozen=True)
class Flag:
    id: str
    shift: int

    @property
    def mask(self) -> int:
        return 1 << self.shift


FLAG_IDS: Tuple[str, ...] = ('reserved', 'const', 'control', 'mem', 'global', 'local')
FLAGS: Tuple[Flag, ...] = tuple(Flag(fid, i) for i, fid in enumerate(FLAG_IDS))
_FLAG_BY_ID = {f.id: f for f in FLAGS}


@dataclass(frozen=True)
class OpFlags:
    """Validated flag set of one opcode row, in universe order."""
    ids: Tuple[str, ...] = ()
    mask: int = 0

    def __contains__(self, flag_id: str) -> bool:
        return flag_id in self.ids

    def __str__(self):
        return ", ".join(self.ids) if self.ids else "none"


def parse_flags(text: Optional[str], name: Optional[str] = None) -> OpFlags:
    """Parse a flag token list into an OpFlags.

    ``name`` is only used to make the error message point at the opcode row.
    """
    tokens = (text or "").split()
    for token in tokens:
        if token not in _FLAG_BY_ID:
            raise UnknownFlagError(token, name)

    present = set(tokens)
    ids = tuple(f.id for f in FLAGS if f.id in present)
    mask = 0
    for fid in ids:
        mask |= _FLAG_BY_ID[fid].mask
    return OpFlags(ids, mask)


NO_FLAGS = OpFlags()
RESERVED_FLAGS = parse_flags('reserved')


def assign_byte_flags(byte_map: Sequence) -> Tuple[OpFlags, ...]:
    """Flags for each of the 256 byte values.

    Defined bytes keep their opcode's flags (possibly none); sentinel
    entries get RESERVED_FLAGS.
    """
    return tuple(RESERVED_FLAGS if entry is UNDEFINED else entry.flags
                 for entry in byte_map)
