"""
Byte-to-opcode reverse map.

For each raw byte value 0x00-0xFF, the owning opcode is found by scanning
the sets in declaration order; the first set with an opcode whose
single-byte code equals the byte wins. Later sets never override an earlier
match. Bytes that no set defines map to UNDEFINED.
"""

from __future__ import annotations
from enum import Enum
from typing import Dict, Sequence, Tuple

__all__ = ['NUM_BYTES', 'UNDEFINED', 'Undefined', 'build_byte_map']

NUM_BYTES = 256


class _Undefined(Enum):
    UNDEFINED = 'undefined'

    def __repr__(self):
        return 'UNDEFINED'


# Sentinel for unmapped bytes. Never equal to an opcode.
UNDEFINED = _Undefined.UNDEFINED
Undefined = _Undefined


def build_byte_map(sets: Sequence) -> Tuple:
    """Build the 256-entry map. ``sets`` must be in declaration order."""
    owners: Dict[int, object] = {}
    for opset in sets:
        for op in opset.ops:
            code = op.single_byte_code  # includes LEB128 codes below 0x80
            if code is not None and code not in owners:
                owners[code] = op
    return tuple(owners.get(b, UNDEFINED) for b in range(NUM_BYTES))
