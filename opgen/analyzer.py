"""
Per-set analysis: max code, duplicate check, and validity bitmask.

The validity mask is 4 x 64-bit words covering byte values 0x00-0xFF:
bit (b % 64) of word (b // 64) is set iff some opcode in the set has
code b. Prefix bytes are not part of the test; they are common to the
whole set.

Masks are only computed for fixed-byte sets. A LEB128 code is not a
single byte in general, so a 256-bit mask cannot describe the set.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from .encoder import Encoding
from .errors import DuplicateCodeError, EncodingRangeError

__all__ = ['MASK_WORDS', 'SetAnalysis', 'check_unique_codes', 'max_code',
           'validity_mask', 'analyze_set']

MASK_WORDS = 4
WORD_BITS = 64


@dataclass(frozen=True)
class SetAnalysis:
    max_code: int
    mask: Optional[Tuple[int, ...]]


def check_unique_codes(set_name: str, codes: Iterable[int]) -> None:
    """Raise DuplicateCodeError on the first repeated code (declaration order)."""
    seen = set()
    for code in codes:
        if code in seen:
            raise DuplicateCodeError(set_name, code)
        seen.add(code)


def max_code(codes: Sequence[int]) -> int:
    return max(codes, default=0)


def validity_mask(codes: Iterable[int]) -> Tuple[int, ...]:
    """Pack single-byte codes into MASK_WORDS 64-bit words."""
    words = [0] * MASK_WORDS
    for code in codes:
        if not 0 <= code < MASK_WORDS * WORD_BITS:
            raise EncodingRangeError(f"Code {code:#x} outside validity mask range", code)
        words[code // WORD_BITS] |= 1 << (code % WORD_BITS)
    return tuple(words)


def analyze_set(name: str, encoding: Encoding, codes: Sequence[int]) -> SetAnalysis:
    """Analyze one set. Duplicate detection runs before any mask work."""
    check_unique_codes(name, codes)
    mask = validity_mask(codes) if encoding is Encoding.BYTE else None
    return SetAnalysis(max_code(codes), mask)
