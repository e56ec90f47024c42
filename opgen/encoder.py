"""
Opcode byte encoder.

Computes the canonical byte sequence of an opcode from its numeric code and
the prefix and encoding scheme of the set that owns it.

Encoding schemes:
  byte    Fixed single byte. Output is prefix + [code], code must be 0..255.
  leb128  Unsigned little-endian base-128. Seven data bits per byte, the
            high bit (0x80) marks "more bytes follow". Always the minimal byte
            count, so 0 is a single 0x00 byte.

  Examples (leb128):
      0    -> 00
      127  -> 7F
      128  -> 80 01
      300  -> AC 02

Both are the formats used by the WebAssembly binary encoding: the main
opcode space is one byte per opcode, the 0xFC / 0xFD prefixed spaces encode
the sub-opcode as a u32 LEB128.
"""

from __future__ import annotations
from enum import Enum
from typing import Tuple

from .errors import ConfigError, EncodingRangeError

__all__ = ['Encoding', 'leb128', 'decode_leb128', 'encode_code']


class Encoding(Enum):
    """Encoding scheme of an opcode set."""
    BYTE = 'byte'
    LEB128 = 'leb128'

    @classmethod
    def parse(cls, text: str) -> 'Encoding':
        """Map a scheme name from the spec file to an Encoding."""
        try:
            return cls(str(text).strip().lower())
        except ValueError:
            names = ", ".join(e.value for e in cls)
            raise ConfigError(f"Unknown encoding '{text}' (expected one of: {names})") from None


def leb128(value: int) -> bytes:
    """Encode a non-negative integer as unsigned LEB128."""
    if value < 0:
        raise EncodingRangeError(f"Cannot LEB128-encode negative code {value}", value)

    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_leb128(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode unsigned LEB128 at ``offset``. Returns (value, bytes consumed)."""
    value = 0
    shift = 0
    pos = offset
    while pos < len(data):
        byte = data[pos]
        value |= (byte & 0x7F) << shift
        pos += 1
        if not byte & 0x80:
            return value, pos - offset
        shift += 7
    raise EncodingRangeError(f"Truncated LEB128 sequence: {bytes(data[offset:]).hex()}")


def encode_code(code: int, prefix: bytes, encoding: Encoding) -> bytes:
    """Return prefix ++ encoded code for one opcode."""
    if encoding is Encoding.BYTE:
        if not 0 <= code <= 0xFF:
            raise EncodingRangeError(
                f"Code {code:#x} does not fit in a single byte", code)
        return bytes(prefix) + bytes([code])
    if encoding is Encoding.LEB128:
        return bytes(prefix) + leb128(code)
    raise ConfigError(f"Unsupported encoding: {encoding!r}")
