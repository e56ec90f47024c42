"""
Opcode model.

Builds the immutable model the views render from:

    Spec ──> OpcodeSet[] ──> Opcode[]      (encoder: canonical bytes)
                 │
                 ├──> SetAnalysis         (analyzer: max code, validity mask)
                 ├──> byte map            (bytemap: byte -> first owning opcode)
                 └──> byte flags          (flags: per-byte flag masks)

Declaration order is significant everywhere: it orders the enumerations,
decides byte-map precedence, and lays out the mask words.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from .analyzer import analyze_set
from .bytemap import UNDEFINED, Undefined, build_byte_map
from .encoder import Encoding, encode_code
from .errors import ConfigError
from .flags import OpFlags, assign_byte_flags, parse_flags
from .loader import OpSpec, SetSpec, Spec

__all__ = ['Opcode', 'OpcodeSet', 'MaskRow', 'Model', 'build_model',
           'parse_code', 'to_const']

log = logging.getLogger(__name__)


def to_const(name: str) -> str:
    """Constant identifier for a display name: 'local.get' -> 'LOCAL_GET'."""
    return name.upper().replace('.', '_')


def parse_code(value: str, what: str = "code") -> int:
    """Parse hex text such as '0x20' or 'FD'."""
    if not isinstance(value, str):
        raise ConfigError(f"Invalid {what}: {value!r} (must be quoted hex text, e.g. \"0x20\")")
    text = value.strip()
    try:
        return int(text, 16)
    except ValueError:
        raise ConfigError(f"Invalid {what} '{text}' (expected hex, e.g. 0x20)") from None


# ──────────────────────────────────────────────
# Records
# ──────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class Opcode:
    """One opcode. ``bytes`` is the set prefix followed by the encoded code.

    ``src`` and ``dst`` are the operand types of legacy CSV rows. No view
    renders them; they are carried so a legacy row keeps all of its columns.
    """
    opset: 'OpcodeSet' = field(repr=False)
    code: int
    name: str
    imm: str = "NONE"
    mem_size: int = 0
    num_lanes: int = 0
    flags: OpFlags = field(default_factory=OpFlags)
    src: Tuple[str, ...] = ()
    dst: Tuple[str, ...] = ()
    bytes: bytes = b''

    @property
    def const(self) -> str:
        return to_const(self.name)

    @property
    def code_text(self) -> str:
        return f"0x{self.code:02X}"

    @property
    def single_byte_code(self) -> Optional[int]:
        """The code if it is encoded as exactly one byte after the prefix.

        Prefixed sets count too: a LEB128 code below 0x80 is one byte, so it
        can claim a byte-map slot that no earlier set defines.
        """
        if len(self.bytes) - len(self.opset.prefix_bytes) == 1:
            return self.code
        return None


@dataclass(frozen=True, eq=False)
class OpcodeSet:
    """A group of opcodes sharing a prefix and encoding scheme.

    Frozen once built; ``_build_set`` fills in the ops and analysis results.
    """
    name: str
    encoding: Encoding
    prefix: int = 0
    ops: Tuple[Opcode, ...] = ()
    max_code: int = 0
    mask: Optional[Tuple[int, ...]] = None

    @property
    def const(self) -> str:
        return to_const(self.name)

    @property
    def prefix_bytes(self) -> bytes:
        return bytes([self.prefix]) if self.prefix else b''


@dataclass(frozen=True)
class MaskRow:
    """One 64-bit word of a set's validity mask."""
    set_name: str
    ofs: int
    val: int


# ──────────────────────────────────────────────
# Model
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Model:
    sets: Tuple[OpcodeSet, ...]
    ops: Tuple[Opcode, ...]
    masks: Tuple[MaskRow, ...]
    byte_map: Tuple[Union[Opcode, Undefined], ...]
    byte_flags: Tuple[OpFlags, ...]
    source: str = ""
    legacy: bool = False

    def find_set(self, name: str) -> OpcodeSet:
        for opset in self.sets:
            if opset.name == name:
                return opset
        raise KeyError(name)

    def mask_offset(self, opset: OpcodeSet) -> int:
        """Index of the set's first word in ``masks``, or -1 if it has none."""
        for i, row in enumerate(self.masks):
            if row.set_name == opset.name:
                return i
        return -1


def _build_set(row: SetSpec) -> OpcodeSet:
    encoding = Encoding.parse(row.encoding)
    prefix = parse_code(row.prefix, f"prefix of set '{row.name}'") if row.prefix else 0
    if not 0 <= prefix <= 0xFF:
        raise ConfigError(f"Set '{row.name}': prefix {prefix:#x} is not a single byte")

    opset = OpcodeSet(name=row.name, encoding=encoding, prefix=prefix)
    ops = [_build_op(opset, op) for op in row.ops]

    analysis = analyze_set(opset.name, encoding, [op.code for op in ops])
    object.__setattr__(opset, 'ops', tuple(ops))
    object.__setattr__(opset, 'max_code', analysis.max_code)
    object.__setattr__(opset, 'mask', analysis.mask)
    log.debug("Set %s: %d ops, encoding=%s, prefix=0x%02X, max_code=0x%02X",
              opset.name, len(ops), encoding.value, prefix, opset.max_code)
    return opset


def _build_op(opset: OpcodeSet, row: OpSpec) -> Opcode:
    code = parse_code(row.code, f"code of '{row.name}'")
    return Opcode(
        opset=opset,
        code=code,
        name=row.name,
        imm=row.imm,
        mem_size=row.mem_size,
        num_lanes=row.num_lanes,
        flags=parse_flags(row.flags, row.name),
        src=row.src,
        dst=row.dst,
        bytes=encode_code(code, opset.prefix_bytes, opset.encoding),
    )


def _check_unique_names(sets: List[OpcodeSet]) -> None:
    seen_sets: Dict[str, OpcodeSet] = {}
    for opset in sets:
        if opset.name in seen_sets:
            raise ConfigError(f"Duplicate opcode set name '{opset.name}'")
        seen_sets[opset.name] = opset

    seen_consts: Dict[str, Opcode] = {}
    for opset in sets:
        for op in opset.ops:
            other = seen_consts.get(op.const)
            if other is not None:
                raise ConfigError(
                    f"Duplicate constant PWASM_OP_{op.const} "
                    f"('{other.name}' in '{other.opset.name}', '{op.name}' in '{opset.name}')")
            seen_consts[op.const] = op


def build_model(spec: Spec) -> Model:
    """Build the model from a loaded Spec. Raises on any configuration error."""
    sets = [_build_set(row) for row in spec.sets]
    _check_unique_names(sets)

    ops = tuple(op for opset in sets for op in opset.ops)
    masks = tuple(
        MaskRow(opset.name, i, word)
        for opset in sets if opset.mask is not None
        for i, word in enumerate(opset.mask)
    )
    byte_map = build_byte_map(sets)
    byte_flags = assign_byte_flags(byte_map)

    log.info("Model: %d sets, %d ops, %d mask words, %d/256 bytes mapped",
             len(sets), len(ops), len(masks),
             sum(1 for entry in byte_map if entry is not UNDEFINED))
    return Model(
        sets=tuple(sets),
        ops=ops,
        masks=masks,
        byte_map=byte_map,
        byte_flags=byte_flags,
        source=spec.source,
        legacy=spec.legacy,
    )
