"""
C source fragment renderers.

Each view turns the model into one fragment for the pwasm sources. Views
first build typed row records, then format them with fixed templates.

    set-enum    pwasm_ops_t enumeration            (pwasm.h)
    op-enum     pwasm_op_t enumeration             (pwasm.h)
    set-data    PWASM_OP_SET_DATA table            (pwasm.c)
    op-defs     PWASM_OP_DEFS macro list           (pwasm.h)
    mask        PWASM_VALID_OPS_MASK words         (pwasm.c)
    byte-map    PWASM_BYTE_OPS reverse map         (pwasm.c)
    op-data     PWASM_OP_DATA table                (pwasm.c)

Legacy (flag model) views:

    flags-enum  pwasm_op_flag_t bit enumeration    (pwasm.h)
    op-flags    PWASM_OP_FLAGS per-byte masks      (pwasm.c)
    byte-defs   per-byte PWASM_OP_DEFS macro list  (pwasm.h)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Tuple

from .bytemap import UNDEFINED
from .flags import FLAGS
from .ops_model import Model

__all__ = [
    'render_set_enum', 'render_op_enum', 'render_set_data', 'render_op_defs',
    'render_mask', 'render_byte_map', 'render_op_data', 'render_flags_enum',
    'render_op_flags', 'render_byte_defs',
]

SENTINEL_CONST = 'LAST'
OP_DATA_MIN_BYTES = 4


# ──────────────────────────────────────────────
# Row records
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class EnumRow:
    const: str
    name: str


@dataclass(frozen=True)
class OpDefRow:
    const: str
    name: str
    imm: str


@dataclass(frozen=True)
class SetDataRow:
    name: str
    prefix: int
    encoding: str
    num_ops: int
    max_code: int
    mask_ofs: int


@dataclass(frozen=True)
class OpDataRow:
    set_const: str
    name: str
    bytes: Tuple[int, ...]
    imm: str
    mem_size: int
    num_lanes: int


@dataclass(frozen=True)
class ByteMapRow:
    byte: int
    const: str
    comment: str


@dataclass(frozen=True)
class FlagRow:
    mask: int
    text: str


@dataclass(frozen=True)
class ByteDefRow:
    byte: int
    macro: str
    args: str


# ──────────────────────────────────────────────
# Enumerations and macro lists
# ──────────────────────────────────────────────

def _enum(prefix: str, type_name: str, rows: List[EnumRow]) -> str:
    rows = rows + [EnumRow(SENTINEL_CONST, 'sentinel')]
    body = "\n".join(f"  {prefix}{row.const}, /*** {row.name} */" for row in rows)
    return f"typedef enum {{\n{body}\n}} {type_name};"


def render_set_enum(model: Model) -> str:
    """pwasm_ops_t: one entry per opcode set, in declaration order."""
    rows = [EnumRow(opset.const, opset.name) for opset in model.sets]
    return _enum('PWASM_OPS_', 'pwasm_ops_t', rows)


def render_op_enum(model: Model) -> str:
    """pwasm_op_t: one entry per opcode, sets in order, rows in order."""
    rows = [EnumRow(op.const, op.name) for op in model.ops]
    return _enum('PWASM_OP_', 'pwasm_op_t', rows)


def render_op_defs(model: Model) -> str:
    rows = [OpDefRow(op.const, op.name, op.imm) for op in model.ops]
    body = " \\\n".join(f'  PWASM_OP({row.const}, "{row.name}", {row.imm})' for row in rows)
    return f"#define PWASM_OP_DEFS \\\n{body}"


# ──────────────────────────────────────────────
# Tables
# ──────────────────────────────────────────────

def render_set_data(model: Model) -> str:
    rows = [
        SetDataRow(
            name=opset.name,
            prefix=opset.prefix,
            encoding=opset.encoding.name,
            num_ops=len(opset.ops),
            max_code=opset.max_code,
            mask_ofs=model.mask_offset(opset),
        )
        for opset in model.sets
    ]
    body = ",\n".join(
        "  {\n"
        f'    .name     = "{row.name}",\n'
        f"    .prefix   = 0x{row.prefix:02X},\n"
        f"    .encoding = PWASM_OPS_ENCODING_{row.encoding},\n"
        f"    .num_ops  = {row.num_ops},\n"
        f"    .max_code = 0x{row.max_code:02X},\n"
        f"    .mask_ofs = {row.mask_ofs},\n"
        "  }"
        for row in rows
    )
    return (
        "static const struct {\n"
        "  const char * const name;\n"
        "  const uint8_t prefix;\n"
        "  const pwasm_ops_encoding_t encoding;\n"
        "  const size_t num_ops;\n"
        "  const uint32_t max_code;\n"
        "  const int mask_ofs;\n"
        f"}} PWASM_OP_SET_DATA[] = {{\n{body}\n}};"
    )


def render_mask(model: Model) -> str:
    """PWASM_VALID_OPS_MASK: 4 words per fixed-byte set."""
    body = "\n".join(f"  0x{row.val:016x}, // {row.set_name}[{row.ofs}]" for row in model.masks)
    return f"static const uint64_t PWASM_VALID_OPS_MASK[] = {{\n{body}\n}};"


def render_byte_map(model: Model) -> str:
    """PWASM_BYTE_OPS: opcode for each raw byte, PWASM_OP_LAST if undefined."""
    rows = []
    for byte, entry in enumerate(model.byte_map):
        if entry is UNDEFINED:
            rows.append(ByteMapRow(byte, SENTINEL_CONST, "(undefined)"))
        else:
            rows.append(ByteMapRow(byte, entry.const, f"{entry.opset.name}: {entry.name}"))
    body = "\n".join(f"  PWASM_OP_{row.const}, /* 0x{row.byte:02X} {row.comment} */" for row in rows)
    return f"static const pwasm_op_t PWASM_BYTE_OPS[] = {{\n{body}\n}};"


def render_op_data(model: Model) -> str:
    rows = [
        OpDataRow(
            set_const=op.opset.const,
            name=op.name,
            bytes=tuple(op.bytes),
            imm=op.imm,
            mem_size=op.mem_size,
            num_lanes=op.num_lanes,
        )
        for op in model.ops
    ]
    width = max([OP_DATA_MIN_BYTES] + [len(row.bytes) for row in rows])
    body = ",\n".join(
        "  {\n"
        f"    .set        = PWASM_OPS_{row.set_const},\n"
        f'    .name       = "{row.name}",\n'
        f"    .bytes      = {{ {', '.join(f'0x{b:02x}' for b in row.bytes)} }},\n"
        f"    .num_bytes  = {len(row.bytes)},\n"
        f"    .imm        = PWASM_IMM_{row.imm},\n"
        f"    .mem_size   = {row.mem_size},\n"
        f"    .num_lanes  = {row.num_lanes},\n"
        "  }"
        for row in rows
    )
    return (
        "static const struct {\n"
        "  const pwasm_ops_t set;\n"
        "  const char * const name;\n"
        f"  const uint8_t bytes[{width}];\n"
        "  const size_t num_bytes;\n"
        "  const pwasm_imm_t imm;\n"
        "  const size_t mem_size;\n"
        "  const size_t num_lanes;\n"
        f"}} PWASM_OP_DATA[] = {{\n{body}\n}};"
    )


# ──────────────────────────────────────────────
# Legacy flag views
# ──────────────────────────────────────────────

def render_flags_enum(model: Model) -> str:
    body = "\n".join(f"  PWASM_OP_FLAG_{flag.id.upper()} = (1 << {flag.shift})," for flag in FLAGS)
    return f"typedef enum {{\n{body}\n}} pwasm_op_flag_t;"


def render_op_flags(model: Model) -> str:
    """PWASM_OP_FLAGS: one flag mask per raw byte."""
    rows = []
    for entry, flags in zip(model.byte_map, model.byte_flags):
        if entry is UNDEFINED:
            rows.append(FlagRow(flags.mask, "(reserved)"))
        else:
            rows.append(FlagRow(flags.mask, f"{entry.name} ({flags})"))
    body = "\n".join(f"  0x{row.mask:02X}, /* {row.text} */" for row in rows)
    return f"static const uint8_t\nPWASM_OP_FLAGS[] = {{\n{body}\n}};"


# First matching flag picks the macro; anything else is a plain PWASM_OP.
BYTE_DEF_MACROS = (
    ('control', 'PWASM_OP_CONTROL'),
    ('const', 'PWASM_OP_CONST'),
    ('reserved', 'PWASM_OP_RESERVED'),
)


def render_byte_defs(model: Model) -> str:
    rows = []
    for byte, (entry, flags) in enumerate(zip(model.byte_map, model.byte_flags)):
        macro = next((m for fid, m in BYTE_DEF_MACROS if fid in flags), 'PWASM_OP')
        if entry is UNDEFINED:
            args = f'_{byte:02X}, "{byte:02X}"'
        else:
            args = f'{entry.const}, "{entry.name}", {entry.imm}'
        rows.append(ByteDefRow(byte, macro, args))
    body = " \\\n".join(f"  /* 0x{row.byte:02X} */ {row.macro}({row.args})" for row in rows)
    return f"#define PWASM_OP_DEFS \\\n{body}"
