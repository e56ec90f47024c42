"""
Opcode table loader.

Reads the declarative opcode table and returns plain Spec records. Two
input shapes are accepted:

  ops.yaml (current)
      sets:
        - name: main
          encoding: byte
          ops:
            - { code: "0x00", name: unreachable }
            - { code: "0x28", name: i32.load, imm: MEM, mem_size: 4 }
        - name: simd
          prefix: "0xFD"
          encoding: leb128
          ops:
            - { code: "0x0F", name: i8x16.splat, num_lanes: 16 }

  ops.csv (legacy)
      id,name,imm,flags,src,dst
      0x20,local.get,INDEX,local,,any

    The legacy table is one flat row per byte id. It is translated into a
    single "main" set with byte encoding and no prefix, so the rest of the
    pipeline only ever sees one representation.

The file location comes from the environment (PWASM_CONFIG_PATH,
PWASM_OPS_CSV_PATH) or defaults to the tables bundled in opgen/data.
"""

from __future__ import annotations
import csv
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml

from .errors import ConfigError

__all__ = [
    'DATA_DIR', 'CONFIG_ENV', 'CSV_ENV', 'OpSpec', 'SetSpec', 'Spec',
    'config_path', 'csv_path', 'load_spec', 'parse_yaml_spec', 'parse_csv_rows',
]

log = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
CONFIG_ENV = "PWASM_CONFIG_PATH"
CSV_ENV = "PWASM_OPS_CSV_PATH"

LEGACY_SET_NAME = "main"

# ──────────────────────────────────────────────
# Spec records
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class OpSpec:
    """One opcode row, as written in the input."""
    code: str
    name: str
    imm: str = "NONE"
    mem_size: int = 0
    num_lanes: int = 0
    flags: str = ""
    src: Tuple[str, ...] = ()
    dst: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SetSpec:
    """One opcode set, as written in the input."""
    name: str
    encoding: str
    ops: Tuple[OpSpec, ...]
    prefix: str = ""


@dataclass(frozen=True)
class Spec:
    sets: Tuple[SetSpec, ...]
    source: str = ""
    legacy: bool = False


# ──────────────────────────────────────────────
# Paths
# ──────────────────────────────────────────────

def config_path() -> Path:
    """Location of ops.yaml: $PWASM_CONFIG_PATH or the bundled table."""
    return Path(os.environ.get(CONFIG_ENV) or DATA_DIR / "ops.yaml")


def csv_path() -> Path:
    """Location of the legacy ops.csv: $PWASM_OPS_CSV_PATH or the bundled table."""
    return Path(os.environ.get(CSV_ENV) or DATA_DIR / "ops.csv")


def load_spec(path: Union[str, Path, None] = None) -> Spec:
    """Load a spec file. ``.csv`` files use the legacy reader, anything else YAML."""
    path = Path(path) if path is not None else config_path()
    log.debug("Loading spec from %s", path)
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            if path.suffix.lower() == ".csv":
                return parse_csv_rows(csv.DictReader(f), source=str(path))
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML: {e}", str(path)) from e
    except FileNotFoundError:
        raise ConfigError("Spec file not found", str(path)) from None
    except OSError as e:
        raise ConfigError(f"Cannot read spec file: {e}", str(path)) from e
    return parse_yaml_spec(data, source=str(path))


# ──────────────────────────────────────────────
# YAML shape
# ──────────────────────────────────────────────

def _require(row: Dict[str, Any], key: str, what: str, source: str) -> Any:
    if not isinstance(row, dict):
        raise ConfigError(f"{what} must be a mapping, got {type(row).__name__}", source)
    value = row.get(key)
    if value is None or value == "":
        raise ConfigError(f"{what} is missing required field '{key}'", source)
    return value


def _int_field(row: Dict[str, Any], key: str, what: str, source: str) -> int:
    value = row.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{what}: '{key}' must be a non-negative integer, got {value!r}", source)
    return value


def _hex_field(row: Dict[str, Any], key: str, what: str, source: str) -> str:
    # Unquoted YAML numbers arrive as ints with no trace of the base written.
    value = row.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{what}: '{key}' must be quoted hex text, e.g. \"0x20\", got {value!r}", source)
    return value


def _flag_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return str(value)


def parse_yaml_spec(data: Any, source: str = "") -> Spec:
    """Validate a loaded YAML document and convert it to a Spec."""
    if not isinstance(data, dict):
        raise ConfigError("Top level must be a mapping with a 'sets' list", source)
    rows = _require(data, "sets", "Spec", source)
    if not isinstance(rows, list):
        raise ConfigError("'sets' must be a list", source)

    sets: List[SetSpec] = []
    for i, row in enumerate(rows):
        name = str(_require(row, "name", f"Set #{i}", source))
        what = f"Set '{name}'"
        encoding = str(_require(row, "encoding", what, source))
        op_rows = _require(row, "ops", what, source)
        if not isinstance(op_rows, list):
            raise ConfigError(f"{what}: 'ops' must be a list", source)

        ops = []
        for j, op in enumerate(op_rows):
            op_name = str(_require(op, "name", f"{what} op #{j}", source))
            op_what = f"{what} op '{op_name}'"
            _require(op, "code", op_what, source)
            code = _hex_field(op, "code", op_what, source)
            ops.append(OpSpec(
                code=code,
                name=op_name,
                imm=str(op.get("imm") or "NONE"),
                mem_size=_int_field(op, "mem_size", op_what, source),
                num_lanes=_int_field(op, "num_lanes", op_what, source),
                flags=_flag_text(op.get("flags")),
            ))
        sets.append(SetSpec(name=name, encoding=encoding, ops=tuple(ops),
                            prefix=_hex_field(row, "prefix", what, source)))

    log.info("Loaded %d opcode sets from %s", len(sets), source or "<data>")
    return Spec(sets=tuple(sets), source=source)


# ──────────────────────────────────────────────
# Legacy CSV shape
# ──────────────────────────────────────────────

def _words(text: Optional[str]) -> Tuple[str, ...]:
    return tuple((text or "").split())


def parse_csv_rows(rows: Iterable[Dict[str, Optional[str]]], source: str = "") -> Spec:
    """Translate legacy flat rows (keyed by byte id) into a one-set Spec."""
    ops = []
    for line_num, row in enumerate(rows, 2):
        what = f"Row {line_num}"
        code = (row.get("id") or "").strip()
        name = (row.get("name") or "").strip()
        if not code:
            raise ConfigError(f"{what} is missing required field 'id'", source)
        if not name:
            raise ConfigError(f"{what} is missing required field 'name'", source)
        ops.append(OpSpec(
            code=code,
            name=name,
            imm=(row.get("imm") or "").strip() or "NONE",
            flags=(row.get("flags") or "").strip(),
            src=_words(row.get("src")),
            dst=_words(row.get("dst")),
        ))

    log.info("Loaded %d legacy opcode rows from %s", len(ops), source or "<data>")
    main = SetSpec(name=LEGACY_SET_NAME, encoding="byte", ops=tuple(ops))
    return Spec(sets=(main,), source=source, legacy=True)
