"""
opgen: pwasm opcode table generator
====================================
Build-time generator that turns the declarative WebAssembly opcode table
(data/ops.yaml) into C source fragments for the pwasm interpreter.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌─────────────────────────┐    ┌──────────┐
    │ ops.yaml │───>│  Loader  │───>│          Model          │───>│  Views   │──> stdout
    │ ops.csv  │    │  (Spec)  │    │ encoder  analyzer       │    │ (C text) │
    └──────────┘    └──────────┘    │ bytemap  flags          │    └──────────┘
                                    └─────────────────────────┘

    - loader.py:    YAML / legacy CSV -> Spec records
    - encoder.py:   canonical opcode bytes (fixed byte, LEB128)
    - analyzer.py:  per-set max code, duplicate check, validity mask
    - bytemap.py:   byte -> opcode reverse map
    - flags.py:     symbolic flags -> fixed-position bitmask
    - ops_model.py: ties the above together into one immutable Model
    - views.py:     C fragment templates
    - cli.py:       command table and entry point
"""

__version__ = "0.2.0"

from .errors import (OpgenError, ConfigError, DuplicateCodeError, UnknownFlagError,
                     EncodingRangeError, UnknownCommandError)
from .encoder import Encoding, leb128, decode_leb128, encode_code
from .flags import FLAG_IDS, OpFlags, parse_flags
from .bytemap import UNDEFINED
from .loader import Spec, load_spec
from .ops_model import Model, Opcode, OpcodeSet, build_model


def generate(commands, config=None):
    """Load the spec once and return the rendered fragments for ``commands``.

    Same pipeline as the CLI, minus argument parsing and printing:
    Loader -> Model -> Views.
    """
    from .cli import run
    return run(commands, config)
