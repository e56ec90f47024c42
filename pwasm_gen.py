#!/usr/bin/env python3
"""
pwasm_gen: pwasm opcode table generator (opgen CLI wrapper)

Usage:
    python pwasm_gen.py [command ...] [--config ops.yaml] [--legacy] [-v]

Examples:
    python pwasm_gen.py help
    python pwasm_gen.py op-enum op-defs > src/pwasm-ops.h
    python pwasm_gen.py mask byte-map op-data > src/pwasm-ops.c
    python pwasm_gen.py --legacy op-flags
"""

import os
import sys

# Allow running from project root without installing
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from opgen.cli import main


if __name__ == "__main__":
    sys.exit(main())
