"""
opgen: command-line front end.

Usage:
    opgen [options] [command ...]
    python pwasm_gen.py [options] [command ...]

Each command prints one C fragment to stdout; several commands print their
fragments in the order given. With no command, ``help`` is printed.

Examples:
    opgen op-enum op-defs > ops.h
    opgen mask byte-map op-data > ops.c
    opgen --legacy flags-enum op-flags
    PWASM_CONFIG_PATH=ops.yaml opgen set-enum

All command names are checked before anything runs: one bad name aborts the
whole invocation with nothing written to stdout.
"""

from __future__ import annotations
import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from . import __version__
from .errors import OpgenError, UnknownCommandError
from .loader import csv_path, load_spec
from .log import setup_logging, verbosity_level
from .ops_model import Model, build_model
from . import views

__all__ = ['Command', 'COMMANDS', 'find_command', 'check_commands',
           'render_help', 'run', 'main']

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Command:
    text: str
    func: Callable[[Optional[Model]], str]
    needs_model: bool = True


def render_help() -> str:
    rows = "\n".join(f"  {name}: {COMMANDS[name].text}" for name in sorted(COMMANDS))
    return f"Commands:\n{rows}"


COMMANDS: Dict[str, Command] = {
    'set-enum':   Command('Print header pwasm_ops_t enumeration.', views.render_set_enum),
    'op-enum':    Command('Print header pwasm_op_t enumeration.', views.render_op_enum),
    'set-data':   Command('Print PWASM_OP_SET_DATA array for source file.', views.render_set_data),
    'op-defs':    Command('Print header pwasm_op_t #define.', views.render_op_defs),
    'mask':       Command('Print valid ops mask for source file.', views.render_mask),
    'byte-map':   Command('Print byte to pwasm_op_t map for source file.', views.render_byte_map),
    'op-data':    Command('Print PWASM_OP_DATA array for source file.', views.render_op_data),
    'flags-enum': Command('Print header pwasm_op_flag_t enumeration.', views.render_flags_enum),
    'op-flags':   Command('Print PWASM_OP_FLAGS array for source file.', views.render_op_flags),
    'byte-defs':  Command('Print header per-byte PWASM_OP_DEFS #define.', views.render_byte_defs),
    'help':       Command('Print help.', lambda _model: render_help(), needs_model=False),
}


def find_command(name: str) -> Command:
    try:
        return COMMANDS[name]
    except KeyError:
        raise UnknownCommandError([name]) from None


def check_commands(names: Iterable[str]) -> None:
    """Raise one UnknownCommandError listing every unrecognized name."""
    bad = [name for name in names if name not in COMMANDS]
    if bad:
        raise UnknownCommandError(bad)


def run(names: Sequence[str], config: Optional[Path] = None) -> List[str]:
    """Render the fragments for ``names``. Nothing is written here.

    The model is loaded at most once, and only if some command needs it.
    """
    names = list(names) or ['help']
    check_commands(names)

    model: Optional[Model] = None
    out = []
    for name in names:
        cmd = find_command(name)
        if cmd.needs_model and model is None:
            model = build_model(load_spec(config))
        log.debug("Rendering %s", name)
        out.append(cmd.func(model))
    return out


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opgen",
        description="Generate pwasm opcode tables (C fragments) from ops.yaml",
        epilog="commands: " + ", ".join(sorted(COMMANDS)),
    )
    parser.add_argument("commands", nargs="*", metavar="command",
                        help="Fragments to print, in order (default: help)")
    parser.add_argument("--config", "-c", default=None,
                        help="Spec file (.yaml, or .csv for the legacy table). "
                             "Default: $PWASM_CONFIG_PATH or the bundled ops.yaml")
    parser.add_argument("--legacy", action="store_true",
                        help="Use the legacy flat table ($PWASM_OPS_CSV_PATH or bundled ops.csv)")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase log verbosity on stderr (-v, -vv)")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Only log errors")
    parser.add_argument("--log-file", default=None,
                        help="Also write a DEBUG log to this file")
    parser.add_argument("--version", action="version", version=f"opgen {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    config = Path(args.config) if args.config else (csv_path() if args.legacy else None)

    try:
        setup_logging(verbosity_level(args.verbose, args.quiet), args.log_file)
        fragments = run(args.commands, config)
    except UnknownCommandError as e:
        print(e, file=sys.stderr)
        return 1
    except OpgenError as e:
        log.debug("Aborted", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for fragment in fragments:
        print(fragment)
    return 0


if __name__ == "__main__":
    sys.exit(main())
