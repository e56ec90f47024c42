"""
Error types for the opcode table generator.

Every error here is fatal: it is raised while the model is built or while
command names are dispatched, and only ``opgen.cli.main`` catches it.
"""

from __future__ import annotations
from typing import Iterable, Optional, Tuple

__all__ = [
    'OpgenError', 'ConfigError', 'DuplicateCodeError', 'UnknownFlagError',
    'EncodingRangeError', 'UnknownCommandError',
]


class OpgenError(Exception):
    """Base class for all generator errors."""


class ConfigError(OpgenError):
    """Malformed opcode table or unreadable table file."""
    def __init__(self, message: str, source: str = ""):
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


class DuplicateCodeError(OpgenError):
    """Two opcodes in one set share the same code."""
    def __init__(self, set_name: str, code: int):
        self.set_name = set_name
        self.code = code
        super().__init__(f"Duplicate code 0x{code:02X} in opcode set '{set_name}'")


class UnknownFlagError(OpgenError):
    """A flag token outside the fixed flag universe."""
    def __init__(self, token: str, name: Optional[str] = None):
        self.token = token
        self.name = name
        where = f" (opcode '{name}')" if name else ""
        super().__init__(f"Unknown flag: '{token}'{where}")


class EncodingRangeError(OpgenError):
    """Code cannot be represented by the set's encoding scheme."""
    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(message)


class UnknownCommandError(OpgenError):
    """One or more CLI command names are not recognized."""
    def __init__(self, names: Iterable[str]):
        self.names: Tuple[str, ...] = tuple(names)
        super().__init__("Invalid commands (see 'help'): " + ", ".join(self.names))
