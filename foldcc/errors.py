"""foldcc.errors

Fatal diagnostics raised by the front end.

Every error aborts the whole compilation; nothing is recovered or retried.
The driver turns any of these into a single ``"<message> at <line>:<column>"``
line and a non-zero exit status.
"""

from __future__ import annotations

from typing import Optional


class CompileError(Exception):
    """Base class for front-end errors carrying a source position"""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        self.message = message
        self.line = line
        self.column = column
        if line > 0:
            super().__init__(f"{message} at {line}:{column}")
        else:
            super().__init__(message)


class ParserError(CompileError):
    """Expected token kind or text not found"""

    def __init__(self, message: str, token: Optional[object] = None):
        self.token = token
        if token is not None:
            super().__init__(message, token.line, token.column)
        else:
            super().__init__(message)


class UnexpectedEndOfInput(ParserError):
    """Token stream ran out while a construct was incomplete"""


class NestingLimitError(ParserError):
    """Expression or block nesting exceeded the configured ceiling"""


class UnresolvedReferenceError(CompileError):
    """Identifier read or assigned before its declaration"""

    def __init__(self, name: str, line: int, column: int):
        self.name = name
        super().__init__(f"Undefined variable '{name}'", line, column)


class ConstantFoldError(CompileError):
    """Division or modulo by zero while folding a constant expression"""


class LoopLimitError(CompileError):
    """A loop kept running past the compile-time iteration ceiling"""


class TreeOwnershipError(CompileError):
    """A tree node was released twice or by a builder that does not own it"""


class ScopeError(CompileError):
    """Scope stack misuse (e.g. popping the global scope)"""
