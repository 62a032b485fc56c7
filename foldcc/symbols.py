"""foldcc.symbols

Symbol tables and the scope stack.

Every variable is an ``int`` whose current compile-time value is tracked
here. Each block owns one SymbolTable; the ScopeStack holds them global
first, innermost last, and lookups search from the top down so inner
declarations shadow outer ones.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from foldcc.errors import ScopeError, UnresolvedReferenceError
from foldcc.folding import wrap_int32


@dataclass
class Symbol:
    name: str
    value: int
    line: int = 0
    column: int = 0
    type: str = "int"


class SymbolTable:
    """Symbols of one lexical block"""

    def __init__(self):
        self._symbols: Dict[str, Symbol] = {}

    def add(self, symbol: Symbol) -> None:
        # Redeclaring in the same block replaces the previous entry.
        self._symbols[symbol.name] = symbol

    def find(self, name: str) -> Optional[Symbol]:
        return self._symbols.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._symbols

    def __len__(self) -> int:
        return len(self._symbols)

    def __iter__(self) -> Iterator[Symbol]:
        return iter(list(self._symbols.values()))

    def values(self) -> Dict[str, int]:
        return {name: sym.value for name, sym in self._symbols.items()}


class ScopeStack:
    """Stack of symbol tables; the global table sits at the bottom"""

    def __init__(self):
        self._tables: List[SymbolTable] = [SymbolTable()]

    @property
    def depth(self) -> int:
        return len(self._tables)

    @property
    def current(self) -> SymbolTable:
        if not self._tables:
            raise ScopeError("Scope stack is closed")
        return self._tables[-1]

    @property
    def globals(self) -> SymbolTable:
        if not self._tables:
            raise ScopeError("Scope stack is closed")
        return self._tables[0]

    def enter_scope(self) -> SymbolTable:
        table = SymbolTable()
        self._tables.append(table)
        return table

    def exit_scope(self) -> SymbolTable:
        if len(self._tables) <= 1:
            raise ScopeError("Attempt to pop the global scope")
        return self._tables.pop()

    @contextmanager
    def scope(self) -> Iterator[SymbolTable]:
        """Enter a block scope and pop it on every exit path."""
        depth = self.depth
        table = self.enter_scope()
        try:
            yield table
        finally:
            # close() may already have emptied the stack during an abort.
            if self.depth > depth:
                del self._tables[depth:]

    def declare(self, name: str, value: int, line: int = 0, column: int = 0) -> Symbol:
        symbol = Symbol(name=name, value=wrap_int32(value), line=line, column=column)
        self.current.add(symbol)
        return symbol

    def lookup(self, name: str) -> Optional[Symbol]:
        for table in reversed(self._tables):
            symbol = table.find(name)
            if symbol is not None:
                return symbol
        return None

    def assign(self, name: str, value: int, line: int = 0, column: int = 0) -> Symbol:
        symbol = self.lookup(name)
        if symbol is None:
            raise UnresolvedReferenceError(name, line, column)
        symbol.value = wrap_int32(value)
        return symbol

    def close(self) -> None:
        """Discard every table, the global one included."""
        self._tables.clear()
